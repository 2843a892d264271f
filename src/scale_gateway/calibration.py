"""
Load cell calibration

The load cell amplifier reports a raw count Y which is linear in the weight
X on the scale, Y = M * X + B. The scale keeps the inverse parameters
(offset = B, scale = M) so that a reading converts straight to kilograms.

Calibrate each physical scale once:
  1. read the raw output with nothing on the scale, that is the offset
  2. put a known weight on the scale and read the raw output again
  3. scale = (loaded count - offset) / known weight
"""

from dataclasses import asdict
from dataclasses import dataclass
import json
from pathlib import Path
from typing import Protocol

from scale_gateway.errors import ConfigError


DEFAULT_OFFSET = -22050
DEFAULT_SCALE = -219327.839

# Raw samples averaged per reading
DEFAULT_SAMPLES = 5


class LoadCell(Protocol):
    """Raw load cell driver, i.e. HX711"""

    def read_average(self, times: int = 5) -> float: ...


@dataclass(frozen=True)
class CalibrationParameters:
    offset: int = DEFAULT_OFFSET
    scale: float = DEFAULT_SCALE

    def to_kg(self, raw_count: float) -> float:
        return (raw_count - self.offset) / self.scale


def units(sensor: LoadCell, calibration: CalibrationParameters, times: int = DEFAULT_SAMPLES) -> float:
    """Read the averaged sensor output and convert it to kilograms"""
    return calibration.to_kg(sensor.read_average(times))


def calibrate(zero_count: float, loaded_count: float, known_kg: float) -> CalibrationParameters:
    """
    Calculate calibration parameters from two raw readings.

    Args:
        zero_count: Raw output with no load on the scale
        loaded_count: Raw output with the known weight on the scale
        known_kg: The known weight in kilograms

    Returns:
        Calibration parameters of the scale
    """
    if known_kg == 0:
        raise ValueError("Known weight must not be zero")
    if loaded_count == zero_count:
        raise ValueError("Loaded and zero counts are equal, check the load cell wiring")

    offset = round(zero_count)
    return CalibrationParameters(offset=offset, scale=(loaded_count - offset) / known_kg)


def load_calibration(path: Path | None = None) -> CalibrationParameters:
    """
    Load calibration parameters of the scale.

    The embedded defaults are used when no file is given.
    """
    if path is None:
        return CalibrationParameters()

    try:
        with open(path, "r") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(str(path), f"Failed to read calibration file: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(str(path), f"Calibration in {path} is not a JSON object")

    offset = data.get("offset")
    if isinstance(offset, bool) or not isinstance(offset, int):
        raise ConfigError("offset", f"Missing or non-integer offset in {path}")

    scale = data.get("scale")
    if isinstance(scale, bool) or not isinstance(scale, (int, float)) or scale == 0:
        raise ConfigError("scale", f"Missing or zero scale in {path}")

    return CalibrationParameters(offset=offset, scale=float(scale))


def save_calibration(calibration: CalibrationParameters, path: Path) -> None:
    with open(path, "w") as f:
        json.dump(asdict(calibration), f, indent=2)
