"""
Scale side of the pipeline

Samples the load cell at a fixed period and keeps the latest weight in the
published Weight Measurement record. The BLE GATT server is not part of
this module, it is reached through the ``publish`` callable.
"""

import asyncio
import logging
import math
from typing import Callable, TypeAlias

from scale_gateway.calibration import DEFAULT_SAMPLES
from scale_gateway.calibration import CalibrationParameters
from scale_gateway.calibration import LoadCell
from scale_gateway.calibration import units
from scale_gateway.codec import WEIGHT_FEATURE_UUID
from scale_gateway.codec import WEIGHT_MEASUREMENT_UUID
from scale_gateway.codec import encode_feature
from scale_gateway.codec import encode_weight

logger = logging.getLogger(__name__)

Publisher: TypeAlias = Callable[[str, bytes], None]

DEFAULT_SAMPLE_INTERVAL = 1.0


class ScaleEncoder:
    """
    Continuous weight measurement source.

    A fresh record is published every sampling period, whether or not the
    weight changed.
    """

    def __init__(
        self,
        sensor: LoadCell,
        publish: Publisher,
        calibration: CalibrationParameters | None = None,
        interval: float = DEFAULT_SAMPLE_INTERVAL,
        samples: int = DEFAULT_SAMPLES,
    ):
        self.sensor = sensor
        self.publish = publish
        self.calibration = calibration or CalibrationParameters()
        self.interval = interval
        self.samples = samples
        self.value: bytes | None = None
        self.weight_kg: float | None = None

    def start(self) -> None:
        """Publish the static Weight Scale Feature record"""
        self.publish(WEIGHT_FEATURE_UUID, encode_feature())

    def sample(self) -> bytes | None:
        # blocks the loop for the duration of the sensor read
        weight_kg = units(self.sensor, self.calibration, self.samples)
        if not math.isfinite(weight_kg):
            logger.warning("Skipping sample, sensor average is not a number: %s", weight_kg)
            return None

        value = encode_weight(weight_kg)

        self.weight_kg = weight_kg
        self.value = value
        self.publish(WEIGHT_MEASUREMENT_UUID, value)
        logger.debug("Weight %.3f kg, record %s", weight_kg, value.hex())
        return value

    async def run(self) -> None:
        self.start()
        while True:
            self.sample()
            await asyncio.sleep(self.interval)
