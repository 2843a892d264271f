"""
Relay configuration

The configuration is a JSON file with the following names:
  bleLocalName String. Advertised local name of the BLE weight scale to read from.
  publicKey String. The public key of the data stream to upload to.
  privateKey String. The private key of the data stream to upload to.
    Keep this secret, to prevent unauthorized apps from uploading to your stream.
  uploadSecs Number. The time (seconds) per upload to your data stream.

Optional names:
  sink String. "phant" (default) or "influxdb".
  phantHost String. Host of the Phant server (default data.sparkfun.com).
  stageTimeoutSecs Number. Time limit of each BLE stage (default: no limit).
  influxdb Object. InfluxDB connection: url, token, org, bucket.
"""

from dataclasses import dataclass
from dataclasses import field
import json
import logging
import os
from pathlib import Path
from typing import Any
from typing import Optional

from scale_gateway.errors import ConfigError
from scale_gateway.influx import InfluxDBConfig

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "scalegateway.cfg"
CONFIG_ENV = "SCALE_GATEWAY_CONFIG"

# Phant lower limit (seconds) per upload, see http://phant.io/docs/input/limit/
MIN_UPLOAD_SECS = 9

DEFAULT_PHANT_HOST = "data.sparkfun.com"

SINKS = ("phant", "influxdb")


@dataclass(frozen=True)
class GatewayConfig:
    ble_local_name: str
    public_key: str
    private_key: str = field(repr=False)
    upload_secs: int
    sink: str = "phant"
    phant_host: str = DEFAULT_PHANT_HOST
    stage_timeout: Optional[float] = None
    influxdb: Optional[InfluxDBConfig] = None


def get_config_file_path() -> Path:
    path = os.environ.get(CONFIG_ENV)
    if path:
        return Path(path)
    return Path.home() / CONFIG_FILENAME


def _required_string(data: dict[str, Any], name: str, path: Path) -> str:
    value = data.get(name)
    if not isinstance(value, str) or len(value) == 0:
        raise ConfigError(name, f"Missing or blank {name} in {path}")
    return value


def parse_config(data: dict[str, Any], path: Path) -> GatewayConfig:
    """
    Validate configuration data.

    Args:
        data: Configuration data read from the file
        path: Path of the configuration file, for error messages

    Returns:
        Gateway configuration

    Raises:
        ConfigError: on the first missing or invalid field
    """
    if not isinstance(data, dict):
        raise ConfigError("<root>", f"Configuration in {path} is not a JSON object")

    ble_local_name = _required_string(data, "bleLocalName", path)
    public_key = _required_string(data, "publicKey", path)
    private_key = _required_string(data, "privateKey", path)

    upload_secs = data.get("uploadSecs")
    if isinstance(upload_secs, bool) or not isinstance(upload_secs, int) or upload_secs < MIN_UPLOAD_SECS:
        raise ConfigError("uploadSecs", f"Missing or out-of-range uploadSecs in {path}. uploadSecs: {upload_secs}")

    sink = data.get("sink", "phant")
    if sink not in SINKS:
        raise ConfigError("sink", f"Unknown sink {sink!r} in {path}, expected one of {', '.join(SINKS)}")

    phant_host = data.get("phantHost", DEFAULT_PHANT_HOST)
    if not isinstance(phant_host, str) or len(phant_host) == 0:
        raise ConfigError("phantHost", f"Blank phantHost in {path}")

    stage_timeout = data.get("stageTimeoutSecs")
    if stage_timeout is not None:
        if isinstance(stage_timeout, bool) or not isinstance(stage_timeout, (int, float)) or stage_timeout <= 0:
            raise ConfigError("stageTimeoutSecs", f"Non-positive stageTimeoutSecs in {path}: {stage_timeout}")
        stage_timeout = float(stage_timeout)

    influxdb = None
    if sink == "influxdb":
        influx_data = data.get("influxdb", {})
        if not isinstance(influx_data, dict):
            raise ConfigError("influxdb", f"influxdb in {path} is not a JSON object")
        influxdb = InfluxDBConfig(
            url=influx_data.get("url"),
            token=influx_data.get("token"),
            org=influx_data.get("org"),
            bucket=influx_data.get("bucket"),
        )
        if not influxdb.token:
            raise ConfigError("influxdb.token", f"Missing InfluxDB token in {path} and INFLUXDB_TOKEN")

    return GatewayConfig(
        ble_local_name=ble_local_name,
        public_key=public_key,
        private_key=private_key,
        upload_secs=upload_secs,
        sink=sink,
        phant_host=phant_host,
        stage_timeout=stage_timeout,
        influxdb=influxdb,
    )


def load_config(path: Path | None = None) -> GatewayConfig:
    """Read and validate the relay configuration file"""
    path = path or get_config_file_path()
    try:
        with open(path, "r") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(str(path), f"Failed to read config file {path}: {e}") from e

    config = parse_config(data, path)

    logger.info("Application properties")
    logger.info("  LocalName: %s", config.ble_local_name)
    logger.info("  publicKey: %s", config.public_key)
    logger.info("  privateKey: <elided>")
    logger.info("  uploadSecs: %d", config.upload_secs)
    logger.info("  sink: %s", config.sink)
    return config
