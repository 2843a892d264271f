"""
Upload record assembly and sink selection
"""

from typing import Protocol

from scale_gateway.config import GatewayConfig
from scale_gateway.influx import InfluxDBConfig
from scale_gateway.influx import InfluxDBSink
from scale_gateway.phant import PhantSink
from scale_gateway.types import StreamKeys

WEIGHT_FIELD = "scale_kg"


class Sink(Protocol):
    async def send(self, keys: StreamKeys, record: dict[str, float]) -> None: ...

    async def close(self) -> None: ...


def build_record(weight_kg: float) -> dict[str, float]:
    return {WEIGHT_FIELD: weight_kg}


def stream_keys(config: GatewayConfig) -> StreamKeys:
    return StreamKeys(public_key=config.public_key, private_key=config.private_key)


def create_sink(config: GatewayConfig) -> Sink:
    """Create the sink named in the configuration"""
    if config.sink == "influxdb":
        return InfluxDBSink(config.influxdb or InfluxDBConfig(), config.ble_local_name)
    return PhantSink(f"https://{config.phant_host}")
