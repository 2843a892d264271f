"""
InfluxDB sink for scale records

This module provides an alternative to the Phant sink, sending weight
records to an InfluxDB instance for storage and visualization.
"""

import asyncio
from datetime import datetime
from datetime import timezone
import os
from typing import Optional

from influxdb_client import InfluxDBClient
from influxdb_client import Point
from influxdb_client.client.write_api import SYNCHRONOUS

from scale_gateway.errors import UploadError
from scale_gateway.types import StreamKeys


class InfluxDBConfig:
    """Configuration for InfluxDB connection"""

    def __init__(
        self,
        url: Optional[str] = None,
        token: Optional[str] = None,
        org: Optional[str] = None,
        bucket: Optional[str] = None,
        measurement: str = "scale",
    ):
        """
        Initialize InfluxDB configuration

        Args:
            url: InfluxDB server URL (default: from INFLUXDB_URL env var or http://localhost:8086)
            token: InfluxDB authentication token (default: from INFLUXDB_TOKEN env var)
            org: InfluxDB organization (default: from INFLUXDB_ORG env var or 'my-org')
            bucket: InfluxDB bucket (default: from INFLUXDB_BUCKET env var or 'scale')
            measurement: Measurement name for data points (default: 'scale')
        """
        self.url = url or os.environ.get("INFLUXDB_URL", "http://localhost:8086")
        self.token = token or os.environ.get("INFLUXDB_TOKEN")
        self.org = org or os.environ.get("INFLUXDB_ORG", "my-org")
        self.bucket = bucket or os.environ.get("INFLUXDB_BUCKET", "scale")
        self.measurement = measurement


def record_to_point(
    measurement: str, keys: StreamKeys, device_name: str, record: dict[str, float], timestamp: Optional[datetime] = None
) -> Point:
    """
    Convert upload record to InfluxDB data point

    Args:
        measurement: Measurement name of the point
        keys: Stream keys, the public key tags the point
        device_name: Advertised name of the scale
        record: Field names and values to send
        timestamp: Optional timestamp (default: current time)

    Returns:
        InfluxDB data point
    """
    ts = timestamp or datetime.now(timezone.utc)

    point = Point(measurement).tag("stream", keys.public_key).tag("device", device_name).time(ts)
    for name, value in record.items():
        point = point.field(name, value)

    return point


class InfluxDBSink:
    """Sink writing scale records to InfluxDB"""

    def __init__(self, config: InfluxDBConfig, device_name: str):
        if not config.token:
            raise ValueError("InfluxDB token is required. Set INFLUXDB_TOKEN environment variable or provide token in config.")

        self.config = config
        self.device_name = device_name

    def write(self, keys: StreamKeys, record: dict[str, float]) -> None:
        point = record_to_point(self.config.measurement, keys, self.device_name, record)

        client = InfluxDBClient(url=self.config.url, token=self.config.token, org=self.config.org)
        write_api = client.write_api(write_options=SYNCHRONOUS)
        try:
            write_api.write(bucket=self.config.bucket, record=point)
        finally:
            write_api.close()
            client.close()

    async def send(self, keys: StreamKeys, record: dict[str, float]) -> None:
        try:
            await asyncio.to_thread(self.write, keys, record)
        except Exception as e:
            raise UploadError(f"InfluxDB write error: {e}") from e

    async def close(self) -> None:
        pass
