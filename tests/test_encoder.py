"""
Tests of the scale side weight record publishing.
"""

import asyncio

from scale_gateway.calibration import CalibrationParameters
from scale_gateway.codec import WEIGHT_FEATURE_UUID
from scale_gateway.codec import WEIGHT_MEASUREMENT_UUID
from scale_gateway.codec import decode_weight
from scale_gateway.encoder import ScaleEncoder


class FakeLoadCell:
    def __init__(self, *counts: float):
        self.counts = list(counts)
        self.times: list[int] = []

    def read_average(self, times: int = 5) -> float:
        self.times.append(times)
        return self.counts.pop(0) if len(self.counts) > 1 else self.counts[0]


class Published:
    def __init__(self):
        self.values: list[tuple[str, bytes]] = []

    def __call__(self, uuid: str, value: bytes) -> None:
        self.values.append((uuid, value))


CALIBRATION = CalibrationParameters(offset=0, scale=1000.0)


def test_start():
    """Test scale features are published on start"""
    published = Published()
    encoder = ScaleEncoder(FakeLoadCell(0), published, CALIBRATION)

    encoder.start()

    assert published.values == [(WEIGHT_FEATURE_UUID, b"\x28\x00\x00\x00")]


def test_sample():
    """Test calibrated weight is encoded and published"""
    published = Published()
    sensor = FakeLoadCell(5000)
    encoder = ScaleEncoder(sensor, published, CALIBRATION, samples=3)

    value = encoder.sample()

    assert value == b"\x00\xe8\x03"
    assert encoder.value == value
    assert encoder.weight_kg == 5.0
    assert published.values == [(WEIGHT_MEASUREMENT_UUID, b"\x00\xe8\x03")]
    assert sensor.times == [3]


def test_sample_unconditional():
    """Test record is published on every sample, even if weight is the same"""
    published = Published()
    encoder = ScaleEncoder(FakeLoadCell(2345, 2345, 500), published, CALIBRATION)

    encoder.sample()
    encoder.sample()
    encoder.sample()

    weights = [decode_weight(value).weight_kg for _, value in published.values]
    assert weights == [2.345, 2.345, 0.5]
    assert encoder.weight_kg == 0.5


def test_sample_default_calibration():
    """Test embedded calibration is used by default"""
    published = Published()
    encoder = ScaleEncoder(FakeLoadCell(-22050), published)

    assert encoder.sample() == b"\x00\x00\x00"


def test_run():
    """Test sampling loop publishes features first, then weights"""
    published = Published()
    encoder = ScaleEncoder(FakeLoadCell(1000), published, CALIBRATION, interval=0.01)

    async def run():
        try:
            await asyncio.wait_for(encoder.run(), 0.1)
        except TimeoutError:
            pass

    asyncio.run(run())

    uuids = [uuid for uuid, _ in published.values]
    assert uuids[0] == WEIGHT_FEATURE_UUID
    assert uuids.count(WEIGHT_FEATURE_UUID) == 1
    assert uuids.count(WEIGHT_MEASUREMENT_UUID) > 1
    assert published.values[1] == (WEIGHT_MEASUREMENT_UUID, b"\x00\xc8\x00")


def test_sample_not_a_number(caplog):
    """Test non-finite sensor average is skipped and sampling continues"""
    published = Published()
    encoder = ScaleEncoder(FakeLoadCell(float("nan"), 1000), published, CALIBRATION)

    assert encoder.sample() is None
    assert published.values == []
    assert encoder.value is None
    assert "Skipping sample" in caplog.text

    assert encoder.sample() == b"\x00\xc8\x00"
    assert published.values == [(WEIGHT_MEASUREMENT_UUID, b"\x00\xc8\x00")]
