"""
BLE Weight Scale codec

Encoding and decoding of the Weight Measurement (0x2A9D) and Weight Scale
Feature (0x2A9E) characteristics, shared by the scale and the gateway.

Weight Measurement layout:
[0] = flags
[1] = weight least-significant byte
[2] = weight most-significant byte

The weight is a count of 0.005 kg steps.
"""

import struct
from typing import Callable

from scale_gateway.errors import MalformedLengthError
from scale_gateway.errors import UnsupportedBmiHeightError
from scale_gateway.errors import UnsupportedTimestampError
from scale_gateway.errors import UnsupportedUnitsError
from scale_gateway.errors import UnsupportedUserIdError
from scale_gateway.types import FeatureRecord
from scale_gateway.types import WeightFlags
from scale_gateway.types import WeightRecord


# Convert 16-bit UUID to full 128-bit Bluetooth normative UUID string
to_uuid: Callable[[int], str] = "0000{:04x}-0000-1000-8000-00805f9b34fb".format

# Standard Weight Scale service and its characteristics
WEIGHT_SERVICE_UUID = to_uuid(0x181D)
WEIGHT_MEASUREMENT_UUID = to_uuid(0x2A9D)
WEIGHT_FEATURE_UUID = to_uuid(0x2A9E)

WEIGHT_RECORD_SIZE = 3
FEATURE_RECORD_SIZE = 4

# Weight Scale Feature resolution classes
WEIGHT_RESOLUTION_NONE = 0
WEIGHT_RESOLUTION_0_5_KG = 1
WEIGHT_RESOLUTION_0_2_KG = 2
WEIGHT_RESOLUTION_0_1_KG = 3
WEIGHT_RESOLUTION_0_05_KG = 4
WEIGHT_RESOLUTION_0_01_KG = 5
WEIGHT_RESOLUTION_0_005_KG = 6

# Feature bit layout
_FEATURE_TIMESTAMP = 0x01
_FEATURE_MULTIPLE_USERS = 0x02
_FEATURE_BMI = 0x04
_FEATURE_WEIGHT_SHIFT = 3
_FEATURE_HEIGHT_SHIFT = 7

# Features announced by the scale
SCALE_FEATURES = FeatureRecord(weight_resolution=WEIGHT_RESOLUTION_0_01_KG)


def encode_weight(weight_kg: float) -> bytes:
    """
    Encode weight as SI Weight Measurement record with no optional fields.

    Weights outside of the 16-bit range wrap around silently. Non-finite
    weights raise ValueError or OverflowError.
    """
    weight_raw = round(weight_kg * 1000.0 / 5.0) & 0xFFFF
    return struct.pack("<BH", 0, weight_raw)


def decode_weight(data: bytes) -> WeightRecord:
    """
    Parse Weight Measurement record.

    Args:
        data: The raw bytes of the characteristic

    Returns:
        Decoded weight record

    Raises:
        DecodeError: if the record length is wrong or its flags announce
            fields which are not supported
    """
    if len(data) != WEIGHT_RECORD_SIZE:
        raise MalformedLengthError(len(data), WEIGHT_RECORD_SIZE)

    flags = WeightFlags(data[0])
    if flags & WeightFlags.IMPERIAL:
        raise UnsupportedUnitsError()
    if flags & WeightFlags.TIMESTAMP:
        raise UnsupportedTimestampError()
    if flags & WeightFlags.USER_ID:
        raise UnsupportedUserIdError()
    if flags & WeightFlags.BMI:
        raise UnsupportedBmiHeightError()

    return WeightRecord(flags=flags, weight_raw=(data[2] << 8) + data[1])


def encode_feature(feature: FeatureRecord = SCALE_FEATURES) -> bytes:
    value = (
        (_FEATURE_TIMESTAMP if feature.timestamp else 0)
        | (_FEATURE_MULTIPLE_USERS if feature.multiple_users else 0)
        | (_FEATURE_BMI if feature.bmi else 0)
        | (feature.weight_resolution & 0x0F) << _FEATURE_WEIGHT_SHIFT
        | (feature.height_resolution & 0x07) << _FEATURE_HEIGHT_SHIFT
    )
    return struct.pack("<I", value)


def decode_feature(data: bytes) -> FeatureRecord:
    if len(data) != FEATURE_RECORD_SIZE:
        raise MalformedLengthError(len(data), FEATURE_RECORD_SIZE)

    (value,) = struct.unpack("<I", data)
    return FeatureRecord(
        timestamp=bool(value & _FEATURE_TIMESTAMP),
        multiple_users=bool(value & _FEATURE_MULTIPLE_USERS),
        bmi=bool(value & _FEATURE_BMI),
        weight_resolution=(value >> _FEATURE_WEIGHT_SHIFT) & 0x0F,
        height_resolution=(value >> _FEATURE_HEIGHT_SHIFT) & 0x07,
    )
