"""
Scale gateway exceptions.

Fatal errors (configuration, adapter) stop the relay. Everything else aborts
the current acquisition cycle only; the next timer firing is the retry.
"""


class GatewayError(Exception):
    """Base class for all scale gateway errors"""


class ConfigError(GatewayError):
    """Missing or invalid gateway configuration"""

    def __init__(self, field: str, message: str):
        super().__init__(f"{message} ({field})")
        self.field = field


class AdapterUnavailableError(GatewayError):
    """BLE adapter is powered off or missing"""


class ProtocolShapeError(GatewayError):
    """Device returned an unexpected number of attributes"""


class UploadError(GatewayError):
    """Upload of a record to the remote sink failed"""


class DecodeError(GatewayError, ValueError):
    """Record received from the scale cannot be decoded"""


class MalformedLengthError(DecodeError):
    def __init__(self, length: int, expected: int = 3):
        super().__init__(f"Garbled BLE record: data length = {length}, expected {expected}")
        self.length = length


class UnsupportedUnitsError(DecodeError):
    def __init__(self):
        super().__init__("Scale is reporting in Imperial units instead of SI units")


class UnsupportedTimestampError(DecodeError):
    def __init__(self):
        super().__init__("Scale includes a timestamp")


class UnsupportedUserIdError(DecodeError):
    def __init__(self):
        super().__init__("Scale reports user ID")


class UnsupportedBmiHeightError(DecodeError):
    def __init__(self):
        super().__init__("Scale includes BMI and Height")
