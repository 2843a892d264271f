from dataclasses import dataclass
from dataclasses import field
from enum import Enum
from enum import IntFlag


# Sentinel for "no weight has been read yet"
NO_WEIGHT = -1.0


class WeightFlags(IntFlag):
    """Flags byte of the BLE Weight Measurement characteristic"""

    IMPERIAL = 0x01
    TIMESTAMP = 0x02
    USER_ID = 0x04
    BMI = 0x08
    RESERVED_1 = 0x10
    RESERVED_2 = 0x20
    RESERVED_3 = 0x40
    RESERVED_4 = 0x80


@dataclass(frozen=True)
class WeightRecord:
    """Class for storing a decoded Weight Measurement record"""

    flags: WeightFlags
    weight_raw: int

    @property
    def weight_kg(self) -> float:
        return self.weight_raw * 5.0 / 1000.0


@dataclass(frozen=True)
class FeatureRecord:
    """Class for storing a decoded Weight Scale Feature record"""

    timestamp: bool = False
    multiple_users: bool = False
    bmi: bool = False
    weight_resolution: int = 0
    height_resolution: int = 0


class Stage(Enum):
    """Stages of one relay acquisition cycle"""

    IDLE = "idle"
    SCANNING = "scanning"
    CONNECTING = "connecting"
    DISCOVERING_SERVICE = "discovering service"
    DISCOVERING_CHARACTERISTIC = "discovering characteristic"
    READING = "reading"
    DISCONNECTING = "disconnecting"
    UPLOADING = "uploading"


@dataclass
class AcquisitionState:
    """Class for storing the state of the relay's BLE communication"""

    scanning: bool = False
    connected: bool = False
    waiting_for_data: bool = False
    last_weight_kg: float = NO_WEIGHT
    stage: Stage = Stage.IDLE

    @property
    def idle(self) -> bool:
        return self.stage is Stage.IDLE and not (self.scanning or self.connected or self.waiting_for_data)


@dataclass(frozen=True)
class StreamKeys:
    """Keys of the remote data stream to upload to"""

    public_key: str
    private_key: str = field(default="", repr=False)
