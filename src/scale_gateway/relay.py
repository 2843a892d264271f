"""
Scale relay

Periodically reads the latest weight from the BLE scale and uploads it to
the remote sink. Each timer firing starts at most one acquisition cycle:

  scan -> connect -> discover service -> discover characteristic -> read
  -> disconnect -> upload

Any failure aborts the cycle without upload. There is no immediate retry,
the next timer firing starts a fresh cycle.
"""

import asyncio
import logging
from typing import Any
from typing import Awaitable
from typing import Optional
from typing import TypeVar

from bleak.exc import BleakError

from scale_gateway.ble import BleakLink
from scale_gateway.codec import WEIGHT_MEASUREMENT_UUID
from scale_gateway.codec import WEIGHT_SERVICE_UUID
from scale_gateway.codec import decode_weight
from scale_gateway.config import GatewayConfig
from scale_gateway.errors import DecodeError
from scale_gateway.errors import ProtocolShapeError
from scale_gateway.errors import UploadError
from scale_gateway.types import AcquisitionState
from scale_gateway.types import Stage
from scale_gateway.upload import Sink
from scale_gateway.upload import build_record
from scale_gateway.upload import create_sink
from scale_gateway.upload import stream_keys

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Errors of the BLE transport which abort the current cycle only
TRANSIENT_ERRORS = (BleakError, TimeoutError, OSError)


def expect_one(items: list[T], kind: str) -> T:
    if len(items) != 1:
        raise ProtocolShapeError(f"Discovery returned unexpected {len(items)} {kind}")
    return items[0]


class Relay:
    """
    Scale relay owning the acquisition state.

    Args:
        config: Gateway configuration
        link: BLE transport (default: bleak)
        sink: Remote sink (default: the sink named in the configuration)
    """

    def __init__(self, config: GatewayConfig, link: Any = None, sink: Optional[Sink] = None):
        self.config = config
        self.link = link if link is not None else BleakLink()
        self.sink = sink if sink is not None else create_sink(config)
        self.keys = stream_keys(config)
        self.state = AcquisitionState()

        self._task: Optional[asyncio.Task[None]] = None
        self._fatal: Optional[asyncio.Future[None]] = None

    def tick(self) -> Optional[asyncio.Task[None]]:
        """
        Start a new acquisition cycle unless the previous one is busy.

        Returns:
            Task of the new cycle or None if no cycle was started
        """
        state = self.state
        if state.scanning:
            logger.debug("Continuing existing scan.")
            return None
        if state.connected or state.waiting_for_data:
            logger.debug(
                "Skipping scan: previous scan is still busy. Connected: %s, WaitingForData: %s.",
                state.connected,
                state.waiting_for_data,
            )
            return None
        if state.stage is not Stage.IDLE:
            logger.debug("Skipping scan: previous cycle is still %s.", state.stage.value)
            return None

        logger.debug("Scanning started.")
        state.scanning = True
        state.stage = Stage.SCANNING

        self._task = asyncio.create_task(self.cycle())
        self._task.add_done_callback(self._cycle_done)
        return self._task

    async def cycle(self) -> None:
        weight_kg = await self.acquire()
        if weight_kg is not None:
            await self.upload(weight_kg)

    async def acquire(self) -> Optional[float]:
        """
        Read the weight from the scale.

        The stored weight is left unchanged when the cycle fails.

        Returns:
            Weight in kilograms or None if the cycle failed
        """
        state = self.state
        state.scanning = True
        state.stage = Stage.SCANNING

        client = None
        weight_kg = None
        try:
            device = await self._stage(self.link.discover(self.config.ble_local_name))
            state.scanning = False

            state.stage = Stage.CONNECTING
            client = await self._stage(self.link.connect(device))
            state.connected = True
            logger.debug("Connected")

            state.stage = Stage.DISCOVERING_SERVICE
            services = await self._stage(self.link.discover_services(client, WEIGHT_SERVICE_UUID))
            service = expect_one(services, "Services")

            state.stage = Stage.DISCOVERING_CHARACTERISTIC
            characteristics = await self._stage(self.link.discover_characteristics(service, WEIGHT_MEASUREMENT_UUID))
            characteristic = expect_one(characteristics, "Characteristics")

            state.stage = Stage.READING
            state.waiting_for_data = True
            data = await self._stage(self.link.read(client, characteristic))

            record = decode_weight(data)
            state.last_weight_kg = weight_kg = record.weight_kg
        except (ProtocolShapeError, DecodeError) as e:
            logger.error("Cycle aborted while %s: %s", state.stage.value, e)
        except TRANSIENT_ERRORS as e:
            logger.error("Cycle aborted while %s: %s", state.stage.value, str(e) or type(e).__name__)
        finally:
            state.scanning = False
            state.waiting_for_data = False
            if client is not None:
                state.stage = Stage.DISCONNECTING
                await self._disconnect(client)
            state.connected = False
            state.stage = Stage.IDLE

        return weight_kg

    async def upload(self, weight_kg: float) -> bool:
        self.state.stage = Stage.UPLOADING
        try:
            await self.sink.send(self.keys, build_record(weight_kg))
        except UploadError as e:
            logger.error("Upload error: %s", e)
            return False
        finally:
            self.state.stage = Stage.IDLE

        logger.info("Upload successful. weight (kg): %s", weight_kg)
        return True

    async def run(self) -> None:
        """
        Start a cycle every upload period, until a fatal error.

        Raises:
            AdapterUnavailableError: if the BLE adapter cannot scan
        """
        self._fatal = asyncio.get_running_loop().create_future()
        try:
            while True:
                self.tick()
                done, _ = await asyncio.wait({self._fatal}, timeout=self.config.upload_secs)
                if done:
                    self._fatal.result()
        finally:
            if self._task is not None and not self._task.done():
                self._task.cancel()
                await asyncio.gather(self._task, return_exceptions=True)
            await self.sink.close()

    async def _stage(self, aw: Awaitable[T]) -> T:
        if self.config.stage_timeout is None:
            return await aw
        return await asyncio.wait_for(aw, self.config.stage_timeout)

    async def _disconnect(self, client: Any) -> None:
        try:
            await self._stage(self.link.disconnect(client))
        except TRANSIENT_ERRORS as e:
            logger.warning("Failed to disconnect: %s", str(e) or type(e).__name__)

    def _cycle_done(self, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None and self._fatal is not None and not self._fatal.done():
            self._fatal.set_exception(error)
