"""
BLE transport of the relay

Thin wrapper around bleak, one method per acquisition stage. The relay
drives the stages and owns the state; this module only talks to the adapter.
"""

import asyncio
import logging

from bleak import BleakClient
from bleak import BleakScanner
from bleak.backends.characteristic import BleakGATTCharacteristic
from bleak.backends.device import BLEDevice
from bleak.backends.scanner import AdvertisementData
from bleak.backends.service import BleakGATTService
from bleak.exc import BleakError

from scale_gateway.errors import AdapterUnavailableError

logger = logging.getLogger(__name__)


class BleakLink:
    """Weight scale access over bleak"""

    async def discover(self, local_name: str) -> BLEDevice:
        """
        Scan until a device advertising the given local name appears.

        Other devices are ignored and scanning continues.
        """
        found: asyncio.Future[BLEDevice] = asyncio.get_running_loop().create_future()
        ignored: set[str] = set()

        def callback(device: BLEDevice, adv_data: AdvertisementData):
            if found.done():
                return
            if adv_data.local_name != local_name:
                if device.address not in ignored:
                    ignored.add(device.address)
                    logger.info("Ignoring BLE device %s (%s), continuing to scan", adv_data.local_name, device.address)
                return
            found.set_result(device)

        scanner = BleakScanner(detection_callback=callback)
        try:
            await scanner.start()
        except BleakError as e:
            raise AdapterUnavailableError(f"Cannot start BLE scanning: {e}") from e

        try:
            device = await found
        finally:
            await scanner.stop()

        logger.info("Found %s (%s)", local_name, device.address)
        return device

    async def connect(self, device: BLEDevice) -> BleakClient:
        client = BleakClient(device)
        await client.connect()
        return client

    async def discover_services(self, client: BleakClient, uuid: str) -> list[BleakGATTService]:
        return [service for service in client.services if service.uuid == uuid]

    async def discover_characteristics(self, service: BleakGATTService, uuid: str) -> list[BleakGATTCharacteristic]:
        return [char for char in service.characteristics if char.uuid == uuid]

    async def read(self, client: BleakClient, characteristic: BleakGATTCharacteristic) -> bytes:
        return bytes(await client.read_gatt_char(characteristic))

    async def disconnect(self, client: BleakClient) -> None:
        await client.disconnect()
