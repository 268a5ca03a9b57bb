"""Physical worker that writes the image to a real storage device."""

import asyncio
import logging
import os
import shutil
from pathlib import Path

from resinos.autotest.contracts import DeviceTypeContract
from resinos.autotest.errors import FlashError, WorkerError
from resinos.autotest.models.options import RunOptions
from resinos.autotest.workers.base import DeviceWorker
from resinos.autotest.workers.power import PowerSwitch, create_power_switch

logger = logging.getLogger(__name__)

_WRITE_CHUNK_SIZE = 1024 * 1024


class ManualWorker(DeviceWorker):
    """Worker for physical hardware.

    The image is written to the storage device given by the `disk` option,
    and power is switched through a relay or by the operator.
    """

    def __init__(
        self,
        name: str,
        contract: DeviceTypeContract,
        options: RunOptions,
        power_switch: PowerSwitch | None = None,
    ) -> None:
        """Initialize worker with its storage device and power switch."""
        super().__init__(name, contract, options)
        self.disk = options.disk
        self.power_switch = power_switch or create_power_switch(
            options.power_switch, contract.name
        )
        self._powered = False

    async def _prepare(self) -> None:
        if self.disk is None:
            raise WorkerError(f"{self.name}: the disk option is required")
        if not self.disk.exists():
            raise WorkerError(f"{self.name}: storage device {self.disk} not found")
        if not os.access(self.disk, os.W_OK):
            raise WorkerError(f"{self.name}: storage device {self.disk} not writable")

    async def _flash(self, image: Path) -> None:
        if self.disk is None:  # pragma: no cover
            raise FlashError(f"{self.name}: no storage device")

        logger.info(f"{self.name}: writing {image} to {self.disk}")
        await asyncio.to_thread(_write_image, image, self.disk)
        logger.info(f"{self.name}: write to {self.disk} complete")

    async def _power_on(self) -> None:
        # A failed on-command may still have closed the relay
        self._powered = True
        await self.power_switch.on()

    async def _power_off(self) -> None:
        if not self._powered:
            return
        await self.power_switch.off()
        self._powered = False


def _write_image(image: Path, disk: Path) -> None:
    """Copy image onto disk and flush it to the device."""
    with image.open("rb") as src, disk.open("r+b") as dst:
        shutil.copyfileobj(src, dst, length=_WRITE_CHUNK_SIZE)
        dst.flush()
        os.fsync(dst.fileno())
