"""Abstract base class for device workers."""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path

from resinos.autotest.contracts import DeviceTypeContract
from resinos.autotest.errors import FlashError, WorkerStateError
from resinos.autotest.image import OSImage
from resinos.autotest.models.options import RunOptions

logger = logging.getLogger(__name__)


class WorkerState(str, Enum):
    """Lifecycle of a device worker."""

    CREATED = "created"
    READY = "ready"
    FLASHED = "flashed"
    POWERED_ON = "powered_on"
    POWERED_OFF = "powered_off"


class DeviceWorker(ABC):
    """Abstract base for workers that flash and power a device.

    Subclasses implement the _prepare, _flash, _power_on and _power_off hooks;
    this class enforces the state machine around them.
    """

    def __init__(
        self, name: str, contract: DeviceTypeContract, options: RunOptions
    ) -> None:
        """Initialize worker for a device type."""
        self.name = name
        self.contract = contract
        self.options = options
        self._state = WorkerState.CREATED

    @property
    def state(self) -> WorkerState:
        """Current lifecycle state."""
        return self._state

    def _require(self, expected: WorkerState, operation: str) -> None:
        if self._state is not expected:
            raise WorkerStateError(
                f"{self.name}: cannot {operation} in state {self._state.value}, "
                f"expected {expected.value}"
            )

    @abstractmethod
    async def _prepare(self) -> None:
        """Bring the backing resource to a state where it accepts an image."""

    @abstractmethod
    async def _flash(self, image: Path) -> None:
        """Write the image to the device's storage target."""

    @abstractmethod
    async def _power_on(self) -> None:
        """Start the device."""

    @abstractmethod
    async def _power_off(self) -> None:
        """Stop the device and release the backing resource."""

    async def prepare(self) -> None:
        """Prepare the worker. A no-op when already ready."""
        if self._state is WorkerState.READY:
            return
        self._require(WorkerState.CREATED, "prepare")

        logger.info(f"{self.name}: preparing {self.contract.slug} worker")
        await self._prepare()
        self._state = WorkerState.READY

    async def flash(self, image: OSImage) -> None:
        """Write an OS image to the device.

        Raises:
            FlashError: If the image is missing or cannot be written
            WorkerStateError: If the worker is not ready

        """
        self._require(WorkerState.READY, "flash")

        if image.image is None or not image.image.is_file():
            raise FlashError(f"{self.name}: invalid OS image {image.image}")

        logger.info(f"{self.name}: flashing {image.image}")
        try:
            await self._flash(image.image)
        except OSError as e:
            raise FlashError(f"{self.name}: failed to flash {image.image}: {e}") from e
        self._state = WorkerState.FLASHED

    async def power_on(self) -> None:
        """Power the device on."""
        self._require(WorkerState.FLASHED, "power on")

        logger.info(f"{self.name}: powering on")
        await self._power_on()
        self._state = WorkerState.POWERED_ON

    async def power_off(self) -> None:
        """Power the device off. Valid from any state and idempotent."""
        if self._state is WorkerState.POWERED_OFF:
            logger.debug(f"{self.name}: already powered off")
            return

        logger.info(f"{self.name}: powering off (was {self._state.value})")
        try:
            await self._power_off()
        finally:
            self._state = WorkerState.POWERED_OFF
