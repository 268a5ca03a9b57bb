"""Power control for physical devices."""

import asyncio
import logging
from abc import ABC, abstractmethod

from resinos.autotest.errors import PowerError
from resinos.autotest.interaction import wait_for_operator
from resinos.autotest.models.options import PowerSwitchOptions

logger = logging.getLogger(__name__)


class PowerSwitch(ABC):
    """Abstract base for switching a physical device's power."""

    @abstractmethod
    async def on(self) -> None:
        """Connect power."""

    @abstractmethod
    async def off(self) -> None:
        """Cut power."""


class OperatorPowerSwitch(PowerSwitch):
    """Ask the operator to switch power by hand."""

    def __init__(self, device_name: str) -> None:
        """Initialize switch for a named device."""
        self.device_name = device_name

    async def on(self) -> None:
        """Ask the operator to plug in the storage and power on."""
        await wait_for_operator(
            f"Insert the flashed storage into the {self.device_name} and power it "
            "on, then press Enter"
        )

    async def off(self) -> None:
        """Ask the operator to power off."""
        await wait_for_operator(
            f"Power off the {self.device_name}, then press Enter"
        )


class CommandPowerSwitch(PowerSwitch):
    """Drive an external relay through configured commands."""

    def __init__(self, on_command: list[str], off_command: list[str]) -> None:
        """Initialize switch with argv lists for each transition."""
        self.on_command = on_command
        self.off_command = off_command

    async def _run(self, command: list[str]) -> None:
        logger.info(f"Running power command: {' '.join(command)}")
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise PowerError(f"Failed to run {command[0]}: {e}") from e

        _, stderr = await process.communicate()
        if process.returncode != 0:
            raise PowerError(
                f"Power command {' '.join(command)} failed "
                f"({process.returncode}): {stderr.decode().strip()}"
            )

    async def on(self) -> None:
        """Run the relay's on command."""
        await self._run(self.on_command)

    async def off(self) -> None:
        """Run the relay's off command."""
        await self._run(self.off_command)


def create_power_switch(options: PowerSwitchOptions, device_name: str) -> PowerSwitch:
    """Create a relay switch when commands are configured, else ask the operator."""
    if options.on_command and options.off_command:
        return CommandPowerSwitch(options.on_command, options.off_command)
    if options.on_command or options.off_command:
        raise ValueError("powerSwitch needs both onCommand and offCommand")
    return OperatorPowerSwitch(device_name)
