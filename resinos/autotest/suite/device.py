"""Automated checks against the provisioned device."""

import asyncio

from resinos.autotest.context import RunContext
from resinos.autotest.errors import TestFailure
from resinos.autotest.fleet.base import FleetClient
from resinos.autotest.models.options import RunOptions


async def device_online(
    context: RunContext, options: RunOptions, fleet: FleetClient
) -> None:
    """The fleet reports the device online."""
    if context.uuid is None:
        raise TestFailure("Device has no uuid")
    if not await fleet.is_device_online(context.uuid):
        raise TestFailure(f"Device {context.uuid} is not online")


async def device_reports_os_version(
    context: RunContext, options: RunOptions, fleet: FleetClient
) -> None:
    """The device reports the OS version that was provisioned."""
    if context.uuid is None:
        raise TestFailure("Device has no uuid")

    reported = await fleet.get_device_host_os_version(context.uuid)
    expected = f"Resin OS {options.resin_os_version}"
    if reported != expected:
        raise TestFailure(f"Device reports {reported!r}, expected {expected!r}")


async def device_uptime_after_boot(
    context: RunContext, options: RunOptions, fleet: FleetClient
) -> None:
    """The device keeps running after provisioning without rebooting."""
    if context.uuid is None or context.key is None:
        raise TestFailure("Device has no uuid or SSH key")

    first = await fleet.get_device_uptime(context.uuid, context.key.private_key_path)
    await asyncio.sleep(options.poll_interval)
    second = await fleet.get_device_uptime(context.uuid, context.key.private_key_path)
    if second < first:
        raise TestFailure(f"Device rebooted: uptime went from {first}s to {second}s")
    if second == first:
        raise TestFailure(
            f"Device uptime stuck at {first}s after {options.poll_interval}s"
        )
