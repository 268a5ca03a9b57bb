"""Map device types to the worker variant that drives them."""

from resinos.autotest.errors import UnknownDeviceTypeError
from resinos.autotest.workers.base import DeviceWorker
from resinos.autotest.workers.manual import ManualWorker
from resinos.autotest.workers.qemu import QemuWorker

WORKER_VARIANTS: dict[str, type[DeviceWorker]] = {
    "qemux86": QemuWorker,
    "qemux86-64": QemuWorker,
    "raspberrypi3": ManualWorker,
    "raspberrypi4-64": ManualWorker,
    "ts4900": ManualWorker,
    "intel-nuc": ManualWorker,
    "beaglebone-black": ManualWorker,
}


def select_worker_variant(device_type: str) -> type[DeviceWorker]:
    """Return the worker class for a device type.

    Raises:
        UnknownDeviceTypeError: If no worker is registered for the device type

    """
    try:
        return WORKER_VARIANTS[device_type]
    except KeyError:
        raise UnknownDeviceTypeError(
            f"No worker for device type: {device_type}. "
            f"Must be one of: {', '.join(sorted(WORKER_VARIANTS))}"
        ) from None


def register_worker_variant(device_type: str, worker: type[DeviceWorker]) -> None:
    """Register the worker class for a new device type."""
    if device_type in WORKER_VARIANTS:
        raise ValueError(f"Worker already registered for {device_type}")
    WORKER_VARIANTS[device_type] = worker
