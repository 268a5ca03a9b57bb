"""Error taxonomy for provisioning runs.

Fatal errors derive from OrchestratorError and abort the run (after
teardown). TestFailure is the only recoverable error and never leaves the
test harness.
"""


class OrchestratorError(Exception):
    """Base class for errors that abort a provisioning run."""


class SetupError(OrchestratorError):
    """A setup phase failed."""


class FleetServiceError(SetupError):
    """The fleet service rejected a request or could not be reached."""


class ImageFetchError(SetupError):
    """The OS image could not be downloaded or unpacked."""


class UnknownDeviceTypeError(SetupError):
    """No worker variant or contract exists for a device type."""


class WaitTimeoutError(SetupError, TimeoutError):
    """A polled condition did not become true in time."""


class WorkerError(OrchestratorError):
    """A device worker operation failed."""


class WorkerStateError(WorkerError):
    """A worker operation was called in the wrong state."""


class FlashError(WorkerError):
    """The OS image could not be written to the device."""


class PowerError(WorkerError):
    """The device could not be powered on or off."""


class TestFailure(Exception):
    """Raised by a test case body to report a failed check."""

    __test__ = False
