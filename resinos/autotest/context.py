"""Shared state of a provisioning run."""

from pydantic import BaseModel, ConfigDict

from resinos.autotest.contracts import DeviceTypeContract
from resinos.autotest.image import OSImage
from resinos.autotest.models.fleet import SSHKey
from resinos.autotest.workers.base import DeviceWorker


class RunContext(BaseModel):
    """State filled in by setup phases and read by test cases.

    Fields are write-once: a field that holds a value cannot be reassigned.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, validate_assignment=True)

    device_type: DeviceTypeContract
    uuid: str | None = None
    key: SSHKey | None = None
    dashboard_url: str | None = None
    os: OSImage | None = None
    worker: DeviceWorker | None = None

    def __setattr__(self, name: str, value: object) -> None:
        """Reject reassignment of fields that are already set."""
        if name in type(self).model_fields and getattr(self, name) is not None:
            raise ValueError(f"RunContext.{name} is already set")
        super().__setattr__(name, value)
