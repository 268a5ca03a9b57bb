"""Models for provisioning metrics and test outcomes."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class Results(BaseModel):
    """Provenance metrics persisted at the end of every run."""

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    author: str | None = Field(default=None)
    device_type: str = Field(..., alias="deviceType")
    provision_time: float | None = Field(
        default=None, alias="provisionTime", description="Boot to ready, in seconds"
    )
    image_size: int | None = Field(
        default=None, alias="imageSize", description="Image size in bytes"
    )
    resin_os_version: str = Field(..., alias="resinOSVersion")
    email: str | None = Field(default=None, description="Fleet session email")

    def record_metrics(
        self, *, provision_time: float, image_size: int, email: str
    ) -> None:
        """Record setup metrics. Metrics are write-once."""
        if self.provision_time is not None or self.image_size is not None:
            raise ValueError("Metrics have already been recorded")

        self.provision_time = provision_time
        self.image_size = image_size
        self.email = email

    def format_provision_time(self) -> str | None:
        """Render provision time as "Xm Ys"."""
        if self.provision_time is None:
            return None
        minutes, seconds = divmod(int(self.provision_time), 60)
        return f"{minutes}m {seconds}s"

    def format_image_size(self) -> str | None:
        """Render image size in megabytes."""
        if self.image_size is None:
            return None
        return f"{self.image_size / 1048576.0:.2f} Mb"


class TestCaseResult(BaseModel):
    """Result of a single test case execution."""

    __test__ = False

    title: str = Field(..., description="Rendered test title")
    status: Literal["success", "failure", "timeout"] = Field(
        ..., description="Test execution status"
    )
    duration: float = Field(..., description="Execution time in seconds")
    message: str | None = Field(
        default=None, description="Failure message or status details"
    )
