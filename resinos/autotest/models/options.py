"""Run configuration models."""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class QemuOptions(BaseModel):
    """Settings for the emulated worker's virtual machine."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    binary: str | None = Field(
        default=None, description="QEMU executable, derived from arch when unset"
    )
    memory: int = Field(default=512, description="Guest memory in MiB")
    cpus: int = Field(default=2, description="Number of guest CPUs")
    kvm: bool = Field(default=False, description="Enable KVM acceleration")


class PowerSwitchOptions(BaseModel):
    """Relay commands for the physical worker.

    When both commands are unset the operator is asked to switch power.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    on_command: list[str] | None = Field(default=None, alias="onCommand")
    off_command: list[str] | None = Field(default=None, alias="offCommand")


class RunOptions(BaseModel):
    """Options for a single provisioning run, read-only once loaded."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    device_type: str = Field(..., alias="deviceType", description="Device type slug")
    resin_os_version: str = Field(
        ..., alias="resinOSVersion", description="OS version to provision"
    )
    application_name: str = Field(..., alias="applicationName")
    api_key: str = Field(..., alias="apiKey", description="Fleet API token")
    ssh_key_label: str = Field(default="resinOSTests", alias="sshKeyLabel")
    delta: str | None = Field(
        default=None, description="Value for RESIN_SUPERVISOR_DELTA when set"
    )
    configuration: dict[str, object] = Field(
        default_factory=dict, description="Overrides for the device OS config"
    )
    tmpdir: Path = Field(..., description="Scratch directory for images and keys")
    disk: Path | None = Field(
        default=None, description="Storage device path for physical workers"
    )
    interactive_tests: bool = Field(default=False, alias="interactiveTests")
    resin_url: str = Field(default="https://api.resin.io", alias="resinUrl")
    resin_staging_url: str | None = Field(
        default=None,
        alias="resinStagingUrl",
        description="Alternative API used for image downloads",
    )
    author: str | None = Field(default=None)
    poll_interval: float = Field(default=10, alias="pollInterval")
    online_timeout: float = Field(default=1800, alias="onlineTimeout")
    supervisor_timeout: float = Field(default=1800, alias="supervisorTimeout")
    qemu: QemuOptions = Field(default_factory=QemuOptions)
    power_switch: PowerSwitchOptions = Field(
        default_factory=PowerSwitchOptions, alias="powerSwitch"
    )
