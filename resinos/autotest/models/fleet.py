"""Models returned by fleet service clients."""

from pathlib import Path

from pydantic import BaseModel, Field


class SSHKey(BaseModel):
    """SSH keypair registered with the fleet service."""

    private_key: str = Field(..., description="PEM encoded private key")
    public_key: str = Field(..., description="OpenSSH public key line")
    private_key_path: Path = Field(..., description="Private key location on disk")


class DevicePlaceholder(BaseModel):
    """Device identity registered before the device exists."""

    uuid: str
    device_api_key: str


class ResinioConfig(BaseModel):
    """Configuration for the resin.io fleet client."""

    api_url: str = Field(
        default="https://api.resin.io", description="resin.io API base URL"
    )
    image_url: str | None = Field(
        default=None, description="API base URL for OS image downloads"
    )
    dashboard_url: str | None = Field(
        default=None, description="Dashboard base URL, derived from api_url when unset"
    )
    ssh_host: str = Field(
        default="ssh.resindevice.io", description="SSH proxy for device host OS access"
    )
    ssh_port: int = Field(default=22, description="SSH proxy port")
    ssh_timeout: float = Field(default=120, description="SSH command timeout in seconds")
    request_timeout: float = Field(
        default=60, description="Total timeout for one API request in seconds"
    )
    download_read_timeout: float = Field(
        default=120,
        description="Maximum idle time between OS image download reads in seconds",
    )
