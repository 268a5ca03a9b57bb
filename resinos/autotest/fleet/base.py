"""Abstract base class for fleet management service clients."""

from abc import ABC, abstractmethod
from pathlib import Path

from resinos.autotest.errors import FleetServiceError
from resinos.autotest.models.fleet import DevicePlaceholder, SSHKey


class FleetClient(ABC):
    """Abstract base for fleet service clients.

    Every operation is a suspension point and may raise FleetServiceError.
    """

    @abstractmethod
    async def login_with_token(self, token: str) -> None:
        """Authenticate the session with an API token."""

    @abstractmethod
    async def create_application(self, name: str, device_type: str) -> int:
        """Create an application, or reuse an existing one with that name.

        Returns:
            Application identifier

        """

    @abstractmethod
    async def create_ssh_key(self, label: str, directory: Path) -> SSHKey:
        """Generate a keypair in directory and register its public key."""

    @abstractmethod
    async def create_environment_variable(
        self, application: str, name: str, value: str
    ) -> None:
        """Set an application-wide environment variable."""

    @abstractmethod
    def generate_device_identity(self) -> str:
        """Generate a unique device key suitable for a uuid or API key."""

    @abstractmethod
    async def register_device_placeholder(self, application: str) -> DevicePlaceholder:
        """Register a device identity on an application."""

    @abstractmethod
    async def get_device_os_configuration(
        self, uuid: str, api_key: str, options: dict[str, object]
    ) -> dict[str, object]:
        """Get the OS configuration (config.json) for a registered device."""

    @abstractmethod
    async def fetch_os_image(
        self, device_type: str, version: str, destination: Path
    ) -> None:
        """Download an OS image for a device type to destination."""

    @abstractmethod
    async def is_device_online(self, uuid: str) -> bool:
        """Check whether the fleet sees the device online."""

    @abstractmethod
    async def get_device_status(self, uuid: str) -> str:
        """Get the supervisor status reported by the device (e.g., "Idle")."""

    @abstractmethod
    async def get_device_host_os_version(self, uuid: str) -> str:
        """Get the host OS version reported by the device."""

    @abstractmethod
    async def get_email(self) -> str:
        """Get the email of the authenticated user."""

    @abstractmethod
    async def get_dashboard_url(self, uuid: str) -> str:
        """Get the dashboard URL of a device."""

    @abstractmethod
    async def ssh_host_os(
        self, command: str, uuid: str, private_key_path: Path
    ) -> str:
        """Run a command on the device host OS and return its stdout."""

    async def get_device_uptime(self, uuid: str, private_key_path: Path) -> float:
        """Read the device uptime in seconds.

        Raises:
            FleetServiceError: If /proc/uptime output cannot be parsed

        """
        output = await self.ssh_host_os("cat /proc/uptime", uuid, private_key_path)
        try:
            return float(output.split()[0])
        except (IndexError, ValueError) as e:
            raise FleetServiceError(
                f"Unexpected /proc/uptime output from {uuid}: {output!r}"
            ) from e
