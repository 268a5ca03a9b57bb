"""Shared fakes for provisioning tests."""

from pathlib import Path

import pytest

from resinos.autotest.contracts import DeviceTypeContract, load_device_type_contract
from resinos.autotest.errors import FlashError, PowerError
from resinos.autotest.fleet.base import FleetClient
from resinos.autotest.models.fleet import DevicePlaceholder, SSHKey
from resinos.autotest.models.options import RunOptions
from resinos.autotest.store import DataStore
from resinos.autotest.workers.base import DeviceWorker


class FakeFleetClient(FleetClient):
    """In-memory fleet service recording every call."""

    def __init__(
        self,
        online_after: int = 1,
        idle_after: int = 1,
        uptime: float = 125.5,
        image: bytes = b"\x00resinos" * 4096,
    ) -> None:
        """Initialize fake with poll counts needed to converge."""
        self.online_after = online_after
        self.idle_after = idle_after
        self.uptime = uptime
        self.image = image
        self.online_polls = 0
        self.status_polls = 0
        self.online = True
        self.os_version = "Resin OS 2.0.6+rev3.prod"
        self.calls: list[str] = []
        self.environment: dict[str, str] = {}

    async def login_with_token(self, token: str) -> None:
        """Record login."""
        self.calls.append("login_with_token")

    async def create_application(self, name: str, device_type: str) -> int:
        """Record application creation."""
        self.calls.append("create_application")
        return 1

    async def create_ssh_key(self, label: str, directory: Path) -> SSHKey:
        """Write a dummy key."""
        self.calls.append("create_ssh_key")
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / "id_rsa"
        path.write_text("PRIVATE KEY")
        return SSHKey(
            private_key="PRIVATE KEY", public_key="ssh-rsa AAAA", private_key_path=path
        )

    async def create_environment_variable(
        self, application: str, name: str, value: str
    ) -> None:
        """Record an environment variable."""
        self.calls.append("create_environment_variable")
        self.environment[name] = value

    def generate_device_identity(self) -> str:
        """Return a fixed identity."""
        return "a" * 62

    async def register_device_placeholder(self, application: str) -> DevicePlaceholder:
        """Record placeholder registration."""
        self.calls.append("register_device_placeholder")
        return DevicePlaceholder(uuid="abc123", device_api_key="key456")

    async def get_device_os_configuration(
        self, uuid: str, api_key: str, options: dict[str, object]
    ) -> dict[str, object]:
        """Return a configuration echoing its inputs."""
        self.calls.append("get_device_os_configuration")
        return {"uuid": uuid, "deviceApiKey": api_key, **options}

    async def fetch_os_image(
        self, device_type: str, version: str, destination: Path
    ) -> None:
        """Write the fake image."""
        self.calls.append("fetch_os_image")
        destination.write_bytes(self.image)

    async def is_device_online(self, uuid: str) -> bool:
        """Report online once enough polls happened."""
        self.online_polls += 1
        return self.online and self.online_polls >= self.online_after

    async def get_device_status(self, uuid: str) -> str:
        """Report Idle once enough polls happened."""
        self.status_polls += 1
        return "Idle" if self.status_polls >= self.idle_after else "Starting"

    async def get_device_host_os_version(self, uuid: str) -> str:
        """Return the configured OS version."""
        return self.os_version

    async def get_email(self) -> str:
        """Return a fixed email."""
        return "tester@example.com"

    async def get_dashboard_url(self, uuid: str) -> str:
        """Return a dashboard URL."""
        return f"https://dashboard.resin.test/devices/{uuid}/summary"

    async def ssh_host_os(
        self, command: str, uuid: str, private_key_path: Path
    ) -> str:
        """Answer /proc/uptime."""
        self.calls.append(f"ssh_host_os:{command}")
        reading = f"{self.uptime} 400.10\n"
        self.uptime += 1.0
        return reading


class FakeWorker(DeviceWorker):
    """Worker that records lifecycle calls instead of touching hardware."""

    instances: list["FakeWorker"] = []
    fail_flash = False
    fail_power_on = False

    def __init__(self, *args: object, **kwargs: object) -> None:
        """Initialize worker and register the instance."""
        super().__init__(*args, **kwargs)  # type: ignore[arg-type]
        self.power_off_calls = 0
        self.flashed: Path | None = None
        type(self).instances.append(self)

    async def _prepare(self) -> None:
        pass

    async def _flash(self, image: Path) -> None:
        if self.fail_flash:
            raise FlashError("write target unavailable")
        self.flashed = image

    async def _power_on(self) -> None:
        if self.fail_power_on:
            raise PowerError("relay stuck")

    async def _power_off(self) -> None:
        pass

    async def power_off(self) -> None:
        """Count public power off calls."""
        self.power_off_calls += 1
        await super().power_off()


@pytest.fixture
def fake_fleet() -> FakeFleetClient:
    """Create fake fleet client."""
    return FakeFleetClient()


@pytest.fixture
def fake_worker_class() -> type[FakeWorker]:
    """Fake worker class with a fresh instance registry."""

    class Worker(FakeWorker):
        instances: list[FakeWorker] = []

    return Worker


@pytest.fixture
def run_options(tmp_path: Path) -> RunOptions:
    """Create run options for an emulated device."""
    return RunOptions.model_validate(
        {
            "deviceType": "qemux86-64",
            "resinOSVersion": "2.0.6+rev3.prod",
            "applicationName": "resinos-tests",
            "apiKey": "token123",
            "sshKeyLabel": "resinOSTests",
            "tmpdir": str(tmp_path / "work"),
            "interactiveTests": False,
            "pollInterval": 0.01,
            "onlineTimeout": 1,
            "supervisorTimeout": 1,
        }
    )


@pytest.fixture
def qemu_contract() -> DeviceTypeContract:
    """Load the bundled qemux86-64 contract."""
    return load_device_type_contract("qemux86-64")


@pytest.fixture
def data_store(tmp_path: Path) -> DataStore:
    """Create an empty data store."""
    return DataStore("resinos-tests", tmp_path)
