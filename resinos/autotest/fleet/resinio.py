"""resin.io fleet service client."""

import asyncio
import logging
import secrets
import time
from collections.abc import Mapping
from pathlib import Path
from urllib.parse import urlsplit

import aiohttp

from resinos.autotest.errors import FleetServiceError, ImageFetchError
from resinos.autotest.fleet.base import FleetClient
from resinos.autotest.models.fleet import DevicePlaceholder, ResinioConfig, SSHKey

logger = logging.getLogger(__name__)

_DOWNLOAD_CHUNK_SIZE = 1024 * 1024


class ResinioClient(FleetClient):
    """Fleet client for the resin.io API."""

    def __init__(self, config: ResinioConfig) -> None:
        """Initialize resin.io client with configuration."""
        self.config = config
        self.base_url = config.api_url.rstrip("/")
        self.image_url = (config.image_url or config.api_url).rstrip("/")
        self._token: str | None = None
        self._user: Mapping[str, object] | None = None

    def _headers(self) -> dict[str, str]:
        if self._token is None:
            raise FleetServiceError("Not logged in to resin.io")
        return {"Authorization": f"Bearer {self._token}"}

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, str] | None = None,
        payload: Mapping[str, object] | None = None,
        expected: tuple[int, ...] = (200,),
    ) -> object:
        """Send an API request and return the decoded body."""
        url = f"{self.base_url}{path}"
        timeout = aiohttp.ClientTimeout(total=self.config.request_timeout)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.request(
                    method, url, headers=self._headers(), params=params, json=payload
                ) as response:
                    if response.status not in expected:
                        text = await response.text()
                        raise FleetServiceError(
                            f"{method} {path} failed: {response.status} {text}"
                        )
                    if response.content_type == "application/json":
                        return await response.json()
                    return await response.text()
        except TimeoutError as e:
            raise FleetServiceError(
                f"{method} {path} timed out after {self.config.request_timeout}s"
            ) from e
        except aiohttp.ClientError as e:
            raise FleetServiceError(f"{method} {path} failed: {e}") from e

    async def _query_one(
        self, resource: str, filter_expr: str, select: str
    ) -> Mapping[str, object]:
        """Fetch the first resource matching an OData filter."""
        data = await self._request(
            "GET",
            f"/v4/{resource}",
            params={"$filter": filter_expr, "$select": select},
        )
        items = data.get("d", []) if isinstance(data, dict) else []
        if not items:
            raise FleetServiceError(f"No {resource} matches {filter_expr}")
        item: Mapping[str, object] = items[0]
        return item

    async def _get_device(self, uuid: str, select: str) -> Mapping[str, object]:
        return await self._query_one("device", f"uuid eq '{uuid}'", select)

    async def _get_application(self, name: str) -> Mapping[str, object]:
        return await self._query_one(
            "application", f"app_name eq '{name}'", "id,app_name,device_type"
        )

    async def _whoami(self) -> Mapping[str, object]:
        if self._user is None:
            data = await self._request("GET", "/user/v1/whoami")
            if not isinstance(data, dict):
                raise FleetServiceError(f"Unexpected whoami response: {data!r}")
            self._user = data
        return self._user

    async def login_with_token(self, token: str) -> None:
        """Store the token and check it against the API."""
        self._token = token
        self._user = None
        user = await self._whoami()
        logger.info(f"Logged in to {self.base_url} as {user.get('username')}")

    async def create_application(self, name: str, device_type: str) -> int:
        """Create application, reusing one that already has this name."""
        data = await self._request(
            "GET",
            "/v4/application",
            params={"$filter": f"app_name eq '{name}'", "$select": "id,device_type"},
        )
        existing = data.get("d", []) if isinstance(data, dict) else []
        if existing:
            app = existing[0]
            if app.get("device_type") != device_type:
                raise FleetServiceError(
                    f"Application {name} exists with device type "
                    f"{app.get('device_type')}, expected {device_type}"
                )
            logger.info(f"Reusing application {name} ({app['id']})")
            return int(app["id"])

        created = await self._request(
            "POST",
            "/v4/application",
            payload={"app_name": name, "device_type": device_type},
            expected=(200, 201),
        )
        if not isinstance(created, dict) or "id" not in created:
            raise FleetServiceError(f"Unexpected application response: {created!r}")
        return int(created["id"])

    async def create_ssh_key(self, label: str, directory: Path) -> SSHKey:
        """Generate an RSA keypair with ssh-keygen and register it."""
        directory.mkdir(parents=True, exist_ok=True)
        private_key_path = directory / "id_rsa"
        private_key_path.unlink(missing_ok=True)
        private_key_path.with_suffix(".pub").unlink(missing_ok=True)

        process = await asyncio.create_subprocess_exec(
            "ssh-keygen",
            "-q",
            "-t",
            "rsa",
            "-b",
            "4096",
            "-N",
            "",
            "-C",
            label,
            "-f",
            str(private_key_path),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        _, stderr = await process.communicate()
        if process.returncode != 0:
            raise FleetServiceError(f"ssh-keygen failed: {stderr.decode().strip()}")

        key = SSHKey(
            private_key=private_key_path.read_text(),
            public_key=private_key_path.with_suffix(".pub").read_text().strip(),
            private_key_path=private_key_path,
        )

        await self._request(
            "POST",
            "/v4/user__has__public_key",
            payload={"title": label, "public_key": key.public_key},
            expected=(200, 201),
        )
        return key

    async def create_environment_variable(
        self, application: str, name: str, value: str
    ) -> None:
        """Create an application environment variable."""
        app = await self._get_application(application)
        await self._request(
            "POST",
            "/v4/application_environment_variable",
            payload={"application": app["id"], "name": name, "value": value},
            expected=(200, 201),
        )

    def generate_device_identity(self) -> str:
        """Generate a 62 character hex key."""
        return secrets.token_hex(31)

    async def register_device_placeholder(self, application: str) -> DevicePlaceholder:
        """Register a new device uuid and API key on the application."""
        app = await self._get_application(application)
        user = await self._whoami()
        placeholder = DevicePlaceholder(
            uuid=self.generate_device_identity(),
            device_api_key=self.generate_device_identity(),
        )

        await self._request(
            "POST",
            "/device/register",
            payload={
                "user": user.get("id"),
                "application": app["id"],
                "device_type": app["device_type"],
                "uuid": placeholder.uuid,
                "api_key": placeholder.device_api_key,
            },
            expected=(200, 201),
        )
        return placeholder

    async def get_device_os_configuration(
        self, uuid: str, api_key: str, options: dict[str, object]
    ) -> dict[str, object]:
        """Get the application config and bind it to the device identity."""
        device = await self._get_device(uuid, "id,device_type,belongs_to__application")
        application = device.get("belongs_to__application")
        app_id = (
            application.get("__id") if isinstance(application, dict) else application
        )

        configuration = await self._request(
            "POST",
            "/download-config",
            payload={
                "appId": app_id,
                "deviceType": device.get("device_type"),
                **options,
            },
        )
        if not isinstance(configuration, dict):
            raise FleetServiceError(f"Unexpected configuration: {configuration!r}")

        configuration["registered_at"] = int(time.time())
        configuration["deviceId"] = device["id"]
        configuration["uuid"] = uuid
        configuration["deviceApiKey"] = api_key
        return configuration

    async def fetch_os_image(
        self, device_type: str, version: str, destination: Path
    ) -> None:
        """Stream the OS image download to destination."""
        url = f"{self.image_url}/download"
        params = {"deviceType": device_type, "version": version}
        logger.info(f"Downloading {device_type} {version} from {url}")
        # Only a stalled download times out
        timeout = aiohttp.ClientTimeout(
            total=None, sock_read=self.config.download_read_timeout
        )

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(
                    url, headers=self._headers(), params=params
                ) as response:
                    if response.status != 200:
                        text = await response.text()
                        raise ImageFetchError(
                            f"Failed to download OS image: {response.status} {text}"
                        )

                    with destination.open("wb") as output:
                        async for chunk in response.content.iter_chunked(
                            _DOWNLOAD_CHUNK_SIZE
                        ):
                            output.write(chunk)
        except TimeoutError as e:
            raise ImageFetchError(
                "Failed to download OS image: no data received for "
                f"{self.config.download_read_timeout}s"
            ) from e
        except aiohttp.ClientError as e:
            raise ImageFetchError(f"Failed to download OS image: {e}") from e

    async def is_device_online(self, uuid: str) -> bool:
        """Check the device's online flag."""
        device = await self._get_device(uuid, "is_online")
        return bool(device.get("is_online"))

    async def get_device_status(self, uuid: str) -> str:
        """Get the device status string."""
        device = await self._get_device(uuid, "status")
        return str(device.get("status"))

    async def get_device_host_os_version(self, uuid: str) -> str:
        """Get the OS version reported by the device."""
        device = await self._get_device(uuid, "os_version")
        return str(device.get("os_version"))

    async def get_email(self) -> str:
        """Get the email of the logged in user."""
        user = await self._whoami()
        return str(user.get("email"))

    async def get_dashboard_url(self, uuid: str) -> str:
        """Build the device summary URL on the dashboard."""
        dashboard = self.config.dashboard_url
        if dashboard is None:
            parts = urlsplit(self.base_url)
            host = parts.netloc.removeprefix("api.")
            dashboard = f"{parts.scheme}://dashboard.{host}"
        return f"{dashboard.rstrip('/')}/devices/{uuid}/summary"

    async def ssh_host_os(
        self, command: str, uuid: str, private_key_path: Path
    ) -> str:
        """Run a command on the device host OS through the SSH proxy."""
        user = await self._whoami()
        process = await asyncio.create_subprocess_exec(
            "ssh",
            "-p",
            str(self.config.ssh_port),
            "-i",
            str(private_key_path),
            "-o",
            "StrictHostKeyChecking=no",
            "-o",
            "UserKnownHostsFile=/dev/null",
            "-o",
            "LogLevel=ERROR",
            f"{user.get('username')}@{self.config.ssh_host}",
            "host",
            uuid,
            command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(), timeout=self.config.ssh_timeout
            )
        except TimeoutError as e:
            process.kill()
            await process.wait()
            raise FleetServiceError(
                f"SSH command on {uuid} timed out after {self.config.ssh_timeout}s"
            ) from e

        if process.returncode != 0:
            raise FleetServiceError(
                f"SSH command on {uuid} failed ({process.returncode}): "
                f"{stderr.decode().strip()}"
            )
        return stdout.decode()
