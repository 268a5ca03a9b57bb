"""OS image fetched for the device under test."""

import asyncio
import gzip
import json
import logging
import os
import shutil
from pathlib import Path

from resinos.autotest.errors import FleetServiceError, ImageFetchError
from resinos.autotest.fleet.base import FleetClient

logger = logging.getLogger(__name__)

_GZIP_MAGIC = b"\x1f\x8b"


class OSImage:
    """A configured OS image stored under the run's scratch directory."""

    def __init__(
        self,
        fleet: FleetClient,
        tmpdir: Path,
        device_type: str,
        version: str,
        configuration: dict[str, object],
    ) -> None:
        """Initialize image with its download parameters and configuration."""
        self.fleet = fleet
        self.tmpdir = tmpdir
        self.device_type = device_type
        self.version = version
        self.configuration = configuration
        self.image: Path | None = None
        self.configuration_path: Path | None = None

    async def fetch(self) -> Path:
        """Download the image and write its configuration alongside.

        Returns:
            Path of the raw (uncompressed) image

        Raises:
            ImageFetchError: If the download or unpacking fails

        """
        self.tmpdir.mkdir(parents=True, exist_ok=True)
        image = self.tmpdir / f"resinos-{self.device_type}-{self.version}.img"
        download = image.with_suffix(".download")

        logger.info(f"Fetching OS image {self.device_type} {self.version}")
        try:
            await self.fleet.fetch_os_image(self.device_type, self.version, download)
        except FleetServiceError as e:
            raise ImageFetchError(f"Failed to fetch OS image: {e}") from e

        try:
            await asyncio.to_thread(_unpack, download, image)
        except (OSError, EOFError) as e:
            raise ImageFetchError(f"Failed to unpack OS image {download}: {e}") from e

        self.configuration_path = self.tmpdir / "config.json"
        self.configuration_path.write_text(json.dumps(self.configuration, indent=2))

        self.image = image
        logger.info(f"OS image ready at {image} ({self.size} bytes)")
        return image

    @property
    def size(self) -> int:
        """Size in bytes of the file the image path resolves to."""
        if self.image is None:
            raise ImageFetchError("OS image has not been fetched")
        return os.path.getsize(os.path.realpath(self.image))


def _unpack(source: Path, destination: Path) -> None:
    """Move source to destination, decompressing gzip payloads."""
    with source.open("rb") as f:
        compressed = f.read(2) == _GZIP_MAGIC

    if not compressed:
        source.replace(destination)
        return

    with gzip.open(source, "rb") as src, destination.open("wb") as dst:
        shutil.copyfileobj(src, dst, length=1024 * 1024)
    source.unlink()
