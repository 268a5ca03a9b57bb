"""Emulated worker running the OS image in a QEMU virtual machine."""

import asyncio
import logging
import shutil
from pathlib import Path
from typing import BinaryIO

from resinos.autotest.contracts import DeviceTypeContract
from resinos.autotest.errors import PowerError, WorkerError
from resinos.autotest.models.options import RunOptions
from resinos.autotest.workers.base import DeviceWorker

logger = logging.getLogger(__name__)

QEMU_BINARIES = {
    "amd64": "qemu-system-x86_64",
    "i386": "qemu-system-i386",
}

# Seconds the VM must stay up after spawning to count as started
_STARTUP_GRACE = 2.0
# Seconds to wait for the VM to exit after SIGTERM before killing it
_SHUTDOWN_GRACE = 10.0


class QemuWorker(DeviceWorker):
    """Worker backed by a local QEMU process bound to the image file."""

    def __init__(
        self, name: str, contract: DeviceTypeContract, options: RunOptions
    ) -> None:
        """Initialize worker and resolve the QEMU binary for the arch."""
        super().__init__(name, contract, options)
        self.binary = options.qemu.binary or QEMU_BINARIES.get(
            str(contract.data.get("arch"))
        )
        self.image: Path | None = None
        self.process: asyncio.subprocess.Process | None = None
        self.log_path = options.tmpdir / "qemu.log"
        self._log: BinaryIO | None = None

    def command(self) -> list[str]:
        """Build the QEMU command line."""
        if self.binary is None or self.image is None:
            raise WorkerError(f"{self.name}: QEMU command requested before flashing")

        qemu = self.options.qemu
        args = [
            self.binary,
            "-drive",
            f"file={self.image},format=raw,if=virtio",
            "-m",
            str(qemu.memory),
            "-smp",
            str(qemu.cpus),
            "-net",
            "nic,model=virtio",
            "-net",
            "user",
            "-nographic",
        ]
        if qemu.kvm:
            args.append("-enable-kvm")
        return args

    async def _prepare(self) -> None:
        if self.binary is None:
            raise WorkerError(
                f"{self.name}: no QEMU binary for arch {self.contract.data.get('arch')}"
            )
        if shutil.which(self.binary) is None:
            raise WorkerError(f"{self.name}: {self.binary} not found on PATH")

    async def _flash(self, image: Path) -> None:
        self.image = image

    async def _power_on(self) -> None:
        args = self.command()
        logger.info(f"{self.name}: starting {' '.join(args)}")
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        self._log = self.log_path.open("wb")
        self.process = await asyncio.create_subprocess_exec(
            *args,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=self._log,
        )

        try:
            await asyncio.wait_for(self.process.wait(), timeout=_STARTUP_GRACE)
        except TimeoutError:
            logger.info(
                f"{self.name}: VM running (pid {self.process.pid}), log {self.log_path}"
            )
            return

        self._close_log()
        stderr = self.log_path.read_text(errors="replace").strip()
        raise PowerError(
            f"{self.name}: QEMU exited with code {self.process.returncode}: {stderr}"
        )

    def _close_log(self) -> None:
        if self._log is not None:
            self._log.close()
            self._log = None

    async def _power_off(self) -> None:
        process = self.process
        if process is None or process.returncode is not None:
            self._close_log()
            return

        process.terminate()
        try:
            await asyncio.wait_for(process.wait(), timeout=_SHUTDOWN_GRACE)
        except TimeoutError:
            logger.warning(f"{self.name}: VM did not stop, killing it")
            process.kill()
            await process.wait()
        finally:
            self._close_log()
