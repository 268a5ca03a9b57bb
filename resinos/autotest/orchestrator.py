"""Provisioning orchestrator: setup, test suite and guaranteed teardown."""

import asyncio
import logging
from collections.abc import Sequence

from resinos.autotest.context import RunContext
from resinos.autotest.contracts import DeviceTypeContract
from resinos.autotest.errors import OrchestratorError, WaitTimeoutError, WorkerError
from resinos.autotest.fleet.base import FleetClient
from resinos.autotest.image import OSImage
from resinos.autotest.models.options import RunOptions
from resinos.autotest.models.results import Results, TestCaseResult
from resinos.autotest.models.test_case import SelectedTest, TestCaseDescriptor
from resinos.autotest.polling import wait_until
from resinos.autotest.registry import select_tests
from resinos.autotest.store import DataStore
from resinos.autotest.suite.catalog import CATALOG
from resinos.autotest.workers.registry import select_worker_variant

logger = logging.getLogger(__name__)

SUPERVISOR_IDLE = "Idle"
DELTA_VARIABLE = "RESIN_SUPERVISOR_DELTA"
WORKER_NAME = "main worker"


class ProvisioningOrchestrator:
    """Provisions one device, runs the selected tests against it, tears down."""

    def __init__(
        self,
        options: RunOptions,
        contract: DeviceTypeContract,
        fleet: FleetClient,
        store: DataStore,
        catalog: Sequence[TestCaseDescriptor] = CATALOG,
    ) -> None:
        """Initialize orchestrator with its collaborators."""
        self.options = options
        self.contract = contract
        self.fleet = fleet
        self.store = store
        self.catalog = catalog
        self.context = RunContext(device_type=contract)
        self.results = Results(
            author=options.author,
            device_type=options.device_type,
            resin_os_version=options.resin_os_version,
        )
        self._setup_started = False
        self._torn_down = False

    async def run(self) -> list[TestCaseResult]:
        """Set up the device, run applicable tests and always tear down."""
        try:
            await self.setup()
            selected = select_tests(self.catalog, self.contract, self.options)
            return await self.run_tests(selected)
        finally:
            await self.teardown()

    async def setup(self) -> None:
        """Provision the device and record setup metrics.

        Raises:
            OrchestratorError: If any setup phase fails

        """
        if self._setup_started:
            raise OrchestratorError("Setup can only run once")
        self._setup_started = True

        options = self.options
        fleet = self.fleet

        logger.info("Logging in to fleet service")
        await fleet.login_with_token(options.api_key)

        logger.info(
            f"Creating application: {options.application_name} "
            f"with device type {options.device_type}"
        )
        await fleet.create_application(options.application_name, options.device_type)

        self.context.key = await fleet.create_ssh_key(
            options.ssh_key_label, options.tmpdir / "ssh"
        )
        logger.info(f"Added SSH key with label: {options.ssh_key_label}")

        if options.delta:
            logger.info("Enabling deltas")
            await fleet.create_environment_variable(
                options.application_name, DELTA_VARIABLE, options.delta
            )

        logger.info(f"Creating device placeholder on {options.application_name}")
        placeholder = await fleet.register_device_placeholder(options.application_name)

        logger.info(f"Getting OS configuration for device {placeholder.uuid}")
        configuration = await fleet.get_device_os_configuration(
            placeholder.uuid,
            placeholder.device_api_key,
            {"version": options.resin_os_version, **options.configuration},
        )

        self.context.os = OSImage(
            fleet,
            options.tmpdir,
            options.device_type,
            options.resin_os_version,
            configuration,
        )
        await self.context.os.fetch()

        worker_class = select_worker_variant(options.device_type)
        logger.info(f"Using {worker_class.__name__} for {options.device_type}")
        self.context.worker = worker_class(WORKER_NAME, self.contract, options)

        await self.context.worker.prepare()
        await self.context.worker.flash(self.context.os)
        await self.context.worker.power_on()

        logger.info("Waiting while device boots")
        await wait_until(
            lambda: fleet.is_device_online(placeholder.uuid),
            interval=options.poll_interval,
            timeout=options.online_timeout,
            description=f"device {placeholder.uuid} online",
        )
        self.context.uuid = placeholder.uuid

        logger.info("Waiting while supervisor starts")

        async def supervisor_idle() -> bool:
            status = await fleet.get_device_status(placeholder.uuid)
            return status == SUPERVISOR_IDLE

        await wait_until(
            supervisor_idle,
            interval=options.poll_interval,
            timeout=options.supervisor_timeout,
            description=f"device {placeholder.uuid} supervisor idle",
        )

        logger.info("Gathering metrics")
        uptime = await fleet.get_device_uptime(
            placeholder.uuid, self.context.key.private_key_path
        )
        self.results.record_metrics(
            provision_time=uptime,
            image_size=self.context.os.size,
            email=await fleet.get_email(),
        )

        self.context.dashboard_url = await fleet.get_dashboard_url(placeholder.uuid)
        logger.info(f"Device ready: {self.context.dashboard_url}")

    async def run_tests(self, selected: Sequence[SelectedTest]) -> list[TestCaseResult]:
        """Run selected tests one after another.

        Failures of a test are recorded in its result, including fleet
        service errors. Worker errors raised from a test abort the remaining
        tests.
        """
        logger.info(f"Running {len(selected)} tests")
        results: list[TestCaseResult] = []
        for test in selected:
            result = await self._run_single_test(test)
            logger.info(f"Test result: {result.title} = {result.status}")
            results.append(result)
        return results

    async def _run_single_test(self, test: SelectedTest) -> TestCaseResult:
        logger.info(f"Starting test: {test.title}")
        loop = asyncio.get_running_loop()
        start_time = loop.time()

        status = "success"
        message = None
        deadline = asyncio.timeout(test.descriptor.timeout)
        try:
            async with deadline:
                await test.descriptor.run(self.context, self.options, self.fleet)
        except WaitTimeoutError as e:
            status, message = "timeout", str(e)
        except WorkerError:
            logger.exception(f"Fatal error during test: {test.title}")
            raise
        except TimeoutError as e:
            if deadline.expired():
                status = "timeout"
                message = (
                    f"Test did not complete within {test.descriptor.timeout} seconds"
                )
            else:
                logger.error(f"Test failed: {test.title}: timed out", exc_info=e)
                status, message = "failure", str(e) or type(e).__name__
        except Exception as e:
            logger.error(
                f"Test failed: {test.title}: {type(e).__name__}: {e}", exc_info=e
            )
            status, message = "failure", str(e) or type(e).__name__

        return TestCaseResult(
            title=test.title,
            status=status,  # type: ignore[arg-type]
            duration=loop.time() - start_time,
            message=message,
        )

    async def teardown(self) -> None:
        """Power the device off and persist results. Runs once."""
        if self._torn_down:
            return
        self._torn_down = True

        logger.info("Tearing down")
        try:
            if self.context.worker is not None:
                await self.context.worker.power_off()
            else:
                logger.info("No worker was created, nothing to power off")
        finally:
            self.store.set(
                "results", self.results.model_dump(mode="json", by_alias=True)
            )
