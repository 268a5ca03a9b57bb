"""CLI entry point for resinOS provisioning tests."""

import asyncio
import json
import logging
import sys
from pathlib import Path

import typer

from resinos.autotest.config import load_options_file, load_store_options
from resinos.autotest.contracts import load_device_type_contract
from resinos.autotest.errors import UnknownDeviceTypeError
from resinos.autotest.fleet.base import FleetClient
from resinos.autotest.fleet.resinio import ResinioClient
from resinos.autotest.models.fleet import ResinioConfig
from resinos.autotest.models.options import RunOptions
from resinos.autotest.orchestrator import ProvisioningOrchestrator
from resinos.autotest.store import DataStore

# Configure logging - force reconfiguration
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stderr,
    force=True,  # Force reconfiguration even if already set up
)
logger = logging.getLogger(__name__)

app = typer.Typer()


@app.command()
def main(
    data_store: str = typer.Option(
        "resinos-tests", envvar="DATA_STORE", help="Data store name"
    ),
    data_store_path: Path = typer.Option(  # noqa: B008
        Path("."), envvar="DATA_STORE_PATH", help="Directory holding the data store"
    ),
    config: Path | None = typer.Option(  # noqa: B008
        None, help="YAML or JSON options file, used instead of the stored options"
    ),
    contracts_dir: Path | None = typer.Option(  # noqa: B008
        None, help="Directory of device type contracts"
    ),
    fail_on_test_failure: bool = typer.Option(
        False, help="Exit with an error code when a test fails"
    ),
) -> None:
    """Provision a device with resinOS and run acceptance tests on it."""
    logger.info("=" * 80)
    logger.info("resinOS Provisioning Tests - Starting")
    logger.info("=" * 80)

    store = DataStore(data_store, data_store_path)
    logger.info(f"Data store: {store.path}")

    try:
        options = load_options_file(config) if config else load_store_options(store)
        contract = load_device_type_contract(options.device_type, contracts_dir)
    except (FileNotFoundError, ValueError, UnknownDeviceTypeError) as e:
        logger.error(f"Invalid configuration: {e}")
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    logger.info(f"Device type: {options.device_type}")
    logger.info(f"OS version: {options.resin_os_version}")
    logger.info(f"Application: {options.application_name}")
    logger.info(f"Interactive tests: {options.interactive_tests}")

    orchestrator = ProvisioningOrchestrator(
        options, contract, _create_fleet_client(options), store
    )

    try:
        results = asyncio.run(orchestrator.run())
    except Exception as e:
        logger.exception("Provisioning run failed")
        typer.echo(f"Error running tests: {e}", err=True)
        raise typer.Exit(code=1)

    metrics = orchestrator.results
    logger.info("=" * 80)
    logger.info("Provisioning Metrics:")
    logger.info("=" * 80)
    logger.info(f"Provision time: {metrics.format_provision_time()}")
    logger.info(f"Image size: {metrics.format_image_size()}")

    logger.info("=" * 80)
    logger.info("Test Results Summary:")
    logger.info("=" * 80)
    for result in results:
        if result.status == "success":
            logger.info(f"✓ {result.title} ({result.duration:.2f}s)")
        else:
            logger.error(f"✗ {result.title}: {result.status}")
            if result.message:  # pragma: no cover
                logger.error(f"  Message: {result.message}")

    output = {
        "total": len(results),
        "passed": sum(1 for r in results if r.status == "success"),
        "failed": sum(1 for r in results if r.status == "failure"),
        "timeouts": sum(1 for r in results if r.status == "timeout"),
        "metrics": metrics.model_dump(mode="json", by_alias=True),
        "results": [r.model_dump(mode="json") for r in results],
    }

    typer.echo(json.dumps(output, indent=2))

    failures = [r for r in results if r.status != "success"]
    if failures:
        logger.error(f"Tests failed: {len(failures)}/{len(results)}")
        if fail_on_test_failure:
            raise typer.Exit(code=1)


def _create_fleet_client(options: RunOptions) -> FleetClient:
    """Create the fleet client for the configured API."""
    return ResinioClient(
        ResinioConfig(api_url=options.resin_url, image_url=options.resin_staging_url)
    )


if __name__ == "__main__":  # pragma: no cover
    app()
