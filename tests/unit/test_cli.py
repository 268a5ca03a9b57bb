"""Tests for CLI entry point."""

import json
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from typer.testing import CliRunner

from resinos.autotest.cli import _create_fleet_client, app
from resinos.autotest.errors import FlashError
from resinos.autotest.fleet.resinio import ResinioClient
from resinos.autotest.models.options import RunOptions
from resinos.autotest.models.results import Results, TestCaseResult
from resinos.autotest.store import DataStore

runner = CliRunner()

ORCHESTRATOR_PATCH = "resinos.autotest.cli.ProvisioningOrchestrator"

OPTIONS = {
    "deviceType": "qemux86-64",
    "resinOSVersion": "2.0.6+rev3.prod",
    "applicationName": "resinos-tests",
    "apiKey": "token123",
    "tmpdir": "/tmp/resinos",
}


@pytest.fixture
def store_path(tmp_path: Path) -> Path:
    """Create a data store holding run options."""
    DataStore("resinos-tests", tmp_path).set("options", OPTIONS)
    return tmp_path


def mock_orchestrator(results: list[TestCaseResult]) -> Any:
    """Create an orchestrator mock returning results."""
    metrics = Results(
        device_type="qemux86-64",
        resin_os_version="2.0.6+rev3.prod",
    )
    metrics.record_metrics(provision_time=125.5, image_size=2048, email="t@x.io")

    orchestrator = MagicMock()
    orchestrator.run = AsyncMock(return_value=results)
    orchestrator.results = metrics
    return orchestrator


def test_main_success_with_results(store_path: Path) -> None:
    """Main outputs results and metrics and exits successfully."""
    results = [
        TestCaseResult(title="qemux86-64: Device online", status="success", duration=1.0)
    ]
    orchestrator = mock_orchestrator(results)

    with patch(ORCHESTRATOR_PATCH, return_value=orchestrator) as mock_class:
        result = runner.invoke(app, ["--data-store-path", str(store_path)])

    assert result.exit_code == 0
    output = json.loads(result.stdout)
    assert output["total"] == 1
    assert output["passed"] == 1
    assert output["failed"] == 0
    assert output["timeouts"] == 0
    assert output["metrics"]["provisionTime"] == 125.5
    assert output["metrics"]["imageSize"] == 2048
    assert output["results"][0]["title"] == "qemux86-64: Device online"

    options, contract, fleet, store = mock_class.call_args.args
    assert options.device_type == "qemux86-64"
    assert contract.slug == "qemux86-64"
    assert isinstance(fleet, ResinioClient)
    assert store.path == store_path / "resinos-tests.json"
    orchestrator.run.assert_awaited_once()


def test_main_test_failure_exits_zero(store_path: Path) -> None:
    """Test failures are reported without failing the command by default."""
    results = [
        TestCaseResult(title="ok", status="success", duration=1.0),
        TestCaseResult(title="bad", status="failure", duration=1.0, message="boom"),
        TestCaseResult(title="slow", status="timeout", duration=120.0),
    ]

    with patch(ORCHESTRATOR_PATCH, return_value=mock_orchestrator(results)):
        result = runner.invoke(app, ["--data-store-path", str(store_path)])

    assert result.exit_code == 0
    output = json.loads(result.stdout)
    assert output["passed"] == 1
    assert output["failed"] == 1
    assert output["timeouts"] == 1


def test_main_fail_on_test_failure(store_path: Path) -> None:
    """--fail-on-test-failure turns failed tests into a failing exit code."""
    results = [TestCaseResult(title="bad", status="failure", duration=1.0)]

    with patch(ORCHESTRATOR_PATCH, return_value=mock_orchestrator(results)):
        result = runner.invoke(
            app, ["--data-store-path", str(store_path), "--fail-on-test-failure"]
        )

    assert result.exit_code == 1


def test_main_run_error(store_path: Path) -> None:
    """Fatal orchestrator errors exit with an error code."""
    orchestrator = mock_orchestrator([])
    orchestrator.run = AsyncMock(side_effect=FlashError("write target unavailable"))

    with patch(ORCHESTRATOR_PATCH, return_value=orchestrator):
        result = runner.invoke(app, ["--data-store-path", str(store_path)])

    assert result.exit_code == 1
    assert "write target unavailable" in result.output


def test_main_data_store_from_env(tmp_path: Path) -> None:
    """The data store name and location come from the environment."""
    DataStore("nightly", tmp_path).set("options", OPTIONS)

    with patch(ORCHESTRATOR_PATCH, return_value=mock_orchestrator([])):
        result = runner.invoke(
            app, [], env={"DATA_STORE": "nightly", "DATA_STORE_PATH": str(tmp_path)}
        )

    assert result.exit_code == 0


def test_main_missing_options(tmp_path: Path) -> None:
    """An empty data store exits with an error."""
    result = runner.invoke(app, ["--data-store-path", str(tmp_path)])

    assert result.exit_code == 1
    assert "No options found" in result.output


def test_main_options_file(tmp_path: Path) -> None:
    """--config loads options from a YAML file."""
    config = tmp_path / "options.yml"
    config.write_text(
        "\n".join(f"{key}: {value}" for key, value in OPTIONS.items()) + "\n"
    )

    with patch(ORCHESTRATOR_PATCH, return_value=mock_orchestrator([])) as mock_class:
        result = runner.invoke(
            app, ["--data-store-path", str(tmp_path), "--config", str(config)]
        )

    assert result.exit_code == 0
    assert mock_class.call_args.args[0].application_name == "resinos-tests"


def test_main_options_file_not_found(tmp_path: Path) -> None:
    """A missing --config file exits with an error."""
    result = runner.invoke(app, ["--config", str(tmp_path / "missing.yml")])

    assert result.exit_code == 1
    assert "not found" in result.output


def test_main_unknown_device_type(tmp_path: Path) -> None:
    """Device types without a contract exit with an error."""
    DataStore("resinos-tests", tmp_path).set(
        "options", {**OPTIONS, "deviceType": "unsupported-board"}
    )

    result = runner.invoke(app, ["--data-store-path", str(tmp_path)])

    assert result.exit_code == 1
    assert "unsupported-board" in result.output


def test_main_contracts_dir(store_path: Path, tmp_path: Path) -> None:
    """--contracts-dir loads contracts from another directory."""
    contracts = tmp_path / "contracts"
    contracts.mkdir()
    (contracts / "qemux86-64.json").write_text(
        json.dumps({"slug": "qemux86-64", "name": "Custom QEMU", "data": {}})
    )

    with patch(ORCHESTRATOR_PATCH, return_value=mock_orchestrator([])) as mock_class:
        result = runner.invoke(
            app,
            ["--data-store-path", str(store_path), "--contracts-dir", str(contracts)],
        )

    assert result.exit_code == 0
    assert mock_class.call_args.args[1].name == "Custom QEMU"


def test_create_fleet_client() -> None:
    """The fleet client targets the configured API endpoints."""
    options = RunOptions.model_validate(
        {
            **OPTIONS,
            "resinUrl": "https://api.resinstaging.io",
            "resinStagingUrl": "https://img.resinstaging.io",
        }
    )

    client = _create_fleet_client(options)

    assert isinstance(client, ResinioClient)
    assert client.base_url == "https://api.resinstaging.io"
    assert client.image_url == "https://img.resinstaging.io"
