"""Load device-type contracts and check test compatibility against them."""

import json
import logging
from pathlib import Path

import jsonschema
from pydantic import BaseModel, ConfigDict, Field

from resinos.autotest.errors import UnknownDeviceTypeError

logger = logging.getLogger(__name__)

CONTRACTS_DIR = Path(__file__).parent / "device_types"


class DeviceTypeContract(BaseModel):
    """Capabilities of a device type."""

    model_config = ConfigDict(frozen=True)

    slug: str = Field(..., description="Device type identifier")
    type: str = Field(default="hw.device-type", description="Contract type")
    name: str = Field(..., description="Display name")
    data: dict[str, object] = Field(
        default_factory=dict, description="Device type capabilities"
    )

    def satisfies(self, schema: dict[str, object]) -> bool:
        """Check whether this contract validates against a JSON schema."""
        validator = jsonschema.Draft7Validator(schema)
        return validator.is_valid(self.model_dump(mode="json"))


def load_device_type_contract(
    device_type: str, contracts_dir: Path | None = None
) -> DeviceTypeContract:
    """Load the contract for a device type.

    Args:
        device_type: Device type slug (e.g., "raspberrypi3")
        contracts_dir: Directory holding <slug>.json files, defaults to the
            contracts bundled with the package

    Returns:
        Parsed device-type contract

    Raises:
        UnknownDeviceTypeError: If no contract exists for the device type
        ValueError: If the contract file is invalid

    """
    directory = contracts_dir or CONTRACTS_DIR
    contract_file = directory / f"{device_type}.json"

    if not contract_file.exists():
        raise UnknownDeviceTypeError(
            f"No device type contract for {device_type} in {directory}"
        )

    try:
        with contract_file.open() as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {contract_file}: {e}") from e

    try:
        contract = DeviceTypeContract.model_validate(data)
    except Exception as e:
        raise ValueError(f"Invalid device type contract in {contract_file}: {e}") from e

    if contract.slug != device_type:
        raise ValueError(
            f"Contract {contract_file} declares slug {contract.slug}, "
            f"expected {device_type}"
        )

    logger.info(f"Loaded device type contract: {contract.name} ({contract.slug})")
    return contract


def list_device_types(contracts_dir: Path | None = None) -> list[str]:
    """List device type slugs that have a contract."""
    directory = contracts_dir or CONTRACTS_DIR
    return sorted(path.stem for path in directory.glob("*.json"))
