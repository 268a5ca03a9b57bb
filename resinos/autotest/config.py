"""Load run options from a file or from the data store."""

from pathlib import Path

import yaml
from pydantic import ValidationError

from resinos.autotest.models.options import RunOptions
from resinos.autotest.store import DataStore


def load_options_file(path: Path) -> RunOptions:
    """Load run options from a YAML or JSON file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file is invalid or doesn't match the schema

    """
    if not path.exists():
        raise FileNotFoundError(f"Options file not found: {path}")

    try:
        with path.open() as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        raise ValueError(f"Empty options file: {path}")

    try:
        return RunOptions.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid options in {path}: {e}") from e


def load_store_options(store: DataStore) -> RunOptions:
    """Load run options saved under the "options" key of a data store.

    Raises:
        ValueError: If the store has no options or they are invalid

    """
    data = store.get("options")
    if data is None:
        raise ValueError(f"No options found in data store {store.path}")

    try:
        return RunOptions.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid options in data store {store.path}: {e}") from e
