"""Select the test cases that apply to a run."""

import logging
import re
from collections.abc import Iterable

from resinos.autotest.contracts import DeviceTypeContract
from resinos.autotest.models.options import RunOptions
from resinos.autotest.models.test_case import SelectedTest, TestCaseDescriptor

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"\$\{\s*options\.(\w+)\s*\}")


def render_title(template: str, options: RunOptions) -> str:
    """Substitute ${options.<key>} placeholders in a title template.

    Keys may be given by alias (deviceType) or field name (device_type).

    Raises:
        KeyError: If a placeholder names an unknown option

    """
    values = {
        **options.model_dump(mode="json"),
        **options.model_dump(mode="json", by_alias=True),
    }

    def substitute(match: re.Match[str]) -> str:
        key = match.group(1)
        if key not in values:
            raise KeyError(f"Unknown option in title template {template!r}: {key}")
        return str(values[key])

    return _PLACEHOLDER.sub(substitute, template)


def is_applicable(
    descriptor: TestCaseDescriptor,
    contract: DeviceTypeContract,
    options: RunOptions,
) -> bool:
    """Check whether a test case applies to this device type and run."""
    if descriptor.interactive and not options.interactive_tests:
        logger.info(f"Skipping interactive test: {descriptor.title}")
        return False

    if descriptor.compatibility is not None and not contract.satisfies(
        descriptor.compatibility
    ):
        logger.info(f"Skipping test incompatible with {contract.slug}: {descriptor.title}")
        return False

    return True


def select_tests(
    catalog: Iterable[TestCaseDescriptor],
    contract: DeviceTypeContract,
    options: RunOptions,
) -> list[SelectedTest]:
    """Select applicable test cases in catalog order."""
    selected = [
        SelectedTest(title=render_title(descriptor.title, options), descriptor=descriptor)
        for descriptor in catalog
        if is_applicable(descriptor, contract, options)
    ]
    logger.info(f"Selected {len(selected)} tests for {contract.slug}")
    return selected
