"""Operator-driven test cases."""

from resinos.autotest.errors import TestFailure
from resinos.autotest.interaction import confirm, instruct
from resinos.autotest.models.test_case import TestCaseDescriptor, TestCaseRun

TS4900_CPU_CORES = ("single", "quad")


async def run_manual_test_case(do: list[str], assertions: list[str]) -> None:
    """Walk the operator through steps and ask whether the checks passed.

    Raises:
        TestFailure: If the operator reports a failed check

    """
    await instruct("Do the following:", do)
    await instruct("Then check that:", assertions)
    if not await confirm("Did every check pass?"):
        raise TestFailure("Operator reported a failed check")


def manual_test(do: list[str], assertions: list[str]) -> TestCaseRun:
    """Build a test entry point from operator steps.

    Steps may reference {uuid}, {dashboard_url} and {device_type}; they are
    filled in from the run context when the test runs.
    """

    async def run(context, options, fleet) -> None:  # type: ignore[no-untyped-def]
        values = {
            "uuid": context.uuid,
            "dashboard_url": context.dashboard_url,
            "device_type": options.device_type,
        }
        await run_manual_test_case(
            [step.format(**values) for step in do],
            [check.format(**values) for check in assertions],
        )

    return run


def slug_matching(pattern: str) -> dict[str, object]:
    """Compatibility schema matching device type slugs by regex."""
    return {
        "type": "object",
        "properties": {"slug": {"type": "string", "pattern": pattern}},
        "required": ["slug"],
    }


def has_capability(*path: str) -> dict[str, object]:
    """Compatibility schema requiring a true capability under contract data."""
    schema: dict[str, object] = {"const": True}
    for key in reversed(("data", *path)):
        schema = {"type": "object", "properties": {key: schema}, "required": [key]}
    return schema


def ts4900_provisioning_variants() -> list[TestCaseDescriptor]:
    """One provisioning test per TS4900 CPU core option."""
    return [
        TestCaseDescriptor(
            title=f"${{options.deviceType}}: Provision {cores} model",
            interactive=True,
            compatibility=slug_matching("^ts4900$"),
            run=manual_test(
                do=[
                    "Go into an existing ts4900 app or create a new one",
                    f'Select "{cores}" as "CPU Cores"',
                    'Select any "Network Connection" option',
                    f"Download the image and boot a {cores} core variant of TS4900",
                ],
                assertions=[
                    "The device should successfully get provisioned and appear "
                    "in dashboard"
                ],
            ),
        )
        for cores in TS4900_CPU_CORES
    ]
