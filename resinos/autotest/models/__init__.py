"""Data models for run options, fleet objects, test cases and results."""

from resinos.autotest.models.fleet import DevicePlaceholder, ResinioConfig, SSHKey
from resinos.autotest.models.options import (
    PowerSwitchOptions,
    QemuOptions,
    RunOptions,
)
from resinos.autotest.models.results import Results, TestCaseResult
from resinos.autotest.models.test_case import SelectedTest, TestCaseDescriptor

__all__ = [
    "DevicePlaceholder",
    "PowerSwitchOptions",
    "QemuOptions",
    "ResinioConfig",
    "Results",
    "RunOptions",
    "SSHKey",
    "SelectedTest",
    "TestCaseDescriptor",
    "TestCaseResult",
]
