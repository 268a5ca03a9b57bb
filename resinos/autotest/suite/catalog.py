"""Catalog of acceptance test cases, in execution order."""

from resinos.autotest.models.test_case import TestCaseDescriptor
from resinos.autotest.suite.device import (
    device_online,
    device_reports_os_version,
    device_uptime_after_boot,
)
from resinos.autotest.suite.manual import (
    has_capability,
    manual_test,
    slug_matching,
    ts4900_provisioning_variants,
)

CATALOG: tuple[TestCaseDescriptor, ...] = (
    *ts4900_provisioning_variants(),
    TestCaseDescriptor(
        title="${options.deviceType}: Bluetooth test",
        interactive=True,
        compatibility=has_capability("connectivity", "bluetooth"),
        run=manual_test(
            do=[
                "Put a bluetooth device in pairing mode near the {device_type}",
                "Open the host OS terminal of {uuid} from {dashboard_url}",
                "Run: bluetoothctl scan on",
            ],
            assertions=["The bluetooth device is listed in the scan results"],
        ),
    ),
    TestCaseDescriptor(
        title="${options.deviceType}: Device online",
        run=device_online,
        timeout=120,
    ),
    TestCaseDescriptor(
        title="${options.deviceType}: Device reports OS version",
        run=device_reports_os_version,
        timeout=120,
    ),
    TestCaseDescriptor(
        title="${options.deviceType}: HDMI output",
        interactive=True,
        compatibility=has_capability("hdmi"),
        run=manual_test(
            do=["Connect a monitor to the HDMI port of the {device_type}"],
            assertions=["The monitor shows the boot splash screen or a console"],
        ),
    ),
    TestCaseDescriptor(
        title="${options.deviceType}: Identification LED",
        interactive=True,
        compatibility=has_capability("led"),
        run=manual_test(
            do=["Press the Identify button for {uuid} on {dashboard_url}"],
            assertions=["The device's identification LED blinks"],
        ),
    ),
    TestCaseDescriptor(
        title="${options.deviceType}: Device stays up",
        run=device_uptime_after_boot,
        timeout=300,
    ),
    TestCaseDescriptor(
        title="${options.deviceType}: Serial console on UART0",
        interactive=True,
        compatibility=slug_matching("^raspberrypi"),
        run=manual_test(
            do=[
                "Connect a USB serial adapter to GPIO14/GPIO15 of the {device_type}",
                "Open the adapter at 115200 baud and reboot the device",
            ],
            assertions=["Kernel boot messages appear on the serial console"],
        ),
    ),
)
