"""Detection of the kernel driver that talks to the device under test."""

from __future__ import annotations

import os
from enum import IntEnum
from typing import Optional

from .log import VerboseLevel, output

KERNEL_DRIVER_PATH = "/sys/bus/i2c/drivers"


class DutDriver(IntEnum):
    """Kernel driver in charge of the device under test."""

    TTDL = 0
    I2C_HID = 1
    ERROR = 2

    @property
    def label(self) -> str:
        return _DRIVER_NAMES[self]

    @property
    def adapter_name(self) -> str:
        return _ADAPTER_NAMES[self]


_DRIVER_NAMES = {
    DutDriver.TTDL: "TTDL",
    DutDriver.I2C_HID: "I2C-HID Linux Driver",
    DutDriver.ERROR: "No valid DUT driver found",
}

_ADAPTER_NAMES = {
    DutDriver.TTDL: "pt_i2c_adapter",
    DutDriver.I2C_HID: "i2c_hid",
    DutDriver.ERROR: "",
}


class DriverDetector:
    """Finds the active driver by listing the kernel's I2C driver directory.

    A successful result is remembered; a failure to read the directory is
    reported as ``DutDriver.ERROR`` and not remembered.
    """

    def __init__(self, path: str = KERNEL_DRIVER_PATH) -> None:
        self.path = path
        self._driver: Optional[DutDriver] = None

    def detect(self) -> DutDriver:
        if self._driver is not None:
            output(
                VerboseLevel.DEBUG,
                f"Already determined that {self._driver.label} is active.\n",
            )
            return self._driver

        try:
            entries = os.listdir(self.path)
        except OSError as exc:
            output(
                VerboseLevel.ERROR,
                f'get_dut_driver: Failed to open "{self.path}". '
                f"{exc.strerror} [{exc.errno}].\n",
            )
            return DutDriver.ERROR

        found: Optional[DutDriver] = None
        for name in entries:
            output(VerboseLevel.DEBUG, f"{name} is found\n")
            if name.startswith(DutDriver.I2C_HID.adapter_name):
                found = DutDriver.I2C_HID
            elif name.startswith(DutDriver.TTDL.adapter_name):
                found = DutDriver.TTDL
            if found is not None:
                output(VerboseLevel.DEBUG, f"Using {found.label} to drive the DUT.\n")

        if found is None:
            found = DutDriver.I2C_HID
            output(
                VerboseLevel.DEBUG,
                f"No driver found, attempting to use {found.label} "
                "to drive the DUT.\n",
            )

        self._driver = found
        return found


_default_detector = DriverDetector()


def get_dut_driver() -> DutDriver:
    """Return the driver found under the system's I2C driver directory."""
    return _default_detector.detect()