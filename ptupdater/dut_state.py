"""States and execution modes of the device under test."""

from __future__ import annotations

from enum import IntEnum

from .log import VerboseLevel, output

BOOT_2_SCANNING_POLLING_INTERVAL_MS = 10
BOOT_2_SCANNING_MAX_WAIT_MS = 2000
BOOT_2_SCANNING_INFO_MESSAGE_INTERVAL_MS = 1000


class DutState(IntEnum):
    """Operating state of the device under test."""

    INVALID = 0
    TP_FW_BOOT = 1
    TP_FW_SCANNING = 2
    TP_FW_DEEP_SLEEP = 3
    TP_FW_TEST = 4
    TP_FW_DEEP_STANDBY = 5
    TP_FW_PROGRAMMER_IMAGE = 6
    TP_FW_SYS_MODE_ANY = 7
    TP_BL = 8
    AUX_MCU_FW_UTILITY_IMAGE = 9
    AUX_MCU_FW_PROGRAMMER_IMAGE = 10
    DEFAULT = 11

    @property
    def label(self) -> str:
        return _STATE_LABELS[self]


_STATE_LABELS = {
    DutState.INVALID: "Invalid DUT State",
    DutState.TP_FW_BOOT: "Touch Processor, Firmware Exec, Boot Mode",
    DutState.TP_FW_SCANNING: "Touch Processor, Firmware Exec, Scanning Mode",
    DutState.TP_FW_DEEP_SLEEP: "Touch Processor, Firmware Exec, Deep Sleep Mode",
    DutState.TP_FW_TEST: "Touch Processor, Firmware Exec, Test Mode",
    DutState.TP_FW_DEEP_STANDBY: "Touch Processor, Firmware Exec, Deep Standby Mode",
    DutState.TP_FW_PROGRAMMER_IMAGE: (
        "Touch Processor, Firmware Exec, Programmer Image Mode"
    ),
    DutState.TP_FW_SYS_MODE_ANY: "Touch Processor, Firmware Exec (any System Mode)",
    DutState.TP_BL: "Touch Processor, Bootloader Exec",
    DutState.AUX_MCU_FW_UTILITY_IMAGE: "AUX MCU, Firmware Exec",
    DutState.AUX_MCU_FW_PROGRAMMER_IMAGE: (
        "AUX MCU, Firmware Exec, Programmer Image Mode"
    ),
    DutState.DEFAULT: "Default DUT State (not ready for communication)",
}


class DutExec(IntEnum):
    """Which image the device is executing."""

    INVALID = 0
    BL = 1
    FW = 2

    @property
    def label(self) -> str:
        return _EXEC_LABELS[self]


_EXEC_LABELS = {
    DutExec.INVALID: "Invalid DUT Exec",
    DutExec.BL: "Bootloader Exec",
    DutExec.FW: "Firmware Exec",
}

_aux_mcu_active_duration_seconds = 0


def set_aux_mcu_active_duration_seconds(duration: int) -> None:
    """Set how long the AUX MCU stays active once switched to (0-255 s)."""
    global _aux_mcu_active_duration_seconds
    output(VerboseLevel.DEBUG, "set_aux_mcu_active_duration_seconds: Starting.\n")
    if not 0 <= duration <= 0xFF:
        raise ValueError(f"duration must be 0-255 seconds, got {duration}")
    _aux_mcu_active_duration_seconds = int(duration)


def get_aux_mcu_active_duration_seconds() -> int:
    """Return how long the AUX MCU stays active once switched to."""
    output(VerboseLevel.DEBUG, "get_aux_mcu_active_duration_seconds: Starting.\n")
    return _aux_mcu_active_duration_seconds