"""Transport channels that carry HID reports to and from the device."""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import IntEnum
from typing import ClassVar, Optional

from .fileutil import PollStatus
from .hid import HidDescriptor


class ChannelType(IntEnum):
    """Kind of transport used to reach the device."""

    NONE = 0
    HIDRAW = 1
    I2CDEV = 2
    TTDL = 3

    @property
    def label(self) -> str:
        return _CHANNEL_TYPE_NAMES[self]


_CHANNEL_TYPE_NAMES = {
    ChannelType.NONE: "No channel type selected",
    ChannelType.HIDRAW: "HIDRAW",
    ChannelType.I2CDEV: "I2C-DEV",
    ChannelType.TTDL: "TTDL",
}


class Channel(ABC):
    """A report transport: set up, exchange reports, tear down."""

    type: ClassVar[ChannelType] = ChannelType.NONE

    @property
    def name(self) -> str:
        """Human-readable name of the channel type."""
        return self.type.label

    @abstractmethod
    def setup(self, report_id: int) -> None:
        """Start receiving input reports with ``report_id`` (0 for any)."""

    @abstractmethod
    def get_hid_descriptor(self) -> HidDescriptor:
        """Return the device's HID descriptor."""

    @abstractmethod
    def send_report(self, report: bytes) -> None:
        """Send one output report to the device."""

    @abstractmethod
    def get_report(
        self, timeout: Optional[float] = None
    ) -> tuple[PollStatus, Optional[bytes]]:
        """Return the oldest received report and the status of the read.

        ``timeout`` is in seconds; ``None`` waits without limit.
        """

    @abstractmethod
    def teardown(self) -> None:
        """Stop receiving reports and release the transport."""