"""HID descriptor and PIP3-over-HID report layouts."""

from __future__ import annotations

import struct
from dataclasses import astuple, dataclass
from enum import IntEnum
from typing import Union

HID_MAX_INPUT_REPORT_SIZE = 0xFFFF
HID_MAX_OUTPUT_REPORT_SIZE = 0xFFFF

HID_INPUT_REPORT_ID_BYTE_INDEX = 0
HID_INPUT_PAYLOAD_LEN_LSB_INDEX = 1
HID_INPUT_PAYLOAD_LEN_MSB_INDEX = 2


class HidReportId(IntEnum):
    """Report IDs used by the touch controller."""

    ANY = 0x00
    FINGER = 0x01
    STYLUS = 0x02
    FEATURE = 0x03
    COMMAND = 0x04
    VENDOR_FINGER = 0x41
    VENDOR_STYLUS = 0x42
    SOLICITED_RESPONSE = 0x44
    UNSOLICITED_RESPONSE = 0x45


def _report_id(value: int) -> Union[HidReportId, int]:
    try:
        return HidReportId(value)
    except ValueError:
        return value


def _check(name: str, value: int, limit: int) -> int:
    value = int(value)
    if not 0 <= value <= limit:
        raise ValueError(f"{name} must be 0-{limit}, got {value}")
    return value


_DESCRIPTOR = struct.Struct("<13HI")


@dataclass
class HidDescriptor:
    """The 30-byte HID-over-I2C descriptor, little-endian on the wire."""

    hid_desc_len: int = 0
    bcd_version: int = 0
    rpt_desc_len: int = 0
    rpt_desc_register: int = 0
    input_register: int = 0
    max_input_len: int = 0
    output_register: int = 0
    max_output_len: int = 0
    cmd_register: int = 0
    data_register: int = 0
    vendor_id: int = 0
    product_id: int = 0
    version_id: int = 0
    reserved: int = 0

    SIZE = _DESCRIPTOR.size

    @classmethod
    def from_bytes(cls, data: bytes) -> "HidDescriptor":
        if len(data) < _DESCRIPTOR.size:
            raise ValueError(
                f"HID descriptor needs {_DESCRIPTOR.size} bytes, got {len(data)}"
            )
        return cls(*_DESCRIPTOR.unpack_from(data))

    def to_bytes(self) -> bytes:
        try:
            return _DESCRIPTOR.pack(*astuple(self))
        except struct.error as exc:
            raise ValueError(f"HID descriptor field out of range: {exc}") from exc


_OUTPUT_HEADER = struct.Struct("<BHBB")
_INPUT_HEADER = struct.Struct("<BBHBB")


@dataclass
class Pip3OutputCommand:
    """A PIP3 command wrapped in a HID output report."""

    report_id: int
    payload_len: int
    cmd_id: int
    seq: int = 0
    tag: bool = False
    more_data: bool = False
    resp: bool = False
    data: bytes = b""

    def to_bytes(self) -> bytes:
        flags = (
            _check("seq", self.seq, 0x07)
            | int(bool(self.tag)) << 3
            | int(bool(self.more_data)) << 4
        )
        command = _check("cmd_id", self.cmd_id, 0x7F) | int(bool(self.resp)) << 7
        header = _OUTPUT_HEADER.pack(
            _check("report_id", self.report_id, 0xFF),
            _check("payload_len", self.payload_len, 0xFFFF),
            flags,
            command,
        )
        return header + bytes(self.data)


@dataclass
class Pip3InputResponse:
    """A PIP3 response carried in a HID input report."""

    report_id: Union[HidReportId, int]
    more_reports: bool
    first_report: bool
    payload_len: int
    seq: int
    tag: bool
    more_data: bool
    cmd_id: int
    resp: bool
    data: bytes

    HEADER_SIZE = _INPUT_HEADER.size

    @classmethod
    def from_bytes(cls, data: bytes) -> "Pip3InputResponse":
        if len(data) < _INPUT_HEADER.size:
            raise ValueError(
                f"PIP3 input report needs at least {_INPUT_HEADER.size} bytes, "
                f"got {len(data)}"
            )
        report_id, report_flags, payload_len, flags, command = (
            _INPUT_HEADER.unpack_from(data)
        )
        return cls(
            report_id=_report_id(report_id),
            more_reports=bool(report_flags & 0x01),
            first_report=bool(report_flags & 0x02),
            payload_len=payload_len,
            seq=flags & 0x07,
            tag=bool(flags & 0x08),
            more_data=bool(flags & 0x10),
            cmd_id=command & 0x7F,
            resp=bool(command & 0x80),
            data=bytes(data[_INPUT_HEADER.size :]),
        )