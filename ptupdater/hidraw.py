"""HID report channel over a Linux hidraw device node."""

from __future__ import annotations

import fcntl
import os
import re
import select
import struct
import threading
import time
from collections import deque
from dataclasses import replace
from enum import Enum
from typing import Optional

from .channel import Channel, ChannelType
from .fileutil import PollStatus
from .hid import (
    HID_INPUT_REPORT_ID_BYTE_INDEX,
    HID_MAX_INPUT_REPORT_SIZE,
    HID_MAX_OUTPUT_REPORT_SIZE,
    HidDescriptor,
    HidReportId,
)
from .log import VerboseLevel, output

HIDRAW0_NODE = "/dev/hidraw0"
REPORT_BUFFER_SIZE = 256
AVG_DELAY_BETWEEN_CMD_AND_RSP_MS = 5
HID_MAX_DESCRIPTOR_SIZE = 4096

_HIDRAW_NODE_NAME = re.compile(r"hidraw[0-9+]$")
_SUSPEND_SCAN_CMD = bytes([0x04, 0x06, 0x00, 0x08, 0x33, 0x2C, 0xC0])
_PING_CMD = bytes([0x04, 0x06, 0x00, 0x08, 0x00, 0x2A, 0xF0])
_DEVINFO = struct.Struct("=IHH")
_C_INT = struct.Struct("=i")


def _ior(nr: int, size: int) -> int:
    return (2 << 30) | (size << 16) | (ord("H") << 8) | nr


HIDIOCGRDESCSIZE = _ior(0x01, _C_INT.size)
HIDIOCGRDESC = _ior(0x02, _C_INT.size + HID_MAX_DESCRIPTOR_SIZE)
HIDIOCGRAWINFO = _ior(0x03, _DEVINFO.size)


class HidrawError(Exception):
    """Raised when the hidraw node cannot be opened, queried or written."""


class _ReaderStatus(Enum):
    NOT_STARTED = "not started"
    ACTIVE = "active"
    EXIT = "exit"


class ReportBuffer:
    """Thread-safe ring of received reports.

    Holds at most ``size - 1`` reports; pushing onto a full ring drops the
    oldest one.
    """

    def __init__(self, size: int = REPORT_BUFFER_SIZE) -> None:
        if size < 2:
            raise ValueError(f"report buffer size must be at least 2, got {size}")
        self.size = size
        self._reports: deque[bytes] = deque(maxlen=size - 1)
        self._lock = threading.Lock()

    def push(self, report: bytes) -> None:
        with self._lock:
            self._reports.append(bytes(report))

    def pop(self) -> bytes:
        """Remove and return the oldest report; raise IndexError if empty."""
        with self._lock:
            if not self._reports:
                raise IndexError("report buffer is empty")
            return self._reports.popleft()

    def clear(self) -> None:
        with self._lock:
            self._reports.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._reports)


def _sleep_ms(milliseconds: int) -> None:
    time.sleep(milliseconds / 1000)


def _open(node: str, flags: int) -> int:
    try:
        return os.open(node, flags)
    except OSError as exc:
        message = f"Failed to open {node}. {exc.strerror} [{exc.errno}]"
        output(VerboseLevel.ERROR, message + "\n")
        raise HidrawError(message) from exc


def _close_quietly(fd: Optional[int]) -> None:
    if fd is None:
        return
    try:
        os.close(fd)
    except OSError:
        pass


def _write_report(node: str, report: bytes) -> None:
    fd = _open(node, os.O_WRONLY)
    try:
        written = os.write(fd, report)
    except OSError as exc:
        raise HidrawError(
            f"Failed to write to {node}. {exc.strerror} [{exc.errno}]"
        ) from exc
    finally:
        os.close(fd)
    if written != len(report):
        raise HidrawError(
            f"Short write to {node}: {written} of {len(report)} bytes"
        )


def _report_descriptor_size(fd: int) -> int:
    buf = bytearray(_C_INT.size)
    fcntl.ioctl(fd, HIDIOCGRDESCSIZE, buf, True)
    return _C_INT.unpack(buf)[0]


def _device_ids(fd: int) -> tuple[int, int]:
    buf = bytearray(_DEVINFO.size)
    fcntl.ioctl(fd, HIDIOCGRAWINFO, buf, True)
    _, vendor, product = _DEVINFO.unpack(buf)
    return vendor, product


class HidrawChannel(Channel):
    """Exchanges HID reports through a hidraw node, reading on a thread.

    A ``hid_descriptor`` given here is used instead of querying the device.
    """

    type = ChannelType.HIDRAW

    def __init__(
        self,
        node: str = HIDRAW0_NODE,
        hid_descriptor: Optional[HidDescriptor] = None,
        buffer_size: int = REPORT_BUFFER_SIZE,
    ) -> None:
        output(VerboseLevel.INFO, f"Provided HIDRAW sysfs node: {node}.\n")
        self.node = node
        self._descriptor = replace(hid_descriptor) if hid_descriptor else None
        self._buffer = ReportBuffer(buffer_size)
        self._cond = threading.Condition()
        self._status = _ReaderStatus.NOT_STARTED
        self._final_status = PollStatus.GOT_DATA
        self._thread: Optional[threading.Thread] = None
        self._hid_fd: Optional[int] = None
        self._pipe: Optional[tuple[int, int]] = None
        self._stop = False
        self.input_report_size = 0
        self.output_report_size = 0

    def get_hid_descriptor(self) -> HidDescriptor:
        if self._descriptor is not None:
            output(VerboseLevel.DEBUG, "HID descriptor already read.\n")
            return replace(self._descriptor)

        fd = _open(self.node, os.O_RDWR | os.O_NONBLOCK)
        try:
            try:
                rpt_desc_size = _report_descriptor_size(fd)
            except OSError as exc:
                raise HidrawError(
                    f"Failed to read the Report Descriptor size from {self.node}. "
                    f"{exc.strerror} [{exc.errno}]"
                ) from exc
            max_input_len = self._max_input_len()
            max_output_len = self._max_output_len()
            try:
                vendor, product = _device_ids(fd)
            except OSError as exc:
                raise HidrawError(
                    f"Failed to read the raw device info from {self.node}. "
                    f"{exc.strerror} [{exc.errno}]"
                ) from exc
        finally:
            os.close(fd)

        self._descriptor = HidDescriptor(
            hid_desc_len=0x001E,
            bcd_version=0x0100,
            rpt_desc_len=rpt_desc_size & 0xFFFF,
            rpt_desc_register=0x0002,
            input_register=0x0003,
            max_input_len=max_input_len & 0xFFFF,
            output_register=0x0004,
            max_output_len=max_output_len & 0xFFFF,
            cmd_register=0x0004,
            data_register=0x0005,
            vendor_id=vendor,
            product_id=product,
            version_id=0x0000,
        )
        return replace(self._descriptor)

    def get_report_descriptor(self) -> bytes:
        """Return the device's HID report descriptor."""
        fd = _open(self.node, os.O_RDWR | os.O_NONBLOCK)
        try:
            size = _report_descriptor_size(fd)
            buf = bytearray(_C_INT.pack(size) + bytes(HID_MAX_DESCRIPTOR_SIZE))
            fcntl.ioctl(fd, HIDIOCGRDESC, buf, True)
        except OSError as exc:
            raise HidrawError(
                f"Failed to read the Report Descriptor from {self.node}. "
                f"{exc.strerror} [{exc.errno}]"
            ) from exc
        finally:
            os.close(fd)
        return bytes(buf[_C_INT.size : _C_INT.size + size])

    def send_report(self, report: bytes) -> None:
        _write_report(self.node, bytes(report))

    def setup(self, report_id: int = HidReportId.ANY) -> None:
        if self._thread is not None:
            raise HidrawError("The report reader is already running.")
        self._status = _ReaderStatus.NOT_STARTED
        self._buffer.clear()

        descriptor = self.get_hid_descriptor()
        self.output_report_size = descriptor.max_output_len - 2
        self.input_report_size = descriptor.max_input_len - 2
        if self.input_report_size <= 0:
            raise HidrawError(
                f"Invalid maximum input report length: {descriptor.max_input_len}"
            )

        try:
            self._hid_fd = _open(self.node, os.O_RDWR | os.O_NONBLOCK)
            try:
                self._pipe = os.pipe()
            except OSError as exc:
                raise HidrawError(
                    "Failed to open pipe for communicating with report reader "
                    f"thread. {exc.strerror} [{exc.errno}]"
                ) from exc
            self._stop = False
            self._thread = threading.Thread(
                target=self._reader,
                args=(int(report_id),),
                name="hidraw-report-reader",
                daemon=True,
            )
            self._thread.start()
        except BaseException:
            self.teardown()
            raise

        with self._cond:
            self._cond.wait_for(
                lambda: self._status is not _ReaderStatus.NOT_STARTED
            )

    def get_report(
        self, timeout: Optional[float] = None
    ) -> tuple[PollStatus, Optional[bytes]]:
        with self._cond:
            if self._status is _ReaderStatus.NOT_STARTED:
                output(
                    VerboseLevel.ERROR,
                    "get_report: Report reader thread has not been started.\n",
                )
                return PollStatus.ERROR, None
            if self._status is _ReaderStatus.EXIT and not len(self._buffer):
                output(
                    VerboseLevel.DEBUG,
                    "Report reader thread has already terminated. "
                    "No more reports to read.\n",
                )
                return PollStatus.SKIP, None
            if self._status is _ReaderStatus.ACTIVE:
                self._cond.wait_for(
                    lambda: len(self._buffer) > 0
                    or self._status is not _ReaderStatus.ACTIVE,
                    timeout,
                )
                if not len(self._buffer):
                    if self._status is not _ReaderStatus.ACTIVE:
                        return self._final_status, None
                    return PollStatus.TIMEOUT, None
            report = self._buffer.pop()
            status = (
                PollStatus.GOT_DATA
                if self._status is _ReaderStatus.ACTIVE
                else self._final_status
            )
            return status, report

    def clear_report_buffer(self) -> None:
        self._buffer.clear()

    def teardown(self) -> None:
        thread = self._thread
        if thread is not None:
            self._stop = True
            if self._pipe is not None:
                try:
                    os.write(self._pipe[1], b"S\0")
                except OSError:
                    pass
            thread.join()
            self._thread = None
        _close_quietly(self._hid_fd)
        self._hid_fd = None
        if self._pipe is not None:
            for fd in self._pipe:
                _close_quietly(fd)
            self._pipe = None

    def _reader(self, report_id: int) -> None:
        with self._cond:
            self._status = _ReaderStatus.ACTIVE
            self._cond.notify_all()

        status = PollStatus.GOT_DATA
        while status in (PollStatus.GOT_DATA, PollStatus.SKIP):
            status = self._consume_report(report_id)

        with self._cond:
            self._final_status = (
                PollStatus.GOT_DATA
                if status != PollStatus.ERROR and len(self._buffer) > 0
                else status
            )
            self._status = _ReaderStatus.EXIT
            self._cond.notify_all()

    def _consume_report(self, report_id: int) -> PollStatus:
        status, data = self._read_report()
        if status != PollStatus.GOT_DATA or data is None:
            return status
        received_id = data[HID_INPUT_REPORT_ID_BYTE_INDEX] if data else 0
        if report_id != HidReportId.ANY and report_id != received_id:
            return PollStatus.SKIP
        self._buffer.push(data)
        with self._cond:
            self._cond.notify_all()
        return PollStatus.GOT_DATA

    def _read_report(self) -> tuple[PollStatus, Optional[bytes]]:
        assert self._hid_fd is not None and self._pipe is not None
        try:
            select.select([self._hid_fd, self._pipe[0]], [], [])
        except (OSError, ValueError) as exc:
            output(
                VerboseLevel.ERROR,
                f"_read_report: A problem occurred while trying to read from "
                f"{self.node}. {exc}\n",
            )
            return PollStatus.ERROR, None
        if self._stop:
            output(VerboseLevel.DEBUG, "Got signal to stop report reader thread.\n")
            return PollStatus.TIMEOUT, None
        try:
            data = os.read(self._hid_fd, self.input_report_size)
        except OSError as exc:
            output(
                VerboseLevel.ERROR,
                f"_read_report: Failed to read from {self.node}. "
                f"{exc.strerror} [{exc.errno}]\n",
            )
            return PollStatus.ERROR, None
        return PollStatus.GOT_DATA, data

    def _max_input_len(self) -> int:
        fd = _open(self.node, os.O_RDWR)
        try:
            for label, command in (
                ("SUSPEND_SCAN", _SUSPEND_SCAN_CMD),
                ("PING", _PING_CMD),
            ):
                output(
                    VerboseLevel.DEBUG,
                    f"Sending {label} command: {command.hex(' ')}\n",
                )
                _write_report(self.node, command)
                _sleep_ms(AVG_DELAY_BETWEEN_CMD_AND_RSP_MS)
            try:
                response = os.read(fd, HID_MAX_INPUT_REPORT_SIZE)
            except OSError as exc:
                raise HidrawError(
                    f"Failed to read from {self.node}. {exc.strerror} [{exc.errno}]"
                ) from exc
        finally:
            os.close(fd)
        if not response:
            raise HidrawError(
                f"Zero bytes read from {self.node}. Something went wrong."
            )
        max_input_len = len(response) + 2
        output(VerboseLevel.DEBUG, f"Max HID input report length: {max_input_len} bytes.\n")
        return max_input_len

    def _max_output_len(self) -> int:
        fd = _open(self.node, os.O_RDWR)
        ping = _PING_CMD.ljust(HID_MAX_OUTPUT_REPORT_SIZE, b"\0")
        max_output_len = 0xFF
        lower, upper = 0, len(ping)
        try:
            while lower <= upper:
                mid = (lower + upper) // 2
                try:
                    written = os.write(fd, ping[:mid])
                except OSError:
                    upper = mid - 1
                else:
                    max_output_len = written
                    lower = written + 1
                _sleep_ms(AVG_DELAY_BETWEEN_CMD_AND_RSP_MS)
        finally:
            os.close(fd)
        max_output_len += 2
        output(
            VerboseLevel.DEBUG, f"Max HID output report length: {max_output_len} bytes.\n"
        )
        return max_output_len


def _node_matches(node: str, vendor_id: int, product_id: int) -> bool:
    try:
        fd = os.open(node, os.O_RDWR | os.O_NONBLOCK)
    except OSError as exc:
        output(
            VerboseLevel.ERROR,
            f"Failed to open {node}. {exc.strerror} [{exc.errno}]\n",
        )
        return False
    try:
        vendor, product = _device_ids(fd)
    except OSError as exc:
        output(
            VerboseLevel.ERROR,
            f"Failed to read the raw device info from {node}. "
            f"{exc.strerror} [{exc.errno}]\n",
        )
        return False
    finally:
        os.close(fd)
    output(
        VerboseLevel.INFO,
        f"Detected device info for {node} VID = 0x{vendor:04X}, "
        f"PID = 0x{product:04X}\n",
    )
    return vendor == vendor_id and product == product_id


def auto_detect_hidraw_node(
    vendor_id: int, product_id: int, dev_dir: str = "/dev"
) -> str:
    """Return the path of the hidraw node whose device has the given IDs."""
    if vendor_id > 0xFFFF:
        raise ValueError(
            "Invalid vendor ID. It must be less than 0xFFFF but got "
            f"0x{vendor_id:X}."
        )
    if product_id > 0xFFFF:
        raise ValueError(
            "Invalid product ID. It must be less than 0xFFFF but got "
            f"0x{product_id:X}."
        )
    try:
        entries = sorted(os.listdir(dev_dir))
    except OSError as exc:
        raise HidrawError(
            f"Failed to open the {dev_dir} directory. {exc.strerror} [{exc.errno}]"
        ) from exc
    for name in entries:
        if not _HIDRAW_NODE_NAME.search(name):
            continue
        node = os.path.join(dev_dir, name)
        output(VerboseLevel.INFO, f"Trying HIDRAW sysfs node = '{node}'\n")
        if _node_matches(node, vendor_id, product_id):
            return node
    raise HidrawError(
        f"No HIDRAW node in {dev_dir} matches VID 0x{vendor_id:04X}, "
        f"PID 0x{product_id:04X}"
    )