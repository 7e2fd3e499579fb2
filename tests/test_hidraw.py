import os

import pytest

from ptupdater.channel import ChannelType
from ptupdater.fileutil import PollStatus
from ptupdater.hid import HidDescriptor, HidReportId
from ptupdater.hidraw import (
    HidrawChannel,
    HidrawError,
    ReportBuffer,
    auto_detect_hidraw_node,
)

DESCRIPTOR = HidDescriptor(max_input_len=66, max_output_len=66, vendor_id=0x04B4)


@pytest.fixture
def fifo(tmp_path):
    path = tmp_path / "hidraw0"
    os.mkfifo(path)
    return str(path)


@pytest.fixture
def writer(fifo):
    fd = os.open(fifo, os.O_RDWR | os.O_NONBLOCK)
    yield fd
    os.close(fd)


@pytest.fixture
def regular_node(tmp_path):
    path = tmp_path / "hidraw1"
    path.write_bytes(b"")
    return str(path)


def test_buffer_is_first_in_first_out():
    buffer = ReportBuffer()
    buffer.push(b"\x44\x01")
    buffer.push(b"\x44\x02")
    assert buffer.pop() == b"\x44\x01"
    assert buffer.pop() == b"\x44\x02"
    assert len(buffer) == 0


def test_buffer_overflow_drops_oldest():
    buffer = ReportBuffer(size=4)
    for value in range(5):
        buffer.push(bytes([value]))
    assert len(buffer) == 3
    assert [buffer.pop() for _ in range(3)] == [b"\x02", b"\x03", b"\x04"]


def test_buffer_pop_empty_raises():
    with pytest.raises(IndexError):
        ReportBuffer().pop()


def test_buffer_clear_empties():
    buffer = ReportBuffer()
    buffer.push(b"\x01")
    buffer.clear()
    assert len(buffer) == 0


def test_buffer_too_small_rejected():
    with pytest.raises(ValueError):
        ReportBuffer(size=1)


def test_channel_type_is_hidraw(fifo):
    channel = HidrawChannel(fifo, hid_descriptor=DESCRIPTOR)
    assert channel.type == ChannelType.HIDRAW
    assert channel.name == "HIDRAW"


def test_given_descriptor_is_returned(fifo):
    channel = HidrawChannel(fifo, hid_descriptor=DESCRIPTOR)
    assert channel.get_hid_descriptor() == DESCRIPTOR


def test_descriptor_query_fails_on_non_hid_node(regular_node):
    with pytest.raises(HidrawError):
        HidrawChannel(regular_node).get_hid_descriptor()


def test_report_descriptor_query_fails_on_non_hid_node(regular_node):
    with pytest.raises(HidrawError):
        HidrawChannel(regular_node).get_report_descriptor()


def test_send_report_writes_bytes(regular_node):
    report = bytes([0x04, 0x06, 0x00, 0x08, 0x00, 0x2A, 0xF0])
    HidrawChannel(regular_node, hid_descriptor=DESCRIPTOR).send_report(report)
    with open(regular_node, "rb") as handle:
        assert handle.read() == report


def test_send_report_to_missing_node_raises(tmp_path):
    channel = HidrawChannel(str(tmp_path / "absent"), hid_descriptor=DESCRIPTOR)
    with pytest.raises(HidrawError):
        channel.send_report(b"\x04")


def test_get_report_before_setup_is_error(fifo):
    channel = HidrawChannel(fifo, hid_descriptor=DESCRIPTOR)
    assert channel.get_report(timeout=0) == (PollStatus.ERROR, None)


def test_report_round_trip(fifo, writer):
    report = bytes([0x44, 0x01, 0x07, 0x00, 0x00, 0x80, 0x00])
    channel = HidrawChannel(fifo, hid_descriptor=DESCRIPTOR)
    channel.setup(HidReportId.ANY)
    try:
        os.write(writer, report)
        assert channel.get_report(timeout=5) == (PollStatus.GOT_DATA, report)
    finally:
        channel.teardown()


def test_other_report_ids_are_skipped(fifo, writer):
    finger = bytes([0x41, 0x00, 0x10])
    response = bytes([0x44, 0x00, 0x20])
    channel = HidrawChannel(fifo, hid_descriptor=DESCRIPTOR)
    channel.setup(HidReportId.SOLICITED_RESPONSE)
    try:
        os.write(writer, finger)
        assert channel.get_report(timeout=0.3) == (PollStatus.TIMEOUT, None)
        os.write(writer, response)
        assert channel.get_report(timeout=5) == (PollStatus.GOT_DATA, response)
    finally:
        channel.teardown()


def test_reads_are_limited_to_input_report_size(fifo, writer):
    descriptor = HidDescriptor(max_input_len=10, max_output_len=10)
    data = bytes(range(1, 13))
    channel = HidrawChannel(fifo, hid_descriptor=descriptor)
    channel.setup(HidReportId.ANY)
    try:
        assert channel.input_report_size == descriptor.max_input_len - 2
        os.write(writer, data)
        assert channel.get_report(timeout=5) == (PollStatus.GOT_DATA, data[:8])
        assert channel.get_report(timeout=5) == (PollStatus.GOT_DATA, data[8:])
    finally:
        channel.teardown()


def test_get_report_after_teardown_with_nothing_left_is_skip(fifo):
    channel = HidrawChannel(fifo, hid_descriptor=DESCRIPTOR)
    channel.setup(HidReportId.ANY)
    channel.teardown()
    assert channel.get_report(timeout=0) == (PollStatus.SKIP, None)


def test_setup_twice_raises(fifo):
    channel = HidrawChannel(fifo, hid_descriptor=DESCRIPTOR)
    channel.setup(HidReportId.ANY)
    try:
        with pytest.raises(HidrawError):
            channel.setup(HidReportId.ANY)
    finally:
        channel.teardown()


def test_setup_on_missing_node_raises(tmp_path):
    channel = HidrawChannel(str(tmp_path / "absent"), hid_descriptor=DESCRIPTOR)
    with pytest.raises(HidrawError):
        channel.setup(HidReportId.ANY)
    assert channel.get_report(timeout=0) == (PollStatus.ERROR, None)


def test_setup_rejects_empty_input_reports(fifo):
    channel = HidrawChannel(fifo, hid_descriptor=HidDescriptor(max_input_len=2))
    with pytest.raises(HidrawError):
        channel.setup(HidReportId.ANY)


@pytest.mark.parametrize("vendor_id, product_id", [(0x10000, 0), (0, 0x10000)])
def test_auto_detect_rejects_out_of_range_ids(tmp_path, vendor_id, product_id):
    with pytest.raises(ValueError):
        auto_detect_hidraw_node(vendor_id, product_id, str(tmp_path))


def test_auto_detect_missing_directory(tmp_path):
    with pytest.raises(HidrawError):
        auto_detect_hidraw_node(0x04B4, 0x0001, str(tmp_path / "absent"))


def test_auto_detect_finds_nothing_among_non_hid_nodes(tmp_path):
    (tmp_path / "hidraw0").write_bytes(b"")
    (tmp_path / "tty0").write_bytes(b"")
    with pytest.raises(HidrawError):
        auto_detect_hidraw_node(0x04B4, 0x0001, str(tmp_path))