import pytest

from ptupdater.channel import Channel, ChannelType
from ptupdater.fileutil import PollStatus
from ptupdater.hid import HidDescriptor


class _LoopbackChannel(Channel):
    type = ChannelType.TTDL

    def __init__(self):
        self.reports = []

    def setup(self, report_id):
        self.report_id = report_id

    def get_hid_descriptor(self):
        return HidDescriptor(vendor_id=1, product_id=2)

    def send_report(self, report):
        self.reports.append(bytes(report))

    def get_report(self, timeout=None):
        if not self.reports:
            return PollStatus.TIMEOUT, None
        return PollStatus.GOT_DATA, self.reports.pop(0)

    def teardown(self):
        self.reports.clear()


@pytest.mark.parametrize(
    "value, label",
    [
        (0, "No channel type selected"),
        (1, "HIDRAW"),
        (2, "I2C-DEV"),
        (3, "TTDL"),
    ],
)
def test_channel_type_labels(value, label):
    assert ChannelType(value).label == label


def test_channel_type_values_follow_declaration_order():
    assert [ChannelType(value) for value in range(len(ChannelType))] == list(ChannelType)


def test_base_channel_is_abstract():
    with pytest.raises(TypeError):
        Channel()


def test_incomplete_channel_cannot_be_created():
    class Partial(Channel):
        def setup(self, report_id):
            pass

    with pytest.raises(TypeError, match="abstract"):
        Channel.__new__(Partial)


def test_concrete_channel_name_comes_from_type():
    channel = _LoopbackChannel()
    assert channel.name == ChannelType(3).label == "TTDL"


def test_concrete_channel_exchanges_reports():
    channel = _LoopbackChannel()
    channel.setup(0)
    channel.send_report(b"\x04\x06")
    assert channel.get_report() == (PollStatus.GOT_DATA, b"\x04\x06")
    assert channel.get_report() == (PollStatus.TIMEOUT, None)
    descriptor = HidDescriptor.from_bytes(channel.get_hid_descriptor().to_bytes())
    assert (descriptor.vendor_id, descriptor.product_id) == (1, 2)