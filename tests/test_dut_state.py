import pytest

from ptupdater.dut_state import (
    DutExec,
    DutState,
    get_aux_mcu_active_duration_seconds,
    set_aux_mcu_active_duration_seconds,
)


@pytest.fixture
def restore_duration():
    original = get_aux_mcu_active_duration_seconds()
    yield
    set_aux_mcu_active_duration_seconds(original)


@pytest.mark.parametrize(
    "value, label",
    [
        (8, "Touch Processor, Bootloader Exec"),
        (9, "AUX MCU, Firmware Exec"),
        (11, "Default DUT State (not ready for communication)"),
    ],
)
def test_state_labels_from_source(value, label):
    assert DutState(value).label == label


def test_every_state_has_a_distinct_label():
    labels = [DutState(value).label for value in range(len(DutState))]
    assert len(labels) == len(set(labels)) == len(DutState)


def test_state_values_are_sequential():
    assert [DutState(value) for value in range(len(DutState))] == list(DutState)
    assert DutState(0) is DutState.INVALID


@pytest.mark.parametrize(
    "value, label",
    [(0, "Invalid DUT Exec"), (1, "Bootloader Exec"), (2, "Firmware Exec")],
)
def test_exec_labels(value, label):
    assert DutExec(value).label == label


@pytest.mark.parametrize("duration", [0, 1, 30, 255])
def test_duration_round_trip(restore_duration, duration):
    set_aux_mcu_active_duration_seconds(duration)
    assert get_aux_mcu_active_duration_seconds() == duration


@pytest.mark.parametrize("duration", [-1, 256])
def test_duration_out_of_range(restore_duration, duration):
    with pytest.raises(ValueError):
        set_aux_mcu_active_duration_seconds(duration)