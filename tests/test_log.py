import io
from pathlib import Path

import pytest

from ptupdater.log import Log, VerboseLevel, get_log


@pytest.fixture
def log(tmp_path):
    return Log(
        stdout=io.StringIO(),
        stderr=io.StringIO(),
        kmsg_path=str(tmp_path / "kmsg"),
    )


def test_default_level_prints_fatal_to_stderr(log):
    log.output(VerboseLevel.FATAL, "boom\n")
    assert log.stderr.getvalue() == "FATAL: boom\n"
    assert log.stdout.getvalue() == ""


def test_default_level_hides_error(log):
    log.output(VerboseLevel.ERROR, "hidden\n")
    assert log.stderr.getvalue() == ""
    assert log.stdout.getvalue() == ""


def test_error_prefix_at_error_level(log):
    log.set_verbose_level(VerboseLevel.ERROR)
    log.output(VerboseLevel.ERROR, "bad\n")
    assert log.stderr.getvalue() == "ERROR:  bad\n"


def test_verbose_level_is_capped_at_debug(log):
    log.set_verbose_level(42)
    assert log.verbose_level == VerboseLevel.DEBUG


def test_info_and_debug_go_to_stdout(log):
    log.set_verbose_level(VerboseLevel.DEBUG)
    log.output(VerboseLevel.INFO, "i\n")
    log.output(VerboseLevel.DEBUG, "d\n")
    assert log.stdout.getvalue() == "INFO: i\nDEBUG:  d\n"


def test_ptc_and_noprefix_ignore_verbosity(log):
    log.set_verbose_level(VerboseLevel.QUIET)
    log.output(VerboseLevel.PTC, "p\n")
    log.output(VerboseLevel.NOLEVEL_NOPREFIX, "raw\n")
    assert log.stdout.getvalue() == "PTC: p\nraw\n"


def test_quiet_never_prints(log):
    log.set_verbose_level(VerboseLevel.DEBUG)
    log.output(VerboseLevel.QUIET, "x\n")
    assert log.stdout.getvalue() == "" and log.stderr.getvalue() == ""


def test_kmsg_written_flag(log):
    assert log.kmsg_written is False
    log.output(VerboseLevel.WARNING, "w\n")
    assert log.kmsg_written is True
    log.clear_kmsg_written()
    assert log.kmsg_written is False
    log.output(VerboseLevel.INFO, "i\n")
    assert log.kmsg_written is False


def test_kmsg_file_receives_warnings_only(log):
    log.output(VerboseLevel.WARNING, "w\n")
    log.output(VerboseLevel.INFO, "i\n")
    log.output(VerboseLevel.RESULT, "r\n")
    assert Path(log.kmsg_path).read_text() == "PtMFG WARNING: w\n"
    assert log.kmsg_written is True


def test_csv_output(log):
    log.csv_file = io.StringIO()
    log.output(VerboseLevel.ERROR, "bad\n")
    log.output(VerboseLevel.RESULT, "res\n")
    log.output(VerboseLevel.INFO, "info\n")
    written = log.csv_file.getvalue()
    prefix, rest = written.split("[", 1)
    uptime, message = rest.split("] ", 1)
    assert prefix == ".ERROR,"
    assert uptime.isdigit()
    assert message == "bad\n"


def test_timestamp_prefix(log):
    log.set_verbose_level(VerboseLevel.INFO)
    log.set_timestamp_levels([VerboseLevel.INFO])
    assert log.timestamp_enabled(VerboseLevel.INFO) is True
    assert log.timestamp_enabled(VerboseLevel.ERROR) is False
    log.output(VerboseLevel.INFO, "hi\n")
    written = log.stdout.getvalue()
    stamp, message = written.split("] ", 1)
    assert stamp.startswith("[")
    seconds, fraction = stamp[1:].strip().split(".")
    assert seconds.isdigit()
    assert len(fraction) == 6 and fraction.isdigit()
    assert message == "INFO: hi\n"


def test_daemon_log_file_replaces_console(log):
    daemon = io.StringIO()
    log.daemon_log_file = daemon
    log.output(VerboseLevel.FATAL, "f\n")
    assert daemon.getvalue() == "FATAL: f\n"
    assert log.stderr.getvalue() == ""


def test_unknown_level_timestamp_reports_fatal(log):
    assert log.timestamp_enabled(50) is False
    assert "Unrecognized log level enum value: 50" in log.stderr.getvalue()


def test_get_log_is_shared():
    first = get_log()
    second = get_log()
    original = first.verbose_level
    try:
        first.set_verbose_level(VerboseLevel.INFO)
        assert second.verbose_level == VerboseLevel.INFO
        first.set_verbose_level(VerboseLevel.ERROR)
        assert second.verbose_level == VerboseLevel.ERROR
    finally:
        first.set_verbose_level(original)