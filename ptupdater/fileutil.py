"""File copying, line insertion and readiness polling."""

from __future__ import annotations

import os
import re
import select
import tempfile
from enum import IntEnum
from typing import IO, Iterator, Optional, Union

from .log import VerboseLevel, output

TMP_FILE_PREFIX = "ptmfg_csv_temp-"
_COPY_CHUNK = 256
_LINE_CHUNK = 2047


class PollStatus(IntEnum):
    """Outcome of waiting for inbound data."""

    GOT_DATA = 0
    TIMEOUT = 1
    ERROR = 2
    SKIP = 3


def file_copy(source: str, destination: str) -> int:
    """Copy ``source`` to ``destination`` and return the number of bytes copied.

    The destination is created (or truncated) before the source is opened.
    """
    try:
        dst = open(destination, "wb")
    except OSError as exc:
        output(VerboseLevel.ERROR, f"{destination}: {exc.strerror}\n")
        raise
    with dst:
        try:
            src = open(source, "rb")
        except OSError as exc:
            output(VerboseLevel.ERROR, f"{source}: {exc.strerror}\n")
            raise
        total = 0
        with src:
            for chunk in iter(lambda: src.read(_COPY_CHUNK), b""):
                try:
                    dst.write(chunk)
                except OSError as exc:
                    output(
                        VerboseLevel.ERROR,
                        f"Error writing {destination}: {exc.strerror}\n",
                    )
                    raise
                total += len(chunk)
    output(VerboseLevel.DEBUG, f"Read {total} bytes\n")
    return total


def _line_pieces(stream: IO[str]) -> Iterator[str]:
    for line in stream:
        for start in range(0, len(line), _LINE_CHUNK):
            yield line[start : start + _LINE_CHUNK]


def _not_modified(source_path: str) -> None:
    output(VerboseLevel.ERROR, f"Source file ({source_path}) will not be modified.\n")


def file_insert(source_file: str, working_dir: str, pattern: str, text: str) -> None:
    """Insert ``text`` after every line of a file that matches ``pattern``.

    The file is ``working_dir`` and ``source_file`` concatenated. It is
    rewritten through a temporary file in ``working_dir`` and left
    untouched if anything fails.
    """
    output(VerboseLevel.DEBUG, "Start: file_insert.\n")
    source_path = f"{working_dir}{source_file}"

    try:
        regex = re.compile(pattern)
    except re.error as exc:
        output(VerboseLevel.ERROR, "Could not compile regular expression.\n")
        _not_modified(source_path)
        raise ValueError(f"invalid regular expression {pattern!r}: {exc}") from exc

    try:
        fd, tmp_path = tempfile.mkstemp(prefix=TMP_FILE_PREFIX, dir=working_dir)
    except OSError as exc:
        output(
            VerboseLevel.ERROR,
            f"Creation of tmp file failed with error [{exc.strerror}]\n",
        )
        _not_modified(source_path)
        raise

    encoding = {"encoding": "utf-8", "errors": "surrogateescape", "newline": ""}
    try:
        with os.fdopen(fd, "w", **encoding) as tmp:
            try:
                source = open(source_path, **encoding)
            except OSError:
                output(
                    VerboseLevel.DEBUG,
                    "file_insert: Could not open log file for reading "
                    f"({source_path}).\n",
                )
                raise
            with source:
                for piece in _line_pieces(source):
                    tmp.write(piece)
                    if regex.search(piece):
                        tmp.write(text)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise

    try:
        os.replace(tmp_path, source_path)
    except OSError:
        output(VerboseLevel.ERROR, "Renaming temporary file failed. Temporary file\n")
        output(VerboseLevel.ERROR, f"may be found at: {tmp_path}\n")
        raise


def fpoll_inbound_data(
    file: Optional[Union[IO, int]], timeout_us: float
) -> PollStatus:
    """Wait up to ``timeout_us`` microseconds for ``file`` to become readable."""
    if file is None:
        output(VerboseLevel.ERROR, "fpoll_inbound_data: Given a NULL file handle argument.\n")
        return PollStatus.ERROR
    try:
        ready, _, _ = select.select([file], [], [], timeout_us / 1_000_000)
    except (OSError, ValueError) as exc:
        output(
            VerboseLevel.ERROR,
            "fpoll_inbound_data: A problem occurred while trying to read from "
            f"the sysfs node. {exc}\n",
        )
        return PollStatus.ERROR
    if not ready:
        output(VerboseLevel.DEBUG, "Polling timed-out for incoming data.\n")
        return PollStatus.TIMEOUT
    return PollStatus.GOT_DATA