"""Discovery of Linux I2C buses and access to their device nodes."""

from __future__ import annotations

import errno
import fcntl
import os
import re
import struct
from dataclasses import dataclass
from enum import Enum
from typing import IO, Iterator, Optional

from .log import VerboseLevel, output

EEPROM_I2C_GROUP = 1
EEPROM_I2C_ADDR = 0x50

PT_SUPPLY_POWER_I2C_GROUP = 0
PT_SUPPLY_POWER_I2C_ADDRESS = 0x28

PT_SUPPLY_ADC_I2C_GROUP = 0
PT_SUPPLY_ADC_I2C_ADDRESS = 0x48

I2C_SLAVE_TPS65132_BUS = 0
I2C_SLAVE_TPS65132_ADDRESS = 0x3E

I2C_SLAVE = 0x0703
I2C_SLAVE_FORCE = 0x0706
I2C_FUNCS = 0x0705

I2C_FUNC_I2C = 0x00000001
I2C_FUNC_SMBUS_BYTE = 0x00060000
I2C_FUNC_SMBUS_BYTE_DATA = 0x00180000
I2C_FUNC_SMBUS_WORD_DATA = 0x00600000

MAX_BUS_NUMBER = 0xFFFFF
MIN_CHIP_ADDRESS = 0x03
MAX_CHIP_ADDRESS = 0x77

_NAME_LINE_MAX = 119
_C_INT = re.compile(r"\s*([+-]?)(0[xX][0-9a-fA-F]+|0[0-7]*|[1-9][0-9]*)")
_BUS_NAME = re.compile(r"i2c-\s*([+-]?\d+)")


class I2CError(Exception):
    """Raised when an I2C bus or address cannot be resolved or used."""


class AdapterType(Enum):
    """Kind of I2C adapter, with its functionality and algorithm labels."""

    DUMMY = ("dummy", "Dummy bus")
    ISA = ("isa", "ISA bus")
    I2C = ("i2c", "I2C adapter")
    SMBUS = ("smbus", "SMBus adapter")
    UNKNOWN = ("unknown", "N/A")

    def __init__(self, funcs: str, algo: str) -> None:
        self.funcs = funcs
        self.algo = algo


@dataclass(frozen=True)
class I2CAdapter:
    """One I2C bus as reported by the kernel."""

    nr: int
    name: str
    funcs: str
    algo: str


def _parse_c_int(text: str) -> Optional[int]:
    """Parse an integer the way strtol with base 0 does, or return None."""
    match = _C_INT.fullmatch(text)
    if match is None:
        return None
    sign, digits = match.groups()
    if digits[:2].lower() == "0x":
        value = int(digits[2:], 16)
    elif len(digits) > 1 and digits.startswith("0"):
        value = int(digits, 8)
    else:
        value = int(digits, 10)
    return -value if sign == "-" else value


def _under(root: str, *parts: str) -> str:
    return os.path.join(root, *(part.lstrip("/") for part in parts))


def _bus_number(text: str) -> Optional[int]:
    match = _BUS_NAME.match(text)
    return int(match.group(1)) if match else None


def _get_funcs(bus: int) -> AdapterType:
    try:
        fd = open_i2c_dev(bus, quiet=True)
    except I2CError:
        return AdapterType.UNKNOWN
    try:
        buf = bytearray(struct.calcsize("L"))
        try:
            fcntl.ioctl(fd, I2C_FUNCS, buf, True)
        except OSError:
            return AdapterType.UNKNOWN
        (funcs,) = struct.unpack("L", buf)
    finally:
        os.close(fd)
    if funcs & I2C_FUNC_I2C:
        return AdapterType.I2C
    if funcs & (
        I2C_FUNC_SMBUS_BYTE | I2C_FUNC_SMBUS_BYTE_DATA | I2C_FUNC_SMBUS_WORD_DATA
    ):
        return AdapterType.SMBUS
    return AdapterType.DUMMY


def _parse_proc_line(line: str) -> Optional[I2CAdapter]:
    fields = line.split("\t")
    if len(fields) < 4:
        return None
    head = "\t".join(fields[:-3])
    kind, name, algo = (field.rstrip(" \n") for field in fields[-3:])
    nr = _bus_number(head)
    if nr is None:
        return None
    return I2CAdapter(nr, name, kind, algo)


def _name_candidates(entry_dir: str) -> Iterator[str]:
    yield os.path.join(entry_dir, "name")
    yield os.path.join(entry_dir, "device", "name")
    device = os.path.join(entry_dir, "device")
    try:
        subdirs = sorted(os.listdir(device))
    except OSError:
        return
    for sub in subdirs:
        if sub.startswith("i2c-"):
            yield os.path.join(device, sub, "name")


def _open_first(paths: Iterator[str]) -> Optional[tuple[str, IO[str]]]:
    for path in paths:
        try:
            return path, open(path, errors="replace")
        except OSError:
            continue
    return None


def _find_sysfs(root: str) -> Optional[str]:
    try:
        with open(_under(root, "proc/mounts"), errors="replace") as mounts:
            for line in mounts:
                fields = line.split()
                if len(fields) >= 3 and fields[2].lower() == "sysfs":
                    return fields[1]
    except OSError:
        return None
    return None


def _gather_from_sysfs(root: str) -> list[I2CAdapter]:
    sysfs = _find_sysfs(root)
    if sysfs is None:
        return []
    class_dir = _under(root, sysfs, "class/i2c-dev")
    try:
        entries = sorted(os.listdir(class_dir))
    except OSError:
        return []

    adapters = []
    for entry in entries:
        opened = _open_first(_name_candidates(os.path.join(class_dir, entry)))
        if opened is None:
            continue
        path, handle = opened
        with handle:
            line = handle.readline(_NAME_LINE_MAX)
        if not line:
            output(VerboseLevel.ERROR, f"{path}: read error\n")
            continue
        name = line.split("\n", 1)[0]
        nr = _bus_number(entry)
        if nr is None:
            continue
        kind = AdapterType.ISA if name.startswith("ISA ") else _get_funcs(nr)
        adapters.append(I2CAdapter(nr, name, kind.funcs, kind.algo))
    return adapters


def gather_i2c_busses(root: str = "/") -> list[I2CAdapter]:
    """List the I2C buses, from procfs if available, otherwise from sysfs.

    ``root`` is the directory under which ``proc`` and the sysfs mount
    point are looked up.
    """
    try:
        with open(_under(root, "proc/bus/i2c"), errors="replace") as proc:
            return [
                adapter
                for adapter in map(_parse_proc_line, proc)
                if adapter is not None
            ]
    except OSError:
        pass
    return _gather_from_sysfs(root)


def _lookup_by_name(name: str, root: str) -> int:
    matches = [adapter.nr for adapter in gather_i2c_busses(root) if adapter.name == name]
    if len(matches) > 1:
        raise I2CError("I2C bus name is not unique!")
    if not matches:
        raise I2CError("I2C bus name doesn't match any bus present!")
    return matches[0]


def lookup_i2c_bus(arg: str, root: str = "/") -> int:
    """Resolve a bus number or bus name to a bus number."""
    value = _parse_c_int(arg) if arg else None
    if value is None:
        return _lookup_by_name(arg, root)
    if value < 0 or value > MAX_BUS_NUMBER:
        raise I2CError("I2C bus out of range!")
    return value


def parse_i2c_address(arg: str) -> int:
    """Parse a 7-bit chip address in the range 0x03-0x77."""
    value = _parse_c_int(arg) if arg else None
    if value is None:
        raise I2CError("Chip address is not a number!")
    if not MIN_CHIP_ADDRESS <= value <= MAX_CHIP_ADDRESS:
        raise I2CError("Chip address out of range (0x03-0x77)!")
    return value


def open_i2c_dev(bus: int, quiet: bool = False) -> int:
    """Open the device node of ``bus`` read-write and return its descriptor.

    ``/dev/i2c/N`` is tried first, then ``/dev/i2c-N``. Unless ``quiet``,
    a failure is also reported through the log.
    """
    filename = f"/dev/i2c/{bus}"
    try:
        return os.open(filename, os.O_RDWR)
    except OSError as exc:
        error = exc
    if error.errno in (errno.ENOENT, errno.ENOTDIR):
        filename = f"/dev/i2c-{bus}"
        try:
            return os.open(filename, os.O_RDWR)
        except OSError as exc:
            error = exc

    if error.errno == errno.ENOENT:
        message = (
            f"Could not open file `/dev/i2c-{bus}' or `/dev/i2c/{bus}': "
            f"{os.strerror(errno.ENOENT)}"
        )
    else:
        message = f"Could not open file `{filename}': {error.strerror}"
        if error.errno == errno.EACCES:
            message += "\nRun as root?"
    if not quiet:
        output(VerboseLevel.ERROR, message + "\n")
    raise I2CError(message) from error


def set_slave_addr(fd: int, address: int, force: bool = False) -> None:
    """Select the chip ``address`` on the opened bus ``fd``."""
    request = I2C_SLAVE_FORCE if force else I2C_SLAVE
    try:
        fcntl.ioctl(fd, request, address)
    except OSError as exc:
        raise I2CError(
            f"Could not set address to 0x{address:02x}: {exc.strerror}"
        ) from exc