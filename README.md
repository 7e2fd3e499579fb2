# ptupdater

Building blocks for talking to touch controllers attached to a Linux host
over HIDRAW or I2C-DEV: logging, checksums, report layouts, bus discovery
and a threaded HIDRAW report channel. It has no third-party dependencies.

## Modules

- `ptupdater.log`: `VerboseLevel` and `Log`. A `Log` prints to stdout, or to
  stderr for FATAL and ERROR, when the message's level is within
  `verbose_level`. `set_verbose_level` caps the level at DEBUG and
  `set_timestamp_levels` chooses the levels that get an uptime timestamp.
  Console output goes to `daemon_log_file` instead when that is set.
  WARNING, ERROR and FATAL messages are also written to `csv_file` when it
  is set, and appended to `kmsg_path` (default `/dev/kmsg`; `None` turns
  this off). `kmsg_written` records that one of those was seen, and
  `clear_kmsg_written()` resets it. `get_log()` returns the process-wide
  log and `output(level, message)` writes through it.
- `ptupdater.crc16`: `crc16_ccitt(data, seed)`, CRC-16/CCITT (polynomial
  0x1021, MSB first, no final XOR).
- `ptupdater.b64`: `b64_decode(text)`, a lenient base64 decoder. It skips
  characters outside the alphabet and does not need padding.
- `ptupdater.dut_state`: the `DutState` and `DutExec` enums, each with a
  `label`, and `set_aux_mcu_active_duration_seconds` /
  `get_aux_mcu_active_duration_seconds`. The setter takes 0-255 and raises
  `ValueError` outside that range.
- `ptupdater.dut_driver`: `DutDriver` (`TTDL`, `I2C_HID`, `ERROR`) and
  `DriverDetector`. `detect()` lists a driver directory, by default
  `/sys/bus/i2c/drivers`, and falls back to `I2C_HID` when neither driver
  is present. A successful result is cached. `get_dut_driver()` uses a
  shared detector.
- `ptupdater.i2cbus`: `gather_i2c_busses(root="/")` returns `I2CAdapter`
  records from `/proc/bus/i2c` or, failing that, from sysfs.
  `lookup_i2c_bus` accepts a bus number or a bus name, and
  `parse_i2c_address` accepts 0x03-0x77. `open_i2c_dev(bus, quiet=False)`
  returns a file descriptor and `set_slave_addr(fd, address, force=False)`
  selects the chip. Failures raise `I2CError`.
- `ptupdater.fileutil`: `PollStatus`, `file_copy(source, destination)`
  (returns the byte count), `file_insert(source_file, working_dir,
  pattern, text)` and `fpoll_inbound_data(file, timeout_us)`.
  `file_insert` inserts `text` after each line that matches and rewrites
  the file through a temporary file.
- `ptupdater.fw_version`: `FwVersion` and `fw_version_from_bin_header(header)`.
- `ptupdater.hid`: `HidReportId`, plus `HidDescriptor` (30 bytes,
  `from_bytes` / `to_bytes`), `Pip3OutputCommand.to_bytes()` and
  `Pip3InputResponse.from_bytes()`.
- `ptupdater.channel`: `ChannelType` and the abstract `Channel`, which has
  `setup`, `get_hid_descriptor`, `send_report`, `get_report` and
  `teardown`.
- `ptupdater.hidraw`: `HidrawChannel(node="/dev/hidraw0", hid_descriptor=None,
  buffer_size=256)`. After `setup(report_id)` a background thread fills a
  `ReportBuffer`, and `get_report(timeout)` returns a `(PollStatus, bytes
  or None)` pair. `get_report_descriptor()` and `clear_report_buffer()` are
  also provided. `auto_detect_hidraw_node(vendor_id, product_id,
  dev_dir="/dev")` returns the matching node. Failures raise `HidrawError`.

## Example

```python
from ptupdater.crc16 import crc16_ccitt
from ptupdater.log import VerboseLevel, get_log, output

get_log().set_verbose_level(VerboseLevel.INFO)
checksum = crc16_ccitt(b"\x04\x06\x00\x08\x00", 0xFFFF)
output(VerboseLevel.INFO, f"CRC: 0x{checksum:04X}\n")
```

Talking to a device needs read and write access to `/dev/hidraw*` or
`/dev/i2c-*`, which usually means running as root.

## What it does not do

The package has no command-line program. It does not implement the PIP2
or PIP3 command sets, so it cannot switch device states, run self-tests or
write firmware to flash. Nor can it read the running firmware's version
from the device: `FwVersion` is only built from an image header. The only
concrete channel is `HidrawChannel`. There is no I2C-DEV or TTDL channel.

## Tests

```
pip install -e ".[test]"
pytest
```