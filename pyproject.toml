[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ptupdater"
version = "0.1.0"
description = "Touch-controller firmware update support: logging, CRC-16/CCITT, HID report structures, I2C bus discovery and a HIDRAW report channel"
requires-python = ">=3.10"
dependencies = []
keywords = ["touchscreen", "firmware", "hid", "hidraw", "i2c", "crc16", "pip3"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Hardware",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["ptupdater"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 88
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
