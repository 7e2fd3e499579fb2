"""Touch-controller support: logging, CRC-16, HID layouts, I2C discovery, HIDRAW."""

__version__ = "0.1.0"