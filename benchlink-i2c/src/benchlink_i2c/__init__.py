"""I2C host adapter drivers for benchlink.

Modules:
    protocols: ``I2cBus`` capability protocol.
    aardvark: TotalPhase Aardvark adapter over the ``aardvark_py`` binding.
"""

from benchlink_i2c.aardvark import AardvarkAdapter, AardvarkConfig, create_instrument, format_data
from benchlink_i2c.protocols import I2cBus

__all__ = [
    "AardvarkAdapter",
    "AardvarkConfig",
    "I2cBus",
    "create_instrument",
    "format_data",
]
