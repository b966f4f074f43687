"""Bench configuration, driver loading and CLI for benchlink.

Modules:
    config: YAML bench configuration.
    loader: ``module:function`` driver factory loading.
    cli: ``benchlink`` command-line interface.

Example:
    from benchlink_rack import create_instrument, load_config

    config = load_config("bench.yaml")
    scanner = create_instrument(config, "scanner")
    print(scanner.get_label())
"""

from benchlink_rack.config import BenchConfig, ExpectedIdentity, InstrumentConfig, load_config
from benchlink_rack.loader import create_instrument, load_driver

__all__ = [
    "BenchConfig",
    "ExpectedIdentity",
    "InstrumentConfig",
    "create_instrument",
    "load_config",
    "load_driver",
]
