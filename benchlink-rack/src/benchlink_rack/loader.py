"""Dynamic instrument driver loading via importlib.

Bench files name each driver factory as a "module:function" string, so
drivers are imported only when a bench actually uses them.

Example:
    factory = load_driver("benchlink_barcode.rakinda:create_instrument")
    scanner = factory(port="/dev/ttyUSB0")
"""

from __future__ import annotations

import importlib
import logging
from typing import Any, Callable

from benchlink_core.errors import BenchlinkError

from benchlink_rack.config import BenchConfig

logger = logging.getLogger(__name__)


def load_driver(driver_path: str) -> Callable[..., Any]:
    """Load an instrument driver factory function from a module path.

    Args:
        driver_path: Path in "module:function" format
            (e.g., "benchlink_barcode.zebra:create_instrument").

    Returns:
        The loaded factory function.

    Raises:
        ValueError: If the driver path format is invalid.
        ImportError: If the module cannot be imported.
        AttributeError: If the function doesn't exist in the module.
        TypeError: If the attribute is not callable.
    """
    if ":" not in driver_path:
        raise ValueError(
            f"Invalid driver path '{driver_path}': must be in 'module:function' format"
        )

    module_path, func_name = driver_path.rsplit(":", 1)

    if not module_path or not func_name:
        raise ValueError(f"Invalid driver path '{driver_path}': module and function names required")

    try:
        module = importlib.import_module(module_path)
    except ImportError as exc:
        raise ImportError(f"Failed to import module '{module_path}': {exc}") from exc

    try:
        factory = getattr(module, func_name)
    except AttributeError as exc:
        raise AttributeError(f"Module '{module_path}' has no attribute '{func_name}'") from exc

    if not callable(factory):
        raise TypeError(f"'{driver_path}' is not callable")

    return factory


def create_instrument(config: BenchConfig, name: str) -> Any:
    """Create the instrument called ``name`` from a bench configuration.

    When the instrument has an expected identity, the created instrument's
    ``get_identity()`` must match it.

    Args:
        config: Loaded bench configuration.
        name: Instrument name.

    Returns:
        The driver instance returned by the factory.

    Raises:
        KeyError: If the bench has no instrument called ``name``.
        BenchlinkError: If the identity does not match.
    """
    inst_config = config.get_instrument(name)
    factory = load_driver(inst_config.driver)
    logger.debug("Creating instrument '%s' with %s", name, inst_config.driver)
    instrument = factory(**inst_config.kwargs)

    expected = inst_config.identity
    if expected is not None:
        actual = instrument.get_identity()
        if (actual.manufacturer, actual.model) != (expected.manufacturer, expected.model):
            close = getattr(instrument, "close", None)
            if close is not None:
                close()
            raise BenchlinkError(
                f"Instrument '{name}' identity mismatch: expected {expected.manufacturer} "
                f"{expected.model}, got {actual.manufacturer} {actual.model}"
            )
        logger.info("Instrument '%s' verified: %s %s", name, actual.manufacturer, actual.model)

    return instrument
