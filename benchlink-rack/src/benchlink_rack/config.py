"""YAML configuration loading for instrument benches.

This module loads bench YAML files describing which instruments are attached,
which driver factory creates each one, and the keyword arguments passed to it.

Example YAML configuration:
    bench:
      id: "scanner-bench-a"
      description: "Label verification fixture"

    logging:
      level: DEBUG

    instruments:
      scanner:
        driver: "benchlink_barcode.zebra:create_instrument"
        identity:
          manufacturer: "Zebra"
          model: "MS4717"
        kwargs:
          port: "/dev/ttyACM0"
          traffic_log: verbose
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class ExpectedIdentity:
    """Expected instrument identity, checked when the instrument is created.

    Attributes:
        manufacturer: Expected manufacturer name (e.g., "Zebra").
        model: Expected model name (e.g., "MS4717").
    """

    manufacturer: str
    model: str


@dataclass(frozen=True)
class InstrumentConfig:
    """Configuration for one instrument on the bench.

    Attributes:
        name: Unique instrument name within the bench (e.g., "scanner").
        driver: Driver factory in "module:function" format
            (e.g., "benchlink_barcode.zebra:create_instrument").
        kwargs: Keyword arguments passed to the driver factory.
        identity: Expected identity, or None to skip the check.
    """

    name: str
    driver: str
    kwargs: dict[str, Any] = field(default_factory=dict)
    identity: ExpectedIdentity | None = None


@dataclass(frozen=True)
class BenchConfig:
    """Configuration for a whole bench.

    Attributes:
        bench_id: Unique identifier for this bench.
        description: Human-readable description.
        instruments: Instrument configurations, in file order.
        log_level: Logging level name from the ``logging`` section, or None.
    """

    bench_id: str
    description: str
    instruments: tuple[InstrumentConfig, ...]
    log_level: str | None = None

    def get_instrument(self, name: str) -> InstrumentConfig:
        """Return the configuration of the instrument called ``name``.

        Raises:
            KeyError: If no instrument has that name.
        """
        for inst in self.instruments:
            if inst.name == name:
                return inst
        available = ", ".join(i.name for i in self.instruments) or "(none)"
        raise KeyError(f"Unknown instrument '{name}'. Available: {available}")

    @property
    def log_level_number(self) -> int | None:
        """The logging level as a ``logging`` constant, or None."""
        if self.log_level is None:
            return None
        return getattr(logging, self.log_level)


def _parse_identity(name: str, data: Any) -> ExpectedIdentity | None:
    if data is None:
        return None
    if not isinstance(data, dict):
        raise ValueError(f"Instrument '{name}' identity must be a mapping")
    if not data.get("manufacturer"):
        raise ValueError(f"Instrument '{name}' missing required field: identity.manufacturer")
    if not data.get("model"):
        raise ValueError(f"Instrument '{name}' missing required field: identity.model")
    return ExpectedIdentity(manufacturer=str(data["manufacturer"]), model=str(data["model"]))


def _parse_log_level(data: Any) -> str | None:
    if data is None:
        return None
    if not isinstance(data, dict):
        raise ValueError("logging must be a mapping")
    level = data.get("level")
    if level is None:
        return None
    level = str(level).upper()
    if level not in _LOG_LEVELS:
        raise ValueError(f"Invalid logging.level '{data['level']}': must be one of {', '.join(_LOG_LEVELS)}")
    return level


def load_config(path: str | Path) -> BenchConfig:
    """Load a bench configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        Parsed bench configuration.

    Raises:
        FileNotFoundError: If the config file doesn't exist.
        ValueError: If the config is invalid or missing required fields.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if not isinstance(data, dict):
        raise ValueError("Config must be a YAML mapping")

    bench_section = data.get("bench") or {}
    if not isinstance(bench_section, dict):
        raise ValueError("bench must be a mapping")
    bench_id = bench_section.get("id")
    if not bench_id:
        raise ValueError("Missing required field: bench.id")
    description = bench_section.get("description", "")

    log_level = _parse_log_level(data.get("logging"))

    instruments_data = data.get("instruments") or {}
    if not isinstance(instruments_data, dict):
        raise ValueError("instruments must be a mapping")

    instruments: list[InstrumentConfig] = []
    for name, inst_data in instruments_data.items():
        if not isinstance(inst_data, dict):
            raise ValueError(f"Instrument '{name}' must be a mapping")

        driver = inst_data.get("driver")
        if not driver:
            raise ValueError(f"Instrument '{name}' missing required field: driver")

        kwargs = inst_data.get("kwargs") or {}
        if not isinstance(kwargs, dict):
            raise ValueError(f"Instrument '{name}' kwargs must be a mapping")

        instruments.append(
            InstrumentConfig(
                name=str(name),
                driver=driver,
                kwargs=kwargs,
                identity=_parse_identity(name, inst_data.get("identity")),
            )
        )

    return BenchConfig(
        bench_id=str(bench_id),
        description=description,
        instruments=tuple(instruments),
        log_level=log_level,
    )
