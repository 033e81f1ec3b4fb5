# config.py
import json
import logging
from dataclasses import dataclass

from errors import ConfigurationError

logger = logging.getLogger(__name__)

ADDRESS_BITS = 64
DEFAULT_MAX_SETS = 1 << 20

CLI_FLAGS = ("-s", "-E", "-b")
CONFIG_KEYS = ("set_bits", "lines_per_set", "offset_bits")


@dataclass(frozen=True)
class CacheGeometry:
    set_bits: int
    lines_per_set: int
    offset_bits: int
    max_sets: int = DEFAULT_MAX_SETS

    @property
    def set_count(self):
        return 1 << self.set_bits

    @property
    def block_size(self):
        return 1 << self.offset_bits

    def label(self):
        return f"s={self.set_bits} E={self.lines_per_set} b={self.offset_bits}"


def _as_int(name, value):
    if isinstance(value, bool):
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from exc


def validate_geometry(set_bits, lines_per_set, offset_bits, max_sets=DEFAULT_MAX_SETS, names=CLI_FLAGS):
    """
    Check a cache geometry and return it as a CacheGeometry.

    set_bits and offset_bits must lie in [1, 63] and together fit in a 64-bit
    address; lines_per_set must be at least 1. Missing values are reported by
    the entries of `names` (CLI flags by default, config keys for sweep entries).
    """
    missing = [
        name for name, value in zip(names, (set_bits, lines_per_set, offset_bits))
        if value is None
    ]
    if missing:
        raise ConfigurationError(f"missing required setting(s): {', '.join(missing)}")

    set_bits = _as_int("set_bits", set_bits)
    lines_per_set = _as_int("lines_per_set", lines_per_set)
    offset_bits = _as_int("offset_bits", offset_bits)
    max_sets = _as_int("max_sets", max_sets)

    if not 1 <= set_bits < ADDRESS_BITS:
        raise ConfigurationError(f"set_bits must be in [1, {ADDRESS_BITS - 1}], got {set_bits}")
    if not 1 <= offset_bits < ADDRESS_BITS:
        raise ConfigurationError(f"offset_bits must be in [1, {ADDRESS_BITS - 1}], got {offset_bits}")
    if set_bits + offset_bits > ADDRESS_BITS:
        raise ConfigurationError(
            f"set_bits + offset_bits must not exceed {ADDRESS_BITS}, got {set_bits + offset_bits}"
        )
    if lines_per_set < 1:
        raise ConfigurationError(f"lines_per_set must be at least 1, got {lines_per_set}")
    if max_sets < 1:
        raise ConfigurationError(f"max_sets must be at least 1, got {max_sets}")

    return CacheGeometry(set_bits, lines_per_set, offset_bits, max_sets)


def geometry_from_config(cfg, set_bits=None, lines_per_set=None, offset_bits=None):
    """Merge command-line values over the config's "cache" section."""
    cache_cfg = cfg.get("cache", {})
    return validate_geometry(
        set_bits if set_bits is not None else cache_cfg.get("set_bits"),
        lines_per_set if lines_per_set is not None else cache_cfg.get("lines_per_set"),
        offset_bits if offset_bits is not None else cache_cfg.get("offset_bits"),
        cache_cfg.get("max_sets", DEFAULT_MAX_SETS),
    )


def load_config(path="config.json"):
    try:
        with open(path, "r") as f:
            cfg = json.load(f)
    except OSError as exc:
        raise ConfigurationError(f"cannot read config file {path}: {exc.strerror}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"invalid JSON in config file {path}: {exc}") from exc
    if not isinstance(cfg, dict):
        raise ConfigurationError(f"config file {path} must contain a JSON object")
    logger.info("Loaded config from %s", path)
    return cfg


def log_level(cfg, override=None):
    name = override or cfg.get("logging", {}).get("level", "WARNING")
    level = logging.getLevelName(str(name).upper())
    if not isinstance(level, int):
        raise ConfigurationError(f"unknown log level {name!r}")
    return level
