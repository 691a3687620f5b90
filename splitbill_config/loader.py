"""
Settings loader (``splitbill_config.loader``).

Responsibility
--------------
Reads the packaged ``defaults.yaml``, overlays an optional settings file,
applies environment overrides, and parses the result into a frozen
``LedgerSettings``.

Failure modes
-------------
* Missing override file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Bad values (non-numeric or negative tolerance)  -> ``ValueError``.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from splitbill_config.schema import LedgerSettings

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"

CONFIG_ENV_VAR = "SPLITBILL_CONFIG"
DATABASE_URL_ENV_VAR = "SPLITBILL_DATABASE_URL"


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at top level")
    return data


def merge(base: Mapping[str, Any], overlay: Mapping[str, Any]) -> dict[str, Any]:
    """Recursive dict merge; overlay wins."""
    result = dict(base)
    for key, value in overlay.items():
        if isinstance(value, Mapping) and isinstance(result.get(key), Mapping):
            result[key] = merge(result[key], value)
        else:
            result[key] = value
    return result


def parse_settings(data: Mapping[str, Any]) -> LedgerSettings:
    """Build LedgerSettings from the merged document."""
    ledger = data.get("ledger", {})
    database = data.get("database", {})
    logging_section = data.get("logging", {})

    try:
        tolerance = Decimal(str(ledger["tolerance"]))
    except (InvalidOperation, KeyError) as e:
        raise ValueError(f"Invalid ledger.tolerance: {ledger.get('tolerance')!r}") from e

    return LedgerSettings(
        tolerance=tolerance,
        currency_symbol=str(ledger.get("currency_symbol", "")),
        database_url=str(database["url"]),
        database_echo=bool(database.get("echo", False)),
        log_level=str(logging_section.get("level", "INFO")).upper(),
    )


def load_settings(
    path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> LedgerSettings:
    """
    Load settings: defaults, then ``path`` (or $SPLITBILL_CONFIG), then
    $SPLITBILL_DATABASE_URL.
    """
    env = os.environ if environ is None else environ

    data = load_yaml_file(DEFAULTS_PATH)

    override = path
    if override is None and env.get(CONFIG_ENV_VAR):
        override = Path(env[CONFIG_ENV_VAR])
    if override is not None:
        data = merge(data, load_yaml_file(override))

    if env.get(DATABASE_URL_ENV_VAR):
        data = merge(data, {"database": {"url": env[DATABASE_URL_ENV_VAR]}})

    return parse_settings(data)
