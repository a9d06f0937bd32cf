"""
Configuration loader (``ledger_config.loader``).

Loads a YAML configuration set and parses it into the frozen dataclasses
of ``ledger_config.schema``.  Runtime callers go through
``ledger_config.get_active_config()``; this module is the tooling behind it.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Out-of-range or unknown values  -> ``ValueError`` from the schema.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml

from ledger_config.schema import LedgerAccountCodes, LedgerConfig, MatchingPolicy


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_accounts(data: dict[str, Any]) -> LedgerAccountCodes:
    """Parse LedgerAccountCodes; missing roles keep the standard chart code."""
    return LedgerAccountCodes(**{role: str(code) for role, code in data.items()})


def parse_matching(data: dict[str, Any]) -> MatchingPolicy:
    kwargs: dict[str, Any] = {}
    if "amount_tolerance" in data:
        # str() first so a YAML float like 0.01 does not carry binary noise
        kwargs["amount_tolerance"] = Decimal(str(data["amount_tolerance"]))
    if "auto_apply_threshold" in data:
        kwargs["auto_apply_threshold"] = int(data["auto_apply_threshold"])
    if "open_invoice_statuses" in data:
        kwargs["open_invoice_statuses"] = tuple(
            str(status).upper() for status in data["open_invoice_statuses"]
        )
    return MatchingPolicy(**kwargs)


def parse_config(data: dict[str, Any]) -> LedgerConfig:
    """
    Parse a whole configuration set.

    Preconditions:
        - ``data`` contains ``config_id`` and ``version``.
    Postconditions:
        - Returns a validated ``LedgerConfig`` whose checksum covers ``data``.
    Raises:
        KeyError: if a required key is missing.
        ValueError: if a value fails schema validation.
    """
    return LedgerConfig(
        config_id=data["config_id"],
        version=int(data["version"]),
        accounts=parse_accounts(data.get("accounts") or {}),
        matching=parse_matching(data.get("matching") or {}),
        default_payment_method=str(
            data.get("default_payment_method", "BANK_TRANSFER")
        ).upper(),
        checksum=compute_checksum(data),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON form; identical data, identical checksum."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
