"""
ledger_config -- single public entrypoint for ledger configuration.

Responsibility:
    Provides the only way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration files
    or environment variables directly.

Architecture position:
    Configuration -- sits above ``ledger_kernel`` and ``ledger_engines``.
    The kernel must never import from ``ledger_config``; ``bridges`` turns
    a ``LedgerConfig`` into kernel inputs.

Failure modes:
    - ``FileNotFoundError`` -- no configuration set with the requested name.
    - ``KeyError`` / ``ValueError`` -- missing or invalid values.

Audit relevance:
    Every successful ``get_active_config()`` call logs ``config_loaded``
    with the config_id, version and checksum, tying postings back to the
    configuration that governed them.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ledger_config.loader import load_yaml_file, parse_config
from ledger_config.schema import LedgerAccountCodes, LedgerConfig, MatchingPolicy

_logger = logging.getLogger("ledger_kernel.config")

# Default configuration sets directory
_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"


def get_active_config(
    config_dir: Path | None = None,
    set_name: str = "default",
) -> LedgerConfig:
    """Load, validate and return the named configuration set.

    Args:
        config_dir: Override path to the configuration sets directory.
            Defaults to ledger_config/sets/.
        set_name: Name of the set; reads ``<config_dir>/<set_name>.yaml``.

    Raises:
        FileNotFoundError: If the set file does not exist.
        KeyError: If a required key is missing.
        ValueError: If a value fails validation.
    """
    sets_dir = Path(config_dir) if config_dir is not None else _DEFAULT_CONFIG_DIR
    path = sets_dir / f"{set_name}.yaml"
    if not path.is_file():
        raise FileNotFoundError(f"Configuration set '{set_name}' not found in {sets_dir}")

    config = parse_config(load_yaml_file(path))

    _logger.info(
        "config_loaded",
        extra={
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "auto_apply_threshold": config.matching.auto_apply_threshold,
        },
    )
    return config


__all__ = [
    "LedgerAccountCodes",
    "LedgerConfig",
    "MatchingPolicy",
    "get_active_config",
]
