"""
recon_config -- single public entrypoint for reconciliation rule tables.

Responsibility:
    Provides the ONLY way to obtain rule tables at runtime through
    ``get_active_config()``.  Engines receive the returned ``RuleTables``
    by argument; no engine reads files or environment variables.

Architecture position:
    Configuration -- sits above ``recon_kernel`` and below
    ``recon_engines`` / ``recon_services``.  The kernel MUST NEVER import
    from ``recon_config``.

Failure modes:
    - ``FileNotFoundError`` -- the requested rule document does not exist.
    - ``RuleTableError`` -- the document is malformed or fails validation.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``RECON_CONFIG_TRACE`` log entry with the config id, version and
    checksum, tying each reconciliation run to the exact table version.
"""

from __future__ import annotations

from pathlib import Path

from recon_config.loader import load_rule_tables
from recon_config.schema import RuleTables
from recon_config.validator import validate_rule_tables
from recon_kernel.exceptions import RuleTableError
from recon_kernel.logging_config import get_logger

_logger = get_logger("config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(config_path: Path | None = None) -> RuleTables:
    """The ONLY public configuration entrypoint.

    Guarantees:
        - The returned ``RuleTables`` has passed validation.
        - A ``RECON_CONFIG_TRACE`` log entry is emitted on every
          successful call.

    Non-goals:
        - No caching across calls; services hold the returned tables for
          the lifetime of a run.

    Raises:
        FileNotFoundError: If the rule document does not exist.
        RuleTableError: If the document is malformed or invalid.
    """
    path = Path(config_path) if config_path is not None else _DEFAULT_CONFIG_PATH
    if not path.is_file():
        raise FileNotFoundError(f"Rule table document not found: {path}")

    tables = load_rule_tables(path)

    validation = validate_rule_tables(tables)
    for warning in validation.warnings:
        _logger.warning("rule_table_warning", extra={"warning": warning})
    if not validation.is_valid:
        raise RuleTableError(
            tables.config_id,
            "; ".join(validation.errors),
        )

    _logger.info(
        "RECON_CONFIG_TRACE",
        extra={
            "trace_type": "RECON_CONFIG_TRACE",
            "config_id": tables.config_id,
            "config_version": tables.version,
            "checksum": tables.checksum,
            "source": str(path),
        },
    )
    return tables


__all__ = ["RuleTables", "get_active_config"]
