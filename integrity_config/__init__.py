"""
integrity_config -- single public entrypoint for policy configuration.

Responsibility:
    Provides the ONLY way to obtain the integrity policy at runtime through
    ``get_active_config()``.  No other component reads configuration files.

Architecture position:
    Configuration -- sits above ``integrity_kernel`` and below
    ``integrity_services``.  The kernel MUST NEVER import from
    ``integrity_config``.

Failure modes:
    - ``ConfigurationError`` -- missing file, malformed YAML, or invalid
      values.

Audit relevance:
    Every successful ``get_active_config()`` call emits an
    ``INTEGRITY_CONFIG_TRACE`` log entry carrying the config id, version
    and checksum, tying every audit record to the policy that governed it.
"""

from __future__ import annotations

import logging
from pathlib import Path

from integrity_config.loader import load_config_set, parse_config_set
from integrity_config.schema import IntegrityConfigSet

_logger = logging.getLogger("integrity_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(path: Path | str | None = None) -> IntegrityConfigSet:
    """Load the policy set at ``path`` (default: the bundled default set)."""
    config_set = load_config_set(Path(path) if path else DEFAULT_CONFIG_PATH)

    policy = config_set.policy
    _logger.info(
        "INTEGRITY_CONFIG_TRACE",
        extra={
            "trace_type": "INTEGRITY_CONFIG_TRACE",
            "config_set_id": config_set.config_id,
            "config_set_version": config_set.version,
            "checksum": config_set.checksum,
            "region_count": len(policy.revenue.region_codes),
            "operator_id_count": len(policy.operator.operator_ids),
            "operator_prefix_count": len(policy.operator.operator_id_prefixes),
        },
    )
    return config_set


__all__ = [
    "DEFAULT_CONFIG_PATH",
    "IntegrityConfigSet",
    "get_active_config",
    "load_config_set",
    "parse_config_set",
]
