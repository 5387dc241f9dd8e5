"""
tax_config -- YAML-driven tax rate and excise duty catalogs.

Responsibility:
    Provides reference data for the tax engines.  ``get_default_catalog()``
    loads the catalog packaged with the library; ``load_catalog()`` loads
    any other catalog file.  The engines never read files themselves:
    callers pass ``catalog.rate_map()`` as ``known_rates``.

Architecture position:
    Configuration -- sits above ``tax_engines``.  The engines MUST NEVER
    import from ``tax_config``.

Invariants enforced:
    - Catalogs are frozen once loaded.
    - Same YAML always produces the same catalog checksum.

Failure modes:
    - ``FileNotFoundError`` -- catalog file missing.
    - ``KeyError`` / ``ValueError`` -- malformed catalog.
    - ``yaml.YAMLError`` -- invalid YAML.

Audit relevance:
    Every ``get_default_catalog()`` call emits a ``TAX_CONFIG_TRACE`` log
    entry with the catalog name, version and checksum, tying computed
    documents back to the exact rates that priced them.
"""

from __future__ import annotations

import logging
from pathlib import Path

from tax_config.loader import compute_checksum, load_catalog
from tax_config.schema import ExciseDutyDefinition, RateCatalog

_logger = logging.getLogger("tax_kernel.config")

_DEFAULT_CATALOG = Path(__file__).parent / "catalogs" / "default.yaml"


def get_default_catalog(path: Path | None = None) -> RateCatalog:
    """
    Load the default rate catalog (or ``path`` when given).

    Not cached: callers hold the returned catalog for as long as they need
    a stable set of rates.
    """
    catalog = load_catalog(path or _DEFAULT_CATALOG)

    _logger.info(
        "TAX_CONFIG_TRACE",
        extra={
            "trace_type": "TAX_CONFIG_TRACE",
            "catalog_name": catalog.name,
            "catalog_version": catalog.version,
            "checksum": catalog.checksum,
            "currency": catalog.currency,
            "rate_count": len(catalog.rates),
            "excise_count": len(catalog.excise_duties),
        },
    )
    return catalog


__all__ = [
    "ExciseDutyDefinition",
    "RateCatalog",
    "compute_checksum",
    "get_default_catalog",
    "load_catalog",
]
