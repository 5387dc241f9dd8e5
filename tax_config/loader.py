"""
Catalog Loader (``tax_config.loader``).

Responsibility
--------------
Loads YAML rate catalog files and parses them into the typed
``tax_config.schema`` / ``tax_engines.rates`` dataclasses.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; no silent defaults for required fields.
* Every parsed object is a frozen dataclass.
* Numeric YAML scalars become ``Decimal`` through their text form, never
  through binary float arithmetic.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the raw
  catalog for change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Invalid numbers, dates or enum values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from tax_config.schema import ExciseDutyDefinition, RateCatalog
from tax_engines.classification import ExciseRule
from tax_engines.rates import CalculationType, TaxRateDefinition, TaxType


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_decimal(value: Any, field: str) -> Decimal:
    """Parse a YAML scalar (int, float, or string) as Decimal."""
    if isinstance(value, bool) or value is None:
        raise ValueError(f"{field}: expected a number, got {value!r}")
    try:
        return Decimal(str(value).strip())
    except InvalidOperation as e:
        raise ValueError(f"{field}: invalid number {value!r}") from e


def parse_date(value: Any) -> date:
    """Parse a date from YAML (string or date object)."""
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value)
    raise ValueError(f"Cannot parse date from {value!r}")


def parse_tax_rate(data: dict[str, Any]) -> TaxRateDefinition:
    """
    Parse a ``TaxRateDefinition`` from a dict.

    Required keys: ``id``, ``name``.  ``calculation_type`` defaults to
    PERCENTAGE; ``rate`` is required for PERCENTAGE and ``fixed_amount``
    for FIXED_AMOUNT.
    """
    calculation_type = CalculationType(data.get("calculation_type", "PERCENTAGE"))
    if calculation_type == CalculationType.PERCENTAGE:
        rate = parse_decimal(data["rate"], f"{data['id']}.rate")
        fixed_amount = None
    else:
        rate = parse_decimal(data.get("rate", 0), f"{data['id']}.rate")
        fixed_amount = parse_decimal(data["fixed_amount"], f"{data['id']}.fixed_amount")

    return TaxRateDefinition(
        id=str(data["id"]),
        name=data["name"],
        calculation_type=calculation_type,
        rate=rate,
        fixed_amount=fixed_amount,
        is_inclusive_default=bool(data.get("is_inclusive_default", False)),
        tax_type=TaxType(data.get("tax_type", "VAT")),
        category_code=data.get("category_code"),
        is_active=bool(data.get("is_active", True)),
    )


def parse_excise_duty(data: dict[str, Any]) -> ExciseDutyDefinition:
    """Parse an ``ExciseDutyDefinition`` from a dict."""
    return ExciseDutyDefinition(
        code=str(data["code"]),
        description=data["description"],
        rule=ExciseRule(str(data.get("rule", "2"))),
        rate=parse_decimal(data["rate"], f"{data['code']}.rate"),
        unit=str(data["unit"]) if data.get("unit") is not None else None,
        currency=data.get("currency"),
        parent_code=data.get("parent_code"),
        effective_from=parse_date(data["effective_from"]) if data.get("effective_from") else None,
    )


def load_catalog(path: Path) -> RateCatalog:
    """
    Load a complete rate catalog from a YAML file.

    Expected layout::

        catalog:
          name: default
          version: 1
          currency: UGX
        tax_rates: [...]
        excise_duties: [...]

    Raises:
        ValueError: on duplicate rate ids or excise codes.
    """
    data = load_yaml_file(Path(path))
    header = data["catalog"]

    rates = tuple(parse_tax_rate(r) for r in data.get("tax_rates", []))
    duties = tuple(parse_excise_duty(d) for d in data.get("excise_duties", []))

    _reject_duplicates("tax rate id", [r.id for r in rates])
    _reject_duplicates("excise duty code", [d.code for d in duties])

    return RateCatalog(
        name=header["name"],
        version=int(header.get("version", 1)),
        currency=header.get("currency", "UGX"),
        rates=rates,
        excise_duties=duties,
        checksum=compute_checksum(data),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def _reject_duplicates(kind: str, keys: list[str]) -> None:
    seen: set[str] = set()
    for key in keys:
        if key in seen:
            raise ValueError(f"Duplicate {kind}: {key}")
        seen.add(key)
