"""Row normalization for rainfall imports.

Spreadsheet and CSV rows arrive as ``{header: value}`` mappings with
inconsistent headers and date encodings.  ``normalize_row`` resolves the
date and amount columns through a declarative alias table and coerces them
to a UTC-noon timestamp and a non-negative float, or rejects the row.

Everything here is pure: no I/O, no clock, no exceptions escape.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta
from enum import StrEnum
from typing import Any

from dateutil import parser as date_parser

# Serial day 0 in spreadsheet date encoding (accounts for the 1900 leap-year bug).
SPREADSHEET_EPOCH = date(1899, 12, 30)

NOON = time(12, 0, tzinfo=UTC)

# Fills components missing from free-form strings; keeps parsing independent of today.
_PARSE_DEFAULT = datetime(2000, 1, 1)


class ImportField(StrEnum):
	date = "date"
	amount = "amount"


FIELD_ALIASES: dict[ImportField, tuple[str, ...]] = {
	ImportField.date: ("fecha", "Fecha", "FECHA", "date", "Date"),
	ImportField.amount: (
		"cantidad",
		"Cantidad",
		"mm",
		"MM",
		"milimetros",
		"Milimetros",
		"valor",
	),
}


@dataclass(frozen=True, slots=True)
class NormalizedRow:
	recorded_on: datetime
	amount_mm: float


def utc_noon(day: date) -> datetime:
	"""Pin a calendar day to 12:00 UTC so it renders as the same day everywhere."""
	return datetime.combine(day, NOON)


def _is_absent(value: Any) -> bool:
	return value is None or (isinstance(value, str) and not value.strip())


def pick_field(row: Mapping[str, Any], field: ImportField) -> Any:
	"""Return the first present alias value for ``field``, or ``None``.

	Exact header matches win; a case-insensitive, whitespace-trimmed match
	is tried only when no alias matches exactly.
	"""
	aliases = FIELD_ALIASES[field]
	for alias in aliases:
		if alias in row and not _is_absent(row[alias]):
			return row[alias]

	folded = {alias.lower() for alias in aliases}
	for header, value in row.items():
		if not isinstance(header, str) or header.strip().lower() not in folded:
			continue
		if not _is_absent(value):
			return value
	return None


def _parse_day_string(raw: str) -> date | None:
	text = raw.strip().replace(".", "-").replace("/", "-")
	parts = text.split("-")
	if len(parts) == 3 and all(part.strip().isdigit() for part in parts):
		first, second, last = (part.strip() for part in parts)
		try:
			if len(last) == 4:
				return date(int(last), int(second), int(first))
			return date(int(first), int(second), int(last))
		except ValueError:
			pass

	try:
		return date_parser.parse(raw.strip(), default=_PARSE_DEFAULT).date()
	except (ValueError, OverflowError):
		return None


def coerce_date(value: Any) -> datetime | None:
	if isinstance(value, datetime):
		return utc_noon(value.date())
	if isinstance(value, date):
		return utc_noon(value)
	if isinstance(value, bool):
		return None
	if isinstance(value, (int, float)):
		if not math.isfinite(value):
			return None
		try:
			return utc_noon(SPREADSHEET_EPOCH + timedelta(days=math.floor(value)))
		except OverflowError:
			return None
	if isinstance(value, str):
		parsed = _parse_day_string(value)
		return utc_noon(parsed) if parsed is not None else None
	return None


def coerce_amount(value: Any) -> float | None:
	if isinstance(value, bool):
		return None
	try:
		amount = float(value)
	except (TypeError, ValueError):
		return None
	if not math.isfinite(amount) or amount < 0:
		return None
	return amount


def normalize_row(row: Mapping[str, Any]) -> NormalizedRow | None:
	raw_date = pick_field(row, ImportField.date)
	raw_amount = pick_field(row, ImportField.amount)
	if raw_date is None or raw_amount is None:
		return None

	recorded_on = coerce_date(raw_date)
	amount = coerce_amount(raw_amount)
	if recorded_on is None or amount is None:
		return None
	return NormalizedRow(recorded_on=recorded_on, amount_mm=amount)
