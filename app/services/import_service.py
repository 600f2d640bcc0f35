"""Bulk rainfall import from CSV or spreadsheet uploads.

Parsing yields plain ``{header: value}`` rows; ``normalize_row`` decides
which of them survive.  Surviving rows are written with one ``add_all`` so
the import lands entirely or not at all.
"""

from __future__ import annotations

import csv
import uuid
from collections.abc import Iterator, Sequence
from io import BytesIO, StringIO
from itertools import zip_longest
from pathlib import PurePath
from typing import Any
from zipfile import BadZipFile

import structlog
import xlrd
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession
from xlrd.compdoc import CompDocError

from app.models.enums import RainfallSourceEnum
from app.models.records import RainfallRecord
from app.schemas.rainfall import ImportReceipt
from app.services.events import EventBus
from app.services.normalizer import NormalizedRow, normalize_row

logger = structlog.get_logger("nimbo.import")

Row = dict[str, Any]

TEXT_EXTENSIONS = frozenset({".csv", ".txt"})
SPREADSHEET_EXTENSIONS = frozenset({".xlsx"})
LEGACY_SPREADSHEET_EXTENSIONS = frozenset({".xls"})
ZIP_SIGNATURE = b"PK\x03\x04"
CANDIDATE_DELIMITERS = ",;\t|"


def _is_blank(row: Row) -> bool:
	return all(value is None or (isinstance(value, str) and not value.strip()) for value in row.values())


def _sniff_delimiter(text: str) -> str:
	sample = "\n".join(text.splitlines()[:20])
	try:
		return csv.Sniffer().sniff(sample, delimiters=CANDIDATE_DELIMITERS).delimiter
	except csv.Error:
		return ","


def parse_csv(data: bytes) -> list[Row]:
	try:
		text = data.decode("utf-8-sig")
	except UnicodeDecodeError as exc:
		raise ValueError("CSV must be UTF-8 encoded") from exc
	if not text.strip():
		raise ValueError("The uploaded file is empty")

	reader = csv.DictReader(StringIO(text), delimiter=_sniff_delimiter(text))
	rows: list[Row] = []
	for raw in reader:
		row = {key.strip(): value for key, value in raw.items() if isinstance(key, str)}
		if not _is_blank(row):
			rows.append(row)
	return rows


def parse_spreadsheet(data: bytes) -> list[Row]:
	try:
		workbook = load_workbook(BytesIO(data), data_only=True, read_only=True)
	except (InvalidFileException, BadZipFile, KeyError, OSError) as exc:
		raise ValueError("Could not read the spreadsheet file") from exc

	try:
		sheet = workbook.worksheets[0]
		iterator = sheet.iter_rows(values_only=True)
		return _table_rows(iterator)
	finally:
		workbook.close()


def _table_rows(iterator: Iterator[Sequence[Any]]) -> list[Row]:
	"""Key each row after the header row by header; empty cells become ``""``."""
	try:
		header_row = next(iterator)
	except StopIteration as exc:
		raise ValueError("The uploaded file is empty") from exc

	headers = [str(cell).strip() if cell is not None else "" for cell in header_row]
	rows: list[Row] = []
	for values in iterator:
		row: Row = {}
		for header, value in zip_longest(headers, values or ()):
			if header and header not in row:
				row[header] = "" if value is None else value
		if row and not _is_blank(row):
			rows.append(row)
	return rows


def _legacy_cell_value(cell: xlrd.sheet.Cell) -> Any:
	if cell.ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK, xlrd.XL_CELL_ERROR):
		return None
	if cell.ctype == xlrd.XL_CELL_BOOLEAN:
		return bool(cell.value)
	# dates stay as serial numbers, like openpyxl cells without a date format
	return cell.value


def parse_legacy_spreadsheet(data: bytes) -> list[Row]:
	"""Read the first sheet of a BIFF (Excel 97-2003) workbook."""
	if data.startswith(ZIP_SIGNATURE):
		# an .xlsx saved under the old extension
		return parse_spreadsheet(data)
	try:
		workbook = xlrd.open_workbook(file_contents=data, on_demand=True)
	except (xlrd.XLRDError, CompDocError, EOFError, IndexError, OSError) as exc:
		raise ValueError("Could not read the spreadsheet file") from exc

	try:
		if workbook.nsheets == 0:
			raise ValueError("The uploaded file is empty")
		sheet = workbook.sheet_by_index(0)
		iterator = ([_legacy_cell_value(cell) for cell in sheet.row(index)] for index in range(sheet.nrows))
		return _table_rows(iterator)
	finally:
		workbook.release_resources()


def parse_upload(filename: str, data: bytes) -> list[Row]:
	"""Dispatch on the file extension; raise ``ValueError`` for anything unreadable."""
	if not data:
		raise ValueError("The uploaded file is empty")
	extension = PurePath(filename or "").suffix.lower()
	if extension in TEXT_EXTENSIONS:
		return parse_csv(data)
	if extension in SPREADSHEET_EXTENSIONS:
		return parse_spreadsheet(data)
	if extension in LEGACY_SPREADSHEET_EXTENSIONS:
		return parse_legacy_spreadsheet(data)
	raise ValueError(f"Unsupported file format '{extension or filename}'. Use CSV or Excel files")


def normalize_rows(rows: list[Row]) -> list[NormalizedRow]:
	normalized: list[NormalizedRow] = []
	for row in rows:
		item = normalize_row(row)
		if item is not None:
			normalized.append(item)
	return normalized


class ImportService:
	def __init__(self, db: AsyncSession, redis_client: Redis | None = None):
		self.db = db
		self.events = EventBus(redis_client)

	async def import_rainfall(
		self,
		farm_id: uuid.UUID,
		filename: str,
		data: bytes,
		max_bytes: int,
	) -> ImportReceipt:
		if len(data) > max_bytes:
			raise ValueError(f"File exceeds the {max_bytes} byte upload limit")

		rows = parse_upload(filename, data)
		normalized = normalize_rows(rows)
		if not normalized:
			logger.info("rainfall_import_empty", farm_id=str(farm_id), filename=filename, rows=len(rows))
			raise ValueError("No valid rows found in the file")

		records = [
			RainfallRecord(
				farm_id=farm_id,
				recorded_on=item.recorded_on,
				amount_mm=item.amount_mm,
				source=RainfallSourceEnum.archivo,
			)
			for item in normalized
		]
		self.db.add_all(records)
		await self.db.flush()

		skipped = len(rows) - len(records)
		await self.events.publish_farm(farm_id, "rainfall.imported", count=len(records))
		logger.info(
			"rainfall_import_done",
			farm_id=str(farm_id),
			filename=filename,
			imported=len(records),
			skipped=skipped,
		)
		return ImportReceipt(farm_id=farm_id, imported_count=len(records), skipped_count=skipped)
