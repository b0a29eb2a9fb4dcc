from __future__ import annotations

import csv
import io
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping

from pydantic import BaseModel

from autolog.csv_export import EXPORTS, ExportSpec, VEHICLE_COLUMN
from autolog.table_config import FUEL
from autolog.translations import EN, TRANSLATIONS, Translator, get_translator, lookup

DATE_FORMATS = ("%Y-%m-%d", "%Y/%m/%d", "%m/%d/%Y", "%d %b %Y", "%d %B %Y")
TRUTHY_VALUES = {"yes", "true", "1", "是"}

FUEL_REQUIRED = ("vehicle_id", "date", "mileage", "volume", "cost")
FUEL_NUMERIC = ("mileage", "volume", "cost", "tyre_pressure")
FINANCIAL_REQUIRED = ("vehicle_id", "date", "category", "amount")
FINANCIAL_NUMERIC = ("amount",)


class ImportRowError(BaseModel):
    row: int
    field: str
    message: str
    value: str


class CSVImportResult(BaseModel):
    kind: str
    entries: list[dict[str, Any]]
    entry_rows: list[int]
    errors: list[ImportRowError]
    total_rows: int


def parse_entries_csv(
    contents: str,
    spec: ExportSpec,
    vehicles: Iterable[Mapping[str, Any]],
    *,
    default_currency: str = "HKD",
    translate: Translator | None = None,
) -> CSVImportResult:
    """Parse a CSV written in the export layout back into entry dicts.

    Rows with any validation error are reported and left out of
    ``entries``. Row numbers count data rows from 1.
    """
    translate = translate or get_translator()
    reader = csv.reader(io.StringIO(contents))
    rows = [row for row in reader if not is_blank_row(row)]
    if not rows:
        raise ValueError("CSV missing header row.")

    fieldnames = rows[0]
    headers = resolve_headers(fieldnames, spec)
    if VEHICLE_COLUMN not in headers or "date" not in headers:
        raise ValueError("CSV headers missing required fields.")

    vehicles_by_name = {
        clean_text(vehicle.get("name")).lower(): vehicle.get("id")
        for vehicle in vehicles
        if vehicle.get("name")
    }

    entries: list[dict[str, Any]] = []
    entry_rows: list[int] = []
    errors: list[ImportRowError] = []
    for index, raw_row in enumerate(rows[1:], start=1):
        row = row_to_dict(fieldnames, raw_row)
        values = {field_name: clean_text(row.get(header)) for field_name, header in headers.items()}
        if spec.kind == FUEL:
            entry, row_errors = validate_fuel_row(values, index, vehicles_by_name, default_currency, translate)
        else:
            entry, row_errors = validate_financial_row(values, index, vehicles_by_name, default_currency, translate)
        if row_errors:
            errors.extend(row_errors)
        elif entry is not None:
            entries.append(entry)
            entry_rows.append(index)

    return CSVImportResult(
        kind=spec.kind, entries=entries, entry_rows=entry_rows, errors=errors, total_rows=len(rows) - 1
    )


def parse_import_csv(contents: str, kind: str, vehicles, **kwargs) -> CSVImportResult:
    try:
        spec = EXPORTS[kind]
    except KeyError as exc:
        raise ValueError(f"Unsupported import kind: {kind}") from exc
    return parse_entries_csv(contents, spec, vehicles, **kwargs)


def resolve_headers(fieldnames: list[str], spec: ExportSpec) -> dict[str, str]:
    """Map entry field names to the CSV header naming them, in any language."""
    normalized = {normalize_header(name): name for name in fieldnames if name}
    headers: dict[str, str] = {}
    for label_key, field_name in spec.columns:
        for labels in TRANSLATIONS.values():
            label = lookup(label_key, labels)
            if label and normalize_header(label) in normalized:
                headers[field_name] = normalized[normalize_header(label)]
                break
    return headers


def validate_fuel_row(
    values: dict[str, str],
    index: int,
    vehicles_by_name: dict[str, Any],
    default_currency: str,
    translate: Translator,
) -> tuple[dict[str, Any] | None, list[ImportRowError]]:
    errors = _check_common(values, index, vehicles_by_name, FUEL_REQUIRED, FUEL_NUMERIC, translate)
    if errors:
        return None, errors

    tags = [tag.strip() for tag in values.get("tags", "").split(";") if tag.strip()]
    entry = {
        "vehicle_id": vehicles_by_name[values["vehicle_id"].lower()],
        "date": parse_date(values["date"]),
        "time": values.get("time") or "12:00",
        "fuel_company": values.get("fuel_company", ""),
        "fuel_type": values.get("fuel_type", ""),
        "mileage": parse_decimal(values["mileage"]),
        "distance_unit": values.get("distance_unit") or "km",
        "volume": parse_decimal(values["volume"]),
        "volume_unit": values.get("volume_unit") or "liters",
        "cost": parse_decimal(values["cost"]),
        "currency": values.get("currency") or default_currency,
        "location": values.get("location", ""),
        "partial_fuel_up": values.get("partial_fuel_up", "").lower() in TRUTHY_VALUES,
        "payment_type": values.get("payment_type") or "Cash",
        "tyre_pressure": parse_decimal(values.get("tyre_pressure")),
        "tyre_pressure_unit": values.get("tyre_pressure_unit") or "PSI",
        "tags": tags,
        "notes": values.get("notes", ""),
    }
    return entry, []


def validate_financial_row(
    values: dict[str, str],
    index: int,
    vehicles_by_name: dict[str, Any],
    default_currency: str,
    translate: Translator,
) -> tuple[dict[str, Any] | None, list[ImportRowError]]:
    errors = _check_common(values, index, vehicles_by_name, FINANCIAL_REQUIRED, FINANCIAL_NUMERIC, translate)
    if errors:
        return None, errors

    entry = {
        "vehicle_id": vehicles_by_name[values["vehicle_id"].lower()],
        "date": parse_date(values["date"]),
        "category": values["category"],
        "amount": parse_decimal(values["amount"]),
        "currency": values.get("currency") or default_currency,
        "notes": values.get("notes", ""),
    }
    return entry, []


def _check_common(
    values: dict[str, str],
    index: int,
    vehicles_by_name: dict[str, Any],
    required: tuple[str, ...],
    numeric: tuple[str, ...],
    translate: Translator,
) -> list[ImportRowError]:
    errors: list[ImportRowError] = []

    def add(field_name: str, message: str) -> None:
        errors.append(
            ImportRowError(row=index, field=_column_label(field_name), message=message, value=values.get(field_name, ""))
        )

    for field_name in required:
        if not values.get(field_name):
            add(field_name, translate("import.fieldRequired", {"field": _column_label(field_name)}))

    vehicle_name = values.get("vehicle_id")
    if vehicle_name and vehicle_name.lower() not in vehicles_by_name:
        add("vehicle_id", translate("import.vehicleNotFound"))

    for field_name in numeric:
        raw = values.get(field_name)
        if raw and parse_decimal(raw) is None:
            add(field_name, translate("import.invalidNumber", {"field": _column_label(field_name)}))

    raw_date = values.get("date")
    if raw_date and parse_date(raw_date) is None:
        add("date", translate("import.invalidDate"))

    return errors


def _column_label(field_name: str) -> str:
    for spec in EXPORTS.values():
        for label_key, column in spec.columns:
            if column == field_name:
                return lookup(label_key, EN) or field_name
    return field_name


def row_to_dict(fieldnames: list[str], row: list[str]) -> dict[str, str | None]:
    if len(row) < len(fieldnames):
        row = row + [""] * (len(fieldnames) - len(row))
    if len(row) > len(fieldnames):
        row = row[: len(fieldnames)]
    return dict(zip(fieldnames, row))


def parse_date(value: str | None) -> date | None:
    cleaned = clean_text(value)
    if not cleaned:
        return None
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(cleaned, fmt).date()
        except ValueError:
            continue
    try:
        return date.fromisoformat(cleaned)
    except ValueError:
        return None


def parse_decimal(value: str | None) -> Decimal | None:
    cleaned = clean_text(value)
    if not cleaned:
        return None
    cleaned = re.sub(r"\s+", "", cleaned.replace(",", ""))
    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        return None
    return amount if amount.is_finite() else None


def normalize_header(value: str) -> str:
    return re.sub(r"[^\w]", "", value.strip().lower())


def clean_text(value: str | None) -> str:
    return value.strip() if value else ""


def is_blank_row(row: list[str]) -> bool:
    return all(not clean_text(value) for value in row)
