"""CSV export of fuel, expense and income entries.

Documents use the column order below with headers translated through the
label lookup. The vehicle id column is written as the vehicle's name.
Values containing a comma, double quote or newline are quoted with inner
quotes doubled; ``None`` is written as an empty cell.

Nothing here touches the filesystem: a finished document is handed to a
``download(filename, content)`` callable and an empty selection is reported
through ``notify(message)`` instead.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Iterable, Mapping, Sequence

from autolog.logging_setup import get_logger
from autolog.table_config import EXPENSE, FUEL, INCOME
from autolog.table_filters import DATE_RANGE, SELECT, DateRange, FilterOption, filter_records
from autolog.translations import Translator, get_translator

logger = get_logger(__name__)

Download = Callable[[str, str], Any]
Notify = Callable[[str], Any]

VEHICLE_COLUMN = "vehicle_id"
QUOTED_CHARS = (",", '"', "\n", "\r")


@dataclass(frozen=True)
class ExportSpec:
    kind: str
    columns: tuple[tuple[str, str], ...]
    empty_notice: str

    @property
    def filename_prefix(self) -> str:
        return f"{self.kind}_entries"


FUEL_EXPORT = ExportSpec(
    kind=FUEL,
    columns=(
        ("csv.carName", VEHICLE_COLUMN),
        ("csv.date", "date"),
        ("csv.time", "time"),
        ("csv.fuelCompany", "fuel_company"),
        ("csv.fuelType", "fuel_type"),
        ("csv.mileage", "mileage"),
        ("csv.distanceUnit", "distance_unit"),
        ("csv.volume", "volume"),
        ("csv.volumeUnit", "volume_unit"),
        ("csv.cost", "cost"),
        ("csv.currency", "currency"),
        ("csv.location", "location"),
        ("csv.partialFuelUp", "partial_fuel_up"),
        ("csv.paymentType", "payment_type"),
        ("csv.tyrePressure", "tyre_pressure"),
        ("csv.tyrePressureUnit", "tyre_pressure_unit"),
        ("csv.tags", "tags"),
        ("csv.notes", "notes"),
    ),
    empty_notice="export.noFuelEntries",
)

_FINANCIAL_COLUMNS = (
    ("csv.carName", VEHICLE_COLUMN),
    ("csv.date", "date"),
    ("csv.category", "category"),
    ("csv.amount", "amount"),
    ("csv.currency", "currency"),
    ("csv.notes", "notes"),
)

EXPENSE_EXPORT = ExportSpec(kind=EXPENSE, columns=_FINANCIAL_COLUMNS, empty_notice="export.noExpenseEntries")
INCOME_EXPORT = ExportSpec(kind=INCOME, columns=_FINANCIAL_COLUMNS, empty_notice="export.noIncomeEntries")

EXPORTS: dict[str, ExportSpec] = {
    FUEL: FUEL_EXPORT,
    EXPENSE: EXPENSE_EXPORT,
    INCOME: INCOME_EXPORT,
}


def vehicle_names(vehicles: Iterable[Mapping[str, Any]]) -> dict[str, str]:
    names: dict[str, str] = {}
    for vehicle in vehicles:
        for key in ("id", "_id"):
            if vehicle.get(key) is not None:
                names[str(vehicle[key])] = vehicle.get("name") or ""
    return names


def escape_csv_value(value: Any) -> str:
    if value is None:
        return ""
    text = str(value)
    if any(char in text for char in QUOTED_CHARS):
        return '"' + text.replace('"', '""') + '"'
    return text


def format_cell(value: Any, translate: Translator) -> Any:
    if value is None:
        return None
    if isinstance(value, bool):
        return translate("common.yes" if value else "common.no")
    if isinstance(value, (list, tuple)):
        return "; ".join(str(item) for item in value if item is not None)
    if isinstance(value, date):
        return value.isoformat()
    return value


def entries_to_csv(
    spec: ExportSpec,
    entries: Sequence[Mapping[str, Any]],
    vehicles: Iterable[Mapping[str, Any]],
    translate: Translator | None = None,
) -> str:
    translate = translate or get_translator()
    names = vehicle_names(vehicles)
    unknown_vehicle = translate("common.unknownVehicle")

    rows = [[translate(label) for label, _ in spec.columns]]
    for entry in entries:
        row = []
        for _, field_name in spec.columns:
            if field_name == VEHICLE_COLUMN:
                row.append(names.get(str(entry.get(VEHICLE_COLUMN)), unknown_vehicle))
            else:
                row.append(format_cell(entry.get(field_name), translate))
        rows.append(row)
    return "\n".join(",".join(escape_csv_value(cell) for cell in row) for row in rows)


def fuel_entries_to_csv(entries, vehicles, translate: Translator | None = None) -> str:
    return entries_to_csv(FUEL_EXPORT, entries, vehicles, translate)


def expense_entries_to_csv(entries, vehicles, translate: Translator | None = None) -> str:
    return entries_to_csv(EXPENSE_EXPORT, entries, vehicles, translate)


def income_entries_to_csv(entries, vehicles, translate: Translator | None = None) -> str:
    return entries_to_csv(INCOME_EXPORT, entries, vehicles, translate)


def default_filename(spec: ExportSpec, today: date | None = None) -> str:
    return f"{spec.filename_prefix}_{(today or date.today()).isoformat()}.csv"


def export_entries(
    spec: ExportSpec,
    entries: Sequence[Mapping[str, Any]],
    vehicles: Iterable[Mapping[str, Any]],
    filename: str | None = None,
    *,
    download: Download,
    notify: Notify,
    translate: Translator | None = None,
    today: date | None = None,
) -> str | None:
    """Serialize ``entries`` and hand the document to ``download``.

    Returns the filename used, or ``None`` when there was nothing to export
    (``notify`` receives the empty-export notice in that case).
    """
    translate = translate or get_translator()
    if not entries:
        notify(translate(spec.empty_notice))
        return None

    content = entries_to_csv(spec, entries, vehicles, translate)
    resolved_filename = filename or default_filename(spec, today)
    download(resolved_filename, content)
    logger.info("Exported %d %s entries to %s", len(entries), spec.kind, resolved_filename)
    return resolved_filename


def export_fuel_entries(entries, vehicles, filename=None, **kwargs) -> str | None:
    return export_entries(FUEL_EXPORT, entries, vehicles, filename, **kwargs)


def export_expense_entries(entries, vehicles, filename=None, **kwargs) -> str | None:
    return export_entries(EXPENSE_EXPORT, entries, vehicles, filename, **kwargs)


def export_income_entries(entries, vehicles, filename=None, **kwargs) -> str | None:
    return export_entries(INCOME_EXPORT, entries, vehicles, filename, **kwargs)


def select_for_export(
    entries: Sequence[Mapping[str, Any]],
    *,
    vehicle_id: Any = None,
    category: str | None = None,
    start_date: date | str | None = None,
    end_date: date | str | None = None,
) -> list[Mapping[str, Any]]:
    filters: dict[str, Any] = {
        VEHICLE_COLUMN: vehicle_id,
        "category": category,
        "date": DateRange(start_date=start_date or None, end_date=end_date or None),
    }
    options = (
        FilterOption(key=VEHICLE_COLUMN, type=SELECT),
        FilterOption(key="category", type=SELECT),
        FilterOption(key="date", type=DATE_RANGE),
    )
    return filter_records(entries, filters, options)


def export_filtered_entries(
    spec: ExportSpec,
    entries: Sequence[Mapping[str, Any]],
    vehicles: Iterable[Mapping[str, Any]],
    *,
    vehicle_id: Any = None,
    category: str | None = None,
    start_date: date | str | None = None,
    end_date: date | str | None = None,
    filename: str | None = None,
    **kwargs,
) -> str | None:
    selected = select_for_export(
        entries,
        vehicle_id=vehicle_id,
        category=category if spec.kind != FUEL else None,
        start_date=start_date,
        end_date=end_date,
    )
    return export_entries(spec, selected, vehicles, filename, **kwargs)
