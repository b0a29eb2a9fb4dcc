"""Search, filter and sort pipeline for record tables.

Records are plain mappings (one fuel, expense or income entry each). Every
stage returns a new list and never mutates its input. Malformed values
degrade to "no match" (search and filters) or to a string comparison
(sort) instead of raising.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from functools import cmp_to_key
from typing import Any, Iterable, Mapping, Sequence

Record = Mapping[str, Any]

SELECT = "select"
MULTI_SELECT = "multiSelect"
DATE_RANGE = "dateRange"

ASC = "asc"
DESC = "desc"

DATE_FIELD = "date"
DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}")


@dataclass(frozen=True)
class FilterOption:
    key: str
    type: str
    label: str = ""
    options: tuple[str, ...] = ()


@dataclass(frozen=True)
class DateRange:
    start_date: date | str | None = None
    end_date: date | str | None = None


@dataclass(frozen=True)
class FilterResult:
    records: list[Record]
    total_count: int
    result_count: int


class SortDirection:
    values = {ASC, DESC}

    @classmethod
    def validate(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in cls.values:
            raise ValueError("Sort direction must be 'asc' or 'desc'.")
        return normalized


def parse_calendar_date(value: Any) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not DATE_PATTERN.match(value.strip()):
        return None
    try:
        return datetime.strptime(value.strip()[:10], "%Y-%m-%d").date()
    except ValueError:
        return None


def is_numeric(value: Any) -> bool:
    if isinstance(value, Decimal):
        return not value.is_nan()
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def search_records(
    records: Sequence[Record], term: str | None, search_fields: Iterable[str]
) -> list[Record]:
    if not term or not term.strip():
        return list(records)
    needle = term.lower()
    fields = list(search_fields)
    return [
        record
        for record in records
        if any(needle in _searchable_text(record.get(name)) for name in fields)
    ]


def filter_records(
    records: Sequence[Record],
    filters: Mapping[str, Any],
    filter_options: Iterable[FilterOption],
) -> list[Record]:
    options = {option.key: option for option in filter_options}
    active = [
        (key, value, options[key])
        for key, value in filters.items()
        if not _is_empty_filter_value(value) and key in options
    ]
    if not active:
        return list(records)
    return [
        record
        for record in records
        if all(_matches_filter(record.get(key), value, option.type) for key, value, option in active)
    ]


def sort_records(
    records: Sequence[Record],
    sort_by: str | None,
    direction: str = DESC,
    *,
    date_field: str = DATE_FIELD,
) -> list[Record]:
    """Stable sort by one field. Ties keep their input order in both directions."""
    if not sort_by:
        return list(records)

    def compare(left: Record, right: Record) -> int:
        return _compare_values(left.get(sort_by), right.get(sort_by), sort_by == date_field)

    return sorted(records, key=cmp_to_key(compare), reverse=direction == DESC)


def apply_table_query(
    records: Sequence[Record],
    *,
    search_fields: Iterable[str],
    search_term: str | None = "",
    filters: Mapping[str, Any] | None = None,
    filter_options: Iterable[FilterOption] = (),
    sort_by: str | None = DATE_FIELD,
    sort_direction: str = DESC,
) -> list[Record]:
    result = search_records(records, search_term, search_fields)
    result = filter_records(result, filters or {}, filter_options)
    return sort_records(result, sort_by, sort_direction)


class TableFilters:
    """Per-table search, filter and sort state."""

    def __init__(
        self,
        search_fields: Iterable[str],
        filter_options: Iterable[FilterOption] = (),
        initial_sort_by: str = DATE_FIELD,
        initial_sort_direction: str = DESC,
    ) -> None:
        self.search_fields = tuple(search_fields)
        self.filter_options = tuple(filter_options)
        self.search_term = ""
        self.sort_by = initial_sort_by
        self.sort_direction = SortDirection.validate(initial_sort_direction)
        self.show_filters = False
        self.filters: dict[str, Any] = {}

    def set_search_term(self, term: str | None) -> None:
        self.search_term = term or ""

    def set_sort_by(self, sort_by: str) -> None:
        self.sort_by = sort_by

    def set_sort_direction(self, direction: str) -> None:
        self.sort_direction = SortDirection.validate(direction)

    def set_show_filters(self, show: bool) -> None:
        self.show_filters = show

    def handle_sort_change(self, sort_by: str, direction: str) -> None:
        self.sort_direction = SortDirection.validate(direction)
        self.sort_by = sort_by

    def update_filter(self, key: str, value: Any) -> None:
        if value is None or value == "":
            self.filters.pop(key, None)
        else:
            self.filters[key] = value

    def reset_filters(self) -> None:
        self.filters = {}
        self.search_term = ""

    def apply(self, records: Sequence[Record]) -> FilterResult:
        result = apply_table_query(
            records,
            search_fields=self.search_fields,
            search_term=self.search_term,
            filters=self.filters,
            filter_options=self.filter_options,
            sort_by=self.sort_by,
            sort_direction=self.sort_direction,
        )
        return FilterResult(records=result, total_count=len(records), result_count=len(result))


def _searchable_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple, set)):
        return " ".join(str(item) for item in value if item is not None).lower()
    if isinstance(value, date):
        return value.isoformat()
    return str(value).lower()


def _is_empty_filter_value(value: Any) -> bool:
    return value is None or value == ""


def _matches_filter(item_value: Any, filter_value: Any, kind: str) -> bool:
    if kind == SELECT:
        return _equals_coerced(item_value, filter_value)
    if kind == MULTI_SELECT:
        if not isinstance(filter_value, (list, tuple, set, frozenset)) or not filter_value:
            return True
        return any(_equals_coerced(item_value, accepted) for accepted in filter_value)
    if kind == DATE_RANGE:
        return _in_date_range(item_value, filter_value)
    return True


def _equals_coerced(item_value: Any, filter_value: Any) -> bool:
    if item_value is None:
        return False
    if isinstance(item_value, bool):
        if isinstance(filter_value, bool):
            return item_value is filter_value
        return str(filter_value).strip().lower() == ("true" if item_value else "false")
    if is_numeric(item_value):
        left = _to_decimal(item_value)
        right = _to_decimal(filter_value)
        return left is not None and right is not None and left == right
    if isinstance(item_value, str):
        return item_value == str(filter_value)
    return item_value == filter_value


def _in_date_range(item_value: Any, filter_value: Any) -> bool:
    start_raw, end_raw = _range_bounds(filter_value)
    start = parse_calendar_date(start_raw)
    end = parse_calendar_date(end_raw)
    if start is None and end is None:
        return True
    item_date = parse_calendar_date(item_value)
    if item_date is None:
        return False
    if start is not None and item_date < start:
        return False
    if end is not None and item_date > end:
        return False
    return True


def _range_bounds(filter_value: Any) -> tuple[Any, Any]:
    if isinstance(filter_value, DateRange):
        return filter_value.start_date, filter_value.end_date
    if isinstance(filter_value, Mapping):
        start = filter_value.get("start_date", filter_value.get("startDate"))
        end = filter_value.get("end_date", filter_value.get("endDate"))
        return start, end
    return None, None


def _compare_values(left: Any, right: Any, is_date_field: bool) -> int:
    # Missing values sort after present ones in ascending order.
    if left is None or right is None:
        if left is None and right is None:
            return 0
        return 1 if left is None else -1

    if is_date_field or _looks_like_date(left):
        left_date = parse_calendar_date(left)
        right_date = parse_calendar_date(right)
        if left_date is not None and right_date is not None:
            return _cmp(left_date, right_date)

    if is_numeric(left) and is_numeric(right):
        return _cmp(left, right)

    return _cmp(_sort_text(left), _sort_text(right))


def _looks_like_date(value: Any) -> bool:
    if isinstance(value, date):
        return True
    return isinstance(value, str) and bool(DATE_PATTERN.match(value))


def _sort_text(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return "; ".join(str(item) for item in value).lower()
    if isinstance(value, date):
        return value.isoformat()
    return str(value).lower()


def _cmp(left: Any, right: Any) -> int:
    if left < right:
        return -1
    if left > right:
        return 1
    return 0


def _to_decimal(value: Any) -> Decimal | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, Decimal):
        return value
    try:
        parsed = Decimal(str(value).strip())
    except InvalidOperation:
        return None
    return None if parsed.is_nan() else parsed
