from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from autolog.table_filters import (
    DATE_RANGE,
    DESC,
    MULTI_SELECT,
    SELECT,
    FilterOption,
    TableFilters,
)
from autolog.vocabulary import (
    CURRENCIES,
    EXPENSE_CATEGORIES,
    FUEL_COMPANIES,
    FUEL_TYPES,
    INCOME_CATEGORIES,
    PAYMENT_TYPES,
)

FUEL = "fuel"
EXPENSE = "expense"
INCOME = "income"


@dataclass(frozen=True)
class TableConfig:
    kind: str
    search_fields: tuple[str, ...]
    sort_fields: tuple[str, ...]
    filter_options: tuple[FilterOption, ...]
    default_sort_by: str = "date"
    default_sort_direction: str = DESC

    def with_vehicles(self, vehicle_ids: Iterable[str]) -> tuple[FilterOption, ...]:
        vehicle_filter = FilterOption(
            key="vehicle_id",
            type=SELECT,
            label="table.vehicle",
            options=tuple(str(vehicle_id) for vehicle_id in vehicle_ids),
        )
        return (vehicle_filter, *self.filter_options)

    def create_filters(self, vehicle_ids: Iterable[str] = ()) -> TableFilters:
        return TableFilters(
            search_fields=self.search_fields,
            filter_options=self.with_vehicles(vehicle_ids),
            initial_sort_by=self.default_sort_by,
            initial_sort_direction=self.default_sort_direction,
        )


_DATE_FILTER = FilterOption(key="date", type=DATE_RANGE, label="table.dateRange")
_CURRENCY_FILTER = FilterOption(
    key="currency", type=MULTI_SELECT, label="csv.currency", options=tuple(CURRENCIES)
)

FUEL_TABLE = TableConfig(
    kind=FUEL,
    search_fields=("fuel_company", "fuel_type", "location", "notes"),
    sort_fields=("date", "mileage", "volume", "cost", "fuel_company", "fuel_type"),
    filter_options=(
        FilterOption(key="fuel_company", type=SELECT, label="csv.fuelCompany", options=tuple(FUEL_COMPANIES)),
        FilterOption(key="fuel_type", type=SELECT, label="csv.fuelType", options=tuple(FUEL_TYPES)),
        FilterOption(key="payment_type", type=SELECT, label="csv.paymentType", options=tuple(PAYMENT_TYPES)),
        FilterOption(key="partial_fuel_up", type=SELECT, label="csv.partialFuelUp"),
        _CURRENCY_FILTER,
        _DATE_FILTER,
    ),
)

EXPENSE_TABLE = TableConfig(
    kind=EXPENSE,
    search_fields=("category", "notes"),
    sort_fields=("date", "amount", "category"),
    filter_options=(
        FilterOption(key="category", type=SELECT, label="csv.category", options=tuple(EXPENSE_CATEGORIES)),
        _CURRENCY_FILTER,
        _DATE_FILTER,
    ),
)

INCOME_TABLE = TableConfig(
    kind=INCOME,
    search_fields=("category", "notes"),
    sort_fields=("date", "amount", "category"),
    filter_options=(
        FilterOption(key="category", type=SELECT, label="csv.category", options=tuple(INCOME_CATEGORIES)),
        _CURRENCY_FILTER,
        _DATE_FILTER,
    ),
)

TABLES: dict[str, TableConfig] = {
    FUEL: FUEL_TABLE,
    EXPENSE: EXPENSE_TABLE,
    INCOME: INCOME_TABLE,
}
