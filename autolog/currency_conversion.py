from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping

from autolog.table_filters import parse_calendar_date
from autolog.vocabulary import CURRENCY_NAMES

ZERO = Decimal("0")
BASE_CURRENCY = "USD"
KM_PER_MILE = Decimal("1.60934")
MAX_FILL_UP_DISTANCE_KM = Decimal("2000")

DEFAULT_RATES: dict[str, Decimal] = {
    "USD": Decimal("1.0"),
    "EUR": Decimal("0.85"),
    "GBP": Decimal("0.73"),
    "JPY": Decimal("110.0"),
    "HKD": Decimal("7.75"),
    "CAD": Decimal("1.25"),
    "AUD": Decimal("1.35"),
    "CHF": Decimal("0.92"),
    "CNY": Decimal("6.45"),
    "SGD": Decimal("1.35"),
    "NZD": Decimal("1.40"),
    "INR": Decimal("74.0"),
    "KRW": Decimal("1100.0"),
    "MXN": Decimal("20.0"),
    "BRL": Decimal("5.2"),
    "ZAR": Decimal("14.5"),
    "RUB": Decimal("75.0"),
    "SEK": Decimal("8.5"),
    "NOK": Decimal("8.8"),
    "DKK": Decimal("6.3"),
}

CURRENCY_SYMBOLS: dict[str, str] = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "HKD": "HK$",
    "CNY": "CN¥",
    "CAD": "CA$",
    "AUD": "A$",
    "NZD": "NZ$",
    "SGD": "S$",
    "INR": "₹",
    "KRW": "₩",
    "MXN": "MX$",
    "BRL": "R$",
}


@dataclass(frozen=True)
class StaticRateProvider:
    """In-memory FX rates expressed as target currency per 1 USD.

    Codes missing from the table resolve to a rate of 1, i.e. they are
    treated as already being in USD.
    """

    rates: Mapping[str, Decimal] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "rates", dict(self.rates or DEFAULT_RATES))

    def get_rate(self, currency: str) -> Decimal:
        return self.rates.get(_normalize_code(currency), Decimal("1"))


@dataclass
class CurrencyStats:
    currency: str
    total_fuel_cost: Decimal = ZERO
    total_expense_cost: Decimal = ZERO
    total_income: Decimal = ZERO
    net_cost: Decimal = ZERO
    entry_count: int = 0


@dataclass(frozen=True)
class CurrencyBreakdown:
    by_currency: list[CurrencyStats]
    total_in_base_currency: Decimal
    base_currency: str


@dataclass(frozen=True)
class CostPerDistance:
    total_cost: Decimal
    total_distance: Decimal
    cost_per_distance: Decimal | None


def convert_currency(
    amount: Decimal | int | float | str,
    from_currency: str,
    to_currency: str,
    rate_provider: StaticRateProvider | None = None,
) -> Decimal:
    """Convert through USD: ``amount / rate[from] * rate[to]``.

    An amount that is not a finite number converts to ``Decimal("NaN")``.
    """
    coerced_amount = coerce_amount(amount)
    if coerced_amount is None:
        return Decimal("NaN")
    if _normalize_code(from_currency) == _normalize_code(to_currency):
        return coerced_amount

    provider = rate_provider or StaticRateProvider()
    amount_in_usd = coerced_amount / provider.get_rate(from_currency)
    return amount_in_usd * provider.get_rate(to_currency)


def calculate_currency_stats(
    fuel_entries: Iterable[Any],
    expense_entries: Iterable[Any],
    income_entries: Iterable[Any],
    rate_provider: StaticRateProvider | None = None,
) -> CurrencyBreakdown:
    stats_by_currency: dict[str, CurrencyStats] = {}

    def accumulate(entries: Iterable[Any], amount_field: str, total_field: str) -> None:
        for entry in entries:
            currency = _normalize_code(_field(entry, "currency"))
            amount = coerce_amount(_field(entry, amount_field))
            if not currency or amount is None:
                continue
            stats = stats_by_currency.setdefault(currency, CurrencyStats(currency=currency))
            setattr(stats, total_field, getattr(stats, total_field) + amount)
            stats.entry_count += 1

    accumulate(fuel_entries, "cost", "total_fuel_cost")
    accumulate(expense_entries, "amount", "total_expense_cost")
    accumulate(income_entries, "amount", "total_income")

    by_currency: list[CurrencyStats] = []
    total_in_base_currency = ZERO
    for currency, stats in stats_by_currency.items():
        if stats.entry_count == 0:
            continue
        stats.net_cost = stats.total_fuel_cost + stats.total_expense_cost - stats.total_income
        by_currency.append(stats)
        total_in_base_currency += convert_currency(
            stats.net_cost, currency, BASE_CURRENCY, rate_provider=rate_provider
        )

    by_currency.sort(key=lambda stats: abs(stats.net_cost), reverse=True)
    return CurrencyBreakdown(
        by_currency=by_currency,
        total_in_base_currency=total_in_base_currency,
        base_currency=BASE_CURRENCY,
    )


def calculate_cost_per_distance(fuel_entries: Iterable[Any], currency: str) -> CostPerDistance:
    """Fuel cost per kilometre from consecutive odometer readings.

    Each fill-up's cost is paired with the distance since the previous
    fill-up in the same currency. Readings in miles are converted to km;
    non-positive or implausibly long (> 2000 km) gaps are skipped.
    """
    target = _normalize_code(currency)
    relevant = [
        entry
        for entry in fuel_entries
        if _normalize_code(_field(entry, "currency")) == target
        and parse_calendar_date(_field(entry, "date")) is not None
    ]
    if len(relevant) < 2:
        return CostPerDistance(total_cost=ZERO, total_distance=ZERO, cost_per_distance=None)

    relevant.sort(key=lambda entry: parse_calendar_date(_field(entry, "date")) or date.min)

    total_cost = ZERO
    total_distance = ZERO
    for previous, current in zip(relevant, relevant[1:]):
        mileage = coerce_amount(_field(current, "mileage"))
        previous_mileage = coerce_amount(_field(previous, "mileage"))
        cost = coerce_amount(_field(current, "cost"))
        if mileage is None or previous_mileage is None or cost is None:
            continue

        distance = mileage - previous_mileage
        if _field(current, "distance_unit") != "km":
            distance *= KM_PER_MILE
        if distance <= 0 or distance > MAX_FILL_UP_DISTANCE_KM:
            continue

        total_cost += cost
        total_distance += distance

    cost_per_distance = total_cost / total_distance if total_distance > 0 else None
    return CostPerDistance(
        total_cost=total_cost,
        total_distance=total_distance,
        cost_per_distance=cost_per_distance,
    )


def format_currency(amount: Decimal | int | float | str, currency: str) -> str:
    code = _normalize_code(currency)
    value = coerce_amount(amount)
    if value is None:
        value = ZERO
    symbol = CURRENCY_SYMBOLS.get(code)
    if symbol is None:
        return f"{code} {value:.2f}"
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{abs(value):,.2f}"


def get_currency_name(code: str) -> str:
    return CURRENCY_NAMES.get(_normalize_code(code), code)


def coerce_amount(value: Any) -> Decimal | None:
    """Return a finite ``Decimal`` or ``None`` for anything non-numeric."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    try:
        parsed = Decimal(str(value).strip())
    except InvalidOperation:
        return None
    return parsed if parsed.is_finite() else None


def _normalize_code(value: Any) -> str:
    if not isinstance(value, str):
        return ""
    return value.strip().upper()


def _field(entry: Any, name: str) -> Any:
    if isinstance(entry, Mapping):
        return entry.get(name)
    return getattr(entry, name, None)
