"""Bilingual label dictionaries and the lookup helpers built on them.

Labels are nested dicts addressed by dot paths (``"csv.carName"``). Lookups
never raise: a missing or non-string node resolves to ``None`` and callers
fall back to the next candidate path, then to English, then to the key.
"""

from __future__ import annotations

import re
from typing import Any, Callable, Iterable, Mapping

from autolog.config import DEFAULT_LANGUAGE, SUPPORTED_LANGUAGES

Translator = Callable[..., str]

EN: dict[str, Any] = {
    "title": "AutoLog",
    "common": {
        "yes": "Yes",
        "no": "No",
        "unknownVehicle": "Unknown Vehicle",
    },
    "csv": {
        "carName": "Car Name",
        "date": "Date",
        "time": "Time",
        "fuelCompany": "Fuel Company",
        "fuelType": "Fuel Type",
        "mileage": "Mileage",
        "distanceUnit": "Distance Unit",
        "volume": "Volume",
        "volumeUnit": "Volume Unit",
        "cost": "Cost",
        "currency": "Currency",
        "location": "Location",
        "partialFuelUp": "Partial Fuel Up",
        "paymentType": "Payment Type",
        "tyrePressure": "Tyre Pressure",
        "tyrePressureUnit": "Tyre Pressure Unit",
        "tags": "Tags",
        "notes": "Notes",
        "category": "Category",
        "amount": "Amount",
    },
    "export": {
        "noFuelEntries": "No fuel entries to export",
        "noExpenseEntries": "No expense entries to export",
        "noIncomeEntries": "No income entries to export",
    },
    "import": {
        "fieldRequired": "{{field}} is required",
        "vehicleNotFound": "Vehicle not found. Please create the vehicle first.",
        "invalidNumber": "{{field}} must be a valid number",
        "invalidDate": "Date must be in valid format (YYYY-MM-DD)",
        "importedRows": {
            "zero": "No rows imported",
            "one": "{{count}} row imported",
            "other": "{{count}} rows imported",
        },
    },
    "table": {
        "showing": "Showing {{resultCount}} of {{totalCount}}",
        "noResults": "No matching entries",
        "search": "Search...",
        "dateRange": "Date Range",
        "vehicle": "Vehicle",
    },
}

ZH: dict[str, Any] = {
    "title": "AutoLog",
    "common": {
        "yes": "是",
        "no": "否",
        "unknownVehicle": "未知车辆",
    },
    "csv": {
        "carName": "车辆名称",
        "date": "日期",
        "time": "时间",
        "fuelCompany": "加油站",
        "fuelType": "燃料类型",
        "mileage": "里程",
        "distanceUnit": "距离单位",
        "volume": "油量",
        "volumeUnit": "容量单位",
        "cost": "费用",
        "currency": "货币",
        "location": "地点",
        "partialFuelUp": "部分加油",
        "paymentType": "支付方式",
        "tyrePressure": "胎压",
        "tyrePressureUnit": "胎压单位",
        "tags": "标签",
        "notes": "备注",
        "category": "类别",
        "amount": "金额",
    },
    "export": {
        "noFuelEntries": "没有可导出的加油记录",
        "noExpenseEntries": "没有可导出的支出记录",
        "noIncomeEntries": "没有可导出的收入记录",
    },
    "import": {
        "fieldRequired": "{{field}} 为必填项",
        "vehicleNotFound": "找不到车辆，请先创建车辆。",
        "invalidNumber": "{{field}} 必须是有效数字",
        "invalidDate": "日期格式必须为 YYYY-MM-DD",
        "importedRows": {
            "zero": "未导入任何记录",
            "other": "已导入 {{count}} 条记录",
            "one": "已导入 {{count}} 条记录",
        },
    },
    "table": {
        "showing": "显示 {{resultCount}} / {{totalCount}}",
        "noResults": "没有匹配的记录",
        "search": "搜索...",
        "dateRange": "日期范围",
        "vehicle": "车辆",
    },
}

TRANSLATIONS: dict[str, dict[str, Any]] = {"en": EN, "zh": ZH}

_PLACEHOLDER = re.compile(r"\{\{([^}]+)\}\}")


def resolve(path: str, translations: Mapping[str, Any] | None) -> Any:
    if not translations or not path:
        return None
    node: Any = translations
    for key in path.split("."):
        if not isinstance(node, Mapping):
            return None
        node = node.get(key)
        if node is None:
            return None
    return node


def lookup(path: str, translations: Mapping[str, Any] | None) -> str | None:
    value = resolve(path, translations)
    return value if isinstance(value, str) else None


def lookup_first(
    paths: Iterable[str],
    translations: Mapping[str, Any] | None,
    default: str | None = None,
) -> str | None:
    """Return the first candidate path that resolves to a string."""
    for path in paths:
        value = lookup(path, translations)
        if value is not None:
            return value
    return default


def interpolate(text: str, params: Mapping[str, Any] | None = None) -> str:
    if not params or not text:
        return text

    def replace(match: re.Match) -> str:
        key = match.group(1)
        value = params.get(key)
        return str(value) if value is not None else match.group(0)

    return _PLACEHOLDER.sub(replace, text)


def pluralize(
    count: int,
    forms: Mapping[str, str],
    params: Mapping[str, Any] | None = None,
) -> str:
    if count == 0 and forms.get("zero"):
        form = forms["zero"]
    elif count == 1:
        form = forms.get("one") or forms.get("other", "")
    else:
        form = forms.get("other", "")
    merged = dict(params or {})
    merged["count"] = count
    return interpolate(form, merged)


def normalize_language(value: str | None) -> str:
    if not value:
        return DEFAULT_LANGUAGE
    normalized = value.strip().lower().split("-")[0]
    if normalized not in SUPPORTED_LANGUAGES:
        return "en"
    return normalized


def get_translator(language: str | None = None) -> Translator:
    labels = TRANSLATIONS[normalize_language(language)]

    def translate(key: str, params: Mapping[str, Any] | None = None) -> str:
        candidates = (key, f"common.{key}")
        text = lookup_first(candidates, labels) or lookup_first(candidates, EN, key)
        return interpolate(text, params)

    return translate


def get_plural(language: str | None = None) -> Callable[..., str]:
    labels = TRANSLATIONS[normalize_language(language)]

    def plural(count: int, key: str, params: Mapping[str, Any] | None = None) -> str:
        forms = resolve(key, labels)
        if not isinstance(forms, Mapping):
            forms = resolve(key, EN)
        if not isinstance(forms, Mapping):
            return str(count)
        return pluralize(count, forms, params)

    return plural
