from datetime import date, datetime
from decimal import Decimal
from typing import Any
from urllib.parse import quote

import bcrypt
from fastapi import FastAPI, File, Header, HTTPException, Query, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from pydantic import BaseModel
from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    create_engine,
    func,
    insert,
    select,
    update,
)
from sqlalchemy.exc import IntegrityError

from autolog.config import (
    DATABASE_URL,
    FRONTEND_ORIGIN,
    PAGE_SIZE,
    SYSTEM_DEFAULT_CURRENCY,
    normalize_currency,
)
from autolog.csv_export import EXPORTS, default_filename, export_filtered_entries
from autolog.csv_import import parse_import_csv
from autolog.currency_conversion import (
    calculate_cost_per_distance,
    calculate_currency_stats,
    format_currency,
)
from autolog.logging_setup import configure_logging, get_logger
from autolog.table_config import EXPENSE, FUEL, INCOME, TABLES
from autolog.table_filters import DateRange
from autolog.translations import get_plural, get_translator, normalize_language
from autolog.vocabulary import (
    FUEL_CONSUMPTION_UNITS,
    DistanceUnit,
    VehicleType,
    as_options,
    brands_for,
)

app = FastAPI()
logger = get_logger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[FRONTEND_ORIGIN],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

connect_args = {}
if DATABASE_URL.startswith("sqlite"):
    connect_args = {"check_same_thread": False}

engine = create_engine(DATABASE_URL, connect_args=connect_args)
metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), unique=True, nullable=False),
    Column("hashed_password", String(255), nullable=False),
    Column("created_at", DateTime, nullable=False, server_default=func.now()),
)

user_preferences = Table(
    "user_preferences",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id"), unique=True, nullable=False),
    Column("language", String(5), nullable=False, server_default="en"),
    Column("default_currency", String(3), nullable=False, server_default=SYSTEM_DEFAULT_CURRENCY),
    Column("default_distance_unit", String(10), nullable=False, server_default="km"),
    Column("default_volume_unit", String(20), nullable=False, server_default="liters"),
    Column("default_tyre_pressure_unit", String(10), nullable=False, server_default="bar"),
    Column("default_payment_type", String(50), nullable=False, server_default="Cash"),
    Column("fuel_consumption_unit", String(10), nullable=False, server_default="L/100km"),
)

vehicles = Table(
    "vehicles",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id"), nullable=False),
    Column("name", String(255), nullable=False),
    Column("vehicle_type", String(50), nullable=False),
    Column("brand", String(100), nullable=False),
    Column("model", String(100), nullable=False),
    Column("custom_model", String(100)),
    Column("year", Integer),
    Column("description", String(500), nullable=False, server_default=""),
    Column("distance_unit", String(10), nullable=False, server_default="km"),
    Column("fuel_unit", String(20), nullable=False, server_default="L"),
    Column("consumption_unit", String(10), nullable=False, server_default="L/100km"),
    Column("fuel_type", String(100), nullable=False, server_default=""),
    Column("tank_capacity", Numeric(8, 2)),
    Column("license_plate", String(50), nullable=False, server_default=""),
    Column("vin", String(50), nullable=False, server_default=""),
    Column("insurance_policy", String(100), nullable=False, server_default=""),
    Column("date_added", DateTime, nullable=False, server_default=func.now()),
)

fuel_entries = Table(
    "fuel_entries",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id"), nullable=False),
    Column("vehicle_id", Integer, ForeignKey("vehicles.id"), nullable=False),
    Column("fuel_company", String(100), nullable=False, server_default=""),
    Column("fuel_type", String(100), nullable=False, server_default=""),
    Column("mileage", Numeric(12, 1), nullable=False),
    Column("distance_unit", String(10), nullable=False),
    Column("volume", Numeric(10, 3), nullable=False),
    Column("volume_unit", String(20), nullable=False),
    Column("cost", Numeric(12, 2), nullable=False),
    Column("currency", String(3), nullable=False),
    Column("date", Date, nullable=False),
    Column("time", String(5), nullable=False),
    Column("location", String(255), nullable=False, server_default=""),
    Column("partial_fuel_up", Boolean, nullable=False, server_default="0"),
    Column("payment_type", String(50), nullable=False),
    Column("tyre_pressure", Numeric(6, 2)),
    Column("tyre_pressure_unit", String(10)),
    Column("tags", JSON, nullable=False, default=list),
    Column("notes", String(500), nullable=False, server_default=""),
    Column("created_at", DateTime, nullable=False, server_default=func.now()),
)


def financial_entries_table(name: str) -> Table:
    return Table(
        name,
        metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("user_id", Integer, ForeignKey("users.id"), nullable=False),
        Column("vehicle_id", Integer, ForeignKey("vehicles.id"), nullable=False),
        Column("category", String(100), nullable=False),
        Column("amount", Numeric(12, 2), nullable=False),
        Column("currency", String(3), nullable=False),
        Column("date", Date, nullable=False),
        Column("notes", String(500), nullable=False, server_default=""),
        Column("created_at", DateTime, nullable=False, server_default=func.now()),
    )


expense_entries = financial_entries_table("expense_entries")
income_entries = financial_entries_table("income_entries")

ENTRY_TABLES = {
    FUEL: fuel_entries,
    EXPENSE: expense_entries,
    INCOME: income_entries,
}
ENTRY_LABELS = {
    FUEL: "Fuel entry",
    EXPENSE: "Expense entry",
    INCOME: "Income entry",
}


@app.on_event("startup")
def init_db() -> None:
    configure_logging()
    metadata.create_all(engine)


class CredentialsPayload(BaseModel):
    email: str
    password: str


class UserResponse(BaseModel):
    id: int
    email: str
    created_at: datetime | None = None


class PreferencesPayload(BaseModel):
    language: str | None = None
    default_currency: str | None = None
    default_distance_unit: str | None = None
    default_volume_unit: str | None = None
    default_tyre_pressure_unit: str | None = None
    default_payment_type: str | None = None
    fuel_consumption_unit: str | None = None

    @classmethod
    def validate_payload(cls, payload: "PreferencesPayload") -> "PreferencesPayload":
        if payload.language is not None:
            language = payload.language.strip().lower()
            if normalize_language(language) != language:
                raise ValueError("Language must be 'en' or 'zh'.")
            payload.language = language
        if payload.default_currency is not None:
            payload.default_currency = normalize_currency(payload.default_currency)
        if payload.default_distance_unit is not None:
            payload.default_distance_unit = DistanceUnit.validate(payload.default_distance_unit)
        if payload.fuel_consumption_unit is not None and payload.fuel_consumption_unit not in FUEL_CONSUMPTION_UNITS:
            raise ValueError("Invalid fuel consumption unit.")
        return payload


class PreferencesResponse(BaseModel):
    user_id: int
    language: str
    default_currency: str
    default_distance_unit: str
    default_volume_unit: str
    default_tyre_pressure_unit: str
    default_payment_type: str
    fuel_consumption_unit: str


class VehiclePayload(BaseModel):
    name: str
    vehicle_type: str
    brand: str
    model: str
    custom_model: str | None = None
    year: int | None = None
    description: str = ""
    distance_unit: str = "km"
    fuel_unit: str = "L"
    consumption_unit: str = "L/100km"
    fuel_type: str = ""
    tank_capacity: Decimal | None = None
    license_plate: str = ""
    vin: str = ""
    insurance_policy: str = ""

    @classmethod
    def validate_payload(cls, payload: "VehiclePayload") -> "VehiclePayload":
        payload.name = payload.name.strip()
        payload.brand = payload.brand.strip()
        payload.model = payload.model.strip()
        if not payload.name:
            raise ValueError("Vehicle name required.")
        if not payload.brand or not payload.model:
            raise ValueError("Vehicle brand and model required.")
        payload.vehicle_type = VehicleType.validate(payload.vehicle_type)
        payload.distance_unit = DistanceUnit.validate(payload.distance_unit)
        if payload.consumption_unit not in FUEL_CONSUMPTION_UNITS:
            raise ValueError("Invalid fuel consumption unit.")
        if payload.tank_capacity is not None and payload.tank_capacity <= 0:
            raise ValueError("Tank capacity must be greater than zero.")
        payload.custom_model = payload.custom_model.strip() if payload.custom_model else None
        return payload


class VehicleResponse(VehiclePayload):
    id: int
    user_id: int
    date_added: datetime | None = None


class FuelEntryPayload(BaseModel):
    vehicle_id: int
    fuel_company: str = ""
    fuel_type: str = ""
    mileage: Decimal
    distance_unit: str = "km"
    volume: Decimal
    volume_unit: str = "liters"
    cost: Decimal
    currency: str | None = None
    date: date
    time: str | None = None
    location: str = ""
    partial_fuel_up: bool = False
    payment_type: str = "Cash"
    tyre_pressure: Decimal | None = None
    tyre_pressure_unit: str | None = None
    tags: list[str] = []
    notes: str = ""

    @classmethod
    def validate_payload(cls, payload: "FuelEntryPayload") -> "FuelEntryPayload":
        if payload.volume <= 0:
            raise ValueError("Volume must be a valid positive number")
        if payload.mileage < 0:
            raise ValueError("Mileage must be a valid non-negative number")
        if payload.cost < 0:
            raise ValueError("Cost must be a valid non-negative number")
        payload.distance_unit = DistanceUnit.validate(payload.distance_unit)
        payload.fuel_company = payload.fuel_company.strip()
        payload.fuel_type = payload.fuel_type.strip()
        payload.location = payload.location.strip()
        payload.notes = payload.notes.strip()
        payload.currency = payload.currency.strip() if payload.currency else None
        payload.time = (payload.time or "").strip() or datetime.now().strftime("%H:%M")
        payload.tags = [tag.strip() for tag in payload.tags if tag and tag.strip()]
        return payload


class FuelEntryResponse(FuelEntryPayload):
    id: int
    user_id: int
    currency: str
    time: str


class FinancialEntryPayload(BaseModel):
    vehicle_id: int
    category: str
    amount: Decimal
    currency: str | None = None
    date: date
    notes: str = ""

    @classmethod
    def validate_payload(cls, payload: "FinancialEntryPayload") -> "FinancialEntryPayload":
        payload.category = payload.category.strip()
        if not payload.category:
            raise ValueError("Category required.")
        if payload.amount <= 0:
            raise ValueError("Amount must be greater than zero.")
        payload.currency = payload.currency.strip() if payload.currency else None
        payload.notes = payload.notes.strip()
        return payload


class FinancialEntryResponse(FinancialEntryPayload):
    id: int
    user_id: int
    currency: str


class FuelEntryListResponse(BaseModel):
    entries: list[FuelEntryResponse]
    total_count: int
    result_count: int
    has_more: bool


class FinancialEntryListResponse(BaseModel):
    entries: list[FinancialEntryResponse]
    total_count: int
    result_count: int
    has_more: bool


class CurrencyStatsResponse(BaseModel):
    currency: str
    total_fuel_cost: Decimal
    total_expense_cost: Decimal
    total_income: Decimal
    net_cost: Decimal
    entry_count: int


class CostPerDistanceResponse(BaseModel):
    currency: str
    total_cost: Decimal
    total_distance: Decimal
    cost_per_distance: Decimal | None


class StatisticsResponse(BaseModel):
    by_currency: list[CurrencyStatsResponse]
    total_in_base_currency: Decimal
    formatted_total: str
    base_currency: str
    cost_per_distance: list[CostPerDistanceResponse]


class ImportRowErrorResponse(BaseModel):
    row: int
    field: str
    message: str
    value: str


class ImportResponse(BaseModel):
    imported_count: int
    total_rows: int
    message: str
    errors: list[ImportRowErrorResponse]


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed_password: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), hashed_password.encode("utf-8"))


def get_user_id(x_user_id: str | None = Header(None)) -> int:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing user identity.")
    try:
        user_id = int(x_user_id)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Invalid user identity.") from exc
    with engine.begin() as conn:
        result = conn.execute(select(users.c.id).where(users.c.id == user_id))
        if not result.first():
            raise HTTPException(status_code=404, detail="User not found.")
    return user_id


def ensure_default_preferences(conn, user_id: int) -> dict:
    row = conn.execute(
        select(user_preferences).where(user_preferences.c.user_id == user_id)
    ).mappings().first()
    if row:
        return dict(row)
    conn.execute(insert(user_preferences).values(user_id=user_id))
    return dict(
        conn.execute(
            select(user_preferences).where(user_preferences.c.user_id == user_id)
        ).mappings().one()
    )


def resolve_currency(value: str | None, conn, user_id: int) -> str:
    if value:
        return normalize_currency(value)
    preferences = ensure_default_preferences(conn, user_id)
    try:
        return normalize_currency(preferences["default_currency"])
    except ValueError:
        return SYSTEM_DEFAULT_CURRENCY


def resolve_language(value: str | None, user_id: int) -> str:
    if value:
        return normalize_language(value)
    with engine.begin() as conn:
        preferences = ensure_default_preferences(conn, user_id)
    return normalize_language(preferences["language"])


def attachment_header(filename: str, default: str) -> str:
    """Content-Disposition with an ASCII ``filename`` and an RFC 5987 ``filename*``."""
    fallback = "".join(char for char in filename if 32 <= ord(char) < 127 and char not in '"\\')
    if not fallback.rsplit(".", 1)[0].strip():
        fallback = default
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"


def ensure_vehicle(conn, user_id: int, vehicle_id: int) -> None:
    exists = conn.execute(
        select(vehicles.c.id).where(vehicles.c.id == vehicle_id, vehicles.c.user_id == user_id)
    ).first()
    if not exists:
        raise HTTPException(status_code=404, detail="Vehicle not found.")


def fetch_vehicle_records(user_id: int) -> list[dict]:
    with engine.begin() as conn:
        rows = conn.execute(
            select(vehicles).where(vehicles.c.user_id == user_id).order_by(vehicles.c.date_added.desc(), vehicles.c.id.desc())
        ).mappings().all()
    return [dict(row) for row in rows]


def fetch_entry_records(kind: str, user_id: int, vehicle_id: int | None = None) -> list[dict]:
    table = ENTRY_TABLES[kind]
    conditions = [table.c.user_id == user_id]
    if vehicle_id is not None:
        conditions.append(table.c.vehicle_id == vehicle_id)
    order_by = [table.c.date.desc()]
    if kind == FUEL:
        order_by.append(table.c.time.desc())
    order_by.append(table.c.id.desc())
    with engine.begin() as conn:
        rows = conn.execute(select(table).where(*conditions).order_by(*order_by)).mappings().all()
    records = []
    for row in rows:
        record = dict(row)
        if kind == FUEL:
            record["tags"] = list(record.get("tags") or [])
        records.append(record)
    return records


def query_entries(
    kind: str,
    user_id: int,
    *,
    search: str | None,
    sort_by: str,
    sort_direction: str,
    filters: dict[str, Any],
    start_date: date | None,
    end_date: date | None,
    limit: int,
    offset: int,
) -> tuple[list[dict], int, int, bool]:
    config = TABLES[kind]
    if sort_by not in config.sort_fields:
        raise HTTPException(status_code=400, detail="Unsupported sort field.")

    records = fetch_entry_records(kind, user_id)
    vehicle_ids = [record["id"] for record in fetch_vehicle_records(user_id)]
    table_filters = config.create_filters(vehicle_ids)
    try:
        table_filters.handle_sort_change(sort_by, sort_direction)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    table_filters.set_search_term(search)
    for key, value in filters.items():
        table_filters.update_filter(key, value)
    if start_date or end_date:
        table_filters.update_filter("date", DateRange(start_date=start_date, end_date=end_date))

    result = table_filters.apply(records)
    page = result.records[offset : offset + limit]
    has_more = offset + limit < result.result_count
    return page, result.total_count, result.result_count, has_more


def fuel_entry_values(payload: FuelEntryPayload, currency: str) -> dict:
    return {
        "vehicle_id": payload.vehicle_id,
        "fuel_company": payload.fuel_company,
        "fuel_type": payload.fuel_type,
        "mileage": payload.mileage,
        "distance_unit": payload.distance_unit,
        "volume": payload.volume,
        "volume_unit": payload.volume_unit,
        "cost": payload.cost,
        "currency": currency,
        "date": payload.date,
        "time": payload.time,
        "location": payload.location,
        "partial_fuel_up": payload.partial_fuel_up,
        "payment_type": payload.payment_type,
        "tyre_pressure": payload.tyre_pressure,
        "tyre_pressure_unit": payload.tyre_pressure_unit,
        "tags": payload.tags,
        "notes": payload.notes,
    }


def financial_entry_values(payload: FinancialEntryPayload, currency: str) -> dict:
    return {
        "vehicle_id": payload.vehicle_id,
        "category": payload.category,
        "amount": payload.amount,
        "currency": currency,
        "date": payload.date,
        "notes": payload.notes,
    }


def validate_entry_payload(kind: str, payload):
    try:
        if kind == FUEL:
            return FuelEntryPayload.validate_payload(payload)
        return FinancialEntryPayload.validate_payload(payload)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def entry_values(kind: str, payload, currency: str) -> dict:
    if kind == FUEL:
        return fuel_entry_values(payload, currency)
    return financial_entry_values(payload, currency)


def create_entry(kind: str, payload, user_id: int) -> dict:
    table = ENTRY_TABLES[kind]
    payload = validate_entry_payload(kind, payload)
    with engine.begin() as conn:
        ensure_vehicle(conn, user_id, payload.vehicle_id)
        try:
            currency = resolve_currency(payload.currency, conn, user_id)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        values = entry_values(kind, payload, currency)
        row = conn.execute(
            insert(table).values(user_id=user_id, **values).returning(*table.c)
        ).mappings().first()
    if not row:
        raise HTTPException(status_code=500, detail=f"Failed to create {ENTRY_LABELS[kind].lower()}.")
    logger.info("Created %s %s for user %s", kind, row["id"], user_id)
    return dict(row)


def get_entry(kind: str, entry_id: int, user_id: int) -> dict:
    table = ENTRY_TABLES[kind]
    with engine.begin() as conn:
        row = conn.execute(
            select(table).where(table.c.id == entry_id, table.c.user_id == user_id)
        ).mappings().first()
    if not row:
        raise HTTPException(status_code=404, detail=f"{ENTRY_LABELS[kind]} not found.")
    return dict(row)


def update_entry(kind: str, entry_id: int, payload, user_id: int) -> dict:
    table = ENTRY_TABLES[kind]
    payload = validate_entry_payload(kind, payload)
    with engine.begin() as conn:
        ensure_vehicle(conn, user_id, payload.vehicle_id)
        existing_currency = conn.execute(
            select(table.c.currency).where(table.c.id == entry_id, table.c.user_id == user_id)
        ).scalar_one_or_none()
        if existing_currency is None:
            raise HTTPException(status_code=404, detail=f"{ENTRY_LABELS[kind]} not found.")
        try:
            currency = normalize_currency(payload.currency) if payload.currency else existing_currency
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        row = conn.execute(
            update(table)
            .where(table.c.id == entry_id, table.c.user_id == user_id)
            .values(**entry_values(kind, payload, currency))
            .returning(*table.c)
        ).mappings().first()
    if not row:
        raise HTTPException(status_code=404, detail=f"{ENTRY_LABELS[kind]} not found.")
    return dict(row)


def delete_entry(kind: str, entry_id: int, user_id: int) -> dict:
    table = ENTRY_TABLES[kind]
    stmt = table.delete().where(table.c.id == entry_id, table.c.user_id == user_id)
    with engine.begin() as conn:
        result = conn.execute(stmt)
        if result.rowcount == 0:
            raise HTTPException(status_code=404, detail=f"{ENTRY_LABELS[kind]} not found.")
    logger.info("Deleted %s %s for user %s", kind, entry_id, user_id)
    return {"status": "deleted"}


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.post("/auth/signup", response_model=UserResponse)
def signup(payload: CredentialsPayload) -> UserResponse:
    email = payload.email.strip().lower()
    if not email or not payload.password:
        raise HTTPException(status_code=400, detail="Email and password required.")
    hashed_password = hash_password(payload.password)

    stmt = (
        insert(users)
        .values(email=email, hashed_password=hashed_password)
        .returning(users.c.id, users.c.email, users.c.created_at)
    )
    try:
        with engine.begin() as conn:
            row = conn.execute(stmt).mappings().first()
            if row:
                ensure_default_preferences(conn, row["id"])
    except IntegrityError as exc:
        logger.warning("Signup rejected for existing email %s", email)
        raise HTTPException(status_code=409, detail="Email already exists.") from exc

    if not row:
        raise HTTPException(status_code=500, detail="Failed to create user.")
    return UserResponse(id=row["id"], email=row["email"], created_at=row["created_at"])


@app.post("/auth/login", response_model=UserResponse)
def login(payload: CredentialsPayload) -> UserResponse:
    email = payload.email.strip().lower()
    with engine.begin() as conn:
        row = conn.execute(select(users).where(users.c.email == email)).mappings().first()

    if not row or not verify_password(payload.password, row["hashed_password"]):
        logger.warning("Failed login for %s", email)
        raise HTTPException(status_code=401, detail="Invalid credentials.")

    return UserResponse(id=row["id"], email=row["email"], created_at=row["created_at"])


@app.get("/users/me/preferences", response_model=PreferencesResponse)
def get_preferences(
    x_user_id: str | None = Header(None, alias="x-user-id"),
) -> PreferencesResponse:
    user_id = get_user_id(x_user_id)
    with engine.begin() as conn:
        preferences = ensure_default_preferences(conn, user_id)
    return PreferencesResponse(**preferences)


@app.put("/users/me/preferences", response_model=PreferencesResponse)
def update_preferences(
    payload: PreferencesPayload,
    x_user_id: str | None = Header(None, alias="x-user-id"),
) -> PreferencesResponse:
    user_id = get_user_id(x_user_id)
    try:
        payload = PreferencesPayload.validate_payload(payload)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    values = payload.model_dump(exclude_none=True)
    with engine.begin() as conn:
        ensure_default_preferences(conn, user_id)
        if values:
            conn.execute(
                update(user_preferences).where(user_preferences.c.user_id == user_id).values(**values)
            )
        preferences = ensure_default_preferences(conn, user_id)
    return PreferencesResponse(**preferences)


@app.get("/options")
def list_options(vehicle_type: str | None = None) -> dict:
    if vehicle_type is None:
        return as_options()
    try:
        normalized = VehicleType.validate(vehicle_type)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"vehicle_type": normalized, "brands": brands_for(normalized)}


@app.get("/vehicles", response_model=list[VehicleResponse])
def list_vehicles(x_user_id: str | None = Header(None, alias="x-user-id")) -> list[VehicleResponse]:
    user_id = get_user_id(x_user_id)
    return [VehicleResponse(**row) for row in fetch_vehicle_records(user_id)]


@app.post("/vehicles", response_model=VehicleResponse)
def create_vehicle(
    payload: VehiclePayload, x_user_id: str | None = Header(None, alias="x-user-id")
) -> VehicleResponse:
    user_id = get_user_id(x_user_id)
    try:
        payload = VehiclePayload.validate_payload(payload)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    with engine.begin() as conn:
        row = conn.execute(
            insert(vehicles).values(user_id=user_id, **payload.model_dump()).returning(*vehicles.c)
        ).mappings().first()
    if not row:
        raise HTTPException(status_code=500, detail="Failed to create vehicle.")
    logger.info("Created vehicle %s for user %s", row["id"], user_id)
    return VehicleResponse(**row)


@app.get("/vehicles/{vehicle_id}", response_model=VehicleResponse)
def get_vehicle(vehicle_id: int, x_user_id: str | None = Header(None, alias="x-user-id")) -> VehicleResponse:
    user_id = get_user_id(x_user_id)
    with engine.begin() as conn:
        row = conn.execute(
            select(vehicles).where(vehicles.c.id == vehicle_id, vehicles.c.user_id == user_id)
        ).mappings().first()
    if not row:
        raise HTTPException(status_code=404, detail="Vehicle not found.")
    return VehicleResponse(**row)


@app.put("/vehicles/{vehicle_id}", response_model=VehicleResponse)
def update_vehicle(
    vehicle_id: int, payload: VehiclePayload, x_user_id: str | None = Header(None, alias="x-user-id")
) -> VehicleResponse:
    user_id = get_user_id(x_user_id)
    try:
        payload = VehiclePayload.validate_payload(payload)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    with engine.begin() as conn:
        row = conn.execute(
            update(vehicles)
            .where(vehicles.c.id == vehicle_id, vehicles.c.user_id == user_id)
            .values(**payload.model_dump())
            .returning(*vehicles.c)
        ).mappings().first()
    if not row:
        raise HTTPException(status_code=404, detail="Vehicle not found.")
    return VehicleResponse(**row)


@app.delete("/vehicles/{vehicle_id}")
def delete_vehicle(vehicle_id: int, x_user_id: str | None = Header(None, alias="x-user-id")) -> dict:
    user_id = get_user_id(x_user_id)
    with engine.begin() as conn:
        ensure_vehicle(conn, user_id, vehicle_id)
        for table in ENTRY_TABLES.values():
            conn.execute(
                table.delete().where(table.c.vehicle_id == vehicle_id, table.c.user_id == user_id)
            )
        conn.execute(vehicles.delete().where(vehicles.c.id == vehicle_id, vehicles.c.user_id == user_id))
    logger.info("Deleted vehicle %s and its entries for user %s", vehicle_id, user_id)
    return {"status": "deleted"}


@app.get("/fuel-entries", response_model=FuelEntryListResponse)
def list_fuel_entries(
    search: str | None = None,
    sort_by: str = "date",
    sort_direction: str = "desc",
    vehicle_id: int | None = None,
    fuel_company: str | None = None,
    fuel_type: str | None = None,
    currency: list[str] | None = Query(None),
    start_date: date | None = None,
    end_date: date | None = None,
    limit: int = Query(PAGE_SIZE, ge=1, le=200),
    offset: int = Query(0, ge=0),
    x_user_id: str | None = Header(None, alias="x-user-id"),
) -> FuelEntryListResponse:
    user_id = get_user_id(x_user_id)
    page, total_count, result_count, has_more = query_entries(
        FUEL,
        user_id,
        search=search,
        sort_by=sort_by,
        sort_direction=sort_direction,
        filters={
            "vehicle_id": vehicle_id,
            "fuel_company": fuel_company,
            "fuel_type": fuel_type,
            "currency": currency,
        },
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
    )
    return FuelEntryListResponse(
        entries=[FuelEntryResponse(**record) for record in page],
        total_count=total_count,
        result_count=result_count,
        has_more=has_more,
    )


@app.post("/fuel-entries", response_model=FuelEntryResponse, status_code=201)
def create_fuel_entry(
    payload: FuelEntryPayload, x_user_id: str | None = Header(None, alias="x-user-id")
) -> FuelEntryResponse:
    user_id = get_user_id(x_user_id)
    return FuelEntryResponse(**create_entry(FUEL, payload, user_id))


@app.get("/fuel-entries/{entry_id}", response_model=FuelEntryResponse)
def get_fuel_entry(entry_id: int, x_user_id: str | None = Header(None, alias="x-user-id")) -> FuelEntryResponse:
    user_id = get_user_id(x_user_id)
    return FuelEntryResponse(**get_entry(FUEL, entry_id, user_id))


@app.put("/fuel-entries/{entry_id}", response_model=FuelEntryResponse)
def update_fuel_entry(
    entry_id: int, payload: FuelEntryPayload, x_user_id: str | None = Header(None, alias="x-user-id")
) -> FuelEntryResponse:
    user_id = get_user_id(x_user_id)
    return FuelEntryResponse(**update_entry(FUEL, entry_id, payload, user_id))


@app.delete("/fuel-entries/{entry_id}")
def delete_fuel_entry(entry_id: int, x_user_id: str | None = Header(None, alias="x-user-id")) -> dict:
    user_id = get_user_id(x_user_id)
    return delete_entry(FUEL, entry_id, user_id)


def list_financial_entries(
    kind: str,
    user_id: int,
    *,
    search: str | None,
    sort_by: str,
    sort_direction: str,
    vehicle_id: int | None,
    category: str | None,
    currency: list[str] | None,
    start_date: date | None,
    end_date: date | None,
    limit: int,
    offset: int,
) -> FinancialEntryListResponse:
    page, total_count, result_count, has_more = query_entries(
        kind,
        user_id,
        search=search,
        sort_by=sort_by,
        sort_direction=sort_direction,
        filters={"vehicle_id": vehicle_id, "category": category, "currency": currency},
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
    )
    return FinancialEntryListResponse(
        entries=[FinancialEntryResponse(**record) for record in page],
        total_count=total_count,
        result_count=result_count,
        has_more=has_more,
    )


@app.get("/expense-entries", response_model=FinancialEntryListResponse)
def list_expense_entries(
    search: str | None = None,
    sort_by: str = "date",
    sort_direction: str = "desc",
    vehicle_id: int | None = None,
    category: str | None = None,
    currency: list[str] | None = Query(None),
    start_date: date | None = None,
    end_date: date | None = None,
    limit: int = Query(PAGE_SIZE, ge=1, le=200),
    offset: int = Query(0, ge=0),
    x_user_id: str | None = Header(None, alias="x-user-id"),
) -> FinancialEntryListResponse:
    user_id = get_user_id(x_user_id)
    return list_financial_entries(
        EXPENSE,
        user_id,
        search=search,
        sort_by=sort_by,
        sort_direction=sort_direction,
        vehicle_id=vehicle_id,
        category=category,
        currency=currency,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
    )


@app.post("/expense-entries", response_model=FinancialEntryResponse, status_code=201)
def create_expense_entry(
    payload: FinancialEntryPayload, x_user_id: str | None = Header(None, alias="x-user-id")
) -> FinancialEntryResponse:
    user_id = get_user_id(x_user_id)
    return FinancialEntryResponse(**create_entry(EXPENSE, payload, user_id))


@app.get("/expense-entries/{entry_id}", response_model=FinancialEntryResponse)
def get_expense_entry(
    entry_id: int, x_user_id: str | None = Header(None, alias="x-user-id")
) -> FinancialEntryResponse:
    user_id = get_user_id(x_user_id)
    return FinancialEntryResponse(**get_entry(EXPENSE, entry_id, user_id))


@app.put("/expense-entries/{entry_id}", response_model=FinancialEntryResponse)
def update_expense_entry(
    entry_id: int, payload: FinancialEntryPayload, x_user_id: str | None = Header(None, alias="x-user-id")
) -> FinancialEntryResponse:
    user_id = get_user_id(x_user_id)
    return FinancialEntryResponse(**update_entry(EXPENSE, entry_id, payload, user_id))


@app.delete("/expense-entries/{entry_id}")
def delete_expense_entry(entry_id: int, x_user_id: str | None = Header(None, alias="x-user-id")) -> dict:
    user_id = get_user_id(x_user_id)
    return delete_entry(EXPENSE, entry_id, user_id)


@app.get("/income-entries", response_model=FinancialEntryListResponse)
def list_income_entries(
    search: str | None = None,
    sort_by: str = "date",
    sort_direction: str = "desc",
    vehicle_id: int | None = None,
    category: str | None = None,
    currency: list[str] | None = Query(None),
    start_date: date | None = None,
    end_date: date | None = None,
    limit: int = Query(PAGE_SIZE, ge=1, le=200),
    offset: int = Query(0, ge=0),
    x_user_id: str | None = Header(None, alias="x-user-id"),
) -> FinancialEntryListResponse:
    user_id = get_user_id(x_user_id)
    return list_financial_entries(
        INCOME,
        user_id,
        search=search,
        sort_by=sort_by,
        sort_direction=sort_direction,
        vehicle_id=vehicle_id,
        category=category,
        currency=currency,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
    )


@app.post("/income-entries", response_model=FinancialEntryResponse, status_code=201)
def create_income_entry(
    payload: FinancialEntryPayload, x_user_id: str | None = Header(None, alias="x-user-id")
) -> FinancialEntryResponse:
    user_id = get_user_id(x_user_id)
    return FinancialEntryResponse(**create_entry(INCOME, payload, user_id))


@app.get("/income-entries/{entry_id}", response_model=FinancialEntryResponse)
def get_income_entry(
    entry_id: int, x_user_id: str | None = Header(None, alias="x-user-id")
) -> FinancialEntryResponse:
    user_id = get_user_id(x_user_id)
    return FinancialEntryResponse(**get_entry(INCOME, entry_id, user_id))


@app.put("/income-entries/{entry_id}", response_model=FinancialEntryResponse)
def update_income_entry(
    entry_id: int, payload: FinancialEntryPayload, x_user_id: str | None = Header(None, alias="x-user-id")
) -> FinancialEntryResponse:
    user_id = get_user_id(x_user_id)
    return FinancialEntryResponse(**update_entry(INCOME, entry_id, payload, user_id))


@app.delete("/income-entries/{entry_id}")
def delete_income_entry(entry_id: int, x_user_id: str | None = Header(None, alias="x-user-id")) -> dict:
    user_id = get_user_id(x_user_id)
    return delete_entry(INCOME, entry_id, user_id)


@app.get("/statistics", response_model=StatisticsResponse)
def get_statistics(
    vehicle_id: int | None = None,
    x_user_id: str | None = Header(None, alias="x-user-id"),
) -> StatisticsResponse:
    user_id = get_user_id(x_user_id)
    fuel_records = fetch_entry_records(FUEL, user_id, vehicle_id)
    expense_records = fetch_entry_records(EXPENSE, user_id, vehicle_id)
    income_records = fetch_entry_records(INCOME, user_id, vehicle_id)

    breakdown = calculate_currency_stats(fuel_records, expense_records, income_records)
    fuel_currencies = sorted({record["currency"] for record in fuel_records})
    cost_per_distance = []
    for currency in fuel_currencies:
        result = calculate_cost_per_distance(fuel_records, currency)
        cost_per_distance.append(
            CostPerDistanceResponse(
                currency=currency,
                total_cost=result.total_cost,
                total_distance=result.total_distance,
                cost_per_distance=result.cost_per_distance,
            )
        )

    return StatisticsResponse(
        by_currency=[
            CurrencyStatsResponse(
                currency=stats.currency,
                total_fuel_cost=stats.total_fuel_cost,
                total_expense_cost=stats.total_expense_cost,
                total_income=stats.total_income,
                net_cost=stats.net_cost,
                entry_count=stats.entry_count,
            )
            for stats in breakdown.by_currency
        ],
        total_in_base_currency=breakdown.total_in_base_currency,
        formatted_total=format_currency(breakdown.total_in_base_currency, breakdown.base_currency),
        base_currency=breakdown.base_currency,
        cost_per_distance=cost_per_distance,
    )


@app.get("/export/{kind}")
def export_entries_csv(
    kind: str,
    vehicle_id: int | None = None,
    category: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    filename: str | None = None,
    lang: str | None = None,
    x_user_id: str | None = Header(None, alias="x-user-id"),
) -> Response:
    user_id = get_user_id(x_user_id)
    spec = EXPORTS.get(kind)
    if spec is None:
        raise HTTPException(status_code=404, detail="Unknown export type.")

    translate = get_translator(resolve_language(lang, user_id))
    downloads: list[tuple[str, str]] = []
    notices: list[str] = []
    export_filtered_entries(
        spec,
        fetch_entry_records(kind, user_id),
        fetch_vehicle_records(user_id),
        vehicle_id=vehicle_id,
        category=category,
        start_date=start_date,
        end_date=end_date,
        filename=filename,
        download=lambda name, content: downloads.append((name, content)),
        notify=notices.append,
        translate=translate,
    )
    if not downloads:
        raise HTTPException(status_code=404, detail=notices[0] if notices else "Nothing to export.")

    resolved_filename, content = downloads[0]
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": attachment_header(resolved_filename, default_filename(spec))},
    )


@app.post("/import/{kind}", response_model=ImportResponse)
async def import_entries_csv(
    kind: str,
    file: UploadFile = File(...),
    lang: str | None = None,
    x_user_id: str | None = Header(None, alias="x-user-id"),
) -> ImportResponse:
    user_id = get_user_id(x_user_id)
    if kind not in ENTRY_TABLES:
        raise HTTPException(status_code=404, detail="Unknown import type.")
    if not file.filename or not file.filename.lower().endswith(".csv"):
        raise HTTPException(status_code=400, detail="CSV file required.")

    contents = await file.read()
    try:
        decoded = contents.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise HTTPException(status_code=400, detail="CSV must be UTF-8 encoded.") from exc

    language = resolve_language(lang, user_id)
    with engine.begin() as conn:
        default_currency = resolve_currency(None, conn, user_id)
    try:
        parsed = parse_import_csv(
            decoded,
            kind,
            fetch_vehicle_records(user_id),
            default_currency=default_currency,
            translate=get_translator(language),
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    errors = [ImportRowErrorResponse(**error.model_dump()) for error in parsed.errors]
    payload_model = FuelEntryPayload if kind == FUEL else FinancialEntryPayload
    insert_rows: list[dict] = []
    for row_number, entry in zip(parsed.entry_rows, parsed.entries):
        try:
            payload = payload_model.validate_payload(payload_model(**entry))
            currency = normalize_currency(payload.currency or default_currency)
        except ValueError as exc:
            errors.append(ImportRowErrorResponse(row=row_number, field="", message=str(exc), value=""))
            continue
        insert_rows.append({"user_id": user_id, **entry_values(kind, payload, currency)})

    if insert_rows:
        with engine.begin() as conn:
            conn.execute(insert(ENTRY_TABLES[kind]), insert_rows)
    logger.info(
        "Imported %d of %d %s rows for user %s", len(insert_rows), parsed.total_rows, kind, user_id
    )
    return ImportResponse(
        imported_count=len(insert_rows),
        total_rows=parsed.total_rows,
        message=get_plural(language)(len(insert_rows), "import.importedRows"),
        errors=errors,
    )
