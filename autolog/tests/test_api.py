import unittest
from decimal import Decimal
from unittest.mock import patch
from urllib.parse import quote

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from autolog import main
from autolog.config import SYSTEM_DEFAULT_CURRENCY


class ApiTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        main.metadata.create_all(self.engine)
        patcher = patch("autolog.main.engine", self.engine)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.addCleanup(self.engine.dispose)

        self.client = TestClient(main.app)
        self.user_id = self.signup("driver@example.com")
        self.headers = {"x-user-id": str(self.user_id)}
        self.vehicle_id = self.create_vehicle("Daily Driver")

    def signup(self, email: str) -> int:
        response = self.client.post("/auth/signup", json={"email": email, "password": "secret"})
        self.assertEqual(response.status_code, 200, response.text)
        return response.json()["id"]

    def create_vehicle(self, name: str, headers=None) -> int:
        response = self.client.post(
            "/vehicles",
            json={"name": name, "vehicle_type": "vehicleTypeCar", "brand": "Toyota", "model": "Corolla"},
            headers=headers or self.headers,
        )
        self.assertEqual(response.status_code, 200, response.text)
        return response.json()["id"]

    def create_fuel(self, **overrides) -> dict:
        payload = {
            "vehicle_id": self.vehicle_id,
            "fuel_company": "Shell",
            "fuel_type": "Premium",
            "mileage": "1000",
            "volume": "40",
            "cost": "500",
            "currency": "HKD",
            "date": "2024-03-01",
            "time": "08:00",
        }
        payload.update(overrides)
        response = self.client.post("/fuel-entries", json=payload, headers=self.headers)
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()

    def create_financial(self, kind: str, **overrides) -> dict:
        payload = {
            "vehicle_id": self.vehicle_id,
            "category": "Parking",
            "amount": "30",
            "currency": "HKD",
            "date": "2024-03-02",
        }
        payload.update(overrides)
        response = self.client.post(f"/{kind}-entries", json=payload, headers=self.headers)
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()


class AuthApiTests(ApiTestCase):
    def test_health(self) -> None:
        self.assertEqual(self.client.get("/health").json(), {"status": "ok"})

    def test_duplicate_signup_conflicts(self) -> None:
        response = self.client.post(
            "/auth/signup", json={"email": "Driver@Example.com", "password": "other"}
        )

        self.assertEqual(response.status_code, 409)

    def test_login_checks_password(self) -> None:
        ok = self.client.post("/auth/login", json={"email": "driver@example.com", "password": "secret"})
        bad = self.client.post("/auth/login", json={"email": "driver@example.com", "password": "nope"})

        self.assertEqual(ok.status_code, 200)
        self.assertEqual(ok.json()["id"], self.user_id)
        self.assertEqual(bad.status_code, 401)

    def test_requires_known_user(self) -> None:
        self.assertEqual(self.client.get("/vehicles").status_code, 401)
        self.assertEqual(self.client.get("/vehicles", headers={"x-user-id": "abc"}).status_code, 400)
        self.assertEqual(self.client.get("/vehicles", headers={"x-user-id": "999"}).status_code, 404)


class PreferencesApiTests(ApiTestCase):
    def test_defaults_created_on_signup(self) -> None:
        response = self.client.get("/users/me/preferences", headers=self.headers)

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["default_currency"], SYSTEM_DEFAULT_CURRENCY)
        self.assertEqual(body["language"], "en")

    def test_updates_preferences(self) -> None:
        response = self.client.put(
            "/users/me/preferences",
            json={"language": "zh", "default_currency": "eur", "default_distance_unit": "mi"},
            headers=self.headers,
        )

        self.assertEqual(response.status_code, 200, response.text)
        body = response.json()
        self.assertEqual(body["language"], "zh")
        self.assertEqual(body["default_currency"], "EUR")
        self.assertEqual(body["default_distance_unit"], "miles")

    def test_rejects_invalid_values(self) -> None:
        bad_currency = self.client.put(
            "/users/me/preferences", json={"default_currency": "EURO"}, headers=self.headers
        )
        bad_language = self.client.put("/users/me/preferences", json={"language": "fr"}, headers=self.headers)

        self.assertEqual(bad_currency.status_code, 400)
        self.assertEqual(bad_language.status_code, 400)


class VehicleApiTests(ApiTestCase):
    def test_vehicle_crud(self) -> None:
        listed = self.client.get("/vehicles", headers=self.headers).json()
        self.assertEqual([vehicle["name"] for vehicle in listed], ["Daily Driver"])
        self.assertEqual(listed[0]["vehicle_type"], "Car/Truck")

        updated = self.client.put(
            f"/vehicles/{self.vehicle_id}",
            json={"name": "Family Car", "vehicle_type": "Car/Truck", "brand": "Honda", "model": "Jazz"},
            headers=self.headers,
        )
        self.assertEqual(updated.status_code, 200)
        self.assertEqual(updated.json()["brand"], "Honda")

        self.create_fuel()
        deleted = self.client.delete(f"/vehicles/{self.vehicle_id}", headers=self.headers)
        self.assertEqual(deleted.status_code, 200)
        self.assertEqual(self.client.get(f"/vehicles/{self.vehicle_id}", headers=self.headers).status_code, 404)
        entries = self.client.get("/fuel-entries", headers=self.headers).json()
        self.assertEqual(entries["total_count"], 0)

    def test_rejects_invalid_vehicle(self) -> None:
        response = self.client.post(
            "/vehicles",
            json={"name": "Boat", "vehicle_type": "Boat", "brand": "X", "model": "Y"},
            headers=self.headers,
        )

        self.assertEqual(response.status_code, 400)

    def test_vehicles_are_scoped_to_user(self) -> None:
        other_headers = {"x-user-id": str(self.signup("other@example.com"))}

        response = self.client.get(f"/vehicles/{self.vehicle_id}", headers=other_headers)

        self.assertEqual(response.status_code, 404)


class FuelEntryApiTests(ApiTestCase):
    def test_create_defaults_currency_from_preferences(self) -> None:
        entry = self.create_fuel(currency=None, tags=[" commute ", ""])

        self.assertEqual(entry["currency"], SYSTEM_DEFAULT_CURRENCY)
        self.assertEqual(entry["tags"], ["commute"])
        self.assertEqual(Decimal(entry["cost"]), Decimal("500"))
        self.assertEqual(entry["date"], "2024-03-01")

    def test_rejects_invalid_fuel_values(self) -> None:
        payload = {
            "vehicle_id": self.vehicle_id,
            "mileage": "1000",
            "volume": "0",
            "cost": "10",
            "date": "2024-03-01",
        }

        response = self.client.post("/fuel-entries", json=payload, headers=self.headers)

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "Volume must be a valid positive number")

    def test_rejects_foreign_vehicle(self) -> None:
        response = self.client.post(
            "/fuel-entries",
            json={"vehicle_id": 999, "mileage": "1", "volume": "1", "cost": "1", "date": "2024-03-01"},
            headers=self.headers,
        )

        self.assertEqual(response.status_code, 404)

    def test_update_get_and_delete(self) -> None:
        entry = self.create_fuel()
        url = f"/fuel-entries/{entry['id']}"

        updated = self.client.put(
            url,
            json={**entry, "cost": "600", "currency": None, "notes": " topped up "},
            headers=self.headers,
        )
        self.assertEqual(updated.status_code, 200, updated.text)
        self.assertEqual(updated.json()["currency"], "HKD")
        self.assertEqual(updated.json()["notes"], "topped up")
        self.assertEqual(Decimal(self.client.get(url, headers=self.headers).json()["cost"]), Decimal("600"))

        self.assertEqual(self.client.delete(url, headers=self.headers).status_code, 200)
        self.assertEqual(self.client.get(url, headers=self.headers).status_code, 404)
        self.assertEqual(self.client.delete(url, headers=self.headers).status_code, 404)

    def test_list_searches_filters_sorts_and_pages(self) -> None:
        self.create_fuel(fuel_company="Shell", date="2024-01-01", mileage="1000", location="Central")
        self.create_fuel(fuel_company="Esso", date="2024-02-01", mileage="1400", currency="USD")
        self.create_fuel(fuel_company="Shell", date="2024-03-01", mileage="1800")

        newest = self.client.get("/fuel-entries", headers=self.headers).json()
        self.assertEqual([entry["date"] for entry in newest["entries"]], ["2024-03-01", "2024-02-01", "2024-01-01"])
        self.assertEqual(newest["total_count"], 3)
        self.assertFalse(newest["has_more"])

        searched = self.client.get("/fuel-entries", params={"search": "central"}, headers=self.headers).json()
        self.assertEqual([entry["date"] for entry in searched["entries"]], ["2024-01-01"])
        self.assertEqual(searched["result_count"], 1)

        filtered = self.client.get(
            "/fuel-entries",
            params={"fuel_company": "Shell", "sort_by": "mileage", "sort_direction": "asc"},
            headers=self.headers,
        ).json()
        self.assertEqual([Decimal(entry["mileage"]) for entry in filtered["entries"]], [Decimal("1000"), Decimal("1800")])

        by_currency = self.client.get(
            "/fuel-entries", params=[("currency", "USD"), ("currency", "EUR")], headers=self.headers
        ).json()
        self.assertEqual(by_currency["result_count"], 1)

        dated = self.client.get(
            "/fuel-entries", params={"start_date": "2024-02-01", "end_date": "2024-02-29"}, headers=self.headers
        ).json()
        self.assertEqual(dated["result_count"], 1)

        paged = self.client.get("/fuel-entries", params={"limit": 2, "offset": 0}, headers=self.headers).json()
        self.assertEqual(len(paged["entries"]), 2)
        self.assertTrue(paged["has_more"])
        last = self.client.get("/fuel-entries", params={"limit": 2, "offset": 2}, headers=self.headers).json()
        self.assertEqual(len(last["entries"]), 1)
        self.assertFalse(last["has_more"])

    def test_list_rejects_unknown_sort(self) -> None:
        bad_field = self.client.get("/fuel-entries", params={"sort_by": "colour"}, headers=self.headers)
        bad_direction = self.client.get("/fuel-entries", params={"sort_direction": "up"}, headers=self.headers)

        self.assertEqual(bad_field.status_code, 400)
        self.assertEqual(bad_direction.status_code, 400)


class FinancialEntryApiTests(ApiTestCase):
    def test_expense_and_income_lists(self) -> None:
        self.create_financial("expense", category="Parking", amount="30")
        self.create_financial("expense", category="Tolls", amount="12", date="2024-03-05")
        self.create_financial("income", category="Ride Sharing", amount="200")

        expenses = self.client.get(
            "/expense-entries", params={"category": "Tolls"}, headers=self.headers
        ).json()
        income = self.client.get("/income-entries", headers=self.headers).json()

        self.assertEqual(expenses["total_count"], 2)
        self.assertEqual([entry["category"] for entry in expenses["entries"]], ["Tolls"])
        self.assertEqual(income["result_count"], 1)

    def test_rejects_non_positive_amount(self) -> None:
        response = self.client.post(
            "/expense-entries",
            json={"vehicle_id": self.vehicle_id, "category": "Parking", "amount": "0", "date": "2024-03-02"},
            headers=self.headers,
        )

        self.assertEqual(response.status_code, 400)

    def test_income_update_and_delete(self) -> None:
        entry = self.create_financial("income", category="Delivery")
        url = f"/income-entries/{entry['id']}"

        updated = self.client.put(url, json={**entry, "amount": "45"}, headers=self.headers)
        self.assertEqual(Decimal(updated.json()["amount"]), Decimal("45"))
        self.assertEqual(self.client.delete(url, headers=self.headers).json(), {"status": "deleted"})
        self.assertEqual(self.client.get(url, headers=self.headers).status_code, 404)


class StatisticsApiTests(ApiTestCase):
    def test_breakdown_by_currency(self) -> None:
        self.create_fuel(cost="50", currency="USD", mileage="1000", date="2024-01-01")
        self.create_fuel(cost="75", currency="USD", mileage="1250", date="2024-01-10")
        self.create_financial("expense", amount="775", currency="HKD")
        self.create_financial("income", amount="100", currency="HKD")

        body = self.client.get("/statistics", headers=self.headers).json()

        by_currency = {stats["currency"]: stats for stats in body["by_currency"]}
        self.assertEqual(Decimal(by_currency["USD"]["total_fuel_cost"]), Decimal("125"))
        self.assertEqual(by_currency["USD"]["entry_count"], 2)
        self.assertEqual(Decimal(by_currency["HKD"]["net_cost"]), Decimal("675"))
        self.assertEqual(body["base_currency"], "USD")
        self.assertEqual(Decimal(body["total_in_base_currency"]).quantize(Decimal("0.01")), Decimal("212.10"))
        self.assertEqual(body["formatted_total"], "$212.10")
        usd_rate = body["cost_per_distance"][0]
        self.assertEqual(usd_rate["currency"], "USD")
        self.assertEqual(Decimal(usd_rate["cost_per_distance"]), Decimal("0.3"))


class ExportApiTests(ApiTestCase):
    def test_empty_export_returns_notice(self) -> None:
        response = self.client.get("/export/fuel", headers=self.headers)

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["detail"], "No fuel entries to export")

    def test_exports_csv_attachment(self) -> None:
        self.create_fuel(partial_fuel_up=True)

        response = self.client.get("/export/fuel", params={"filename": "mine.csv"}, headers=self.headers)

        self.assertEqual(response.status_code, 200)
        self.assertIn('filename="mine.csv"', response.headers["content-disposition"])
        lines = response.text.splitlines()
        self.assertTrue(lines[0].startswith("Car Name,Date,Time"))
        self.assertTrue(lines[1].startswith("Daily Driver,2024-03-01,08:00,Shell"))

    def test_exports_in_preferred_language(self) -> None:
        self.create_financial("expense")
        self.client.put("/users/me/preferences", json={"language": "zh"}, headers=self.headers)

        response = self.client.get("/export/expense", headers=self.headers)

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.text.startswith("车辆名称,日期,类别,金额,货币,备注"))

    def test_non_ascii_filename_uses_encoded_parameter(self) -> None:
        self.create_fuel()

        response = self.client.get("/export/fuel", params={"filename": "燃油记录.csv"}, headers=self.headers)

        self.assertEqual(response.status_code, 200)
        disposition = response.headers["content-disposition"]
        self.assertIn("filename*=UTF-8''" + quote("燃油记录.csv", safe=""), disposition)
        self.assertRegex(disposition, r'filename="fuel_entries_\d{4}-\d{2}-\d{2}\.csv"')

    def test_quotes_are_stripped_from_filename_fallback(self) -> None:
        self.create_fuel()

        response = self.client.get("/export/fuel", params={"filename": 'a".csv'}, headers=self.headers)

        self.assertEqual(response.status_code, 200)
        disposition = response.headers["content-disposition"]
        self.assertIn('filename="a.csv"', disposition)
        self.assertIn("filename*=UTF-8''a%22.csv", disposition)

    def test_unknown_export_kind(self) -> None:
        self.assertEqual(self.client.get("/export/maintenance", headers=self.headers).status_code, 404)


class ImportApiTests(ApiTestCase):
    def test_imports_valid_rows_and_reports_errors(self) -> None:
        contents = (
            "Car Name,Date,Category,Amount,Currency,Notes\n"
            "Daily Driver,2024-02-05,Parking,30,HKD,Mall\n"
            "Missing Car,2024-02-06,Parking,30,HKD,\n"
        )

        response = self.client.post(
            "/import/expense",
            files={"file": ("expenses.csv", contents.encode("utf-8"), "text/csv")},
            headers=self.headers,
        )

        self.assertEqual(response.status_code, 200, response.text)
        body = response.json()
        self.assertEqual(body["imported_count"], 1)
        self.assertEqual(body["total_rows"], 2)
        self.assertEqual(body["message"], "1 row imported")
        self.assertEqual(body["errors"][0]["row"], 2)
        listed = self.client.get("/expense-entries", headers=self.headers).json()
        self.assertEqual(listed["entries"][0]["notes"], "Mall")

    def test_export_then_import_round_trip(self) -> None:
        self.create_fuel(tags=["commute"], location="Central, HK")
        exported = self.client.get("/export/fuel", headers=self.headers).text

        response = self.client.post(
            "/import/fuel",
            files={"file": ("fuel.csv", exported.encode("utf-8"), "text/csv")},
            headers=self.headers,
        )

        self.assertEqual(response.json()["imported_count"], 1)
        entries = self.client.get("/fuel-entries", headers=self.headers).json()["entries"]
        self.assertEqual(len(entries), 2)
        self.assertEqual({entry["location"] for entry in entries}, {"Central, HK"})
        self.assertEqual(entries[0]["tags"], ["commute"])

    def test_rejects_non_csv_upload(self) -> None:
        response = self.client.post(
            "/import/fuel",
            files={"file": ("fuel.txt", b"hello", "text/plain")},
            headers=self.headers,
        )

        self.assertEqual(response.status_code, 400)


class OptionsApiTests(ApiTestCase):
    def test_lists_vocabularies(self) -> None:
        body = self.client.get("/options").json()

        self.assertIn("HKD", body["currencies"])
        self.assertIn("Car/Truck", body["vehicle_types"])

    def test_lists_brands_for_type(self) -> None:
        body = self.client.get("/options", params={"vehicle_type": "vehicleTypeCar"}).json()

        self.assertEqual(body["vehicle_type"], "Car/Truck")
        self.assertIn("Toyota", body["brands"])


if __name__ == "__main__":
    unittest.main()
