import unittest

from autolog.translations import (
    EN,
    get_plural,
    get_translator,
    interpolate,
    lookup,
    lookup_first,
    normalize_language,
    resolve,
)


class LookupTests(unittest.TestCase):
    def test_resolves_dot_paths(self) -> None:
        self.assertEqual(lookup("csv.carName", EN), "Car Name")
        self.assertIsInstance(resolve("csv", EN), dict)

    def test_missing_or_non_string_nodes_return_none(self) -> None:
        self.assertIsNone(lookup("csv.missing", EN))
        self.assertIsNone(lookup("csv", EN))
        self.assertIsNone(lookup("csv.carName.deeper", EN))
        self.assertIsNone(lookup("csv.carName", None))

    def test_lookup_first_uses_first_hit(self) -> None:
        self.assertEqual(lookup_first(["nope", "common.yes"], EN), "Yes")
        self.assertEqual(lookup_first(["nope"], EN, default="fallback"), "fallback")


class InterpolateTests(unittest.TestCase):
    def test_replaces_known_placeholders(self) -> None:
        self.assertEqual(interpolate("{{field}} is required", {"field": "Date"}), "Date is required")

    def test_leaves_unknown_placeholders(self) -> None:
        self.assertEqual(interpolate("{{a}} and {{b}}", {"a": 1}), "1 and {{b}}")


class TranslatorTests(unittest.TestCase):
    def test_translates_in_requested_language(self) -> None:
        translate = get_translator("zh")

        self.assertEqual(translate("csv.carName"), "车辆名称")
        self.assertEqual(translate("yes"), "是")

    def test_falls_back_to_english_then_key(self) -> None:
        translate = get_translator("zh")

        self.assertEqual(translate("title"), "AutoLog")
        self.assertEqual(translate("missing.key"), "missing.key")

    def test_interpolates_params(self) -> None:
        translate = get_translator("en")

        self.assertEqual(
            translate("table.showing", {"resultCount": 3, "totalCount": 10}),
            "Showing 3 of 10",
        )

    def test_normalizes_language_tags(self) -> None:
        self.assertEqual(normalize_language("zh-CN"), "zh")
        self.assertEqual(normalize_language("EN"), "en")
        self.assertEqual(normalize_language("fr"), "en")


class PluralTests(unittest.TestCase):
    def test_selects_plural_forms(self) -> None:
        plural = get_plural("en")

        self.assertEqual(plural(0, "import.importedRows"), "No rows imported")
        self.assertEqual(plural(1, "import.importedRows"), "1 row imported")
        self.assertEqual(plural(4, "import.importedRows"), "4 rows imported")

    def test_missing_forms_return_count(self) -> None:
        self.assertEqual(get_plural("en")(3, "import.nothing"), "3")


if __name__ == "__main__":
    unittest.main()
