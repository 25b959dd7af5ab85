import json
import tempfile
import unittest
from pathlib import Path

from csv_cleaner.errors import ConfigError
from csv_cleaner.options import CleaningOptions, parse_column_type_spec


class CleaningOptionsTests(unittest.TestCase):
    def test_defaults_enable_every_pass(self):
        options = CleaningOptions()
        self.assertTrue(options.remove_duplicates)
        self.assertTrue(options.handle_nulls)
        self.assertTrue(options.standardize_text)
        self.assertTrue(options.validate_formats)
        self.assertEqual(options.null_policy, "substitute")
        self.assertEqual(options.null_sentinel, "")
        self.assertEqual(dict(options.column_types), {})

    def test_invalid_values_raise_config_error(self):
        bad = [
            {"null_policy": "ignore"},
            {"null_policy": "drop", "null_sentinel": "N/A"},
            {"text_case": "camel"},
            {"column_types": {"Date": "timestamp"}},
            {"column_types": {-1: "date"}},
            {"date_output_format": "%Y"},
            {"date_output_format": "plain"},
            {"delimiter": ";;"},
            {"delimiter": '"'},
            {"column_tolerance": -1},
            {"remove_duplicates": "yes"},
        ]
        for kwargs in bad:
            with self.subTest(kwargs=kwargs):
                with self.assertRaises(ConfigError):
                    CleaningOptions(**kwargs)

    def test_from_dict_accepts_camel_case_keys(self):
        options = CleaningOptions.from_dict(
            {
                "removeDuplicates": False,
                "nullSentinel": "N/A",
                "columnTypes": {"Signup Date": "date"},
                "dayFirst": True,
            }
        )
        self.assertFalse(options.remove_duplicates)
        self.assertEqual(options.null_sentinel, "N/A")
        self.assertEqual(dict(options.column_types), {"Signup Date": "date"})
        self.assertTrue(options.dayfirst)

    def test_from_dict_rejects_unknown_keys(self):
        with self.assertRaises(ConfigError) as ctx:
            CleaningOptions.from_dict({"trimEverything": True})
        self.assertIn("trimEverything", str(ctx.exception))

    def test_from_json_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "options.json"
            path.write_text(json.dumps({"null_policy": "drop", "column_types": {"Amount": "numeric"}}), encoding="utf-8")
            options = CleaningOptions.from_json_file(path)
            self.assertEqual(options.null_policy, "drop")

            path.write_text("{not json", encoding="utf-8")
            with self.assertRaises(ConfigError):
                CleaningOptions.from_json_file(path)

            with self.assertRaises(ConfigError):
                CleaningOptions.from_json_file(Path(tmpdir) / "missing.json")

    def test_with_overrides_skips_none_and_revalidates(self):
        options = CleaningOptions(null_sentinel="-")
        self.assertEqual(options.with_overrides(null_sentinel=None).null_sentinel, "-")
        self.assertEqual(options.with_overrides(text_case="upper").text_case, "upper")
        with self.assertRaises(ConfigError):
            options.with_overrides(null_policy="drop")

    def test_to_dict_round_trips(self):
        options = CleaningOptions(column_types={"Amount": "numeric", 2: "date"})
        payload = options.to_dict()
        self.assertEqual(payload["column_types"], {"Amount": "numeric", "2": "date"})
        self.assertEqual(CleaningOptions.from_dict(payload).column_types["Amount"], "numeric")


class ColumnTypeSpecTests(unittest.TestCase):
    def test_named_and_positional_columns(self):
        self.assertEqual(parse_column_type_spec("Signup Date=date"), ("Signup Date", "date"))
        self.assertEqual(parse_column_type_spec("2=Numeric"), (2, "numeric"))

    def test_malformed_specs(self):
        for spec in ("Amount", "=date", "Amount=", "Amount=money"):
            with self.subTest(spec=spec):
                with self.assertRaises(ConfigError):
                    parse_column_type_spec(spec)


if __name__ == "__main__":
    unittest.main()
