import unittest
from datetime import datetime

from csv_cleaner.formats import (
    FIXED,
    INVALID,
    VALID,
    check_boolean,
    check_date,
    check_email,
    check_integer,
    check_numeric,
    checker_for,
    format_date,
)


class DateFormatTests(unittest.TestCase):
    def test_canonical_date_is_valid(self):
        self.assertEqual(check_date("2023-01-05")[:2], (VALID, "2023-01-05"))

    def test_impossible_iso_date_is_invalid_and_unchanged(self):
        status, value, reason = check_date("2023-13-40")
        self.assertEqual((status, value), (INVALID, "2023-13-40"))
        self.assertIn("not a valid date", reason)

    def test_unambiguous_formats_are_fixed(self):
        cases = {
            "15/03/2023": "2023-03-15",
            "2023/3/7": "2023-03-07",
            "2023-1-5": "2023-01-05",
            "2023-01-18T00:00:00Z": "2023-01-18",
            "March 5 2023": "2023-03-05",
            "5 March 2023": "2023-03-05",
            "Sept. 9, 2021": "2021-09-09",
        }
        for raw, expected in cases.items():
            with self.subTest(raw=raw):
                self.assertEqual(check_date(raw)[:2], (FIXED, expected))

    def test_ambiguous_dates_follow_dayfirst(self):
        self.assertEqual(check_date("03/04/2023")[1], "2023-03-04")
        self.assertEqual(check_date("03/04/2023", dayfirst=True)[1], "2023-04-03")

    def test_two_digit_years_pivot_at_fifty(self):
        self.assertEqual(check_date("25/12/49")[1], "2049-12-25")
        self.assertEqual(check_date("25/12/50")[1], "1950-12-25")

    def test_custom_output_format(self):
        self.assertEqual(check_date("2023-01-05", output_format="%d/%m/%Y")[:2], (FIXED, "05/01/2023"))
        self.assertEqual(check_date("05/01/2023", output_format="%d/%m/%Y")[0], VALID)

    def test_years_below_1000_stay_four_digits(self):
        self.assertEqual(check_date("0001-01-01")[:2], (VALID, "0001-01-01"))
        self.assertEqual(check_date("0999-12-31")[0], VALID)
        self.assertEqual(check_date("0001-1-5")[:2], (FIXED, "0001-01-05"))

    def test_format_date_pads_year_and_keeps_literal_percent(self):
        self.assertEqual(format_date(datetime(5, 1, 2), "%Y-%m-%d"), "0005-01-02")
        self.assertEqual(format_date(datetime(2023, 1, 2), "%d %%Y %Y"), "02 %Y 2023")

    def test_garbage_is_invalid(self):
        self.assertEqual(check_date("soon")[0], INVALID)


class NumberFormatTests(unittest.TestCase):
    def test_numeric_fixes(self):
        cases = {
            "1,200.00": "1200.00",
            "$1,200.00": "1200.00",
            "(500)": "-500",
            "1.234,56": "1234.56",
            "12,5": "12.5",
            "EUR 30": "30",
            "+7": "7",
        }
        for raw, expected in cases.items():
            with self.subTest(raw=raw):
                self.assertEqual(check_numeric(raw)[:2], (FIXED, expected))

    def test_numeric_valid_and_invalid(self):
        self.assertEqual(check_numeric("42")[0], VALID)
        self.assertEqual(check_numeric("-3.5")[0], VALID)
        self.assertEqual(check_numeric("abc")[:2], (INVALID, "abc"))
        self.assertEqual(check_numeric("1,2,3")[0], INVALID)

    def test_integer_checks(self):
        self.assertEqual(check_integer("7")[0], VALID)
        self.assertEqual(check_integer("1,000")[:2], (FIXED, "1000"))
        self.assertEqual(check_integer("12.0")[:2], (FIXED, "12"))
        self.assertEqual(check_integer("12.5")[0], INVALID)


class EmailAndBooleanTests(unittest.TestCase):
    def test_email_fixes(self):
        self.assertEqual(check_email("mailto:Ada@Example.COM")[:2], (FIXED, "Ada@example.com"))
        self.assertEqual(check_email("<ada@example.com>")[:2], (FIXED, "ada@example.com"))
        self.assertEqual(check_email("ada @example.com")[:2], (FIXED, "ada@example.com"))

    def test_email_valid_and_invalid(self):
        self.assertEqual(check_email("ada@example.com")[0], VALID)
        self.assertEqual(check_email("not-an-email")[0], INVALID)
        self.assertEqual(check_email("katherine@example")[0], INVALID)

    def test_booleans(self):
        self.assertEqual(check_boolean("true")[0], VALID)
        self.assertEqual(check_boolean("Yes")[:2], (FIXED, "true"))
        self.assertEqual(check_boolean("0")[:2], (FIXED, "false"))
        self.assertEqual(check_boolean("OFF")[:2], (FIXED, "false"))
        self.assertEqual(check_boolean("maybe")[0], INVALID)

    def test_checker_for_passes_date_settings(self):
        check = checker_for("date", date_output_format="%d.%m.%Y", dayfirst=True)
        self.assertEqual(check("03/04/2023")[1], "03.04.2023")
        self.assertEqual(checker_for("text")("anything")[0], VALID)


if __name__ == "__main__":
    unittest.main()
