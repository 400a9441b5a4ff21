"""
Unit Tests - Record Schemas
"""
from datetime import date

import polars as pl

from rfm_segmentation.schemas import CUSTOMER_SCHEMA, ORDER_SCHEMA, conform


class TestConform:
    """Tests for conform"""

    def test_date_strings(self):
        df = pl.DataFrame({"order_date": ["2023-01-05", " 2023-01-06 "]})

        result = conform(df, ORDER_SCHEMA)

        assert result["order_date"].to_list() == [date(2023, 1, 5), date(2023, 1, 6)]

    def test_datetime_strings_keep_their_date(self):
        """Both ISO separators, fractional seconds and offsets"""
        df = pl.DataFrame({"order_date": [
            "2023-01-05T10:30:00",
            "2023-01-06 08:00:00",
            "2023-01-07T23:59:59.125",
            "2023-01-08T00:15:00Z",
            "2023-01-09T12:00:00+02:00",
            "2023-01-10 07:45",
        ]})

        result = conform(df, ORDER_SCHEMA)

        assert result.schema["order_date"] == pl.Date
        assert result["order_date"].to_list() == [
            date(2023, 1, 5),
            date(2023, 1, 6),
            date(2023, 1, 7),
            date(2023, 1, 8),
            date(2023, 1, 9),
            date(2023, 1, 10),
        ]

    def test_mixed_date_and_datetime_strings(self):
        df = pl.DataFrame({"order_date": ["2023-01-05", "2023-01-06T10:30:00", None]})

        result = conform(df, ORDER_SCHEMA)

        assert result["order_date"].to_list() == [date(2023, 1, 5), date(2023, 1, 6), None]

    def test_signup_datetime_string(self):
        df = pl.DataFrame({"customer_id": [1], "signup_date": ["2021-01-05T00:00:00"]})

        result = conform(df, CUSTOMER_SCHEMA)

        assert result["signup_date"].to_list() == [date(2021, 1, 5)]

    def test_unparseable_dates_become_null(self):
        df = pl.DataFrame({"order_date": ["not a date", "2023-02-30", "", "2023-01-05"]})

        result = conform(df, ORDER_SCHEMA)

        assert result["order_date"].to_list() == [None, None, None, date(2023, 1, 5)]

    def test_missing_and_extra_columns(self):
        df = pl.DataFrame({"order_id": ["7"], "status": ["shipped"]})

        result = conform(df, ORDER_SCHEMA)

        assert result.columns == list(ORDER_SCHEMA)
        assert result["order_id"].to_list() == [7]
        assert result["total_amount"].to_list() == [None]
