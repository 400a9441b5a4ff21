"""
Test Suite Configuration
"""
from datetime import date

import polars as pl
import pytest
import pytest_asyncio

from rfm_segmentation.config import RFMSettings
from rfm_segmentation.database.connection import close_database, init_database

ANALYSIS_DATE = date(2023, 1, 1)


@pytest.fixture
def analysis_date() -> date:
    return ANALYSIS_DATE


@pytest.fixture
def rfm_settings() -> RFMSettings:
    """Default scoring parameters, independent of the environment"""
    return RFMSettings(
        lower_threshold=0.25,
        upper_threshold=0.75,
        rank_precision=2,
        monetary_precision=2,
        recency_sentinel_days=9999,
        recency_sentinel_label=4,
        strict_validation=True,
    )


@pytest.fixture
def customers_df() -> pl.DataFrame:
    """
    Five valid customers plus an exact duplicate of customer 1, a row without
    customer_id and a row without signup_date.
    """
    return pl.DataFrame({
        "customer_id": [1, 2, 3, 4, 5, 1, None, 6],
        "name": ["Ana", "Ben", "Cleo", "Dev", "Eve", "Ana", "Ghost", "Finn"],
        "gender": ["Female", "Male", "Female", "Male", "Female", "Female", None, "Male"],
        "age": [34, 45, 29, 51, 38, 34, 40, 27],
        "region": ["North", "South", "East", "West", "North", "North", "South", "East"],
        "signup_date": [
            date(2021, 1, 5),
            date(2021, 3, 10),
            date(2021, 6, 1),
            date(2022, 2, 14),
            date(2022, 8, 30),
            date(2021, 1, 5),
            date(2021, 1, 1),
            None,
        ],
    })


@pytest.fixture
def orders_df() -> pl.DataFrame:
    """
    Orders around 2023-01-01. Order 102 is missing its total, order 101 is
    duplicated and the last row has no order_id.
    """
    return pl.DataFrame({
        "order_id": [101, 102, 103, 104, 105, 106, 101, None],
        "customer_id": [1, 1, 2, 3, 3, 4, 1, 5],
        "order_date": [
            date(2022, 11, 20),
            date(2023, 1, 11),
            date(2023, 2, 1),
            date(2022, 12, 1),
            date(2023, 1, 1),
            date(2022, 6, 15),
            date(2022, 11, 20),
            date(2023, 1, 5),
        ],
        "total_amount": [40.0, None, 120.0, 15.0, 30.0, 60.0, 40.0, 99.0],
    })


@pytest.fixture
def order_details_df() -> pl.DataFrame:
    """Order lines; line 8 is duplicated and the last row has no order_detail_id"""
    return pl.DataFrame({
        "order_detail_id": [1, 2, 3, 4, 5, 6, 7, 8, 8, None],
        "order_id": [101, 102, 102, 103, 104, 105, 106, 106, 106, 103],
        "product_id": [11, 12, 13, 14, 15, 16, 17, 18, 18, 19],
        "quantity": [2, 2, 1, 1, 3, 1, 1, 2, 2, 5],
        "unit_price": [20.0, 10.0, 5.0, 120.0, 5.0, 30.0, 20.0, 20.0, 20.0, 1.0],
    })


@pytest.fixture
def expected_scores() -> dict:
    """customer_id -> total_RFM_score for the fixture data at ANALYSIS_DATE"""
    return {1: "232", 2: "323", 3: "122", 4: "422", 5: "411"}


@pytest.fixture
def source_dir(tmp_path, customers_df, orders_df, order_details_df):
    """Fixture record sets written as CSV source files"""
    directory = tmp_path / "raw"
    directory.mkdir()
    customers_df.write_csv(directory / "customer.csv")
    orders_df.write_csv(directory / "orders.csv")
    order_details_df.write_csv(directory / "order_detail.csv")
    return directory


@pytest_asyncio.fixture
async def database(tmp_path):
    """File-backed SQLite database with every table created"""
    url = f"sqlite+aiosqlite:///{tmp_path / 'rfm_test.db'}"
    engine = await init_database(url, create_tables=True)
    yield engine
    await close_database()
