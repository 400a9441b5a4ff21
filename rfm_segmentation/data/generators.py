"""
Synthetic Data Generator

Generates ShopX-shaped source data for development and demos:
- Customers with name, gender, age, region and signup date
- Orders spread over a date window, some with a missing total
- Order lines with product, quantity and unit price

The raw output deliberately contains the defects the pipeline cleans up:
exact duplicate rows and rows with null keys.
"""

import random
from datetime import date, timedelta
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import numpy as np
import polars as pl
import structlog
from faker import Faker

from rfm_segmentation.config import get_settings
from rfm_segmentation.schemas import (
    CUSTOMER_SCHEMA,
    ORDER_DETAIL_SCHEMA,
    ORDER_SCHEMA,
    RecordSets,
)

logger = structlog.get_logger(__name__)


# =============================================================================
# CONFIGURATION
# =============================================================================

REGIONS = ["North", "South", "East", "West", "Central"]

GENDERS = [("Male", 0.48), ("Female", 0.48), (None, 0.04)]

# Customer activity profiles: (weight, min orders, max orders)
ACTIVITY_PROFILES = {
    "inactive": (0.10, 0, 0),
    "occasional": (0.50, 1, 3),
    "regular": (0.30, 4, 10),
    "loyal": (0.10, 11, 30),
}

PRICE_RANGE = (5.0, 250.0)


# =============================================================================
# GENERATORS
# =============================================================================

class CustomerGenerator:
    """Generate customer reference data"""

    def __init__(self, fake: Faker, rng: random.Random):
        self.fake = fake
        self.rng = rng

    def generate(self, n: int = 1000, first_id: int = 1) -> pl.DataFrame:
        """Generate n customers with sequential integer ids"""
        genders = [g for g, _ in GENDERS]
        gender_weights = [w for _, w in GENDERS]

        customers = []
        for customer_id in range(first_id, first_id + n):
            gender = self.rng.choices(genders, weights=gender_weights)[0]
            if gender == "Male":
                name = self.fake.name_male()
            elif gender == "Female":
                name = self.fake.name_female()
            else:
                name = self.fake.name()

            customers.append({
                "customer_id": customer_id,
                "name": name,
                "gender": gender,
                "age": self.rng.randint(18, 80),
                "region": self.rng.choice(REGIONS),
                "signup_date": self.fake.date_between(start_date="-4y", end_date="-1y"),
            })

        return pl.DataFrame(customers, schema=CUSTOMER_SCHEMA)


class OrderGenerator:
    """Generate orders and order lines for a customer set"""

    def __init__(
        self,
        customers_df: pl.DataFrame,
        np_rng: np.random.Generator,
        rng: random.Random,
        n_products: int = 200,
    ):
        self.customer_ids = customers_df["customer_id"].to_list()
        self.np_rng = np_rng
        self.rng = rng
        self.product_prices = {
            product_id: round(float(np_rng.uniform(*PRICE_RANGE)), 2)
            for product_id in range(1, n_products + 1)
        }

    def _orders_per_customer(self) -> List[int]:
        profiles = list(ACTIVITY_PROFILES.values())
        chosen = self.np_rng.choice(
            len(profiles),
            size=len(self.customer_ids),
            p=[p[0] for p in profiles],
        )
        return [
            int(self.np_rng.integers(profiles[i][1], profiles[i][2] + 1))
            for i in chosen
        ]

    def generate(
        self,
        start_date: date,
        end_date: date,
        missing_total_rate: float = 0.05,
    ) -> Tuple[pl.DataFrame, pl.DataFrame]:
        """
        Generate orders between start_date and end_date with their lines.

        Args:
            start_date: Earliest order date
            end_date: Latest order date
            missing_total_rate: Share of orders stored without a total

        Returns:
            Tuple of (orders, order_details)
        """
        span_days = max((end_date - start_date).days, 0)
        product_ids = list(self.product_prices)

        orders = []
        order_details = []
        order_id = 0
        order_detail_id = 0

        for customer_id, n_orders in zip(self.customer_ids, self._orders_per_customer()):
            for _ in range(n_orders):
                order_id += 1
                order_date = start_date + timedelta(days=int(self.np_rng.integers(0, span_days + 1)))

                # Most orders have 1-3 lines
                n_lines = int(self.np_rng.choice(
                    [1, 2, 3, 4, 5],
                    p=[0.40, 0.30, 0.15, 0.10, 0.05],
                ))

                total = 0.0
                for _ in range(n_lines):
                    order_detail_id += 1
                    product_id = self.rng.choice(product_ids)
                    quantity = int(self.np_rng.choice([1, 2, 3, 4], p=[0.65, 0.20, 0.10, 0.05]))
                    unit_price = self.product_prices[product_id]
                    total += unit_price * quantity

                    order_details.append({
                        "order_detail_id": order_detail_id,
                        "order_id": order_id,
                        "product_id": product_id,
                        "quantity": quantity,
                        "unit_price": unit_price,
                    })

                missing_total = self.rng.random() < missing_total_rate
                orders.append({
                    "order_id": order_id,
                    "customer_id": customer_id,
                    "order_date": order_date,
                    "total_amount": None if missing_total else round(total, 2),
                })

        return (
            pl.DataFrame(orders, schema=ORDER_SCHEMA),
            pl.DataFrame(order_details, schema=ORDER_DETAIL_SCHEMA),
        )


def inject_defects(
    df: pl.DataFrame,
    key: str,
    rng: random.Random,
    duplicate_rate: float = 0.02,
    null_key_rate: float = 0.01,
) -> pl.DataFrame:
    """Append exact duplicates and rows with a null key"""
    if df.is_empty():
        return df

    n_duplicates = int(len(df) * duplicate_rate)
    n_null_keys = int(len(df) * null_key_rate)

    parts = [df]
    if n_duplicates:
        parts.append(df.sample(n=n_duplicates, seed=rng.randint(0, 2**31)))
    if n_null_keys:
        parts.append(
            df.sample(n=n_null_keys, seed=rng.randint(0, 2**31))
            .with_columns(pl.lit(None, dtype=df.schema[key]).alias(key))
        )
    return pl.concat(parts)


# =============================================================================
# MAIN GENERATOR
# =============================================================================

class DataGenerator:
    """
    Generates a complete ShopX source dataset.

    Example:
        generator = DataGenerator(seed=7)
        sources = generator.generate_all(n_customers=500, save=False)
    """

    FILE_NAMES: Dict[str, str] = {
        "customers": "customer",
        "orders": "orders",
        "order_details": "order_detail",
    }

    def __init__(self, output_dir: Optional[str] = None, seed: Optional[int] = 42):
        self.output_dir = Path(output_dir or get_settings().data_lake.raw_path)
        self.rng = random.Random(seed)
        self.np_rng = np.random.default_rng(seed)
        self.fake = Faker()
        if seed is not None:
            self.fake.seed_instance(seed)

    def generate_all(
        self,
        n_customers: int = 1000,
        n_products: int = 200,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        with_defects: bool = True,
        save: bool = True,
    ) -> RecordSets:
        """Generate customers, orders and order lines"""
        end_date = end_date or date.today()
        start_date = start_date or end_date - timedelta(days=365)

        logger.info(
            "Generating synthetic ShopX data",
            customers=n_customers,
            start_date=start_date.isoformat(),
            end_date=end_date.isoformat(),
        )

        customers = CustomerGenerator(self.fake, self.rng).generate(n_customers)
        orders, order_details = OrderGenerator(
            customers, self.np_rng, self.rng, n_products=n_products
        ).generate(start_date, end_date)

        if with_defects:
            customers = inject_defects(customers, "customer_id", self.rng)
            orders = inject_defects(orders, "order_id", self.rng)
            order_details = inject_defects(order_details, "order_detail_id", self.rng)

        sources = RecordSets(customers=customers, orders=orders, order_details=order_details)

        if save:
            self._save_data(sources)

        logger.info(
            "Data generation complete",
            customers=len(customers),
            orders=len(orders),
            order_details=len(order_details),
        )
        return sources

    def _save_data(self, sources: RecordSets) -> None:
        """Save generated record sets as CSV files"""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        for attr, stem in self.FILE_NAMES.items():
            df: pl.DataFrame = getattr(sources, attr)
            path = self.output_dir / f"{stem}.csv"
            df.write_csv(path)
            logger.info(f"Saved {stem}: {len(df)} rows -> {path}")
