"""
Fact generator — expands the dimension tables into the flat fact table.

Nested iteration over

    year x (region, country) x (category, subcategory) x material x price tier x application

emits exactly one FactRecord per leaf combination. End user, sales channel,
distribution channel, brand and company are *sampled* per leaf rather than
enumerated, which keeps the table at ~985K rows for the default dimensions
instead of a cross product in the hundreds of millions.

Draw order per record (12 draws, fixed; changing it changes every value):

     1. end user                  choice(end_users)
     2. sales channel             choice(sales_channels)
     3. distribution channel      choice(channels of the sales channel's group)
     4. brand                     choice(brands)
     5. company                   choice(companies), independent of brand
     6. base price                10 + r * 90
     7. base volume               100 + r * 900
     8. market value factor       0.9 + r * 0.2
     9. base market share         1 + r * 24
    10. base CAGR                 -2 + r * 12
    11. YoY growth                -5 + r * 20
    12. qty factor                0.8 + r * 0.4

Multiplication order and half-up rounding match the reference dataset, so
seed 42 with the default tables reproduces it value for value.
"""

import logging
import math
from dataclasses import dataclass, field, fields
from operator import attrgetter
from typing import Iterator, Optional

import pandas as pd

from market.dimensions import DEFAULT_DIMENSIONS, DimensionTables
from market.prng import SeededRandom

logger = logging.getLogger(__name__)

FIRST_RECORD_ID = 100000

PRICE_TREND = 0.02      # +2% price per year since the first year
VOLUME_TREND = 0.05     # +5% volume per year since the first year


@dataclass(frozen=True, slots=True)
class FactRecord:
    """One synthetic market observation. Immutable once generated."""
    record_id: int
    year: int
    region: str
    country: str
    product_category: str
    sub_product_category: str
    blade_material: str          # pipe material
    handle_length: str           # price tier
    application: str
    end_user: str
    distribution_channel_type: str   # sales channel label
    distribution_channel: str
    brand: str
    company: str
    price: float
    volume_units: int
    qty: int
    revenue: float
    market_value_usd: float
    market_share_pct: float
    cagr: float
    yoy_growth: float
    # Derived, never passed in
    product_type: str = field(init=False)
    value: float = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, "product_type", f"{self.product_category} - {self.sub_product_category}")
        object.__setattr__(self, "value", self.market_value_usd)


FACT_COLUMNS = [f.name for f in fields(FactRecord)]


def round2(x: float) -> float:
    """Round half up to 2 decimals (not banker's rounding)."""
    return math.floor(x * 100 + 0.5) / 100


def count_leaf_combinations(dimensions: DimensionTables = DEFAULT_DIMENSIONS) -> int:
    """Number of records generate_fact_table() will emit for these tables."""
    return (
        len(dimensions.years)
        * len(dimensions.country_pairs())
        * len(dimensions.product_pairs())
        * len(dimensions.blade_materials)
        * len(dimensions.handle_lengths)
        * len(dimensions.applications)
    )


def iter_fact_records(
    dimensions: DimensionTables = DEFAULT_DIMENSIONS,
    rng: Optional[SeededRandom] = None,
    first_record_id: int = FIRST_RECORD_ID,
) -> Iterator[FactRecord]:
    """Yield fact records in generation order, consuming 12 draws each."""
    if rng is None:
        rng = SeededRandom()

    first_year = dimensions.first_year
    country_pairs = dimensions.country_pairs()
    product_pairs = dimensions.product_pairs()
    record_id = first_record_id

    for year in dimensions.years:
        years_in = year - first_year
        price_trend = 1 + years_in * PRICE_TREND
        volume_trend = 1 + years_in * VOLUME_TREND

        for region, country in country_pairs:
            region_mult = dimensions.region_factors(region)

            for category, sub_category in product_pairs:
                product_mult = dimensions.product_factors(category)

                for material in dimensions.blade_materials:
                    material_mult = dimensions.material_factors(material)

                    for handle_length in dimensions.handle_lengths:
                        tier_mult = dimensions.price_tier_factor(handle_length)

                        for application in dimensions.applications:
                            app_mult = dimensions.application_factors(application)

                            # ── Sampled dimensions (draws 1-5) ──
                            end_user = rng.choice(dimensions.end_users)
                            sales_channel = rng.choice(dimensions.sales_channels)
                            channel_mult = dimensions.channel_factors(sales_channel)
                            distribution_channel = rng.choice(dimensions.channels_for(sales_channel))
                            brand = rng.choice(dimensions.brands)
                            brand_mult = dimensions.brand_premium(brand)
                            company = rng.choice(dimensions.companies)

                            # ── Measures (draws 6-12) ──
                            base_price = rng.scaled(10, 90)
                            price = (
                                base_price * product_mult.price * material_mult.price
                                * brand_mult * tier_mult * price_trend
                            )

                            base_volume = rng.scaled(100, 900)
                            volume_units = math.floor(
                                base_volume * region_mult.volume * product_mult.volume
                                * material_mult.volume * app_mult.volume
                                * channel_mult.volume * volume_trend
                            )

                            revenue = price * volume_units
                            market_value_usd = revenue * rng.scaled(0.9, 0.2)

                            market_share_pct = rng.scaled(1, 24) * region_mult.market_share * brand_mult

                            cagr = rng.scaled(-2, 12) * product_mult.cagr
                            yoy_growth = rng.scaled(-5, 20)
                            qty = math.floor(volume_units * rng.scaled(0.8, 0.4))

                            yield FactRecord(
                                record_id=record_id,
                                year=year,
                                region=region,
                                country=country,
                                product_category=category,
                                sub_product_category=sub_category,
                                blade_material=material,
                                handle_length=handle_length,
                                application=application,
                                end_user=end_user,
                                distribution_channel_type=sales_channel,
                                distribution_channel=distribution_channel,
                                brand=brand,
                                company=company,
                                price=round2(price),
                                volume_units=volume_units,
                                qty=qty,
                                revenue=round2(revenue),
                                market_value_usd=round2(market_value_usd),
                                market_share_pct=round2(market_share_pct),
                                cagr=round2(cagr),
                                yoy_growth=round2(yoy_growth),
                            )
                            record_id += 1


def generate_fact_table(
    dimensions: DimensionTables = DEFAULT_DIMENSIONS,
    rng: Optional[SeededRandom] = None,
    first_record_id: int = FIRST_RECORD_ID,
) -> list[FactRecord]:
    """Materialise the full fact table. Deterministic for a given rng seed."""
    records = list(iter_fact_records(dimensions, rng, first_record_id))
    logger.info(
        "Generated %d fact records (%d years, ids %d-%d)",
        len(records), len(dimensions.years),
        first_record_id, first_record_id + len(records) - 1,
    )
    return records


def records_to_frame(records: list[FactRecord]) -> pd.DataFrame:
    """Fact records as a DataFrame with one column per FactRecord field."""
    row_of = attrgetter(*FACT_COLUMNS)
    return pd.DataFrame([row_of(r) for r in records], columns=FACT_COLUMNS)
