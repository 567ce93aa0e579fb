"""
Process-wide Streamlit resources shared by app.py and every page.

st.cache_resource keys on the defining function, so the cache, settings and
hierarchy graph live here once instead of being rebuilt per page.
"""

import logging

import streamlit as st

from market.cache import FactCache
from market.config import MarketSettings, load_settings
from market.generator import FactRecord
from market.hierarchy import DimensionGraph
from market.logging_config import configure_logging
from market.options import FilterOptions, unique_options
from market.prng import SeededRandom

logger = logging.getLogger(__name__)


@st.cache_resource
def get_settings() -> MarketSettings:
    settings = load_settings()
    configure_logging(settings.log_level)
    return settings


@st.cache_resource
def get_fact_cache() -> FactCache:
    settings = get_settings()
    # Shared stream for the app lifetime; each regeneration continues it
    return FactCache(
        settings.dimensions(),
        seed=settings.seed,
        rng=SeededRandom(settings.seed),
        first_record_id=settings.first_record_id,
    )


@st.cache_resource
def get_dimension_graph() -> DimensionGraph:
    return DimensionGraph(get_settings().dimensions())


@st.cache_resource
def get_options() -> FilterOptions:
    return unique_options(get_fact_cache().get())


def load_records() -> list[FactRecord]:
    """Fact table behind a loading state; stops the page on an empty table."""
    cache = get_fact_cache()
    if not cache.is_loaded:
        with st.spinner("Generating market dataset..."):
            records = cache.get()
    else:
        records = cache.get()

    if cache.last_error:
        st.error(f"Market data could not be generated: {cache.last_error}")
        st.stop()
    if not records:
        st.warning("No market data available.")
        st.stop()
    return records


def regenerate_data():
    """Drop the cached table and the options derived from it."""
    get_fact_cache().invalidate()
    get_options.clear()
    logger.info("Market dataset scheduled for regeneration")
