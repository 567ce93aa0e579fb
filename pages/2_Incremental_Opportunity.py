"""
Incremental Opportunity page — waterfall from the base year to the forecast end.

Layout:
  - Sidebar: market evaluation, region → state, hierarchical product type
    (a whole category or a single "Category - Subcategory")
  - Main area:
    1. Metrics: base-year market, incremental opportunity, end-of-forecast market
    2. Waterfall chart (base year, one increment per year, total)
    3. Yearly increments table

Years without data fall back to illustrative increments scaled by the share
of the dataset the selection covers.
"""

import pandas as pd
import streamlit as st

from market.aggregation import BY_VALUE, BY_VOLUME, measure_for, measure_label, waterfall_series
from market.charts import waterfall_chart
from market.filters import filter_records
from market.resources import get_dimension_graph, get_options, get_settings, load_records

st.set_page_config(page_title="Incremental Opportunity — Market Analytics", layout="wide")

settings = get_settings()
records = load_records()
options = get_options()
graph = get_dimension_graph()

# ── Sidebar: Filters ─────────────────────────────────────────────────────
with st.sidebar:
    st.header("Filters")

    evaluation = st.radio("Market Evaluation", [BY_VALUE, BY_VOLUME], horizontal=True)

    regions = st.multiselect("Region", options.regions)
    countries = st.multiselect("State", graph.countries_for_regions(regions))

    # Category first, then its "Category - Subcategory" leaves
    product_labels = []
    for category, product_types in graph.product_category_hierarchy().items():
        product_labels.append(category)
        product_labels.extend(pt for pt in product_types if pt != f"{category} - {category}")
    product_types = st.multiselect("Product Type", product_labels)

filtered = filter_records(records, {
    "region": regions,
    "country": countries,
    "product_type": product_types,
})

st.title("Incremental Opportunity")
st.caption(
    f"{settings.base_year} base year through {settings.forecast_end_year} · {measure_label(evaluation)}"
)

if not filtered:
    st.warning("No records match the current filters.")
    st.stop()

# ── Waterfall ─────────────────────────────────────────────────────────────
with st.spinner("Computing incremental opportunity..."):
    result = waterfall_series(
        filtered,
        measure_for(evaluation),
        base_year=settings.base_year,
        end_year=settings.forecast_end_year,
        fallback_scale=len(filtered) / len(records),
    )

base_row, total_row = result.rows[0], result.rows[-1]

col1, col2, col3 = st.columns(3)
col1.metric(f"{settings.base_year} Market", f"{base_row['base_value']:,.1f}")
col2.metric("Incremental Opportunity", f"{result.total_increment:,.1f}")
col3.metric(f"{settings.forecast_end_year} Market", f"{total_row['total_value']:,.1f}")

st.plotly_chart(
    waterfall_chart(result.rows, "Incremental Opportunity", measure_label(evaluation)),
    use_container_width=True,
)

# ── Increments table ──────────────────────────────────────────────────────
with st.expander("Yearly increments"):
    increments = pd.DataFrame([
        {
            "Year": row["year"],
            "Increment": f"{row['incremental_value']:,.1f}",
            "Cumulative": f"{row['total_value']:,.1f}",
        }
        for row in result.rows
        if "incremental_value" in row
    ])
    st.dataframe(increments, use_container_width=True, hide_index=True)
