"""
Market Attractiveness page — bubble chart of segments.

Each bubble is one segment of the chosen dimension: x = mean CAGR,
y = mean market share, size = incremental opportunity between the first and
last selected year.
"""

import pandas as pd
import streamlit as st

from market.aggregation import BY_VALUE, BY_VOLUME, attractiveness_points, measure_for
from market.charts import bubble_chart
from market.filters import filter_records
from market.resources import get_dimension_graph, get_options, load_records

st.set_page_config(page_title="Market Attractiveness — Market Analytics", layout="wide")

SEGMENT_DIMENSIONS = {
    "Region":           lambda r: r.region,
    "State":            lambda r: r.country,
    "Product Category": lambda r: r.product_category,
    "Pipe Material":    lambda r: r.blade_material,
    "Application":      lambda r: r.application,
    "End User":         lambda r: r.end_user,
    "Sales Channel":    lambda r: r.distribution_channel_type,
}

records = load_records()
options = get_options()
graph = get_dimension_graph()

# ── Sidebar: Filters ─────────────────────────────────────────────────────
with st.sidebar:
    st.header("Filters")

    evaluation = st.radio("Market Evaluation", [BY_VALUE, BY_VOLUME], horizontal=True)
    dimension = st.selectbox("Segment By", list(SEGMENT_DIMENSIONS))

    start_year, end_year = st.select_slider(
        "Year Range", options=options.years, value=(options.years[0], options.years[-1]),
    )
    regions = st.multiselect("Region", options.regions)
    countries = st.multiselect("State", graph.countries_for_regions(regions))
    categories = st.multiselect("Product Category", options.product_categories)

filtered = filter_records(records, {
    "year": [y for y in options.years if start_year <= y <= end_year],
    "region": regions,
    "country": countries,
    "product_category": categories,
})

st.title("Market Attractiveness")
st.caption(f"{dimension} · {start_year}–{end_year}")

if not filtered:
    st.warning("No records match the current filters.")
    st.stop()

points = attractiveness_points(filtered, SEGMENT_DIMENSIONS[dimension], measure_for(evaluation))
if not points:
    st.warning(f"No {dimension.lower()} segments in the current selection.")
    st.stop()

if start_year == end_year:
    st.info("Select more than one year to size bubbles by incremental opportunity.")

st.plotly_chart(bubble_chart(points, f"Attractiveness by {dimension}"), use_container_width=True)

# ── Ranking ──
table = pd.DataFrame(points).rename(columns={
    "segment": dimension,
    "cagr_index": "CAGR Index (%)",
    "market_share_index": "Market Share Index (%)",
    "incremental_opportunity": "Incremental Opportunity",
})
table = table.sort_values("Incremental Opportunity", ascending=False)
st.dataframe(
    table, use_container_width=True, hide_index=True,
    column_config={
        "CAGR Index (%)": st.column_config.NumberColumn(format="%.2f"),
        "Market Share Index (%)": st.column_config.NumberColumn(format="%.2f"),
        "Incremental Opportunity": st.column_config.NumberColumn(format="%.1f"),
    },
)
