"""
YoY / CAGR page — year-over-year and compound growth per entity.

Layout:
  - Sidebar: market evaluation, compare-by (region, state, product type,
    distribution channel), then region → state and product type filters
  - Main area: YoY bars + CAGR lines per entity, and the underlying table

Nothing selected in compare-by shows the whole filtered market as one line.
"""

import pandas as pd
import streamlit as st

from market.aggregation import BY_VALUE, BY_VOLUME, growth_series, measure_for
from market.charts import growth_chart
from market.filters import filter_records
from market.resources import get_dimension_graph, get_options, load_records

st.set_page_config(page_title="YoY / CAGR — Market Analytics", layout="wide")

COMPARE_BY = {
    "Total Market":         None,
    "Region":               lambda r: r.region,
    "State":                lambda r: r.country,
    "Product Type":         lambda r: r.product_type,
    "Distribution Channel": lambda r: r.distribution_channel,
}

records = load_records()
options = get_options()
graph = get_dimension_graph()

# ── Sidebar: Filters ─────────────────────────────────────────────────────
with st.sidebar:
    st.header("Filters")

    evaluation = st.radio("Market Evaluation", [BY_VALUE, BY_VOLUME], horizontal=True)
    compare_by = st.selectbox("Compare By", list(COMPARE_BY))

    regions = st.multiselect("Region", options.regions)
    country_options = graph.country_options(regions)
    country_labels = dict(country_options)
    countries = st.multiselect(
        "State", [value for value, _ in country_options],
        format_func=lambda c: country_labels.get(c, c),
    )
    product_types = st.multiselect("Product Type", options.product_types)
    channels = st.multiselect("Distribution Channel", options.distribution_channels)

filtered = filter_records(records, {
    "region": regions,
    "country": countries,
    "product_type": product_types,
    "distribution_channel": channels,
})

st.title("YoY / CAGR Growth")
st.caption(compare_by)

if not filtered:
    st.warning("No records match the current filters.")
    st.stop()

result = growth_series(filtered, measure_for(evaluation), COMPARE_BY[compare_by])

if len(result.entities) > 10:
    st.info(f"{len(result.entities)} entities selected; narrow the filters for a readable chart.")

st.plotly_chart(growth_chart(result.rows, result.entities, "Growth by Year"), use_container_width=True)

with st.expander("Growth table"):
    table = pd.DataFrame(result.rows).rename(columns={
        "entity": compare_by,
        "year": "Year",
        "value": "Total",
        "yoy_pct": "YoY (%)",
        "cagr_pct": "CAGR (%)",
    })
    st.dataframe(table, use_container_width=True, hide_index=True)
