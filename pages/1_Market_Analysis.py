"""
Market Analysis page — filtered segment charts by year.

Layout:
  - Sidebar: market evaluation (value / volume), then cascading filters:
    year, region → state, category → subcategory, product type, pipe
    material, price tier, application, end user, sales channel, and
    distribution channel grouped under Offline / Online
  - Main area:
    1. Summary metrics (records matched, total, share of total market)
    2. Grouped bars per product category and subcategory
    3. Stacked share bars per material, price tier, application, end user
    4. Regional share (% of each year's total) and sales channel breakdown
    5. Offline / Online distribution channel breakdown

Data flow: FactCache → filter_records() → aggregation series → charts
"""

import streamlit as st

from market.aggregation import (
    BY_VALUE, BY_VOLUME, channel_subtype_series, measure_for, measure_label,
    percentage_series, segment_year_series, stacked_share_series, yearly_totals,
)
from market.charts import grouped_bar_chart, share_bar_chart, stacked_bar_chart
from market.filters import filter_records
from market.options import default_filters
from market.resources import get_dimension_graph, get_options, load_records

st.set_page_config(page_title="Market Analysis — Market Analytics", layout="wide")

records = load_records()
options = get_options()
graph = get_dimension_graph()
defaults = default_filters(options)

# ── Sidebar: Filters ─────────────────────────────────────────────────────
with st.sidebar:
    st.header("Filters")

    evaluation = st.radio("Market Evaluation", [BY_VALUE, BY_VOLUME], horizontal=True)

    years = st.multiselect("Year", options.years, default=defaults["year"])

    regions = st.multiselect("Region", options.regions)
    country_options = graph.country_options(regions)
    country_labels = dict(country_options)
    countries = st.multiselect(
        "State", [value for value, _ in country_options],
        format_func=lambda c: country_labels.get(c, c),
    )

    st.divider()

    categories = st.multiselect(
        "Product Category", options.product_categories, default=defaults["product_category"],
    )
    subcategories = st.multiselect("Sub-Product Category", graph.subcategories_for(categories))
    product_types = st.multiselect("Product Type", options.product_types)
    materials = st.multiselect(
        "Pipe Material", options.blade_materials, default=defaults["blade_material"],
    )
    tiers = st.multiselect("Price Range", options.handle_lengths)
    applications = st.multiselect(
        "Application", options.applications, default=defaults["application"],
    )
    end_users = st.multiselect("End User", options.end_users)

    st.divider()

    sales_channels = st.multiselect(
        "Sales Channel", options.distribution_channel_types,
        default=defaults["distribution_channel_type"],
    )
    # Grouped by Offline / Online; only channels present in the data
    present = set(options.distribution_channels)
    grouped_channels = [
        channel
        for channels in graph.channel_groups().values()
        for channel in channels
        if channel in present
    ]
    channels = st.multiselect(
        "Distribution Channel", grouped_channels,
        format_func=lambda c: f"{graph.group_of(c)} · {c}",
    )

criteria = {
    "year": years,
    "region": regions,
    "country": countries,
    "product_category": categories,
    "sub_product_category": subcategories,
    "product_type": product_types,
    "blade_material": materials,
    "handle_length": tiers,
    "application": applications,
    "end_user": end_users,
    "distribution_channel_type": sales_channels,
    "distribution_channel": channels,
}

# ── Filter + measure ──────────────────────────────────────────────────────
filtered = filter_records(records, criteria)
measure_of = measure_for(evaluation)
y_label = measure_label(evaluation)

st.title("Market Analysis")
st.caption(f"{evaluation} · {y_label}")

if not filtered:
    st.warning("No records match the current filters. Clear some selections in the sidebar.")
    st.stop()

# ── Summary ───────────────────────────────────────────────────────────────
filtered_total = sum(yearly_totals(filtered, measure_of).values())
market_total = sum(
    yearly_totals(filter_records(records, {"year": years}), measure_of).values()
)

col1, col2, col3 = st.columns(3)
col1.metric("Records Matched", f"{len(filtered):,}")
col2.metric(y_label, f"{filtered_total:,.1f}")
col3.metric(
    "Share of Selected Years",
    f"{filtered_total / market_total * 100:.1f}%" if market_total else "—",
)

st.divider()

# ── Product segments ──────────────────────────────────────────────────────
left, right = st.columns(2)
with left:
    result = segment_year_series(filtered, lambda r: r.product_category, measure_of, categories)
    st.plotly_chart(
        grouped_bar_chart(result.rows, result.segments, "By Product Category", y_label),
        use_container_width=True,
    )
with right:
    result = segment_year_series(filtered, lambda r: r.sub_product_category, measure_of, subcategories)
    st.plotly_chart(
        grouped_bar_chart(result.rows, result.segments, "By Sub-Product Category", y_label),
        use_container_width=True,
    )

# ── Share breakdowns ──────────────────────────────────────────────────────
breakdowns = [
    ("By Pipe Material", lambda r: r.blade_material, materials),
    ("By Price Range", lambda r: r.handle_length, tiers),
    ("By Application", lambda r: r.application, applications),
    ("By End User", lambda r: r.end_user, end_users),
]
for i in range(0, len(breakdowns), 2):
    cols = st.columns(2)
    for col, (title, segment_of, selected) in zip(cols, breakdowns[i:i + 2]):
        result = stacked_share_series(filtered, segment_of, measure_of, selected)
        with col:
            st.plotly_chart(
                stacked_bar_chart(result.rows, result.segments, title, y_label),
                use_container_width=True,
            )

st.divider()

# ── Geography + sales channel ─────────────────────────────────────────────
left, right = st.columns(2)
with left:
    by_value = evaluation == BY_VALUE
    result = percentage_series(filtered, lambda r: r.region, measure_of, regions, as_percentage=by_value)
    st.plotly_chart(
        share_bar_chart(
            result.rows, "region", "Regional Share",
            "Share of Total (%)" if by_value else y_label,
        ),
        use_container_width=True,
    )
with right:
    result = stacked_share_series(filtered, lambda r: r.distribution_channel_type, measure_of, sales_channels)
    st.plotly_chart(
        stacked_bar_chart(result.rows, result.segments, "By Sales Channel", y_label),
        use_container_width=True,
    )

# ── Offline / Online channel breakdown ────────────────────────────────────
st.subheader("Distribution Channel Breakdown")
cols = st.columns(2)
for col, group in zip(cols, ["Offline", "Online"]):
    result = channel_subtype_series(filtered, group, measure_of)
    with col:
        if not result.segments:
            st.info(f"No {group.lower()} channel sales in the current selection.")
            continue
        st.plotly_chart(
            stacked_bar_chart(result.rows, result.segments, f"{group} Channels", y_label),
            use_container_width=True,
        )
