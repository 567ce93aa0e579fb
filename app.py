"""
Market Analytics Dashboard — Home Page (Streamlit entry point).

Landing page for the U.S. Water Repair Products market demo. It provides:
  1. Navigation cards linking to the analysis pages
  2. A key-stats row computed from the generated fact table
  3. A preview chart of total market size per year

Run: streamlit run app.py

Multipage app (sidebar order determined by numeric filename prefix):
  - pages/1_Market_Analysis.py          → Filtered segment charts by year
  - pages/2_Incremental_Opportunity.py  → Base-year-to-forecast waterfall
  - pages/3_Market_Attractiveness.py    → CAGR vs market share bubble chart
  - pages/4_YoY_CAGR.py                 → Growth rates by region / product / country
  - pages/5_About.py                    → Data model and methodology
"""

import streamlit as st
import plotly.graph_objects as go

from market.aggregation import MEASURES, BY_VALUE, yearly_totals
from market.resources import get_options, get_settings, load_records, regenerate_data

st.set_page_config(
    page_title="Market Analytics Dashboard",
    layout="wide",
)

settings = get_settings()

st.title("U.S. Water Repair Products Market")
st.markdown(
    "Interactive market analytics over a deterministic synthetic dataset. "
    "Filter by product, material, application, channel and geography, and "
    "compare market size, growth and attractiveness across segments."
)

with st.sidebar:
    st.caption(f"Seed {settings.seed} · {settings.start_year}–{settings.end_year}")
    if st.button("Regenerate dataset", use_container_width=True):
        regenerate_data()
        st.rerun()

st.divider()

# ── Navigation Cards ─────────────────────────────────────────────────────────
col1, col2, col3, col4 = st.columns(4)

with col1:
    st.subheader("Market Analysis")
    st.markdown("Market size by product, material, application, end user and channel.")
    st.page_link("pages/1_Market_Analysis.py", label="Open Analysis", icon="📊")

with col2:
    st.subheader("Incremental Opportunity")
    st.markdown("How the market grows from the base year to the end of the forecast.")
    st.page_link("pages/2_Incremental_Opportunity.py", label="Open Waterfall", icon="📈")

with col3:
    st.subheader("Attractiveness")
    st.markdown("Segments positioned by CAGR, market share and opportunity size.")
    st.page_link("pages/3_Market_Attractiveness.py", label="Open Bubbles", icon="🫧")

with col4:
    st.subheader("YoY / CAGR")
    st.markdown("Year-over-year and compound growth for regions, products and states.")
    st.page_link("pages/4_YoY_CAGR.py", label="Open Growth", icon="📉")

st.divider()

# ── Key Stats ────────────────────────────────────────────────────────────────
records = load_records()
options = get_options()

c1, c2, c3, c4 = st.columns(4)
c1.metric("Records", f"{len(records):,}")
c2.metric("Years", f"{options.years[0]}–{options.years[-1]}")
c3.metric("Product Types", str(len(options.product_types)))
c4.metric("States", str(len(options.countries)))

# ── Market Size Preview ──────────────────────────────────────────────────────
st.markdown("#### Total Market Size (US$ Million)")

totals = yearly_totals(records, MEASURES[BY_VALUE])
fig = go.Figure(go.Bar(
    x=[str(y) for y in totals],
    y=list(totals.values()),
    marker_color="#2196F3",
))
fig.update_layout(
    height=350,
    margin=dict(l=0, r=0, t=10, b=0),
    xaxis=dict(type="category", title="Year"),
    yaxis=dict(title="US$ Million"),
)
st.plotly_chart(fig, use_container_width=True)
