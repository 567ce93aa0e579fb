"""
About page — explains the dataset and how the dashboard computes its charts.

Sections:
  1. Hero: one-line description of the dashboard
  2. How It Works: Generate → Filter → Aggregate
  3. The Data: dimension sizes computed from the dimension tables
  4. Filters: hierarchical "Parent - Child" selections
  5. Technical Details: generator draw order and PRNG (expandable)
"""

import streamlit as st

from market.generator import count_leaf_combinations
from market.prng import INCREMENT, MODULUS, MULTIPLIER
from market.resources import get_settings

st.set_page_config(page_title="About — Market Analytics", layout="wide")

settings = get_settings()
dims = settings.dimensions()

# ── Hero ──────────────────────────────────────────────────────────────────────
st.title("About the Market Analytics Dashboard")
st.markdown(
    """
    A demo analytics dashboard for the **U.S. Water Repair Products** market.
    Every number is synthetic: a seeded generator expands a set of dimension
    tables into a fact table of market observations, and each chart is a
    filtered aggregation of that table. The same seed always produces the
    same dataset.
    """
)

st.divider()

# ── How It Works ──────────────────────────────────────────────────────────────
st.header("How It Works")

col1, col2, col3 = st.columns(3)

with col1:
    st.subheader("1. Generate")
    st.markdown(
        """
        One record per combination of **year, state, product type, pipe
        material, price range and application**. End user, channel, brand
        and company are sampled per record. Prices and volumes combine
        dimension multipliers with yearly trends.
        """
    )

with col2:
    st.subheader("2. Filter")
    st.markdown(
        """
        Sidebar selections become per-field predicates. An empty selection
        means *no constraint*. Values within a field are OR-ed; fields are
        AND-ed together.
        """
    )

with col3:
    st.subheader("3. Aggregate")
    st.markdown(
        """
        Filtered records are summed per year and segment into grouped bars,
        stacked shares, regional percentages, the incremental-opportunity
        waterfall, attractiveness bubbles and growth rates.
        """
    )

st.divider()

# ── The Data ──────────────────────────────────────────────────────────────────
st.header("The Data")

c1, c2, c3, c4 = st.columns(4)
c1.metric("Years", f"{dims.first_year}–{max(dims.years)}")
c2.metric("States", str(len(dims.country_pairs())))
c3.metric("Product Types", str(len(dims.product_pairs())))
c4.metric("Records", f"{count_leaf_combinations(dims):,}")

st.markdown(
    """
    | Dimension | Examples |
    |---|---|
    | **Region / State** | Northeast → New York, Pennsylvania, … |
    | **Product Category / Subcategory** | Valve Solutions → Gate Valves, Butterfly Valves, … |
    | **Pipe Material** | Ductile Iron, Cast Iron, PVC, HDPE, Steel, … |
    | **Price Range** | Mass, Premium, Luxury |
    | **Application** | Potable Water Distribution, Emergency Leak Repair, … |
    | **End User** | Municipal Water Utilities, Industrial Facilities, … |
    | **Sales Channel** | Direct Sales, Online Procurement Platforms, … |

    **By Value** charts show market value in US$ Million; **By Volume**
    charts show units.
    """
)

st.divider()

# ── Filters ───────────────────────────────────────────────────────────────────
st.header("Hierarchical Filters")
st.markdown(
    """
    Product type selections can name a whole category (*Valve Solutions*) or
    one subcategory (*Valve Solutions - Gate Valves*). A record matches if any
    selection matches it as a category, as a full product type, or as a
    category + subcategory pair. Categories without subcategories are their
    own single product type.
    """
)

st.divider()

# ── Technical Details ─────────────────────────────────────────────────────────
with st.expander("Technical Details"):
    st.markdown(
        f"""
        **Random numbers.** A linear congruential generator seeded with
        `{settings.seed}`:

        `state = (state × {MULTIPLIER} + {INCREMENT}) mod {MODULUS}`, draw = `state / {MODULUS}`

        **Draw order per record** (12 draws): end user, sales channel,
        distribution channel, brand, company, base price, base volume,
        market value factor, market share, CAGR, YoY growth, quantity factor.

        **Record IDs** start at `{settings.first_record_id}` and increase by
        one in generation order.

        **Waterfall.** {settings.base_year} is the base year. Each following
        year through {settings.forecast_end_year} adds the change in total
        versus the previous year; years without data use illustrative
        increments.
        """
    )
