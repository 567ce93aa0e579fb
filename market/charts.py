"""
Chart builders — Plotly figures from aggregation rows.

Each builder takes the rows/segments produced by market.aggregation plus
axis labels and returns a plotly.graph_objects.Figure; pages only call
st.plotly_chart on the result. Builders never filter or aggregate.

One trace per segment, drawn in segment order, so colours stay stable when
the same segment shows up on several charts of a page.
"""

import numpy as np
import plotly.graph_objects as go
from plotly.subplots import make_subplots

PALETTE = [
    "#2196F3", "#FF9800", "#4CAF50", "#9C27B0", "#F44336",
    "#00BCD4", "#795548", "#E91E63", "#607D8B", "#CDDC39",
]

INCREASE_COLOR = "#4CAF50"
DECREASE_COLOR = "#F44336"
TOTAL_COLOR = "#2196F3"


def color_for(index: int) -> str:
    return PALETTE[index % len(PALETTE)]


def _base_layout(fig: go.Figure, title: str, x_label: str, y_label: str, height: int = 400):
    fig.update_layout(
        title=title,
        xaxis_title=x_label,
        yaxis_title=y_label,
        height=height,
        margin=dict(l=10, r=10, t=50, b=10),
        legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="left", x=0),
    )
    return fig


# ═══════════════════════════════════════════════════════════════════════════════
# BAR CHARTS
# ═══════════════════════════════════════════════════════════════════════════════

def grouped_bar_chart(rows: list[dict], segments: list[str], title: str = "",
                      y_label: str = "", x_label: str = "Year") -> go.Figure:
    """Side-by-side bars per year, one trace per segment."""
    fig = go.Figure()
    years = [row["year"] for row in rows]
    for i, segment in enumerate(segments):
        fig.add_trace(go.Bar(
            x=years,
            y=[row.get(segment, 0) for row in rows],
            name=segment,
            marker_color=color_for(i),
        ))
    fig.update_layout(barmode="group")
    fig.update_xaxes(type="category")
    return _base_layout(fig, title, x_label, y_label)


def stacked_bar_chart(rows: list[dict], segments: list[str], title: str = "",
                      y_label: str = "", x_label: str = "Year") -> go.Figure:
    fig = grouped_bar_chart(rows, segments, title, y_label, x_label)
    fig.update_layout(barmode="stack")
    return fig


def share_bar_chart(rows: list[dict], segment_key: str = "region", title: str = "",
                    y_label: str = "Share of Total (%)", x_label: str = "Year") -> go.Figure:
    """100% stacked bars from long percentage rows {year, <segment_key>, value}."""
    segments = sorted({row[segment_key] for row in rows})
    years = sorted({row["year"] for row in rows})
    values = {(row["year"], row[segment_key]): row["value"] for row in rows}

    fig = go.Figure()
    for i, segment in enumerate(segments):
        fig.add_trace(go.Bar(
            x=[str(y) for y in years],
            y=[values.get((y, segment), 0) for y in years],
            name=segment,
            marker_color=color_for(i),
            hovertemplate="%{x}: %{y:.1f}<extra>" + segment + "</extra>",
        ))
    fig.update_layout(barmode="stack")
    fig.update_xaxes(type="category")
    return _base_layout(fig, title, x_label, y_label)


# ═══════════════════════════════════════════════════════════════════════════════
# WATERFALL
# ═══════════════════════════════════════════════════════════════════════════════

def waterfall_chart(rows: list[dict], title: str = "", y_label: str = "") -> go.Figure:
    """Plotly waterfall: base and total rows are absolute, the rest relative."""
    measures, values, labels = [], [], []
    for row in rows:
        if row.get("is_base"):
            measures.append("absolute")
            values.append(row["base_value"])
            labels.append(f"{row['year']} (Base)")
        elif row.get("is_total"):
            measures.append("total")
            values.append(row["total_value"])
            labels.append(f"{row['year']} (Total)")
        else:
            measures.append("relative")
            values.append(row["incremental_value"])
            labels.append(row["year"])

    fig = go.Figure(go.Waterfall(
        x=labels,
        y=values,
        measure=measures,
        increasing=dict(marker=dict(color=INCREASE_COLOR)),
        decreasing=dict(marker=dict(color=DECREASE_COLOR)),
        totals=dict(marker=dict(color=TOTAL_COLOR)),
        connector=dict(line=dict(color="rgb(150, 150, 150)", width=1)),
        texttemplate="%{y:,.1f}",
        textposition="outside",
    ))
    fig.update_layout(showlegend=False)
    return _base_layout(fig, title, "Year", y_label, height=450)


# ═══════════════════════════════════════════════════════════════════════════════
# BUBBLE + GROWTH
# ═══════════════════════════════════════════════════════════════════════════════

def bubble_sizes(values, min_size: float = 12.0, max_size: float = 60.0) -> np.ndarray:
    """Map opportunity values to marker diameters by area (sqrt scaling).

    Negative opportunities are drawn at the minimum size; an all-equal input
    gets the midpoint size.
    """
    arr = np.clip(np.asarray(values, dtype=float), 0.0, None)
    if arr.size == 0:
        return arr
    root = np.sqrt(arr)
    span = root.max() - root.min()
    if span == 0:
        return np.full(arr.shape, (min_size + max_size) / 2)
    return min_size + (root - root.min()) / span * (max_size - min_size)


def bubble_chart(points: list[dict], title: str = "",
                 x_label: str = "CAGR Index (%)", y_label: str = "Market Share Index (%)") -> go.Figure:
    """One bubble per segment; size = incremental opportunity."""
    fig = go.Figure()
    sizes = bubble_sizes([p["incremental_opportunity"] for p in points])
    for i, (point, size) in enumerate(zip(points, sizes)):
        fig.add_trace(go.Scatter(
            x=[point["cagr_index"]],
            y=[point["market_share_index"]],
            mode="markers+text",
            text=[point["segment"]],
            textposition="top center",
            marker=dict(size=float(size), color=color_for(i), opacity=0.7,
                        line=dict(width=1, color="white")),
            name=point["segment"],
            hovertemplate=(
                f"<b>{point['segment']}</b><br>"
                "CAGR: %{x:.2f}%<br>Share: %{y:.2f}%<br>"
                f"Opportunity: {point['incremental_opportunity']:,.1f}<extra></extra>"
            ),
        ))
    return _base_layout(fig, title, x_label, y_label, height=500)


def growth_chart(rows: list[dict], entities: list[str], title: str = "") -> go.Figure:
    """YoY % bars on the primary axis, CAGR % lines on the secondary axis."""
    fig = make_subplots(specs=[[{"secondary_y": True}]])
    for i, entity in enumerate(entities):
        entity_rows = [row for row in rows if row["entity"] == entity]
        years = [str(row["year"]) for row in entity_rows]
        fig.add_trace(go.Bar(
            x=years,
            y=[row["yoy_pct"] for row in entity_rows],
            name=f"{entity} YoY",
            marker_color=color_for(i),
            opacity=0.6,
        ), secondary_y=False)
        fig.add_trace(go.Scatter(
            x=years,
            y=[row["cagr_pct"] for row in entity_rows],
            name=f"{entity} CAGR",
            mode="lines+markers",
            line=dict(color=color_for(i), width=2),
        ), secondary_y=True)
    fig.update_yaxes(title_text="YoY Growth (%)", secondary_y=False)
    fig.update_yaxes(title_text="CAGR (%)", secondary_y=True)
    fig.update_xaxes(type="category")
    fig.update_layout(barmode="group")
    return _base_layout(fig, title, "Year", "YoY Growth (%)", height=450)
