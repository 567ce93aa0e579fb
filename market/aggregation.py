"""
Aggregation engine — reduces filtered fact records into chart-ready series.

Every function is pure: it takes records plus extractor functions
(`segment_of(record) -> str`, `measure_of(record) -> number`) and returns
plain rows (list of flat dicts) that the Plotly builders in charts.py
consume. Nothing here raises for empty input; an empty selection produces a
well-formed empty series so the page can render an empty state.

Ordering: years ascending; segments sorted lexicographically unless the
caller passes an explicit segment list (which is cleaned and sorted too).

Series shapes:
  segment_year_series   — one row per year, one column per segment (grouped bars)
  stacked_share_series  — same, minus segments that are zero in every year
  percentage_series     — long rows of (year, segment, % of that year's total)
  waterfall_series      — base year + yearly increments + grand total
plus channel sub-type breakdowns, bubble-chart points and YoY/CAGR growth.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional

import pandas as pd

from market.dimensions import channel_group
from market.generator import FactRecord

SegmentOf = Callable[[FactRecord], str]
MeasureOf = Callable[[FactRecord], float]


# ═══════════════════════════════════════════════════════════════════════════════
# MEASURES
# ═══════════════════════════════════════════════════════════════════════════════

BY_VALUE = "By Value"
BY_VOLUME = "By Volume"

MEASURES: dict[str, MeasureOf] = {
    # Charts label value in US$ Million; the table stores raw USD / 1000
    BY_VALUE:  lambda r: (r.market_value_usd or 0) / 1000,
    BY_VOLUME: lambda r: r.volume_units or 0,
}

MEASURE_LABELS = {
    BY_VALUE:  "Market Size (US$ Million)",
    BY_VOLUME: "Market Volume (Units)",
}


def measure_for(evaluation: str) -> MeasureOf:
    """Measure extractor for a market-evaluation choice; unknown -> by value."""
    return MEASURES.get(evaluation, MEASURES[BY_VALUE])


def measure_label(evaluation: str) -> str:
    return MEASURE_LABELS.get(evaluation, MEASURE_LABELS[BY_VALUE])


# ═══════════════════════════════════════════════════════════════════════════════
# RESULT CONTAINERS
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class SeriesResult:
    """Rows with a shared key set plus the segment keys to plot."""
    rows: list = field(default_factory=list)        # list[dict[str, Any]]
    segments: list = field(default_factory=list)    # list[str]


@dataclass
class WaterfallResult:
    rows: list = field(default_factory=list)
    total_increment: float = 0.0


@dataclass
class GrowthResult:
    rows: list = field(default_factory=list)        # {entity, year, value, yoy_pct, cagr_pct}
    entities: list = field(default_factory=list)


# ═══════════════════════════════════════════════════════════════════════════════
# HELPERS
# ═══════════════════════════════════════════════════════════════════════════════

def _long_frame(
    records: Iterable[FactRecord], measure_of: MeasureOf, segment_of: Optional[SegmentOf] = None
) -> pd.DataFrame:
    """(year, segment, value) frame; segment is "" when no extractor is given."""
    rows = [
        (r.year, segment_of(r) if segment_of else "", measure_of(r))
        for r in records
    ]
    return pd.DataFrame(rows, columns=["year", "segment", "value"])


def _years(frame: pd.DataFrame) -> list[int]:
    return sorted(frame["year"].unique().tolist())


def _resolve_segments(frame: pd.DataFrame, segments: Optional[Iterable[str]]) -> list[str]:
    """Explicit override (cleaned, sorted) or the observed non-empty segments."""
    explicit = sorted(s for s in (segments or []) if s)
    if explicit:
        return explicit
    return sorted(s for s in frame["segment"].unique().tolist() if s)


def _year_segment_totals(frame: pd.DataFrame) -> dict[tuple[int, str], float]:
    if frame.empty:
        return {}
    totals = frame.groupby(["year", "segment"])["value"].sum()
    return {key: float(v) for key, v in totals.items()}


def yearly_totals(records: Iterable[FactRecord], measure_of: MeasureOf) -> dict[int, float]:
    """Sum of the measure per year, years ascending."""
    frame = _long_frame(records, measure_of)
    if frame.empty:
        return {}
    totals = frame.groupby("year")["value"].sum().sort_index()
    return {int(year): float(v) for year, v in totals.items()}


def total_for_year(records: Iterable[FactRecord], measure_of: MeasureOf, year: int) -> float:
    return yearly_totals(records, measure_of).get(year, 0.0)


# ═══════════════════════════════════════════════════════════════════════════════
# 1. PER-SEGMENT YEAR SERIES (grouped bars)
# ═══════════════════════════════════════════════════════════════════════════════

def segment_year_series(
    records: Iterable[FactRecord],
    segment_of: SegmentOf,
    measure_of: MeasureOf,
    segments: Optional[Iterable[str]] = None,
) -> SeriesResult:
    """One row per year: {"year": "2024", <segment>: total, ...}.

    Missing (year, segment) cells are 0. The year is a string label because
    the bar charts use it as a categorical axis.
    """
    frame = _long_frame(records, measure_of, segment_of)
    keys = _resolve_segments(frame, segments)
    totals = _year_segment_totals(frame)

    rows = []
    for year in _years(frame):
        row: dict[str, Any] = {"year": str(year)}
        for segment in keys:
            row[segment] = totals.get((year, segment), 0)
        rows.append(row)
    return SeriesResult(rows=rows, segments=keys)


# ═══════════════════════════════════════════════════════════════════════════════
# 2. YEAR-WISE STACKED / SHARE SERIES
# ═══════════════════════════════════════════════════════════════════════════════

def stacked_share_series(
    records: Iterable[FactRecord],
    segment_of: SegmentOf,
    measure_of: MeasureOf,
    segments: Optional[Iterable[str]] = None,
) -> SeriesResult:
    """Same rows as segment_year_series; segments zero in every year are dropped."""
    result = segment_year_series(records, segment_of, measure_of, segments)
    active = [s for s in result.segments if any(row[s] != 0 for row in result.rows)]
    return SeriesResult(rows=result.rows, segments=active)


def channel_subtype_series(
    records: Iterable[FactRecord], group: str, measure_of: MeasureOf
) -> SeriesResult:
    """Stacked breakdown of distribution channels inside one channel group.

    Records belong to a group by their sales-channel label (channel_group()).
    The year axis spans all input years, so the group's chart lines up with
    the other share charts even when the group is absent in some years.
    """
    records = list(records)
    years = sorted({r.year for r in records})
    in_group = [r for r in records if channel_group(r.distribution_channel_type) == group]
    result = stacked_share_series(in_group, lambda r: r.distribution_channel, measure_of)

    by_year = {row["year"]: row for row in result.rows}
    rows = []
    for year in years:
        row = by_year.get(str(year)) or {"year": str(year), **{s: 0 for s in result.segments}}
        rows.append(row)
    return SeriesResult(rows=rows, segments=result.segments)


# ═══════════════════════════════════════════════════════════════════════════════
# 3. PERCENTAGE OF YEARLY TOTAL
# ═══════════════════════════════════════════════════════════════════════════════

def percentage_series(
    records: Iterable[FactRecord],
    segment_of: SegmentOf,
    measure_of: MeasureOf,
    segments: Optional[Iterable[str]] = None,
    segment_key: str = "region",
    as_percentage: bool = True,
) -> SeriesResult:
    """Long rows {"year": 2024, <segment_key>: seg, "value": pct}.

    pct = segment total / year total * 100; a zero year total yields 0 for
    every segment. With as_percentage=False the raw totals are returned
    (the volume view of the same chart). Only (year, segment) pairs that
    occur in the data are emitted. Year totals cover the emitted segments
    only, so each year's percentages sum to 100.
    """
    frame = _long_frame(records, measure_of, segment_of)
    frame = frame[frame["segment"] != ""]
    keys = set(_resolve_segments(frame, segments))
    totals = {
        (year, segment): value
        for (year, segment), value in _year_segment_totals(frame).items()
        if segment in keys
    }

    year_totals: dict[int, float] = {}
    for (year, _segment), value in totals.items():
        year_totals[year] = year_totals.get(year, 0.0) + value

    rows = []
    for year, segment in sorted(totals):
        value = totals[(year, segment)]
        if as_percentage:
            year_total = year_totals[year]
            value = value / year_total * 100 if year_total > 0 else 0
        rows.append({"year": int(year), segment_key: segment, "value": value})
    return SeriesResult(rows=rows, segments=sorted({row[segment_key] for row in rows}))


# ═══════════════════════════════════════════════════════════════════════════════
# 4. WATERFALL (incremental opportunity)
# ═══════════════════════════════════════════════════════════════════════════════

DEFAULT_BASE_VALUE = 57159.0
DEFAULT_INCREMENTS = (2638.4, 2850.4, 3055.6, 3231.0, 3432.9, 3674.2, 3885.1)


def waterfall_series(
    records: Iterable[FactRecord],
    measure_of: MeasureOf,
    base_year: int = 2024,
    end_year: int = 2031,
    default_base: float = DEFAULT_BASE_VALUE,
    default_increments: tuple[float, ...] = DEFAULT_INCREMENTS,
    fallback_scale: float = 1.0,
) -> WaterfallResult:
    """Base-year value, one incremental step per year, then a grand total.

    delta(year) = total(year) - total(year - 1) when both years have a
    positive total, otherwise the illustrative default increment for that
    step (scaled by fallback_scale; 0 past the end of the defaults). A
    base year without data uses default_base * fallback_scale.

    Rows:
        {"year": "2024", "base_value", "total_value", "is_base": True}
        {"year": "2025", "incremental_value", "total_value"}   ... through end_year
        {"year": str(end_year + 1), "base_value", "total_value", "is_total": True}
    """
    totals = yearly_totals(records, measure_of)

    base_value = totals.get(base_year, 0.0)
    if base_value == 0:
        base_value = default_base * fallback_scale

    deltas = []
    for step, year in enumerate(range(base_year + 1, end_year + 1)):
        this_year = totals.get(year, 0.0)
        prev_year = totals.get(year - 1, 0.0)
        if this_year > 0 and prev_year > 0:
            delta = this_year - prev_year
        else:
            default = default_increments[step] if step < len(default_increments) else 0.0
            delta = default * fallback_scale
        deltas.append((year, delta))

    cumulative = base_value
    rows = [{"year": str(base_year), "base_value": base_value, "total_value": base_value, "is_base": True}]
    for year, delta in deltas:
        cumulative += delta
        rows.append({"year": str(year), "incremental_value": delta, "total_value": cumulative})
    rows.append({"year": str(end_year + 1), "base_value": cumulative, "total_value": cumulative, "is_total": True})

    return WaterfallResult(rows=rows, total_increment=sum(delta for _, delta in deltas))


# ═══════════════════════════════════════════════════════════════════════════════
# 5. ATTRACTIVENESS (bubble chart) + GROWTH (YoY / CAGR)
# ═══════════════════════════════════════════════════════════════════════════════

def attractiveness_points(
    records: Iterable[FactRecord], segment_of: SegmentOf, measure_of: MeasureOf
) -> list[dict]:
    """One bubble per segment, sorted by segment name.

    cagr_index               mean record CAGR
    market_share_index       mean record market share %
    incremental_opportunity  measure total in the last year minus the first year
    """
    rows = [
        (segment_of(r), r.year, r.cagr, r.market_share_pct, measure_of(r))
        for r in records
    ]
    frame = pd.DataFrame(rows, columns=["segment", "year", "cagr", "share", "value"])
    frame = frame[frame["segment"] != ""]
    if frame.empty:
        return []

    first_year, last_year = frame["year"].min(), frame["year"].max()
    points = []
    for segment, group in frame.groupby("segment", sort=True):
        by_year = group.groupby("year")["value"].sum()
        points.append({
            "segment": segment,
            "cagr_index": float(group["cagr"].mean()),
            "market_share_index": float(group["share"].mean()),
            "incremental_opportunity": float(by_year.get(last_year, 0.0) - by_year.get(first_year, 0.0)),
        })
    return points


def growth_series(
    records: Iterable[FactRecord],
    measure_of: MeasureOf,
    entity_of: Optional[SegmentOf] = None,
) -> GrowthResult:
    """Yearly totals per entity with YoY % and CAGR % since the entity's first year.

    yoy_pct  = (v_t / v_{t-1} - 1) * 100      None for the first year or a zero base
    cagr_pct = ((v_t / v_0) ** (1 / n) - 1) * 100, n = years since first year
               None for the first year or a non-positive base / value
    Without entity_of everything is one entity named "All".
    """
    frame = _long_frame(records, measure_of, entity_of or (lambda r: "All"))
    frame = frame[frame["segment"] != ""]
    totals = _year_segment_totals(frame)
    entities = sorted({segment for _, segment in totals})

    rows = []
    for entity in entities:
        years = sorted(year for year, segment in totals if segment == entity)
        first_year = years[0]
        first_value = totals[(first_year, entity)]
        prev_value = None
        for year in years:
            value = totals[(year, entity)]
            yoy = (value / prev_value - 1) * 100 if prev_value else None
            periods = year - first_year
            cagr = None
            if periods > 0 and first_value > 0 and value > 0:
                cagr = ((value / first_value) ** (1 / periods) - 1) * 100
            rows.append({"entity": entity, "year": int(year), "value": value, "yoy_pct": yoy, "cagr_pct": cagr})
            prev_value = value
    return GrowthResult(rows=rows, entities=entities)
