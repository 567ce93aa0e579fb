"""
Filter engine — narrows the fact table to a dashboard selection.

Criteria are a mapping of field name -> list of accepted values (or a single
value for single-select widgets). Each field is read through a registered,
typed accessor (FIELD_ACCESSORS); criteria are compiled once into predicates
and applied in a single order-preserving pass.

Rules:
  - An empty / None criterion means "no constraint", never "match nothing".
  - Unknown field names are ignored; UI selections must never break the page.
  - Plain fields compare by str(), so a "2024" year label matches year 2024.
  - Hierarchical fields accept "Parent - Child" labels. Each label is decoded
    once into Leaf(value) or Pair(parent, child), and a record matches when
    ANY interpretation matches:
        (a) exact leaf match on one of the rule's leaf fields,
        (b) parent-only match on the parent field,
        (c) compound match: parent field == parent AND child field == child.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping, Optional, Union

from market.generator import FactRecord

logger = logging.getLogger(__name__)

HIERARCHY_SEPARATOR = " - "

Accessor = Callable[[FactRecord], Any]
Predicate = Callable[[FactRecord], bool]


# ═══════════════════════════════════════════════════════════════════════════════
# FIELD ACCESSORS
# ═══════════════════════════════════════════════════════════════════════════════

FIELD_ACCESSORS: dict[str, Accessor] = {
    "year":                      lambda r: r.year,
    "region":                    lambda r: r.region,
    # Country falls back to the region for region-only geographies
    "country":                   lambda r: r.country or r.region,
    "product_category":          lambda r: r.product_category,
    "sub_product_category":      lambda r: r.sub_product_category,
    "product_type":              lambda r: r.product_type,
    "blade_material":            lambda r: r.blade_material,
    "handle_length":             lambda r: r.handle_length,
    "application":               lambda r: r.application,
    "end_user":                  lambda r: r.end_user,
    "distribution_channel_type": lambda r: r.distribution_channel_type,
    "distribution_channel":      lambda r: r.distribution_channel,
    "brand":                     lambda r: r.brand,
    "company":                   lambda r: r.company,
}


# ═══════════════════════════════════════════════════════════════════════════════
# HIERARCHICAL SELECTIONS
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Leaf:
    """A selection naming a single value (a parent or a leaf)."""
    value: str

    @property
    def label(self) -> str:
        return self.value


@dataclass(frozen=True)
class Pair:
    """A "Parent - Child" selection."""
    parent: str
    child: str

    @property
    def label(self) -> str:
        return f"{self.parent}{HIERARCHY_SEPARATOR}{self.child}"


Selection = Union[Leaf, Pair]


def decode_selection(label: Any) -> Selection:
    """Decode a widget label once; splits on the first " - " only."""
    text = str(label)
    if HIERARCHY_SEPARATOR in text:
        parent, child = text.split(HIERARCHY_SEPARATOR, 1)
        return Pair(parent, child)
    return Leaf(text)


@dataclass(frozen=True)
class HierarchyRule:
    """How a hierarchical field's selections map onto record fields."""
    leaf_fields: tuple[str, ...]
    parent_field: Optional[str]
    child_field: str
    # A bare label also matches when it is a substring of this field
    contains_field: Optional[str] = None

    def matches(self, record: FactRecord, selection: Selection) -> bool:
        label = selection.label
        for name in self.leaf_fields:
            if FIELD_ACCESSORS[name](record) == label:
                return True
        if isinstance(selection, Leaf):
            if self.parent_field is not None and FIELD_ACCESSORS[self.parent_field](record) == selection.value:
                return True
            return self.contains_field is not None and selection.value in FIELD_ACCESSORS[self.contains_field](record)
        if self.parent_field is not None and FIELD_ACCESSORS[self.parent_field](record) != selection.parent:
            return False
        return FIELD_ACCESSORS[self.child_field](record) == selection.child


HIERARCHICAL_FIELDS: dict[str, HierarchyRule] = {
    "product_type": HierarchyRule(
        leaf_fields=("product_category", "product_type"),
        parent_field="product_category",
        child_field="sub_product_category",
    ),
    "distribution_channel": HierarchyRule(
        leaf_fields=("distribution_channel", "distribution_channel_type"),
        parent_field="distribution_channel_type",
        child_field="distribution_channel",
    ),
    # End-user labels carry a display group as parent; only the child is stored
    "end_user": HierarchyRule(
        leaf_fields=("end_user",),
        parent_field=None,
        child_field="end_user",
        contains_field="end_user",
    ),
}


# ═══════════════════════════════════════════════════════════════════════════════
# COMPILATION + FILTERING
# ═══════════════════════════════════════════════════════════════════════════════

def _as_values(raw) -> list:
    """Normalise a criterion to a list; empty means no constraint."""
    if raw is None:
        return []
    if isinstance(raw, (str, int, float)):
        return [] if raw == "" else [raw]
    return [v for v in raw if v is not None and v != ""]


def _plain_predicate(accessor: Accessor, values: list) -> Predicate:
    accepted = {str(v) for v in values}
    return lambda record: str(accessor(record)) in accepted


def _hierarchical_predicate(rule: HierarchyRule, values: list) -> Predicate:
    selections = [decode_selection(v) for v in values]
    return lambda record: any(rule.matches(record, s) for s in selections)


def compile_criteria(criteria: Optional[Mapping[str, Any]]) -> list[Predicate]:
    """Turn a criteria mapping into record predicates (one per constrained field)."""
    predicates = []
    for name, raw in (criteria or {}).items():
        values = _as_values(raw)
        if not values:
            continue
        if name in HIERARCHICAL_FIELDS:
            predicates.append(_hierarchical_predicate(HIERARCHICAL_FIELDS[name], values))
        elif name in FIELD_ACCESSORS:
            predicates.append(_plain_predicate(FIELD_ACCESSORS[name], values))
        else:
            logger.debug("Ignoring filter on unknown field %r", name)
    return predicates


def matches(record: FactRecord, predicates: Iterable[Predicate]) -> bool:
    return all(p(record) for p in predicates)


def filter_records(
    records: list[FactRecord], criteria: Optional[Mapping[str, Any]]
) -> list[FactRecord]:
    """Return the records matching every constrained field, in input order."""
    predicates = compile_criteria(criteria)
    if not predicates:
        return list(records)
    return [r for r in records if matches(r, predicates)]
