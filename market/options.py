"""
Filter options — distinct values for every sidebar widget, plus defaults.

Options are derived from the generated fact table rather than the dimension
tables, so a widget only ever offers values that can actually match.
"""

from dataclasses import dataclass, field

from market.generator import FactRecord


@dataclass
class FilterOptions:
    """Sorted distinct non-empty values per filterable field."""
    years: list = field(default_factory=list)
    regions: list = field(default_factory=list)
    countries: list = field(default_factory=list)
    product_categories: list = field(default_factory=list)
    sub_product_categories: list = field(default_factory=list)
    product_types: list = field(default_factory=list)
    blade_materials: list = field(default_factory=list)
    handle_lengths: list = field(default_factory=list)
    applications: list = field(default_factory=list)
    end_users: list = field(default_factory=list)
    distribution_channel_types: list = field(default_factory=list)
    distribution_channels: list = field(default_factory=list)
    brands: list = field(default_factory=list)
    companies: list = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.years


# FilterOptions attribute -> FactRecord attribute
_OPTION_FIELDS = {
    "regions":                    "region",
    "countries":                  "country",
    "product_categories":         "product_category",
    "sub_product_categories":     "sub_product_category",
    "product_types":              "product_type",
    "blade_materials":            "blade_material",
    "handle_lengths":             "handle_length",
    "applications":               "application",
    "end_users":                  "end_user",
    "distribution_channel_types": "distribution_channel_type",
    "distribution_channels":      "distribution_channel",
    "brands":                     "brand",
    "companies":                  "company",
}


def unique_options(records: list[FactRecord]) -> FilterOptions:
    """Collect the option lists in one pass over the records."""
    seen: dict[str, set] = {name: set() for name in _OPTION_FIELDS}
    years = set()
    for r in records:
        years.add(r.year)
        for name, attr in _OPTION_FIELDS.items():
            value = getattr(r, attr)
            if value:
                seen[name].add(value)

    return FilterOptions(years=sorted(years), **{name: sorted(values) for name, values in seen.items()})


def default_years(years: list[int], preferred: tuple[int, int] = (2024, 2025)) -> list[int]:
    """The preferred pair when both exist, otherwise the last two years."""
    if all(y in years for y in preferred):
        return list(preferred)
    return list(years[-2:])


def default_filters(options: FilterOptions) -> dict:
    """Initial Market Analysis selection: a small slice so first render is fast."""
    return {
        "year": default_years(options.years),
        "product_category": options.product_categories[:2],
        "blade_material": options.blade_materials[:2],
        "application": options.applications[:2],
        "distribution_channel_type": options.distribution_channel_types[:2],
    }
