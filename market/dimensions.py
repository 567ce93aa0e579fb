"""
Dimension tables for the U.S. Water Repair Products market dataset.

Static enumerations (regions, product categories, pipe materials, price
tiers, applications, end users, sales channels, brands, companies) plus the
multiplier tables the fact generator composes into prices, volumes and
growth figures. All values are fabricated for the demo; only the mechanism
matters.

Hierarchical maps (region -> countries, category -> subcategories,
channel group -> channels) may hold an empty child list. An empty list means
"the parent is its own single leaf" (e.g. "Corporation Stops" has no
subcategories, so its records carry "Corporation Stops" as subcategory too).

Multiplier lookups never fail: an unknown key returns a neutral record whose
factors are all 1.0.

Naming: the record fields `blade_material` and `handle_length` hold the pipe
material and price tier. They kept their names from the first dataset this
dashboard was built for.
"""

from dataclasses import dataclass, field, replace


# ═══════════════════════════════════════════════════════════════════════════════
# 1. ENUMERATIONS
# ═══════════════════════════════════════════════════════════════════════════════

FIRST_YEAR = 2021
NUM_YEARS = 15

# ── Geography ────────────────────────────────────────────────────────────────
REGION_COUNTRIES = {
    "Northeast": ["New York", "Pennsylvania", "Massachusetts", "New Jersey", "Connecticut", "Maine"],
    "Midwest":   ["Illinois", "Ohio", "Michigan", "Wisconsin", "Minnesota", "Indiana"],
    "South":     ["Texas", "Florida", "Georgia", "North Carolina", "Virginia", "Tennessee"],
    "West":      ["California", "Washington", "Oregon", "Colorado", "Arizona", "Nevada"],
}

# ── Products ─────────────────────────────────────────────────────────────────
PRODUCT_CATEGORIES = {
    "Pipe Repair & Connection Products": [
        "Repair Clamps", "Repair Sleeves", "Wide-Range Couplings",
        "Transition Couplings", "Flange Adapters",
    ],
    "Restraint Couplings": ["Service Line Products", "Service Saddles", "Tapping Sleeves"],
    "Corporation Stops": [],
    "Curb Valves & Boxes": [],
    "Valve Solutions": ["Gate Valves", "Butterfly Valves", "Insertion Valves", "Check Valves"],
    "Hydrants & Flow Control": ["Fire Hydrants", "Hydrant Repair Kits"],
    "Others (Leak Detection & Condition Assessment)": [
        "Acoustic Leak Detection Systems", "Smart Monitoring Sensors",
        "Pipe Condition Assessment Tools",
    ],
}

# Pipe material compatibility
BLADE_MATERIALS = [
    "Ductile Iron", "Cast Iron", "PVC", "HDPE", "Steel", "Concrete / Asbestos Cement",
]

# Price range
HANDLE_LENGTHS = ["Mass", "Premium", "Luxury"]

APPLICATIONS = [
    "Potable Water Distribution",
    "Wastewater / Sewer Lines",
    "Emergency Leak Repair",
    "Planned Rehabilitation / Retrofits",
    "New Installation & Expansion Projects",
    "Industrial Water Lines",
    "Agricultural / Irrigation Lines",
    "Others",
]

END_USERS = [
    "Municipal Water Utilities",
    "Private Water Utilities",
    "Public Works Departments",
    "Civil & Water Infrastructure Contractors",
    "Industrial Facilities",
    "Commercial Plumbing Contractors",
    "Distributors & Waterworks Wholesalers",
    "Others",
]

# ── Channels ─────────────────────────────────────────────────────────────────
# Sales channels are what `distribution_channel_type` stores. The Offline /
# Online grouping below is a second tier derived from the label text
# (see channel_group()); both representations coexist in the dashboard.
SALES_CHANNELS = [
    "Direct Sales",
    "Distributor / Wholesaler Network",
    "Online Procurement Platforms",
    "Federal & Infrastructure-Funded Projects",
]

CHANNEL_GROUPS = {
    "Offline": ["Direct Sales", "Distributor Network", "Federal Projects"],
    "Online":  ["Online Procurement Platforms", "E-commerce"],
}

# ── Brands & companies ───────────────────────────────────────────────────────
BRANDS = [
    "Mueller", "Smith-Blair", "Romac", "Dresser", "Ford Meter Box",
    "American Flow Control", "Mueller Systems", "Echologics", "JCM Industries", "Krausz",
]

COMPANIES = [
    "Mueller Water Products", "Smith-Blair Inc", "Romac Industries",
    "Dresser Utility Solutions", "Ford Meter Box Company", "American Flow Control (AFC)",
    "Mueller Systems", "Echologics (Mueller)", "JCM Industries", "Krausz USA",
]


# ═══════════════════════════════════════════════════════════════════════════════
# 2. MULTIPLIER RECORDS
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ProductFactors:
    price: float = 1.0
    volume: float = 1.0
    cagr: float = 1.0


@dataclass(frozen=True)
class MaterialFactors:
    price: float = 1.0
    volume: float = 1.0


@dataclass(frozen=True)
class ApplicationFactors:
    volume: float = 1.0
    price: float = 1.0


@dataclass(frozen=True)
class ChannelFactors:
    volume: float = 1.0
    price: float = 1.0


@dataclass(frozen=True)
class RegionFactors:
    volume: float = 1.0
    market_share: float = 1.0


NEUTRAL = 1.0

PRODUCT_FACTORS = {
    "Pipe Repair & Connection Products":              ProductFactors(price=1.0,  volume=1.3,  cagr=1.2),
    "Restraint Couplings":                            ProductFactors(price=1.1,  volume=1.1,  cagr=1.1),
    "Corporation Stops":                              ProductFactors(price=0.9,  volume=1.2,  cagr=1.0),
    "Curb Valves & Boxes":                            ProductFactors(price=0.95, volume=1.15, cagr=1.05),
    "Valve Solutions":                                ProductFactors(price=1.2,  volume=1.0,  cagr=1.15),
    "Hydrants & Flow Control":                        ProductFactors(price=1.3,  volume=0.9,  cagr=1.1),
    "Others (Leak Detection & Condition Assessment)": ProductFactors(price=1.5,  volume=0.8,  cagr=1.3),
}

MATERIAL_FACTORS = {
    "Ductile Iron":               MaterialFactors(price=1.2, volume=1.3),
    "Cast Iron":                  MaterialFactors(price=1.1, volume=1.2),
    "PVC":                        MaterialFactors(price=0.8, volume=1.4),
    "HDPE":                       MaterialFactors(price=0.9, volume=1.3),
    "Steel":                      MaterialFactors(price=1.3, volume=1.1),
    "Concrete / Asbestos Cement": MaterialFactors(price=1.0, volume=1.0),
}

APPLICATION_FACTORS = {
    "Potable Water Distribution":            ApplicationFactors(volume=1.5, price=1.2),
    "Wastewater / Sewer Lines":              ApplicationFactors(volume=1.3, price=1.1),
    "Emergency Leak Repair":                 ApplicationFactors(volume=1.4, price=1.3),
    "Planned Rehabilitation / Retrofits":    ApplicationFactors(volume=1.2, price=1.2),
    "New Installation & Expansion Projects": ApplicationFactors(volume=1.1, price=1.0),
    "Industrial Water Lines":                ApplicationFactors(volume=1.0, price=1.1),
    "Agricultural / Irrigation Lines":       ApplicationFactors(volume=0.9, price=0.9),
    "Others":                                ApplicationFactors(volume=0.8, price=0.8),
}

CHANNEL_FACTORS = {
    "Offline": ChannelFactors(volume=1.3, price=1.1),
    "Online":  ChannelFactors(volume=1.2, price=0.95),
}

REGION_FACTORS = {
    "Northeast": RegionFactors(volume=1.3, market_share=1.2),
    "Midwest":   RegionFactors(volume=1.4, market_share=1.3),
    "South":     RegionFactors(volume=1.5, market_share=1.4),
    "West":      RegionFactors(volume=1.2, market_share=1.1),
}

PRICE_TIER_FACTORS = {"Mass": 0.8, "Premium": 1.2, "Luxury": 1.5}


# ═══════════════════════════════════════════════════════════════════════════════
# 3. HELPERS
# ═══════════════════════════════════════════════════════════════════════════════

def leaves(mapping: dict[str, list[str]]) -> list[tuple[str, str]]:
    """Flatten a parent -> children map into (parent, leaf) pairs.

    A parent with no children becomes its own leaf.
    """
    pairs = []
    for parent, children in mapping.items():
        if children:
            pairs.extend((parent, child) for child in children)
        else:
            pairs.append((parent, parent))
    return pairs


def channel_group(sales_channel: str) -> str:
    """Map a sales-channel label to its Offline / Online group by label text."""
    return "Offline" if "Offline" in sales_channel else "Online"


def brand_premium_tiers(brands: list[str]) -> dict[str, float]:
    """Three premium tiers by list position: 0.8, 1.2, 1.6, repeating."""
    return {brand: 0.8 + (idx % 3) * 0.4 for idx, brand in enumerate(brands)}


# ═══════════════════════════════════════════════════════════════════════════════
# 4. DIMENSION TABLES
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True, eq=False)
class DimensionTables:
    """All dimensions and multiplier tables consumed by the fact generator.

    Every field defaults to the demo dataset, so tests can override only the
    dimensions they care about:

        DimensionTables(years=(2024,), regions={"North": ["N1"]})
    """
    years: tuple[int, ...] = tuple(range(FIRST_YEAR, FIRST_YEAR + NUM_YEARS))
    regions: dict[str, list[str]] = field(default_factory=lambda: dict(REGION_COUNTRIES))
    product_categories: dict[str, list[str]] = field(default_factory=lambda: dict(PRODUCT_CATEGORIES))
    blade_materials: tuple[str, ...] = tuple(BLADE_MATERIALS)
    handle_lengths: tuple[str, ...] = tuple(HANDLE_LENGTHS)
    applications: tuple[str, ...] = tuple(APPLICATIONS)
    end_users: tuple[str, ...] = tuple(END_USERS)
    sales_channels: tuple[str, ...] = tuple(SALES_CHANNELS)
    channel_groups: dict[str, list[str]] = field(default_factory=lambda: dict(CHANNEL_GROUPS))
    brands: tuple[str, ...] = tuple(BRANDS)
    companies: tuple[str, ...] = tuple(COMPANIES)

    product_factor_table: dict[str, ProductFactors] = field(default_factory=lambda: dict(PRODUCT_FACTORS))
    material_factor_table: dict[str, MaterialFactors] = field(default_factory=lambda: dict(MATERIAL_FACTORS))
    application_factor_table: dict[str, ApplicationFactors] = field(default_factory=lambda: dict(APPLICATION_FACTORS))
    channel_factor_table: dict[str, ChannelFactors] = field(default_factory=lambda: dict(CHANNEL_FACTORS))
    region_factor_table: dict[str, RegionFactors] = field(default_factory=lambda: dict(REGION_FACTORS))
    price_tier_table: dict[str, float] = field(default_factory=lambda: dict(PRICE_TIER_FACTORS))

    def __post_init__(self):
        object.__setattr__(self, "_brand_premiums", brand_premium_tiers(list(self.brands)))

    # ── Structure ──────────────────────────────────────────────────────────

    @property
    def first_year(self) -> int:
        return min(self.years) if self.years else FIRST_YEAR

    def country_pairs(self) -> list[tuple[str, str]]:
        return leaves(self.regions)

    def product_pairs(self) -> list[tuple[str, str]]:
        return leaves(self.product_categories)

    def channels_for(self, sales_channel: str) -> list[str]:
        """Distribution channels available to a sales channel's group."""
        group = channel_group(sales_channel)
        return self.channel_groups.get(group) or [group]

    def with_years(self, start: int, count: int) -> "DimensionTables":
        return replace(self, years=tuple(range(start, start + count)))

    # ── Multiplier lookups (neutral fallback) ──────────────────────────────

    def product_factors(self, category: str) -> ProductFactors:
        return self.product_factor_table.get(category, ProductFactors())

    def material_factors(self, material: str) -> MaterialFactors:
        return self.material_factor_table.get(material, MaterialFactors())

    def application_factors(self, application: str) -> ApplicationFactors:
        return self.application_factor_table.get(application, ApplicationFactors())

    def channel_factors(self, sales_channel: str) -> ChannelFactors:
        return self.channel_factor_table.get(channel_group(sales_channel), ChannelFactors())

    def region_factors(self, region: str) -> RegionFactors:
        return self.region_factor_table.get(region, RegionFactors())

    def price_tier_factor(self, handle_length: str) -> float:
        return self.price_tier_table.get(handle_length, NEUTRAL)

    def brand_premium(self, brand: str) -> float:
        return self._brand_premiums.get(brand, NEUTRAL)


DEFAULT_DIMENSIONS = DimensionTables()
