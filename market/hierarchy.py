"""
Dimension hierarchy — NetworkX DiGraph of the hierarchical dimensions.

Represents regions, countries, product categories, subcategories, channel
groups and distribution channels as typed nodes with child -> parent edges:
IN_REGION (country -> region), IN_CATEGORY (subcategory -> category) and
IN_GROUP (channel -> channel group).

Drives the cascading filter widgets:
  - "Which countries can I pick once these regions are selected?"
  - "Which subcategories belong to the selected categories?"
  - "Which group does this distribution channel belong to?"

Node IDs use type prefixes (region:, country:, category:, subcategory:,
group:, channel:) because a parent with no children is its own leaf and
would otherwise collide with itself. Subcategory IDs carry the full
"Category - Subcategory" label for the same reason.
"""

from typing import Iterable, Optional

import networkx as nx

from market.dimensions import DEFAULT_DIMENSIONS, DimensionTables


class DimensionGraph:
    """NetworkX DiGraph of the region, product and channel hierarchies."""

    def __init__(self, dimensions: DimensionTables = DEFAULT_DIMENSIONS):
        self._dimensions = dimensions
        self.graph = nx.DiGraph()
        self._build()

    def _build(self):
        g = self.graph
        dims = self._dimensions

        # ── Geography ─────────────────────────────────────────────────────
        for region in dims.regions:
            g.add_node(f"region:{region}", node_type="region", name=region)
        for region, country in dims.country_pairs():
            g.add_node(f"country:{country}", node_type="country", name=country, region=region)
            g.add_edge(f"country:{country}", f"region:{region}", edge_type="IN_REGION")

        # ── Products ──────────────────────────────────────────────────────
        for category in dims.product_categories:
            g.add_node(f"category:{category}", node_type="category", name=category)
        for category, sub in dims.product_pairs():
            product_type = f"{category} - {sub}"
            g.add_node(
                f"subcategory:{product_type}",
                node_type="subcategory",
                name=sub,
                category=category,
                product_type=product_type,
            )
            g.add_edge(f"subcategory:{product_type}", f"category:{category}", edge_type="IN_CATEGORY")

        # ── Channels ──────────────────────────────────────────────────────
        for group, channels in dims.channel_groups.items():
            g.add_node(f"group:{group}", node_type="group", name=group)
            for channel in channels:
                g.add_node(f"channel:{channel}", node_type="channel", name=channel, group=group)
                g.add_edge(f"channel:{channel}", f"group:{group}", edge_type="IN_GROUP")

    # ═══════════════════════════════════════════════════════════════════════
    # QUERY METHODS
    # ═══════════════════════════════════════════════════════════════════════

    def get_nodes_by_type(self, node_type: str) -> list[str]:
        """Return node names of the given type, sorted."""
        return sorted(d["name"] for _, d in self.graph.nodes(data=True)
                      if d.get("node_type") == node_type)

    def _children(self, parent_node: str, edge_type: str) -> list[str]:
        if parent_node not in self.graph:
            return []
        return [
            source for source, _, attrs in self.graph.in_edges(parent_node, data=True)
            if attrs.get("edge_type") == edge_type
        ]

    def countries_for_regions(self, regions: Optional[Iterable[str]] = None) -> list[str]:
        """Countries inside the selected regions; all countries when none selected."""
        regions = list(regions or [])
        if not regions:
            return self.get_nodes_by_type("country")
        countries = set()
        for region in regions:
            for node in self._children(f"region:{region}", "IN_REGION"):
                countries.add(self.graph.nodes[node]["name"])
        return sorted(countries)

    def region_of(self, country: str) -> Optional[str]:
        node = f"country:{country}"
        if node not in self.graph:
            return None
        return self.graph.nodes[node]["region"]

    def country_options(self, regions: Optional[Iterable[str]] = None) -> list[tuple[str, str]]:
        """(value, label) pairs labelled "Country (Region)" for the country picker."""
        return [(c, f"{c} ({self.region_of(c)})") for c in self.countries_for_regions(regions)]

    def subcategories_for(self, categories: Optional[Iterable[str]] = None) -> list[str]:
        """Subcategory names of the selected categories; all when none selected.

        A category without subcategories contributes its own name.
        """
        categories = list(categories or [])
        if not categories:
            return self.get_nodes_by_type("subcategory")
        subs = set()
        for category in categories:
            for node in self._children(f"category:{category}", "IN_CATEGORY"):
                subs.add(self.graph.nodes[node]["name"])
        return sorted(subs)

    def product_category_hierarchy(self) -> dict[str, list[str]]:
        """{category: [product_type labels]} in dimension-table order."""
        return {
            category: [
                self.graph.nodes[node]["product_type"]
                for node in self._children(f"category:{category}", "IN_CATEGORY")
            ]
            for category in self._dimensions.product_categories
        }

    def channel_groups(self) -> dict[str, list[str]]:
        """{group: [distribution channels]} for the grouped channel picker."""
        return {
            group: [self.graph.nodes[node]["name"] for node in self._children(f"group:{group}", "IN_GROUP")]
            for group in self._dimensions.channel_groups
        }

    def group_of(self, channel: str) -> Optional[str]:
        node = f"channel:{channel}"
        if node not in self.graph:
            return None
        return self.graph.nodes[node]["group"]
