"""
Fact cache — owns the generated fact table for the lifetime of the app.

One FactCache is built at startup (see app.py / pages, via
st.cache_resource) and handed to every page. It generates lazily on the
first get() and keeps the table until invalidate() is called.

Generation is single-flight: a lock serialises builds, and a re-entrant
get() issued by the thread that is already generating returns an empty list
instead of starting a second build. Callers therefore only ever see a
complete table, the previous table, or an empty one.

A failed build never escapes to the UI. The exception is logged, the cache
holds an empty table and `last_error` carries the message so pages can show
an empty state.
"""

import logging
import threading
from typing import Callable, Optional

from market.dimensions import DEFAULT_DIMENSIONS, DimensionTables
from market.generator import FIRST_RECORD_ID, FactRecord, generate_fact_table
from market.prng import SeededRandom

logger = logging.getLogger(__name__)

Generate = Callable[[DimensionTables, SeededRandom, int], list[FactRecord]]


class FactCache:
    """Memoized holder of the fact table with explicit invalidate/regenerate."""

    def __init__(
        self,
        dimensions: DimensionTables = DEFAULT_DIMENSIONS,
        seed: int = 42,
        rng: Optional[SeededRandom] = None,
        first_record_id: int = FIRST_RECORD_ID,
        generate: Generate = generate_fact_table,
    ):
        self.dimensions = dimensions
        self.seed = seed
        self.first_record_id = first_record_id
        # An injected rng keeps advancing across rebuilds (fresh randomness);
        # without one every rebuild starts from `seed` (identical table).
        self._rng = rng
        self._generate = generate
        self._lock = threading.RLock()
        self._table: Optional[list[FactRecord]] = None
        self._generating = False
        self.last_error: Optional[str] = None
        self.generation_count = 0

    @property
    def is_loaded(self) -> bool:
        return self._table is not None

    def get(self) -> list[FactRecord]:
        """Return the cached table, generating it on first use.

        The returned list is shared; callers must not mutate it.
        """
        table = self._table
        if table is not None:
            return table

        with self._lock:
            if self._table is None:
                if self._generating:
                    logger.warning("Re-entrant fact table request during generation; returning empty table")
                    return []
                self._generating = True
                try:
                    self._table = self._build()
                finally:
                    self._generating = False
            return self._table

    def invalidate(self):
        """Drop the cached table; the next get() regenerates it."""
        with self._lock:
            self._table = None
            self.last_error = None
        logger.info("Fact table cache invalidated")

    def _build(self) -> list[FactRecord]:
        rng = self._rng if self._rng is not None else SeededRandom(self.seed)
        self.generation_count += 1
        try:
            table = self._generate(self.dimensions, rng, self.first_record_id)
        except Exception as exc:
            logger.exception("Fact table generation failed; caching an empty table")
            self.last_error = f"{type(exc).__name__}: {exc}"
            return []
        self.last_error = None
        return table
