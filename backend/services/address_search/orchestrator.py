"""
Search Orchestrator

Coordinates one logical search at a time across the three lookup sources.

States:
    IDLE        nothing in flight
    SEARCHING   one pass running; newer input waits in pending_query

Pass(query):
    1. address string lookup
         - RATE_LIMITED: flag the pass and start the region search right
           away, in parallel with step 2
         - success: its records become the address_string bucket
    2. postal address lookup, one call per configured field variant,
       deduplicated into the postal_address bucket (runs regardless of 1)
    3. region search, unless step 1 already started it
    4. publish buckets + rate_limited flag to the sink, go IDLE
    5. if a newer query is pending, submit it

Each pass owns its buckets. Every pass gets a generation number; results
from a generation that is no longer current are discarded, and a pass is
completed at most once.

All methods run on one event loop. submit() never blocks.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Sequence, Tuple

from . import config, sources
from .accumulator import ResultAccumulator
from .placemark import PlacemarkRecord
from .region import LocationProvider, SearchRegion, DEFAULT_REGION_SPAN_M
from .sources import LookupContext, LookupFn, LookupOutcome, LookupSource, ErrorKind

logger = logging.getLogger(__name__)


class SearchStatus(str, Enum):
    IDLE = "idle"
    SEARCHING = "searching"


@dataclass(frozen=True)
class SearchResults:
    """Buckets of one completed pass, in discovery order."""
    address_string: Tuple[PlacemarkRecord, ...] = ()
    postal_address: Tuple[PlacemarkRecord, ...] = ()
    region_search: Tuple[PlacemarkRecord, ...] = ()

    def get(self, source: LookupSource) -> Tuple[PlacemarkRecord, ...]:
        return getattr(self, source.value)

    def as_dict(self) -> Dict[str, Tuple[PlacemarkRecord, ...]]:
        return {source.value: self.get(source) for source in LookupSource}


class SearchSink:
    """
    Receives pass notifications. on_search_complete is called exactly once
    per started pass; on_search_started is optional to override.
    """

    def on_search_started(self, query: str):
        pass

    def on_search_complete(self, query: str, results: SearchResults, rate_limited: bool):
        raise NotImplementedError


@dataclass
class _Pass:
    generation: int
    query: str
    buckets: Dict[LookupSource, ResultAccumulator] = field(
        default_factory=lambda: {source: ResultAccumulator(source.value) for source in LookupSource}
    )
    rate_limited: bool = False
    completed: bool = False
    task: Optional[asyncio.Task] = None
    region_task: Optional[asyncio.Task] = None

    def results(self) -> SearchResults:
        return SearchResults(
            address_string=self.buckets[LookupSource.ADDRESS_STRING].items(),
            postal_address=self.buckets[LookupSource.POSTAL_ADDRESS].items(),
            region_search=self.buckets[LookupSource.REGION_SEARCH].items(),
        )


class SearchOrchestrator:
    def __init__(
        self,
        address_lookup: LookupFn,
        postal_lookup: LookupFn,
        region_lookup: LookupFn,
        sink: SearchSink,
        location_provider: Optional[LocationProvider] = None,
        postal_variants: Optional[Sequence[str]] = None,
        region_span_meters: float = DEFAULT_REGION_SPAN_M,
    ):
        self._address_lookup = address_lookup
        self._postal_lookup = postal_lookup
        self._region_lookup = region_lookup
        self._sink = sink
        self._location = location_provider or LocationProvider()
        self._postal_variants = list(
            config.DEFAULT_POSTAL_VARIANTS if postal_variants is None else postal_variants
        )
        self._region_span = region_span_meters

        self._status = SearchStatus.IDLE
        # Empty input counts as already searched, so an initial "" is a no-op
        self._last_accepted_query = ""
        self._pending_query: Optional[str] = None
        self._generation = 0
        self._current: Optional[_Pass] = None
        self._idle = asyncio.Event()
        self._idle.set()

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def status(self) -> SearchStatus:
        return self._status

    @property
    def active_query(self) -> Optional[str]:
        return self._current.query if self._current else None

    @property
    def pending_query(self) -> Optional[str]:
        return self._pending_query

    @property
    def last_accepted_query(self) -> str:
        return self._last_accepted_query

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def rate_limited(self) -> bool:
        return bool(self._current and self._current.rate_limited)

    @property
    def postal_variants(self) -> Tuple[str, ...]:
        return tuple(self._postal_variants)

    @property
    def location_provider(self) -> LocationProvider:
        return self._location

    async def wait_idle(self):
        """Wait until no pass is running and nothing is pending."""
        while self._status is SearchStatus.SEARCHING:
            await self._idle.wait()

    # -------------------------------------------------------------------------
    # Entry point
    # -------------------------------------------------------------------------

    def submit(self, query: str):
        """
        Request a search for query. Must be called from the event loop thread.

        Re-submitting the last accepted query is ignored. While a pass is
        running the query replaces any pending one instead of interrupting.
        """
        if query == self._last_accepted_query:
            logger.debug(f"Ignoring repeated query [{query}]")
            return

        if self._status is SearchStatus.SEARCHING:
            if self._pending_query is not None:
                logger.debug(f"Dropping superseded pending query [{self._pending_query}]")
            self._pending_query = query
            return

        self._start_pass(query)

    # -------------------------------------------------------------------------
    # Pass
    # -------------------------------------------------------------------------

    def _start_pass(self, query: str):
        loop = asyncio.get_running_loop()

        self._generation += 1
        self._status = SearchStatus.SEARCHING
        self._last_accepted_query = query
        self._idle.clear()

        current = _Pass(generation=self._generation, query=query)
        self._current = current

        logger.info(f"search [{query}]")
        try:
            self._sink.on_search_started(query)
        except Exception as e:
            logger.error(f"Search sink failed on start of [{query}]: {e}", exc_info=True)

        current.task = loop.create_task(self._run_pass(current))

    def _is_current(self, current: _Pass) -> bool:
        return current.generation == self._generation and not current.completed

    async def _lookup(
        self, fn: LookupFn, source: LookupSource, query: str, context: LookupContext
    ) -> LookupOutcome:
        try:
            return await fn(query, context)
        except Exception as e:
            logger.error(f"{source.value} lookup raised for [{query}]: {e}", exc_info=True)
            return LookupOutcome.failure()

    async def _run_pass(self, current: _Pass):
        try:
            await self._run_stages(current)
        except Exception as e:
            logger.error(f"Search pass for [{current.query}] failed: {e}", exc_info=True)
            # Publish what was collected so the pass still ends and pending input runs
            self._complete_pass(current)

    async def _run_stages(self, current: _Pass):
        query = current.query

        outcome = await self._lookup(
            self._address_lookup, LookupSource.ADDRESS_STRING, query, LookupContext()
        )
        if not self._is_current(current):
            logger.debug(f"Discarding stale address string result for [{query}]")
            return

        if outcome.error_kind is ErrorKind.RATE_LIMITED:
            current.rate_limited = True
            logger.info(f"Geocoder request limit reached during [{query}] - starting region search early")
            current.region_task = asyncio.get_running_loop().create_task(
                self._run_region_stage(current)
            )
        elif outcome.ok:
            current.buckets[LookupSource.ADDRESS_STRING].replace(outcome.records)

        # Postal stage runs whatever the address string stage returned
        await self._run_postal_stage(current)
        if not self._is_current(current):
            return

        if current.region_task is None:
            await self._run_region_stage(current)
        else:
            await current.region_task

        self._complete_pass(current)

    async def _run_postal_stage(self, current: _Pass):
        bucket = current.buckets[LookupSource.POSTAL_ADDRESS]
        for variant in self._postal_variants:
            outcome = await self._lookup(
                self._postal_lookup,
                LookupSource.POSTAL_ADDRESS,
                current.query,
                LookupContext(field_variant=variant),
            )
            if not self._is_current(current):
                logger.debug(f"Discarding stale postal result for [{current.query}]")
                return
            if not outcome.ok:
                logger.debug(f"Postal variant '{variant}' failed for [{current.query}]")
                continue
            added = sum(1 for record in outcome.records if bucket.try_append(record))
            logger.debug(
                f"Postal variant '{variant}' for [{current.query}]: "
                f"{len(outcome.records)} results, {added} new"
            )

    async def _run_region_stage(self, current: _Pass):
        # Location is read once, when the stage begins
        region = SearchRegion.around(self._location.latest(), self._region_span, self._region_span)
        outcome = await self._lookup(
            self._region_lookup,
            LookupSource.REGION_SEARCH,
            current.query,
            LookupContext(region=region),
        )
        if not self._is_current(current):
            logger.debug(f"Discarding stale region result for [{current.query}]")
            return
        if outcome.ok:
            current.buckets[LookupSource.REGION_SEARCH].extend(outcome.records)

    def _complete_pass(self, current: _Pass):
        if not self._is_current(current):
            logger.debug(f"Ignoring duplicate completion for [{current.query}]")
            return
        current.completed = True

        results = current.results()
        logger.info(
            f"searchComplete [{current.query}] "
            f"address_string={len(results.address_string)} "
            f"postal_address={len(results.postal_address)} "
            f"region_search={len(results.region_search)} "
            f"rate_limited={current.rate_limited}"
        )

        # Sink runs while still SEARCHING, so a submit() from inside it queues
        try:
            self._sink.on_search_complete(current.query, results, current.rate_limited)
        except Exception as e:
            logger.error(f"Search sink failed on completion of [{current.query}]: {e}", exc_info=True)

        self._status = SearchStatus.IDLE
        self._current = None

        pending = self._pending_query
        if pending is not None:
            self._pending_query = None
            self.submit(pending)

        if self._status is SearchStatus.IDLE:
            self._idle.set()


def create_search_orchestrator(
    sink: SearchSink,
    location_provider: Optional[LocationProvider] = None,
) -> SearchOrchestrator:
    """Orchestrator wired to the HTTP-backed sources and environment config."""
    return SearchOrchestrator(
        address_lookup=sources.geocode_address_string,
        postal_lookup=sources.geocode_postal_address,
        region_lookup=sources.search_region,
        sink=sink,
        location_provider=location_provider,
        postal_variants=config.get_postal_variants(),
        region_span_meters=config.get_region_span_meters(),
    )
