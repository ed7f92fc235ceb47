"""Provider fan-out: queries watchlist vendors and matches their candidates.

Each usable provider named by a request gets its own asyncio task. A task
is bounded by the provider's configured timeout and the whole fan-out by
the request deadline. A provider that times out or raises is recorded in
the per-provider errors and never aborts the others; whatever the
surviving providers returned is kept.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol

from watchlist.models import (
    MATCH_LEVEL_RANK,
    MatchingConfig,
    MatchLevel,
    ProviderConfig,
    ScreeningMatch,
    ScreeningRequest,
    WatchlistEntity,
    WatchlistProvider,
    WatchlistType,
)
from watchlist.screening.matcher import compare
from watchlist.storage.base import ScreeningStore

logger = logging.getLogger(__name__)


class ProviderGateway(Protocol):
    """Access to a vendor's candidate records.

    Implementations own transport concerns (auth, retries, rate limits);
    they raise ProviderError (or any other exception) on failure.
    """

    async def fetch_candidates(
        self,
        config: ProviderConfig,
        watchlist_types: List[WatchlistType],
        subject: ScreeningRequest,
    ) -> List[WatchlistEntity]: ...


class InMemoryProviderGateway:
    """Serves candidates from the locally stored watchlist entities.

    Stands in for vendor APIs: a provider's candidates are the active
    entities it sourced, restricted to the requested list types.
    """

    def __init__(self, store: ScreeningStore, latency_ms: int = 0) -> None:
        self.store = store
        self.latency_ms = latency_ms

    async def fetch_candidates(
        self,
        config: ProviderConfig,
        watchlist_types: List[WatchlistType],
        subject: ScreeningRequest,
    ) -> List[WatchlistEntity]:
        if self.latency_ms:
            await asyncio.sleep(self.latency_ms / 1000)
        return [
            e
            for e in self.store.list_entities()
            if e.is_active
            and e.source_provider == config.provider
            and e.list_type in watchlist_types
        ]


@dataclass
class ProviderScreening:
    """What the fan-out produced for one request."""
    matches: List[ScreeningMatch] = field(default_factory=list)
    processed_by: List[WatchlistProvider] = field(default_factory=list)
    errors: Dict[str, str] = field(default_factory=dict)
    attempted: List[WatchlistProvider] = field(default_factory=list)
    durations_ms: Dict[WatchlistProvider, float] = field(default_factory=dict)

    @property
    def all_failed(self) -> bool:
        return bool(self.attempted) and not self.processed_by


def _describe_error(exc: BaseException, config: ProviderConfig) -> str:
    if isinstance(exc, asyncio.TimeoutError):
        return f"Timed out after {config.timeout_ms} ms"
    return str(exc) or type(exc).__name__


class ProviderOrchestrator:
    """Fans a screening request out to its configured providers."""

    def __init__(
        self,
        store: ScreeningStore,
        gateway: ProviderGateway,
        matching_config: Optional[MatchingConfig] = None,
    ) -> None:
        self.store = store
        self.gateway = gateway
        self.matching_config = matching_config or MatchingConfig()

    def usable_providers(self, providers: List[WatchlistProvider]) -> List[ProviderConfig]:
        """Configured, enabled providers in the order the request names them."""
        usable: List[ProviderConfig] = []
        for provider in dict.fromkeys(providers):
            config = self.store.get_provider_config(provider)
            if config is None or not config.enabled:
                logger.debug("Skipping unconfigured or disabled provider %s", provider.value)
                continue
            usable.append(config)
        return usable

    async def _query_provider(
        self,
        request: ScreeningRequest,
        config: ProviderConfig,
        durations: Dict[WatchlistProvider, float],
    ) -> List[ScreeningMatch]:
        started = time.perf_counter()
        try:
            candidates = await asyncio.wait_for(
                self.gateway.fetch_candidates(config, request.watchlist_types, request),
                timeout=config.timeout_ms / 1000,
            )
        finally:
            durations[config.provider] = (time.perf_counter() - started) * 1000

        matches: List[ScreeningMatch] = []
        for entity in candidates:
            match = compare(request, entity, self.matching_config)
            if match.match_level != MatchLevel.NONE:
                matches.append(match)

        # Strongest matches first within a provider
        matches.sort(key=lambda m: MATCH_LEVEL_RANK[m.match_level], reverse=True)
        return matches

    async def screen(
        self,
        request: ScreeningRequest,
        deadline_seconds: Optional[float] = None,
    ) -> ProviderScreening:
        """Query every usable provider concurrently and collect their matches.

        Args:
            request: The request being screened.
            deadline_seconds: Budget for the whole fan-out; providers still
                running when it expires are cancelled and reported as errors.
        """
        outcome = ProviderScreening()
        configs = self.usable_providers(request.providers)
        if not configs:
            return outcome

        outcome.attempted = [c.provider for c in configs]
        tasks = {
            c.provider: asyncio.create_task(
                self._query_provider(request, c, outcome.durations_ms)
            )
            for c in configs
        }

        _, pending = await asyncio.wait(tasks.values(), timeout=deadline_seconds)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        # Assemble in the order the request named the providers
        for config in configs:
            task = tasks[config.provider]
            name = config.provider.value
            if task in pending:
                outcome.errors[name] = f"Request deadline of {deadline_seconds}s exceeded"
                logger.warning("Provider %s cancelled for request %s: deadline exceeded", name, request.id)
                continue

            exc = task.exception()
            if exc is not None:
                outcome.errors[name] = _describe_error(exc, config)
                logger.warning(
                    "Provider %s failed for request %s: %s", name, request.id, outcome.errors[name]
                )
                continue

            outcome.matches.extend(task.result())
            outcome.processed_by.append(config.provider)

        return outcome
