"""Rolling screening analytics.

Counters are written only by the screening engine (lifecycle changes) and
the review workflow (dispositions). Every update happens under one lock,
so concurrent completions never lose an increment and the running average
always sees a consistent count.
"""

import threading
from collections import Counter
from typing import Dict

from watchlist.models import (
    AnalyticsSnapshot,
    DailyStat,
    EntityMatchCount,
    ProviderPerformance,
    ReviewDecision,
    ScreeningRequest,
    ScreeningResult,
    ScreeningStatus,
    WatchlistProvider,
    WatchlistType,
)

TOP_ENTITY_LIMIT = 10


class _ProviderStats:
    def __init__(self) -> None:
        self.screenings = 0
        self.successes = 0
        self.average_time_ms = 0.0


class AnalyticsAggregator:
    """Single writer for throughput, latency, match and review counters."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.total_screenings = 0
        self.by_status: Dict[ScreeningStatus, int] = {s: 0 for s in ScreeningStatus}
        self.by_type: Dict[WatchlistType, int] = {t: 0 for t in WatchlistType}
        self.average_processing_time_ms = 0.0
        self.total_matches = 0
        self.total_reviews = 0
        self.false_positives = 0
        self._daily: Dict[str, DailyStat] = {}
        self._entity_hits: Counter = Counter()
        self._entity_names: Dict[str, str] = {}
        self._providers: Dict[WatchlistProvider, _ProviderStats] = {}

    # -- lifecycle ----------------------------------------------------------

    def record_submitted(self, request: ScreeningRequest) -> None:
        with self._lock:
            self.total_screenings += 1
            self.by_status[ScreeningStatus.PENDING] += 1

    def record_started(self, request: ScreeningRequest) -> None:
        with self._lock:
            self.by_status[ScreeningStatus.PENDING] -= 1
            self.by_status[ScreeningStatus.IN_PROGRESS] += 1

    def record_completed(
        self,
        request: ScreeningRequest,
        result: ScreeningResult,
        processing_time_ms: float,
    ) -> None:
        """Fold a completed screening into every rolling counter."""
        with self._lock:
            self.by_status[ScreeningStatus.IN_PROGRESS] -= 1
            self.by_status[ScreeningStatus.COMPLETED] += 1

            # Incremental mean over completed screenings
            n = self.by_status[ScreeningStatus.COMPLETED]
            self.average_processing_time_ms = (
                self.average_processing_time_ms * (n - 1) + processing_time_ms
            ) / n

            self.total_matches += result.total_matches
            for list_type in request.watchlist_types:
                self.by_type[list_type] += 1

            day = result.completed_at.date().isoformat()
            stat = self._daily.setdefault(day, DailyStat(date=day))
            stat.screenings += 1
            stat.matches += result.total_matches
            if result.requires_manual_review:
                stat.manual_reviews += 1

            for match in result.matches:
                self._entity_hits[match.entity_id] += 1
                self._entity_names[match.entity_id] = match.entity_name

    def record_failed(self, request: ScreeningRequest, result: ScreeningResult) -> None:
        with self._lock:
            self.by_status[ScreeningStatus.IN_PROGRESS] -= 1
            self.by_status[ScreeningStatus.FAILED] += 1

    def record_provider_call(
        self,
        provider: WatchlistProvider,
        succeeded: bool,
        duration_ms: float,
    ) -> None:
        with self._lock:
            stats = self._providers.setdefault(provider, _ProviderStats())
            stats.screenings += 1
            if succeeded:
                stats.successes += 1
            stats.average_time_ms = (
                stats.average_time_ms * (stats.screenings - 1) + duration_ms
            ) / stats.screenings

    # -- reviews ------------------------------------------------------------

    def record_review(self, decision: ReviewDecision) -> None:
        with self._lock:
            self.total_reviews += 1
            if decision == ReviewDecision.FALSE_POSITIVE:
                self.false_positives += 1

    # -- derived values -----------------------------------------------------

    @property
    def match_rate(self) -> float:
        if self.total_screenings == 0:
            return 0.0
        return self.total_matches / self.total_screenings

    @property
    def false_positive_rate(self) -> float:
        if self.total_reviews == 0:
            return 0.0
        return self.false_positives / self.total_reviews

    @property
    def failure_rate(self) -> float:
        if self.total_screenings == 0:
            return 0.0
        return self.by_status[ScreeningStatus.FAILED] / self.total_screenings

    def snapshot(self) -> AnalyticsSnapshot:
        """Return a copy of the counters that later updates will not touch."""
        with self._lock:
            top_entities = [
                EntityMatchCount(
                    entity_id=entity_id,
                    name=self._entity_names[entity_id],
                    match_count=count,
                )
                for entity_id, count in self._entity_hits.most_common(TOP_ENTITY_LIMIT)
            ]
            providers = [
                ProviderPerformance(
                    provider=provider,
                    screenings=stats.screenings,
                    average_time_ms=stats.average_time_ms,
                    success_rate=stats.successes / stats.screenings,
                )
                for provider, stats in self._providers.items()
            ]
            return AnalyticsSnapshot(
                total_screenings=self.total_screenings,
                screenings_by_status=dict(self.by_status),
                screenings_by_type=dict(self.by_type),
                active_screenings=self.by_status[ScreeningStatus.IN_PROGRESS],
                average_processing_time_ms=self.average_processing_time_ms,
                match_rate=self.match_rate,
                total_reviews=self.total_reviews,
                false_positive_rate=self.false_positive_rate,
                top_matched_entities=top_entities,
                provider_performance=providers,
                daily_stats=[
                    s.model_copy() for _, s in sorted(self._daily.items())
                ],
            )
