"""Core screening orchestrator.

Owns the request lifecycle:

    pending -> in_progress -> completed
                           -> failed

and sequences each screening through:
  1. Provider fan-out (candidates matched by the entity matcher)
  2. Rule engine (escalates dispositions)
  3. Risk scorer (aggregate score + recommendations)

The result is persisted, analytics are updated and lifecycle events are
published. A request fails only when every provider it reached errored;
completed and failed are terminal.
"""

import logging
import time
import uuid
from typing import Optional

from watchlist.config import Settings
from watchlist.errors import InvalidStatusTransition, ScreeningValidationError
from watchlist.events import EventBus
from watchlist.models import (
    EventType,
    HealthStatus,
    MatchingConfig,
    NewWatchlistEntity,
    ProviderHealth,
    ReviewDecision,
    ScreeningEvent,
    ScreeningMatch,
    ScreeningRequest,
    ScreeningResult,
    ScreeningStatus,
    ScreeningSubmission,
    WatchlistEntity,
    utcnow,
)
from watchlist.screening.analytics import AnalyticsAggregator
from watchlist.screening.providers import (
    ProviderGateway,
    ProviderOrchestrator,
    ProviderScreening,
)
from watchlist.screening.review import ReviewWorkflow
from watchlist.screening.rule_engine import apply_rules
from watchlist.screening.scorer import (
    SCREENING_FAILED,
    count_by_level,
    count_by_type,
    score_matches,
)
from watchlist.storage.base import ScreeningStore

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    ScreeningStatus.PENDING: {ScreeningStatus.IN_PROGRESS},
    ScreeningStatus.IN_PROGRESS: {ScreeningStatus.COMPLETED, ScreeningStatus.FAILED},
    ScreeningStatus.COMPLETED: set(),
    ScreeningStatus.FAILED: set(),
}

# Health thresholds on the share of failed screenings
DEGRADED_ERROR_RATE = 0.1
UNHEALTHY_ERROR_RATE = 0.3
DEGRADED_ACTIVE_SCREENINGS = 100


class ScreeningEngine:
    """Orchestrates watchlist screening requests from submission to result."""

    def __init__(
        self,
        store: ScreeningStore,
        gateway: ProviderGateway,
        settings: Optional[Settings] = None,
        matching_config: Optional[MatchingConfig] = None,
        events: Optional[EventBus] = None,
        analytics: Optional[AnalyticsAggregator] = None,
    ) -> None:
        self.store = store
        self.settings = settings or Settings()
        self.events = events or EventBus()
        self.analytics = analytics or AnalyticsAggregator()
        self.providers = ProviderOrchestrator(store, gateway, matching_config)
        self.reviews = ReviewWorkflow(store, self.analytics, self.events)

    @property
    def matching_config(self) -> MatchingConfig:
        return self.providers.matching_config

    @matching_config.setter
    def matching_config(self, config: MatchingConfig) -> None:
        self.providers.matching_config = config

    # -- lifecycle ----------------------------------------------------------

    def _transition(self, request: ScreeningRequest, target: ScreeningStatus) -> None:
        if target not in ALLOWED_TRANSITIONS[request.status]:
            raise InvalidStatusTransition(request.id, request.status.value, target.value)
        logger.debug("Request %s: %s -> %s", request.id, request.status.value, target.value)
        request.status = target

    def validate_submission(self, submission: ScreeningSubmission) -> None:
        """Raise ScreeningValidationError when none of the requested
        providers is configured and enabled, unless strict validation
        has been switched off.
        """
        if self.providers.usable_providers(submission.providers):
            return
        requested = ", ".join(p.value for p in submission.providers) or "none"
        if self.settings.STRICT_PROVIDER_VALIDATION:
            raise ScreeningValidationError(
                f"No configured and enabled provider among: {requested}"
            )
        logger.warning("Screening submitted with no usable provider (%s)", requested)

    def submit_screening(self, submission: ScreeningSubmission) -> ScreeningRequest:
        """Validate a submission and store it as a pending request."""
        self.validate_submission(submission)

        request = ScreeningRequest(
            id=str(uuid.uuid4()),
            **submission.model_dump(),
        )
        self.store.add_request(request)
        self.analytics.record_submitted(request)
        self.events.publish(
            ScreeningEvent(type=EventType.REQUEST_CREATED, request_id=request.id)
        )
        return request

    async def process_request(self, request_id: str) -> Optional[ScreeningResult]:
        """Run a pending request to a terminal state and return its result.

        Returns None for an unknown request id.
        """
        request = self.store.get_request(request_id)
        if request is None:
            return None

        self._transition(request, ScreeningStatus.IN_PROGRESS)
        self.analytics.record_started(request)
        self.events.publish(
            ScreeningEvent(type=EventType.SCREENING_STARTED, request_id=request.id)
        )

        started = time.perf_counter()
        try:
            outcome = await self.providers.screen(
                request,
                deadline_seconds=self.settings.deadline_for(request.priority.value),
            )
            self._record_provider_calls(outcome)
            if outcome.all_failed:
                return self._fail(request, outcome.errors)
            return self._complete(request, outcome, started)
        except Exception as exc:
            logger.exception("Screening request %s failed unexpectedly", request.id)
            return self._fail(request, {"engine": str(exc) or type(exc).__name__})

    async def screen(self, submission: ScreeningSubmission) -> ScreeningResult:
        """Submit and process a screening in one call."""
        request = self.submit_screening(submission)
        result = await self.process_request(request.id)
        assert result is not None
        return result

    def _record_provider_calls(self, outcome: ProviderScreening) -> None:
        for provider in outcome.attempted:
            self.analytics.record_provider_call(
                provider,
                succeeded=provider in outcome.processed_by,
                duration_ms=outcome.durations_ms.get(provider, 0.0),
            )

    def _complete(
        self,
        request: ScreeningRequest,
        outcome: ProviderScreening,
        started: float,
    ) -> ScreeningResult:
        matches, rule_events = apply_rules(self.store.list_rules(), outcome.matches, request)
        risk_score, recommendations = score_matches(matches)

        result = ScreeningResult(
            id=f"res_{request.id}",
            request_id=request.id,
            status=ScreeningStatus.COMPLETED,
            total_matches=len(matches),
            matches_by_level=count_by_level(matches),
            matches_by_type=count_by_type(matches),
            matches=matches,
            risk_score=risk_score,
            recommendations=recommendations,
            requires_manual_review=any(m.requires_manual_review for m in matches),
            processed_by=outcome.processed_by,
            errors=outcome.errors,
        )

        self._transition(request, ScreeningStatus.COMPLETED)
        request.completed_at = result.completed_at
        self.store.save_result(result)

        processing_time_ms = (time.perf_counter() - started) * 1000
        self.analytics.record_completed(request, result, processing_time_ms)

        self.events.publish_all(rule_events)
        self.events.publish(
            ScreeningEvent(
                type=EventType.SCREENING_COMPLETED,
                request_id=request.id,
                payload={
                    "total_matches": result.total_matches,
                    "risk_score": result.risk_score,
                    "requires_manual_review": result.requires_manual_review,
                },
            )
        )
        logger.info(
            "Screening %s completed: %d matches, risk %.2f, providers %s",
            request.id,
            result.total_matches,
            result.risk_score,
            [p.value for p in result.processed_by],
        )
        return result

    def _fail(self, request: ScreeningRequest, errors: dict[str, str]) -> ScreeningResult:
        result = ScreeningResult(
            id=f"res_{request.id}",
            request_id=request.id,
            status=ScreeningStatus.FAILED,
            total_matches=0,
            matches_by_level=count_by_level([]),
            matches_by_type=count_by_type([]),
            matches=[],
            risk_score=0.0,
            recommendations=[SCREENING_FAILED],
            requires_manual_review=False,
            processed_by=[],
            errors=errors,
        )

        self._transition(request, ScreeningStatus.FAILED)
        request.completed_at = result.completed_at
        self.store.save_result(result)
        self.analytics.record_failed(request, result)

        self.events.publish(
            ScreeningEvent(
                type=EventType.SCREENING_FAILED,
                request_id=request.id,
                payload={"errors": errors},
            )
        )
        logger.error("Screening %s failed: %s", request.id, errors)
        return result

    # -- lookups ------------------------------------------------------------

    def get_request(self, request_id: str) -> Optional[ScreeningRequest]:
        return self.store.get_request(request_id)

    def get_result(self, request_id: str) -> Optional[ScreeningResult]:
        return self.store.get_result(request_id)

    def record_review(
        self,
        match_id: str,
        reviewer_id: str,
        decision: ReviewDecision,
        notes: Optional[str] = None,
    ) -> Optional[ScreeningMatch]:
        return self.reviews.record_disposition(match_id, reviewer_id, decision, notes)

    # -- watchlist entities -------------------------------------------------

    def add_watchlist_entity(self, data: NewWatchlistEntity) -> WatchlistEntity:
        entity = WatchlistEntity(id=f"wl_{uuid.uuid4().hex[:12]}", **data.model_dump())
        self.store.add_entity(entity)
        self.events.publish(
            ScreeningEvent(type=EventType.WATCHLIST_ENTITY_ADDED, entity_id=entity.id)
        )
        return entity

    def set_entity_active(self, entity_id: str, is_active: bool) -> Optional[WatchlistEntity]:
        """Activate or deactivate a listed entity; its identity fields never change."""
        entity = self.store.get_entity(entity_id)
        if entity is None:
            return None
        updated = entity.model_copy(update={"is_active": is_active, "last_updated": utcnow()})
        self.store.update_entity(updated)
        self.events.publish(
            ScreeningEvent(
                type=EventType.WATCHLIST_ENTITY_UPDATED,
                entity_id=entity_id,
                payload={"is_active": is_active},
            )
        )
        return updated

    def delete_watchlist_entity(self, entity_id: str) -> bool:
        deleted = self.store.delete_entity(entity_id)
        if deleted:
            self.events.publish(
                ScreeningEvent(type=EventType.WATCHLIST_ENTITY_DELETED, entity_id=entity_id)
            )
        return deleted

    # -- health -------------------------------------------------------------

    def health(self) -> HealthStatus:
        providers = [
            ProviderHealth(
                provider=config.provider,
                status="active" if config.enabled else "inactive",
            )
            for config in self.store.list_provider_configs()
        ]
        error_rate = self.analytics.failure_rate
        active = self.analytics.by_status[ScreeningStatus.IN_PROGRESS]

        status = "healthy"
        if error_rate > DEGRADED_ERROR_RATE or active > DEGRADED_ACTIVE_SCREENINGS:
            status = "degraded"
        if error_rate > UNHEALTHY_ERROR_RATE:
            status = "unhealthy"

        return HealthStatus(
            status=status,
            providers=providers,
            total_watchlist_entities=len(self.store.list_entities()),
            active_screenings=active,
            error_rate=error_rate,
        )
