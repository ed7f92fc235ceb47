"""Human review of ambiguous matches.

A disposition is recorded once per match and never overwritten; a second
attempt raises DispositionAlreadyRecorded so the audit trail stays intact.
"""

import logging
from typing import Optional

from watchlist.errors import DispositionAlreadyRecorded
from watchlist.events import EventBus
from watchlist.models import (
    EventType,
    ReviewDecision,
    ReviewRecord,
    ScreeningEvent,
    ScreeningMatch,
)
from watchlist.screening.analytics import AnalyticsAggregator
from watchlist.storage.base import ScreeningStore

logger = logging.getLogger(__name__)


class ReviewWorkflow:
    """Records reviewer dispositions and feeds them into analytics."""

    def __init__(
        self,
        store: ScreeningStore,
        analytics: AnalyticsAggregator,
        events: EventBus,
    ) -> None:
        self.store = store
        self.analytics = analytics
        self.events = events

    def record_disposition(
        self,
        match_id: str,
        reviewer_id: str,
        decision: ReviewDecision,
        notes: Optional[str] = None,
    ) -> Optional[ScreeningMatch]:
        """Attach a reviewer's decision to a match.

        Returns the updated match, or None if no match has that id.
        """
        match = self.store.get_match(match_id)
        if match is None:
            return None
        if match.review is not None:
            raise DispositionAlreadyRecorded(match_id)

        match.review = ReviewRecord(
            reviewer_id=reviewer_id,
            decision=decision,
            notes=notes,
        )
        self.analytics.record_review(decision)
        logger.info(
            "Match %s reviewed by %s: %s", match_id, reviewer_id, decision.value
        )
        self.events.publish(
            ScreeningEvent(
                type=EventType.MATCH_REVIEWED,
                request_id=match.request_id,
                entity_id=match.entity_id,
                match_id=match.id,
                payload={"reviewer_id": reviewer_id, "decision": decision.value},
            )
        )
        return match
