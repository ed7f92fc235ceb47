"""Pydantic models for the watchlist screening engine."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WatchlistType(str, Enum):
    SANCTIONS = "sanctions"
    PEP = "pep"
    ADVERSE_MEDIA = "adverse_media"
    BLOCKLIST = "blocklist"
    CUSTOM = "custom"


class WatchlistProvider(str, Enum):
    OFAC = "ofac"
    UN_SANCTIONS = "un_sanctions"
    EU_SANCTIONS = "eu_sanctions"
    UK_SANCTIONS = "uk_sanctions"
    WORLD_CHECK = "world_check"
    DOW_JONES = "dow_jones"
    COMPLY_ADVANTAGE = "comply_advantage"
    REFINITIV = "refinitiv"
    ACCENTURE = "accenture"
    CUSTOM = "custom"


class ScreeningStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class MatchLevel(str, Enum):
    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    EXACT = "exact"


# Ordering used to sort matches strongest-first
MATCH_LEVEL_RANK = {
    MatchLevel.NONE: 0,
    MatchLevel.LOW: 1,
    MatchLevel.MEDIUM: 2,
    MatchLevel.HIGH: 3,
    MatchLevel.EXACT: 4,
}


class EntityType(str, Enum):
    INDIVIDUAL = "individual"
    BUSINESS = "business"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class ReviewDecision(str, Enum):
    TRUE_POSITIVE = "true_positive"
    FALSE_POSITIVE = "false_positive"
    INCONCLUSIVE = "inconclusive"


class ConditionOperator(str, Enum):
    EQUALS = "equals"
    CONTAINS = "contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    REGEX = "regex"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"


class LogicalOperator(str, Enum):
    AND = "and"
    OR = "or"


class ActionType(str, Enum):
    FLAG = "flag"
    BLOCK = "block"
    REQUIRE_REVIEW = "require_review"
    NOTIFY = "notify"
    LOG = "log"


class EventType(str, Enum):
    REQUEST_CREATED = "request_created"
    SCREENING_STARTED = "screening_started"
    SCREENING_COMPLETED = "screening_completed"
    SCREENING_FAILED = "screening_failed"
    RULE_ACTION_TRIGGERED = "rule_action_triggered"
    MATCH_REVIEWED = "match_reviewed"
    WATCHLIST_ENTITY_ADDED = "watchlist_entity_added"
    WATCHLIST_ENTITY_UPDATED = "watchlist_entity_updated"
    WATCHLIST_ENTITY_DELETED = "watchlist_entity_deleted"


class WatchlistEntity(BaseModel):
    """A single listed record sourced from a watchlist provider.

    Written by data ingestion; the engine only ever flips is_active.
    """
    id: str
    list_type: WatchlistType
    source_provider: WatchlistProvider
    external_id: str
    name: str
    aliases: list[str] = []
    date_of_birth: Optional[str] = None
    nationality: Optional[str] = None
    address: Optional[str] = None
    identification_numbers: dict[str, str] = {}
    additional_info: dict[str, Any] = {}
    is_active: bool = True
    last_updated: datetime = Field(default_factory=utcnow)


class NewWatchlistEntity(BaseModel):
    """Payload for adding an entity; id and last_updated are assigned."""
    list_type: WatchlistType
    source_provider: WatchlistProvider
    external_id: str
    name: str
    aliases: list[str] = []
    date_of_birth: Optional[str] = None
    nationality: Optional[str] = None
    address: Optional[str] = None
    identification_numbers: dict[str, str] = {}
    additional_info: dict[str, Any] = {}
    is_active: bool = True


class EntityActivation(BaseModel):
    is_active: bool


class ScreeningSubmission(BaseModel):
    """Incoming description of a person or business to be screened."""
    name: str = Field(min_length=1)
    entity_type: EntityType = EntityType.INDIVIDUAL
    aliases: list[str] = []
    date_of_birth: Optional[str] = None
    nationality: Optional[str] = None
    address: Optional[str] = None
    identification_numbers: dict[str, str] = {}
    watchlist_types: list[WatchlistType] = [WatchlistType.SANCTIONS]
    providers: list[WatchlistProvider] = [WatchlistProvider.OFAC]
    priority: Priority = Priority.MEDIUM
    user_id: Optional[str] = None


class ScreeningRequest(ScreeningSubmission):
    """The unit of work owned by the screening engine for its lifetime."""
    id: str
    status: ScreeningStatus = ScreeningStatus.PENDING
    created_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = None


class ReviewRecord(BaseModel):
    """A reviewer's disposition of a single match."""
    reviewer_id: str
    decision: ReviewDecision
    notes: Optional[str] = None
    reviewed_at: datetime = Field(default_factory=utcnow)


class ReviewSubmission(BaseModel):
    reviewer_id: str = Field(min_length=1)
    decision: ReviewDecision
    notes: Optional[str] = None


class ScreeningMatch(BaseModel):
    """One candidate correspondence between a request and a listed entity."""
    id: str
    request_id: str
    entity_id: str
    entity_name: str
    list_type: WatchlistType
    source_provider: WatchlistProvider
    match_level: MatchLevel = MatchLevel.NONE
    confidence_score: float = 0.0  # always within [0, 1]
    matched_fields: list[str] = []
    differences: list[str] = []
    explanation: str = ""
    requires_manual_review: bool = False
    review: Optional[ReviewRecord] = None


class ScreeningResult(BaseModel):
    """Outcome of one screening request."""
    id: str
    request_id: str
    status: ScreeningStatus
    total_matches: int
    matches_by_level: dict[MatchLevel, int]
    matches_by_type: dict[WatchlistType, int]
    matches: list[ScreeningMatch]
    risk_score: float  # 0.0-1.0 aggregate severity
    recommendations: list[str]
    requires_manual_review: bool
    processed_by: list[WatchlistProvider]
    errors: dict[str, str] = {}
    completed_at: datetime = Field(default_factory=utcnow)


class ScreeningCondition(BaseModel):
    """One test of a rule; joined to the previous condition by logical_operator."""
    field: str
    operator: ConditionOperator
    value: str
    case_sensitive: bool = False
    logical_operator: LogicalOperator = LogicalOperator.AND


class ScreeningAction(BaseModel):
    type: ActionType
    parameters: dict[str, Any] = {}


class ScreeningRule(BaseModel):
    """A named, prioritized compliance policy applied to produced matches."""
    id: str
    name: str
    description: str = ""
    watchlist_types: list[WatchlistType] = []  # empty applies to every type
    conditions: list[ScreeningCondition] = []
    actions: list[ScreeningAction] = []
    is_active: bool = True
    priority: int = 100  # lower runs first


class ProviderConfig(BaseModel):
    """Connection settings for a single watchlist data vendor."""
    provider: WatchlistProvider
    api_url: str = ""
    api_key: str = ""
    enabled: bool = True
    priority: int = 1
    rate_limit_per_minute: int = 100
    timeout_ms: int = 30000
    retry_attempts: int = 3
    custom_settings: dict[str, Any] = {}


class MatchingConfig(BaseModel):
    """Tunable thresholds for the entity matcher."""
    exact_threshold: float = 0.95
    high_threshold: float = 0.8
    medium_threshold: float = 0.6
    low_threshold: float = 0.4
    date_of_birth_bonus: float = 0.2
    nationality_bonus: float = 0.1
    review_confidence_threshold: float = 0.9


class ScreeningEvent(BaseModel):
    """A lifecycle event published to subscribers of the event bus."""
    type: EventType
    request_id: Optional[str] = None
    entity_id: Optional[str] = None
    match_id: Optional[str] = None
    payload: dict[str, Any] = {}
    occurred_at: datetime = Field(default_factory=utcnow)


class DailyStat(BaseModel):
    date: str
    screenings: int = 0
    matches: int = 0
    manual_reviews: int = 0


class ProviderPerformance(BaseModel):
    provider: WatchlistProvider
    screenings: int
    average_time_ms: float
    success_rate: float


class EntityMatchCount(BaseModel):
    entity_id: str
    name: str
    match_count: int


class AnalyticsSnapshot(BaseModel):
    """Point-in-time copy of the rolling screening counters."""
    total_screenings: int
    screenings_by_status: dict[ScreeningStatus, int]
    screenings_by_type: dict[WatchlistType, int]
    active_screenings: int
    average_processing_time_ms: float
    match_rate: float
    total_reviews: int
    false_positive_rate: float
    top_matched_entities: list[EntityMatchCount]
    provider_performance: list[ProviderPerformance]
    daily_stats: list[DailyStat]


class ProviderHealth(BaseModel):
    provider: WatchlistProvider
    status: str  # active | inactive


class HealthStatus(BaseModel):
    status: str  # healthy | degraded | unhealthy
    providers: list[ProviderHealth]
    total_watchlist_entities: int
    active_screenings: int
    error_rate: float


class BatchScreeningRequest(BaseModel):
    """A batch of subjects to screen."""
    submissions: list[ScreeningSubmission]


class BatchSummary(BaseModel):
    """Aggregate statistics for a batch screening run."""
    total: int
    completed: int
    failed: int
    manual_review: int
    common_watchlist_types: list[str]


class BatchScreeningResponse(BaseModel):
    results: list[ScreeningResult]
    summary: BatchSummary
