"""Shared fixtures for the test suite."""

import asyncio

import pytest
from fastapi.testclient import TestClient

from watchlist.config import Settings
from watchlist.events import EventBus
from watchlist.main import app
from watchlist.models import (
    EntityType,
    MatchLevel,
    ProviderConfig,
    ScreeningMatch,
    ScreeningRequest,
    ScreeningResult,
    ScreeningStatus,
    ScreeningSubmission,
    WatchlistEntity,
    WatchlistProvider,
    WatchlistType,
)
from watchlist.screening.engine import ScreeningEngine
from watchlist.screening.providers import InMemoryProviderGateway
from watchlist.screening.scorer import count_by_level, count_by_type, score_matches
from watchlist.storage.memory import MemoryStore


PROVIDER_CONFIGS = [
    ProviderConfig(provider=WatchlistProvider.OFAC, timeout_ms=2000),
    ProviderConfig(provider=WatchlistProvider.WORLD_CHECK, timeout_ms=2000),
    ProviderConfig(provider=WatchlistProvider.COMPLY_ADVANTAGE, timeout_ms=2000),
    ProviderConfig(provider=WatchlistProvider.DOW_JONES, enabled=False),
]


class StubGateway:
    """Gateway returning canned candidates, or raising, per provider."""

    def __init__(self, responses=None, delays=None):
        self.responses = responses or {}
        self.delays = delays or {}
        self.calls = []

    async def fetch_candidates(self, config, watchlist_types, subject):
        self.calls.append(config.provider)
        delay = self.delays.get(config.provider)
        if delay:
            await asyncio.sleep(delay)
        response = self.responses.get(config.provider, [])
        if isinstance(response, Exception):
            raise response
        return [e for e in response if e.list_type in watchlist_types]


@pytest.fixture
def store():
    s = MemoryStore()
    for config in PROVIDER_CONFIGS:
        s.save_provider_config(config.model_copy())
    return s


@pytest.fixture
def settings():
    return Settings(STRICT_PROVIDER_VALIDATION=True, PROVIDER_LATENCY_MS=0)


@pytest.fixture
def events():
    return EventBus()


@pytest.fixture
def recorded(events):
    """List that receives every event published on the bus."""
    received = []
    events.subscribe(received.append)
    return received


@pytest.fixture
def engine(store, settings, events):
    return ScreeningEngine(
        store=store,
        gateway=InMemoryProviderGateway(store),
        settings=settings,
        events=events,
    )


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


def make_request(
    name="John Doe",
    aliases=None,
    dob=None,
    nationality=None,
    watchlist_types=None,
    providers=None,
    request_id="req-1",
    entity_type=EntityType.INDIVIDUAL,
) -> ScreeningRequest:
    return ScreeningRequest(
        id=request_id,
        name=name,
        entity_type=entity_type,
        aliases=aliases or [],
        date_of_birth=dob,
        nationality=nationality,
        watchlist_types=watchlist_types or [WatchlistType.SANCTIONS],
        providers=providers or [WatchlistProvider.OFAC],
    )


def make_submission(
    name="John Doe",
    watchlist_types=None,
    providers=None,
    **kwargs,
) -> ScreeningSubmission:
    return ScreeningSubmission(
        name=name,
        watchlist_types=watchlist_types or [WatchlistType.SANCTIONS],
        providers=providers or [WatchlistProvider.OFAC],
        **kwargs,
    )


def make_entity(
    name="John Doe",
    entity_id="wl-1",
    list_type=WatchlistType.SANCTIONS,
    provider=WatchlistProvider.OFAC,
    dob=None,
    nationality=None,
    aliases=None,
    is_active=True,
) -> WatchlistEntity:
    return WatchlistEntity(
        id=entity_id,
        list_type=list_type,
        source_provider=provider,
        external_id=f"EXT-{entity_id}",
        name=name,
        aliases=aliases or [],
        date_of_birth=dob,
        nationality=nationality,
        is_active=is_active,
    )


def make_match(
    level=MatchLevel.HIGH,
    confidence=0.85,
    list_type=WatchlistType.SANCTIONS,
    match_id="match-1",
    request_id="req-1",
    entity_id="wl-1",
    requires_review=False,
    provider=WatchlistProvider.OFAC,
) -> ScreeningMatch:
    return ScreeningMatch(
        id=match_id,
        request_id=request_id,
        entity_id=entity_id,
        entity_name="John Doe",
        list_type=list_type,
        source_provider=provider,
        match_level=level,
        confidence_score=confidence,
        matched_fields=["name"],
        explanation="Name match",
        requires_manual_review=requires_review,
    )


def make_result(matches, request_id="req-1", status=ScreeningStatus.COMPLETED) -> ScreeningResult:
    risk_score, recommendations = score_matches(matches)
    return ScreeningResult(
        id=f"res_{request_id}",
        request_id=request_id,
        status=status,
        total_matches=len(matches),
        matches_by_level=count_by_level(matches),
        matches_by_type=count_by_type(matches),
        matches=matches,
        risk_score=risk_score,
        recommendations=recommendations,
        requires_manual_review=any(m.requires_manual_review for m in matches),
        processed_by=[WatchlistProvider.OFAC],
    )
