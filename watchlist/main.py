"""Watchlist Screening API.

Screens people and businesses against sanctions, PEP, adverse-media and
internal blocklists, escalates matches through configurable rules,
scores the aggregate risk and routes ambiguous matches to reviewers.

Run with:
    python3 -m uvicorn watchlist.main:app --host 0.0.0.0 --port 8000
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict

from fastapi import FastAPI

from watchlist.config import Settings
from watchlist.events import EventBus, log_event
from watchlist.models import (
    MatchingConfig,
    ProviderConfig,
    ScreeningRule,
    WatchlistEntity,
)
from watchlist.routes import analytics, entities, reviews, rules, screening
from watchlist.screening.engine import ScreeningEngine
from watchlist.screening.providers import InMemoryProviderGateway
from watchlist.storage.memory import MemoryStore

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Watchlist Screening API",
    description=(
        "Screens individuals and businesses against sanctions, PEP, "
        "adverse-media and blocklist watchlists with explainable matches, "
        "rule-based escalation, risk scoring and a human review gate."
    ),
    version="1.0.0",
)


def _load_json(path: Path) -> Any:
    with open(path, "r") as f:
        return json.load(f)


def load_reference_data(store: MemoryStore, data_dir: Path) -> MatchingConfig:
    """Populate the store from the JSON files in data_dir.

    Returns the matcher thresholds (defaults when no config file exists).
    """
    # Vendor connection settings (one entry per provider)
    for raw in _load_json(data_dir / "providers.json"):
        store.save_provider_config(ProviderConfig(**raw))

    # Compliance rules, in declaration order
    for raw in _load_json(data_dir / "screening_rules.json"):
        store.save_rule(ScreeningRule(**raw))

    # Sample watchlist entities standing in for ingested vendor data
    for raw in _load_json(data_dir / "watchlist_entities.json"):
        store.add_entity(WatchlistEntity(**raw))

    matching_config_path = data_dir / "matching_config.json"
    if matching_config_path.exists():
        return MatchingConfig(**_load_json(matching_config_path))
    return MatchingConfig()


@app.on_event("startup")
async def startup() -> None:
    """Load reference data and initialize the screening engine."""
    settings = Settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    store = MemoryStore()
    matching_config = load_reference_data(store, Path(settings.DATA_DIR))

    events = EventBus()
    events.subscribe(log_event)

    engine = ScreeningEngine(
        store=store,
        gateway=InMemoryProviderGateway(store, latency_ms=settings.PROVIDER_LATENCY_MS),
        settings=settings,
        matching_config=matching_config,
        events=events,
    )

    # Attach to app state for dependency injection in routes
    app.state.settings = settings
    app.state.store = store
    app.state.events = events
    app.state.engine = engine
    logger.info(
        "Loaded %d watchlist entities, %d rules, %d providers",
        len(store.list_entities()),
        len(store.list_rules()),
        len(store.list_provider_configs()),
    )


# Mount all API routers
app.include_router(screening.router)
app.include_router(reviews.router)
app.include_router(rules.router)
app.include_router(entities.router)
app.include_router(analytics.router)


@app.get("/health")
async def health_check() -> Dict[str, Any]:
    """Service health derived from failure rate and provider status."""
    return app.state.engine.health().model_dump(mode="json")
