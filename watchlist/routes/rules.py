"""Configuration endpoints for screening rules and matcher thresholds."""

from typing import List

from fastapi import APIRouter, Request

from watchlist.models import MatchingConfig, ScreeningRule

router = APIRouter(prefix="/api")


@router.get("/rules", response_model=List[ScreeningRule])
async def get_rules(request: Request) -> List[ScreeningRule]:
    """Return the configured screening rules in declaration order."""
    return request.app.state.store.list_rules()


@router.put("/rules", response_model=List[ScreeningRule])
async def replace_rules(
    rules: List[ScreeningRule],
    request: Request,
) -> List[ScreeningRule]:
    """Replace the whole rule set; applies to screenings processed from now on."""
    request.app.state.store.replace_rules(rules)
    return rules


@router.get("/config/matching", response_model=MatchingConfig)
async def get_matching_config(request: Request) -> MatchingConfig:
    """Return the current entity matcher thresholds."""
    return request.app.state.engine.matching_config


@router.put("/config/matching", response_model=MatchingConfig)
async def update_matching_config(
    new_config: MatchingConfig,
    request: Request,
) -> MatchingConfig:
    """Update the matcher thresholds used by subsequent screenings."""
    request.app.state.engine.matching_config = new_config
    return new_config
