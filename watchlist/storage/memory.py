"""In-memory storage for watchlists, screening requests, results and config.

Every record kind lives in a dict keyed by its id for O(1) lookups;
matches are additionally indexed by match id when a result is saved so
reviewers can address them directly. All data lives in memory and is lost
on restart.
"""

from typing import Dict, List, Optional

from watchlist.models import (
    ProviderConfig,
    ScreeningMatch,
    ScreeningRequest,
    ScreeningResult,
    ScreeningRule,
    WatchlistEntity,
    WatchlistProvider,
)


class MemoryStore:
    """In-memory implementation of the ScreeningStore repository."""

    def __init__(self) -> None:
        self._entities: Dict[str, WatchlistEntity] = {}
        self._requests: Dict[str, ScreeningRequest] = {}
        # Results indexed by the request they answer
        self._results: Dict[str, ScreeningResult] = {}
        self._matches: Dict[str, ScreeningMatch] = {}
        # Rules keep insertion order, which is their declaration order
        self._rules: Dict[str, ScreeningRule] = {}
        self._providers: Dict[WatchlistProvider, ProviderConfig] = {}

    # -- watchlist entities -------------------------------------------------

    def add_entity(self, entity: WatchlistEntity) -> None:
        self._entities[entity.id] = entity

    def get_entity(self, entity_id: str) -> Optional[WatchlistEntity]:
        return self._entities.get(entity_id)

    def update_entity(self, entity: WatchlistEntity) -> None:
        self._entities[entity.id] = entity

    def delete_entity(self, entity_id: str) -> bool:
        return self._entities.pop(entity_id, None) is not None

    def list_entities(self) -> List[WatchlistEntity]:
        return list(self._entities.values())

    # -- requests and results -----------------------------------------------

    def add_request(self, request: ScreeningRequest) -> None:
        self._requests[request.id] = request

    def get_request(self, request_id: str) -> Optional[ScreeningRequest]:
        return self._requests.get(request_id)

    def list_requests(self) -> List[ScreeningRequest]:
        return list(self._requests.values())

    def save_result(self, result: ScreeningResult) -> None:
        """Store a result and index each of its matches by match id."""
        self._results[result.request_id] = result
        for match in result.matches:
            self._matches[match.id] = match

    def get_result(self, request_id: str) -> Optional[ScreeningResult]:
        return self._results.get(request_id)

    def list_results(self) -> List[ScreeningResult]:
        return list(self._results.values())

    def get_match(self, match_id: str) -> Optional[ScreeningMatch]:
        return self._matches.get(match_id)

    # -- configuration ------------------------------------------------------

    def save_rule(self, rule: ScreeningRule) -> None:
        self._rules[rule.id] = rule

    def get_rule(self, rule_id: str) -> Optional[ScreeningRule]:
        return self._rules.get(rule_id)

    def delete_rule(self, rule_id: str) -> bool:
        return self._rules.pop(rule_id, None) is not None

    def list_rules(self) -> List[ScreeningRule]:
        return list(self._rules.values())

    def replace_rules(self, rules: List[ScreeningRule]) -> None:
        """Swap the whole rule set, keeping the order given."""
        self._rules = {rule.id: rule for rule in rules}

    def save_provider_config(self, config: ProviderConfig) -> None:
        self._providers[config.provider] = config

    def get_provider_config(self, provider: WatchlistProvider) -> Optional[ProviderConfig]:
        return self._providers.get(provider)

    def list_provider_configs(self) -> List[ProviderConfig]:
        return list(self._providers.values())
