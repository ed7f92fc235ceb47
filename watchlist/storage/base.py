"""Repository interface the screening engine depends on.

The engine only needs CRUD by id for each record kind. MemoryStore is the
in-process implementation; a durable store can be injected in its place.
"""

from typing import List, Optional, Protocol, runtime_checkable

from watchlist.models import (
    ProviderConfig,
    ScreeningMatch,
    ScreeningRequest,
    ScreeningResult,
    ScreeningRule,
    WatchlistEntity,
    WatchlistProvider,
)


@runtime_checkable
class ScreeningStore(Protocol):
    # Watchlist entities
    def add_entity(self, entity: WatchlistEntity) -> None: ...
    def get_entity(self, entity_id: str) -> Optional[WatchlistEntity]: ...
    def update_entity(self, entity: WatchlistEntity) -> None: ...
    def delete_entity(self, entity_id: str) -> bool: ...
    def list_entities(self) -> List[WatchlistEntity]: ...

    # Requests and results
    def add_request(self, request: ScreeningRequest) -> None: ...
    def get_request(self, request_id: str) -> Optional[ScreeningRequest]: ...
    def list_requests(self) -> List[ScreeningRequest]: ...
    def save_result(self, result: ScreeningResult) -> None: ...
    def get_result(self, request_id: str) -> Optional[ScreeningResult]: ...
    def list_results(self) -> List[ScreeningResult]: ...
    def get_match(self, match_id: str) -> Optional[ScreeningMatch]: ...

    # Configuration
    def save_rule(self, rule: ScreeningRule) -> None: ...
    def get_rule(self, rule_id: str) -> Optional[ScreeningRule]: ...
    def delete_rule(self, rule_id: str) -> bool: ...
    def list_rules(self) -> List[ScreeningRule]: ...
    def replace_rules(self, rules: List[ScreeningRule]) -> None: ...
    def save_provider_config(self, config: ProviderConfig) -> None: ...
    def get_provider_config(self, provider: WatchlistProvider) -> Optional[ProviderConfig]: ...
    def list_provider_configs(self) -> List[ProviderConfig]: ...
