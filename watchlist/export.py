"""Export of screening results for compliance reporting.

Two formats:
  - json: one record per result, with its request and every match
    carrying the listed entity it matched
  - csv:  one flat row per match
"""

import csv
import io
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from watchlist.models import ScreeningResult, ScreeningStatus
from watchlist.storage.base import ScreeningStore

CSV_COLUMNS = [
    "requestId",
    "subjectName",
    "provider",
    "matchLevel",
    "confidenceScore",
    "requiresManualReview",
    "decision",
]


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # Naive bounds are taken to be UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def filter_results(
    store: ScreeningStore,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    status: Optional[ScreeningStatus] = None,
    user_id: Optional[str] = None,
) -> List[ScreeningResult]:
    """Return stored results, optionally filtered by completion time, status and submitter."""
    start, end = _as_utc(start), _as_utc(end)
    results: List[ScreeningResult] = []
    for result in store.list_results():
        if start is not None and result.completed_at < start:
            continue
        if end is not None and result.completed_at > end:
            continue
        if status is not None and result.status != status:
            continue
        if user_id is not None:
            request = store.get_request(result.request_id)
            if request is None or request.user_id != user_id:
                continue
        results.append(result)
    return results


def results_to_records(
    store: ScreeningStore,
    results: List[ScreeningResult],
) -> List[Dict[str, Any]]:
    records: List[Dict[str, Any]] = []
    for result in results:
        record = result.model_dump(mode="json")
        request = store.get_request(result.request_id)
        record["request"] = request.model_dump(mode="json") if request else None
        for match in record["matches"]:
            entity = store.get_entity(match["entity_id"])
            match["entity"] = entity.model_dump(mode="json") if entity else None
        records.append(record)
    return records


def results_to_csv(store: ScreeningStore, results: List[ScreeningResult]) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=CSV_COLUMNS)
    writer.writeheader()
    for result in results:
        request = store.get_request(result.request_id)
        subject_name = request.name if request else ""
        for match in result.matches:
            writer.writerow({
                "requestId": result.request_id,
                "subjectName": subject_name,
                "provider": match.source_provider.value,
                "matchLevel": match.match_level.value,
                "confidenceScore": f"{match.confidence_score:.4f}",
                "requiresManualReview": str(match.requires_manual_review).lower(),
                "decision": match.review.decision.value if match.review else "",
            })
    return buffer.getvalue()


def export_results(
    store: ScreeningStore,
    fmt: str = "json",
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    status: Optional[ScreeningStatus] = None,
    user_id: Optional[str] = None,
) -> Union[List[Dict[str, Any]], str]:
    """Export filtered results as JSON-ready records or as CSV text."""
    results = filter_results(store, start=start, end=end, status=status, user_id=user_id)
    if fmt == "csv":
        return results_to_csv(store, results)
    if fmt == "json":
        return results_to_records(store, results)
    raise ValueError(f"Unsupported export format: {fmt}")
