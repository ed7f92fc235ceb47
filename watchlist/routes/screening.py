"""Screening endpoints for single and batch submissions."""

import asyncio
from collections import Counter

from fastapi import APIRouter, BackgroundTasks, HTTPException, Request

from watchlist.errors import ScreeningValidationError
from watchlist.models import (
    BatchScreeningRequest,
    BatchScreeningResponse,
    BatchSummary,
    ScreeningRequest,
    ScreeningResult,
    ScreeningStatus,
    ScreeningSubmission,
)
from watchlist.screening.engine import ScreeningEngine

router = APIRouter(prefix="/api")


def _get_engine(request: Request) -> ScreeningEngine:
    """Retrieve the screening engine from application state."""
    return request.app.state.engine


@router.post("/screenings", response_model=ScreeningRequest, status_code=202)
async def submit_screening(
    submission: ScreeningSubmission,
    request: Request,
    background_tasks: BackgroundTasks,
) -> ScreeningRequest:
    """Accept a screening request and dispatch it for processing.

    The response carries the pending request; poll its result endpoint
    for the outcome.
    """
    engine = _get_engine(request)
    try:
        screening_request = engine.submit_screening(submission)
    except ScreeningValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    # Snapshot before processing so the caller sees the pending state
    pending = screening_request.model_copy()
    background_tasks.add_task(engine.process_request, screening_request.id)
    return pending


@router.post("/screenings/batch", response_model=BatchScreeningResponse)
async def screen_batch(
    batch: BatchScreeningRequest,
    request: Request,
) -> BatchScreeningResponse:
    """Screen a batch of subjects concurrently and return aggregate summary.

    Every submission is validated before any is processed. The summary
    includes counts per terminal state and the watchlist types that
    produced the most matches.
    """
    engine = _get_engine(request)

    try:
        for submission in batch.submissions:
            engine.validate_submission(submission)
    except ScreeningValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    pending = [engine.submit_screening(s) for s in batch.submissions]

    results: list[ScreeningResult] = await asyncio.gather(
        *(engine.process_request(r.id) for r in pending)
    )

    # Find the watchlist types that matched most often across the batch
    type_counts: Counter = Counter()
    for r in results:
        for list_type, count in r.matches_by_type.items():
            if count:
                type_counts[list_type.value] += count

    summary = BatchSummary(
        total=len(results),
        completed=sum(1 for r in results if r.status == ScreeningStatus.COMPLETED),
        failed=sum(1 for r in results if r.status == ScreeningStatus.FAILED),
        manual_review=sum(1 for r in results if r.requires_manual_review),
        common_watchlist_types=[t for t, _ in type_counts.most_common(5)],
    )

    return BatchScreeningResponse(results=results, summary=summary)


@router.get("/screenings/{request_id}", response_model=ScreeningRequest)
async def get_screening(request_id: str, request: Request) -> ScreeningRequest:
    """Return a screening request with its current status."""
    screening_request = _get_engine(request).get_request(request_id)
    if screening_request is None:
        raise HTTPException(status_code=404, detail="Screening request not found")
    return screening_request


@router.get("/screenings/{request_id}/result", response_model=ScreeningResult)
async def get_screening_result(request_id: str, request: Request) -> ScreeningResult:
    """Return the result of a screening once it reached a terminal state."""
    result = _get_engine(request).get_result(request_id)
    if result is None:
        raise HTTPException(status_code=404, detail="Screening result not available")
    return result
