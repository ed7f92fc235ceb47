"""Review endpoint for recording human dispositions of matches."""

from fastapi import APIRouter, HTTPException, Request

from watchlist.errors import DispositionAlreadyRecorded
from watchlist.models import ReviewSubmission, ScreeningMatch

router = APIRouter(prefix="/api")


@router.post("/matches/{match_id}/review", response_model=ScreeningMatch)
async def review_match(
    match_id: str,
    review: ReviewSubmission,
    request: Request,
) -> ScreeningMatch:
    """Record a reviewer's decision on a match.

    A match can be reviewed once; a second disposition is rejected with 409.
    """
    engine = request.app.state.engine
    try:
        match = engine.record_review(
            match_id,
            reviewer_id=review.reviewer_id,
            decision=review.decision,
            notes=review.notes,
        )
    except DispositionAlreadyRecorded as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc

    if match is None:
        raise HTTPException(status_code=404, detail="Match not found")
    return match
