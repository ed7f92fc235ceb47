"""Risk score aggregation and recommendations.

The risk score is the mean severity weight of all matches:
  low=0.2, medium=0.5, high=0.8, exact=1.0
so a result with no matches scores 0 and one made only of exact matches
scores 1.0.

Recommendations are rules of thumb, not a formula. Every trigger that
applies adds its message, in this order:
  - high/exact match  -> immediate review + consider blocking
  - medium match      -> review within 24 hours
  - sanctions match   -> notify compliance
  - PEP match         -> enhanced due diligence
"""

from collections import Counter

from watchlist.models import MatchLevel, ScreeningMatch, WatchlistType

LEVEL_WEIGHTS = {
    MatchLevel.NONE: 0.0,
    MatchLevel.LOW: 0.2,
    MatchLevel.MEDIUM: 0.5,
    MatchLevel.HIGH: 0.8,
    MatchLevel.EXACT: 1.0,
}

NO_MATCHES = "No matches found. Proceed with normal processing."
HIGH_RISK_REVIEW = "High-risk matches detected. Immediate manual review required."
HIGH_RISK_BLOCK = "Consider blocking transaction until review is completed."
MEDIUM_RISK_REVIEW = "Medium-risk matches found. Schedule manual review within 24 hours."
SANCTIONS_NOTICE = "Sanctions list match detected. Compliance team must be notified immediately."
PEP_NOTICE = "PEP match detected. Enhanced due diligence required."
SCREENING_FAILED = "Screening failed. Please retry."


def score_matches(matches: list[ScreeningMatch]) -> tuple[float, list[str]]:
    """Compute the aggregate risk score and recommendations for a result.

    Returns:
        Tuple of (risk_score, recommendations).
    """
    if not matches:
        return 0.0, [NO_MATCHES]

    total = sum(LEVEL_WEIGHTS[m.match_level] for m in matches)
    risk_score = min(total / len(matches), 1.0)

    levels = {m.match_level for m in matches}
    list_types = {m.list_type for m in matches}
    recommendations: list[str] = []

    if MatchLevel.HIGH in levels or MatchLevel.EXACT in levels:
        recommendations.append(HIGH_RISK_REVIEW)
        recommendations.append(HIGH_RISK_BLOCK)

    if MatchLevel.MEDIUM in levels:
        recommendations.append(MEDIUM_RISK_REVIEW)

    if WatchlistType.SANCTIONS in list_types:
        recommendations.append(SANCTIONS_NOTICE)

    if WatchlistType.PEP in list_types:
        recommendations.append(PEP_NOTICE)

    return risk_score, recommendations


def count_by_level(matches: list[ScreeningMatch]) -> dict[MatchLevel, int]:
    """Match counts per level, with every level present."""
    counts = Counter(m.match_level for m in matches)
    return {level: counts.get(level, 0) for level in MatchLevel}


def count_by_type(matches: list[ScreeningMatch]) -> dict[WatchlistType, int]:
    """Match counts per watchlist type, with every type present."""
    counts = Counter(m.list_type for m in matches)
    return {list_type: counts.get(list_type, 0) for list_type in WatchlistType}
