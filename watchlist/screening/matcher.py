"""Entity matching: compares a screening subject with one listed entity.

The comparison is pure and deterministic. The primary signal is the
normalized edit-distance similarity of the two lowercased names:

    similarity = (max_len - levenshtein(a, b)) / max_len

which fixes the match level:
  - > 0.95 -> exact
  - > 0.80 -> high
  - > 0.60 -> medium
  - > 0.40 -> low
  - otherwise none

Aliases, date of birth and nationality then adjust the confidence score
(never the level). Every contributing field is recorded together with a
human-readable explanation so reviewers can see why a match was raised.
"""

from typing import Optional

from rapidfuzz.distance import Levenshtein

from watchlist.models import (
    MatchingConfig,
    MatchLevel,
    ScreeningMatch,
    ScreeningRequest,
    WatchlistEntity,
)

DEFAULT_MATCHING_CONFIG = MatchingConfig()


def name_similarity(a: str, b: str) -> float:
    """Normalized edit-distance similarity in [0, 1]; 1.0 for two empty strings."""
    max_len = max(len(a), len(b))
    if max_len == 0:
        return 1.0
    return (max_len - Levenshtein.distance(a, b)) / max_len


def _classify(similarity: float, config: MatchingConfig) -> tuple[MatchLevel, Optional[str]]:
    """Map a name similarity to its match level and matched-field tag."""
    if similarity > config.exact_threshold:
        return MatchLevel.EXACT, "name"
    if similarity > config.high_threshold:
        return MatchLevel.HIGH, "name"
    if similarity > config.medium_threshold:
        return MatchLevel.MEDIUM, "name_partial"
    if similarity > config.low_threshold:
        return MatchLevel.LOW, "name_weak"
    return MatchLevel.NONE, None


def _explain(
    matched_fields: list[str],
    subject: ScreeningRequest,
    entity: WatchlistEntity,
    similarity: float,
) -> str:
    descriptions: list[str] = []
    for field in matched_fields:
        if field == "name":
            descriptions.append(f'Name match: "{subject.name}" vs "{entity.name}"')
        elif field == "name_partial":
            descriptions.append(
                f'Partial name match: "{subject.name}" vs "{entity.name}" '
                f"(similarity: {similarity:.2f})"
            )
        elif field == "name_weak":
            descriptions.append(
                f'Weak name match: "{subject.name}" vs "{entity.name}" '
                f"(similarity: {similarity:.2f})"
            )
        elif field == "alias":
            if "Alias match found" not in descriptions:
                descriptions.append("Alias match found")
        elif field == "date_of_birth":
            descriptions.append("Date of birth matches")
        elif field == "nationality":
            descriptions.append("Nationality matches")

    return "; ".join(descriptions) or "Weak similarity detected"


def compare(
    subject: ScreeningRequest,
    entity: WatchlistEntity,
    config: MatchingConfig = DEFAULT_MATCHING_CONFIG,
) -> ScreeningMatch:
    """Score a subject against one watchlist entity.

    Always returns a match; callers drop those with match_level NONE.
    The match id is derived from the request and entity ids, so repeated
    comparisons of the same pair produce identical matches.
    """
    entity_name = entity.name.lower()
    similarity = name_similarity(subject.name.lower(), entity_name)

    match_level, name_tag = _classify(similarity, config)
    confidence = similarity if match_level != MatchLevel.NONE else 0.0
    matched_fields: list[str] = [name_tag] if name_tag else []
    differences: list[str] = []

    # Aliases can only strengthen confidence; the level stays as classified
    for alias in subject.aliases:
        alias_similarity = name_similarity(alias.lower(), entity_name)
        if alias_similarity > confidence:
            confidence = alias_similarity
            if "alias" not in matched_fields:
                matched_fields.append("alias")

    if subject.date_of_birth and entity.date_of_birth:
        if subject.date_of_birth == entity.date_of_birth:
            confidence += config.date_of_birth_bonus
            matched_fields.append("date_of_birth")
        else:
            differences.append("date_of_birth")

    if subject.nationality and entity.nationality:
        if subject.nationality.lower() == entity.nationality.lower():
            confidence += config.nationality_bonus
            matched_fields.append("nationality")
        else:
            differences.append("nationality")

    confidence = max(0.0, min(confidence, 1.0))

    requires_review = match_level == MatchLevel.MEDIUM or (
        match_level == MatchLevel.HIGH
        and confidence < config.review_confidence_threshold
    )

    return ScreeningMatch(
        id=f"match_{subject.id}_{entity.id}",
        request_id=subject.id,
        entity_id=entity.id,
        entity_name=entity.name,
        list_type=entity.list_type,
        source_provider=entity.source_provider,
        match_level=match_level,
        confidence_score=confidence,
        matched_fields=matched_fields,
        differences=differences,
        explanation=_explain(matched_fields, subject, entity, similarity),
        requires_manual_review=requires_review,
    )
