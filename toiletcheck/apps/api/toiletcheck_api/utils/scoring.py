"""Inspection scoring.

Two scorers exist because reports and the admin dashboard historically
accept slightly different vocabularies:

- calculate_score(): report score. Explicit `score`, then weighted `ratings`,
  then the share of positive answers.
- response_score(): dashboard score. Share of positive answers only, with
  "ada" (present) also counted as positive.
"""

from typing import Any, Iterable

REPORT_GOOD_VALUES = frozenset({"good", "excellent", "baik", "bersih"})
STATS_GOOD_VALUES = REPORT_GOOD_VALUES | {"ada"}


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _positive_share(values: Iterable[Any], good_values: frozenset[str]) -> float:
    considered = 0
    good = 0
    for value in values:
        if isinstance(value, bool):
            considered += 1
            good += value
        elif isinstance(value, str):
            considered += 1
            if value.strip().lower() in good_values:
                good += 1
    if considered == 0:
        return 0.0
    return good / considered * 100


def calculate_score(responses: Any) -> int:
    """Score one inspection's responses on a 0-100 scale."""
    if not isinstance(responses, dict) or not responses:
        return 0

    explicit = responses.get("score")
    if _is_number(explicit):
        return round(explicit)

    ratings = responses.get("ratings")
    if isinstance(ratings, list) and ratings:
        total = 0.0
        total_weight = 0.0
        for rating in ratings:
            if not isinstance(rating, dict) or not _is_number(rating.get("score")):
                continue
            weight = rating.get("weight", 1)
            weight = weight if _is_number(weight) else 1
            total += rating["score"] * weight
            total_weight += weight
        if total_weight > 0:
            return round(total / total_weight)

    return round(_positive_share(responses.values(), REPORT_GOOD_VALUES))


def response_score(responses: Any) -> int:
    """Dashboard score: share of values that are positive answers (0-100).

    Every value counts toward the denominator, including numbers and nested
    objects, which never count as positive.
    """
    if not isinstance(responses, dict) or not responses:
        return 0
    values = list(responses.values())
    good = sum(
        1
        for value in values
        if value is True
        or (isinstance(value, str) and value.strip().lower() in STATS_GOOD_VALUES)
    )
    return round(good / len(values) * 100)


def average_response_score(all_responses: Iterable[Any]) -> int:
    """Rounded mean of response_score() over a batch; 0 for an empty batch."""
    scores = [response_score(responses) for responses in all_responses]
    if not scores:
        return 0
    return round(sum(scores) / len(scores))


def score_band(score: float) -> str:
    """Bucket a score: excellent >= 85, good >= 70, fair >= 50, else poor."""
    if score >= 85:
        return "excellent"
    if score >= 70:
        return "good"
    if score >= 50:
        return "fair"
    return "poor"
