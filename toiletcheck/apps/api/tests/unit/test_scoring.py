"""Inspection scoring for reports and the admin dashboard."""

import pytest

from toiletcheck_api.utils.scoring import (
    average_response_score,
    calculate_score,
    response_score,
    score_band,
)


def test_explicit_score_wins():
    assert calculate_score({"score": 72.6, "floor": "poor"}) == 73


def test_weighted_ratings():
    responses = {
        "ratings": [
            {"score": 100, "weight": 3},
            {"score": 50, "weight": 1},
            {"label": "ignored"},
        ]
    }
    assert calculate_score(responses) == 88


def test_ratings_default_weight_is_one():
    assert calculate_score({"ratings": [{"score": 80}, {"score": 60}]}) == 70


def test_positive_share_of_answers():
    responses = {"floor": "Good", "sink": "bersih", "mirror": "dirty", "soap": True, "note": 3}
    # 4 considered (number ignored), 3 positive
    assert calculate_score(responses) == 75


@pytest.mark.parametrize("responses", [None, {}, [], "good"])
def test_empty_or_non_dict_scores_zero(responses):
    assert calculate_score(responses) == 0


def test_dashboard_score_counts_every_value():
    # "ada" is positive on the dashboard; numbers count in the denominator
    responses = {"soap": "ada", "floor": "good", "count": 2, "extra": {"nested": True}}
    assert response_score(responses) == 50


def test_average_response_score():
    assert average_response_score([{"a": "good"}, {"a": "bad"}]) == 50
    assert average_response_score([]) == 0


@pytest.mark.parametrize(
    "score,band",
    [(100, "excellent"), (85, "excellent"), (84, "good"), (70, "good"), (69, "fair"), (50, "fair"), (49, "poor")],
)
def test_score_band(score, band):
    assert score_band(score) == band
