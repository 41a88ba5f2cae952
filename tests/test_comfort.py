"""Unit tests for the comfort scoring logic."""

from __future__ import annotations

import pytest

from services.comfort import ComfortScorer


@pytest.fixture()
def scorer() -> ComfortScorer:
    return ComfortScorer()


def test_optimal_conditions_score_full_marks(scorer: ComfortScorer) -> None:
    assert scorer.score(22.0, 45.0, 500.0) == pytest.approx(100.0, abs=0.1)


@pytest.mark.parametrize(
    "temperature, humidity, co2",
    [(20.0, 30.0, 0.0), (24.0, 60.0, 1000.0), (21.5, 55.0, 999.9)],
)
def test_band_edges_are_optimal(
    scorer: ComfortScorer, temperature: float, humidity: float, co2: float
) -> None:
    assert scorer.score(temperature, humidity, co2) == pytest.approx(100.0, abs=0.1)


def test_high_temperature_lowers_score(scorer: ComfortScorer) -> None:
    # 4°C above the band: 100 - 48 = 52 on the temperature sub-score.
    assert scorer.score(28.0, 45.0, 500.0) < 100.0
    assert scorer.temperature_score(28.0) == pytest.approx(52.0)


def test_high_co2_lowers_score_below_eighty(scorer: ComfortScorer) -> None:
    assert scorer.score(22.0, 45.0, 1600.0) < 80.0


def test_all_poor_conditions_score_very_low(scorer: ComfortScorer) -> None:
    assert scorer.score(30.0, 80.0, 2000.0) < 30.0


def test_breakdown_weights_sub_scores(scorer: ComfortScorer) -> None:
    breakdown = scorer.breakdown(18.0, 25.0, 1200.0)

    assert breakdown.temperature_score == pytest.approx(76.0)
    assert breakdown.humidity_score == pytest.approx(87.5)
    assert breakdown.co2_score == pytest.approx(70.0)
    assert breakdown.composite == pytest.approx(0.4 * 76.0 + 0.3 * 87.5 + 0.3 * 70.0)


def test_sub_scores_floor_at_zero(scorer: ComfortScorer) -> None:
    assert scorer.temperature_score(-40.0) == 0.0
    assert scorer.humidity_score(100.0) == 0.0
    assert scorer.co2_score(5000.0) == 0.0
    assert scorer.score(-40.0, 100.0, 5000.0) == 0.0


def test_low_co2_is_never_penalised(scorer: ComfortScorer) -> None:
    assert scorer.co2_score(0.0) == 100.0


@pytest.mark.parametrize("axis", ["temperature", "humidity", "co2"])
def test_score_is_non_increasing_away_from_band(scorer: ComfortScorer, axis: str) -> None:
    baseline = {"temperature": 22.0, "humidity": 45.0, "co2": 600.0}
    start = {"temperature": 24.0, "humidity": 60.0, "co2": 1000.0}[axis]
    step = {"temperature": 0.5, "humidity": 2.0, "co2": 50.0}[axis]

    previous = None
    for index in range(40):
        inputs = dict(baseline, **{axis: start + index * step})
        current = scorer.score(**inputs)
        assert 0.0 <= current <= 100.0
        if previous is not None:
            assert current <= previous
        previous = current


def test_score_is_deterministic(scorer: ComfortScorer) -> None:
    first = scorer.score(25.3, 61.7, 1234.5)
    second = ComfortScorer().score(25.3, 61.7, 1234.5)

    assert first == second
