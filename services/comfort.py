"""Comfort scoring for temperature, humidity and CO2 readings."""

from __future__ import annotations

from dataclasses import dataclass

OPTIMAL_TEMPERATURE_MIN = 20.0
OPTIMAL_TEMPERATURE_MAX = 24.0
OPTIMAL_HUMIDITY_MIN = 30.0
OPTIMAL_HUMIDITY_MAX = 60.0
OPTIMAL_CO2_MAX = 1000.0

TEMPERATURE_PENALTY_PER_DEGREE = 12.0
HUMIDITY_PENALTY_PER_PERCENT = 2.5
CO2_PENALTY_PER_PPM = 0.15

TEMPERATURE_WEIGHT = 0.4
HUMIDITY_WEIGHT = 0.3
CO2_WEIGHT = 0.3

MAX_SCORE = 100.0


@dataclass(frozen=True)
class ComfortBreakdown:
    """Per-factor sub-scores together with the weighted composite."""

    temperature_score: float
    humidity_score: float
    co2_score: float
    composite: float


def _band_score(value: float, lower: float | None, upper: float, rate: float) -> float:
    if lower is not None and value < lower:
        deviation = lower - value
    elif value > upper:
        deviation = value - upper
    else:
        return MAX_SCORE
    return max(0.0, MAX_SCORE - deviation * rate)


class ComfortScorer:
    """Pure scoring component that can be unit tested in isolation."""

    def temperature_score(self, temperature: float) -> float:
        return _band_score(
            temperature,
            OPTIMAL_TEMPERATURE_MIN,
            OPTIMAL_TEMPERATURE_MAX,
            TEMPERATURE_PENALTY_PER_DEGREE,
        )

    def humidity_score(self, humidity: float) -> float:
        return _band_score(
            humidity,
            OPTIMAL_HUMIDITY_MIN,
            OPTIMAL_HUMIDITY_MAX,
            HUMIDITY_PENALTY_PER_PERCENT,
        )

    def co2_score(self, co2: float) -> float:
        # No lower bound: fresh air is never penalised.
        return _band_score(co2, None, OPTIMAL_CO2_MAX, CO2_PENALTY_PER_PPM)

    def breakdown(self, temperature: float, humidity: float, co2: float) -> ComfortBreakdown:
        temperature_score = self.temperature_score(temperature)
        humidity_score = self.humidity_score(humidity)
        co2_score = self.co2_score(co2)
        weighted = (
            temperature_score * TEMPERATURE_WEIGHT
            + humidity_score * HUMIDITY_WEIGHT
            + co2_score * CO2_WEIGHT
        )
        composite = min(MAX_SCORE, max(0.0, weighted))
        return ComfortBreakdown(
            temperature_score=temperature_score,
            humidity_score=humidity_score,
            co2_score=co2_score,
            composite=composite,
        )

    def score(self, temperature: float, humidity: float, co2: float) -> float:
        """Return the weighted 0-100 comfort score for one reading."""
        return self.breakdown(temperature, humidity, co2).composite
