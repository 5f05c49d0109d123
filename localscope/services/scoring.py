# localscope/services/scoring.py
import math

from localscope.schemas.domain import Score

NO_COMPETITOR_CAP = 100_000


def round_half_up(x: float) -> int:
    """Away-from-banker's rounding: 0.5 -> 1, 2.5 -> 3."""
    return int(math.floor(x + 0.5))


def score(population: int, median_income: int, competitor_count: int) -> Score:
    """
    Residents-per-competitor score, boosted up to 60% by income.

    - competitors and residents: "1 per N residents",
      value = N * (1 + min(income / 100k, 2) * 0.3)
    - residents but no competitors: value = min(population * 10, 100000)
    - otherwise "N/A", 0
    """
    if competitor_count > 0 and population > 0:
        ratio = round_half_up(population / competitor_count)
        income_factor = min(max(median_income, 0) / 100_000, 2)
        value = round_half_up(ratio * (1 + income_factor * 0.3))
        return Score(label=f"1 per {ratio:,} residents", value=value)

    if competitor_count == 0 and population > 0:
        return Score(
            label="No competitors found",
            value=min(population * 10, NO_COMPETITOR_CAP),
        )

    return Score(label="N/A", value=0)
