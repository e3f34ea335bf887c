"""
Weighted segment scores (stage 8).

Each score is a fixed linear combination of normalized ratios and flags,
weighted by ``SCORE_WEIGHTS``. Null normalized inputs count as 0.
"""

from typing import Optional

import pandas as pd

from traveltide.config import SCORE_WEIGHTS, SegmentationConfig

SCORE_COLUMNS = [f"{name}_score" for name in SCORE_WEIGHTS]


def build_score_terms(normalized: pd.DataFrame, config: Optional[SegmentationConfig] = None) -> pd.DataFrame:
    """
    Inputs referenced by SCORE_WEIGHTS, one column per term.

    ``inv_*`` terms are ``1 - coalesce(norm, 0)``.
    """
    config = config or SegmentationConfig()
    terms = pd.DataFrame(index=normalized.index)

    for norm in ('bags_per_flight_norm', 'seats_per_flight_norm', 'flight_cost_norm', 'hotel_cost_norm'):
        value = normalized[norm].astype(float).fillna(0.0)
        terms[norm] = value
        terms[f'inv_{norm}'] = 1 - value

    for flag in (
        'is_short_session_user',
        'is_long_session_user',
        'is_high_engagement',
        'is_short_stay_traveler',
        'has_children',
        'is_married',
    ):
        terms[flag] = normalized[flag].astype(float).fillna(0.0)

    terms['weekday_travel_rate'] = normalized['weekday_travel_rate'].astype(float)
    terms['discount_usage_rate'] = normalized['discount_usage_rate'].astype(float)
    terms['is_young'] = (normalized['age'].astype(float) < config.young_age_limit).astype(float)

    return terms


def score_segments(normalized: pd.DataFrame, config: Optional[SegmentationConfig] = None) -> pd.DataFrame:
    """
    Add business, family, luxury, deal_hunter and young_explorer scores.

    Terms are summed in SCORE_WEIGHTS order.

    Returns:
        New DataFrame with ``<name>_score`` columns added
    """
    terms = build_score_terms(normalized, config)
    scores = normalized.copy()

    for name, weights in SCORE_WEIGHTS.items():
        total = pd.Series(0.0, index=normalized.index)
        for term, weight in weights.items():
            total = total + terms[term] * weight
        scores[f'{name}_score'] = total

    return scores
