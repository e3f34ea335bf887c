"""
Segment assignment (stage 9).

Rules are evaluated top to bottom and the first match wins:

| # | Condition | Segment |
|---|-----------|---------|
| 1 | is_non_booker | Window Shopper |
| 2 | is_frequent_flyer | Frequent Flyer |
| 3 | is_new_customer | Fresh Explorer |
| 4 | young_explorer_score > 0.5 | Young Escaper |
| 5 | family_score >= max(deal_hunter_score, business_score) | Family |
| 6 | deal_hunter_score >= business_score | Bargain Seeker |
| 7 | business_score >= 0.4 | Business Traveller |
| - | otherwise | Leisure Explorer |

Order matters: reordering the tuple changes the output.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Sequence

import numpy as np
import pandas as pd

from traveltide.config import SegmentationConfig
from traveltide.segments.scoring import SCORE_COLUMNS


class Segment(Enum):
    """Marketing persona assigned to a user."""
    WINDOW_SHOPPER = "Window Shopper"
    FREQUENT_FLYER = "Frequent Flyer"
    FRESH_EXPLORER = "Fresh Explorer"
    YOUNG_ESCAPER = "Young Escaper"
    FAMILY = "Family"
    BARGAIN_SEEKER = "Bargain Seeker"
    BUSINESS_TRAVELLER = "Business Traveller"
    LEISURE_EXPLORER = "Leisure Explorer"


@dataclass(frozen=True)
class SegmentRule:
    """A predicate over the scored frame and the segment it selects."""
    segment: Segment
    predicate: Callable[[pd.DataFrame, SegmentationConfig], pd.Series]
    description: str = ""


SEGMENT_RULES = (
    SegmentRule(
        Segment.WINDOW_SHOPPER,
        lambda df, cfg: df['is_non_booker'] == 1,
        "never booked a trip",
    ),
    SegmentRule(
        Segment.FREQUENT_FLYER,
        lambda df, cfg: df['is_frequent_flyer'] == 1,
        "flight bookings above the population p90",
    ),
    SegmentRule(
        Segment.FRESH_EXPLORER,
        lambda df, cfg: df['is_new_customer'] == 1,
        "booked shortly after signing up",
    ),
    SegmentRule(
        Segment.YOUNG_ESCAPER,
        lambda df, cfg: df['young_explorer_score'] > cfg.young_explorer_threshold,
        "young, short stays, low spend",
    ),
    SegmentRule(
        Segment.FAMILY,
        lambda df, cfg: df['family_score'] >= np.maximum(df['deal_hunter_score'], df['business_score']),
        "family score dominates deal hunter and business",
    ),
    SegmentRule(
        Segment.BARGAIN_SEEKER,
        lambda df, cfg: df['deal_hunter_score'] >= df['business_score'],
        "deal hunter score dominates business",
    ),
    SegmentRule(
        Segment.BUSINESS_TRAVELLER,
        lambda df, cfg: df['business_score'] >= cfg.business_threshold,
        "weekday trips, light luggage",
    ),
)

FALLBACK_SEGMENT = Segment.LEISURE_EXPLORER


def assign_segments(
    scores: pd.DataFrame,
    config: Optional[SegmentationConfig] = None,
    rules: Sequence[SegmentRule] = SEGMENT_RULES,
) -> pd.DataFrame:
    """
    Pick exactly one segment per user: the first rule that matches.

    Args:
        scores: Output of ``score_segments``
        config: Pipeline configuration (assignment thresholds)
        rules: Ordered rules; defaults to SEGMENT_RULES

    Returns:
        DataFrame with user_id, segment and the five scores
    """
    config = config or SegmentationConfig()

    conditions = [
        rule.predicate(scores, config).fillna(False).to_numpy(dtype=bool)
        for rule in rules
    ]
    labels = [rule.segment.value for rule in rules]

    # np.select takes the first true condition per row
    assigned = np.select(conditions, labels, default=FALLBACK_SEGMENT.value)

    user_segments = scores[['user_id']].copy()
    user_segments['segment'] = pd.Series(assigned, index=scores.index, dtype=object)
    for column in SCORE_COLUMNS:
        user_segments[column] = scores[column]

    return user_segments
