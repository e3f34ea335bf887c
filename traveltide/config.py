"""
Configuration for the customer segmentation pipeline.

Contains cohort filters, lifecycle thresholds, segment score weights and the
recommended action for each segment.
"""

from dataclasses import dataclass
from datetime import date
from typing import Dict, Tuple


# =============================================================================
# COHORT DEFINITION
# =============================================================================

# Only sessions starting on/after this date count towards activity
COHORT_START = '2023-01-05'

# Users need strictly more sessions than this to be segmented
MIN_SESSIONS = 7

# Age is measured in completed years as of this date
AGE_REFERENCE_DATE = '2023-06-01'


# =============================================================================
# SEGMENT SCORE WEIGHTS
# =============================================================================

SCORE_WEIGHTS: Dict[str, Dict[str, float]] = {
    'business': {
        'is_short_session_user': 0.15,
        'inv_bags_per_flight_norm': 0.2,
        'inv_seats_per_flight_norm': 0.2,
        'weekday_travel_rate': 0.45,
    },
    'family': {
        'seats_per_flight_norm': 0.25,
        'has_children': 0.45,
        'bags_per_flight_norm': 0.25,
        'is_married': 0.05,
    },
    'luxury': {
        'flight_cost_norm': 0.6,
        'hotel_cost_norm': 0.4,
    },
    'deal_hunter': {
        'is_long_session_user': 0.2,
        'is_high_engagement': 0.1,
        'discount_usage_rate': 0.7,
    },
    'young_explorer': {
        'is_young': 0.3,
        'is_short_stay_traveler': 0.3,
        'inv_hotel_cost_norm': 0.2,
        'inv_flight_cost_norm': 0.2,
    },
}


# =============================================================================
# RECOMMENDED ACTIONS
# =============================================================================

SEGMENT_ACTIONS: Dict[str, str] = {
    'Window Shopper': 'Wishlist feature with price alerts',
    'Frequent Flyer': 'Loyalty program',
    'Fresh Explorer': 'Welcome voucher',
    'Young Escaper': 'Last-minute deal offers',
    'Family': 'Extra baggage allowance',
    'Bargain Seeker': 'Personalized discount alerts',
    'Business Traveller': 'Priority boarding',
    'Leisure Explorer': 'Seasonal promotions',
}


# =============================================================================
# PIPELINE CONFIG
# =============================================================================

@dataclass
class SegmentationConfig:
    """
    Configuration for the segmentation pipeline.

    Field names describe what they control; defaults reproduce the
    reference segmentation (2023 cohort, >7 sessions).
    """
    # Cohort
    cohort_start: str = COHORT_START
    min_sessions: int = MIN_SESSIONS

    # Demographics / lifecycle
    age_reference_date: str = AGE_REFERENCE_DATE
    working_age_range: Tuple[int, int] = (20, 67)
    young_age_limit: int = 30
    new_customer_max_days: int = 28
    weekday_trip_max_days: int = 5

    # Population percentile cutoffs (top/bottom decile)
    upper_percentile: float = 0.9
    lower_percentile: float = 0.1

    # Assignment thresholds
    young_explorer_threshold: float = 0.5
    business_threshold: float = 0.4

    # Logging
    verbose: bool = False

    def __post_init__(self):
        for name in ('cohort_start', 'age_reference_date'):
            value = getattr(self, name)
            if isinstance(value, date):
                value = value.isoformat()
                setattr(self, name, value)
            try:
                date.fromisoformat(value)
            except (TypeError, ValueError):
                raise ValueError(f"{name} must be an ISO date (YYYY-MM-DD), got {value!r}")

        if self.min_sessions < 0:
            raise ValueError(f"min_sessions must be >= 0, got {self.min_sessions}")

        for name in ('upper_percentile', 'lower_percentile'):
            value = getattr(self, name)
            if not 0 < value < 1:
                raise ValueError(f"{name} must be between 0 and 1, got {value}")

        low, high = self.working_age_range
        if low > high:
            raise ValueError(f"working_age_range is inverted: {self.working_age_range}")

    def sql_params(self) -> Dict[str, object]:
        """Values substituted into the stage SQL templates."""
        return {
            'cohort_start': self.cohort_start,
            'min_sessions': int(self.min_sessions),
            'age_reference_date': self.age_reference_date,
            'weekday_trip_max_days': int(self.weekday_trip_max_days),
        }
