"""
User-level stages: aggregation (stage 5, DuckDB) and derived ratios (stage 6, pandas).
"""

import logging
from typing import Optional

import duckdb
import numpy as np
import pandas as pd

from traveltide.config import SegmentationConfig
from traveltide.sql_loader import render_sql

logger = logging.getLogger(__name__)


# Ratio name -> (numerator, denominator) in user_profiles
RATIO_FEATURES = {
    'avg_page_clicks_per_session': ('total_page_clicks', 'total_sessions'),
    'avg_session_duration': ('total_session_minutes', 'total_sessions'),
    'booking_rate': ('total_bookings', 'total_sessions'),
    'avg_seats_per_flight': ('total_seats', 'flight_bookings'),
    'avg_bags_per_flight': ('total_bags', 'flight_bookings'),
    'weekday_travel_rate': ('weekday_trips', 'total_bookings'),
    'booking_success_rate': ('successful_bookings', 'total_bookings'),
    'discount_usage_rate': ('discount_bookings', 'total_bookings'),
    'avg_hotel_cost_per_trip': ('total_hotel_cost', 'total_bookings'),
    'avg_flight_cost_per_trip': ('total_flight_cost', 'total_bookings'),
}

# Profile columns carried unchanged into user_features
PASSTHROUGH_COLUMNS = [
    'user_id',
    'age',
    'has_children',
    'is_married',
    'total_nights',
    'total_sessions',
    'total_bookings',
    'flight_bookings',
]


def safe_divide(numerator: pd.Series, denominator: pd.Series) -> pd.Series:
    """
    Element-wise ratio that never fails.

    A zero or null denominator, or a null numerator, yields 0.
    """
    numerator = pd.to_numeric(numerator, errors='coerce').astype(float)
    denominator = pd.to_numeric(denominator, errors='coerce').astype(float)
    ratio = numerator / denominator.where(denominator != 0, np.nan)
    return ratio.fillna(0.0)


def aggregate_users(
    con: duckdb.DuckDBPyConnection,
    config: Optional[SegmentationConfig] = None
) -> pd.DataFrame:
    """
    Stage 5: collapse engineered sessions to one row per user.

    Requires the ``engineered_sessions`` table (see ``run_session_stages``).
    Sums over all-null inputs stay null; a user with no successful booking
    gets a null ``days_since_signup_to_last_booking``.

    Returns:
        DataFrame of user profiles, ordered by user_id
    """
    config = config or SegmentationConfig()
    con.execute(render_sql('user_profiles.sql', **config.sql_params()))
    profiles = con.execute("SELECT * FROM user_profiles ORDER BY user_id").fetchdf()

    if config.verbose:
        logger.info(f"  ✓ user_profiles: {len(profiles):,} rows")

    return profiles


def derive_user_features(
    profiles: pd.DataFrame,
    config: Optional[SegmentationConfig] = None
) -> pd.DataFrame:
    """
    Stage 6: per-user ratios and lifecycle flags.

    Features added:
    - Ratios in RATIO_FEATURES (division by zero -> 0)
    - is_working_age: age within ``config.working_age_range`` (inclusive)
    - is_new_customer: signup-to-last-booking gap <= ``config.new_customer_max_days``;
      users without a successful booking have no gap and are not new

    The frequent-flyer flag needs a population percentile and is added by
    ``apply_population_stats``.

    Args:
        profiles: Output of ``aggregate_users``
        config: Pipeline configuration

    Returns:
        New DataFrame, one row per user
    """
    config = config or SegmentationConfig()
    features = profiles[PASSTHROUGH_COLUMNS].copy()

    low, high = config.working_age_range
    features['is_working_age'] = profiles['age'].astype(float).between(low, high).astype(int)

    gap = pd.to_numeric(profiles['days_since_signup_to_last_booking'], errors='coerce').astype(float)
    features['is_new_customer'] = (gap <= config.new_customer_max_days).astype(int)

    for name, (numerator, denominator) in RATIO_FEATURES.items():
        features[name] = safe_divide(profiles[numerator], profiles[denominator])

    return features
