"""
Population statistics and normalization (stage 7).

Every threshold here is relative to the whole active population, so the
stage runs in two passes:

1. ``compute_population_stats``: percentile cutoffs and min/max ranges
   over all users, frozen into a ``PopulationStats`` record
2. ``apply_population_stats``: per-user flags and normalized ratios

Percentile semantics follow SQL:
- frequent flyer uses a discrete percentile (PERCENTILE_DISC, no interpolation)
- engagement, session length and stay length use a continuous one
  (PERCENTILE_CONT, linear interpolation)
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

import numpy as np
import pandas as pd
from sklearn.preprocessing import MinMaxScaler

from traveltide.config import SegmentationConfig

logger = logging.getLogger(__name__)


# Ratio -> normalized column
NORMALIZED_FEATURES = {
    'avg_bags_per_flight': 'bags_per_flight_norm',
    'avg_seats_per_flight': 'seats_per_flight_norm',
    'avg_flight_cost_per_trip': 'flight_cost_norm',
    'avg_hotel_cost_per_trip': 'hotel_cost_norm',
}


def percentile_disc(values: pd.Series, q: float) -> float:
    """
    Discrete percentile: the smallest observed value whose cumulative
    share is >= q. Nulls are ignored; an all-null input returns NaN.
    """
    values = pd.to_numeric(pd.Series(values), errors='coerce').astype(float).dropna()
    if values.empty:
        return np.nan
    return float(np.quantile(values.to_numpy(), q, method='inverted_cdf'))


def percentile_cont(values: pd.Series, q: float) -> float:
    """
    Continuous percentile with linear interpolation between neighbours.
    Nulls are ignored; an all-null input returns NaN.
    """
    values = pd.to_numeric(pd.Series(values), errors='coerce').astype(float).dropna()
    if values.empty:
        return np.nan
    return float(np.quantile(values.to_numpy(), q, method='linear'))


@dataclass(frozen=True)
class PopulationStats:
    """
    Global statistics of the active population.

    Computed once, then applied identically to every user.
    """
    n_users: int

    # Discrete percentile of flight bookings
    frequent_flyer_threshold: float

    # Continuous percentiles
    high_engagement_threshold: float
    long_session_threshold: float
    short_session_threshold: float
    long_stay_threshold: float
    short_stay_threshold: float

    # Fitted on NORMALIZED_FEATURES; None for an empty population
    scaler: Optional[MinMaxScaler] = field(default=None, repr=False, compare=False)

    @property
    def feature_min(self) -> Dict[str, float]:
        if self.scaler is None:
            return {}
        return dict(zip(NORMALIZED_FEATURES, self.scaler.data_min_.tolist()))

    @property
    def feature_max(self) -> Dict[str, float]:
        if self.scaler is None:
            return {}
        return dict(zip(NORMALIZED_FEATURES, self.scaler.data_max_.tolist()))

    def to_dict(self) -> dict:
        """Convert to dictionary for logging/serialization."""
        return {
            'n_users': self.n_users,
            'frequent_flyer_threshold': self.frequent_flyer_threshold,
            'high_engagement_threshold': self.high_engagement_threshold,
            'long_session_threshold': self.long_session_threshold,
            'short_session_threshold': self.short_session_threshold,
            'long_stay_threshold': self.long_stay_threshold,
            'short_stay_threshold': self.short_stay_threshold,
            'feature_min': self.feature_min,
            'feature_max': self.feature_max,
        }


def compute_population_stats(
    features: pd.DataFrame,
    config: Optional[SegmentationConfig] = None
) -> PopulationStats:
    """
    First pass: compute every population-wide threshold and range.

    Args:
        features: Output of ``derive_user_features`` (all active users)
        config: Pipeline configuration (percentile levels)

    Returns:
        Immutable PopulationStats
    """
    config = config or SegmentationConfig()
    upper, lower = config.upper_percentile, config.lower_percentile

    scaler = None
    if len(features) > 0:
        scaler = MinMaxScaler()
        scaler.fit(features[list(NORMALIZED_FEATURES)].astype(float))

    stats = PopulationStats(
        n_users=len(features),
        frequent_flyer_threshold=percentile_disc(features['flight_bookings'], upper),
        high_engagement_threshold=percentile_cont(features['avg_page_clicks_per_session'], upper),
        long_session_threshold=percentile_cont(features['avg_session_duration'], upper),
        short_session_threshold=percentile_cont(features['avg_session_duration'], lower),
        long_stay_threshold=percentile_cont(features['total_nights'], upper),
        short_stay_threshold=percentile_cont(features['total_nights'], lower),
        scaler=scaler,
    )

    if config.verbose:
        logger.info(f"  ✓ population stats over {stats.n_users:,} users: {stats.to_dict()}")

    return stats


def _above(values: pd.Series, threshold: float) -> pd.Series:
    """1 where value > threshold; null value or threshold gives 0."""
    return (values.astype(float) > threshold).astype(int)


def _below(values: pd.Series, threshold: float) -> pd.Series:
    """1 where value < threshold; null value or threshold gives 0."""
    return (values.astype(float) < threshold).astype(int)


def apply_population_stats(
    features: pd.DataFrame,
    stats: PopulationStats,
    config: Optional[SegmentationConfig] = None
) -> pd.DataFrame:
    """
    Second pass: per-user flags and normalized ratios.

    Columns added:
    - is_frequent_flyer: flight_bookings > discrete p90
    - is_non_booker: booking_rate == 0
    - bags_per_flight_norm, seats_per_flight_norm, flight_cost_norm,
      hotel_cost_norm: min-max scaled to [0, 1]; null when the population
      min equals the max
    - is_high_engagement, is_long_session_user, is_short_session_user,
      is_long_stay_traveler, is_short_stay_traveler

    Returns:
        New DataFrame (``features`` is not modified)
    """
    normalized = features.copy()

    normalized['is_frequent_flyer'] = _above(features['flight_bookings'], stats.frequent_flyer_threshold)
    normalized['is_non_booker'] = (features['booking_rate'] == 0).astype(int)

    columns = list(NORMALIZED_FEATURES)
    if stats.scaler is not None and len(features) > 0:
        # Exact (x - min) / (max - min) from the fitted range; zero range stays NaN
        values = features[columns].to_numpy(dtype=float)
        data_range = np.where(stats.scaler.data_range_ == 0, np.nan, stats.scaler.data_range_)
        scaled = np.clip((values - stats.scaler.data_min_) / data_range, 0.0, 1.0)
    else:
        scaled = np.full((len(features), len(columns)), np.nan)

    for i, source in enumerate(columns):
        normalized[NORMALIZED_FEATURES[source]] = scaled[:, i]

    normalized['is_high_engagement'] = _above(features['avg_page_clicks_per_session'], stats.high_engagement_threshold)
    normalized['is_long_session_user'] = _above(features['avg_session_duration'], stats.long_session_threshold)
    normalized['is_short_session_user'] = _below(features['avg_session_duration'], stats.short_session_threshold)
    normalized['is_long_stay_traveler'] = _above(features['total_nights'], stats.long_stay_threshold)
    normalized['is_short_stay_traveler'] = _below(features['total_nights'], stats.short_stay_threshold)

    return normalized
