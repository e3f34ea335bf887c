"""
Segment-level summary (stage 10) and output table.
"""

from typing import Iterable

import duckdb
import pandas as pd

from traveltide.config import SEGMENT_ACTIONS

# Output column -> user_features column averaged per segment
SUMMARY_METRICS = {
    'avg_flight_cost': 'avg_flight_cost_per_trip',
    'avg_hotel_cost': 'avg_hotel_cost_per_trip',
    'avg_discount_rate': 'discount_usage_rate',
    'avg_success_rate': 'booking_success_rate',
    'avg_weekday_rate': 'weekday_travel_rate',
    'avg_booking_rate': 'booking_rate',
}

SUMMARY_COLUMNS = ['segment', 'user_count', *SUMMARY_METRICS, 'recommended_action']


class UnknownSegmentError(ValueError):
    """An assigned label has no recommended action (a rule defect, not bad data)."""

    def __init__(self, labels: Iterable[str]):
        self.labels = sorted(labels)
        super().__init__(f"Segments without a recommended action: {', '.join(self.labels)}")


def summarize_segments(user_segments: pd.DataFrame, user_features: pd.DataFrame) -> pd.DataFrame:
    """
    One row per assigned segment with unweighted metric means and the action.

    Rows are ordered by user_count descending, then segment name.

    Args:
        user_segments: Output of ``assign_segments``
        user_features: Output of ``derive_user_features`` (or a superset)

    Returns:
        DataFrame with SUMMARY_COLUMNS

    Raises:
        UnknownSegmentError: if a label is not in SEGMENT_ACTIONS
    """
    unknown = set(user_segments['segment'].dropna()) - set(SEGMENT_ACTIONS)
    if unknown or user_segments['segment'].isna().any():
        raise UnknownSegmentError(unknown or {'<null>'})

    merged = user_segments[['user_id', 'segment']].merge(
        user_features[['user_id', *SUMMARY_METRICS.values()]],
        on='user_id',
        how='inner',
        validate='one_to_one',
    )

    summary = merged.groupby('segment', sort=True).agg(
        user_count=('user_id', 'size'),
        **{output: (source, 'mean') for output, source in SUMMARY_METRICS.items()}
    ).reset_index()

    summary['user_count'] = summary['user_count'].astype('int64')
    summary['recommended_action'] = summary['segment'].map(SEGMENT_ACTIONS)

    summary = summary.sort_values(
        ['user_count', 'segment'], ascending=[False, True], kind='mergesort'
    ).reset_index(drop=True)

    return summary[SUMMARY_COLUMNS]


def write_summary(
    con: duckdb.DuckDBPyConnection,
    summary: pd.DataFrame,
    table_name: str = 'segment_summary'
) -> None:
    """Materialise the summary as a DuckDB table, ordered like the frame."""
    con.register('df_segment_summary', summary)
    try:
        con.execute(f"""
            CREATE OR REPLACE TABLE {table_name} AS
            SELECT * FROM df_segment_summary
            ORDER BY user_count DESC, segment
        """)
    finally:
        con.unregister('df_segment_summary')
