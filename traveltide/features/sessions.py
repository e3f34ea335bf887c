"""
Session-level stages of the segmentation pipeline (run in DuckDB).

Stages:
1. cohort_sessions: sessions starting on/after the cohort start date
2. active_users: users with more than ``min_sessions`` cohort sessions
3. engineered_sessions: per-session features (nights, trip cancellation,
   duration, weekday trips, age, distance, costs, combined bookings)
4. hotel cost, derived from the cleaned nights of stage 3

Each stage is materialised as a temp table and never modified afterwards.
"""

import logging
from typing import Dict, Optional

import duckdb

from traveltide.config import SegmentationConfig
from traveltide.sql_loader import render_sql
from traveltide.features.geo import register_haversine

logger = logging.getLogger(__name__)


def _run_stage(
    con: duckdb.DuckDBPyConnection,
    table: str,
    sql_filename: str,
    config: SegmentationConfig
) -> int:
    """Execute one stage query and return the row count of its output table."""
    con.execute(render_sql(sql_filename, **config.sql_params()))
    rows = con.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
    if config.verbose:
        logger.info(f"  ✓ {table}: {rows:,} rows")
    return rows


def build_cohort_sessions(con: duckdb.DuckDBPyConnection, config: Optional[SegmentationConfig] = None) -> int:
    """Stage 1. Returns the number of cohort sessions."""
    return _run_stage(con, 'cohort_sessions', 'cohort_sessions.sql', config or SegmentationConfig())


def build_active_users(con: duckdb.DuckDBPyConnection, config: Optional[SegmentationConfig] = None) -> int:
    """Stage 2 (requires stage 1). Returns the number of active users."""
    return _run_stage(con, 'active_users', 'active_users.sql', config or SegmentationConfig())


def build_engineered_sessions(con: duckdb.DuckDBPyConnection, config: Optional[SegmentationConfig] = None) -> int:
    """
    Stages 3-4 (require stage 2). Returns the number of engineered sessions.

    Sessions are left-joined to users, flights and hotels, so a session
    without a trip (or a trip without a flight/hotel leg) is kept with nulls.
    """
    register_haversine(con)
    return _run_stage(con, 'engineered_sessions', 'engineered_sessions.sql', config or SegmentationConfig())


def run_session_stages(
    con: duckdb.DuckDBPyConnection,
    config: Optional[SegmentationConfig] = None
) -> Dict[str, int]:
    """
    Run stages 1-4 in order.

    Returns:
        Row count per stage table
    """
    config = config or SegmentationConfig()
    return {
        'cohort_sessions': build_cohort_sessions(con, config),
        'active_users': build_active_users(con, config),
        'engineered_sessions': build_engineered_sessions(con, config),
    }
