"""
End-to-end customer segmentation pipeline.

Logic:
1. Filter sessions to the cohort and keep active users (>7 sessions)
2. Engineer per-session features and aggregate them per user
3. Derive per-user ratios and lifecycle flags
4. Compute population statistics, then normalize and flag every user
5. Score five personas and assign one segment per user (first rule wins)
6. Summarize segments and attach a recommended action

Usage:
    con = init_db('data/')
    result = SegmentationPipeline(SegmentationConfig(verbose=True)).run(con)
    result.segment_summary
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

import duckdb
import pandas as pd

from traveltide.config import SegmentationConfig
from traveltide.data.loader import SCHEMA, validate_columns
from traveltide.features.normalization import (
    PopulationStats,
    apply_population_stats,
    compute_population_stats,
)
from traveltide.features.sessions import run_session_stages
from traveltide.features.users import aggregate_users, derive_user_features
from traveltide.segments.rules import assign_segments
from traveltide.segments.scoring import score_segments
from traveltide.segments.summary import summarize_segments, write_summary

logger = logging.getLogger(__name__)


@dataclass
class SegmentationResult:
    """
    Outputs of every pipeline stage.

    ``segment_summary`` is the pipeline's result; the other frames are kept
    for inspection and per-user exports.
    """
    user_profiles: pd.DataFrame
    user_features: pd.DataFrame
    normalized_features: pd.DataFrame
    user_segments: pd.DataFrame
    segment_summary: pd.DataFrame
    population_stats: PopulationStats
    stage_counts: Dict[str, int] = field(default_factory=dict)

    @property
    def n_users(self) -> int:
        return len(self.user_segments)


class SegmentationPipeline:
    """
    Runs all stages against a connection holding users, sessions, flights and hotels.

    Usage:
        pipeline = SegmentationPipeline(SegmentationConfig(cohort_start='2023-01-05'))
        result = pipeline.run(load_tables(users=..., sessions=..., flights=..., hotels=...))
    """

    def __init__(self, config: Optional[SegmentationConfig] = None):
        self.config = config or SegmentationConfig()

    def run(self, con: duckdb.DuckDBPyConnection, output_table: Optional[str] = 'segment_summary') -> SegmentationResult:
        """
        Execute the pipeline.

        Args:
            con: DuckDB connection with the four source tables
            output_table: Name of the DuckDB table the summary is written to;
                None skips writing

        Returns:
            SegmentationResult

        Raises:
            MissingColumnsError: if a source table is absent or incomplete
            UnknownSegmentError: if a segment has no recommended action
        """
        config = self.config
        if config.verbose:
            logger.info("Running customer segmentation...")

        for table in SCHEMA:
            validate_columns(con, table)

        stage_counts = run_session_stages(con, config)

        profiles = aggregate_users(con, config)
        stage_counts['user_profiles'] = len(profiles)

        features = derive_user_features(profiles, config)
        stats = compute_population_stats(features, config)
        normalized = apply_population_stats(features, stats, config)

        scores = score_segments(normalized, config)
        user_segments = assign_segments(scores, config)
        summary = summarize_segments(user_segments, features)

        if output_table:
            write_summary(con, summary, output_table)

        if config.verbose:
            for _, row in summary.iterrows():
                logger.info(f"  • {row['segment']}: {row['user_count']:,} users -> {row['recommended_action']}")

        return SegmentationResult(
            user_profiles=profiles,
            user_features=features,
            normalized_features=normalized,
            user_segments=user_segments,
            segment_summary=summary,
            population_stats=stats,
            stage_counts=stage_counts,
        )


def run_segmentation(
    con: duckdb.DuckDBPyConnection,
    config: Optional[SegmentationConfig] = None
) -> pd.DataFrame:
    """Run the pipeline and return only the segment summary."""
    return SegmentationPipeline(config).run(con).segment_summary
