"""Segment scoring, assignment and summary."""
from .scoring import SCORE_COLUMNS, build_score_terms, score_segments
from .rules import FALLBACK_SEGMENT, SEGMENT_RULES, Segment, SegmentRule, assign_segments
from .summary import (
    SUMMARY_COLUMNS,
    SUMMARY_METRICS,
    UnknownSegmentError,
    summarize_segments,
    write_summary,
)
