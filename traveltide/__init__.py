"""
TravelTide customer segmentation.

Modules:
- data: Source table loading and quality checks
- features: Session/user feature engineering and population normalization
- segments: Persona scoring, rule-based assignment and summary
- pipeline: End-to-end orchestration
"""
from .config import SEGMENT_ACTIONS, SegmentationConfig
from .pipeline import SegmentationPipeline, SegmentationResult, run_segmentation

__all__ = [
    'SEGMENT_ACTIONS',
    'SegmentationConfig',
    'SegmentationPipeline',
    'SegmentationResult',
    'run_segmentation',
]
