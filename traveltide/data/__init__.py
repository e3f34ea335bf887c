"""Data loading and quality checks."""
from .loader import SCHEMA, MissingColumnsError, init_db, load_tables, validate_columns
from .quality import QualityCheck, check_data_quality
