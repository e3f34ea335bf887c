"""
Data loading utilities for the segmentation pipeline.

Loads the four TravelTide source tables (users, sessions, flights, hotels)
into DuckDB, from CSV files or pandas DataFrames, with consistent typing.
"""

import logging
from pathlib import Path
from typing import Dict, Iterable, Optional

import duckdb
import pandas as pd

logger = logging.getLogger(__name__)


# Required columns and their DuckDB types, per source table
SCHEMA: Dict[str, Dict[str, str]] = {
    'users': {
        'user_id': 'BIGINT',
        'birthdate': 'DATE',
        'gender': 'VARCHAR',
        'married': 'BOOLEAN',
        'has_children': 'BOOLEAN',
        'home_country': 'VARCHAR',
        'home_city': 'VARCHAR',
        'home_airport': 'VARCHAR',
        'home_airport_lat': 'DOUBLE',
        'home_airport_lon': 'DOUBLE',
        'sign_up_date': 'DATE',
    },
    'sessions': {
        'session_id': 'VARCHAR',
        'user_id': 'BIGINT',
        'trip_id': 'VARCHAR',
        'session_start': 'TIMESTAMP',
        'session_end': 'TIMESTAMP',
        'flight_discount': 'BOOLEAN',
        'hotel_discount': 'BOOLEAN',
        'flight_discount_amount': 'DOUBLE',
        'hotel_discount_amount': 'DOUBLE',
        'flight_booked': 'BOOLEAN',
        'hotel_booked': 'BOOLEAN',
        'page_clicks': 'BIGINT',
        'cancellation': 'BOOLEAN',
    },
    'flights': {
        'trip_id': 'VARCHAR',
        'origin_airport': 'VARCHAR',
        'destination': 'VARCHAR',
        'destination_airport': 'VARCHAR',
        'seats': 'BIGINT',
        'return_flight_booked': 'BOOLEAN',
        'departure_time': 'TIMESTAMP',
        'return_time': 'TIMESTAMP',
        'checked_bags': 'BIGINT',
        'trip_airline': 'VARCHAR',
        'destination_airport_lat': 'DOUBLE',
        'destination_airport_lon': 'DOUBLE',
        'base_fare_usd': 'DOUBLE',
    },
    'hotels': {
        'trip_id': 'VARCHAR',
        'hotel_name': 'VARCHAR',
        'nights': 'BIGINT',
        'rooms': 'BIGINT',
        'check_in_time': 'TIMESTAMP',
        'check_out_time': 'TIMESTAMP',
        'hotel_per_room_usd': 'DOUBLE',
    },
}


class MissingColumnsError(ValueError):
    """A source table is absent or lacks required columns."""

    def __init__(self, table: str, missing: Iterable[str]):
        self.table = table
        self.missing = sorted(missing)
        super().__init__(
            f"Table '{table}' is missing required columns: {', '.join(self.missing)}"
        )


def get_project_root() -> Path:
    """Get the project root directory."""
    return Path(__file__).parent.parent.parent


def get_table_columns(con: duckdb.DuckDBPyConnection, table: str) -> list[str]:
    """Column names of a table or view, or [] if it does not exist."""
    try:
        description = con.execute(f"SELECT * FROM {table} LIMIT 0").description
    except duckdb.CatalogException:
        return []
    return [column[0] for column in description]


def validate_columns(con: duckdb.DuckDBPyConnection, table: str, source: Optional[str] = None) -> None:
    """
    Check that ``source`` (defaults to ``table``) has every column ``SCHEMA[table]`` requires.

    Raises:
        MissingColumnsError: if the relation is absent or incomplete
    """
    required = SCHEMA[table]
    present = set(get_table_columns(con, source or table))
    missing = set(required) - present
    if missing:
        raise MissingColumnsError(table, missing)


def _create_typed_table(con: duckdb.DuckDBPyConnection, table: str, source: str) -> None:
    """Create ``table`` from ``source`` keeping only schema columns, cast to schema types."""
    validate_columns(con, table, source)
    select_list = ",\n            ".join(
        f"TRY_CAST({column} AS {dtype}) AS {column}"
        for column, dtype in SCHEMA[table].items()
    )
    con.execute(f"""
        CREATE OR REPLACE TABLE {table} AS
        SELECT
            {select_list}
        FROM {source}
    """)


def init_db(
    data_dir: Optional[str | Path] = None,
    db_path: str = ":memory:"
) -> duckdb.DuckDBPyConnection:
    """
    Load the raw TravelTide CSV exports into DuckDB.

    Expects ``users.csv``, ``sessions.csv``, ``flights.csv`` and ``hotels.csv``
    in ``data_dir`` (defaults to ``<project root>/data``).

    Returns a connection with all four tables loaded and properly typed.

    Raises:
        FileNotFoundError: if a CSV file is missing
        MissingColumnsError: if a CSV file lacks required columns
    """
    data_dir = Path(data_dir) if data_dir is not None else get_project_root() / "data"
    con = duckdb.connect(database=db_path, read_only=False)

    try:
        for table_name in SCHEMA:
            file_path = data_dir / f"{table_name}.csv"
            if not file_path.exists():
                raise FileNotFoundError(f"Source file not found: {file_path}")

            con.execute(f"""
                CREATE OR REPLACE TEMP TABLE temp_{table_name} AS
                SELECT * FROM read_csv_auto('{file_path.as_posix()}', all_varchar=True, header=True)
            """)
            try:
                _create_typed_table(con, table_name, f"temp_{table_name}")
            finally:
                con.execute(f"DROP TABLE IF EXISTS temp_{table_name}")

            rows = con.execute(f"SELECT COUNT(*) FROM {table_name}").fetchone()[0]
            logger.info(f"Loaded {file_path.name} into table '{table_name}' ({rows:,} rows)")
    except Exception:
        con.close()
        raise

    return con


def load_tables(
    con: Optional[duckdb.DuckDBPyConnection] = None,
    *,
    users: pd.DataFrame,
    sessions: pd.DataFrame,
    flights: pd.DataFrame,
    hotels: pd.DataFrame,
) -> duckdb.DuckDBPyConnection:
    """
    Load the four source tables from pandas DataFrames.

    Args:
        con: Connection to load into. If None, a new in-memory connection is created.
        users, sessions, flights, hotels: Source frames; extra columns are ignored

    Returns:
        Connection with typed ``users``, ``sessions``, ``flights`` and ``hotels`` tables

    Raises:
        MissingColumnsError: if a frame lacks required columns
    """
    if con is None:
        con = duckdb.connect(":memory:")

    frames = {'users': users, 'sessions': sessions, 'flights': flights, 'hotels': hotels}
    for table_name, frame in frames.items():
        missing = set(SCHEMA[table_name]) - set(frame.columns)
        if missing:
            raise MissingColumnsError(table_name, missing)

        view_name = f"df_{table_name}"
        con.register(view_name, frame)
        try:
            _create_typed_table(con, table_name, view_name)
        finally:
            con.unregister(view_name)

    return con
