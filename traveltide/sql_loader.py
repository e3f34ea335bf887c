"""
Loading and rendering of the stage queries shipped under ``features/sql``.
"""
from pathlib import Path

SQL_DIR = Path(__file__).parent / 'features' / 'sql'


def load_sql(sql_filename: str, sql_dir: str | Path | None = None) -> str:
    """
    Read a query from the package's SQL directory.

    Parameters
    ----------
    sql_filename : str
        File name of the query (e.g., 'active_users.sql').
    sql_dir : str | Path | None, default=None
        Directory to read from. Defaults to ``SQL_DIR``.

    Returns
    -------
    str
        Raw query text.
    """
    sql_path = Path(sql_dir or SQL_DIR) / sql_filename

    if not sql_path.exists():
        raise FileNotFoundError(
            f"SQL file not found: {sql_path}\n"
            f"Expected location: {sql_path.absolute()}"
        )

    return sql_path.read_text(encoding='utf-8')


def render_sql(sql_filename: str, sql_dir: str | Path | None = None, **params) -> str:
    """
    Read a query template and substitute its ``{name}`` placeholders.

    Only config-derived literals (ISO dates, integers) are substituted, so
    templates must not contain literal braces.

    Examples
    --------
    >>> render_sql('cohort_sessions.sql', cohort_start='2023-01-05')

    Raises
    ------
    KeyError
        If the template references a placeholder missing from ``params``.
    """
    return load_sql(sql_filename, sql_dir).format(**params)
