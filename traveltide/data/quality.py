"""
Data quality checks for the TravelTide source tables.

Every check is a count-only query; nothing is modified. The pipeline itself
degrades to safe defaults (sign-flipped nights, null-skipping sums), so these
checks exist to report how often those defaults kick in.
"""

import logging
from dataclasses import dataclass

import duckdb

logger = logging.getLogger(__name__)


@dataclass
class QualityCheck:
    """
    Single data quality check.

    ``check_query`` counts affected rows, ``total_query`` counts the rows the
    check applies to (used for the percentage).
    """
    name: str
    check_query: str
    total_query: str
    enabled: bool = True


QUALITY_CHECKS = [
    QualityCheck(
        "Negative Hotel Nights",
        "SELECT COUNT(*) FROM hotels WHERE nights < 0",
        "SELECT COUNT(*) FROM hotels",
    ),
    QualityCheck(
        "Session Ends Before Start",
        "SELECT COUNT(*) FROM sessions WHERE session_end < session_start",
        "SELECT COUNT(*) FROM sessions",
    ),
    QualityCheck(
        "Session Without Trip",
        "SELECT COUNT(*) FROM sessions WHERE trip_id IS NULL",
        "SELECT COUNT(*) FROM sessions",
    ),
    QualityCheck(
        "Cancellation Session",
        "SELECT COUNT(*) FROM sessions WHERE cancellation",
        "SELECT COUNT(*) FROM sessions",
    ),
    QualityCheck(
        "Trip Without Flight",
        """SELECT COUNT(DISTINCT s.trip_id) FROM sessions s
           LEFT JOIN flights f ON s.trip_id = f.trip_id
           WHERE s.trip_id IS NOT NULL AND f.trip_id IS NULL""",
        "SELECT COUNT(DISTINCT trip_id) FROM sessions WHERE trip_id IS NOT NULL",
    ),
    QualityCheck(
        "Trip Without Hotel",
        """SELECT COUNT(DISTINCT s.trip_id) FROM sessions s
           LEFT JOIN hotels h ON s.trip_id = h.trip_id
           WHERE s.trip_id IS NOT NULL AND h.trip_id IS NULL""",
        "SELECT COUNT(DISTINCT trip_id) FROM sessions WHERE trip_id IS NOT NULL",
    ),
    QualityCheck(
        "Flight With Zero Seats",
        "SELECT COUNT(*) FROM flights WHERE seats IS NULL OR seats <= 0",
        "SELECT COUNT(*) FROM flights",
    ),
    QualityCheck(
        "Session With Unknown User",
        """SELECT COUNT(*) FROM sessions s
           LEFT JOIN users u ON s.user_id = u.user_id
           WHERE u.user_id IS NULL""",
        "SELECT COUNT(*) FROM sessions",
    ),
]


def check_data_quality(con: duckdb.DuckDBPyConnection, verbose: bool = False) -> dict:
    """
    Run every enabled quality check without modifying data.

    Returns:
        dict with per-check results ({'name', 'failed', 'total', 'pct'}),
        the total failed count and how many checks passed
    """
    results = []
    total_failed = 0
    checks = [check for check in QUALITY_CHECKS if check.enabled]

    for check in checks:
        failed = con.execute(check.check_query).fetchone()[0]
        total = con.execute(check.total_query).fetchone()[0]
        pct = (failed / total * 100) if total > 0 else 0

        results.append({
            'name': check.name,
            'failed': failed,
            'total': total,
            'pct': pct
        })
        total_failed += failed

        if verbose:
            marker = '✓' if failed == 0 else '!'
            logger.info(f"  {marker} {check.name}: {failed:,} / {total:,} rows ({pct:.1f}%)")

    return {
        'rules': results,
        'total_failed': total_failed,
        'checks_passed': sum(1 for r in results if r['failed'] == 0),
        'total_checks': len(checks)
    }
