"""
Great-circle distance as a DuckDB SQL macro, used by the session stage queries.
"""

import duckdb

EARTH_RADIUS_KM = 6371.0

HAVERSINE_MACRO = f"""
CREATE OR REPLACE MACRO haversine_distance(lat1, lon1, lat2, lon2) AS
    2 * {EARTH_RADIUS_KM} * atan2(
        sqrt(
            pow(sin(radians(lat2 - lat1) / 2), 2)
            + cos(radians(lat1)) * cos(radians(lat2)) * pow(sin(radians(lon2 - lon1) / 2), 2)
        ),
        sqrt(1 - (
            pow(sin(radians(lat2 - lat1) / 2), 2)
            + cos(radians(lat1)) * cos(radians(lat2)) * pow(sin(radians(lon2 - lon1) / 2), 2)
        ))
    )
"""


def register_haversine(con: duckdb.DuckDBPyConnection) -> None:
    """Register the ``haversine_distance(lat1, lon1, lat2, lon2)`` macro (km) on a connection."""
    con.execute(HAVERSINE_MACRO)
