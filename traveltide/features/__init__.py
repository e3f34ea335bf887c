"""Feature engineering stages (sessions -> users -> population-relative features)."""
from .geo import register_haversine
from .sessions import (
    build_cohort_sessions,
    build_active_users,
    build_engineered_sessions,
    run_session_stages,
)
from .users import aggregate_users, derive_user_features, safe_divide
from .normalization import (
    NORMALIZED_FEATURES,
    PopulationStats,
    compute_population_stats,
    apply_population_stats,
    percentile_cont,
    percentile_disc,
)
