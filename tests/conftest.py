"""
Shared pytest fixtures and builders for the segmentation tests.

Source tables are built as small pandas DataFrames and loaded into an
in-memory DuckDB connection with ``load_tables``.
"""

from datetime import datetime, timedelta

import numpy as np
import pandas as pd
import pytest

from traveltide.data.loader import SCHEMA, load_tables


# =============================================================================
# ROW BUILDERS
# =============================================================================

def make_user(user_id, **overrides):
    row = {
        'user_id': user_id,
        'birthdate': '1985-03-15',
        'gender': 'F',
        'married': False,
        'has_children': False,
        'home_country': 'usa',
        'home_city': 'new york',
        'home_airport': 'LGA',
        'home_airport_lat': 40.777,
        'home_airport_lon': -73.872,
        'sign_up_date': '2022-06-01',
    }
    row.update(overrides)
    return row


def make_session(session_id, user_id, start='2023-02-01 10:00:00', minutes=5.0, **overrides):
    start_ts = datetime.fromisoformat(start)
    row = {
        'session_id': session_id,
        'user_id': user_id,
        'trip_id': None,
        'session_start': start_ts.strftime('%Y-%m-%d %H:%M:%S'),
        'session_end': (start_ts + timedelta(minutes=minutes)).strftime('%Y-%m-%d %H:%M:%S'),
        'flight_discount': False,
        'hotel_discount': False,
        'flight_discount_amount': None,
        'hotel_discount_amount': None,
        'flight_booked': False,
        'hotel_booked': False,
        'page_clicks': 10,
        'cancellation': False,
    }
    row.update(overrides)
    return row


def make_flight(trip_id, **overrides):
    row = {
        'trip_id': trip_id,
        'origin_airport': 'LGA',
        'destination': 'chicago',
        'destination_airport': 'ORD',
        'seats': 1,
        'return_flight_booked': True,
        'departure_time': '2023-03-06 08:00:00',  # Monday
        'return_time': '2023-03-09 18:00:00',     # Thursday
        'checked_bags': 0,
        'trip_airline': 'Delta Air Lines',
        'destination_airport_lat': 41.979,
        'destination_airport_lon': -87.904,
        'base_fare_usd': 300.0,
    }
    row.update(overrides)
    return row


def make_hotel(trip_id, **overrides):
    row = {
        'trip_id': trip_id,
        'hotel_name': 'Hilton - chicago',
        'nights': 3,
        'rooms': 1,
        'check_in_time': '2023-03-06 15:00:00',
        'check_out_time': '2023-03-09 11:00:00',
        'hotel_per_room_usd': 100.0,
    }
    row.update(overrides)
    return row


def browse_sessions(user_id, n, start='2023-02-01 10:00:00', prefix=None):
    """``n`` sessions without a trip, one per day."""
    prefix = prefix or f"u{user_id}"
    first = datetime.fromisoformat(start)
    return [
        make_session(
            f"{prefix}-browse-{i}",
            user_id,
            start=(first + timedelta(days=i)).strftime('%Y-%m-%d %H:%M:%S'),
        )
        for i in range(n)
    ]


def to_frames(users, sessions, flights=(), hotels=()):
    """Row dicts -> DataFrames with every schema column present."""
    def frame(rows, table):
        return pd.DataFrame(list(rows), columns=list(SCHEMA[table]))

    return {
        'users': frame(users, 'users'),
        'sessions': frame(sessions, 'sessions'),
        'flights': frame(flights, 'flights'),
        'hotels': frame(hotels, 'hotels'),
    }


def load(users, sessions, flights=(), hotels=()):
    """Build frames and load them into a fresh in-memory connection."""
    return load_tables(**to_frames(users, sessions, flights, hotels))


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def three_user_db():
    """
    Three active users and one inactive user.

    - 1: eight browsing sessions, no trips (Window Shopper)
    - 2: signed up 2023-01-20, one flight booked 2023-02-01 (Fresh Explorer)
    - 3: married with children, one flight (4 seats, 4 bags) + hotel (Family)
    - 4: only seven sessions (excluded)
    """
    users = [
        make_user(1),
        make_user(2, sign_up_date='2023-01-20', birthdate='1990-01-01'),
        make_user(3, sign_up_date='2022-01-01', birthdate='1978-01-01', married=True, has_children=True),
        make_user(4),
    ]

    sessions = browse_sessions(1, 8)

    sessions += browse_sessions(2, 7, start='2023-02-02 10:00:00')
    sessions.append(make_session(
        'u2-book', 2, start='2023-02-01 09:00:00',
        trip_id='T2', flight_booked=True,
    ))

    sessions += browse_sessions(3, 7, start='2023-02-02 10:00:00')
    sessions.append(make_session(
        'u3-book', 3, start='2023-02-01 09:00:00',
        trip_id='T3', flight_booked=True, hotel_booked=True,
    ))

    sessions += browse_sessions(4, 7)

    flights = [
        make_flight('T2', seats=1, checked_bags=0, base_fare_usd=200.0),
        make_flight('T3', seats=4, checked_bags=4, base_fare_usd=1600.0),
    ]
    hotels = [make_hotel('T3')]

    return load(users, sessions, flights, hotels)


@pytest.fixture
def frequent_flyer_db():
    """
    Ten active users with one booked weekday flight each, except user 10
    who books three. User 10 is also a new customer with a high business score.
    """
    users = [make_user(i) for i in range(1, 10)]
    users.append(make_user(10, sign_up_date='2023-01-25'))

    sessions, flights = [], []
    for user_id in range(1, 11):
        n_trips = 3 if user_id == 10 else 1
        sessions += browse_sessions(user_id, 8 - n_trips, start='2023-02-10 10:00:00')
        for k in range(n_trips):
            trip_id = f"T{user_id}-{k}"
            sessions.append(make_session(
                f"u{user_id}-book-{k}", user_id,
                start=f"2023-02-0{k + 1} 09:00:00",
                trip_id=trip_id, flight_booked=True,
            ))
            flights.append(make_flight(trip_id, base_fare_usd=100.0 + 10 * user_id))

    return load(users, sessions, flights)


@pytest.fixture
def synthetic_frames():
    """
    Deterministic random population (seeded) for property-style tests.

    Roughly two thirds of the 40 users are active; trips mix flights, hotels,
    discounts, cancellations and negative nights.
    """
    rng = np.random.default_rng(42)
    users, sessions, flights, hotels = [], [], [], []
    base = datetime(2023, 1, 1, 8, 0, 0)

    for user_id in range(1, 41):
        users.append(make_user(
            user_id,
            birthdate=f"{rng.integers(1950, 2004)}-0{rng.integers(1, 10)}-1{rng.integers(0, 10)}",
            married=bool(rng.random() < 0.4),
            has_children=bool(rng.random() < 0.3),
            sign_up_date=f"2022-{rng.integers(1, 13):02d}-15" if rng.random() < 0.8 else '2023-01-10',
        ))

        n_sessions = int(rng.integers(5, 13))
        for s in range(n_sessions):
            start = base + timedelta(days=int(rng.integers(0, 150)), minutes=int(rng.integers(0, 600)))
            session = make_session(
                f"u{user_id}-s{s}", user_id,
                start=start.strftime('%Y-%m-%d %H:%M:%S'),
                minutes=float(rng.integers(1, 40)),
                page_clicks=int(rng.integers(1, 60)),
            )

            if rng.random() < 0.35:
                trip_id = f"T{user_id}-{s}"
                has_flight = rng.random() < 0.8
                has_hotel = rng.random() < 0.7
                session.update(
                    trip_id=trip_id,
                    flight_booked=has_flight,
                    hotel_booked=has_hotel,
                    flight_discount=bool(rng.random() < 0.3),
                    hotel_discount=bool(rng.random() < 0.2),
                    flight_discount_amount=0.1 if rng.random() < 0.3 else None,
                    hotel_discount_amount=0.15 if rng.random() < 0.2 else None,
                )
                departure = start + timedelta(days=int(rng.integers(3, 40)))
                stay = int(rng.integers(1, 9))
                if has_flight:
                    flights.append(make_flight(
                        trip_id,
                        seats=int(rng.integers(1, 5)),
                        checked_bags=int(rng.integers(0, 4)),
                        base_fare_usd=float(rng.integers(80, 2000)),
                        departure_time=departure.strftime('%Y-%m-%d %H:%M:%S'),
                        return_time=(departure + timedelta(days=stay)).strftime('%Y-%m-%d %H:%M:%S'),
                        destination_airport_lat=float(rng.uniform(-40, 60)),
                        destination_airport_lon=float(rng.uniform(-120, 140)),
                    ))
                if has_hotel:
                    hotels.append(make_hotel(
                        trip_id,
                        nights=-stay if rng.random() < 0.1 else stay,
                        rooms=int(rng.integers(1, 3)),
                        hotel_per_room_usd=float(rng.integers(40, 400)),
                        check_in_time=departure.strftime('%Y-%m-%d %H:%M:%S'),
                        check_out_time=(departure + timedelta(days=stay)).strftime('%Y-%m-%d %H:%M:%S'),
                    ))
                sessions.append(session)

                # Some trips get a follow-up cancellation session
                if rng.random() < 0.15:
                    sessions.append(make_session(
                        f"u{user_id}-s{s}-cancel", user_id,
                        start=(start + timedelta(days=1)).strftime('%Y-%m-%d %H:%M:%S'),
                        trip_id=trip_id,
                        flight_booked=has_flight,
                        hotel_booked=has_hotel,
                        cancellation=True,
                    ))
            else:
                sessions.append(session)

    return to_frames(users, sessions, flights, hotels)


@pytest.fixture
def synthetic_db(synthetic_frames):
    return load_tables(**synthetic_frames)
