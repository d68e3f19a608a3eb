"""
Threaded writers against a file-backed SQLite store.

Each thread pushes its own app context, so each gets its own session and
connection, the same way concurrent requests do under a threaded server.
"""
import random
import threading
from types import SimpleNamespace

import pytest

from app import create_app
from config import TestingConfig
from db import db
from models.car import Car
from models.route import Route
from models.schedule import Schedule
from models.station import Station
from models.user import User
from services.sequencer import attach_station, update_station, route_links

STOPS = 8


@pytest.fixture
def file_app(tmp_path):
    cfg = type("FileDbConfig", (TestingConfig,), {
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'transit.db'}",
        # writers queue on the sqlite file lock instead of failing fast
        "SQLALCHEMY_ENGINE_OPTIONS": {"connect_args": {"timeout": 30}},
    })
    app = create_app(cfg)
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.drop_all()
        db.engine.dispose()


@pytest.fixture
def seeded(file_app):
    with file_app.app_context():
        route = Route(name="Green Line", start_location="Depot", end_location="Pier")
        car = Car(plate_number="BUS-101", model="MAN Lion", capacity=45, status="active")
        driver = User(username="cora", first_name="Cora", role="driver", status="active")
        stations = [
            Station(name=f"Stop {i}", address=f"{i} Pier Rd", latitude=14 + i / 100, longitude=121)
            for i in range(1, STOPS + 1)
        ]
        db.session.add_all([route, car, driver, *stations])
        db.session.commit()
        return SimpleNamespace(
            route_id=route.id,
            car_id=car.id,
            driver_id=driver.id,
            station_ids=[s.id for s in stations],
        )


def _run_together(target, args_list):
    barrier = threading.Barrier(len(args_list))
    errors = []

    def runner(*args):
        try:
            barrier.wait(timeout=10)
            target(*args)
        except Exception as e:  # surfaced through `errors`
            errors.append(e)

    threads = [threading.Thread(target=runner, args=a) for a in args_list]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)
    return errors


def test_parallel_attaches_keep_orders_contiguous(file_app, seeded):
    def attach(sid):
        with file_app.app_context():
            attach_station(seeded.route_id, sid, 1)

    errors = _run_together(attach, [(sid,) for sid in seeded.station_ids])
    assert errors == []

    with file_app.app_context():
        links = route_links(seeded.route_id)
        assert [l.order for l in links] == list(range(1, STOPS + 1))
        assert {l.station_id for l in links} == set(seeded.station_ids)


def test_parallel_moves_keep_orders_contiguous(file_app, seeded):
    with file_app.app_context():
        for order, sid in enumerate(seeded.station_ids, start=1):
            attach_station(seeded.route_id, sid, order)

    rng = random.Random(7)
    moves = [(sid, rng.randint(1, STOPS)) for sid in seeded.station_ids]

    def move(sid, target):
        with file_app.app_context():
            update_station(seeded.route_id, sid, order=target)

    errors = _run_together(move, moves)
    assert errors == []

    with file_app.app_context():
        links = route_links(seeded.route_id)
        assert [l.order for l in links] == list(range(1, STOPS + 1))
        assert {l.station_id for l in links} == set(seeded.station_ids)


def test_overlapping_schedule_posts_admit_exactly_one(file_app, seeded):
    body = {
        "route_id": seeded.route_id,
        "car_id": seeded.car_id,
        "driver_id": seeded.driver_id,
        "departure_time": "08:00",
        "arrival_time": "10:00",
        "days_of_week": ["monday"],
    }
    codes = []

    def post(start):
        res = file_app.test_client().post("/schedules", json={**body, "departure_time": start})
        codes.append(res.status_code)

    errors = _run_together(post, [("08:00",), ("09:00",)])
    assert errors == []
    assert sorted(codes) == [201, 422]

    with file_app.app_context():
        assert Schedule.query.count() == 1
