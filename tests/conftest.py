"""
Shared fixtures: a fresh in-memory app per test plus a small fleet.

Usage:  `pytest tests/`
"""
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


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def fleet(app):
    """One route, two active cars, two active drivers (ids only)."""
    route = Route(name="Blue Line", start_location="Depot", end_location="Harbor")
    car = Car(plate_number="BUS-007", model="Volvo 7900", capacity=40, status="active")
    car2 = Car(plate_number="BUS-008", model="Volvo 7900", capacity=40, status="active")
    driver = User(username="ana", first_name="Ana", role="driver", status="active")
    driver2 = User(username="ben", first_name="Ben", role="driver", status="active")
    db.session.add_all([route, car, car2, driver, driver2])
    db.session.commit()
    return SimpleNamespace(
        route_id=route.id,
        car_id=car.id,
        car2_id=car2.id,
        driver_id=driver.id,
        driver2_id=driver2.id,
    )


@pytest.fixture
def add_schedule(fleet):
    """Insert a schedule directly, bypassing conflict checks."""
    def _add(dep, arr, days=("monday",), *, car_id=None, driver_id=None, status="active"):
        s = Schedule(
            route_id=fleet.route_id,
            car_id=car_id or fleet.car_id,
            driver_id=driver_id or fleet.driver_id,
            departure_time=dep,
            arrival_time=arr,
            days_of_week=list(days),
            status=status,
        )
        db.session.add(s)
        db.session.commit()
        return s.id
    return _add


@pytest.fixture
def make_stations(app):
    def _make(n):
        rows = [
            Station(name=f"Stop {i}", address=f"{i} Main St", latitude=10 + i / 100, longitude=120)
            for i in range(1, n + 1)
        ]
        db.session.add_all(rows)
        db.session.commit()
        return [s.id for s in rows]
    return _make


@pytest.fixture
def route_id(fleet):
    return fleet.route_id

