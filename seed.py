#!/usr/bin/env python3
# seed.py

from datetime import time

from app import create_app
from db import db
from models.car import Car
from models.route import Route
from models.station import Station
from models.user import User
from services.sequencer import attach_station

DRIVER_USERNAME = "driver1"
DEMO_PLATE = "BUS-001"
DEMO_ROUTE = "Downtown Loop"

DEMO_STOPS = [
    ("Central Terminal", "1 Main St", 14.5995, 120.9842, time(7, 0), time(7, 5)),
    ("City Hall", "200 Rizal Ave", 14.5906, 120.9810, time(7, 15), time(7, 17)),
    ("University Gate", "45 Taft Ave", 14.5648, 120.9932, time(7, 30), time(7, 32)),
]


def seed_demo_fleet():
    """
    Creates a driver, a car and a route with three ordered stops.

    Safe to run repeatedly: existing records are reused and stations
    already on the route are left where they are.
    """
    app = create_app()
    with app.app_context():
        db.create_all()

        driver = User.query.filter_by(username=DRIVER_USERNAME).first()
        if not driver:
            driver = User(
                username=DRIVER_USERNAME,
                first_name="Demo",
                last_name="Driver",
                role="driver",
                status="active",
            )
            db.session.add(driver)
            print(f"➕ Created driver `{DRIVER_USERNAME}`.")

        car = Car.query.filter_by(plate_number=DEMO_PLATE).first()
        if not car:
            car = Car(plate_number=DEMO_PLATE, model="Hino RK8", capacity=45, year=2021, status="active")
            db.session.add(car)
            print(f"➕ Created car `{DEMO_PLATE}`.")

        route = Route.query.filter_by(name=DEMO_ROUTE).first()
        if not route:
            route = Route(name=DEMO_ROUTE, start_location="Central Terminal",
                          end_location="University Gate", distance=6.5, estimated_time=35)
            db.session.add(route)
            print(f"➕ Created route `{DEMO_ROUTE}`.")

        db.session.commit()

        attached = {l.station_id for l in route.station_links}
        for order, (name, addr, lat, lng, arr, dep) in enumerate(DEMO_STOPS, start=1):
            st = Station.query.filter_by(name=name).first()
            if not st:
                st = Station(name=name, address=addr, latitude=lat, longitude=lng)
                db.session.add(st)
                db.session.commit()
            if st.id not in attached:
                attach_station(route.id, st.id, order, arr, dep)

        print("✅ Seeded the demo fleet successfully.")

if __name__ == "__main__":
    seed_demo_fleet()
