# models/station.py
from __future__ import annotations
from db import db
from sqlalchemy.sql import func


class Station(db.Model):
    __tablename__ = "stations"

    id          = db.Column(db.Integer, primary_key=True)
    name        = db.Column(db.String(255), nullable=False)
    address     = db.Column(db.String(255), nullable=False)
    latitude    = db.Column(db.Numeric(10, 7), nullable=False)
    longitude   = db.Column(db.Numeric(10, 7), nullable=False)
    description = db.Column(db.Text, nullable=True)
    status      = db.Column(db.String(16), nullable=False, default="active")

    created_at  = db.Column(db.DateTime, server_default=func.now(), nullable=False)
    updated_at  = db.Column(db.DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    route_links = db.relationship("RouteStation", back_populates="station", cascade="all, delete-orphan")


class RouteStation(db.Model):
    """
    Position of a station inside a route's stop sequence.
    `order` is 1..N per route at rest; 0 is only used transiently while
    a station is being moved.

    No UNIQUE(route_id, order): MySQL checks unique keys row by row, so the
    bulk `order = order + 1` shift would collide halfway through. Uniqueness
    is enforced by services.sequencer (contiguity check before commit) and
    reported by the `audit` command.
    """
    __tablename__ = "route_stations"
    __table_args__ = (
        db.UniqueConstraint("route_id", "station_id", name="uq_route_station"),
    )

    id             = db.Column(db.Integer, primary_key=True)
    route_id       = db.Column(db.Integer, db.ForeignKey("routes.id", ondelete="CASCADE"), nullable=False, index=True)
    station_id     = db.Column(db.Integer, db.ForeignKey("stations.id", ondelete="CASCADE"), nullable=False, index=True)
    order          = db.Column("order", db.Integer, nullable=False)
    arrival_time   = db.Column(db.Time, nullable=True)
    departure_time = db.Column(db.Time, nullable=True)

    created_at     = db.Column(db.DateTime, server_default=func.now(), nullable=False)
    updated_at     = db.Column(db.DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    route   = db.relationship("Route", back_populates="station_links")
    station = db.relationship("Station", back_populates="route_links")
