# models/route.py
from __future__ import annotations
from db import db
from sqlalchemy.sql import func
from models.user import UserId


class Route(db.Model):
    __tablename__ = "routes"

    id             = db.Column(db.Integer, primary_key=True)
    name           = db.Column(db.String(255), nullable=False)
    start_location = db.Column(db.String(255), nullable=False)
    end_location   = db.Column(db.String(255), nullable=False)
    distance       = db.Column(db.Numeric(8, 2), nullable=True)   # km
    estimated_time = db.Column(db.Integer, nullable=True)         # minutes
    driver_id      = db.Column(UserId, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    status         = db.Column(db.String(16), nullable=False, default="active")

    created_at     = db.Column(db.DateTime, server_default=func.now(), nullable=False)
    updated_at     = db.Column(db.DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    driver = db.relationship("User", foreign_keys=[driver_id])

    # ordered stop sequence; writes go through services.sequencer only
    station_links = db.relationship(
        "RouteStation",
        back_populates="route",
        order_by="RouteStation.order",
        cascade="all, delete-orphan",
    )

    schedules = db.relationship("Schedule", back_populates="route", cascade="all, delete-orphan")
