# backend/models/schedule.py
from __future__ import annotations
from db import db
from sqlalchemy.sql import func
from models.user import UserId

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
SCHEDULE_STATUSES = ("active", "cancelled", "completed")
STATUS_ACTIVE = "active"


class Schedule(db.Model):
    __tablename__ = "schedules"

    id             = db.Column(db.Integer, primary_key=True)
    route_id       = db.Column(db.Integer, db.ForeignKey("routes.id"), nullable=False, index=True)
    car_id         = db.Column(db.Integer, db.ForeignKey("cars.id"), nullable=False, index=True)
    driver_id      = db.Column(UserId, db.ForeignKey("users.id"), nullable=False, index=True)
    departure_time = db.Column(db.Time, nullable=False)
    arrival_time   = db.Column(db.Time, nullable=False)
    # JSON list of lowercase weekday names, e.g. ["monday", "friday"]
    days_of_week   = db.Column(db.JSON, nullable=False)
    status         = db.Column(db.String(16), nullable=False, default=STATUS_ACTIVE, index=True)

    created_at     = db.Column(db.DateTime, server_default=func.now(), nullable=False)
    updated_at     = db.Column(db.DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    route    = db.relationship("Route", back_populates="schedules")
    car      = db.relationship("Car", back_populates="schedules")
    driver   = db.relationship("User", back_populates="schedules", foreign_keys=[driver_id])
    bookings = db.relationship("Booking", back_populates="schedule", lazy="dynamic")

    @property
    def days(self) -> set[str]:
        return {str(d).lower() for d in (self.days_of_week or [])}
