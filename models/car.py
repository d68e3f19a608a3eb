# models/car.py
from __future__ import annotations
from db import db
from sqlalchemy.sql import func

CAR_STATUSES = ("active", "maintenance", "blocked")


class Car(db.Model):
    __tablename__ = "cars"

    id           = db.Column(db.Integer, primary_key=True)
    plate_number = db.Column(db.String(20), nullable=False, unique=True)
    model        = db.Column(db.String(100), nullable=False)
    capacity     = db.Column(db.Integer, nullable=False)
    year         = db.Column(db.Integer, nullable=True)
    status       = db.Column(db.String(16), nullable=False, default="active")
    features     = db.Column(db.String(255), nullable=True)

    created_at   = db.Column(db.DateTime, server_default=func.now(), nullable=False)
    updated_at   = db.Column(db.DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    schedules = db.relationship("Schedule", back_populates="car")

    @property
    def is_active(self) -> bool:
        return self.status == "active"
