# models/user.py
from __future__ import annotations
from db import db
from sqlalchemy.sql import func
from sqlalchemy.dialects.mysql import BIGINT

ROLES = ("admin", "driver", "passenger")
USER_STATUSES = ("active", "blocked")

# BIGINT(20) UNSIGNED on MySQL; sqlite only autoincrements plain INTEGER keys
UserId = BIGINT(unsigned=True).with_variant(db.Integer, "sqlite")


class User(db.Model):
    __tablename__ = "users"

    id           = db.Column(UserId, primary_key=True, autoincrement=True)
    username     = db.Column(db.String(80), nullable=False, unique=True, index=True)
    first_name   = db.Column(db.String(80), nullable=True)
    last_name    = db.Column(db.String(80), nullable=True)
    email        = db.Column(db.String(254), nullable=True, unique=True, index=True)
    phone_number = db.Column(db.String(32), nullable=True, unique=True)
    role         = db.Column(db.String(32), nullable=False, default="passenger", index=True)
    status       = db.Column(db.String(16), nullable=False, default="active")

    created_at   = db.Column(db.DateTime, server_default=func.now(), nullable=False)
    updated_at   = db.Column(db.DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    # ── Relationships ────────────────────────────────────────────────────────
    schedules = db.relationship(
        "Schedule",
        back_populates="driver",
        foreign_keys="Schedule.driver_id",
    )

    # ── Helpers ─────────────────────────────────────────────────────────────
    @property
    def is_active_driver(self) -> bool:
        return (self.role or "").lower() == "driver" and (self.status or "").lower() == "active"

    @property
    def name(self) -> str:
        fn = (self.first_name or "").strip()
        ln = (self.last_name or "").strip()
        return (fn + " " + ln).strip() or (self.username or f"User #{self.id}")
