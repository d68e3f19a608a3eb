# models/booking.py
from db import db
from sqlalchemy.sql import func
from models.user import UserId


class Booking(db.Model):
    __tablename__ = "bookings"

    id          = db.Column(db.Integer, primary_key=True)
    user_id     = db.Column(UserId, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    schedule_id = db.Column(db.Integer, db.ForeignKey("schedules.id"), nullable=False, index=True)
    route_id    = db.Column(db.Integer, db.ForeignKey("routes.id"), nullable=False, index=True)
    status      = db.Column(db.String(16), nullable=False, default="confirmed")
    created_at  = db.Column(db.DateTime, server_default=func.now(), nullable=False)

    schedule = db.relationship("Schedule", back_populates="bookings")
