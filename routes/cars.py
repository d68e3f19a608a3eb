# routes/cars.py
from __future__ import annotations

from datetime import date

from flask import Blueprint, request, jsonify, current_app
from sqlalchemy.exc import IntegrityError

from db import db
from models.car import Car, CAR_STATUSES
from models.schedule import Schedule
from utils.payloads import car_payload

cars_bp = Blueprint("cars", __name__, url_prefix="/cars")

MIN_YEAR = 1990


def _car_fields(data: dict, *, partial: bool) -> tuple[dict, str | None]:
    """Validate car payload → (fields, error)."""
    missing = [k for k in ("plate_number", "model", "capacity") if not partial and k not in data]
    if missing:
        return {}, f"Missing field(s): {', '.join(missing)}"

    out = {}
    for k, limit in (("plate_number", 20), ("model", 100)):
        if k in data:
            v = str(data[k] or "").strip()
            if not v or len(v) > limit:
                return {}, f"{k} must be 1-{limit} characters"
            out[k] = v

    try:
        if "capacity" in data:
            out["capacity"] = int(data["capacity"])
        if data.get("year") is not None:
            out["year"] = int(data["year"])
    except (TypeError, ValueError):
        return {}, "capacity/year must be integers"
    if "capacity" in out and out["capacity"] < 1:
        return {}, "capacity must be at least 1"
    if "year" in out and not (MIN_YEAR <= out["year"] <= date.today().year):
        return {}, f"year must be between {MIN_YEAR} and {date.today().year}"

    if "status" in data or not partial:
        status = str(data.get("status") or "active").strip().lower()
        if status not in CAR_STATUSES:
            return {}, "invalid status"
        out["status"] = status

    if "features" in data:
        out["features"] = data["features"] or None
    return out, None


@cars_bp.route("", methods=["GET"])
def list_cars():
    rows = Car.query.order_by(Car.plate_number.asc()).all()
    return jsonify([car_payload(c) for c in rows]), 200


@cars_bp.route("", methods=["POST"])
def create_car():
    fields, err = _car_fields(request.get_json() or {}, partial=False)
    if err:
        return jsonify(error=err), 400

    car = Car(**fields)
    try:
        db.session.add(car)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify(error="plate_number already exists"), 409

    return jsonify(message="Bus/Car added successfully", car=car_payload(car)), 201


@cars_bp.route("/<int:car_id>", methods=["GET"])
def get_car(car_id: int):
    car = Car.query.get_or_404(car_id)
    out = car_payload(car)
    out["active_schedules"] = Schedule.query.filter(
        Schedule.car_id == car.id, Schedule.status == "active"
    ).count()
    return jsonify(out), 200


@cars_bp.route("/<int:car_id>", methods=["PATCH", "PUT"])
def update_car(car_id: int):
    car = Car.query.get_or_404(car_id)
    fields, err = _car_fields(request.get_json() or {}, partial=True)
    if err:
        return jsonify(error=err), 400

    old = car.status
    for k, v in fields.items():
        setattr(car, k, v)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify(error="plate_number already exists"), 409

    if car.status != old:
        current_app.logger.info("[cars] id=%s status %s→%s", car.id, old, car.status)
    return jsonify(message="Bus/Car updated successfully", car=car_payload(car)), 200


@cars_bp.route("/<int:car_id>", methods=["DELETE"])
def delete_car(car_id: int):
    car = Car.query.get_or_404(car_id)
    if Schedule.query.filter(Schedule.car_id == car.id).first() is not None:
        return jsonify(error="Cannot delete car/bus that is used in schedules"), 422

    db.session.delete(car)
    db.session.commit()
    return jsonify(message="Bus/Car deleted successfully"), 200


@cars_bp.route("/<int:car_id>/status", methods=["PATCH"])
def change_car_status(car_id: int):
    car = Car.query.get_or_404(car_id)
    data = request.get_json() or {}
    status = str(data.get("status") or "").strip().lower()
    if status not in CAR_STATUSES:
        return jsonify(error="status must be one of: " + ", ".join(CAR_STATUSES)), 400

    old = car.status
    car.status = status
    db.session.commit()
    current_app.logger.info("[cars] id=%s status %s→%s", car.id, old, status)
    return jsonify(message=f"Car status changed from {old} to {status}", car=car_payload(car)), 200
