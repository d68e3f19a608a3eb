# routes/transit.py
from __future__ import annotations

from decimal import Decimal, InvalidOperation

from flask import Blueprint, request, jsonify, current_app

from db import db
from models.route import Route
from models.user import User
from utils.locks import keyed_lock
from utils.payloads import route_payload

transit_bp = Blueprint("transit", __name__, url_prefix="/routes")

ROUTE_STATUSES = ("active", "inactive")


def _route_fields(data: dict, *, partial: bool) -> tuple[dict, str | None]:
    """Validate route payload → (fields, error). driver_id is handled by the caller."""
    out = {}
    missing = [k for k in ("name", "start_location", "end_location") if not partial and k not in data]
    if missing:
        return {}, f"Missing field(s): {', '.join(missing)}"

    for k in ("name", "start_location", "end_location"):
        if k in data:
            v = str(data[k] or "").strip()
            if not v or len(v) > 255:
                return {}, f"{k} must be 1-255 characters"
            out[k] = v

    if data.get("distance") is not None:
        try:
            out["distance"] = Decimal(str(data["distance"]))
        except (InvalidOperation, ValueError):
            return {}, "distance must be numeric"
        if out["distance"] < 0:
            return {}, "distance must be >= 0"

    if data.get("estimated_time") is not None:
        try:
            out["estimated_time"] = int(data["estimated_time"])
        except (TypeError, ValueError):
            return {}, "estimated_time must be an integer"
        if out["estimated_time"] < 1:
            return {}, "estimated_time must be >= 1"

    if "status" in data or not partial:
        st = str(data.get("status") or "active").strip().lower()
        if st not in ROUTE_STATUSES:
            return {}, "invalid status"
        out["status"] = st
    return out, None


def _driver_or_none(raw) -> User | None:
    try:
        uid = int(raw)
    except (TypeError, ValueError):
        return None
    u = db.session.get(User, uid)
    if not u or (u.role or "").lower() != "driver":
        return None
    return u


def _driver_route(driver_id: int, *, exclude_route_id: int | None = None) -> Route | None:
    q = Route.query.filter(Route.driver_id == driver_id)
    if exclude_route_id is not None:
        q = q.filter(Route.id != exclude_route_id)
    return q.first()


@transit_bp.route("", methods=["GET"])
def list_routes():
    status = (request.args.get("status") or "").strip().lower()
    q = Route.query
    if status:
        q = q.filter(Route.status == status)
    rows = q.order_by(Route.name.asc()).all()
    return jsonify([route_payload(r) for r in rows]), 200


@transit_bp.route("", methods=["POST"])
def create_route():
    data = request.get_json() or {}
    fields, err = _route_fields(data, partial=False)
    if err:
        return jsonify(error=err), 400

    if data.get("driver_id") is not None:
        drv = _driver_or_none(data["driver_id"])
        if drv is None:
            return jsonify(error="invalid driver_id"), 400
        fields["driver_id"] = drv.id

    route = Route(**fields)
    try:
        db.session.add(route)
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception("ERROR creating route")
        return jsonify(error="Failed to create route"), 500

    return jsonify(message="Route created successfully", route=route_payload(route)), 201


@transit_bp.route("/<int:route_id>", methods=["GET"])
def get_route(route_id: int):
    route = Route.query.get_or_404(route_id)
    return jsonify(route_payload(route, with_schedules=True)), 200


@transit_bp.route("/<int:route_id>", methods=["PATCH", "PUT"])
def update_route(route_id: int):
    """
    Partial update of the route record. The stop sequence is not touched
    here; it goes through /routes/<id>/stations.
    """
    route = Route.query.get_or_404(route_id)
    data = request.get_json() or {}
    fields, err = _route_fields(data, partial=True)
    if err:
        return jsonify(error=err), 400

    new_driver = route.driver_id
    if "driver_id" in data:
        if data["driver_id"] is None:
            new_driver = None
        else:
            drv = _driver_or_none(data["driver_id"])
            if drv is None:
                return jsonify(error="invalid driver_id"), 400
            new_driver = drv.id

    with keyed_lock(("driver", new_driver) if new_driver is not None else None):
        if new_driver is not None and new_driver != route.driver_id and _driver_route(new_driver):
            return jsonify(error="Driver already assigned to a route"), 422

        for k, v in fields.items():
            setattr(route, k, v)
        route.driver_id = new_driver
        db.session.commit()

    current_app.logger.info("[routes] updated id=%s driver=%s", route.id, route.driver_id)
    return jsonify(message="Route updated successfully", route=route_payload(route)), 200


@transit_bp.route("/<int:route_id>/assign-driver/<int:driver_id>", methods=["POST"])
def assign_driver(route_id: int, driver_id: int):
    route = Route.query.get_or_404(route_id)
    driver = User.query.get_or_404(driver_id)

    if (driver.role or "").lower() != "driver":
        return jsonify(error="User is not a driver"), 400
    if not driver.is_active_driver:
        return jsonify(error="Driver is blocked and cannot be assigned"), 400

    with keyed_lock(("driver", driver.id)):
        if _driver_route(driver.id, exclude_route_id=route.id):
            return jsonify(error="Driver already assigned to another route"), 422
        route.driver_id = driver.id
        db.session.commit()

    current_app.logger.info("[routes] driver=%s assigned to route=%s", driver.id, route.id)
    out = route_payload(route)
    out["driver_name"] = driver.name
    return jsonify(message="Driver assigned to route successfully", route=out), 200


@transit_bp.route("/<int:route_id>", methods=["DELETE"])
def delete_route(route_id: int):
    route = Route.query.get_or_404(route_id)
    if any(s.bookings.count() for s in route.schedules):
        return jsonify(error="Cannot delete route with booked schedules"), 422

    try:
        db.session.delete(route)
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception("ERROR deleting route id=%s", route_id)
        return jsonify(error="Failed to delete route"), 500

    return jsonify(message="Route deleted successfully"), 200
