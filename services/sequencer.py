# services/sequencer.py
"""
Ordered stop sequence of a route (route_stations.order).

Orders on a route are always 1..N between calls. Every mutation:
  - holds the in-process lock ("route", route_id)
  - locks the route row (SELECT ... FOR UPDATE; ignored by SQLite)
  - shifts neighbours with one bulk UPDATE per range
  - re-reads the orders and refuses to commit anything but 1..N

Public API:
  - route_links(route_id) -> [RouteStation] ordered
  - attach_station(route_id, station_id, order, arrival_time=None, departure_time=None)
  - detach_station(route_id, station_id)
  - update_station(route_id, station_id, order=None, arrival_time=None, departure_time=None)

Mutations return the route's links in order after commit.
"""
from __future__ import annotations

from contextlib import contextmanager
from datetime import time
from typing import Optional

from flask import current_app

from db import db
from models.route import Route
from models.station import RouteStation
from services.errors import DuplicateStation, StationNotAttached, InvariantViolation
from utils.locks import keyed_lock

# parking slot for a station that is being moved
SENTINEL_ORDER = 0


# ---------- reads ----------

def route_links(route_id: int) -> list[RouteStation]:
    return (
        RouteStation.query.filter(RouteStation.route_id == route_id)
        .order_by(RouteStation.order.asc())
        .all()
    )


def _orders(route_id: int) -> list[int]:
    rows = (
        db.session.query(RouteStation.order)
        .filter(RouteStation.route_id == route_id)
        .order_by(RouteStation.order.asc())
        .all()
    )
    return [int(o) for (o,) in rows]


def _link(route_id: int, station_id: int) -> Optional[RouteStation]:
    return RouteStation.query.filter_by(route_id=route_id, station_id=station_id).first()


def is_contiguous(orders: list[int]) -> bool:
    return sorted(orders) == list(range(1, len(orders) + 1))


# ---------- writes ----------

def _shift(route_id: int, delta: int, *, lo: int | None = None, hi: int | None = None) -> int:
    """order += delta for links with lo <= order <= hi. Returns rows touched."""
    q = RouteStation.query.filter(RouteStation.route_id == route_id)
    if lo is not None:
        q = q.filter(RouteStation.order >= lo)
    if hi is not None:
        q = q.filter(RouteStation.order <= hi)
    return q.update(
        {RouteStation.order: RouteStation.order + delta},
        synchronize_session="fetch",
    )


@contextmanager
def _route_transaction(route_id: int, op: str):
    with keyed_lock(("route", route_id)):
        try:
            route = (
                Route.query.filter(Route.id == route_id)
                .with_for_update()
                .first()
            )
            if route is None:
                raise ValueError(f"route {route_id} not found")

            yield route

            db.session.flush()
            orders = _orders(route_id)
            if not is_contiguous(orders):
                raise InvariantViolation(
                    f"route {route_id} orders {orders} after {op}"
                )
            db.session.commit()
        except InvariantViolation:
            db.session.rollback()
            current_app.logger.exception("[sequencer] %s left route=%s broken; rolled back", op, route_id)
            raise
        except Exception:
            db.session.rollback()
            raise


def attach_station(
    route_id: int,
    station_id: int,
    order: int,
    arrival_time: Optional[time] = None,
    departure_time: Optional[time] = None,
) -> list[RouteStation]:
    """
    Insert station at `order`, pushing every link at or after it one slot
    later. Orders past the end are appended (N+1).
    """
    order = int(order)
    if order < 1:
        raise ValueError("order must be >= 1")

    with _route_transaction(route_id, "attach"):
        if _link(route_id, station_id) is not None:
            raise DuplicateStation()

        count = len(_orders(route_id))
        order = min(order, count + 1)

        occupied = (
            RouteStation.query.filter_by(route_id=route_id, order=order).first() is not None
        )
        if occupied:
            _shift(route_id, +1, lo=order)

        db.session.add(RouteStation(
            route_id=route_id,
            station_id=station_id,
            order=order,
            arrival_time=arrival_time,
            departure_time=departure_time,
        ))

    current_app.logger.info("[sequencer] attach route=%s station=%s order=%s", route_id, station_id, order)
    return route_links(route_id)


def detach_station(route_id: int, station_id: int) -> list[RouteStation]:
    """Remove the link and close the gap it leaves."""
    with _route_transaction(route_id, "detach"):
        link = _link(route_id, station_id)
        if link is None:
            raise StationNotAttached()

        removed = link.order
        db.session.delete(link)
        db.session.flush()
        _shift(route_id, -1, lo=removed + 1)

    current_app.logger.info("[sequencer] detach route=%s station=%s order=%s", route_id, station_id, removed)
    return route_links(route_id)


def update_station(
    route_id: int,
    station_id: int,
    order: Optional[int] = None,
    arrival_time: Optional[time] = None,
    departure_time: Optional[time] = None,
) -> list[RouteStation]:
    """
    Move a station to `order` and/or change its times. Times left as None
    keep their stored value. Orders past the end land on the last slot.
    ValueError if the merged times put departure before arrival.
    """
    if order is not None and int(order) < 1:
        raise ValueError("order must be >= 1")

    with _route_transaction(route_id, "update"):
        link = _link(route_id, station_id)
        if link is None:
            raise StationNotAttached()

        current = link.order
        target = current
        if order is not None:
            target = min(int(order), len(_orders(route_id)))

        if target != current:
            link.order = SENTINEL_ORDER
            db.session.flush()
            if target > current:
                # moving later: (current, target] slides up one slot
                _shift(route_id, -1, lo=current + 1, hi=target)
            else:
                # moving earlier: [target, current) slides down one slot
                _shift(route_id, +1, lo=target, hi=current - 1)
            link.order = target

        arrival = arrival_time if arrival_time is not None else link.arrival_time
        departure = departure_time if departure_time is not None else link.departure_time
        if arrival is not None and departure is not None and departure < arrival:
            raise ValueError("departure_time must be at or after arrival_time")
        link.arrival_time = arrival
        link.departure_time = departure

    current_app.logger.info(
        "[sequencer] update route=%s station=%s order %s→%s", route_id, station_id, current, target
    )
    return route_links(route_id)
