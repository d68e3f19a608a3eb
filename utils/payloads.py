# utils/payloads.py
from utils.timefmt import fmt_hhmm


def _num(x):
    return float(x) if x is not None else None


def car_payload(c) -> dict:
    return {
        "id": c.id,
        "plate_number": c.plate_number,
        "model": c.model,
        "capacity": c.capacity,
        "year": c.year,
        "status": c.status,
        "features": c.features,
    }


def station_payload(s) -> dict:
    return {
        "id": s.id,
        "name": s.name,
        "address": s.address,
        "latitude": _num(s.latitude),
        "longitude": _num(s.longitude),
        "description": s.description,
        "status": s.status,
    }


def link_payload(link) -> dict:
    """One stop of a route: the station plus its position/timing on that route."""
    out = station_payload(link.station)
    out.update(
        station_id=link.station_id,
        order=link.order,
        arrival_time=fmt_hhmm(link.arrival_time),
        departure_time=fmt_hhmm(link.departure_time),
    )
    return out


def schedule_payload(s) -> dict:
    return {
        "id": s.id,
        "route_id": s.route_id,
        "car_id": s.car_id,
        "driver_id": s.driver_id,
        "departure_time": fmt_hhmm(s.departure_time),
        "arrival_time": fmt_hhmm(s.arrival_time),
        "days_of_week": list(s.days_of_week or []),
        "status": s.status,
    }


def route_payload(r, *, links=None, with_schedules: bool = False) -> dict:
    links = r.station_links if links is None else links
    out = {
        "id": r.id,
        "name": r.name,
        "start_location": r.start_location,
        "end_location": r.end_location,
        "distance": _num(r.distance),
        "estimated_time": r.estimated_time,
        "driver_id": r.driver_id,
        "status": r.status,
        "stations": [link_payload(l) for l in links],
    }
    if with_schedules:
        out["schedules"] = [schedule_payload(s) for s in r.schedules]
    return out
