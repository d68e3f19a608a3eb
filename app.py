# backend/app.py
from __future__ import annotations

import os
from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix
from flask_cors import CORS
from sqlalchemy import event

from config import Config
from db import db, migrate
from realtime import socketio

# Ensure models are imported so Flask-Migrate sees them
from models.user import User
from models.car import Car
from models.route import Route
from models.station import Station, RouteStation
from models.schedule import Schedule
from models.booking import Booking

# Blueprints
from routes.schedules import schedules_bp
from routes.stations import stations_bp
from routes.transit import transit_bp
from routes.cars import cars_bp

from services.errors import TransitError, ScheduleConflict, InvariantViolation

# Background tasks / CLI
from tasks.audit import audit_schedule_overlaps, audit_route_orders


def create_app(config_object=Config) -> Flask:
    app = Flask(__name__)

    # Respect reverse proxy headers (scheme / host) for correct URL generation
    app.wsgi_app = ProxyFix(app.wsgi_app, x_proto=1, x_host=1)  # type: ignore[arg-type]

    # CORS (open for now; tighten origins for production)
    CORS(app, resources={r"/*": {"origins": "*"}})

    # Load config + init extensions
    app.config.from_object(config_object)
    db.init_app(app)
    migrate.init_app(app, db)
    socketio.init_app(app, cors_allowed_origins="*")

    with app.app_context():
        # MySQL sessions follow APP_TIMEZONE so TIME columns compare in local time
        if db.engine.dialect.name == "mysql":
            tz = app.config.get("APP_TIMEZONE", "+00:00")

            @event.listens_for(db.engine, "connect")
            def _set_session_timezone(dbapi_conn, _):
                cur = dbapi_conn.cursor()
                try:
                    cur.execute("SET time_zone = %s", (tz,))
                finally:
                    cur.close()

        # Touch models so Alembic/Flask-Migrate registers them
        _ = (User, Car, Route, Station, RouteStation, Schedule, Booking)

    # Health check
    @app.route("/")
    def health_check():
        return jsonify(status="ok"), 200

    @app.errorhandler(404)
    def handle_404(e):
        return jsonify(error="Not Found", path=request.path), 404

    # Core outcomes → 422; a broken station order is our bug → 500
    @app.errorhandler(TransitError)
    def handle_transit_error(e: TransitError):
        if isinstance(e, InvariantViolation):
            app.logger.error("[app] invariant violation on %s %s: %s", request.method, request.path, e)
            return jsonify(error="Internal error"), 500
        body = {"error": e.message}
        if isinstance(e, ScheduleConflict):
            body["conflicts"] = [s.id for s in e.conflicts]
        return jsonify(body), 422

    # Global error handler
    @app.errorhandler(Exception)
    def handle_any_error(e: Exception):
        if isinstance(e, HTTPException):
            return jsonify(error=e.description), e.code
        app.logger.exception("[app] unhandled error on %s %s", request.method, request.path)
        return jsonify(error=str(e)), 500

    # --- Debug: list routes ---
    @app.route("/__routes")
    def __routes():
        from flask import Response
        lines = []
        for rule in app.url_map.iter_rules():
            methods = ",".join(sorted(m for m in rule.methods if m not in {"HEAD", "OPTIONS"}))
            lines.append(f"{methods:10s} {rule.rule}")
        lines.sort()
        return Response("\n".join(lines), mimetype="text/plain")

    # Register blueprints
    app.register_blueprint(schedules_bp)
    app.register_blueprint(stations_bp)
    app.register_blueprint(transit_bp)
    app.register_blueprint(cars_bp)

    # CLI: scan for overlapping schedules / broken stop orders
    @app.cli.command("audit")
    def audit_cmd():
        overlaps = audit_schedule_overlaps()
        broken = audit_route_orders()
        print(f"Audit complete: {len(overlaps)} overlapping schedule pair(s), "
              f"{len(broken)} route(s) with broken station order.")

    return app


# Optional local entrypoint (useful for quick dev runs)
if __name__ == "__main__":
    app = create_app()
    # Socket.IO server (falls back to Werkzeug in dev)
    socketio.run(
        app,
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", "5000")),
        allow_unsafe_werkzeug=True,  # dev convenience
        debug=bool(os.environ.get("FLASK_DEBUG", "")),
    )
