import os

import click
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException
from config import Config
from routes import health_bp, timeslots_bp, bookings_bp, users_bp, audit_bp

from models import db
from flask_migrate import Migrate
from services import slot_store, reconciliation
from services.errors import ServiceError
from services.slot_generator import generate_daily_slots, format_time


def create_app(overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(timeslots_bp)
    app.register_blueprint(bookings_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(audit_bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    @app.errorhandler(ServiceError)
    def _service_error(err):
        return jsonify(error=err.message), err.status_code

    @app.errorhandler(Exception)
    def _unexpected_error(err):
        if isinstance(err, HTTPException):
            return jsonify(error=err.description), err.code
        db.session.rollback()
        app.logger.exception("Unhandled error")
        return jsonify(error="Internal server error"), 500

    @app.after_request
    def _api_headers(resp):
        for name, value in app.config["RESPONSE_HEADERS"].items():
            resp.headers.setdefault(name, value)
        return resp

    register_cli(app)
    return app


def register_cli(app):
    @app.cli.command("generate-slots")
    @click.argument("date")
    @click.option("--start-hour", type=int, default=None)
    @click.option("--end-hour", type=int, default=None)
    @click.option("--lesson-minutes", type=int, default=None)
    @click.option("--break-minutes", type=int, default=None)
    @click.option("--dry-run", is_flag=True, help="Print the windows without saving them.")
    def generate_slots(date, start_hour, end_hour, lesson_minutes, break_minutes, dry_run):
        """Create the day's lesson slots for DATE (YYYY-MM-DD)."""
        cfg = app.config
        try:
            windows = generate_daily_slots(
                date,
                start_hour=cfg["SLOT_DAY_START_HOUR"] if start_hour is None else start_hour,
                end_hour=cfg["SLOT_DAY_END_HOUR"] if end_hour is None else end_hour,
                lesson_duration_minutes=lesson_minutes or cfg["SLOT_LESSON_MINUTES"],
                break_duration_minutes=break_minutes or cfg["SLOT_BREAK_MINUTES"],
            )
        except ServiceError as err:
            raise click.BadParameter(err.message)

        if dry_run:
            for w in windows:
                click.echo(f"{w['date']} {format_time(w['startTime'])} - {format_time(w['endTime'])}")
            click.echo(f"{len(windows)} window(s)")
            return

        created = slot_store.create_batch(windows) if windows else []
        click.echo(f"Created {len(created)} of {len(windows)} slot(s) for {date}")

    @app.cli.command("dedupe-slots")
    @click.option("--date", default=None, help="Only reconcile this date (YYYY-MM-DD).")
    def dedupe_slots(date):
        """Delete duplicate slots, keeping the oldest of each window."""
        groups = reconciliation.find_duplicate_groups(date)
        total = 0
        for g in groups:
            result = reconciliation.delete_duplicates(g["date"], g["startTime"], g["endTime"])
            total += result["deleted"]
            click.echo(
                f"{g['date']} {g['startTime']}-{g['endTime']}: "
                f"kept {result['keptSlotId']}, deleted {result['deletedIds']}"
            )
        click.echo(f"Deleted {total} duplicate slot(s)")

    @app.cli.command("sync-slot-flags")
    @click.option("--date", default=None, help="Only check this date (YYYY-MM-DD).")
    def sync_slot_flags(date):
        """Recompute slot booked flags from active bookings."""
        try:
            result = reconciliation.sync_slot_flags(date)
        except ServiceError as err:
            raise click.BadParameter(err.message)
        click.echo(f"Checked {result['checked']} slot(s), fixed {result['fixed']}")


if __name__ == "__main__":
    create_app().run(host="127.0.0.1", port=int(os.getenv("PORT", "5002")))
