"""
Flask JSON app for the media approval & leave workflow.

Overview
--------
Members submit poster/video items and leave requests; support approvers
(secretary, JQC, unit leads) endorse them and the chief gives the final
approval. This module is presentation glue only: it parses requests, calls
`Identity` / `WorkflowEngine`, and serializes the results.

Non-functional notes
--------------------
* Session state (`currentUser`, `isLoggedIn`) lives in the signed Flask cookie,
  one per browser. Submissions and leaves live in JSON files under DATA_DIR.
* Every workflow error becomes `{"error": code, "message": ...}` with the
  matching HTTP status; nothing here is fatal.
* Access control is route-level via `login_required`; role checks happen inside
  the engine so no route can skip them.
"""

from __future__ import annotations

# =========================
# Standard Library Imports
# =========================
import logging
from calendar import monthrange
from datetime import MAXYEAR, MINYEAR, date, datetime
from functools import wraps
from typing import Any, Dict, List, Optional


# =========================
# Third-Party Imports
# =========================
from flask import Flask, current_app, g, jsonify, request


# =========================
# Local Modules
# =========================
from config import Config
from errors import InvalidInput, WorkflowError
from identity import Identity
from storage import FlaskSessionStore, JsonFileStore
from workflow import WorkflowEngine

logger = logging.getLogger(__name__)


# =========================
# App Factory
# =========================
def create_app(config_object: Any = None, store=None) -> Flask:
    """
    Build the app.
    - `config_object`: class or import path passed to `app.config.from_object`.
    - `store`: key-value store for workflow collections; defaults to JSON files
      under DATA_DIR.
    """
    app = Flask(__name__)
    app.config.from_object(config_object or Config)
    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app.extensions["workflow_store"] = store if store is not None else JsonFileStore(app.config["DATA_DIR"])

    app.register_error_handler(WorkflowError, _handle_workflow_error)
    _register_routes(app)
    return app


def _handle_workflow_error(exc: WorkflowError):
    logger.debug("%s on %s: %s", exc.code, request.path, exc.message)
    return jsonify(exc.to_dict()), exc.status_code


# =========================
# Request-scoped services
# =========================
def get_identity() -> Identity:
    """Identity bound to this browser's cookie session (restored once per request)."""
    if "identity" not in g:
        g.identity = Identity(FlaskSessionStore())
        g.identity.restore_session()
    return g.identity


def get_engine() -> WorkflowEngine:
    if "engine" not in g:
        g.engine = WorkflowEngine(get_identity(), current_app.extensions["workflow_store"])
    return g.engine


def login_required(view_fn):
    """Decorator: require a restored session; raises Unauthenticated (401) otherwise."""
    @wraps(view_fn)
    def wrapped(*args, **kwargs):
        get_identity().require_session()
        return view_fn(*args, **kwargs)
    return wrapped


def _form() -> Dict[str, Any]:
    """Accept JSON object bodies or classic form posts. Other JSON shapes count as empty."""
    payload = request.get_json(silent=True)
    if payload is None:
        return request.form.to_dict()
    return payload if isinstance(payload, dict) else {}


def _dump(items) -> List[Dict[str, Any]]:
    return [item.to_dict() for item in items]


def _leave_dict(leave) -> Dict[str, Any]:
    return {**leave.to_dict(), "duration": leave.duration}


def month_bounds(year: int, month: int):
    """
    Return (first_day, num_days, start_weekday) for a given month.
    - start_weekday: 0..6, Sunday=0
    """
    first_day = date(year, month, 1)
    _, num_days = monthrange(year, month)
    start_weekday = (first_day.weekday() + 1) % 7
    return first_day, num_days, start_weekday


# =========================
# Routes
# =========================
def _register_routes(app: Flask) -> None:

    # ---- Auth ---------------------------------------------------------------
    @app.route("/login", methods=["POST"])
    def login():
        data = _form()
        session = get_identity().authenticate(data.get("username"), data.get("password"))
        return jsonify({"user": session.to_dict(), "isLoggedIn": True})

    @app.route("/logout", methods=["POST"])
    def logout():
        get_identity().end_session()
        return jsonify({"isLoggedIn": False})

    @app.route("/me")
    @login_required
    def me():
        identity = get_identity()
        return jsonify({
            "user": identity.current_user.to_dict(),
            "isLoggedIn": True,
            "capabilities": identity.capabilities(),
        })

    # ---- Dashboard ----------------------------------------------------------
    @app.route("/dashboard")
    @login_required
    def dashboard():
        engine = get_engine()
        if current_app.config.get("SEED_SAMPLE_DATA"):
            engine.seed_sample_data()
        return jsonify({
            "stats": engine.stats(),
            "recentActivity": engine.recent_activity(),
        })

    # ---- Submissions --------------------------------------------------------
    @app.route("/submissions", methods=["GET"])
    @login_required
    def list_submissions():
        items = get_engine().filter_submissions(request.args.get("filter", "all"))
        return jsonify({"submissions": _dump(items)})

    @app.route("/submissions", methods=["POST"])
    @login_required
    def create_submission():
        data = _form()
        media_type = data.get("uploadMethod") or "file"
        is_link = isinstance(media_type, str) and media_type.strip().lower() == "link"
        url = data.get("link") if is_link else data.get("file")
        sub = get_engine().create_submission(
            type=data.get("type"),
            title=data.get("title"),
            description=data.get("description", ""),
            media_type=media_type,
            media_url=url,
        )
        return jsonify({"submission": sub.to_dict()}), 201

    @app.route("/submissions/<submission_id>/support", methods=["POST"])
    @login_required
    def support_submission(submission_id: str):
        sub = get_engine().support_approve_submission(submission_id)
        return jsonify({"submission": sub.to_dict()})

    @app.route("/submissions/<submission_id>/approve", methods=["POST"])
    @login_required
    def approve_submission(submission_id: str):
        sub = get_engine().approve_submission(submission_id)
        return jsonify({"submission": sub.to_dict()})

    @app.route("/approvals")
    @login_required
    def approvals():
        engine = get_engine()
        return jsonify({
            "pending": _dump(engine.pending_approvals()),
            "queue": engine.approval_queue(),
        })

    # ---- Leaves -------------------------------------------------------------
    @app.route("/leaves", methods=["GET"])
    @login_required
    def list_leaves():
        engine = get_engine()
        return jsonify({
            "myLeaves": [_leave_dict(l) for l in engine.my_leaves()],
            "pendingLeaves": [_leave_dict(l) for l in engine.pending_leaves()],
        })

    @app.route("/leaves", methods=["POST"])
    @login_required
    def create_leave():
        data = _form()
        leave = get_engine().create_leave(
            type=data.get("leaveType") or data.get("type"),
            start_date=data.get("startDate"),
            end_date=data.get("endDate"),
            reason=data.get("reason", ""),
        )
        return jsonify({"leave": _leave_dict(leave)}), 201

    @app.route("/leaves/<leave_id>/support", methods=["POST"])
    @login_required
    def support_leave(leave_id: str):
        return jsonify({"leave": _leave_dict(get_engine().support_approve_leave(leave_id))})

    @app.route("/leaves/<leave_id>/approve", methods=["POST"])
    @login_required
    def approve_leave(leave_id: str):
        return jsonify({"leave": _leave_dict(get_engine().approve_leave(leave_id))})

    # ---- Calendar -----------------------------------------------------------
    @app.route("/calendar")
    @login_required
    def calendar_view():
        """
        Month grid of approved leave:
          - Supports ?year=YYYY&month=1..12, defaulting to the current month.
          - Leading None cells pad the first week (Sunday first).
        """
        today = date.today()
        try:
            year = int(request.args.get("year", today.year))
            month = int(request.args.get("month", today.month))
            if month < 1 or month > 12:
                raise ValueError
            # date() only accepts years 1..9999
            if not (MINYEAR <= year <= MAXYEAR):
                raise ValueError
        except ValueError:
            year, month = today.year, today.month

        first_day, num_days, start_weekday = month_bounds(year, month)
        covered = get_engine().covered_days(year, month)
        cells: List[Optional[Dict[str, Any]]] = [None] * start_weekday
        for day in range(1, num_days + 1):
            cell_date = date(year, month, day)
            cells.append({
                "date": cell_date.isoformat(),
                "day": day,
                "has_event": day in covered,
                "is_today": cell_date == today,
            })

        prev_year, prev_month = (year - 1, 12) if month == 1 else (year, month - 1)
        next_year, next_month = (year + 1, 1) if month == 12 else (year, month + 1)
        return jsonify({
            "year": year,
            "month": month,
            "month_name": first_day.strftime("%B"),
            "cells": cells,
            "prev": {"year": prev_year, "month": prev_month},
            "next": {"year": next_year, "month": next_month},
        })

    @app.route("/calendar/<day>")
    @login_required
    def calendar_day(day: str):
        try:
            parsed = datetime.strptime(day, "%Y-%m-%d").date()
        except ValueError:
            raise InvalidInput("Dates must be in YYYY-MM-DD format.")
        leaves = get_engine().leaves_on(parsed)
        return jsonify({
            "date": parsed.isoformat(),
            "leaves": [_leave_dict(l) for l in leaves],
        })


if __name__ == "__main__":
    create_app().run(debug=True)
