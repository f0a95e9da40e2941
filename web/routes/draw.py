"""Draw control API.

Request handlers run on aiohttp-wsgi worker threads while the engine lives on
the asyncio loop, so every engine call goes through ``call_in_loop``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Tuple

from flask import Blueprint, Response, current_app, jsonify, request

from core.constants import DrawMode
from core.exceptions import DrawEngineError, InvalidSpecError, SessionError
from services import call_in_loop
from services.export import export_filename, iter_winners_csv, public_board
from services.session_store import SessionData, apply_session, capture_session

if TYPE_CHECKING:
    from services.draw_engine import DrawEngine, DrawSnapshot


draw_bp = Blueprint("draw", __name__, url_prefix="/api")

# Engine calls normally return immediately; the timeout guards a stalled loop
ENGINE_TIMEOUT = 10.0


def _engine() -> "DrawEngine":
    return current_app.config["DRAW_ENGINE"]


def _json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _parse_mode(value: Any):
    if value in (None, ""):
        return None
    try:
        return DrawMode(str(value).strip().lower())
    except ValueError:
        raise InvalidSpecError(f"Unknown draw mode: {value}") from None


def _read_state(engine: "DrawEngine") -> Dict[str, Any]:
    data = engine.snapshot().to_dict()
    data["title"] = engine.title
    data["input_value"] = engine.input_value
    return data


def _state() -> Dict[str, Any]:
    return call_in_loop(_read_state, _engine(), timeout=ENGINE_TIMEOUT)


def _snapshot_and_title() -> Tuple["DrawSnapshot", str]:
    engine = _engine()
    return call_in_loop(lambda: (engine.snapshot(), engine.title), timeout=ENGINE_TIMEOUT)


def _busy():
    return jsonify({
        "ok": False,
        "error": "busy",
        "message": "A draw is already in progress.",
    }), 409


@draw_bp.errorhandler(DrawEngineError)
def handle_draw_error(error: DrawEngineError):
    status = 400 if isinstance(error, InvalidSpecError) else 409
    current_app.logger.info(f"Draw request rejected ({error.kind}): {error}")
    return jsonify({"ok": False, "error": error.kind, "message": str(error)}), status


@draw_bp.errorhandler(SessionError)
def handle_session_error(error: SessionError):
    current_app.logger.warning(f"Session rejected: {error}")
    return jsonify({"ok": False, "error": error.kind, "message": str(error)}), 400


@draw_bp.route("/state")
def get_state():
    return jsonify(_state())


@draw_bp.route("/entries", methods=["POST"])
def configure_entries():
    """Replace the entry pool from a range ("1-500") or a comma separated list."""
    body = _json_body()
    spec = body.get("spec")
    if not isinstance(spec, str):
        raise InvalidSpecError("Provide the entries as a text specification.")
    mode = _parse_mode(body.get("mode"))
    engine = _engine()
    call_in_loop(engine.configure_entries, spec, mode, timeout=ENGINE_TIMEOUT)
    return jsonify({"ok": True, "state": _state()})


@draw_bp.route("/entries/import", methods=["POST"])
def import_entries():
    """Replace the entry pool from an uploaded text file, one entry per line."""
    if 'file' not in request.files or not request.files['file'].filename:
        raise InvalidSpecError("Upload a text file with one entry per line.")
    file = request.files['file']
    try:
        text = file.stream.read().decode('utf-8-sig')
    except UnicodeDecodeError:
        raise InvalidSpecError("The uploaded file is not UTF-8 text.") from None

    lines = [line.strip() for line in text.splitlines() if line.strip()]
    mode = _parse_mode(request.form.get("mode"))
    engine = _engine()
    pool = call_in_loop(engine.configure_entries_from_lines, lines, mode, timeout=ENGINE_TIMEOUT)
    current_app.logger.info(f"Imported {pool.total_count} entries from {file.filename}")
    return jsonify({"ok": True, "imported": pool.total_count, "state": _state()})


@draw_bp.route("/prizes", methods=["POST"])
def configure_prizes():
    body = _json_body()
    names = body.get("prizes")
    if isinstance(names, str):
        names = [name.strip() for name in names.split(",") if name.strip()]
    if not isinstance(names, list) or not all(isinstance(name, str) for name in names):
        raise InvalidSpecError("Provide the prizes as a list of names.")
    engine = _engine()
    call_in_loop(engine.configure_prizes, names, timeout=ENGINE_TIMEOUT)
    return jsonify({"ok": True, "state": _state()})


@draw_bp.route("/winners-per-prize", methods=["POST"])
def set_winners_per_prize():
    count = _json_body().get("count")
    engine = _engine()
    call_in_loop(engine.set_winners_per_prize, count, timeout=ENGINE_TIMEOUT)
    return jsonify({"ok": True, "state": _state()})


@draw_bp.route("/draw", methods=["POST"])
def start_draw():
    """Start the next draw on the event loop and return before the reveal ends."""
    engine = _engine()
    started = call_in_loop(lambda: engine.begin_draw() is not None, timeout=ENGINE_TIMEOUT)
    if not started:
        return _busy()
    return jsonify({"ok": True, "state": _state()}), 202


@draw_bp.route("/undo", methods=["POST"])
def undo():
    engine = _engine()
    batch = call_in_loop(engine.undo, timeout=ENGINE_TIMEOUT)
    if batch is None:
        return _busy()
    return jsonify({"ok": True, "undone": batch.to_dict(), "state": _state()})


@draw_bp.route("/reset", methods=["POST"])
def reset():
    engine = _engine()
    call_in_loop(engine.reset, timeout=ENGINE_TIMEOUT)
    return jsonify({"ok": True, "state": _state()})


@draw_bp.route("/public")
def public():
    """Read-only board for the audience screen."""
    snapshot, title = _snapshot_and_title()
    return jsonify(public_board(snapshot, title))


@draw_bp.route("/export/winners.csv")
def export_winners():
    snapshot, title = _snapshot_and_title()
    return Response(iter_winners_csv(snapshot.history), mimetype="text/csv; charset=utf-8", headers={
        "Content-Disposition": f"attachment; filename={export_filename(title)}"
    })


@draw_bp.route("/session")
def get_session():
    data = call_in_loop(capture_session, _engine(), timeout=ENGINE_TIMEOUT)
    return jsonify(data.to_dict())


@draw_bp.route("/session", methods=["POST"])
def load_session():
    """Replace the draw state with an uploaded session document."""
    raw = request.get_json(silent=True)
    data = SessionData.from_dict(raw)
    engine = _engine()
    call_in_loop(apply_session, engine, data, timeout=ENGINE_TIMEOUT)

    store = current_app.config.get("SESSION_STORE")
    saved = False
    if store is not None:
        saved = store.save(call_in_loop(capture_session, engine, timeout=ENGINE_TIMEOUT))
    current_app.logger.info(f"Session loaded via API: {len(data.winners_history)} batches")
    return jsonify({"ok": True, "saved": saved, "state": _state()})
