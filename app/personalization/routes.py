"""
Personalization Routes

Flask routes mirroring the personalization engine operations. The user is
identified by the ``uid`` cookie, and each user's state lives in their own
JSON file.
"""

import json
import logging

from flask import Blueprint, request, jsonify
from pydantic import ValidationError

from personalization_service.models.items import CacheEntry
from personalization_service.models.rails import Row

from .models import (
    CacheWriteRequest,
    DynamicRailsRequest,
    InteractionPayload,
    ItemsRequest,
    ReorderRequest,
    SeenRequest,
    VoteRequest,
)
from .services import EngineRegistry, is_valid_uid

logger = logging.getLogger(__name__)


def _request_json() -> dict:
    payload = request.get_json(silent=True)
    if payload is None:
        raw = request.get_data(as_text=True) or "{}"
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError:
            payload = {}
    return payload if isinstance(payload, dict) else {}


def _uid_error():
    uid = request.cookies.get("uid")
    if not uid:
        return jsonify({"error": "no-uid"}), 400
    if not is_valid_uid(uid):
        return jsonify({"error": "invalid-uid"}), 400
    return None


def create_personalization_blueprint(registry: EngineRegistry):
    """Create a Flask blueprint for the personalization routes.

    Args:
        registry: Per-user engine registry

    Returns:
        Flask blueprint with personalization routes
    """
    bp = Blueprint('personalization', __name__)

    def current_engine():
        return registry.get(request.cookies["uid"])

    # Interactions --------------------------------------------------------------

    @bp.route("/interactions", methods=["POST"])
    def track_interaction():
        """Record one interaction. Tracking is best-effort, so invalid input still answers ok."""
        error = _uid_error()
        if error:
            return error

        try:
            payload = InteractionPayload.model_validate(_request_json())
        except ValidationError as exc:
            logger.debug(f"Ignoring malformed interaction: {exc.error_count()} error(s)")
            return jsonify({"status": "ok", "recorded": False})

        try:
            engine = current_engine()
            recorded = engine.track(payload.type, payload.event_data())
            if recorded:
                engine.flush()
            return jsonify({"status": "ok", "recorded": recorded})
        except Exception as exc:
            return jsonify({"error": str(exc)}), 400

    @bp.route("/interactions", methods=["GET"])
    def list_interactions():
        error = _uid_error()
        if error:
            return error

        try:
            limit = request.args.get("limit", type=int)
            interactions = current_engine().read_interactions()
            if limit:
                interactions = interactions[-limit:]
            return jsonify({
                "status": "ok",
                "interactions": [event.to_dict() for event in interactions]
            })
        except Exception as exc:
            return jsonify({"error": str(exc)}), 400

    @bp.route("/interactions", methods=["DELETE"])
    def clear_interactions():
        """Privacy reset for the current user."""
        error = _uid_error()
        if error:
            return error

        try:
            current_engine().clear_all_interactions()
            return jsonify({"status": "ok"})
        except Exception as exc:
            return jsonify({"error": str(exc)}), 400

    @bp.route("/interactions/stats", methods=["GET"])
    def interaction_stats():
        error = _uid_error()
        if error:
            return error

        try:
            return jsonify({"status": "ok", "stats": current_engine().interaction_stats()})
        except Exception as exc:
            return jsonify({"error": str(exc)}), 400

    # Scoring and rails ---------------------------------------------------------

    @bp.route("/affinity", methods=["GET"])
    def get_affinity():
        error = _uid_error()
        if error:
            return error

        try:
            half_life = request.args.get("half_life_days", type=float)
            profile = current_engine().compute_affinity(half_life)
            return jsonify({"status": "ok", "affinity": profile.to_dict()})
        except Exception as exc:
            return jsonify({"error": str(exc)}), 400

    @bp.route("/rows/reorder", methods=["POST"])
    def reorder():
        error = _uid_error()
        if error:
            return error

        try:
            body = ReorderRequest.model_validate(_request_json())
            rows = [Row.from_dict(row) for row in body.rows]
            engine = current_engine()
            options = engine.reorder_options(body.discovery_floor, body.half_life_days)
            ordered = engine.reorder_rows(rows, body.inventory, options)
            return jsonify({"status": "ok", "rows": [row.to_dict() for row in ordered]})
        except Exception as exc:
            return jsonify({"error": str(exc)}), 400

    @bp.route("/rails/dynamic", methods=["POST"])
    def dynamic_rails():
        error = _uid_error()
        if error:
            return error

        try:
            body = DynamicRailsRequest.model_validate(_request_json())
            rails = current_engine().manage_dynamic_rails(body.core_categories, body.inventory)
            return jsonify({"status": "ok", "rails": [rail.to_dict() for rail in rails]})
        except Exception as exc:
            return jsonify({"error": str(exc)}), 400

    @bp.route("/rails/personalized", methods=["POST"])
    def personalized_rails():
        error = _uid_error()
        if error:
            return error

        try:
            body = ItemsRequest.model_validate(_request_json())
            rails = current_engine().personalized_rails(body.items)
            return jsonify({"status": "ok", "rails": [rail.to_dict() for rail in rails]})
        except Exception as exc:
            return jsonify({"error": str(exc)}), 400

    # Votes ---------------------------------------------------------------------

    @bp.route("/votes", methods=["POST"])
    def cast_vote():
        error = _uid_error()
        if error:
            return error

        try:
            body = VoteRequest.model_validate(_request_json())
            record = current_engine().vote(body.event_id, body.vote, body.event)
            return jsonify({
                "status": "ok",
                "vote": record.to_dict() if record else None
            })
        except Exception as exc:
            return jsonify({"error": str(exc)}), 400

    @bp.route("/votes/toggle", methods=["POST"])
    def toggle_vote():
        error = _uid_error()
        if error:
            return error

        try:
            body = VoteRequest.model_validate(_request_json())
            direction = current_engine().toggle_vote(body.event_id, body.vote, body.event)
            return jsonify({
                "status": "ok",
                "eventId": body.event_id,
                "vote": direction.value if direction else None
            })
        except Exception as exc:
            return jsonify({"error": str(exc)}), 400

    @bp.route("/votes/downvoted", methods=["GET"])
    def downvoted():
        error = _uid_error()
        if error:
            return error

        try:
            ids = sorted(current_engine().get_downvoted_ids())
            return jsonify({"status": "ok", "ids": ids})
        except Exception as exc:
            return jsonify({"error": str(exc)}), 400

    @bp.route("/votes/<event_id>", methods=["GET"])
    def get_vote(event_id):
        error = _uid_error()
        if error:
            return error

        try:
            direction = current_engine().get_vote(event_id)
            return jsonify({
                "status": "ok",
                "eventId": event_id,
                "vote": direction.value if direction else None
            })
        except Exception as exc:
            return jsonify({"error": str(exc)}), 400

    # Seen filter ---------------------------------------------------------------

    @bp.route("/seen", methods=["POST"])
    def mark_seen():
        error = _uid_error()
        if error:
            return error

        try:
            body = SeenRequest.model_validate(_request_json())
            current_engine().mark_many_seen(body.ids, body.source)
            return jsonify({"status": "ok", "marked": len(body.ids)})
        except Exception as exc:
            return jsonify({"error": str(exc)}), 400

    @bp.route("/seen/filter", methods=["POST"])
    def filter_seen():
        error = _uid_error()
        if error:
            return error

        try:
            body = ItemsRequest.model_validate(_request_json())
            return jsonify({"status": "ok", "items": current_engine().filter_unseen(body.items)})
        except Exception as exc:
            return jsonify({"error": str(exc)}), 400

    @bp.route("/seen/stats", methods=["GET"])
    def seen_stats():
        error = _uid_error()
        if error:
            return error

        try:
            return jsonify({"status": "ok", "stats": current_engine().seen.get_stats()})
        except Exception as exc:
            return jsonify({"error": str(exc)}), 400

    # Cache ---------------------------------------------------------------------

    @bp.route("/cache", methods=["GET"])
    def read_cache():
        error = _uid_error()
        if error:
            return error

        try:
            category = request.args.get("category", "").strip()
            if not category:
                return jsonify({"error": "category is required"}), 400
            engine = current_engine()
            key = engine.cache_key(
                category,
                request.args.get("lat", type=float),
                request.args.get("lng", type=float),
            )
            entry = engine.read_cache(key)
            return jsonify({"status": "ok", "key": key, "entry": entry.to_dict() if entry else None})
        except Exception as exc:
            return jsonify({"error": str(exc)}), 400

    @bp.route("/cache", methods=["POST"])
    def write_cache():
        error = _uid_error()
        if error:
            return error

        try:
            body = CacheWriteRequest.model_validate(_request_json())
            engine = current_engine()
            key = engine.cache_key(body.category, body.lat, body.lng)
            entry = CacheEntry(key=key, ts=engine.clock(), events=body.events)
            stored = engine.write_cache(entry, body.ttl_minutes, body.cap)
            return jsonify({"status": "ok", "key": key, "entry": stored.to_dict() if stored else None})
        except Exception as exc:
            return jsonify({"error": str(exc)}), 400

    return bp
