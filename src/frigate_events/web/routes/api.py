"""API blueprint: feed, refresh, facets, selection, settings, version, status."""

import logging
import threading
import time
from datetime import timedelta

from flask import Blueprint, jsonify, request

from frigate_events.errors import FrigateAPIError
from frigate_events.logging_utils import error_buffer
from frigate_events.models import FACETS
from frigate_events.services.frigate_api import validate_base_url

logger = logging.getLogger("frigate-events")


def create_bp(coordinator):
    """Create API blueprint with routes closed over the feed coordinator."""
    bp = Blueprint("api", __name__)
    store = coordinator.store
    repository = coordinator.repository
    facet_tracker = coordinator.facet_tracker

    def _bad_facet(facet: str):
        return jsonify({"status": "error", "message": f"Unknown facet: {facet}"}), 400

    @bp.route("/feed")
    def feed():
        return jsonify(coordinator.snapshot())

    @bp.route("/refresh", methods=["POST"])
    def refresh():
        error = coordinator.refresh()
        return jsonify({"error": error})

    @bp.route("/facets")
    def facets():
        return jsonify({
            "available": facet_tracker.available().to_dict(),
            "selected": store.selection().to_dict(),
        })

    @bp.route("/selection/<facet>", methods=["POST"])
    def update_selection(facet):
        """Body {"value": str, "selected": bool} toggles one value;
        {"values": [str, ...]} replaces the facet's selection.
        """
        if facet not in FACETS:
            return _bad_facet(facet)
        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            return jsonify({"status": "error", "message": "Expected a JSON object"}), 400
        if "values" in body:
            values = body["values"]
            if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
                return jsonify({"status": "error", "message": "'values' must be a list of strings"}), 400
            store.replace_selected(facet, set(values))
        else:
            value = body.get("value")
            selected = body.get("selected", True)
            if not isinstance(value, str) or not value or not isinstance(selected, bool):
                return jsonify({"status": "error", "message": "Expected 'value' (string) and 'selected' (bool)"}), 400
            store.set_selected(facet, value, selected)
        return jsonify({"status": "success", "selected": store.selection().to_dict()})

    @bp.route("/selection/<facet>", methods=["DELETE"])
    def clear_selection(facet):
        if facet not in FACETS:
            return _bad_facet(facet)
        store.clear_selected(facet)
        return jsonify({"status": "success", "selected": store.selection().to_dict()})

    @bp.route("/settings/frigate-url", methods=["GET", "PUT"])
    def frigate_url():
        if request.method == "GET":
            return jsonify({"url": store.get_base_url()})
        body = request.get_json(silent=True) or {}
        url = body.get("url") if isinstance(body, dict) else None
        if not isinstance(url, str):
            return jsonify({"status": "error", "message": "Expected 'url' (string)"}), 400
        try:
            validated = validate_base_url(url)
        except FrigateAPIError as e:
            return jsonify({"status": "error", "message": e.message}), 400
        store.set_base_url(validated)
        return jsonify({"status": "success", "url": validated})

    @bp.route("/version")
    def version():
        try:
            return jsonify({"version": repository.fetch_version_string()})
        except FrigateAPIError as e:
            logger.debug("Version fetch for display failed: %s", e.message)
            return jsonify({"error": e.message}), 502

    @bp.route("/status")
    def status():
        uptime_seconds = time.time() - coordinator.started_at
        negotiator = repository.version_negotiator
        resolved = negotiator.resolved
        return jsonify({
            "uptime": str(timedelta(seconds=int(uptime_seconds))),
            "polling": coordinator.running,
            "frigate_url": repository.base_url,
            "frigate_version": str(resolved) if resolved is not None else None,
            "frigate_version_defaulted": negotiator.used_default,
            "first_launch": bool(coordinator.config.get("FIRST_LAUNCH", False)),
            "finished_refresh_count": coordinator.finished_refresh_count,
            "active_threads": threading.active_count(),
            "recent_errors": error_buffer.get_all()[:5],
        })

    return bp
