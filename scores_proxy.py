"""
scores_proxy.py — Live Sports View Models
═══════════════════════════════════════════

JSON view models over ESPN's public scoreboard and standings API,
one set of routes shared by every supported sport.

Routes:
  GET /api/sports                               — Supported sport keys
  GET /api/scores/<sport>                       — Scoreboard (optional ?dates=YYYYMMDD)
  GET /api/scores/<sport>/next                  — Next upcoming event
  GET /api/scores/<sport>/<event_id>/summary    — Box score team stats
  GET /api/standings/<sport>                    — Grouped standings

Upstream failures return 502, unknown sports 404.
"""

import logging
from functools import wraps

import requests
from flask import Blueprint, request, jsonify

from feed_engine import scores

log = logging.getLogger("scores")

scores_bp = Blueprint("scores", __name__)


def upstream_guard(f):
    """Decorator: maps unknown sports to 404 and ESPN failures to 502."""
    @wraps(f)
    def decorated(sport, *args, **kwargs):
        try:
            return f(sport, *args, **kwargs)
        except scores.UnknownSport:
            return jsonify({"error": f"Unknown sport '{sport}'", "sports": sorted(scores.SPORTS)}), 404
        except (requests.RequestException, ValueError) as e:
            log.error(f"Error fetching {sport} data: {e}")
            return jsonify({"error": f"Upstream fetch failed: {e}"}), 502
    return decorated


@scores_bp.route("/api/sports", methods=["GET"])
def sports():
    return jsonify({
        "sports": [
            {"id": key, "name": info["label"], "kind": info["kind"]}
            for key, info in scores.SPORTS.items()
        ]
    })


@scores_bp.route("/api/scores/<sport>", methods=["GET"])
@upstream_guard
def scoreboard(sport):
    dates = request.args.get("dates", "").strip() or None
    events = scores.fetch_scoreboard(sport, dates)
    return jsonify({
        "sport": sport,
        "events": events,
        "count": len(events),
        "live": sum(1 for e in events if e["isLive"]),
    })


@scores_bp.route("/api/scores/<sport>/next", methods=["GET"])
@upstream_guard
def next_event(sport):
    return jsonify(scores.next_event(sport))


@scores_bp.route("/api/scores/<sport>/<event_id>/summary", methods=["GET"])
@upstream_guard
def summary(sport, event_id):
    return jsonify(scores.fetch_game_summary(sport, event_id))


@scores_bp.route("/api/standings/<sport>", methods=["GET"])
@upstream_guard
def standings(sport):
    return jsonify(scores.fetch_standings(sport))
