import os

from flask import Flask, jsonify
from flask_cors import CORS

from observability import init_observability, VERSION
from listings_proxy import listings_bp
from scores_proxy import scores_bp

app = Flask(__name__)

# ============================================================
# FEEDBOARD GATEWAY
#
# - /api/listings : classifieds RSS aggregation (eBay + Craigslist)
# - /api/scores, /api/standings : ESPN live view models
# ============================================================
PORT = int(os.getenv("PORT", "3001"))
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*").split(",")

CORS(app, resources={r"/api/*": {"origins": CORS_ORIGINS}},
     methods=["GET", "OPTIONS"], allow_headers=["Content-Type"])
init_observability(app)

app.register_blueprint(listings_bp)
app.register_blueprint(scores_bp)


# ==========================
# ROUTES
# ==========================
@app.route("/")
def index():
    return jsonify({
        "name": "feedboard",
        "version": VERSION,
        "endpoints": {
            "listings": "/api/listings",
            "searches": "/api/listings/searches",
            "sports": "/api/sports",
            "scores": "/api/scores/<sport>",
            "next": "/api/scores/<sport>/next",
            "summary": "/api/scores/<sport>/<event_id>/summary",
            "standings": "/api/standings/<sport>",
        },
    })


@app.route("/health")
def health():
    return jsonify({"status": "ok", "version": VERSION})


@app.errorhandler(404)
def not_found(_e):
    return jsonify({"error": "Not found"}), 404


@app.errorhandler(405)
def method_not_allowed(_e):
    return jsonify({"error": "Method not allowed"}), 405


if __name__ == "__main__":
    print(f"\nFeedboard running at http://localhost:{PORT}")
    print(f"   API endpoint: http://localhost:{PORT}/api/listings\n")
    app.run(host="0.0.0.0", port=PORT)
