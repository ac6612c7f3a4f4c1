"""
Well Nice Concierge — Chat API Backend
Runs on port 5009 with the /api/chat endpoint.

Usage:
    python server.py

Endpoints:
    POST http://localhost:5009/api/chat
    Body: {"message": "...", "conversationId": "..."}
    GET  http://localhost:5009/api/conversations/<id>
    GET  http://localhost:5009/health
"""

from datetime import datetime, timezone

from flask import Flask, jsonify
from flask_cors import CORS

from app_config import PORT, DEBUG, ALLOWED_ORIGINS
from chat_logger import get_logger
from routes import chat_bp
from routes import chat as chat_routes

logger = get_logger("concierge")

# ═══════════════════════════════════════════
# FLASK APP
# ═══════════════════════════════════════════

app = Flask(__name__)
CORS(
    app,
    origins=ALLOWED_ORIGINS,
    methods=["GET", "POST"],
    allow_headers=["Content-Type", "Authorization"],
)
app.register_blueprint(chat_bp)


@app.route("/health", methods=["GET"])
def health():
    """Health check endpoint."""
    return jsonify({
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "conversations": len(chat_routes.conversation_store),
    })


# ═══════════════════════════════════════════
# STARTUP
# ═══════════════════════════════════════════

if __name__ == "__main__":
    logger.info("Starting Well Nice Concierge backend")
    chat_routes.conversation_store.start_background_prune()

    logger.info(f"Listening on http://localhost:{PORT} | POST /api/chat | GET /health")
    app.run(
        host="0.0.0.0",
        port=PORT,
        debug=DEBUG,
    )
