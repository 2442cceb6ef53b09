"""
STREAMHUE - Webhook Server

Flask app receiving Streamlabs webhooks and forwarding them to the engine.
"""

import logging
import threading
from dataclasses import asdict
from typing import Optional

from flask import Flask, jsonify, request
from werkzeug.serving import make_server

from streamhue.core.orchestrator import Orchestrator
from streamhue.transport.streamlabs import normalize

logger = logging.getLogger(__name__)


def create_app(orchestrator: Orchestrator) -> Flask:
    """
    Create the webhook app.

    Routes:
        POST /webhook  Streamlabs payload, handled asynchronously
        GET  /status   Runtime counters and active effect windows
    """
    app = Flask(__name__)

    @app.route("/webhook", methods=["POST"])
    def webhook():
        payload = request.get_json(silent=True)
        try:
            events = normalize(payload)
        except ValueError as e:
            logger.warning(f"Rejected webhook payload: {e}")
            return jsonify({"error": str(e)}), 400

        logger.info(f"Received webhook: {payload.get('type')} ({len(events)} event(s))")
        for event in events:
            orchestrator.on_event(event)

        return jsonify({"accepted": len(events)}), 200

    @app.route("/status", methods=["GET"])
    def status():
        return jsonify(
            {
                "stats": asdict(orchestrator.get_stats()),
                "windows": orchestrator.describe_windows(),
            }
        )

    return app


class WebhookServer:
    """Runs the webhook app on a background thread and stops it on demand."""

    def __init__(self, app: Flask, host: str, port: int):
        self._server = make_server(host, port, app, threaded=True)
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        self._thread = threading.Thread(target=self._server.serve_forever, name="streamhue-webhook", daemon=True)
        self._thread.start()
        logger.info(f"Webhook server listening on port {self._server.server_port}")

    def stop(self) -> None:
        self._server.shutdown()
        if self._thread:
            self._thread.join(timeout=5.0)
