"""
HTTP trigger for Property Alerts.

A small Flask app exposing the batch processor to schedulers and admin
tools:
- OPTIONS /process-property-alerts: CORS preflight
- POST /process-property-alerts: process one batch, return aggregate counts
- GET /health: liveness check
"""

import logging
from typing import Callable, Optional
from flask import Flask, jsonify, request

from .models import ProcessingSummary
from .pipeline import process_pending_alerts

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}

BatchRunner = Callable[[], ProcessingSummary]


def create_app(run_batch: Optional[BatchRunner] = None) -> Flask:
    """
    Create the Flask app.

    Args:
        run_batch: Callable processing one batch (defaults to the Supabase-backed pipeline)
    """
    app = Flask(__name__)
    runner = run_batch or process_pending_alerts

    @app.route("/", methods=["OPTIONS", "POST"])
    @app.route("/process-property-alerts", methods=["OPTIONS", "POST"])
    def process_property_alerts():
        if request.method == "OPTIONS":
            return "ok", 200, CORS_HEADERS

        try:
            summary = runner()
        except Exception as e:
            logger.error(f"Property alert processing error: {e}")
            return jsonify({"error": str(e) or "Unknown error"}), 500, CORS_HEADERS

        if not summary.jobs and not summary.skipped_jobs:
            message = "No pending alert jobs"
        else:
            message = "Property alerts processed successfully"

        body = {"success": True, "message": message, **summary.to_response()}
        return jsonify(body), 200, CORS_HEADERS

    @app.route("/health")
    def health_check():
        """Health check endpoint."""
        return {"status": "ok"}

    return app


def run_server(host: str = "0.0.0.0", port: int = 8000, debug: bool = False):
    """Run the Flask server."""
    create_app().run(host=host, port=port, debug=debug)


def main():
    """CLI entry point for the HTTP trigger."""
    import argparse

    parser = argparse.ArgumentParser(description="Property Alerts HTTP Trigger")
    parser.add_argument("--host", default="0.0.0.0", help="Host to bind to")
    parser.add_argument("--port", type=int, default=8000, help="Port to bind to")
    parser.add_argument("--debug", action="store_true", help="Enable debug mode")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    )

    logger.info(f"Starting property alerts server on {args.host}:{args.port}")
    run_server(args.host, args.port, args.debug)


if __name__ == "__main__":
    main()
