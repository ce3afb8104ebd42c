"""
Flask REST API routes for the task review pipeline.

This module provides HTTP endpoints for:
- Publishing tasks and reading task state
- Claiming and submitting tasks
- Claiming and deciding reviews
- Queue and pipeline statistics

The caller's identity is the ``X-Principal`` header, set by the
authenticating proxy in front of the service.

To run the server:
    python -m review_pipeline.api.routes
"""

import logging
import os

from flask import Flask, g, jsonify, request

from ..config import load_config
from ..errors import (
    AlreadyAdjudicated,
    AlreadyAssigned,
    AlreadyCompleted,
    DuplicateEntry,
    NotAssignee,
    NotFound,
    NotQueued,
    NotReviewer,
    WorkflowError,
)
from ..storage import build_engine, save_state
from ..workflows.engine import WorkflowEngine

logger = logging.getLogger(__name__)

PRINCIPAL_HEADER = "X-Principal"

ERROR_STATUS = {
    NotFound: 404,
    NotAssignee: 403,
    NotReviewer: 403,
    NotQueued: 409,
    AlreadyAssigned: 409,
    AlreadyCompleted: 409,
    AlreadyAdjudicated: 409,
    DuplicateEntry: 500,
}


class RequestIdentity:
    """Identity provider reading the principal of the current request."""

    def current_principal(self):
        return g.get("principal")


def _status_for(error: WorkflowError) -> int:
    for error_type, status in ERROR_STATUS.items():
        if isinstance(error, error_type):
            return status
    return 400


def create_app(engine: WorkflowEngine = None, state_file=None) -> Flask:
    """Create and configure the Flask application.

    Without an engine one is built from the configuration file, and state is
    saved to ``state_file`` (default: the configured one) after each change.
    """
    app = Flask(__name__)

    if engine is None:
        config = load_config()
        engine = build_engine(config, RequestIdentity())
        state_file = state_file or config.state_file

    app.config["ENGINE"] = engine
    app.config["STATE_FILE"] = state_file

    def persist() -> None:
        if app.config["STATE_FILE"]:
            save_state(engine, app.config["STATE_FILE"])

    @app.before_request
    def load_principal():
        g.principal = request.headers.get(PRINCIPAL_HEADER)

    @app.errorhandler(WorkflowError)
    def handle_workflow_error(error: WorkflowError):
        status = _status_for(error)
        if status >= 500:
            logger.error("Internal consistency fault: %s", error)
        return jsonify({"error": str(error), "code": error.code}), status

    def body() -> dict:
        return request.get_json(silent=True) or {}

    # === Health Check ===

    @app.route("/health", methods=["GET"])
    def health():
        """Health check endpoint."""
        return jsonify({"status": "healthy"})

    # === Tasks ===

    @app.route("/api/v1/tasks", methods=["POST"])
    def publish_task():
        """
        Publish a new task.

        Request body:
            image_url: Image to be described
        """
        image_url = body().get("image_url")
        if not image_url:
            return jsonify({"error": "image_url is required"}), 400

        task_id = engine.publish(image_url)
        persist()
        return jsonify({"task_id": task_id}), 201

    @app.route("/api/v1/tasks/<int:task_id>", methods=["GET"])
    def get_task(task_id: int):
        """Get a task with its review history."""
        task = engine.get_task(task_id)
        if task is None:
            return jsonify({"error": f"Task not found: {task_id}"}), 404

        data = task.to_dict()
        data["reviews"] = [r.to_dict() for r in engine.reviews_for_task(task_id)]
        return jsonify(data)

    @app.route("/api/v1/tasks/<int:task_id>/assign", methods=["POST"])
    def assign_task(task_id: int):
        """Assign a queued task to a worker."""
        worker = body().get("worker")
        if not worker:
            return jsonify({"error": "worker is required"}), 400

        engine.assign_task(task_id, worker)
        persist()
        return jsonify({"success": True})

    @app.route("/api/v1/tasks/<int:task_id>/submit", methods=["POST"])
    def submit_task(task_id: int):
        """
        Submit work on a task as the calling principal.

        Request body:
            description: A string, or a list of up to four strings/nulls
        """
        description = body().get("description")
        if description is None:
            return jsonify({"error": "description is required"}), 400
        if not isinstance(description, (str, list)):
            return jsonify({"error": "description must be a string or a list"}), 400

        try:
            review_id = engine.submit_task(task_id, description)
        except ValueError as e:
            return jsonify({"error": str(e)}), 400

        persist()
        return jsonify({"review_id": review_id}), 201

    # === Reviews ===

    @app.route("/api/v1/reviews/<int:review_id>", methods=["GET"])
    def get_review(review_id: int):
        review = engine.get_review_task(review_id)
        if review is None:
            return jsonify({"error": f"Review not found: {review_id}"}), 404
        return jsonify(review.to_dict())

    @app.route("/api/v1/reviews/<int:review_id>/assign", methods=["POST"])
    def assign_review(review_id: int):
        """Assign a queued review to a reviewer."""
        reviewer = body().get("reviewer")
        if not reviewer:
            return jsonify({"error": "reviewer is required"}), 400

        engine.assign_review_task(review_id, reviewer)
        persist()
        return jsonify({"success": True})

    @app.route("/api/v1/reviews/<int:review_id>/adjudicate", methods=["POST"])
    def adjudicate(review_id: int):
        """
        Accept or reject a review as the calling principal.

        Request body:
            accept: true to accept, false to reject
        """
        accept = body().get("accept")
        if not isinstance(accept, bool):
            return jsonify({"error": "accept must be true or false"}), 400

        future = engine.adjudicate(review_id, accept)
        persist()
        return jsonify({
            "success": True,
            "accepted": accept,
            "payout_requested": future is not None,
        })

    # === Queues & Statistics ===

    @app.route("/api/v1/queues", methods=["GET"])
    def get_queues():
        return jsonify({
            "task_queue": engine.task_queue_snapshot(),
            "review_queue": engine.review_queue_snapshot(),
        })

    @app.route("/api/v1/stats", methods=["GET"])
    def get_stats():
        """Get pipeline statistics."""
        return jsonify(engine.statistics())

    return app


def main():
    """Run the API server."""
    logging.basicConfig(level=logging.INFO)
    app = create_app()
    port = int(os.environ.get("PORT", 8000))
    debug = os.environ.get("DEBUG", "false").lower() == "true"

    logger.info("Starting task review pipeline API on port %s", port)
    app.run(host="0.0.0.0", port=port, debug=debug)


if __name__ == "__main__":
    main()
