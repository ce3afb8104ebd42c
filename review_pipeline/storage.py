"""JSON state file persistence for the workflow engine.

The state file keeps both record maps, the order of both queues and the id
counters, so an engine rebuilt from it hands out the same next ids and
serves work in the same order.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

import jsonschema

from .collaborators import Clock, IdentityProvider
from .config import PipelineConfig
from .errors import ConfigError
from .models.review import ReviewTask
from .models.task import Task
from .workflows.engine import WorkflowEngine
from .workflows.payout import LedgerSettlement, PayoutTrigger, Settlement
from .workflows.queue import WorkQueue
from .workflows.stores import ReviewStore, TaskStore

logger = logging.getLogger(__name__)

STATE_VERSION = 1

_ID_LIST = {
    "type": "array",
    "items": {"type": "integer", "minimum": 0},
    "uniqueItems": True,
}

STATE_SCHEMA = {
    "type": "object",
    "required": ["version", "tasks", "reviews", "task_queue", "review_queue"],
    "properties": {
        "version": {"const": STATE_VERSION},
        "next_task_id": {"type": "integer", "minimum": 0},
        "next_review_id": {"type": "integer", "minimum": 0},
        "tasks": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["id", "image_url", "completed"],
                "properties": {
                    "id": {"type": "integer", "minimum": 0},
                    "image_url": {"type": "string"},
                    "description": {"type": "string"},
                    "assigned_to": {"type": ["string", "null"]},
                    "completed": {"type": "boolean"},
                },
            },
        },
        "reviews": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["id", "task_id", "status"],
                "properties": {
                    "id": {"type": "integer", "minimum": 0},
                    "task_id": {"type": "integer", "minimum": 0},
                    "reviewed_by": {"type": ["string", "null"]},
                    "status": {"enum": ["pending", "assigned", "accepted", "rejected"]},
                },
            },
        },
        "task_queue": _ID_LIST,
        "review_queue": _ID_LIST,
    },
}


def dump_state(engine: WorkflowEngine) -> dict:
    """Serialize engine state to a JSON-compatible dictionary."""
    with engine.lock:
        return {
            "version": STATE_VERSION,
            "next_task_id": engine.tasks.counter,
            "next_review_id": engine.reviews.counter,
            "tasks": [t.to_dict() for t in engine.tasks.values()],
            "reviews": [r.to_dict() for r in engine.reviews.values()],
            "task_queue": engine.task_queue.snapshot(),
            "review_queue": engine.review_queue.snapshot(),
        }


def save_state(engine: WorkflowEngine, path: Path) -> None:
    """Write engine state to ``path``, replacing it atomically.

    Concurrent savers each write their own temp file, and the engine lock is
    held until the rename so the newest snapshot is the one left on disk.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with engine.lock:
        with tempfile.NamedTemporaryFile(
            "w", dir=path.parent, prefix=path.name + ".", suffix=".tmp", delete=False,
        ) as f:
            tmp_path = f.name
            json.dump(dump_state(engine), f, indent=2)
        try:
            os.replace(tmp_path, path)
        except OSError:
            os.unlink(tmp_path)
            raise

    logger.debug("Saved state to %s", path)


def read_state(path: Path) -> dict:
    """Read and validate a state file."""
    path = Path(path)
    try:
        with open(path) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"State file {path} is not valid JSON: {e}") from e

    try:
        jsonschema.validate(instance=data, schema=STATE_SCHEMA)
    except jsonschema.ValidationError as e:
        raise ConfigError(f"State file {path} is invalid: {e.message}") from e

    return data


def restore_stores(data: dict) -> tuple[TaskStore, ReviewStore, WorkQueue, WorkQueue]:
    """Rebuild stores and queues from a validated state document."""
    tasks = TaskStore(
        {t["id"]: Task.from_dict(t) for t in data["tasks"]},
        counter=data.get("next_task_id", 0),
    )
    reviews = ReviewStore(
        {r["id"]: ReviewTask.from_dict(r) for r in data["reviews"]},
        counter=data.get("next_review_id", 0),
    )
    task_queue = WorkQueue("task", data["task_queue"])
    review_queue = WorkQueue("review", data["review_queue"])
    return tasks, reviews, task_queue, review_queue


def build_engine(
    config: PipelineConfig,
    identity: IdentityProvider,
    clock: Optional[Clock] = None,
    settlement: Optional[Settlement] = None,
) -> WorkflowEngine:
    """Create an engine from configuration, restoring saved state if present."""
    if settlement is None:
        settlement = LedgerSettlement(config.ledger_file)
    payout = PayoutTrigger(settlement, max_workers=config.settlement_workers)

    stores = {}
    if Path(config.state_file).exists():
        tasks, reviews, task_queue, review_queue = restore_stores(read_state(config.state_file))
        stores = {
            "tasks": tasks,
            "reviews": reviews,
            "task_queue": task_queue,
            "review_queue": review_queue,
        }
        logger.info(
            "Restored %s tasks and %s reviews from %s",
            len(tasks), len(reviews), config.state_file,
        )

    return WorkflowEngine(
        identity=identity,
        clock=clock,
        payout=payout,
        payout_account=config.payout_account,
        reward_amount=config.reward_amount,
        rejection_policy=config.rejection_policy,
        **stores,
    )
