"""Tests for state file persistence."""

import json
import threading

import pytest

from review_pipeline.config import PipelineConfig
from review_pipeline.errors import ConfigError
from review_pipeline.models.review import ReviewStatus
from review_pipeline.storage import build_engine, dump_state, read_state, save_state


@pytest.fixture
def config(tmp_path):
    return PipelineConfig(
        payout_account="treasury.near",
        reward_amount=7,
        state_file=tmp_path / "state.json",
        ledger_file=tmp_path / "payments.json",
        settlement_workers=1,
    )


def run_cycle(engine, identity):
    """Leave one task recycled, one under review and one fresh."""
    first = engine.publish("img0")
    second = engine.publish("img1")
    engine.publish("img2")

    engine.assign_task(first, "alice")
    identity.act_as("alice")
    review = engine.submit_task(first, "done")
    engine.assign_review_task(review, "bob")
    identity.act_as("bob")
    engine.adjudicate(review, False)

    engine.assign_task(second, "carol")
    identity.act_as("carol")
    engine.submit_task(second, "caption")


class TestStatePersistence:
    def test_round_trip_preserves_queues_and_counters(self, config, identity, clock):
        engine = build_engine(config, identity, clock)
        run_cycle(engine, identity)
        save_state(engine, config.state_file)
        engine.payout.shutdown()

        restored = build_engine(config, identity, clock)
        assert restored.task_queue_snapshot() == engine.task_queue_snapshot() == [2, 0]
        assert restored.review_queue_snapshot() == [1]
        assert restored.get_task(1) == engine.get_task(1)
        assert restored.get_review_task(0).status == ReviewStatus.REJECTED
        assert restored.publish("img3") == 3

        identity.act_as("alice")
        restored.assign_task(0, "alice")
        assert restored.submit_task(0, "again") == 2
        restored.payout.shutdown()

    def test_counters_survive_strict_deletes(self, config, identity, clock):
        engine = build_engine(config, identity, clock)
        task_id = engine.publish("img0")
        engine.tasks.remove(task_id)
        engine.task_queue.remove(task_id)

        data = dump_state(engine)
        assert data["tasks"] == []
        assert data["next_task_id"] == 1
        engine.payout.shutdown()

    def test_missing_state_starts_empty(self, config, identity):
        engine = build_engine(config, identity)
        assert engine.task_queue_len() == 0
        assert engine.publish("img") == 0
        engine.payout.shutdown()

    def test_corrupt_state_rejected(self, config):
        config.state_file.write_text("{not json")
        with pytest.raises(ConfigError):
            read_state(config.state_file)

    def test_schema_violation_rejected(self, config):
        config.state_file.write_text(json.dumps({
            "version": 1,
            "tasks": [{"id": -1, "image_url": "x", "completed": False}],
            "reviews": [],
            "task_queue": [],
            "review_queue": [],
        }))
        with pytest.raises(ConfigError):
            read_state(config.state_file)

    def test_repeated_queue_entry_rejected(self, config):
        config.state_file.write_text(json.dumps({
            "version": 1,
            "tasks": [{"id": 0, "image_url": "x", "completed": False}],
            "reviews": [],
            "task_queue": [0, 0],
            "review_queue": [],
        }))
        with pytest.raises(ConfigError):
            read_state(config.state_file)

    def test_concurrent_saves(self, config, identity, clock):
        engine = build_engine(config, identity, clock)
        engine.publish("img0")
        errors = []

        def save_many():
            for _ in range(25):
                try:
                    save_state(engine, config.state_file)
                except OSError as e:
                    errors.append(e)

        threads = [threading.Thread(target=save_many) for _ in range(6)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        engine.payout.shutdown()

        assert errors == []
        assert read_state(config.state_file)["task_queue"] == [0]
        assert list(config.state_file.parent.glob("*.tmp")) == []

    def test_accepted_review_pays_into_ledger(self, config, identity, clock):
        engine = build_engine(config, identity, clock)
        task_id = engine.publish("img0")
        engine.assign_task(task_id, "alice")
        identity.act_as("alice")
        review = engine.submit_task(task_id, "done")
        engine.assign_review_task(review, "bob")
        identity.act_as("bob")
        engine.adjudicate(review, True).result(timeout=5)
        engine.payout.shutdown()

        ledger = json.loads(config.ledger_file.read_text())
        assert [(p["account"], p["amount"]) for p in ledger] == [("treasury.near", "7")]
