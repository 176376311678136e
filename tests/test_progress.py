"""Tests for the progress state machine and progress stores."""
from __future__ import annotations

import json

import pytest

from ingest import ProgressTracker, interpolate
from interfaces import InMemoryProgressStore, ProgressState, RedisProgressStore, Stage


@pytest.mark.parametrize(
    "start,end,done,total,expected",
    [
        (30, 80, 0, 10, 30),
        (30, 80, 5, 10, 55),
        (30, 80, 10, 10, 80),
        (30, 80, 12, 10, 80),
        (85, 95, 1, 3, 88),
        (85, 95, 0, 0, 95),
    ],
)
def test_interpolate(start, end, done, total, expected):
    assert interpolate(start, end, done, total) == expected


class TestProgressTracker:

    def setup_method(self):
        self.store = InMemoryProgressStore()
        self.tracker = ProgressTracker(self.store, "upload-1")

    def test_writes_whole_record(self):
        self.tracker.update(Stage.PARSING, 25, "Found 12 messages", total=12, processed=0)

        assert self.store.get("upload-1") == ProgressState(
            stage=Stage.PARSING, progress=25, message="Found 12 messages",
            total=12, processed=0)

    def test_counts_carry_over_when_omitted(self):
        self.tracker.update(Stage.ANALYZING, 30, "start", total=40, processed=0)
        state = self.tracker.update(Stage.ANALYZING, 55, "half", processed=20)
        assert (state.total, state.processed) == (40, 20)

    def test_progress_never_decreases(self):
        self.tracker.update(Stage.ANALYZING, 60, "more")
        state = self.tracker.update(Stage.ANALYZING, 40, "less")
        assert state.progress == 60
        assert state.message == "less"

    def test_error_resets_progress(self):
        self.tracker.update(Stage.ANALYZING, 70, "working")
        state = self.tracker.fail("Vector database error.")
        assert state.stage is Stage.ERROR
        assert state.progress == 0

    @pytest.mark.parametrize("terminal", ["complete", "fail"])
    def test_terminal_states_ignore_later_writes(self, terminal):
        if terminal == "complete":
            self.tracker.complete(total=10, processed=10)
        else:
            self.tracker.fail("boom")
        before = self.store.get("upload-1")

        assert self.tracker.update(Stage.FINALIZING, 95, "late") is None
        assert self.tracker.fail("late failure") is None
        assert self.store.get("upload-1") == before
        assert self.tracker.is_terminal

    def test_complete_defaults(self):
        state = self.tracker.complete(total=10, processed=10)
        assert (state.stage, state.progress, state.message) == (
            Stage.COMPLETE, 100, "Ready to chat!")


class TestInMemoryProgressStore:

    def setup_method(self):
        self.now = 1000.0
        self.store = InMemoryProgressStore(ttl_seconds=60, clock=lambda: self.now)
        self.state = ProgressState(Stage.READING, 5, "Reading and validating file...")

    def test_unknown_id(self):
        assert self.store.get("missing") is None

    def test_entries_expire(self):
        self.store.set("a", self.state)
        self.now += 59
        assert self.store.get("a") == self.state
        self.now += 1
        assert self.store.get("a") is None

    def test_write_refreshes_ttl(self):
        self.store.set("a", self.state)
        self.now += 50
        self.store.set("a", self.state)
        self.now += 50
        assert self.store.get("a") == self.state

    def test_sweep_expired(self):
        self.store.set("old", self.state)
        self.now += 30
        self.store.set("new", self.state)
        self.now += 40

        assert self.store.sweep_expired() == 1
        assert len(self.store) == 1
        assert self.store.get("new") == self.state

    def test_delete(self):
        self.store.set("a", self.state)
        self.store.delete("a")
        self.store.delete("a")
        assert self.store.get("a") is None


class TestRedisProgressStore:

    def test_round_trip_with_ttl(self, fake_redis):
        store = RedisProgressStore(fake_redis, ttl_seconds=3600)
        state = ProgressState(Stage.ANALYZING, 55, "Analyzing conversation... (5/10)", 10, 5)

        store.set("up-1", state)

        key = "chat_ingest:progress:up-1"
        assert fake_redis.ttls[key] == 3600
        assert json.loads(fake_redis.data[key])["stage"] == "analyzing"
        assert store.get("up-1") == state

    def test_missing_and_corrupt_records(self, fake_redis):
        store = RedisProgressStore(fake_redis)
        fake_redis.data["chat_ingest:progress:bad"] = "{not json"
        fake_redis.data["chat_ingest:progress:odd"] = json.dumps({"stage": "nope"})

        assert store.get("missing") is None
        assert store.get("bad") is None
        assert store.get("odd") is None

    def test_bytes_payload(self, fake_redis):
        store = RedisProgressStore(fake_redis)
        payload = ProgressState(Stage.COMPLETE, 100, "Ready to chat!", 3, 3).to_dict()
        fake_redis.data["chat_ingest:progress:b"] = json.dumps(payload).encode("utf-8")
        assert store.get("b").stage is Stage.COMPLETE

    def test_sweep_leaves_expiry_to_redis(self, fake_redis):
        store = RedisProgressStore(fake_redis)
        store.set("up-1", ProgressState(Stage.READING, 5, "Reading and validating file..."))

        assert store.sweep_expired() == 0
        assert store.get("up-1") is not None
