"""End-to-end pipeline runs against in-memory stand-ins for every provider."""
from __future__ import annotations

import logging
import threading

import pytest

from chat_export import ChatExportParser
from ingest import (
    EmbeddingBatcher,
    ProgressTracker,
    SessionFinalizer,
    ThreadSafeStats,
    UploadJob,
    UploadPipeline,
    VectorStoreWriter,
)
from ingest_exceptions import ConfigError
from interfaces import Stage
from conftest import (
    StubClassifier,
    StubEmbedder,
    StubSessionStore,
    StubVectorStore,
    header_line,
    make_export,
)


def _build(
    *,
    embedder=None,
    vector_store=None,
    session_store=None,
    classifier=None,
    stats=None,
    **kwargs,
):
    embedder = embedder or StubEmbedder()
    vector_store = vector_store or StubVectorStore()
    session_store = session_store or StubSessionStore()
    pipeline = UploadPipeline(
        batcher=EmbeddingBatcher(embedder, stats=stats),
        writer=VectorStoreWriter(vector_store, dimension=1536, stats=stats),
        finalizer=SessionFinalizer(session_store, stats=stats),
        language_classifier=classifier,
        stats=stats,
        **kwargs,
    )
    return pipeline, embedder, vector_store, session_store


def _job(lines, participant: str = "Ann", **overrides) -> UploadJob:
    fields = dict(
        upload_id="upload-1",
        session_id="abc123",
        file_content="\n".join(lines) if isinstance(lines, list) else lines,
        selected_participant=participant,
        display_name="Grandma Ann",
        owner_id="owner-7",
    )
    fields.update(overrides)
    return UploadJob(**fields)


def _twelve_line_export() -> list[str]:
    return make_export("Ann", 10) + [
        header_line("Ann", "<Media omitted>", minute=30),
        header_line("Ann", "This message was deleted", minute=31),
    ]


def _assert_non_decreasing_until_terminal(states):
    progresses = [s.progress for s in states if s.stage is not Stage.ERROR]
    assert progresses == sorted(progresses)


def test_twelve_line_export_completes(progress_store, classifier):
    pipeline, embedder, vector_store, session_store = _build(classifier=classifier)
    tracker = ProgressTracker(progress_store, "upload-1")

    result = pipeline.run(_job(_twelve_line_export()), tracker)

    final = progress_store.get("upload-1")
    assert final.stage is Stage.COMPLETE
    assert final.progress == 100
    assert final.message == "Ready to chat!"
    assert (final.total, final.processed) == (10, 10)

    assert len(vector_store.upserts) == 1
    name, chunk = vector_store.upserts[0]
    assert name == "session-abc123"
    assert len(chunk) == 10
    assert vector_store.collections[name] == {"dimension": 1536, "metric": "cosine"}
    assert all("omitted" not in r["metadata"]["content"] for r in chunk)

    assert result.message_count == 10
    assert result.embedding_count == 10
    assert result.detected_languages == ["Dutch", "English"]
    assert result.session_saved is True
    assert result.statistics["total_messages"] == 10

    summary = session_store.sessions[0]
    assert summary.session_id == "abc123"
    assert summary.participant_name == "Ann"
    assert summary.display_name == "Grandma Ann"
    assert summary.owner_id == "owner-7"
    assert summary.message_count == 10
    assert summary.collection_name == "session-abc123"
    assert summary.is_active is True
    assert summary.statistics == result.statistics
    assert summary.statistics["total_messages"] == 10

    states = progress_store.states("upload-1")
    _assert_non_decreasing_until_terminal(states)
    assert [s.stage for s in states][:3] == [Stage.READING, Stage.PARSING, Stage.PARSING]
    assert states[2].message == "Found 10 messages"


def test_insufficient_messages(progress_store):
    pipeline, embedder, vector_store, _ = _build()
    tracker = ProgressTracker(progress_store, "upload-1")

    result = pipeline.run(_job(make_export("Ann", 3)), tracker)

    final = progress_store.get("upload-1")
    assert result is None
    assert final.stage is Stage.ERROR
    assert final.progress == 0
    assert "Only 3 messages" in final.message
    assert (final.total, final.processed) == (3, 0)
    assert embedder.calls == []
    assert vector_store.collections == {}


def test_unknown_participant(progress_store):
    pipeline, embedder, _, _ = _build()
    tracker = ProgressTracker(progress_store, "upload-1")

    pipeline.run(_job(make_export("Sam", 15), participant="Alex"), tracker)

    final = progress_store.get("upload-1")
    assert final.stage is Stage.ERROR
    assert '"Alex"' in final.message
    assert final.processed == 0
    assert embedder.calls == []


def test_empty_file(progress_store):
    pipeline, _, _, _ = _build()
    tracker = ProgressTracker(progress_store, "upload-1")

    pipeline.run(_job("  \n \n"), tracker)

    final = progress_store.get("upload-1")
    assert final.stage is Stage.ERROR
    assert final.message == "File appears to be empty"


def test_unparseable_file(progress_store):
    pipeline, _, _, _ = _build()
    tracker = ProgressTracker(progress_store, "upload-1")

    pipeline.run(_job(["hello", "this is not", "an export at all"]), tracker)

    final = progress_store.get("upload-1")
    assert final.stage is Stage.ERROR
    assert "No valid chat messages found" in final.message


def test_every_embedding_call_fails(progress_store):
    stats = ThreadSafeStats()
    pipeline, embedder, vector_store, session_store = _build(
        embedder=StubEmbedder(fail_when=lambda texts: True), stats=stats)
    tracker = ProgressTracker(progress_store, "upload-1")

    pipeline.run(_job(make_export("Ann", 12)), tracker)

    final = progress_store.get("upload-1")
    assert final.stage is Stage.ERROR
    assert "Failed to create any embeddings" in final.message
    assert vector_store.written == []
    assert session_store.sessions == []
    assert stats.get("uploads_failed") == 1
    _assert_non_decreasing_until_terminal(progress_store.states("upload-1"))


def test_partial_embedding_loss_still_completes(progress_store):
    # Batch fails, then half of the single-message retries fail too.
    embedder = StubEmbedder(
        fail_when=lambda texts: len(texts) > 1 or int(texts[0].split()[2]) % 2 == 0)
    pipeline, _, vector_store, _ = _build(embedder=embedder)
    tracker = ProgressTracker(progress_store, "upload-1")

    result = pipeline.run(_job(make_export("Ann", 10)), tracker)

    assert progress_store.get("upload-1").stage is Stage.COMPLETE
    assert result.embedding_count == 5
    assert result.failed_embeddings == 5
    assert len(vector_store.written) == 5


def test_collection_check_failure(progress_store):
    pipeline, embedder, _, _ = _build(
        vector_store=StubVectorStore(exists_error=RuntimeError("503 from index host")))
    tracker = ProgressTracker(progress_store, "upload-1")

    pipeline.run(_job(make_export("Ann", 12)), tracker)

    final = progress_store.get("upload-1")
    assert final.stage is Stage.ERROR
    assert final.message.startswith("Vector database error")
    assert embedder.calls == []


def test_upsert_failure(progress_store):
    pipeline, _, _, session_store = _build(
        vector_store=StubVectorStore(upsert_error=RuntimeError("quota")))
    tracker = ProgressTracker(progress_store, "upload-1")

    pipeline.run(_job(make_export("Ann", 12)), tracker)

    final = progress_store.get("upload-1")
    assert final.stage is Stage.ERROR
    assert final.message.startswith("Vector database error")
    assert session_store.sessions == []


def test_rejected_api_key(progress_store):
    pipeline, _, _, _ = _build(
        embedder=StubEmbedder(error=ConfigError("OpenAI API key rejected")))
    tracker = ProgressTracker(progress_store, "upload-1")

    pipeline.run(_job(make_export("Ann", 12)), tracker)

    assert progress_store.get("upload-1").message.startswith("Configuration error")


def test_session_store_failure_does_not_block_completion(progress_store):
    pipeline, _, _, _ = _build(
        session_store=StubSessionStore(error=RuntimeError("db down")))
    tracker = ProgressTracker(progress_store, "upload-1")

    result = pipeline.run(_job(make_export("Ann", 12)), tracker)

    assert progress_store.get("upload-1").stage is Stage.COMPLETE
    assert result.session_saved is False


def test_language_detection_failure_defaults_to_unknown(progress_store, session_store):
    pipeline, _, _, _ = _build(
        session_store=session_store,
        classifier=StubClassifier(error=RuntimeError("timeout")))
    tracker = ProgressTracker(progress_store, "upload-1")

    result = pipeline.run(_job(make_export("Ann", 12)), tracker)

    assert result.detected_languages == ["unknown"]
    assert session_store.sessions[0].detected_languages == ["unknown"]


def test_cancelled_upload(progress_store):
    pipeline, embedder, _, _ = _build()
    tracker = ProgressTracker(progress_store, "upload-1")
    cancel_event = threading.Event()
    cancel_event.set()

    pipeline.run(_job(make_export("Ann", 12)), tracker, cancel_event=cancel_event)

    final = progress_store.get("upload-1")
    assert final.stage is Stage.ERROR
    assert final.message == "Upload was cancelled"
    assert embedder.calls == []


def test_deadline_passed(progress_store):
    pipeline, _, _, _ = _build(clock=lambda: 100.0)
    tracker = ProgressTracker(progress_store, "upload-1")

    pipeline.run(_job(make_export("Ann", 12)), tracker, deadline=50.0)

    final = progress_store.get("upload-1")
    assert final.stage is Stage.ERROR
    assert "timed out" in final.message


@pytest.mark.parametrize("count,expected_upserts", [(10, 1), (100, 1), (101, 2), (250, 3)])
def test_chunk_count_follows_record_count(progress_store, count, expected_upserts):
    lines = [
        header_line("Ann", f"line number {i}", minute=i % 60, day=1 + i // 60)
        for i in range(count)
    ]
    pipeline, _, vector_store, _ = _build()

    pipeline.run(_job(lines), ProgressTracker(progress_store, "upload-1"))

    assert len(vector_store.upserts) == expected_upserts
    assert len(vector_store.written) == count


class ExplodingParser:
    """Parser whose parse step raises a chosen non-ingest exception."""

    def __init__(self, error: Exception):
        self.error = error
        self._inner = ChatExportParser()

    def validate(self, text):
        return self._inner.validate(text)

    def parse(self, text):
        raise self.error


def test_unexpected_failure_logs_traceback_and_hides_details(progress_store, caplog):
    pipeline, _, _, _ = _build(parser=ExplodingParser(RuntimeError("bad internal state")))
    tracker = ProgressTracker(progress_store, "upload-1")

    with caplog.at_level(logging.WARNING, logger="ingest.pipeline"):
        pipeline.run(_job(make_export("Ann", 12)), tracker)

    assert progress_store.get("upload-1").message == "Failed to process file. Please try again."
    record = caplog.records[-1]
    assert record.levelno == logging.ERROR
    assert record.exc_info is not None
    assert "upload-1" in record.getMessage()


def test_known_failure_logs_warning_with_mapped_type(progress_store, caplog):
    pipeline, _, _, _ = _build(parser=ExplodingParser(TimeoutError("read timed out")))
    tracker = ProgressTracker(progress_store, "upload-1")

    with caplog.at_level(logging.WARNING, logger="ingest.pipeline"):
        pipeline.run(_job(make_export("Ann", 12)), tracker)

    record = caplog.records[-1]
    assert record.levelno == logging.WARNING
    assert "ExternalServiceError" in record.getMessage()
    assert progress_store.get("upload-1").stage is Stage.ERROR
