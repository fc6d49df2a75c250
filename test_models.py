#!/usr/bin/env python3
"""
Test suite for batch, session and websocket message models

Tests:
1. ImageData data URLs
2. BatchContext built from an analysis, frozen configuration
3. BatchSummary counts
4. Analysis options validation
5. Session state and websocket message serialization
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from pydantic import ValidationError

from gbase_slides.models.batch import (
    BatchContext,
    BatchSummary,
    ImageData,
    JobStatus,
    QueueStatus,
    SlideJob,
)
from gbase_slides.models.session import AppState, PresentationSession
from gbase_slides.models.slides import AnalysisOptions, TextRichness
from gbase_slides.models.websocket_messages import (
    create_batch_complete,
    create_error,
    create_job_update,
    create_queue_status,
    create_status_update,
)
from testing_support import make_analysis, make_batch

print("=" * 60)
print("GBASE SLIDES MODELS TEST SUITE")
print("=" * 60)
print()


def test_image_data_urls():
    """Test 1: Data URLs parse into bytes + MIME type and back."""
    print("[TEST 1] ImageData Data URLs")
    print("-" * 50)

    image = ImageData.from_data_url("data:image/jpeg;base64,aGVsbG8=")
    assert image.data == b"hello"
    assert image.mime_type == "image/jpeg"
    assert image.to_data_url() == "data:image/jpeg;base64,aGVsbG8="
    print("  ✓ Parsed data URL")

    for bad in ("", "hello", "data:image/png,aGVsbG8=", "https://example.com/a.png"):
        try:
            ImageData.from_data_url(bad)
            raise AssertionError(f"Expected ValueError for {bad!r}")
        except ValueError:
            pass
    print("  ✓ Non-base64 data URLs rejected")
    print()


def test_batch_from_analysis():
    """Test 2: One pending job per slide; batch configuration is frozen."""
    print("[TEST 2] BatchContext from Analysis")
    print("-" * 50)

    analysis = make_analysis(4, language="Japanese")
    batch = BatchContext.from_analysis(analysis, min_interval_seconds=30.0)

    assert [job.id for job in batch.jobs] == ["1", "2", "3", "4"]
    assert [job.title for job in batch.jobs] == ["Page 1", "Page 2", "Page 3", "Page 4"]
    assert all(job.status == JobStatus.PENDING for job in batch.jobs)
    assert batch.language_hint == "Japanese"
    assert batch.user_template is None
    assert batch.min_interval_seconds == 30.0
    assert batch.batch_id.startswith("batch_")
    print("  ✓ Jobs created in slide order")

    try:
        batch.global_style = "something else"
        raise AssertionError("Expected ValidationError")
    except ValidationError:
        pass
    print("  ✓ Batch configuration is immutable")

    batch.jobs[0].status = JobStatus.WAITING
    assert batch.jobs[0].status == JobStatus.WAITING
    print("  ✓ Job status stays mutable")

    try:
        make_batch(2, interval=-1)
        raise AssertionError("Expected ValidationError")
    except ValidationError:
        pass
    print("  ✓ Negative interval rejected")
    print()


def test_batch_summary():
    """Test 3: Pending/waiting jobs count as not attempted."""
    print("[TEST 3] BatchSummary Counts")
    print("-" * 50)

    jobs = [
        SlideJob(id="1", prompt="a", status=JobStatus.SUCCEEDED, image=ImageData(data=b"x"), attempts=1),
        SlideJob(id="2", prompt="b", status=JobStatus.FAILED, error_note="quota_exhausted", attempts=1),
        SlideJob(id="3", prompt="c", status=JobStatus.PENDING),
    ]
    summary = BatchSummary.from_jobs("batch_test", jobs, cancelled=True, elapsed_seconds=70.0)

    assert summary.success_count == 1
    assert summary.failure_count == 1
    assert summary.not_attempted_count == 1
    assert summary.cancelled
    assert summary.outcomes[0].has_image and not summary.outcomes[1].has_image
    assert summary.outcomes[1].error_note == "quota_exhausted"
    assert jobs[0].is_resolved and not jobs[2].is_resolved
    print("  ✓ 1 succeeded, 1 failed, 1 not attempted")
    print()


def test_analysis_options():
    """Test 4: Slide count accepts 'auto' or the fixed choices only."""
    print("[TEST 4] Analysis Options")
    print("-" * 50)

    options = AnalysisOptions()
    assert options.slide_count == "auto"
    assert options.richness == TextRichness.AUTO

    assert AnalysisOptions(slide_count=8, richness="concise").slide_count == 8
    print("  ✓ Defaults and fixed counts accepted")

    for bad in ({"slide_count": 7}, {"slide_count": "many"}, {"richness": "verbose"}):
        try:
            AnalysisOptions(**bad)
            raise AssertionError(f"Expected ValidationError for {bad}")
        except ValidationError:
            pass
    print("  ✓ Unsupported options rejected")
    print()


def test_session_and_messages():
    """Test 5: Session transitions and JSON message envelopes."""
    print("[TEST 5] Session and Messages")
    print("-" * 50)

    session = PresentationSession(id="session-1")
    assert session.state == AppState.IDLE and not session.is_busy
    session.set_state(AppState.GENERATING_IMAGES)
    assert session.is_busy
    session.reference_template = ImageData(data=b"t")
    session.reset()
    assert session.state == AppState.IDLE
    assert session.reference_template is None
    print("  ✓ Session reset clears template and state")

    status = create_status_update("session-1", AppState.ANALYZING_TEXT, "Analyzing narrative...").model_dump(mode="json")
    assert status["type"] == "status_update"
    assert status["payload"] == {"state": "analyzing_text", "text": "Analyzing narrative..."}
    assert status["timestamp"].endswith("Z")
    print("  ✓ status_update envelope")

    queue = create_queue_status("session-1", QueueStatus(current_index=1, total=3, cooldown_remaining=42.4, eta_seconds=137.4))
    payload = queue.model_dump(mode="json")["payload"]
    assert payload["active"] and payload["current_number"] == 2
    assert payload["cooldown_remaining"] == 42 and payload["eta_seconds"] == 137
    assert create_queue_status("session-1", None).payload.active is False
    print("  ✓ queue_status rounds seconds and clears with None")

    job = SlideJob(id="1", prompt="a", status=JobStatus.SUCCEEDED, image=ImageData(data=b"hello"))
    job_payload = create_job_update("session-1", job).model_dump(mode="json")["payload"]
    assert job_payload["image_url"] == "data:image/png;base64,aGVsbG8="
    assert job_payload["status"] == "succeeded"
    print("  ✓ job_update carries the image as a data URL")

    summary = BatchSummary.from_jobs("batch_1", [job])
    complete = create_batch_complete("session-1", summary).model_dump(mode="json")
    assert complete["type"] == "batch_complete"
    assert complete["payload"]["success_count"] == 1

    error = create_error("session-1", "Please configure your Gemini API Key in settings.", "missing_api_key")
    assert error.model_dump(mode="json")["payload"]["code"] == "missing_api_key"
    print("  ✓ batch_complete and error envelopes")
    print()


if __name__ == "__main__":
    tests = [
        ("ImageData Data URLs", test_image_data_urls),
        ("BatchContext from Analysis", test_batch_from_analysis),
        ("BatchSummary Counts", test_batch_summary),
        ("Analysis Options", test_analysis_options),
        ("Session and Messages", test_session_and_messages),
    ]
    results = []
    for number, (name, test) in enumerate(tests, start=1):
        try:
            test()
            results.append((name, True))
        except Exception as e:
            print(f"  ✗ TEST {number} FAILED: {e}")
            results.append((name, False))

    print("=" * 60)
    passed = sum(1 for _, p in results if p)
    print(f"RESULTS: {passed}/{len(results)} tests passed")
    print("=" * 60)
    sys.exit(0 if passed == len(results) else 1)
