import pytest

from interview_coach.engines.interface import AnalysisResult, TranscriptResult, TranscriptSegment
from interview_coach.errors import IllegalTransition, SessionNotFound, StateConflict
from interview_coach.lifecycle import SessionStatus


def _transcript():
    return TranscriptResult(
        full_text="hello",
        segments=[TranscriptSegment(id="1", text="hello", start_time=0.0, end_time=1.0, confidence=0.9)],
        language="en",
        duration=1.0,
    )


def test_create_defaults(store):
    s = store.create("ja", description="first try")
    assert s.status == SessionStatus.CREATED
    assert s.delete_after_analysis is False
    d = s.to_dict()
    assert d["language"] == "ja"
    assert d["status"] == "CREATED"
    assert d["description"] == "first try"


def test_transition_writes_status_and_fields(store):
    s = store.create("ja")
    store.transition(s.id, "CREATED", "UPLOADING", original_audio_path="/tmp/a.mp3")
    s = store.get(s.id)
    assert s.status == SessionStatus.UPLOADING
    assert s.original_audio_path == "/tmp/a.mp3"


def test_transition_is_compare_and_set(store):
    s = store.create("ja")
    store.transition(s.id, "CREATED", "UPLOADING")
    with pytest.raises(StateConflict) as exc:
        store.transition(s.id, "CREATED", "UPLOADING")
    assert exc.value.current_status == SessionStatus.UPLOADING
    assert store.get(s.id).status == SessionStatus.UPLOADING


def test_illegal_transition_never_reaches_db(store):
    s = store.create("ja")
    with pytest.raises(IllegalTransition):
        store.transition(s.id, "CREATED", "COMPLETED")
    assert store.get(s.id).status == SessionStatus.CREATED


def test_transition_unknown_session(store):
    with pytest.raises(SessionNotFound):
        store.transition("missing", "CREATED", "UPLOADING")


def test_require_missing(store):
    with pytest.raises(SessionNotFound) as exc:
        store.require("nope")
    assert exc.value.status_code == 404


def test_mark_failed_from_in_flight(store):
    s = store.create("ja")
    store.transition(s.id, "CREATED", "UPLOADING")
    store.transition(s.id, "UPLOADING", "TRANSCRIBING")
    assert store.mark_failed(s.id, "engine down") is True
    s = store.get(s.id)
    assert s.status == SessionStatus.FAILED
    assert s.error_message == "engine down"


def test_mark_failed_refreshes_message_when_failed(store):
    s = store.create("ja")
    store.transition(s.id, "CREATED", "UPLOADING")
    store.mark_failed(s.id, "first")
    assert store.mark_failed(s.id, "second") is True
    assert store.get(s.id).error_message == "second"


def test_mark_failed_leaves_created_alone(store):
    s = store.create("ja")
    assert store.mark_failed(s.id, "boom") is False
    assert store.get(s.id).status == SessionStatus.CREATED
    assert store.mark_failed("missing", "boom") is False


def test_results_are_written_once(store):
    s = store.create("en")
    store.save_transcript(s.id, _transcript())
    with pytest.raises(StateConflict):
        store.save_transcript(s.id, _transcript())

    result = AnalysisResult(overall_score=70, appropriateness_score=0.5, speaking_rate=120, average_pause_duration=0.4)
    store.save_analysis(s.id, result, "heuristic")
    with pytest.raises(StateConflict):
        store.save_analysis(s.id, result, "heuristic")


def test_claiming_transition_clears_previous_results(store):
    s = store.create("en")
    store.transition(s.id, "CREATED", "UPLOADING")
    store.save_transcript(s.id, _transcript())
    store.transition(s.id, "UPLOADING", "TRANSCRIBING", clear_results=True)
    assert store.get(s.id).transcript is None


def test_delete_cascades_and_returns_path(store):
    s = store.create("en")
    store.transition(s.id, "CREATED", "UPLOADING", original_audio_path="/tmp/x.wav")
    store.save_transcript(s.id, _transcript())
    assert store.delete(s.id) == "/tmp/x.wav"
    assert store.get(s.id) is None
    with pytest.raises(SessionNotFound):
        store.delete(s.id)


def test_record_job(store):
    s = store.create("ja")
    store.record_job(s.id, "job-1")
    assert store.get(s.id).last_job_id == "job-1"
