import pytest
from sqlalchemy.exc import SQLAlchemyError

from interview_coach.engines.dummy import DummyTranscriptionEngine
from interview_coach.engines.heuristic import HeuristicAnalysisEngine
from interview_coach.errors import AudioIOError, EngineError, EngineUnavailable, SessionNotFound
from interview_coach.jobs.process_audio import AudioJob, AudioPipeline, RQProgressReporter, round_half_up
from interview_coach.lifecycle import SessionStatus
from interview_coach.services.storage import delete_audio, read_audio


class FailingEngine(DummyTranscriptionEngine):
    def __init__(self, exc):
        super().__init__()
        self.exc = exc

    def transcribe(self, audio_bytes, options):
        raise self.exc


class RecordingEngine(DummyTranscriptionEngine):
    def __init__(self):
        super().__init__()
        self.options = None

    def transcribe(self, audio_bytes, options):
        self.options = options
        return super().transcribe(audio_bytes, options)


class FailingAnalyzer(HeuristicAnalysisEngine):
    def __init__(self, exc):
        super().__init__()
        self.exc = exc

    def analyze(self, transcript):
        raise self.exc


class UnstorableAnalyzer(HeuristicAnalysisEngine):
    """Returns a result the JSON column cannot serialize."""

    def analyze(self, transcript):
        result = super().analyze(transcript)
        result.recommendations = [b"not json"]
        return result


def _pipeline(store, log, transcriber=None, delete=None, analyzer=None):
    return AudioPipeline(
        store=store,
        transcriber=transcriber or DummyTranscriptionEngine(),
        analyzer=analyzer or HeuristicAnalysisEngine(),
        read_audio=read_audio,
        delete_audio=delete or delete_audio,
        logger=log,
    )


def _uploaded(store, tmp_path, language="ja", delete_after=False, name="answer.mp3"):
    audio = tmp_path / name
    audio.write_bytes(b"\x00" * 256)
    s = store.create(language, delete_after_analysis=delete_after)
    store.transition(s.id, "CREATED", "UPLOADING", original_audio_path=str(audio), original_file_name=name)
    return s.id, AudioJob(s.id, str(audio), name)


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(3.5) == 4
    assert round_half_up(2.49) == 2
    assert round_half_up(0.0) == 0


def test_success_reports_progress_in_order(store, log, tmp_path):
    sid, job = _uploaded(store, tmp_path)
    progress = []
    result = _pipeline(store, log).run(job, progress.append)

    assert progress == [10, 50, 60, 90, 100]
    s = store.get(sid)
    assert s.status == SessionStatus.COMPLETED
    assert s.transcript is not None
    assert s.analysis.engine_used == "heuristic"
    assert s.audio_duration == round_half_up(s.transcript.duration)
    assert result["sessionId"] == sid
    assert result["status"] == "COMPLETED"
    assert result["sttDuration"] == s.transcript.duration
    assert result["analysisScore"] == s.analysis.overall_score
    assert result["cleanup"] is None
    # file kept by default
    assert (tmp_path / "answer.mp3").exists()


def test_transcriber_gets_session_language_and_filename(store, log, tmp_path):
    sid, job = _uploaded(store, tmp_path, language="ko", name="take1.wav")
    engine = RecordingEngine()
    _pipeline(store, log, transcriber=engine).run(job)
    assert engine.options.language == "ko"
    assert engine.options.filename == "take1.wav"
    assert engine.options.speaker_split is True
    assert engine.options.word_timestamps is True


def test_delete_after_analysis_removes_file(store, log, tmp_path):
    sid, job = _uploaded(store, tmp_path, delete_after=True)
    result = _pipeline(store, log).run(job)
    assert not (tmp_path / "answer.mp3").exists()
    assert result["cleanup"] == {"deleted": True}
    assert store.get(sid).status == SessionStatus.COMPLETED


def test_cleanup_failure_does_not_fail_job(store, log, tmp_path):
    sid, job = _uploaded(store, tmp_path, delete_after=True)

    def broken_delete(path):
        raise AudioIOError("permission denied", path=path)

    result = _pipeline(store, log, delete=broken_delete).run(job)
    assert result["status"] == "COMPLETED"
    assert result["cleanup"]["deleted"] is False
    assert "permission denied" in result["cleanup"]["error"]
    assert store.get(sid).status == SessionStatus.COMPLETED


def test_engine_failure_marks_session_failed_and_reraises(store, log, tmp_path):
    sid, job = _uploaded(store, tmp_path)
    progress = []
    with pytest.raises(EngineUnavailable):
        _pipeline(store, log, transcriber=FailingEngine(EngineUnavailable("stt down"))).run(job, progress.append)
    s = store.get(sid)
    assert s.status == SessionStatus.FAILED
    assert s.error_message == "stt down"
    assert progress == [10]


def test_analysis_failure_marks_session_failed(store, log, tmp_path):
    sid, job = _uploaded(store, tmp_path)
    progress = []
    with pytest.raises(EngineError):
        _pipeline(store, log, analyzer=FailingAnalyzer(EngineError("llm down"))).run(job, progress.append)
    s = store.get(sid)
    assert s.status == SessionStatus.FAILED
    assert s.error_message == "llm down"
    assert progress == [10, 50, 60]
    # transcript from this run stays available
    assert s.transcript is not None
    assert s.analysis is None
    assert s.audio_duration == round_half_up(s.transcript.duration)


def test_failed_write_still_marks_session_failed(store, log, tmp_path):
    sid, job = _uploaded(store, tmp_path)
    with pytest.raises((SQLAlchemyError, TypeError)):
        _pipeline(store, log, analyzer=UnstorableAnalyzer()).run(job)
    s = store.get(sid)
    assert s.status == SessionStatus.FAILED
    assert s.error_message
    assert s.analysis is None

    # the session is not wedged: a redelivered job completes
    result = _pipeline(store, log).run(job)
    assert result["status"] == "COMPLETED"
    assert store.get(sid).status == SessionStatus.COMPLETED


def test_empty_error_message_falls_back_to_class_name(store, log, tmp_path):
    sid, job = _uploaded(store, tmp_path)
    with pytest.raises(RuntimeError):
        _pipeline(store, log, transcriber=FailingEngine(RuntimeError())).run(job)
    assert store.get(sid).error_message == "RuntimeError"


def test_unreadable_audio_fails_session(store, log, tmp_path):
    sid, job = _uploaded(store, tmp_path)
    (tmp_path / "answer.mp3").unlink()
    with pytest.raises(AudioIOError):
        _pipeline(store, log).run(job)
    assert store.get(sid).status == SessionStatus.FAILED


def test_retry_after_failure_completes(store, log, tmp_path):
    sid, job = _uploaded(store, tmp_path)
    with pytest.raises(EngineUnavailable):
        _pipeline(store, log, transcriber=FailingEngine(EngineUnavailable("flaky"))).run(job)

    result = _pipeline(store, log).run(job)
    assert result["status"] == "COMPLETED"
    s = store.get(sid)
    assert s.status == SessionStatus.COMPLETED
    assert s.error_message is None


def test_missing_session_raises_without_writes(store, log, tmp_path):
    job = AudioJob("does-not-exist", str(tmp_path / "a.mp3"), "a.mp3")
    with pytest.raises(SessionNotFound):
        _pipeline(store, log).run(job)
    assert store.list() == []


def test_job_for_older_upload_is_skipped(store, log, tmp_path):
    sid, job = _uploaded(store, tmp_path)
    stale = AudioJob(sid, str(tmp_path / "older.mp3"), "older.mp3")
    progress = []
    result = _pipeline(store, log).run(stale, progress.append)
    assert result["status"] == "SKIPPED"
    assert progress == []
    assert store.get(sid).status == SessionStatus.UPLOADING


def test_duplicate_delivery_after_completion_is_skipped(store, log, tmp_path):
    sid, job = _uploaded(store, tmp_path)
    _pipeline(store, log).run(job)
    analysis_id = store.get(sid).analysis.id

    result = _pipeline(store, log).run(job)
    assert result["status"] == "SKIPPED"
    s = store.get(sid)
    assert s.status == SessionStatus.COMPLETED
    assert s.analysis.id == analysis_id


class FakeRQJob:
    def __init__(self):
        self.meta = {"progress": 0, "attempts": 0}
        self.saves = 0

    def save_meta(self):
        self.saves += 1


def test_progress_reporter_writes_job_meta():
    job = FakeRQJob()
    reporter = RQProgressReporter(job)
    reporter.start_attempt()
    reporter(50)
    assert job.meta == {"progress": 50, "attempts": 1}
    reporter.start_attempt()
    assert job.meta["attempts"] == 2
    assert job.meta["progress"] == 0
    assert job.saves == 3


def test_progress_reporter_without_job_is_noop():
    reporter = RQProgressReporter()
    reporter.start_attempt()
    reporter(10)
