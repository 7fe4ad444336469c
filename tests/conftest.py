import logging
import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from config import Config
from interview_coach import create_app
from interview_coach.extensions import audio_queue, db
from interview_coach.services.sessions import SessionStore


class FakeQueue:
    """Stands in for the RQ queue; optionally runs the job inline."""

    def __init__(self, run_inline=False, fail=None):
        self.jobs = []
        self.run_inline = run_inline
        self.fail = fail

    def enqueue_audio(self, job):
        if self.fail is not None:
            raise self.fail
        self.jobs.append(job)
        if self.run_inline:
            from interview_coach.jobs.process_audio import process_audio
            process_audio(job.session_id, job.audio_file_path, job.original_file_name)
        return f"job-{len(self.jobs)}"

    def fetch(self, job_id):
        return None


@pytest.fixture
def app(tmp_path):
    class TestConfig(Config):
        TESTING = True
        SQLALCHEMY_DATABASE_URI = "sqlite://"
        CREATE_TABLES = True
        UPLOAD_DIR = str(tmp_path / "uploads")
        SESSION_LANGUAGES = "ja,ko,en"
        TRANSCRIPTION_ENGINE = "dummy"
        ANALYSIS_ENGINE = "heuristic"
        JOB_MAX_RETRIES = 0

    app = create_app(TestConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def store(app):
    return SessionStore(db.session)


@pytest.fixture
def fake_queue(monkeypatch):
    q = FakeQueue(run_inline=True)
    monkeypatch.setattr(audio_queue, "enqueue_audio", q.enqueue_audio)
    monkeypatch.setattr(audio_queue, "fetch", q.fetch)
    return q


@pytest.fixture
def client(app, fake_queue):
    return app.test_client()


@pytest.fixture
def log():
    return logging.getLogger("tests")
