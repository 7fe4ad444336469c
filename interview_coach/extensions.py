from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from redis import Redis
from rq import Queue, Retry
from rq.exceptions import NoSuchJobError
from rq.job import Job


class AudioJobQueue:
    """RQ queue carrying audio processing jobs.

    Delivery, retry with growing delays and job retention are left to RQ;
    this wrapper only fixes the job options the app relies on.
    """

    def __init__(self):
        self.redis = None
        self.queue = None
        self.options = {}

    def init_app(self, app):
        self.redis = Redis.from_url(app.config.get("REDIS_URL"))
        self.queue = Queue(
            app.config.get("QUEUE_NAME", "audio-processing"),
            connection=self.redis,
            is_async=app.config.get("RQ_ASYNC", True),
        )
        backoff = app.config.get("JOB_BACKOFF_SECONDS", 5)
        retries = app.config.get("JOB_MAX_RETRIES", 2)
        self.options = {
            "retry": Retry(max=retries, interval=[backoff * 2 ** i for i in range(retries)]) if retries else None,
            "result_ttl": app.config.get("JOB_RESULT_TTL", 3600),
            "failure_ttl": app.config.get("JOB_FAILURE_TTL"),
            "job_timeout": app.config.get("JOB_TIMEOUT", 1800),
        }
        app.extensions["audio_queue"] = self

    def enqueue_audio(self, job):
        """Enqueue one AudioJob and return the queue's job id."""
        # lazy: the job module imports this one
        from .jobs.process_audio import process_audio

        opts = {k: v for k, v in self.options.items() if v is not None}
        rq_job = self.queue.enqueue(
            process_audio,
            job.session_id,
            job.audio_file_path,
            job.original_file_name,
            meta={"session_id": job.session_id, "progress": 0, "attempts": 0},
            description=f"process-audio session={job.session_id}",
            **opts,
        )
        return rq_job.id

    def fetch(self, job_id):
        if not job_id:
            return None
        try:
            return Job.fetch(job_id, connection=self.redis)
        except NoSuchJobError:
            return None


db = SQLAlchemy()
migrate = Migrate()
audio_queue = AudioJobQueue()
