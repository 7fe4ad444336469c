import os
from dotenv import load_dotenv
load_dotenv()


def _bool(name, default="false"):
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret")
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///interview_coach.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CREATE_TABLES = _bool("CREATE_TABLES")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # queue
    REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    QUEUE_NAME = os.getenv("QUEUE_NAME", "audio-processing")
    RQ_ASYNC = _bool("RQ_ASYNC", "true")
    JOB_MAX_RETRIES = int(os.getenv("JOB_MAX_RETRIES", "2"))  # retries after the first attempt
    JOB_BACKOFF_SECONDS = int(os.getenv("JOB_BACKOFF_SECONDS", "5"))
    JOB_RESULT_TTL = int(os.getenv("JOB_RESULT_TTL", "3600"))
    JOB_FAILURE_TTL = int(os.getenv("JOB_FAILURE_TTL", str(30 * 24 * 3600)))
    JOB_TIMEOUT = int(os.getenv("JOB_TIMEOUT", "1800"))

    # uploads
    UPLOAD_DIR = os.getenv("UPLOAD_DIR", "./uploads")
    MAX_CONTENT_LENGTH = int(os.getenv("MAX_UPLOAD_BYTES", str(30 * 1024 * 1024)))
    SESSION_LANGUAGES = os.getenv("SESSION_LANGUAGES", "ja,ko")

    # engines
    TRANSCRIPTION_ENGINE = os.getenv("TRANSCRIPTION_ENGINE", "openai")
    ANALYSIS_ENGINE = os.getenv("ANALYSIS_ENGINE", "gpt")
    OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
    OPENAI_TRANSCRIBE_MODEL = os.getenv("OPENAI_TRANSCRIBE_MODEL", "whisper-1")
    OPENAI_ANALYSIS_MODEL = os.getenv("OPENAI_ANALYSIS_MODEL", "gpt-4o-mini")
    DEEPGRAM_API_KEY = os.getenv("DEEPGRAM_API_KEY")
    DG_WORD_GAP_THRESHOLD = float(os.getenv("DG_WORD_GAP_THRESHOLD", "0.35"))
    ENGINE_TIMEOUT = float(os.getenv("ENGINE_TIMEOUT", "120"))
    FILLER_TOKENS = os.getenv("FILLER_TOKENS", "えー,あの,えっと,えーと,うーん,あー,um,uh,er")
    INTERVIEW_KEYWORDS = os.getenv(
        "INTERVIEW_KEYWORDS",
        "経験,チームワーク,コミュニケーション,挑戦,責任,experience,team,challenge",
    )
    SILENCE_THRESHOLD_SEC = float(os.getenv("SILENCE_THRESHOLD_SEC", "2.0"))
