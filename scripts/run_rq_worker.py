"""Run an RQ worker for the audio-processing queue inside the Flask app context.

Usage:
  source .venv/bin/activate
  export OBJC_DISABLE_INITIALIZE_FORK_SAFETY=YES   # macOS fork safety if needed
  python scripts/run_rq_worker.py

Jobs then reuse this app context, so `current_app`, the configured engines and
the Flask-SQLAlchemy session are available to them. The scheduler is enabled
so retries with a delay are picked up.
"""

import os
import sys

# Ensure project root is on sys.path when running from scripts/ or other cwd
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from rq import Worker

from interview_coach import create_app
from interview_coach.extensions import audio_queue


def main():
    app = create_app()
    with app.app_context():
        worker = Worker([audio_queue.queue], connection=audio_queue.redis)
        app.logger.info("RQ worker starting on %s (pid %s)", audio_queue.queue.name, os.getpid())
        try:
            worker.work(burst=False, with_scheduler=True, logging_level=app.config.get("LOG_LEVEL", "INFO"))
        finally:
            app.logger.info("RQ worker exiting (pid %s)", os.getpid())


if __name__ == "__main__":
    main()
