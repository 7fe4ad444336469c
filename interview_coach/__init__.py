import logging
import os

from flask import Flask

from .engines import build_engines
from .errors import register_error_handlers
from .extensions import audio_queue, db, migrate


def create_app(config_object="config.Config"):
    """App factory.

    Engines are resolved once here; an unknown engine name fails startup.
    """
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    db.init_app(app)
    migrate.init_app(app, db)
    audio_queue.init_app(app)
    app.extensions["engines"] = build_engines(app.config)

    os.makedirs(app.config.get("UPLOAD_DIR", "./uploads"), exist_ok=True)

    from .api.sessions import bp as sessions_bp
    app.register_blueprint(sessions_bp)
    register_error_handlers(app)

    if app.config.get("CREATE_TABLES"):
        from . import models  # noqa: F401

        with app.app_context():
            db.create_all()

    app.logger.info(
        "Engines: transcription=%s analysis=%s",
        app.extensions["engines"].transcriber.name,
        app.extensions["engines"].analyzer.name,
    )
    return app
