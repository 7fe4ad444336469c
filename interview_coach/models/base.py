from datetime import datetime, timezone

from ..extensions import db


def _utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class TimestampMixin:
    created_at = db.Column(db.DateTime, nullable=False, default=_utcnow, server_default=db.func.now())
    updated_at = db.Column(db.DateTime, nullable=False, default=_utcnow, server_default=db.func.now(), onupdate=_utcnow)
