import logging
import os
import time

from werkzeug.utils import secure_filename

from ..errors import AudioIOError, InvalidUpload

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = frozenset({
    "audio/mpeg", "audio/mp3",
    "audio/wav", "audio/wave", "audio/x-wav",
    "audio/mp4", "audio/m4a", "audio/x-m4a",
    "audio/ogg", "audio/webm", "audio/flac",
})


def save_upload(file_storage, upload_dir, session_id):
    """Store an uploaded recording as <upload_dir>/<session_id>/<name>-<millis><ext>.

    Returns the absolute path of the stored file.
    """
    if file_storage is None or not getattr(file_storage, "filename", ""):
        raise InvalidUpload("audio file is required")
    mimetype = (file_storage.mimetype or "").lower()
    if mimetype not in ALLOWED_MIME_TYPES:
        raise InvalidUpload(
            f"Unsupported file type {mimetype or 'unknown'}. Allowed: {', '.join(sorted(ALLOWED_MIME_TYPES))}"
        )

    filename = secure_filename(file_storage.filename) or "audio"
    base, ext = os.path.splitext(filename)
    d = os.path.join(upload_dir, secure_filename(session_id))
    os.makedirs(d, exist_ok=True)
    path = os.path.abspath(os.path.join(d, f"{base}-{int(time.time() * 1000)}{ext.lower()}"))
    file_storage.save(path)
    return path


def read_audio(path):
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as e:
        raise AudioIOError(f"Failed to read audio file {path}: {e}", path=path) from e


def delete_audio(path):
    try:
        os.remove(path)
    except FileNotFoundError:
        return
    except OSError as e:
        raise AudioIOError(f"Failed to delete audio file {path}: {e}", path=path) from e


def discard(path):
    """Remove a file nobody will process; never raises."""
    if not path:
        return False
    try:
        os.remove(path)
        return True
    except FileNotFoundError:
        return False
    except OSError:
        logger.exception("Failed to discard %s", path)
        return False
