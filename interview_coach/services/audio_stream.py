"""Serve stored recordings with HTTP byte-range support.

Only the requested window is read from disk, in fixed-size chunks, so seeking
in a long recording never loads the whole file.
"""
import os
import re

from flask import Response

from ..errors import AudioNotFound, RangeNotSatisfiable

CHUNK_SIZE = 64 * 1024

MIME_TYPES = {
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".m4a": "audio/mp4",
    ".ogg": "audio/ogg",
    ".webm": "audio/webm",
    ".flac": "audio/flac",
}

_RANGE_RE = re.compile(r"^bytes=(\d*)-(\d*)$")


def content_type_for(path):
    return MIME_TYPES.get(os.path.splitext(path)[1].lower(), "application/octet-stream")


def parse_byte_range(header, size):
    """Return (start, end) inclusive for a single `bytes=` range, or None.

    None means the header is absent or not something we honour (another unit,
    several ranges, garbage) and the whole file should be sent. A well-formed
    range that falls outside the file raises RangeNotSatisfiable.
    """
    if not header:
        return None
    m = _RANGE_RE.match(header.strip())
    if not m:
        return None
    first, last = m.groups()
    if not first and not last:
        return None

    if not first:
        # suffix form: the last N bytes
        n = int(last)
        if n == 0 or size == 0:
            raise RangeNotSatisfiable(size, header)
        return max(0, size - n), size - 1

    start = int(first)
    end = int(last) if last else size - 1
    if start >= size or end >= size or end < start:
        raise RangeNotSatisfiable(size, header)
    return start, end


def _read_window(f, start, length):
    f.seek(start)
    remaining = length
    while remaining > 0:
        chunk = f.read(min(CHUNK_SIZE, remaining))
        if not chunk:
            break
        remaining -= len(chunk)
        yield chunk


def stream_audio(session, range_header=None):
    """Build the streaming response for a session's stored recording.

    The file is opened before the status line is decided, so a recording
    removed afterwards still streams from the open handle.
    """
    path = session.original_audio_path
    if not path:
        raise AudioNotFound(session.id)
    try:
        f = open(path, "rb")
    except (FileNotFoundError, IsADirectoryError, NotADirectoryError) as e:
        raise AudioNotFound(session.id) from e

    try:
        size = os.fstat(f.fileno()).st_size
        headers = {"Accept-Ranges": "bytes"}
        window = parse_byte_range(range_header, size)
    except Exception:
        f.close()
        raise
    if window is None:
        start, end, status = 0, size - 1, 200
    else:
        start, end = window
        status = 206
        headers["Content-Range"] = f"bytes {start}-{end}/{size}"

    length = end - start + 1 if size else 0
    headers["Content-Length"] = str(length)
    resp = Response(
        _read_window(f, start, length),
        status=status,
        headers=headers,
        mimetype=content_type_for(path),
        direct_passthrough=True,
    )
    resp.call_on_close(f.close)
    return resp
