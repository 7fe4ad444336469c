import pytest

from interview_coach.errors import RangeNotSatisfiable
from interview_coach.services.audio_stream import content_type_for, parse_byte_range, stream_audio

CONTENT = bytes(range(256)) * 4  # 1024 bytes


def test_parse_closed_range():
    assert parse_byte_range("bytes=0-99", 1000) == (0, 99)


def test_parse_open_range():
    assert parse_byte_range("bytes=900-", 1000) == (900, 999)


def test_parse_suffix_range():
    assert parse_byte_range("bytes=-100", 1000) == (900, 999)
    assert parse_byte_range("bytes=-5000", 1000) == (0, 999)


@pytest.mark.parametrize("header", ["bytes=2000-2100", "bytes=1000-", "bytes=0-1000", "bytes=50-10", "bytes=-0"])
def test_parse_unsatisfiable(header):
    with pytest.raises(RangeNotSatisfiable) as exc:
        parse_byte_range(header, 1000)
    assert exc.value.file_size == 1000


@pytest.mark.parametrize("header", [None, "", "items=0-10", "bytes=0-10,20-30", "bytes=abc", "bytes=-"])
def test_unsupported_headers_mean_full_file(header):
    assert parse_byte_range(header, 1000) is None


def test_content_types():
    assert content_type_for("/a/b.MP3") == "audio/mpeg"
    assert content_type_for("x.wav") == "audio/wav"
    assert content_type_for("x.m4a") == "audio/mp4"
    assert content_type_for("x.webm") == "audio/webm"
    assert content_type_for("x.bin") == "application/octet-stream"


@pytest.fixture
def audio_session(store, tmp_path):
    path = tmp_path / "clip.mp3"
    path.write_bytes(CONTENT)
    s = store.create("ja")
    store.transition(s.id, "CREATED", "UPLOADING", original_audio_path=str(path))
    return s.id, path


def test_full_file(client, audio_session):
    sid, _ = audio_session
    resp = client.get(f"/sessions/{sid}/audio")
    assert resp.status_code == 200
    assert resp.data == CONTENT
    assert resp.headers["Content-Length"] == str(len(CONTENT))
    assert resp.headers["Accept-Ranges"] == "bytes"
    assert resp.mimetype == "audio/mpeg"
    assert "Content-Range" not in resp.headers


def test_partial_content(client, audio_session):
    sid, _ = audio_session
    resp = client.get(f"/sessions/{sid}/audio", headers={"Range": "bytes=0-99"})
    assert resp.status_code == 206
    assert resp.headers["Content-Range"] == f"bytes 0-99/{len(CONTENT)}"
    assert resp.headers["Content-Length"] == "100"
    assert resp.headers["Accept-Ranges"] == "bytes"
    assert resp.data == CONTENT[:100]


def test_open_ended_range(client, audio_session):
    sid, _ = audio_session
    resp = client.get(f"/sessions/{sid}/audio", headers={"Range": "bytes=1000-"})
    assert resp.status_code == 206
    assert resp.data == CONTENT[1000:]
    assert resp.headers["Content-Range"] == f"bytes 1000-1023/{len(CONTENT)}"


def test_range_beyond_file(client, audio_session):
    sid, _ = audio_session
    resp = client.get(f"/sessions/{sid}/audio", headers={"Range": "bytes=2000-2100"})
    assert resp.status_code == 416
    assert resp.headers["Content-Range"] == f"bytes */{len(CONTENT)}"
    assert resp.data == b""


def test_missing_file(client, audio_session):
    sid, path = audio_session
    path.unlink()
    resp = client.get(f"/sessions/{sid}/audio")
    assert resp.status_code == 404


def test_session_without_audio(client, store):
    s = store.create("ja")
    assert client.get(f"/sessions/{s.id}/audio").status_code == 404


def test_unknown_session(client):
    resp = client.get("/sessions/nope/audio")
    assert resp.status_code == 404
    assert resp.get_json()["error"] == "SessionNotFound"


def test_file_removed_after_response_built_still_streams(store, audio_session):
    sid, path = audio_session
    resp = stream_audio(store.get(sid), "bytes=24-")
    path.unlink()
    try:
        assert resp.status_code == 206
        assert resp.headers["Content-Length"] == str(len(CONTENT) - 24)
        assert b"".join(resp.response) == CONTENT[24:]
    finally:
        resp.close()


def test_unsatisfiable_range_raises_before_streaming(store, audio_session):
    sid, _ = audio_session
    with pytest.raises(RangeNotSatisfiable):
        stream_audio(store.get(sid), "bytes=5000-")
