"""Shared `requests` call for HTTP-backed engines.

Maps transport and HTTP failures onto the engine error taxonomy so every
backend reports the same three kinds of failure.
"""

import logging
from typing import Any

import requests

from ..errors import EngineError, EngineUnavailable, UnsupportedInput

logger = logging.getLogger(__name__)

UNSUPPORTED_STATUSES = frozenset({400, 413, 415, 422})


def post_json(engine: str, url: str, timeout: float, **kwargs: Any) -> dict[str, Any]:
    """POST to a backend and return its decoded JSON body.

    Raises:
        EngineUnavailable: Connection error, timeout, HTTP 429 or 5xx.
        UnsupportedInput: HTTP 400, 413, 415 or 422.
        EngineError: Any other non-2xx status or an undecodable body.
    """
    try:
        resp = requests.post(url, timeout=timeout, **kwargs)
    except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as exc:
        raise EngineUnavailable(f"{engine} unreachable: {exc}", engine=engine) from exc
    except requests.exceptions.RequestException as exc:
        raise EngineError(f"{engine} request failed: {exc}", engine=engine) from exc

    if resp.status_code >= 400:
        body = (resp.text or "")[:500]
        logger.warning("%s returned HTTP %s: %s", engine, resp.status_code, body)
        message = f"{engine} returned HTTP {resp.status_code}: {body}"
        if resp.status_code == 429 or resp.status_code >= 500:
            raise EngineUnavailable(message, engine=engine)
        if resp.status_code in UNSUPPORTED_STATUSES:
            raise UnsupportedInput(message, engine=engine)
        raise EngineError(message, engine=engine)

    try:
        return resp.json()
    except ValueError as exc:
        raise EngineError(f"{engine} returned a non-JSON body", engine=engine) from exc
