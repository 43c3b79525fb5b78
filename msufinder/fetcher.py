"""Pinned-host HTTPS requests with a bounded retry budget.

Every request goes to a fixed IP address while the Host header, SNI and the
certificate check use the site's real hostname.  A fresh session is opened
for each attempt and closed again whatever happens.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Mapping

import requests
from requests.adapters import HTTPAdapter

from .config import MAX_ATTEMPTS, REQUEST_TIMEOUT, RETRY_DELAY, USER_AGENT
from .errors import NetworkFatal
from .models import FetchRequest, FetchResult, HostTarget

logger = logging.getLogger(__name__)

# SSLError and ConnectTimeout are both ConnectionError subclasses.
# ChunkedEncodingError covers a body that ends before it should.
TRANSIENT_ERRORS = (
    requests.ConnectionError,
    requests.Timeout,
    requests.exceptions.ChunkedEncodingError,
)


@dataclass(frozen=True)
class NetworkTransient:
    """A failed attempt that is worth retrying."""

    error: Exception


class PinnedHostAdapter(HTTPAdapter):
    """Connect to an IP address but verify TLS against *vhost*."""

    def __init__(self, vhost: str, **kwargs):
        self.vhost = vhost
        super().__init__(**kwargs)

    def init_poolmanager(self, *args, **kwargs):
        kwargs["server_hostname"] = self.vhost
        kwargs["assert_hostname"] = self.vhost
        super().init_poolmanager(*args, **kwargs)


def _open_session(target: HostTarget) -> requests.Session:
    session = requests.Session()
    session.headers.update({"User-Agent": USER_AGENT, "Host": target.vhost})
    session.mount("https://", PinnedHostAdapter(target.vhost))
    return session


def _attempt(request: FetchRequest) -> FetchResult | NetworkTransient:
    """Make one attempt. Non-transient transport errors raise NetworkFatal."""
    session = _open_session(request.target)
    try:
        resp = session.request(
            request.method,
            request.url,
            params=list(request.params) or None,
            timeout=REQUEST_TIMEOUT,
            allow_redirects=False,
        )
        return FetchResult(
            status=resp.status_code,
            headers=resp.headers,
            body=resp.content,
        )
    except TRANSIENT_ERRORS as e:
        return NetworkTransient(e)
    except requests.RequestException as e:
        raise NetworkFatal(e) from e
    finally:
        session.close()


def send(request: FetchRequest) -> FetchResult:
    """Send *request*, retrying transient failures up to MAX_ATTEMPTS times."""
    outcome: FetchResult | NetworkTransient | None = None
    for attempt in range(1, MAX_ATTEMPTS + 1):
        logger.debug("Requesting: %s", request.path)
        outcome = _attempt(request)
        if isinstance(outcome, FetchResult):
            return outcome
        if attempt < MAX_ATTEMPTS:
            logger.error(
                "Failed to make a request, but will try again in %d seconds...",
                RETRY_DELAY,
            )
            time.sleep(RETRY_DELAY)

    raise NetworkFatal(outcome.error, attempts=MAX_ATTEMPTS)


def fetch(
    target: HostTarget,
    path: str,
    method: str = "GET",
    params: Mapping[str, str] | None = None,
) -> FetchResult:
    """Fetch *path* from a pinned host."""
    request = FetchRequest(
        target=target,
        path=path,
        method=method,
        params=tuple((k, str(v)) for k, v in (params or {}).items()),
    )
    return send(request)
