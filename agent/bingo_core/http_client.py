"""
Shared HTTP session for the bingo API and the image host.

Retry is limited to re-dialing connections that never reached the server.
Reads, statuses and POSTs are not retried: activity submission is
at-most-once per call, and periodic calls get another go on the next tick.
"""

import os

import certifi
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .constants import COMPANION_VERSION

USER_AGENT = f"bingo-companion/{COMPANION_VERSION}"


def _connect_retry():
    return Retry(
        total=2,
        connect=2,
        read=0,
        status=0,
        backoff_factor=1,                       # 0s, 2s between re-dials
        allowed_methods=["HEAD", "GET"],
        raise_on_status=False,
    )


def _ca_bundle():
    """REQUESTS_CA_BUNDLE / SSL_CERT_FILE when set to a real file, else certifi."""
    for var in ("REQUESTS_CA_BUNDLE", "SSL_CERT_FILE"):
        path = os.environ.get(var)
        if path and os.path.isfile(path):
            return path
    return certifi.where()


def create_session(pool_size=4):
    """Session with pooled keep-alive connections for the API and image host."""
    session = requests.Session()
    adapter = HTTPAdapter(
        pool_connections=2,                     # api host + image host
        pool_maxsize=pool_size,
        max_retries=_connect_retry(),
    )
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    session.verify = _ca_bundle()
    session.headers["User-Agent"] = USER_AGENT
    return session


def reset_session(session):
    """Drop pooled connections after a crash and start clean."""
    try:
        session.close()
    except requests.RequestException:
        pass
    return create_session()


http = create_session()
