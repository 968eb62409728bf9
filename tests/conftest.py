import json
import threading
from urllib.parse import urlsplit

import pytest

from bingo_core.api import SyncClient
from bingo_core.config import ConfigStore
from bingo_core.state import Credential, CredentialState

BASE = "http://bingo.test"


class FakeResponse:
    def __init__(self, status_code=200, body=None, text=None):
        self.status_code = status_code
        if text is None:
            text = "" if body is None else json.dumps(body)
        self.text = text

    def json(self):
        return json.loads(self.text)


class FakeSession:
    """
    Stands in for requests.Session. Routes are keyed by (METHOD, path);
    each route serves its responses in order and repeats the last one.
    An Exception instance in the list is raised instead of returned.
    """

    def __init__(self):
        self.routes = {}
        self.calls = []
        self.before_reply = None
        self._lock = threading.Lock()

    def route(self, method, path, *responses):
        self.routes[(method, path)] = list(responses)

    def request(self, method, url, **kwargs):
        path = urlsplit(url).path
        with self._lock:
            self.calls.append((method, path, kwargs))
            queue = self.routes.get((method, path))
            if not queue:
                reply = FakeResponse(404, text="Not Found")
            elif len(queue) == 1:
                reply = queue[0]
            else:
                reply = queue.pop(0)
        if self.before_reply is not None:
            self.before_reply(method, path)
        if isinstance(reply, Exception):
            raise reply
        return reply

    def post(self, url, **kwargs):
        return self.request("POST", url, **kwargs)

    def get(self, url, **kwargs):
        return self.request("GET", url, **kwargs)

    def calls_to(self, method, path):
        with self._lock:
            return [kw for m, p, kw in self.calls if m == method and p == path]


@pytest.fixture
def config():
    return ConfigStore(path=None, values={"authApiUrl": BASE, "rsn": "Zezima"})


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def credentials():
    return CredentialState()


@pytest.fixture
def client(config, credentials, session):
    return SyncClient(config, credentials, session=session)


@pytest.fixture
def credential():
    return Credential(rsn="Zezima", jwt="jwt-1", team_id="7")


@pytest.fixture
def logged_in(client, credentials, credential):
    credentials.set_authenticated(credential)
    return client
