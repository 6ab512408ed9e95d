import copy
import json
import threading

import httpx
import pytest

from campfire_client import Connection, Room, Settings

ROOM_ID = 80749

BRANDON = {
    "id": 7,
    "name": "Brandon",
    "email_address": "brandon@example.com",
    "admin": True,
    "created_at": "2006/04/07 14:25:21 +0000",
    "type": "Member",
}

JANE = {
    "id": 9,
    "name": "Jane",
    "email_address": "jane@example.com",
    "admin": False,
    "created_at": "2010/01/12 09:00:00 +0000",
    "type": "Member",
}

ROOM = {
    "room": {
        "id": ROOM_ID,
        "name": "Room 1",
        "topic": "Testing",
        "full": False,
        "open_to_guests": True,
        "active_token_value": "90cf7",
        "users": [BRANDON],
    }
}


class FakeService:
    """Routes requests of an httpx.MockTransport to canned responses"""

    def __init__(self):
        self.routes = {}
        self.requests = []
        self._lock = threading.Lock()

    def add(self, method, path, json=None, status=200, text=None, handler=None):
        self.routes[(method, path)] = (json, status, text, handler)

    def count(self, method, path):
        return sum(1 for r in self.requests if r.method == method and r.url.path == path)

    def last(self, method, path):
        return [r for r in self.requests if r.method == method and r.url.path == path][-1]

    def handler(self, request: httpx.Request) -> httpx.Response:
        with self._lock:
            self.requests.append(request)
        key = (request.method, request.url.path)
        if key not in self.routes:
            return httpx.Response(404, text="Not Found")

        body, status, text, handler = self.routes[key]
        if handler is not None:
            return handler(request)
        if text is not None:
            return httpx.Response(status, text=text)
        return httpx.Response(status, json=copy.deepcopy(body))


class FakeStream:
    """Streaming transport playing back a script of events"""

    def __init__(self, script, **options):
        self.script = script
        self.options = options
        self.stopped = threading.Event()
        self.started = threading.Event()
        self._item = self._error = self._max_reconnects = None

    def each_item(self, callback):
        self._item = callback

    def on_error(self, callback):
        self._error = callback

    def on_max_reconnects(self, callback):
        self._max_reconnects = callback

    def run(self):
        self.started.set()
        for event, *args in self.script:
            if self.stopped.is_set():
                return
            if event == "item":
                self._item(args[0] if isinstance(args[0], str) else json.dumps(args[0]))
            elif event == "error":
                self._error(args[0])
                return
            elif event == "max_reconnects":
                self._max_reconnects(6, args[0])
                return
            elif event == "close":
                return
        self.stopped.wait(timeout=5)

    def stop(self):
        self.stopped.set()


class FakeStreamFactory:
    def __init__(self):
        self.script = []
        self.streams = []
        self.stream_class = FakeStream

    def __call__(self, **options):
        stream = self.stream_class(list(self.script), **options)
        self.streams.append(stream)
        return stream


@pytest.fixture
def settings():
    return Settings(
        environment="development",
        stream_connect_timeout=1,
        stream_reconnect_delay=0,
        normalization_failure="skip",
    )


@pytest.fixture
def service():
    service = FakeService()
    service.add("GET", f"/room/{ROOM_ID}.json", ROOM)
    service.add("GET", "/users/9.json", {"user": JANE})
    service.add("POST", f"/room/{ROOM_ID}/join.xml", text="")
    service.add("POST", f"/room/{ROOM_ID}/leave.xml", text="")
    return service


@pytest.fixture
def connection(service, settings):
    connection = Connection(
        "test",
        token="mytoken",
        settings=settings,
        transport=httpx.MockTransport(service.handler),
    )
    yield connection
    connection.close()


@pytest.fixture
def streams():
    return FakeStreamFactory()


@pytest.fixture
def room(connection, streams):
    return Room(connection, {"id": ROOM_ID, "name": "Room 1"}, transport_factory=streams)
