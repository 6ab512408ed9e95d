import base64
import threading

import httpx

from campfire_client import JSONStream


def make_stream(handler, **options):
    defaults = {
        "host": "streaming.campfirenow.com",
        "path": "/room/1/live.json",
        "auth": "mytoken:X",
        "max_reconnects": 0,
        "reconnect_delay": 0,
        "transport": httpx.MockTransport(handler),
    }
    defaults.update(options)
    return JSONStream.connect(**defaults)


def test_items_are_emitted_per_line():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, content=b'{"id": 1}\r \r{"id": 2}\n\n{"id": 3}\n')

    stream = make_stream(handler)
    items, gave_up = [], []
    stream.each_item(items.append)
    stream.on_max_reconnects(lambda timeout, retries: gave_up.append(retries))

    stream.run()

    assert items == ['{"id": 1}', '{"id": 2}', '{"id": 3}']
    assert gave_up == [0]
    assert str(requests[0].url) == "https://streaming.campfirenow.com/room/1/live.json"
    expected = "Basic " + base64.b64encode(b"mytoken:X").decode()
    assert requests[0].headers["Authorization"] == expected


def test_error_status_emits_error():
    stream = make_stream(lambda request: httpx.Response(401, text="denied"))
    errors = []
    stream.on_error(errors.append)

    stream.run()

    assert len(errors) == 1
    assert "401" in errors[0]
    assert "denied" in errors[0]


def test_reconnects_until_budget_is_spent():
    attempts = []

    def handler(request):
        attempts.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    stream = make_stream(handler, max_reconnects=2, timeout=3)
    gave_up = []
    stream.on_max_reconnects(lambda timeout, retries: gave_up.append((timeout, retries)))

    stream.run()

    assert len(attempts) == 3
    assert gave_up == [(3, 2)]


def test_stop_from_item_callback_ends_run():
    stream = make_stream(lambda request: httpx.Response(200, content=b'{"id": 1}\n{"id": 2}\n'),
                         max_reconnects=5)
    items = []

    def on_item(item):
        items.append(item)
        stream.stop()

    stream.each_item(on_item)
    stream.run()

    assert items == ['{"id": 1}']
    assert stream.stopped


def test_stop_from_another_thread():
    def handler(request):
        raise httpx.ConnectError("down", request=request)

    stream = make_stream(handler, max_reconnects=1000, reconnect_delay=0.05, reconnect_max_delay=0.05)
    gave_up = []
    stream.on_max_reconnects(lambda timeout, retries: gave_up.append(retries))

    thread = threading.Thread(target=stream.run)
    thread.start()
    threading.Timer(0.2, stream.stop).start()
    thread.join(timeout=5)

    assert not thread.is_alive()
    assert gave_up == []


def test_stop_before_run():
    stream = make_stream(lambda request: httpx.Response(200, content=b'{"id": 1}\n'))
    items = []
    stream.each_item(items.append)

    stream.stop()
    stream.stop()
    stream.run()

    assert items == []
