import copy
import json

from conftest import ROOM, ROOM_ID

ROOM_PATH = f"/room/{ROOM_ID}.json"


def test_topic_fetches_on_every_call(room, service):
    assert room.topic() == "Testing"
    assert room.topic() == "Testing"
    assert service.count("GET", ROOM_PATH) == 2


def test_current_users_fetches_on_every_call(room, service):
    users = room.current_users()
    room.current_users()

    assert [u.id for u in users] == [7]
    assert users[0].email == "brandon@example.com"
    assert users[0].is_admin is True
    assert users[0].created_at.year == 2006
    assert service.count("GET", ROOM_PATH) == 2


def test_guest_accessors_load_once(room, service):
    assert room.guest_access_enabled() is True
    assert room.guest_access_enabled() is True
    assert room.guest_invite_code() == "90cf7"
    assert room.guest_url() == "https://test.campfirenow.com/90cf7"
    assert room.full() is False
    assert service.count("GET", ROOM_PATH) == 1


def test_guest_url_is_none_when_closed_to_guests(room, service):
    closed = copy.deepcopy(ROOM)
    closed["room"]["open_to_guests"] = False
    service.add("GET", ROOM_PATH, closed)

    assert room.guest_access_enabled() is False
    assert room.guest_url() is None


def test_users_loads_roster_once(room, service):
    assert [u.id for u in room.users()] == [7]
    assert [u.id for u in room.users()] == [7]
    assert service.count("GET", ROOM_PATH) == 1


def test_update_does_not_touch_cache(room, service):
    service.add("PUT", ROOM_PATH, text="")
    room.guest_access_enabled()

    room.set_topic("new")

    request = service.last("PUT", ROOM_PATH)
    assert json.loads(request.content) == {"room": {"topic": "new"}}
    # read-after-write is stale until the room is reloaded
    assert room.state.state.topic == "Testing"

    renamed = copy.deepcopy(ROOM)
    renamed["room"]["topic"] = "new"
    service.add("GET", ROOM_PATH, renamed)
    assert room.topic() == "new"


def test_rename_puts_name(room, service):
    service.add("PUT", ROOM_PATH, text="")
    room.rename("Lobby")

    assert json.loads(service.last("PUT", ROOM_PATH).content) == {"room": {"name": "Lobby"}}
    assert room.name == "Room 1"


def test_reload_refreshes_name(room, service):
    renamed = copy.deepcopy(ROOM)
    renamed["room"]["name"] = "Lobby"
    service.add("GET", ROOM_PATH, renamed)

    assert room.name == "Room 1"
    room.topic()
    assert room.name == "Lobby"


def test_force_reload_replaces_fetched_users(room, service):
    room.user(9)
    assert [u.id for u in room.users()] == [7, 9]

    room.current_users()
    assert [u.id for u in room.users()] == [7]
