import asyncio

import httpx
import pytest

from slack_attendance.slack_client import SlackApiError, SlackClient, display_name


def make_client(handler):
    return SlackClient("xoxb-test", transport=httpx.MockTransport(handler), page_delay=0)


async def collect(iterator):
    return [item async for item in iterator]


def test_channel_history_follows_cursor():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(dict(request.url.params))
        assert request.headers["Authorization"] == "Bearer xoxb-test"
        if "cursor" not in request.url.params:
            return httpx.Response(
                200,
                json={
                    "ok": True,
                    "messages": [{"ts": "2.0", "text": "in"}, {"ts": "1.5", "subtype": "channel_join"}],
                    "has_more": True,
                    "response_metadata": {"next_cursor": "page2"},
                },
            )
        return httpx.Response(200, json={"ok": True, "messages": [{"ts": "1.0", "text": "out"}]})

    client = make_client(handler)
    messages = asyncio.run(collect(client.fetch_channel_history("C1", oldest="0.5", latest="3.0")))

    assert [message["ts"] for message in messages] == ["2.0", "1.0"]
    assert calls[0]["oldest"] == "0.5"
    assert calls[1]["cursor"] == "page2"


def test_error_response_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"ok": False, "error": "invalid_auth"})

    client = make_client(handler)

    with pytest.raises(SlackApiError) as excinfo:
        asyncio.run(client.fetch_user_info("U1"))
    assert excinfo.value.method == "users.info"
    assert excinfo.value.error == "invalid_auth"


def test_fetch_users_skips_deleted_members():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={"ok": True, "members": [{"id": "U1"}, {"id": "U2", "deleted": True}]},
        )

    users = asyncio.run(make_client(handler).fetch_users())

    assert [user["id"] for user in users] == ["U1"]


def test_display_name_prefers_real_name():
    assert display_name({"name": "alice", "real_name": "Alice A"}) == "Alice A"
    assert display_name({"name": "alice", "profile": {"real_name": "Alice P"}}) == "Alice P"
    assert display_name({"name": "alice"}) == "alice"
