from unittest.mock import patch
import pytest
from fakes import FakeClients, FakeNotification, FakeWindow
from rendplus.client.router import ClickOutcome, ClickRouter
from rendplus.config import settings

ORIGIN = "https://rendplus.example"

def notification(url="/"):
    return FakeNotification("🔔 New Quote Submission", {"data": {"url": url}})

@pytest.mark.asyncio
async def test_dismiss_closes_and_does_nothing_else():
    clients = FakeClients([FakeWindow(f"{ORIGIN}/")])
    n = notification()
    outcome = await ClickRouter(clients, origin=ORIGIN).route(n, "dismiss")
    assert outcome == ClickOutcome.DISMISSED
    assert n.closed
    assert clients.opened == []
    assert not clients.windows[0].focused

@pytest.mark.asyncio
@pytest.mark.parametrize("action", ["", "open"])
async def test_focuses_matching_window(action):
    other = FakeWindow(f"{ORIGIN}/portfolio")
    match = FakeWindow(f"{ORIGIN}/")
    clients = FakeClients([other, match])
    n = notification()

    outcome = await ClickRouter(clients, origin=ORIGIN).route(n, action)

    assert outcome == ClickOutcome.FOCUSED
    assert n.closed
    assert match.focused and not other.focused
    assert clients.opened == []
    assert clients.include_uncontrolled is True

@pytest.mark.asyncio
async def test_opens_one_window_when_none_match():
    clients = FakeClients([FakeWindow(f"{ORIGIN}/services")])
    outcome = await ClickRouter(clients, origin=ORIGIN).route(notification("/admin"))
    assert outcome == ClickOutcome.OPENED
    assert [w.url for w in clients.opened] == [f"{ORIGIN}/admin"]

@pytest.mark.asyncio
async def test_empty_origin_compares_urls_exactly():
    clients = FakeClients([FakeWindow("/")])
    outcome = await ClickRouter(clients, origin="").route(notification("/"))
    assert outcome == ClickOutcome.FOCUSED

@pytest.mark.asyncio
async def test_default_origin_comes_from_settings():
    tab = FakeWindow(f"{ORIGIN}/")
    clients = FakeClients([tab])
    with patch.object(settings, "site_origin", ORIGIN):
        outcome = await ClickRouter(clients).route(notification("/"))
    assert outcome == ClickOutcome.FOCUSED
    assert tab.focused

@pytest.mark.asyncio
async def test_unfocusable_match_opens_new_window():
    clients = FakeClients([FakeWindow(f"{ORIGIN}/", focusable=False)])
    outcome = await ClickRouter(clients, origin=ORIGIN).route(notification())
    assert outcome == ClickOutcome.OPENED

@pytest.mark.asyncio
async def test_platform_refusing_to_open_is_not_an_error():
    clients = FakeClients([], can_open=False)
    assert await ClickRouter(clients, origin=ORIGIN).route(notification()) == ClickOutcome.NONE

@pytest.mark.asyncio
async def test_missing_url_defaults_to_root():
    clients = FakeClients([])
    n = FakeNotification("Title", {})
    await ClickRouter(clients, origin=ORIGIN).route(n)
    assert clients.opened[0].url == f"{ORIGIN}/"
