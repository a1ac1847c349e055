import asyncio
import pytest
from fakes import FakePlatform, FakeRegistration, FakeRegistry
from rendplus.client.platform import PermissionState
from rendplus.client.registration import RegistrationFlow, RegistrationState
from rendplus.errors import (
    NotificationsDisabledError,
    PermissionDeniedError,
    RegistryError,
    TokenUnavailableError,
    UnsupportedPlatformError,
)

VAPID_KEY = "BLtest-vapid-public-key"

def make_flow(platform=None, registry=None, **kwargs):
    return RegistrationFlow(platform or FakePlatform(), registry or FakeRegistry(), VAPID_KEY, **kwargs)

@pytest.mark.asyncio
async def test_enable_registers_and_persists_token():
    platform, registry = FakePlatform(token="tok-A1"), FakeRegistry()
    flow = make_flow(platform, registry)

    token = await flow.enable("admin-a")

    assert token == "tok-A1"
    assert flow.state == RegistrationState.REGISTERED
    assert flow.is_enabled
    assert registry.rows == {"admin-a": "tok-A1"}
    assert platform.token_requests == [VAPID_KEY]
    assert platform.registration.script_url == "/firebase-messaging-sw.js"
    assert platform.registration.scope == "/"

@pytest.mark.asyncio
async def test_enable_shows_confirmation_notification():
    platform = FakePlatform()
    await make_flow(platform).enable("admin-a")
    shown = platform.registration.shown
    assert [n.title for n in shown] == ["🔔 Notifications Enabled!"]

@pytest.mark.asyncio
async def test_prompt_only_when_permission_not_yet_asked():
    platform = FakePlatform(permission=PermissionState.DEFAULT)
    await make_flow(platform).enable("admin-a")
    assert platform.prompts == 1

    already_granted = FakePlatform(permission=PermissionState.GRANTED)
    await make_flow(already_granted).enable("admin-a")
    assert already_granted.prompts == 0

@pytest.mark.asyncio
@pytest.mark.parametrize("platform", [
    FakePlatform(permission=PermissionState.DEFAULT, prompt_answer=PermissionState.DENIED),
    FakePlatform(permission=PermissionState.DENIED),
])
async def test_denied_permission_never_requests_token(platform):
    registry = FakeRegistry()
    flow = make_flow(platform, registry)

    with pytest.raises(PermissionDeniedError) as exc:
        await flow.enable("admin-a")

    assert flow.state == RegistrationState.PERMISSION_DENIED
    assert platform.token_requests == []
    assert registry.rows == {}
    assert "browser settings" in exc.value.hint

@pytest.mark.asyncio
async def test_dismissed_prompt_is_not_granted():
    platform = FakePlatform(prompt_answer=PermissionState.DEFAULT)
    flow = make_flow(platform)
    with pytest.raises(PermissionDeniedError):
        await flow.enable("admin-a")
    assert flow.state == RegistrationState.UNREGISTERED
    assert platform.token_requests == []

@pytest.mark.asyncio
async def test_permission_prompt_timeout():
    class SlowPlatform(FakePlatform):
        async def request_permission(self):
            await asyncio.sleep(10)

    flow = make_flow(SlowPlatform(), permission_timeout=0.01)
    with pytest.raises(TimeoutError):
        await flow.enable("admin-a")
    assert flow.state == RegistrationState.UNREGISTERED

@pytest.mark.asyncio
@pytest.mark.parametrize("notifications,background", [(False, True), (True, False)])
async def test_unsupported_platform(notifications, background):
    platform = FakePlatform(notifications=notifications, background=background)
    flow = make_flow(platform)
    with pytest.raises(UnsupportedPlatformError):
        await flow.enable("admin-a")
    assert flow.state == RegistrationState.UNSUPPORTED
    assert platform.registration is None

@pytest.mark.asyncio
async def test_empty_token_fails():
    flow = make_flow(FakePlatform(token=""))
    with pytest.raises(TokenUnavailableError):
        await flow.enable("admin-a")
    assert flow.state == RegistrationState.TOKEN_FAILED
    assert flow.token is None

@pytest.mark.asyncio
async def test_token_request_error_is_wrapped():
    flow = make_flow(FakePlatform(token_error=RuntimeError("messaging/token-subscribe-failed")))
    with pytest.raises(TokenUnavailableError) as exc:
        await flow.enable("admin-a")
    assert "token-subscribe-failed" in str(exc.value)
    assert flow.state == RegistrationState.TOKEN_FAILED

@pytest.mark.asyncio
async def test_persistence_failure_is_reported_but_local_token_kept():
    flow = make_flow(FakePlatform(token="tok-A1"), FakeRegistry(fail_upsert=True))

    with pytest.raises(RegistryError):
        await flow.enable("admin-a")

    assert flow.state == RegistrationState.REGISTERED
    assert flow.token == "tok-A1"
    assert flow.persist_error is not None
    assert await flow.send_test("still works") is True

@pytest.mark.asyncio
async def test_disable_removes_registration_and_background_context():
    platform, registry = FakePlatform(), FakeRegistry()
    unrelated = FakeRegistration(script_url="/other-sw.js")
    platform.extra_registrations.append(unrelated)
    flow = make_flow(platform, registry)
    await flow.enable("admin-a")

    await flow.disable("admin-a")

    assert registry.rows == {}
    assert flow.state == RegistrationState.UNREGISTERED
    assert flow.token is None
    assert platform.registration.unregistered is True
    assert unrelated.unregistered is False

@pytest.mark.asyncio
async def test_disable_clears_local_state_even_if_remove_fails():
    registry = FakeRegistry()
    flow = make_flow(FakePlatform(), registry)
    await flow.enable("admin-a")
    registry.fail_remove = True

    with pytest.raises(RegistryError):
        await flow.disable("admin-a", unregister_background=False)
    assert not flow.is_enabled

@pytest.mark.asyncio
async def test_send_test_renders_locally():
    platform = FakePlatform()
    flow = make_flow(platform)
    await flow.enable("admin-a")

    assert await flow.send_test("Hello admin") is True

    test_notification = platform.registration.shown[-1]
    assert test_notification.title == "🧪 Test Notification"
    assert test_notification.options["body"] == "Hello admin"
    assert test_notification.options["requireInteraction"] is True

@pytest.mark.asyncio
async def test_send_test_requires_registration():
    with pytest.raises(NotificationsDisabledError):
        await make_flow().send_test("Hello admin")

@pytest.mark.asyncio
async def test_token_refresh_upserts_new_token():
    registry = FakeRegistry()
    flow = make_flow(FakePlatform(token="tok-A1"), registry)
    await flow.enable("admin-a")

    assert await flow.on_token_refresh("admin-a", "tok-A2") is True
    assert registry.rows == {"admin-a": "tok-A2"}
    assert await flow.on_token_refresh("admin-a", "tok-A2") is False

@pytest.mark.asyncio
async def test_token_refresh_ignored_when_not_registered():
    registry = FakeRegistry()
    assert await make_flow(registry=registry).on_token_refresh("admin-a", "tok-A2") is False
    assert registry.rows == {}

def test_permission_status():
    assert make_flow(FakePlatform(notifications=False)).permission_status() == PermissionState.UNSUPPORTED
    assert make_flow(FakePlatform(permission=PermissionState.GRANTED)).permission_status() == PermissionState.GRANTED
