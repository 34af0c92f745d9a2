import pytest

from conftest import FakeSocketIOClient
from familybank.client.channels import ChannelController, channels_for
from familybank.client.events import Identity
from familybank.client.transport import SocketTransport


def make_controller(sio_client: FakeSocketIOClient):
    transport = SocketTransport("http://test", token_provider=lambda: "tok", client=sio_client)
    return transport, ChannelController(transport)


def test_no_channels_without_family() -> None:
    assert channels_for(Identity(user_id="U1")) == set()
    assert channels_for(None) == set()


@pytest.mark.asyncio
async def test_join_connects_lazily_and_joins_each_channel_once(sio_client) -> None:
    transport, controller = make_controller(sio_client)
    identity = Identity(user_id="U1", family_id="F1")

    assert await controller.join(identity)
    assert await controller.join(identity)

    assert sio_client.connect_calls == 1
    assert sio_client.connect_kwargs["auth"] == {"token": "tok"}
    assert sorted(sio_client.emitted) == [
        ("join-family", "F1"),
        ("join-family-chat", "F1"),
        ("join-user-room", "U1"),
    ]
    assert controller.membership == {("family", "F1"), ("family-chat", "F1"), ("user", "U1")}


@pytest.mark.asyncio
async def test_identity_without_family_joins_nothing(sio_client) -> None:
    _, controller = make_controller(sio_client)

    assert not await controller.join(Identity(user_id="U1"))
    assert sio_client.connect_calls == 0
    assert sio_client.emitted == []


@pytest.mark.asyncio
async def test_identity_change_leaves_stale_channels(sio_client) -> None:
    _, controller = make_controller(sio_client)
    await controller.join(Identity(user_id="U1", family_id="F1"))
    sio_client.emitted.clear()

    await controller.join(Identity(user_id="U1", family_id="F2"))

    assert ("leave-family", "F1") in sio_client.emitted
    assert ("leave-family-chat", "F1") in sio_client.emitted
    assert ("join-family", "F2") in sio_client.emitted
    assert ("join-family-chat", "F2") in sio_client.emitted
    # the user channel did not change
    assert ("join-user-room", "U1") not in sio_client.emitted
    assert controller.membership == {("family", "F2"), ("family-chat", "F2"), ("user", "U1")}


@pytest.mark.asyncio
async def test_listen_twice_keeps_one_subscription(sio_client) -> None:
    transport, controller = make_controller(sio_client)
    seen = []

    first = controller.listen("new-transaction", seen.append)
    second = controller.listen("new-transaction", seen.append)
    await controller.join(Identity(user_id="U1", family_id="F1"))
    await sio_client.deliver("new-transaction", {"amount": 1})

    assert first is second
    assert transport.listener_count("new-transaction") == 1
    assert seen == [{"amount": 1}]


@pytest.mark.asyncio
async def test_cancel_all_detaches_listeners(sio_client) -> None:
    transport, controller = make_controller(sio_client)
    seen = []
    controller.listen("new-transaction", seen.append)
    await controller.join(Identity(user_id="U1", family_id="F1"))

    controller.cancel_all()
    await sio_client.deliver("new-transaction", {"amount": 1})

    assert seen == []
    assert transport.listener_count("new-transaction") == 0
    assert transport.listener_count("connect") == 0
    assert controller.subscribed_events == frozenset()


@pytest.mark.asyncio
async def test_leave_all_forgets_membership(sio_client) -> None:
    _, controller = make_controller(sio_client)
    await controller.join(Identity(user_id="U1", family_id="F1"))
    sio_client.emitted.clear()

    await controller.leave_all()

    assert sorted(sio_client.emitted_events()) == ["leave-family", "leave-family-chat", "leave-user-room"]
    assert controller.membership == frozenset()


@pytest.mark.asyncio
async def test_reconnect_rejoins_current_channels(sio_client) -> None:
    _, controller = make_controller(sio_client)
    await controller.join(Identity(user_id="U1", family_id="F1"))
    sio_client.emitted.clear()

    await sio_client.disconnect()
    await sio_client.connect("http://test")

    assert sorted(sio_client.emitted_events()) == ["join-family", "join-family-chat", "join-user-room"]


@pytest.mark.asyncio
async def test_connection_failure_leaves_membership_empty() -> None:
    sio_client = FakeSocketIOClient(fail_connect=True)
    _, controller = make_controller(sio_client)

    assert not await controller.join(Identity(user_id="U1", family_id="F1"))
    assert controller.membership == frozenset()

    sio_client.fail_connect = False
    assert await controller.join(Identity(user_id="U1", family_id="F1"))
    assert len(controller.membership) == 3


@pytest.mark.asyncio
async def test_subscription_cancel_is_idempotent(sio_client) -> None:
    transport = SocketTransport("http://test", client=sio_client)
    calls = []

    async def handler(data):
        calls.append(data)

    sub = transport.on("update-goal", handler)
    other = transport.on("update-goal", lambda data: calls.append(("sync", data)))
    await transport.dispatch("update-goal", 1)
    sub.cancel()
    sub.cancel()
    await transport.dispatch("update-goal", 2)

    assert calls == [1, ("sync", 1), ("sync", 2)]
    assert other.active and not sub.active
