import asyncio
import json

from coordinator import Coordinator
from conftest import Client, StalledWebSocket, settle


def frame(event, data):
    return json.dumps({"event": event, "data": data})


async def test_concurrent_joins_never_exceed_capacity():
    coordinator = Coordinator(max_room_size=2)
    clients = [Client(coordinator) for _ in range(6)]

    await asyncio.gather(*(
        coordinator.handle_message(client.id, frame("join", {"roomId": "R"}))
        for client in clients
    ))
    await settle(coordinator)

    room = coordinator.room_table.get("R")
    assert len(room.members) == 2
    joined = [client for client in clients if client.ws.events("joined")]
    rejected = [client for client in clients if client.ws.data("error") == ["room-full"]]
    assert len(joined) == 2
    assert len(rejected) == 4
    assert {client.id for client in joined} == set(room.members)
    await coordinator.connections.close(grace=0.1)


async def test_stalled_recipient_does_not_block_other_rooms(coordinator, make_client):
    host = make_client()
    stalled = Client(coordinator, StalledWebSocket())
    await host.join("X")
    await stalled.join("X")
    # Frames pile up for the stalled session without holding anyone else up
    await host.send("chat", {"roomId": "X", "text": "are you there?"})

    other = make_client()
    await asyncio.wait_for(
        coordinator.handle_message(other.id, frame("join", {"roomId": "Y"})),
        timeout=1.0,
    )
    await asyncio.wait_for(settle(coordinator), timeout=1.0)

    assert [event["event"] for event in other.ws.sent] == ["joined"]
    assert host.ws.data("peer-joined")[0]["id"] == stalled.id


async def test_stalled_recipient_does_not_block_its_own_room(coordinator, make_client):
    host, guest = make_client(), make_client()
    stalled = Client(coordinator, StalledWebSocket())
    await host.join()
    await guest.join()
    await stalled.join()
    guest.ws.clear()

    await asyncio.wait_for(host.send("chat", {"roomId": "R", "text": "hello"}), timeout=1.0)
    await asyncio.wait_for(stalled.disconnect(), timeout=1.0)

    assert guest.ws.data("chat")[0]["text"] == "hello"
    assert guest.ws.data("peer-left") == [{"id": stalled.id}]
    assert stalled.id not in coordinator.room_table.get("R").members


async def test_full_outbound_queue_drops_frames():
    coordinator = Coordinator(max_room_size=10)
    coordinator.connections.max_queue = 2
    host = Client(coordinator)
    stalled = Client(coordinator, StalledWebSocket())
    await host.join()
    await stalled.join()

    for index in range(5):
        await host.send("chat", {"roomId": "R", "text": f"message {index}"})

    assert await coordinator.connections.send(stalled.id, "chat", {}) is False
    assert await coordinator.connections.send(host.id, "chat", {}) is True
    # Membership is unaffected by the stalled peer falling behind
    assert set(coordinator.room_table.get("R").members) == {host.id, stalled.id}
    await coordinator.connections.close(grace=0.1)
