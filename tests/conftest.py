import asyncio
import json

import pytest

from coordinator import Coordinator


class FakeWebSocket:
    """Records every frame the coordinator sends to one session."""

    stalled = False

    def __init__(self):
        self.sent = []

    async def send_text(self, text: str):
        self.sent.append(json.loads(text))

    def events(self, name=None):
        return [frame for frame in self.sent if name is None or frame["event"] == name]

    def data(self, name):
        return [frame["data"] for frame in self.events(name)]

    def clear(self):
        self.sent.clear()


class StalledWebSocket(FakeWebSocket):
    """A peer whose transport buffer is full: writes never complete."""

    stalled = True

    async def send_text(self, text: str):
        await asyncio.Event().wait()


async def settle(coordinator: Coordinator):
    """Wait until every responsive session has received its queued frames."""
    live = [
        session_id for session_id, websocket in coordinator.connections.connections.items()
        if not websocket.stalled
    ]
    await coordinator.connections.flush(live)


class Client:
    def __init__(self, coordinator: Coordinator, ws: FakeWebSocket = None):
        self.coordinator = coordinator
        self.ws = ws if ws is not None else FakeWebSocket()
        self.id = coordinator.connect(self.ws)

    async def send(self, event, data):
        await self.coordinator.handle_message(self.id, json.dumps({"event": event, "data": data}))
        await settle(self.coordinator)

    async def join(self, room_id="R", name=None):
        data = {"roomId": room_id}
        if name is not None:
            data["name"] = name
        await self.send("join", data)

    async def disconnect(self):
        await self.coordinator.disconnect(self.id)
        await settle(self.coordinator)


@pytest.fixture
async def coordinator():
    coordinator = Coordinator(max_room_size=10)
    yield coordinator
    await coordinator.connections.close(grace=0.1)


@pytest.fixture
def make_client(coordinator):
    def factory():
        return Client(coordinator)
    return factory
