import json

import pytest


class FakeWebSocket:
    """Stands in for a websocket connection; records what gets delivered."""

    def __init__(self, fail=False):
        self.fail = fail
        self.sent = []
        self.remote_address = ("127.0.0.1", 0)

    async def send(self, message):
        if self.fail:
            raise ConnectionResetError("peer went away")
        self.sent.append(json.loads(message))

    def types(self):
        return [m["type"] for m in self.sent]

    def of_type(self, msg_type):
        return [m["data"] for m in self.sent if m["type"] == msg_type]


@pytest.fixture
def fake_ws():
    return FakeWebSocket
