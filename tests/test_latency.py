import asyncio

from coin_arena.shared.latency import LatencyEmulator


def test_send_returns_before_delivery(fake_ws):
    async def scenario():
        ws = fake_ws()
        latency = LatencyEmulator(0.05)
        latency.send(ws, '{"type": "state", "data": {}}')

        assert ws.sent == []
        assert latency.pending == 1

        await asyncio.sleep(0.02)
        assert ws.sent == []

        await asyncio.sleep(0.08)
        assert ws.types() == ["state"]
        assert latency.pending == 0

    asyncio.run(scenario())


def test_independent_timers_can_reorder(fake_ws):
    async def scenario():
        ws = fake_ws()
        latency = LatencyEmulator(0.0)
        latency.send(ws, '{"type": "state", "data": {"sequence": 1}}', delay=0.06)
        latency.send(ws, '{"type": "state", "data": {"sequence": 2}}', delay=0.01)

        await asyncio.sleep(0.1)
        assert [m["sequence"] for m in ws.of_type("state")] == [2, 1]

    asyncio.run(scenario())


def test_delivery_failure_is_swallowed(fake_ws):
    async def scenario():
        broken = fake_ws(fail=True)
        healthy = fake_ws()
        latency = LatencyEmulator(0.01)
        latency.send(broken, '{"type": "gameOver", "data": {"winner": "x"}}')
        latency.send(healthy, '{"type": "gameOver", "data": {"winner": "x"}}')

        await asyncio.sleep(0.05)
        assert broken.sent == []
        assert healthy.types() == ["gameOver"]
        assert latency.pending == 0

    asyncio.run(scenario())


def test_close_discards_pending_deliveries(fake_ws):
    async def scenario():
        ws = fake_ws()
        latency = LatencyEmulator(0.02)
        latency.send(ws, '{"type": "state", "data": {}}')
        latency.close()
        latency.send(ws, '{"type": "state", "data": {}}')

        await asyncio.sleep(0.05)
        assert ws.sent == []
        assert latency.pending == 0

    asyncio.run(scenario())
