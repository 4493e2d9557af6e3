"""
tests/test_events.py

EventBus delivery order, async subscribers, failure isolation and history.
"""

from __future__ import annotations

from cachescout.core.events import AgentEvent, EventBus, EventType


class TestEventBus:
    async def test_delivery_in_subscription_order(self) -> None:
        bus = EventBus("r1")
        calls: list[str] = []
        bus.subscribe(lambda e: calls.append("first"))
        bus.subscribe(lambda e: calls.append("second"))

        await bus.emit(EventType.INSIGHT, {"insight": "x"})

        assert calls == ["first", "second"]

    async def test_async_subscribers_awaited(self) -> None:
        bus = EventBus("r1")
        received: list[AgentEvent] = []

        async def subscriber(event: AgentEvent) -> None:
            received.append(event)

        bus.subscribe(subscriber)
        await bus.emit(EventType.RUN_STARTED)

        assert [e.type for e in received] == [EventType.RUN_STARTED]

    async def test_failing_subscriber_is_isolated(self) -> None:
        bus = EventBus("r1")
        received: list[AgentEvent] = []

        def broken(event: AgentEvent) -> None:
            raise ValueError("subscriber bug")

        bus.subscribe(broken)
        bus.subscribe(received.append)

        event = await bus.emit(EventType.PAGE_ANALYZED, {"url": "https://example.com"})

        assert received == [event]

    async def test_unsubscribe(self) -> None:
        bus = EventBus("r1")
        received: list[AgentEvent] = []
        unsubscribe = bus.subscribe(received.append)

        unsubscribe()
        unsubscribe()
        await bus.emit(EventType.INSIGHT)

        assert received == []

    async def test_history_is_bounded(self) -> None:
        bus = EventBus("r1", history_size=3)
        for i in range(5):
            await bus.emit(EventType.INSIGHT, {"i": i})

        assert [e.data["i"] for e in bus.recent()] == [2, 3, 4]
        assert [e.data["i"] for e in bus.recent(limit=1)] == [4]


class TestAgentEvent:
    def test_to_message_flattens_data(self) -> None:
        event = AgentEvent(type=EventType.INSIGHT, run_id="r1", data={"insight": "Slow TTFB"})

        message = event.to_message()

        assert message["event"] == "insight"
        assert message["run_id"] == "r1"
        assert message["insight"] == "Slow TTFB"
        assert "timestamp" in message
