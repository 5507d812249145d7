from notifeed.events import EventBus


# ── event bus ─────────────────────────────────────────────────

class TestEventBus:
    def test_publish_to_subscribers(self):
        bus = EventBus()
        received = []
        bus.subscribe(received.append)
        bus.publish("cycle")
        assert received == ["cycle"]

    def test_unsubscribe(self):
        bus = EventBus()
        received = []
        unsubscribe = bus.subscribe(received.append)
        unsubscribe()
        bus.publish("cycle")
        assert received == []

    def test_failing_subscriber_isolated(self):
        bus = EventBus()
        received = []

        def broken(event):
            raise RuntimeError("boom")

        bus.subscribe(broken)
        bus.subscribe(received.append)
        bus.publish("cycle")
        assert received == ["cycle"]
