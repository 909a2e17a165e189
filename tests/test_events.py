"""Event bus delivery, isolation and back-pressure."""

import logging
import threading
import time

import pytest

from conftest import register_tenant
from services.events import Event, EventBus, audit_log_handler


@pytest.fixture
def bus():
    bus = EventBus(maxsize=10, workers=1)
    yield bus
    bus.close()


class TestDelivery:
    def test_named_and_wildcard_subscribers(self, bus):
        named, everything = [], []
        bus.subscribe("auth.login", named.append)
        bus.subscribe(EventBus.WILDCARD, everything.append)

        assert bus.publish("auth.login", actor_id="u1")
        assert bus.publish("user.deleted", actor_id="u1")
        bus.join()

        assert [e.name for e in named] == ["auth.login"]
        assert [e.name for e in everything] == ["auth.login", "user.deleted"]
        assert named[0].actor_id == "u1"

    def test_failing_handler_does_not_stop_others(self, bus, caplog):
        seen = []

        def broken(event):
            raise RuntimeError("boom")

        bus.subscribe("x", broken)
        bus.subscribe("x", seen.append)
        with caplog.at_level(logging.ERROR, logger="services.events"):
            bus.publish("x")
            bus.publish("x")
            bus.join()

        assert len(seen) == 2
        assert "Event handler failed" in caplog.text


class TestBackPressure:
    def test_full_queue_drops_without_blocking(self):
        bus = EventBus(maxsize=1, workers=1)
        gate = threading.Event()
        bus.subscribe("slow", lambda e: gate.wait(5))
        try:
            assert bus.publish("slow")
            # Wait until the worker has picked up the first event
            for _ in range(100):
                if bus._queue.empty():
                    break
                time.sleep(0.01)
            assert bus.publish("slow")
            assert bus.publish("slow") is False
        finally:
            gate.set()
            bus.close()

    def test_publish_after_close_is_dropped(self):
        bus = EventBus()
        bus.close()
        assert bus.publish("late") is False


class TestAudit:
    def test_audit_handler_logs_event(self, caplog):
        with caplog.at_level(logging.INFO, logger="audit"):
            audit_log_handler(Event(name="user.invited", tenant_id="t1", actor_id="u1", entity_id="u2"))
        assert "user.invited tenant=t1 actor=u1 entity=u2" in caplog.text

    def test_services_publish_after_commit(self, app, auth_service):
        bus = app.extensions["event_bus"]
        seen = []
        bus.subscribe("auth.registered", seen.append)

        result = register_tenant(auth_service, slug="evented")
        bus.join()

        assert len(seen) == 1
        assert seen[0].tenant_id == result.tenant.id
        assert seen[0].data["slug"] == "evented"
