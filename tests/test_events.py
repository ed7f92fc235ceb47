"""Tests for the event bus."""

import logging

from watchlist.events import EventBus, log_event
from watchlist.models import EventType, ScreeningEvent


def event(event_type=EventType.REQUEST_CREATED, request_id="req-1"):
    return ScreeningEvent(type=event_type, request_id=request_id)


class TestEventBus:
    def test_delivers_to_all_subscribers_in_order(self):
        bus = EventBus()
        calls = []
        bus.subscribe(lambda e: calls.append(("first", e.type)))
        bus.subscribe(lambda e: calls.append(("second", e.type)))
        bus.publish(event())
        assert calls == [
            ("first", EventType.REQUEST_CREATED),
            ("second", EventType.REQUEST_CREATED),
        ]

    def test_unsubscribe(self):
        bus = EventBus()
        received = []
        bus.subscribe(received.append)
        bus.unsubscribe(received.append)
        bus.publish(event())
        assert received == []

    def test_unsubscribe_unknown_handler_is_ignored(self):
        EventBus().unsubscribe(print)

    def test_failing_handler_does_not_stop_delivery(self, caplog):
        bus = EventBus()
        received = []

        def broken(_):
            raise RuntimeError("handler down")

        bus.subscribe(broken)
        bus.subscribe(received.append)
        with caplog.at_level(logging.ERROR, logger="watchlist.events"):
            bus.publish(event())
        assert len(received) == 1
        assert "handler down" in caplog.text

    def test_publish_all_keeps_order(self):
        bus = EventBus()
        received = []
        bus.subscribe(received.append)
        bus.publish_all([event(EventType.SCREENING_STARTED), event(EventType.SCREENING_COMPLETED)])
        assert [e.type for e in received] == [EventType.SCREENING_STARTED, EventType.SCREENING_COMPLETED]


def test_log_event_writes_record(caplog):
    with caplog.at_level(logging.INFO, logger="watchlist.events"):
        log_event(event(EventType.SCREENING_FAILED, request_id="req-42"))
    assert "event=screening_failed" in caplog.text
    assert "request=req-42" in caplog.text
