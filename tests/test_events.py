import logging

from mockinterview.interview.events import (
    AnswerSubmittedEvent,
    EventLogger,
    EventType,
    InterviewEventBus,
    InterviewMetrics,
    SessionStartedEvent,
    TimerUpdatedEvent,
)


def submitted(timed_out=False):
    return AnswerSubmittedEvent("s1", 0.0, question_index=0, transcript="hi", timed_out=timed_out, has_next=True)


def test_specific_and_global_subscribers():
    bus = InterviewEventBus()
    specific, everything = [], []
    bus.subscribe(EventType.ANSWER_SUBMITTED, specific.append)
    bus.subscribe_all(everything.append)
    bus.emit(submitted())
    bus.emit(TimerUpdatedEvent("s1", 0.0, question_index=0, remaining_seconds=10))
    assert len(specific) == 1
    assert [e.event_type for e in everything] == [EventType.ANSWER_SUBMITTED, EventType.TIMER_UPDATED]


def test_failing_handler_does_not_stop_delivery(caplog):
    bus = InterviewEventBus()
    received = []

    def broken(event):
        raise ValueError("renderer exploded")

    bus.subscribe(EventType.ANSWER_SUBMITTED, broken)
    bus.subscribe_all(received.append)
    with caplog.at_level(logging.ERROR, logger="events"):
        bus.emit(submitted())
    assert len(received) == 1
    assert "renderer exploded" in caplog.text


def test_unsubscribe():
    bus = InterviewEventBus()
    received = []
    bus.subscribe(EventType.ANSWER_SUBMITTED, received.append)
    bus.unsubscribe(EventType.ANSWER_SUBMITTED, received.append)
    bus.unsubscribe(EventType.ANSWER_SUBMITTED, received.append)
    bus.emit(submitted())
    assert received == []


def test_metrics():
    metrics = InterviewMetrics()
    metrics.handle_event(SessionStartedEvent("s1", 0.0, "Personal Interview", "en", 5, "link"))
    metrics.handle_event(submitted())
    metrics.handle_event(submitted(timed_out=True))
    snapshot = metrics.get_metrics()
    assert snapshot["sessions_started"] == 1
    assert snapshot["answers_submitted"] == 2
    assert snapshot["answers_timed_out"] == 1
    metrics.reset()
    assert all(value == 0 for value in metrics.get_metrics().values())


def test_event_logger_keeps_ticks_quiet(caplog):
    event_logger = EventLogger()
    with caplog.at_level(logging.INFO, logger="event_logger"):
        event_logger.handle_event(TimerUpdatedEvent("s1", 0.0, question_index=0, remaining_seconds=3))
        event_logger.handle_event(submitted())
    assert "timer_updated" not in caplog.text
    assert "answer_submitted" in caplog.text
