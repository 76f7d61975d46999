from mockinterview.interview.events import EventType


class EventRecorder:
    """Collects every event emitted on a bus."""

    def __init__(self, bus):
        self.events = []
        bus.subscribe_all(self.events.append)

    def of_type(self, event_type: EventType):
        return [event for event in self.events if event.event_type == event_type]

    def types(self):
        return [event.event_type for event in self.events]


def begin(setup, language="en", template="personal", question_texts=None):
    """Select, start and drain until the first question is listening."""
    controller = setup["controller"]
    controller.select_language(language)
    controller.select_template(template, question_texts)
    session = controller.start_interview()
    setup["loop"].drain()
    return session


def answer(setup, text=None, media=b""):
    """Speak and record into the open cycle, then submit."""
    if text is not None:
        setup["transcriber"].hear(text)
    if media:
        setup["recorder"].feed(media)
    setup["loop"].drain()
    setup["controller"].submit_answer()
    setup["loop"].drain()


def next_question(setup):
    setup["controller"].advance()
    setup["loop"].drain()
