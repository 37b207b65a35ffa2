from apehost.label_queue import LabelQueue


class FakeClock:
    def __init__(self):
        self.now = 0

    def __call__(self):
        return self.now


def make_queue():
    clock = FakeClock()
    queue = LabelQueue(clock)
    queue.set_default_message("idle", "grey")
    return clock, queue


def test_default_message_is_shown_when_nothing_is_queued():
    _, queue = make_queue()
    queue.pulse()
    assert queue.current() == ("idle", "grey")
    assert queue.text() == "idle"


def test_message_appears_on_the_next_pulse():
    clock, queue = make_queue()
    queue.push_message("compiled", "green", 100)
    assert queue.current() == ("idle", "grey")

    clock.now = 10
    queue.pulse()
    assert queue.current() == ("compiled", "green")


def test_message_expires_after_its_timeout():
    clock, queue = make_queue()
    queue.push_message("compiled", "green", 100)
    clock.now = 10
    queue.pulse()

    clock.now = 110
    queue.pulse()
    assert queue.current() == ("compiled", "green")

    clock.now = 111
    queue.pulse()
    assert queue.current() == ("idle", "grey")


def test_next_message_follows_immediately_and_is_timed_from_then():
    clock, queue = make_queue()
    queue.push_message("first", "red", 100)
    queue.push_message("second", "blue", 50)
    queue.pulse()
    assert queue.current() == ("first", "red")

    clock.now = 101
    queue.pulse()
    assert queue.current() == ("second", "blue")

    clock.now = 151
    queue.pulse()
    assert queue.current() == ("second", "blue")

    clock.now = 152
    queue.pulse()
    assert queue.current() == ("idle", "grey")


def test_listener_hears_new_and_expired_messages():
    clock, queue = make_queue()
    heard = []
    queue.add_listener(lambda q: heard.append(q.current()))

    queue.pulse()
    assert heard == []

    queue.push_message("saved", "green", 20)
    queue.pulse()
    clock.now = 5
    queue.pulse()
    clock.now = 21
    queue.pulse()

    assert heard == [("saved", "green"), ("saved", "green")]
    assert queue.current() == ("idle", "grey")


def test_removed_listener_is_not_called():
    _, queue = make_queue()
    heard = []
    listener = heard.append
    queue.add_listener(listener)
    queue.remove_listener(listener)

    queue.push_message("saved", "green", 20)
    queue.pulse()

    assert heard == []
    assert queue.current() == ("saved", "green")


def test_prefix_goes_before_every_message():
    clock, queue = make_queue()
    queue.set_default_prefix("APE: ")
    assert queue.text() == "APE: idle"

    queue.push_message("compiled", "green", 10)
    queue.pulse()
    assert queue.text() == "APE: compiled"
    assert queue.current()[0] == "compiled"


def test_changing_the_default_shows_at_once():
    _, queue = make_queue()
    queue.set_default_message("ready", "white")
    assert queue.current() == ("ready", "white")


def test_default_clock_keeps_a_long_message():
    queue = LabelQueue()
    queue.push_message("working", "yellow", 10_000_000)
    queue.pulse()
    queue.pulse()
    assert queue.text() == "working"