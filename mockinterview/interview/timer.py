"""
Per-answer countdown.

The countdown itself is pure state; time passes through ``TimerTick``
messages delivered by a tick source, so a frozen or stopped timer simply
ignores whatever ticks are still in flight.
"""
import itertools
import logging
import threading
from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, Optional

from .dispatch import Message, TimerTick
from .errors import TimerConflict
from ..config import ANSWER_SECONDS, TICK_INTERVAL_SECONDS

logger = logging.getLogger("timer")


class TickSource(ABC):
    """Delivers one ``TimerTick`` per interval for the armed timer."""

    @abstractmethod
    def start(self, timer_id: int) -> None:
        ...

    @abstractmethod
    def stop(self) -> None:
        ...


class ThreadTicker(TickSource):
    """Tick source backed by a daemon thread."""

    def __init__(self, post: Callable[[Message], None], interval: float = TICK_INTERVAL_SECONDS):
        self.post = post
        self.interval = interval
        self._stop_event: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None

    def start(self, timer_id: int) -> None:
        self.stop()
        stop_event = threading.Event()

        def run():
            while not stop_event.wait(self.interval):
                self.post(TimerTick(timer_id))

        self._stop_event = stop_event
        self._thread = threading.Thread(target=run, name=f"ticker-{timer_id}", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        if self._stop_event is not None:
            self._stop_event.set()
        self._stop_event = None
        self._thread = None


class TimerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    FROZEN = "frozen"
    EXPIRED = "expired"
    STOPPED = "stopped"


class AnswerTimer:
    """Remaining-seconds counter for the open capture cycle."""

    def __init__(self,
                 ticker: TickSource,
                 duration: int = ANSWER_SECONDS,
                 on_expire: Optional[Callable[[], None]] = None,
                 on_tick: Optional[Callable[[int], None]] = None):
        self.ticker = ticker
        self.duration = duration
        self.on_expire = on_expire
        self.on_tick = on_tick
        self.remaining = duration
        self.state = TimerState.IDLE
        self.timer_id: Optional[int] = None
        self._ids = itertools.count(1)

    @property
    def is_open(self) -> bool:
        """Armed and not yet stopped or expired (frozen counts as open)."""
        return self.state in (TimerState.RUNNING, TimerState.FROZEN)

    def arm(self) -> int:
        """Start a fresh countdown at full duration."""
        if self.is_open:
            raise TimerConflict(f"Timer {self.timer_id} is still open")
        self.timer_id = next(self._ids)
        self.remaining = self.duration
        self.state = TimerState.RUNNING
        self.ticker.start(self.timer_id)
        logger.debug(f"Timer {self.timer_id} armed for {self.duration}s")
        return self.timer_id

    def freeze(self) -> None:
        if self.state != TimerState.RUNNING:
            return
        self.ticker.stop()
        self.state = TimerState.FROZEN
        logger.debug(f"Timer {self.timer_id} frozen at {self.remaining}s")

    def resume(self) -> None:
        if self.state != TimerState.FROZEN:
            return
        self.state = TimerState.RUNNING
        self.ticker.start(self.timer_id)
        logger.debug(f"Timer {self.timer_id} resumed at {self.remaining}s")

    def stop(self) -> None:
        self.ticker.stop()
        if self.is_open:
            self.state = TimerState.STOPPED
            logger.debug(f"Timer {self.timer_id} stopped at {self.remaining}s")
        self.timer_id = None

    def tick(self, timer_id: int) -> bool:
        """
        Apply one tick.

        Returns:
            True if the tick was applied, False if it was stale or the timer
            is not running
        """
        if timer_id != self.timer_id or self.state != TimerState.RUNNING:
            return False
        self.remaining = max(0, self.remaining - 1)
        if self.on_tick:
            self.on_tick(self.remaining)
        if self.remaining == 0:
            self.state = TimerState.EXPIRED
            self.ticker.stop()
            logger.info(f"Timer {timer_id} expired")
            if self.on_expire:
                self.on_expire()
        return True
