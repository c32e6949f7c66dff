"""Typing animation for streamed content.

Content fragments are split into characters that are emitted one at a
time, separated by a delay that depends on the character: spaces go
faster, punctuation and line breaks slower, and each delay is varied by
a small random amount so that the result looks typed by hand.
"""

import asyncio
import logging
import random
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Deque, Optional

from quillstream.config.typing_settings import TypingSettings

from .cancellation import CancellationToken

logger = logging.getLogger(__name__)

PUNCTUATION_CHARS = ".!?,;:"


class DelayClass(Enum):
    """Kind of character, valued by its delay multiplier."""

    NORMAL = 1.0
    SPACE = 0.5
    PUNCTUATION = 2.0
    NEWLINE = 3.0

    @property
    def multiplier(self) -> float:
        return self.value


class SchedulerState(Enum):
    IDLE = "idle"
    DRAINING = "draining"


@dataclass(frozen=True)
class TypingUnit:
    """A single character waiting to be typed."""

    char: str
    delay_class: DelayClass


class TypingScheduler:
    """Replays content fragments character by character.

    Characters are emitted in the order they were enqueued through the
    ``emit`` callback. At most one drain loop runs at a time; it is
    started by :meth:`enqueue` and stops when the queue is empty or the
    cancellation token is set. Once the token is set, pending characters
    are dropped and nothing more is emitted.
    """

    def __init__(self,
                 emit: Callable[[str], None],
                 token: Optional[CancellationToken] = None,
                 base_delay_ms: float = 30.0,
                 min_delay_ms: float = 10.0,
                 jitter_ratio: float = 0.2,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
                 rng: Optional[random.Random] = None):
        """Initialize the scheduler.

        Args:
            emit (Callable[[str], None]): Called with each typed character.
            token (CancellationToken, optional): Token of the request being typed.
            base_delay_ms (float): Delay for an ordinary character, in milliseconds.
            min_delay_ms (float): Lower bound of any delay, in milliseconds.
            jitter_ratio (float): Maximum random variation as a fraction of the delay.
            sleep (Callable[[float], Awaitable[None]]): Coroutine used to wait, in seconds.
            rng (random.Random, optional): Random source for the jitter.
        """
        self._emit = emit
        self._token = token or CancellationToken()
        self._base_delay_ms = base_delay_ms
        self._min_delay_ms = min_delay_ms
        self._jitter_ratio = jitter_ratio
        self._sleep = sleep
        self._rng = rng or random.Random()

        self._queue: Deque[TypingUnit] = deque()
        self._state = SchedulerState.IDLE
        self._drain_task: Optional[asyncio.Task] = None
        self._closed = False

        self._token.add_callback(self.discard)

    @classmethod
    def from_settings(cls, emit: Callable[[str], None], settings: TypingSettings,
                      token: Optional[CancellationToken] = None, **kwargs) -> 'TypingScheduler':
        """Create a scheduler configured from the typing settings."""
        return cls(emit,
                   token=token,
                   base_delay_ms=settings.base_delay_ms,
                   min_delay_ms=settings.min_delay_ms,
                   jitter_ratio=settings.jitter_ratio,
                   **kwargs)

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def pending(self) -> int:
        """Number of characters still waiting to be typed."""
        return len(self._queue)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def token(self) -> CancellationToken:
        return self._token

    @staticmethod
    def classify(char: str) -> DelayClass:
        if char == " ":
            return DelayClass.SPACE
        if char == "\n":
            return DelayClass.NEWLINE
        if char in PUNCTUATION_CHARS:
            return DelayClass.PUNCTUATION
        return DelayClass.NORMAL

    def base_delay(self, char: str) -> float:
        """Delay in milliseconds after ``char``, before jitter."""
        return self._base_delay_ms * self.classify(char).multiplier

    def compute_delay(self, char: str) -> float:
        """Delay in milliseconds after ``char``, with jitter and lower bound applied."""
        delay = self.base_delay(char)
        jitter = delay * self._jitter_ratio * (2 * self._rng.random() - 1)
        return max(self._min_delay_ms, delay + jitter)

    def enqueue(self, fragment: str) -> None:
        """Queue the characters of a fragment and make sure they get typed.

        Returns immediately. Ignored once the token is cancelled or the
        scheduler is closed.

        Args:
            fragment (str): Text to type.
        """
        if self._closed or self._token.is_cancelled or not fragment:
            return

        self._queue.extend(TypingUnit(char, self.classify(char)) for char in fragment)

        if self._drain_task is None or self._drain_task.done():
            self._drain_task = asyncio.ensure_future(self.drain())

    async def drain(self) -> None:
        """Type queued characters until the queue is empty or the token is set.

        Does nothing if a drain is already in progress.
        """
        if self._state is SchedulerState.DRAINING:
            return

        self._state = SchedulerState.DRAINING
        try:
            while self._queue and not self._stopped:
                unit = self._queue.popleft()
                self._emit(unit.char)
                await self._sleep(self.compute_delay(unit.char) / 1000)

            if self._stopped:
                self.discard()
        finally:
            self._state = SchedulerState.IDLE

    async def flush(self) -> None:
        """Wait until every queued character has been typed.

        Returns early, dropping the rest, if the token is set meanwhile.
        """
        if self._drain_task is not None and not self._drain_task.done():
            await self._drain_task
        if self._queue and not self._stopped:
            await self.drain()

    def discard(self) -> int:
        """Drop every pending character without typing it.

        Returns:
            int: Number of characters dropped.
        """
        dropped = len(self._queue)
        self._queue.clear()
        if dropped:
            logger.debug(f"Discarded {dropped} pending characters")
        return dropped

    async def close(self) -> None:
        """Discard pending characters and stop the drain loop.

        Nothing is emitted after this returns.
        """
        self._closed = True
        self.discard()
        self._token.remove_callback(self.discard)

        task, self._drain_task = self._drain_task, None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

    @property
    def _stopped(self) -> bool:
        return self._closed or self._token.is_cancelled
