"""Playback Engine

State machine that narrates the current page's phrases one after another.

States: IDLE -> PLAYING <-> PAUSED, and back to IDLE on stop, error or
the end of the play-through. The engine exclusively owns the narration
provider and asks the Session Store to move the selection and the page;
it never mutates store state itself.

Every utterance carries a generation token. Callbacks belonging to a
cancelled or superseded utterance are ignored, so at most one utterance
is ever active and a stop followed by a start cannot overlap.

A provider that never reports end or error leaves the engine PLAYING;
there is no narration timeout.
"""
from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Protocol

from core.config import settings as app_settings
from core.errors import (
    PlaybackError,
    invalid_selection,
    narration_failed,
    page_out_of_range,
    raise_error,
)
from core.logging import playback_logger
from engines.session import SessionStore

log = playback_logger()


class PlaybackState(str, Enum):
    IDLE = "idle"
    PLAYING = "playing"
    PAUSED = "paused"


@dataclass(frozen=True, slots=True)
class QueueItem:
    phrase_id: str
    text: str


@dataclass(frozen=True, slots=True)
class Voice:
    name: str
    lang: str


@dataclass(frozen=True, slots=True)
class Utterance:
    text: str
    lang: str
    rate: float
    voice: Voice | None = None


class NarrationProvider(Protocol):
    """Text-to-speech channel. Callbacks are invoked on the engine's thread."""

    def speak(
        self,
        utterance: Utterance,
        on_end: Callable[[], None],
        on_error: Callable[[str], None],
    ) -> None:
        ...

    def pause(self) -> None:
        ...

    def resume(self) -> None:
        ...

    def cancel(self) -> None:
        ...

    def voices(self) -> list[Voice]:
        ...


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        ...


class AsyncioScheduler:
    """Scheduler backed by the running asyncio event loop."""

    __slots__ = ("_loop",)

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback)


@dataclass(frozen=True, slots=True)
class NarrationSettings:
    """Read when an utterance or timer is created, never for one in flight."""
    rate: float = 0.85
    transition_delay: float = 1.0
    page_flip_delay: float = 0.5
    auto_advance: bool = False
    lang: str = "ko-KR"
    preferred_voices: tuple[str, ...] = ("Google", "female", "Yuna")

    @classmethod
    def from_settings(cls) -> NarrationSettings:
        return cls(
            rate=app_settings.NARRATION_RATE,
            transition_delay=app_settings.TRANSITION_DELAY_SECONDS,
            page_flip_delay=app_settings.PAGE_FLIP_DELAY_SECONDS,
            auto_advance=app_settings.AUTO_ADVANCE,
            lang=app_settings.NARRATION_LANG,
        )


def choose_voice(voices: list[Voice], lang: str, preferred: tuple[str, ...] = ()) -> Voice | None:
    """Pick a voice for the narration language, favouring preferred names."""
    prefix = lang.split("-")[0].lower()
    matching = [voice for voice in voices if prefix in voice.lang.lower()]
    for voice in matching:
        if any(name in voice.name for name in preferred):
            return voice
    return matching[0] if matching else None


class PlaybackEngine:
    """Sequential, interruptible narration of the current page."""

    def __init__(
        self,
        store: SessionStore,
        provider: NarrationProvider,
        scheduler: Scheduler | None = None,
        settings: NarrationSettings | None = None,
        on_error: Callable[[PlaybackError], None] | None = None,
    ):
        self._store = store
        self._provider = provider
        self._scheduler = scheduler or AsyncioScheduler()
        self.settings = settings or NarrationSettings.from_settings()
        self._on_error = on_error

        self._state = PlaybackState.IDLE
        self._queue: deque[QueueItem] = deque()
        self._active_phrase_id: str | None = None
        self._token = 0
        self._narrating = False
        self._single = False
        self._timer: TimerHandle | None = None
        self._timer_step: Callable[[], None] | None = None
        self._deferred: Callable[[], None] | None = None
        self.last_error: PlaybackError | None = None

    # === Read-only state ===

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def queue(self) -> tuple[QueueItem, ...]:
        return tuple(self._queue)

    @property
    def active_phrase_id(self) -> str | None:
        return self._active_phrase_id

    @property
    def is_narrating(self) -> bool:
        return self._narrating

    @property
    def has_pending_timer(self) -> bool:
        return self._timer is not None

    def update_settings(self, **changes) -> NarrationSettings:
        self.settings = replace(self.settings, **changes)
        return self.settings

    # === Events ===

    def start(self) -> None:
        """Begin a play-through of the current page."""
        self.stop()
        items = self._build_queue()
        if not items:
            log.info("playback_empty_page", page=self._store.page)
            return

        self.last_error = None
        self._queue = deque(items)
        self._state = PlaybackState.PLAYING
        log.info("playback_started", page=self._store.page, items=len(items))
        self._play_next()

    def pause(self) -> None:
        if self._state is not PlaybackState.PLAYING:
            return
        if self._narrating:
            self._provider.pause()
        if self._timer is not None:
            self._timer.cancel()
            self._deferred = self._timer_step
            self._clear_timer()
        self._state = PlaybackState.PAUSED
        log.info("playback_paused", active_phrase_id=self._active_phrase_id)

    def resume(self) -> None:
        if self._state is not PlaybackState.PAUSED:
            return
        self._state = PlaybackState.PLAYING
        log.info("playback_resumed", active_phrase_id=self._active_phrase_id)
        if self._narrating:
            self._provider.resume()
        elif self._deferred is not None:
            step, self._deferred = self._deferred, None
            step()

    def stop(self) -> None:
        """Cancel everything and return to IDLE. Safe from any state."""
        previous = self._state
        if self._timer is not None:
            self._timer.cancel()
        self._clear_timer()
        self._token += 1
        self._queue.clear()
        self._active_phrase_id = None
        self._narrating = False
        self._single = False
        self._deferred = None
        self._state = PlaybackState.IDLE
        # Providers may report the interrupted utterance from inside cancel();
        # the token is already stale by then.
        self._provider.cancel()
        if previous is not PlaybackState.IDLE:
            log.info("playback_stopped", previous_state=previous.value)

    def manual_page_change(self, page: int) -> None:
        """User-driven page change: any play-through is stopped first."""
        if not self._store.can_set_page(page):
            raise_error(page_out_of_range(page, self._store.total_pages, origin="playback").error)
        self.stop()
        self._store.set_page(page)

    def play_single(self, phrase_id: str) -> None:
        """Narrate one phrase outside the page queue."""
        phrase = self._store.phrase(phrase_id)
        if phrase is None:
            module = self._store.module
            raise_error(invalid_selection(phrase_id, module.id if module else None, origin="playback").error)
        self.stop()
        self._single = True
        log.info("playback_single", phrase_id=phrase_id)
        self._speak(phrase.id, phrase.full_text)

    # === Internals ===

    def _build_queue(self) -> list[QueueItem]:
        return [QueueItem(phrase.id, phrase.full_text) for phrase in self._store.current_phrases]

    def _play_next(self) -> None:
        if self._state is not PlaybackState.PLAYING:
            return
        if not self._queue:
            self._finish_page()
            return
        item = self._queue.popleft()
        self._store.select_phrase(item.phrase_id)
        self._speak(item.phrase_id, item.text)

    def _speak(self, phrase_id: str, text: str) -> None:
        self._token += 1
        token = self._token
        self._active_phrase_id = phrase_id
        self._narrating = True
        utterance = Utterance(
            text=text,
            lang=self.settings.lang,
            rate=self.settings.rate,
            voice=choose_voice(self._provider.voices(), self.settings.lang, self.settings.preferred_voices),
        )
        log.debug("utterance_started", phrase_id=phrase_id, rate=utterance.rate)
        self._provider.speak(
            utterance,
            on_end=lambda: self._on_utterance_end(token),
            on_error=lambda reason="": self._on_utterance_error(token, reason),
        )

    def _on_utterance_end(self, token: int) -> None:
        if token != self._token or not self._narrating:
            return
        self._narrating = False
        self._active_phrase_id = None
        if self._single:
            self._single = False
            return
        if self._state is PlaybackState.PAUSED:
            self._deferred = self._after_utterance
            return
        self._after_utterance()

    def _after_utterance(self) -> None:
        if self._queue:
            self._schedule(self.settings.transition_delay, self._play_next)
        else:
            self._finish_page()

    def _on_utterance_error(self, token: int, reason: str) -> None:
        if token != self._token or not self._narrating:
            return
        error = PlaybackError(narration_failed(self._active_phrase_id, reason, origin="playback").error)
        log.error(
            "utterance_failed",
            phrase_id=self._active_phrase_id,
            reason=reason,
            dropped=len(self._queue),
        )
        self.stop()
        self.last_error = error
        if self._on_error is not None:
            self._on_error(error)

    def _finish_page(self) -> None:
        if self.settings.auto_advance and not self._store.is_last_page:
            next_page = self._store.page + 1
            self._store.set_page(next_page)
            log.info("playback_page_advanced", page=next_page)
            self._schedule(self.settings.page_flip_delay, self._continue_on_new_page)
            return
        log.info("playback_completed", page=self._store.page)
        self.stop()

    def _continue_on_new_page(self) -> None:
        if self._state is not PlaybackState.PLAYING:
            return
        self._queue = deque(self._build_queue())
        self._play_next()

    def _schedule(self, delay: float, step: Callable[[], None]) -> None:
        def fire() -> None:
            if self._timer_step is not step:
                return
            self._clear_timer()
            step()

        self._timer_step = step
        self._timer = self._scheduler.call_later(delay, fire)

    def _clear_timer(self) -> None:
        self._timer = None
        self._timer_step = None
