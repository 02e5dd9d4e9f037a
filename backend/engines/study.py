"""Study Session

One learner's session: the Session Store, the Cross-Reference Resolver and
the Playback Engine wired together. User-driven navigation always stops a
running play-through before the store changes underneath it.
"""
from __future__ import annotations

from typing import Callable

from core.errors import PlaybackError
from engines.artifacts import ArtifactSource
from engines.crossref import CrossReferenceResolver
from engines.playback import (
    NarrationProvider,
    NarrationSettings,
    PlaybackEngine,
    PlaybackState,
    Scheduler,
)
from engines.session import SessionStore
from models.phrasebook import Module, Phrase


class StudySession:
    def __init__(
        self,
        source: ArtifactSource,
        provider: NarrationProvider,
        *,
        scheduler: Scheduler | None = None,
        narration: NarrationSettings | None = None,
        page_size: int | None = None,
        on_error: Callable[[PlaybackError], None] | None = None,
    ):
        self.store = SessionStore(source, page_size=page_size)
        self.resolver = CrossReferenceResolver(self.store)
        self.playback = PlaybackEngine(
            self.store, provider, scheduler=scheduler, settings=narration, on_error=on_error
        )

    @property
    def state(self) -> PlaybackState:
        return self.playback.state

    async def open(self) -> None:
        await self.store.open()

    async def load_module(self, module_id: str) -> Module:
        self.playback.stop()
        return await self.store.load_module(module_id)

    def change_page(self, page: int) -> None:
        self.playback.manual_page_change(page)

    def select_phrase(self, phrase_id: str) -> Phrase:
        return self.store.select_phrase(phrase_id)

    def cross_reference(self, dictionary_form: str) -> list[Phrase]:
        return self.resolver.resolve(dictionary_form)

    def play_single(self, phrase_id: str) -> None:
        self.playback.play_single(phrase_id)

    def start(self) -> None:
        self.playback.start()

    def pause(self) -> None:
        self.playback.pause()

    def resume(self) -> None:
        self.playback.resume()

    def stop(self) -> None:
        self.playback.stop()

    def leave_module(self) -> None:
        """Back to the catalog."""
        self.playback.stop()
        self.store.close_module()
