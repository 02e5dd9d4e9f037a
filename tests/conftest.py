from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

import pytest

from core.errors import fetch_failed, raise_error
from engines.artifacts import CATALOG_RESOURCE, module_resource
from engines.playback import NarrationSettings, Utterance, Voice
from engines.session import SessionStore
from ingest.compiler import CompiledArtifacts, ModuleCompiler
from models.phrasebook import CatalogEntry, Module, SearchIndex


# === Raw definition builders ===

def block(id: str, surface: str, dictionary: str | None = None, type: str | None = None, space_after: bool = False) -> dict:
    raw = {"id": id, "surface": surface, "space_after": space_after}
    if dictionary is not None:
        raw["dictionary"] = dictionary
    if type is not None:
        raw["type"] = type
    return raw


def phrase(id: str, *blocks: dict, translations: dict | None = None) -> dict:
    return {"id": id, "blocks": list(blocks), "translations": translations or {}}


def module(id: str, phrases: list[dict], **fields) -> dict:
    return {"id": id, "phrases": phrases, **fields}


def numbered_module(id: str, count: int, dictionary: str | None = None) -> dict:
    """Module with phrases <id>-1 .. <id>-<count>, one block each."""
    return module(id, [
        phrase(f"{id}-{n}", block("b1", f"문장{n}", dictionary or f"단어{n}", "noun"))
        for n in range(1, count + 1)
    ], title=id.title())


def compile_raw(*raws: dict) -> CompiledArtifacts:
    result = ModuleCompiler().compile((f"{raw.get('id', 'unit')}.yaml", raw) for raw in raws)
    return result.artifacts


# === Artifact source ===

class InMemoryArtifactSource:
    """Serves compiled artifacts from memory; resources named in `failing` fail."""

    def __init__(self, artifacts: CompiledArtifacts):
        self.artifacts = artifacts
        self.failing: set[str] = set()
        self.module_fetches: list[str] = []

    def _check(self, resource: str) -> None:
        if resource in self.failing:
            raise_error(fetch_failed(resource, 503, origin="test").error)

    async def fetch_catalog(self) -> list[CatalogEntry]:
        self._check(CATALOG_RESOURCE)
        return [CatalogEntry.model_validate(doc) for doc in self.artifacts.catalog_document()]

    async def fetch_search_index(self) -> SearchIndex:
        return SearchIndex.from_document(self.artifacts.index_document())

    async def fetch_module(self, module_id: str) -> Module:
        self.module_fetches.append(module_id)
        self._check(module_resource(module_id))
        return Module.model_validate(self.artifacts.modules[module_id])


async def open_store(*raws: dict, page_size: int = 10) -> tuple[SessionStore, InMemoryArtifactSource]:
    source = InMemoryArtifactSource(compile_raw(*raws))
    store = SessionStore(source, page_size=page_size)
    await store.open()
    return store, source


# === Narration and scheduling fakes ===

@dataclass
class Spoken:
    utterance: Utterance
    on_end: Callable[[], None]
    on_error: Callable[[str], None]


class FakeNarrationProvider:
    """Deterministic provider: utterances end only when the test says so."""

    def __init__(self, voices: list[Voice] | None = None):
        self._voices = voices or []
        self.active: Spoken | None = None
        self.spoken: list[Spoken] = []
        self.paused = False
        self.cancel_count = 0

    def speak(self, utterance, on_end, on_error) -> None:
        assert self.active is None, "an utterance is already active"
        self.active = Spoken(utterance, on_end, on_error)
        self.spoken.append(self.active)
        self.paused = False

    def pause(self) -> None:
        self.paused = True

    def resume(self) -> None:
        self.paused = False

    def cancel(self) -> None:
        self.cancel_count += 1
        self.active = None
        self.paused = False

    def voices(self) -> list[Voice]:
        return list(self._voices)

    @property
    def texts(self) -> list[str]:
        return [item.utterance.text for item in self.spoken]

    def finish(self) -> None:
        current, self.active = self.active, None
        assert current is not None, "nothing is being spoken"
        current.on_end()

    def fail(self, reason: str = "synthesis-failed") -> None:
        current, self.active = self.active, None
        assert current is not None, "nothing is being spoken"
        current.on_error(reason)


class FakeTimer:
    def __init__(self, when: float, seq: int, callback: Callable[[], None]):
        self.when = when
        self.seq = seq
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Manual clock: timers fire only inside advance()."""

    def __init__(self):
        self.now = 0.0
        self._timers: list[FakeTimer] = []
        self._seq = 0

    def call_later(self, delay: float, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(self.now + delay, self._seq, callback)
        self._seq += 1
        self._timers.append(timer)
        return timer

    @property
    def pending(self) -> list[FakeTimer]:
        return [t for t in self._timers if not t.cancelled and not t.fired]

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [t for t in self.pending if t.when <= target + 1e-9]
            if not due:
                break
            timer = min(due, key=lambda t: (t.when, t.seq))
            self.now = max(self.now, timer.when)
            timer.fired = True
            timer.callback()
        self.now = target


@pytest.fixture
def provider() -> FakeNarrationProvider:
    return FakeNarrationProvider()


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def narration() -> NarrationSettings:
    return NarrationSettings(rate=0.85, transition_delay=1.0, page_flip_delay=0.5, auto_advance=False)
