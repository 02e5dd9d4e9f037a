import random
from dataclasses import replace

import pytest

from conftest import FakeNarrationProvider, FakeScheduler, module, numbered_module, open_store
from core.errors import ErrorCode, InvalidSelectionError, PlaybackError
from engines.playback import NarrationSettings, PlaybackEngine, PlaybackState, Voice, choose_voice


async def make_engine(provider, scheduler, narration, count=3, page_size=10, on_error=None, **overrides):
    store, _ = await open_store(numbered_module("m", count), page_size=page_size)
    await store.load_module("m")
    engine = PlaybackEngine(store, provider, scheduler, settings=replace(narration, **overrides), on_error=on_error)
    return store, engine


def assert_idle(engine: PlaybackEngine, scheduler: FakeScheduler) -> None:
    assert engine.state is PlaybackState.IDLE
    assert engine.queue == ()
    assert engine.active_phrase_id is None
    assert scheduler.pending == []


async def test_start_speaks_first_phrase(provider, scheduler, narration) -> None:
    store, engine = await make_engine(provider, scheduler, narration)
    engine.start()

    assert engine.state is PlaybackState.PLAYING
    assert provider.texts == ["문장1"]
    assert provider.active.utterance.lang == "ko-KR"
    assert engine.active_phrase_id == "m-1"
    assert store.selected_phrase_id == "m-1"
    assert [item.phrase_id for item in engine.queue] == ["m-2", "m-3"]


async def test_plays_page_in_order_then_idles(provider, scheduler, narration) -> None:
    store, engine = await make_engine(provider, scheduler, narration)
    engine.start()

    provider.finish()
    assert provider.texts == ["문장1"]
    scheduler.advance(0.9)
    assert provider.texts == ["문장1"]
    scheduler.advance(0.1)
    assert provider.texts == ["문장1", "문장2"]
    assert store.selected_phrase_id == "m-2"

    provider.finish()
    scheduler.advance(1.0)
    provider.finish()

    assert provider.texts == ["문장1", "문장2", "문장3"]
    assert_idle(engine, scheduler)


async def test_start_on_empty_page_stays_idle(provider, scheduler, narration) -> None:
    store, _ = await open_store(module("empty", []))
    await store.load_module("empty")
    engine = PlaybackEngine(store, provider, scheduler, settings=narration)

    engine.start()
    assert provider.spoken == []
    assert_idle(engine, scheduler)


def _playing(engine, provider, scheduler):
    engine.start()


def _paused(engine, provider, scheduler):
    engine.start()
    engine.pause()


def _in_gap(engine, provider, scheduler):
    engine.start()
    provider.finish()


def _paused_in_gap(engine, provider, scheduler):
    engine.start()
    provider.finish()
    engine.pause()


def _idle(engine, provider, scheduler):
    pass


@pytest.mark.parametrize("setup", [_idle, _playing, _paused, _in_gap, _paused_in_gap])
async def test_stop_from_any_state(provider, scheduler, narration, setup) -> None:
    _, engine = await make_engine(provider, scheduler, narration)
    setup(engine, provider, scheduler)

    engine.stop()
    assert_idle(engine, scheduler)
    assert provider.active is None
    engine.stop()
    assert_idle(engine, scheduler)

    scheduler.advance(10)
    assert provider.active is None


async def test_auto_advance_runs_to_last_page(provider, scheduler, narration) -> None:
    store, engine = await make_engine(provider, scheduler, narration, count=12, page_size=5, auto_advance=True)
    engine.start()

    for _ in range(4):
        provider.finish()
        scheduler.advance(1.0)
    provider.finish()

    assert store.page == 2
    assert store.selected_phrase_id == "m-6"
    assert engine.state is PlaybackState.PLAYING
    assert provider.active is None

    scheduler.advance(0.5)
    assert provider.texts[-1] == "문장6"
    assert engine.active_phrase_id == "m-6"

    while provider.active is not None:
        provider.finish()
        scheduler.advance(1.0)

    assert store.page == 3
    assert len(provider.spoken) == 12
    assert_idle(engine, scheduler)


async def test_without_auto_advance_page_is_kept(provider, scheduler, narration) -> None:
    store, engine = await make_engine(provider, scheduler, narration, count=7, page_size=5)
    engine.start()
    while provider.active is not None:
        provider.finish()
        scheduler.advance(1.0)

    assert store.page == 1
    assert len(provider.spoken) == 5
    assert_idle(engine, scheduler)


async def test_pause_and_resume_mid_utterance(provider, scheduler, narration) -> None:
    _, engine = await make_engine(provider, scheduler, narration)
    engine.start()

    engine.pause()
    assert engine.state is PlaybackState.PAUSED
    assert provider.paused
    assert engine.active_phrase_id == "m-1"
    assert len(engine.queue) == 2

    engine.resume()
    assert engine.state is PlaybackState.PLAYING
    assert not provider.paused

    provider.finish()
    scheduler.advance(1.0)
    assert provider.texts == ["문장1", "문장2"]


async def test_pause_in_gap_cancels_timer_and_resume_continues(provider, scheduler, narration) -> None:
    _, engine = await make_engine(provider, scheduler, narration)
    engine.start()
    provider.finish()

    engine.pause()
    assert scheduler.pending == []
    scheduler.advance(5.0)
    assert provider.texts == ["문장1"]

    engine.resume()
    assert provider.texts == ["문장1", "문장2"]
    assert engine.active_phrase_id == "m-2"


async def test_utterance_ending_while_paused_waits_for_resume(provider, scheduler, narration) -> None:
    _, engine = await make_engine(provider, scheduler, narration)
    engine.start()
    engine.pause()
    provider.finish()

    scheduler.advance(5.0)
    assert provider.texts == ["문장1"]
    assert engine.state is PlaybackState.PAUSED

    engine.resume()
    scheduler.advance(1.0)
    assert provider.texts == ["문장1", "문장2"]


async def test_pause_and_resume_are_noops_in_wrong_state(provider, scheduler, narration) -> None:
    _, engine = await make_engine(provider, scheduler, narration)
    engine.pause()
    engine.resume()
    assert engine.state is PlaybackState.IDLE

    engine.start()
    engine.resume()
    assert engine.state is PlaybackState.PLAYING


async def test_utterance_error_drops_queue(provider, scheduler, narration) -> None:
    reported = []
    _, engine = await make_engine(provider, scheduler, narration, on_error=reported.append)
    engine.start()
    provider.finish()
    scheduler.advance(1.0)

    provider.fail("audio-busy")

    assert_idle(engine, scheduler)
    assert isinstance(engine.last_error, PlaybackError)
    assert engine.last_error.code is ErrorCode.E7001_NARRATION_FAILED
    assert reported == [engine.last_error]

    scheduler.advance(10.0)
    assert provider.texts == ["문장1", "문장2"]

    engine.start()
    assert engine.last_error is None


async def test_callbacks_from_cancelled_utterance_are_ignored(provider, scheduler, narration) -> None:
    _, engine = await make_engine(provider, scheduler, narration)
    engine.start()
    stale = provider.spoken[0]

    engine.stop()
    engine.start()

    stale.on_end()
    stale.on_error("late")
    assert engine.state is PlaybackState.PLAYING
    assert engine.is_narrating
    assert engine.last_error is None
    assert scheduler.pending == []
    assert provider.active is provider.spoken[1]


class InterruptingProvider(FakeNarrationProvider):
    """Reports the cancelled utterance synchronously, like Web Speech does."""

    def __init__(self, report: str):
        super().__init__()
        self.report = report

    def cancel(self) -> None:
        current = self.active
        super().cancel()
        if current is None:
            return
        if self.report == "end":
            current.on_end()
        else:
            current.on_error("interrupted")


@pytest.mark.parametrize("report", ["end", "error"])
async def test_stop_ignores_callbacks_fired_during_cancel(scheduler, narration, report) -> None:
    provider = InterruptingProvider(report)
    reported = []
    _, engine = await make_engine(provider, scheduler, narration, on_error=reported.append)

    engine.start()
    engine.stop()

    assert_idle(engine, scheduler)
    assert not engine.has_pending_timer
    assert engine.last_error is None
    assert reported == []


@pytest.mark.parametrize("report", ["end", "error"])
async def test_restart_with_interrupting_provider_does_not_overlap(scheduler, narration, report) -> None:
    provider = InterruptingProvider(report)
    _, engine = await make_engine(provider, scheduler, narration)

    engine.start()
    engine.start()
    scheduler.advance(1.0)

    assert provider.texts == ["문장1", "문장1"]
    assert engine.active_phrase_id == "m-1"
    assert engine.state is PlaybackState.PLAYING


async def test_rate_change_applies_to_next_utterance_only(provider, scheduler, narration) -> None:
    _, engine = await make_engine(provider, scheduler, narration)
    engine.start()
    engine.update_settings(rate=1.2)

    provider.finish()
    scheduler.advance(1.0)
    assert [item.utterance.rate for item in provider.spoken] == [0.85, 1.2]


async def test_delay_change_does_not_move_scheduled_timer(provider, scheduler, narration) -> None:
    _, engine = await make_engine(provider, scheduler, narration)
    engine.start()
    provider.finish()
    engine.update_settings(transition_delay=3.0)

    scheduler.advance(1.0)
    assert len(provider.spoken) == 2

    provider.finish()
    scheduler.advance(1.0)
    assert len(provider.spoken) == 2
    scheduler.advance(2.0)
    assert len(provider.spoken) == 3


async def test_play_single(provider, scheduler, narration) -> None:
    _, engine = await make_engine(provider, scheduler, narration)
    engine.play_single("m-2")

    assert engine.state is PlaybackState.IDLE
    assert engine.active_phrase_id == "m-2"
    assert provider.texts == ["문장2"]

    provider.finish()
    assert engine.active_phrase_id is None
    assert_idle(engine, scheduler)


async def test_play_single_interrupts_play_through(provider, scheduler, narration) -> None:
    _, engine = await make_engine(provider, scheduler, narration)
    engine.start()
    engine.play_single("m-3")

    assert provider.texts == ["문장1", "문장3"]
    assert engine.state is PlaybackState.IDLE
    assert engine.queue == ()


async def test_play_single_unknown_phrase(provider, scheduler, narration) -> None:
    _, engine = await make_engine(provider, scheduler, narration)
    with pytest.raises(InvalidSelectionError):
        engine.play_single("nope")
    assert provider.spoken == []


async def test_manual_page_change_stops_playback(provider, scheduler, narration) -> None:
    store, engine = await make_engine(provider, scheduler, narration, count=12, page_size=5)
    engine.start()

    engine.manual_page_change(2)
    assert_idle(engine, scheduler)
    assert provider.active is None
    assert store.page == 2
    assert store.selected_phrase_id == "m-6"


async def test_rejected_page_change_keeps_playing(provider, scheduler, narration) -> None:
    store, engine = await make_engine(provider, scheduler, narration, count=12, page_size=5)
    engine.start()

    with pytest.raises(InvalidSelectionError):
        engine.manual_page_change(4)
    assert engine.state is PlaybackState.PLAYING
    assert store.page == 1


@pytest.mark.parametrize("seed", range(20))
async def test_random_interleavings_keep_one_utterance(provider, scheduler, narration, seed) -> None:
    rng = random.Random(seed)
    store, engine = await make_engine(provider, scheduler, narration, count=12, page_size=5, auto_advance=seed % 2 == 0)

    actions = {
        "start": engine.start,
        "stop": engine.stop,
        "pause": engine.pause,
        "resume": engine.resume,
        "single": lambda: engine.play_single(f"m-{rng.randint(1, 12)}"),
        "finish": lambda: provider.active is not None and provider.finish(),
        "fail": lambda: provider.active is not None and provider.fail(),
        "tick": lambda: scheduler.advance(rng.choice([0.2, 0.5, 1.0, 2.0])),
    }
    for _ in range(200):
        name = rng.choice(list(actions))
        actions[name]()

        assert (provider.active is not None) == engine.is_narrating
        if engine.state is PlaybackState.IDLE:
            assert engine.queue == ()
            assert scheduler.pending == []
        if name == "stop":
            assert_idle(engine, scheduler)
            assert provider.active is None


def test_choose_voice_prefers_named_voices() -> None:
    voices = [
        Voice("Samantha", "en-US"),
        Voice("Korean Male", "ko-KR"),
        Voice("Google 한국의", "ko-KR"),
    ]
    assert choose_voice(voices, "ko-KR", ("Google", "female", "Yuna")).name == "Google 한국의"
    assert choose_voice(voices[:2], "ko-KR", ("Yuna",)).name == "Korean Male"
    assert choose_voice(voices[:1], "ko-KR") is None


async def test_utterance_carries_chosen_voice(scheduler, narration) -> None:
    provider = FakeNarrationProvider(voices=[Voice("Yuna", "ko-KR")])
    _, engine = await make_engine(provider, scheduler, narration)
    engine.start()
    assert provider.active.utterance.voice == Voice("Yuna", "ko-KR")


def test_settings_from_environment(monkeypatch) -> None:
    from core.config import settings

    monkeypatch.setattr(settings, "NARRATION_RATE", 1.1)
    assert NarrationSettings.from_settings().rate == 1.1
