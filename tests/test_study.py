from pathlib import Path

import pytest
import yaml

from conftest import InMemoryArtifactSource, compile_raw, numbered_module
from core.errors import TransportError
from engines.artifacts import FileArtifactSource
from engines.playback import PlaybackState
from engines.study import StudySession
from ingest.artifacts import MANIFEST_FILE
from scripts import compile_modules

RAW_MODULES = Path(__file__).resolve().parents[1] / "data" / "raw_modules"


async def test_session_flow(provider, scheduler, narration) -> None:
    source = InMemoryArtifactSource(compile_raw(numbered_module("a", 12, dictionary="하다"), numbered_module("b", 2)))
    session = StudySession(source, provider, scheduler=scheduler, narration=narration, page_size=5)
    await session.open()
    await session.load_module("a")

    session.start()
    assert session.state is PlaybackState.PLAYING

    session.change_page(3)
    assert session.state is PlaybackState.IDLE
    assert session.store.selected_phrase_id == "a-11"

    assert [p.id for p in session.cross_reference("하다")][:2] == ["a-1", "a-2"]

    session.start()
    await session.load_module("b")
    assert session.state is PlaybackState.IDLE
    assert provider.active is None
    assert session.store.page == 1

    session.play_single("b-2")
    session.leave_module()
    assert provider.active is None
    assert session.store.module is None


def test_compile_script_builds_sample_modules(tmp_path: Path, monkeypatch, capsys) -> None:
    monkeypatch.setattr(compile_modules, "configure_logging", lambda **kwargs: None)
    out = tmp_path / "data"

    assert compile_modules.main(["--raw-dir", str(RAW_MODULES), "--out", str(out)]) == 0
    assert (out / MANIFEST_FILE).exists()
    assert "Compiled" in capsys.readouterr().out


def test_compile_script_tolerates_invalid_units(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr(compile_modules, "configure_logging", lambda **kwargs: None)
    raw_dir = tmp_path / "raw"
    raw_dir.mkdir()
    (raw_dir / "broken.yaml").write_text(yaml.safe_dump({"title": "no id"}), encoding="utf-8")

    assert compile_modules.main(["--raw-dir", str(raw_dir), "--out", str(tmp_path / "out")]) == 0


def test_compile_script_fails_when_output_unwritable(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr(compile_modules, "configure_logging", lambda **kwargs: None)
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")

    assert compile_modules.main(["--raw-dir", str(tmp_path), "--out", str(blocker / "out")]) == 1


async def test_sample_modules_compile_and_load(tmp_path: Path, provider, scheduler, narration) -> None:
    from ingest.compiler import ModuleCompiler

    result = ModuleCompiler().run(RAW_MODULES, tmp_path / "out")
    assert result.errors == []

    session = StudySession(FileArtifactSource(tmp_path / "out"), provider, scheduler=scheduler, narration=narration)
    await session.open()
    module = await session.load_module("basics")
    assert module.phrases[0].full_text == "안녕 하세요"
    assert [p.id for p in session.cross_reference("하다")] == ["p1", "p2"]

    with pytest.raises(TransportError):
        await StudySession(FileArtifactSource(tmp_path / "missing"), provider).open()
