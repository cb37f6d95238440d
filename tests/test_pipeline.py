"""End-to-end tests for a patch run over the SQL store."""

from __future__ import annotations

from pathlib import Path

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from facegen_patcher.config import ConfigurationError, Settings
from facegen_patcher.matching import AssetLayout, PatchRun
from facegen_patcher.models import FormKey, NpcRecord
from facegen_patcher.schemas import RecordDump
from facegen_patcher.store import SqlEntityStore, import_dump

PATCH = "FacegenPatcher.esp"
KEYWORD = "000800:FacegenPatcherKeywords.esp"

ULFRIC = FormKey.parse("01A694:Skyrim.esm")
LYDIA = FormKey.parse("013BB9:Skyrim.esm")
LEGATE = FormKey.parse("000D62:Mod.esp")

RECORDS = {
    "load_order": ["Skyrim.esm", "Mod.esp"],
    "npcs": [
        {
            "plugin": "Skyrim.esm",
            "form_key": str(ULFRIC),
            "editor_id": "Ulfric",
            "race": "NordRace",
            "voice": "MaleNord",
            "head_parts": ["MaleHeadNord"],
            "configuration": {"level": 30, "flags": ["Unique"]},
            "keywords": ["013794:Skyrim.esm"],
        },
        {
            "plugin": "Skyrim.esm",
            "form_key": str(LYDIA),
            "editor_id": "Lydia",
            "race": "NordRace",
            "female": True,
            "head_parts": ["FemaleHeadNord", "HairFemaleNord01"],
            "hair_color": "HairColor07",
            "height": 1.02,
            "weight": 60.0,
        },
        {
            "plugin": "Skyrim.esm",
            "form_key": "000007:Skyrim.esm",
            "editor_id": "Player",
            "race": "NordRace",
        },
        {
            "plugin": "Mod.esp",
            "form_key": str(LEGATE),
            "editor_id": "ModLegate",
            "race": "ImperialRace",
        },
        {
            "plugin": "Mod.esp",
            "form_key": str(ULFRIC),
            "editor_id": "Ulfric",
            "race": "NordRace",
            "voice": "MaleNord",
            "head_parts": ["MaleHeadNord"],
            "configuration": {"level": 45, "flags": ["Unique", "Essential"]},
            "keywords": ["013794:Skyrim.esm", "0ABCDE:Mod.esp"],
            "packages": ["0F0F0F:Mod.esp"],
        },
    ],
    "voice_types": [
        {"plugin": "Skyrim.esm", "editor_id": "FemaleNord"},
        {"plugin": "Skyrim.esm", "editor_id": "MaleNord"},
    ],
}


@pytest.fixture
def run_settings(tmp_path: Path, data_dir: Path, output_dir: Path) -> Settings:
    lists_dir = tmp_path / "lists"
    lists_dir.mkdir()
    (lists_dir / "races.txt").write_text("NordRace\nImperialRace\n", encoding="utf-8")
    (lists_dir / "partsToCopy.txt").write_text("PNAM\nHCLF\n", encoding="utf-8")

    source = AssetLayout(data_dir)
    for path in (source.mesh_path(LYDIA), source.tint_path(LYDIA)):
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"lydia:" + path.suffix.encode())

    return Settings(  # type: ignore[call-arg]
        _env_file=None,
        data_dir=data_dir,
        output_dir=output_dir,
        lists_dir=lists_dir,
        random_seed=3,
        cache_workers=2,
    )


@pytest.fixture
def loaded(session: Session) -> Session:
    import_dump(session, RecordDump.model_validate(RECORDS))
    return session


def patch_rows(session: Session) -> list[NpcRecord]:
    return list(session.scalars(select(NpcRecord).where(NpcRecord.plugin == PATCH)))


class TestPatchRun:
    def test_full_run(self, loaded: Session, run_settings: Settings, output_dir: Path) -> None:
        report = PatchRun(run_settings, SqlEntityStore(loaded, patch_plugin=PATCH)).execute()

        assert report.records == 4
        assert report.templates == 1
        assert report.targets == 2
        assert report.matched == 1
        assert report.unpatched == 1
        assert report.unpatched_reasons == {
            "ModLegate (000D62)": "no templates for race ImperialRace"
        }
        assert report.filtered == ["Player (000007)"]
        assert report.copied == 2
        assert report.flush_sizes == [2]

        out = AssetLayout(output_dir)
        assert out.mesh_path(ULFRIC).read_bytes() == b"lydia:.nif"
        assert out.tint_path(ULFRIC).read_bytes() == b"lydia:.dds"

    def test_override_is_persisted(self, loaded: Session, run_settings: Settings) -> None:
        PatchRun(run_settings, SqlEntityStore(loaded, patch_plugin=PATCH)).execute()

        (patched,) = patch_rows(loaded)
        assert patched.form_key == ULFRIC
        assert patched.female is True
        assert patched.voice == "FemaleNord"
        assert patched.head_parts == ["FemaleHeadNord", "HairFemaleNord01"]
        assert patched.hair_color == "HairColor07"
        assert patched.height == 1.02
        assert patched.configuration["level"] == 45
        assert patched.packages == ["0F0F0F:Mod.esp"]
        assert patched.keywords == ["013794:Skyrim.esm", "0ABCDE:Mod.esp", KEYWORD]

    def test_second_run_changes_nothing(self, loaded: Session, run_settings: Settings) -> None:
        PatchRun(run_settings, SqlEntityStore(loaded, patch_plugin=PATCH)).execute()

        report = PatchRun(run_settings, SqlEntityStore(loaded, patch_plugin=PATCH)).execute()

        assert report.matched == 0
        assert report.fallback == 0
        assert report.enqueued == 0
        assert report.already_patched == 1
        assert report.targets == 1
        assert len(patch_rows(loaded)) == 1

    def test_short_keyword_is_recognized_on_second_run(
        self, loaded: Session, run_settings: Settings
    ) -> None:
        short = run_settings.model_copy(update={"patched_keyword": "800:FacegenPatcherKeywords.esp"})
        PatchRun(short, SqlEntityStore(loaded, patch_plugin=PATCH)).execute()

        report = PatchRun(short, SqlEntityStore(loaded, patch_plugin=PATCH)).execute()

        (patched,) = patch_rows(loaded)
        assert patched.has_keyword(KEYWORD)
        assert report.already_patched == 1

    def test_dry_run_copies_and_commits_nothing(
        self, loaded: Session, run_settings: Settings, output_dir: Path
    ) -> None:
        report = PatchRun(
            run_settings, SqlEntityStore(loaded, patch_plugin=PATCH), dry_run=True
        ).execute()
        loaded.rollback()

        assert report.matched == 1
        assert report.enqueued == 2
        assert report.copied == 0
        assert not output_dir.exists()
        assert patch_rows(loaded) == []

    def test_scope_list_limits_targets(self, loaded: Session, run_settings: Settings) -> None:
        (run_settings.lists_dir / "target plugins.txt").write_text("Mod.esp\n", encoding="utf-8")

        report = PatchRun(run_settings, SqlEntityStore(loaded, patch_plugin=PATCH)).execute()

        assert report.targets == 1
        assert report.unpatched == 1
        assert report.filtered == []

    def test_missing_required_list_aborts_before_matching(
        self, loaded: Session, run_settings: Settings, output_dir: Path
    ) -> None:
        (run_settings.lists_dir / "races.txt").unlink()

        with pytest.raises(ConfigurationError):
            PatchRun(run_settings, SqlEntityStore(loaded, patch_plugin=PATCH)).execute()

        assert not output_dir.exists()
        assert patch_rows(loaded) == []

    def test_invalid_patched_keyword(self, loaded: Session, run_settings: Settings) -> None:
        bad = run_settings.model_copy(update={"patched_keyword": "nope"})

        with pytest.raises(ConfigurationError, match="patched keyword"):
            PatchRun(bad, SqlEntityStore(loaded, patch_plugin=PATCH)).execute()
