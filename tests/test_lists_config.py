"""Tests for settings and configuration list loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from facegen_patcher.config import ConfigurationError, Settings
from facegen_patcher.models import VisualPart
from facegen_patcher.utils.lists import ConfigurationLists, load_list, parse_parts


def write_lists(directory: Path, **files: str) -> None:
    for name, content in files.items():
        (directory / name).write_text(content, encoding="utf-8")


class TestSettings:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("FACEGEN_PATCHER_COPY_BATCH_SIZE", raising=False)
        monkeypatch.delenv("FACEGEN_PATCHER_LISTS_DIR", raising=False)
        settings = Settings(_env_file=None)  # type: ignore[call-arg]

        assert settings.copy_batch_size == 1000
        assert settings.patch_plugin == "FacegenPatcher.esp"
        assert settings.reserved_editor_id == "Player"
        assert settings.races_path == Path(".") / "races.txt"

    def test_environment_overrides(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.setenv("FACEGEN_PATCHER_COPY_BATCH_SIZE", "250")
        monkeypatch.setenv("FACEGEN_PATCHER_LISTS_DIR", str(tmp_path))

        settings = Settings(_env_file=None)  # type: ignore[call-arg]

        assert settings.copy_batch_size == 250
        assert settings.target_plugins_path == tmp_path / "target plugins.txt"


class TestLoadList:
    def test_strips_and_skips_comments(self, tmp_path: Path) -> None:
        path = tmp_path / "races.txt"
        path.write_text("\ufeffNordRace\n\n  # vampires next\n  NordRaceVampire  \n", encoding="utf-8")

        assert load_list(path, required=True) == ["NordRace", "NordRaceVampire"]

    def test_missing_required_list_fails(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="not found"):
            load_list(tmp_path / "races.txt", required=True)

    def test_missing_optional_list_is_empty(self, tmp_path: Path) -> None:
        assert load_list(tmp_path / "blacklist.txt", required=False) == []


class TestParseParts:
    def test_parses_known_parts(self) -> None:
        parts = parse_parts(["PNAM", "tint layers", "HCLF"])

        assert parts == {VisualPart.HEAD_PARTS, VisualPart.TINT_LAYERS, VisualPart.HAIR_COLOR}

    def test_unknown_part_fails_fast(self) -> None:
        with pytest.raises(ConfigurationError, match="XXXX"):
            parse_parts(["PNAM", "XXXX"])


class TestConfigurationLists:
    def test_loads_all_lists(self, tmp_path: Path) -> None:
        write_lists(
            tmp_path,
            **{
                "races.txt": "NordRace\nImperialRace\n",
                "partsToCopy.txt": "PNAM\nNAM9\n",
                "blacklist.txt": "Bad.esp\n",
                "target plugins.txt": "Mod.esp\n",
            },
        )
        settings = Settings(_env_file=None, lists_dir=tmp_path)  # type: ignore[call-arg]

        lists = ConfigurationLists.load(settings)

        assert lists.races == {"NordRace", "ImperialRace"}
        assert lists.parts == {VisualPart.HEAD_PARTS, VisualPart.FACE_MORPH}
        assert lists.blacklist == {"Bad.esp"}
        assert lists.target_plugins == {"Mod.esp"}
        assert not lists.whole_load_order

    def test_optional_lists_may_be_absent(self, tmp_path: Path) -> None:
        write_lists(tmp_path, **{"races.txt": "NordRace\n", "partsToCopy.txt": "PNAM\n"})
        settings = Settings(_env_file=None, lists_dir=tmp_path)  # type: ignore[call-arg]

        lists = ConfigurationLists.load(settings)

        assert lists.blacklist == frozenset()
        assert lists.whole_load_order

    def test_missing_parts_list_fails(self, tmp_path: Path) -> None:
        write_lists(tmp_path, **{"races.txt": "NordRace\n"})
        settings = Settings(_env_file=None, lists_dir=tmp_path)  # type: ignore[call-arg]

        with pytest.raises(ConfigurationError, match="partsToCopy.txt"):
            ConfigurationLists.load(settings)
