"""Configuration settings for the facegen patcher."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(ValueError):
    """Raised when required configuration is missing or malformed.

    Always raised before any matching starts, so a run either begins with a
    complete configuration or does not begin at all.
    """


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="FACEGEN_PATCHER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Record store
    database_url: str = "sqlite:///facegen_patcher.db"
    database_echo: bool = False

    # ── Folders ──────────────────────────────────────────────────────────────
    # Game Data folder holding plugins, archives and loose facegen assets
    data_dir: Path = Path("Data")
    # Output mod folder; mirrors the Data folder layout
    output_dir: Path = Path("output")
    # Folder holding the line-delimited configuration lists
    lists_dir: Path = Path(".")

    # ── Configuration lists ──────────────────────────────────────────────────
    races_file: str = "races.txt"  # required
    parts_file: str = "partsToCopy.txt"  # required
    blacklist_file: str = "blacklist.txt"  # optional
    target_plugins_file: str = "target plugins.txt"  # optional, empty = everything

    # ── Patch output ─────────────────────────────────────────────────────────
    patch_plugin: str = "FacegenPatcher.esp"
    # Keyword FormKey marking an NPC as already processed
    patched_keyword: str = "000800:FacegenPatcherKeywords.esp"

    # ── Engine tuning ────────────────────────────────────────────────────────
    # Copy operations queued before a batch is flushed to disk (2 per NPC)
    copy_batch_size: int = 1000
    # Threads used to probe facegen existence while building the cache
    cache_workers: int = 8
    # Fixed seed for reproducible template shuffling; None = nondeterministic
    random_seed: int | None = None

    # Fallback body shape when a template leaves height/weight at zero
    default_height: float = 1.0
    default_weight: float = 50.0

    # ── Reference content carve-out ──────────────────────────────────────────
    # Templates of this race from this plugin are admitted without asset checks
    reference_plugin: str = "Skyrim.esm"
    exception_race: str = "DA13AfflictedRace"

    # ── Target exclusions ────────────────────────────────────────────────────
    reserved_editor_id: str = "Player"  # exact, case-insensitive
    preset_marker: str = "preset"  # substring, case-insensitive

    @property
    def races_path(self) -> Path:
        return self.lists_dir / self.races_file

    @property
    def parts_path(self) -> Path:
        return self.lists_dir / self.parts_file

    @property
    def blacklist_path(self) -> Path:
        return self.lists_dir / self.blacklist_file

    @property
    def target_plugins_path(self) -> Path:
        return self.lists_dir / self.target_plugins_file


settings = Settings()
