"""One patch run: load configuration, build pools, match, copy, commit."""

from __future__ import annotations

import logging
import random
from collections import Counter
from dataclasses import dataclass, field

from facegen_patcher.config import ConfigurationError, Settings
from facegen_patcher.matching.assets import ArchiveIndex, AssetExistenceCache, AssetLayout
from facegen_patcher.matching.compatibility import CompatibilityTable
from facegen_patcher.matching.copier import BatchedCopyExecutor
from facegen_patcher.matching.engine import MatchingSession, SkipRecord, TemplateMatcher
from facegen_patcher.matching.patcher import OverridePatchApplier
from facegen_patcher.matching.pools import TemplatePoolBuilder
from facegen_patcher.matching.remap import VoiceRemapTable
from facegen_patcher.models.enums import MatchStatus
from facegen_patcher.models.form_key import FormKey
from facegen_patcher.store import EntityStore
from facegen_patcher.utils.lists import ConfigurationLists

logger = logging.getLogger(__name__)


@dataclass
class RunReport:
    """Summary of a finished patch run."""

    records: int = 0
    templates: int = 0
    targets: int = 0
    matched: int = 0
    fallback: int = 0
    unpatched: int = 0
    already_patched: int = 0
    template_counts: dict[str, int] = field(default_factory=dict)  # pyright: ignore[reportUnknownVariableType]
    skipped_templates: dict[str, SkipRecord] = field(default_factory=dict)  # pyright: ignore[reportUnknownVariableType]
    unpatched_reasons: dict[str, str] = field(default_factory=dict)  # pyright: ignore[reportUnknownVariableType]
    filtered: list[str] = field(default_factory=list)  # pyright: ignore[reportUnknownVariableType]
    enqueued: int = 0
    copied: int = 0
    flush_sizes: list[int] = field(default_factory=list)  # pyright: ignore[reportUnknownVariableType]
    dry_run: bool = False

    @property
    def patched(self) -> int:
        return self.matched + self.fallback


def parse_patched_keyword(value: str) -> str:
    """Normalize the configured patched keyword to ``012345:Plugin.esp``."""
    try:
        return str(FormKey.parse(value))
    except ValueError as e:
        raise ConfigurationError(f"Invalid patched keyword: {e}") from e


class PatchRun:
    """Wires every matching component together for a single run.

    Usage:
        with session_scope(engine) as session:
            store = SqlEntityStore(session, patch_plugin=settings.patch_plugin)
            report = PatchRun(settings, store).execute()
    """

    def __init__(
        self,
        settings: Settings,
        store: EntityStore,
        lists: ConfigurationLists | None = None,
        *,
        compatibility: CompatibilityTable | None = None,
        remap: VoiceRemapTable | None = None,
        dry_run: bool = False,
    ) -> None:
        self.settings = settings
        self.store = store
        self.lists = lists
        self.compatibility = compatibility or CompatibilityTable.default()
        self.remap = remap or VoiceRemapTable.default()
        self.dry_run = dry_run

    def execute(self) -> RunReport:
        """Run the patcher.

        Raises:
            ConfigurationError: If a required list is missing or invalid.
            OSError: If staging facegen into the output folder fails.
        """
        cfg = self.settings
        patched_keyword = parse_patched_keyword(cfg.patched_keyword)
        lists = self.lists or ConfigurationLists.load(cfg)

        npcs = self.store.enumerate()
        logger.info("Loaded %d NPC records", len(npcs))

        source = AssetLayout(cfg.data_dir)
        output = AssetLayout(cfg.output_dir)
        candidates = [npc for npc in npcs if npc.race in lists.races]
        cache = AssetExistenceCache.build(candidates, source, workers=cfg.cache_workers)

        builder = TemplatePoolBuilder(
            eligible_races=lists.races,
            blacklist=lists.blacklist,
            exception_race=cfg.exception_race,
            reference_plugin=cfg.reference_plugin,
        )
        pools = builder.build(candidates, cache)

        executor = BatchedCopyExecutor(cfg.copy_batch_size, dry_run=self.dry_run)
        applier = OverridePatchApplier(
            lists.parts,
            default_height=cfg.default_height,
            default_weight=cfg.default_weight,
        )
        matcher = TemplateMatcher(
            self.store,
            self.compatibility,
            self.remap,
            applier,
            executor,
            source=source,
            output=output,
            archives=ArchiveIndex(cfg.data_dir),
            eligible_races=lists.races,
            patched_keyword=patched_keyword,
            target_plugins=lists.target_plugins,
            exception_race=cfg.exception_race,
            reference_plugin=cfg.reference_plugin,
            reserved_editor_id=cfg.reserved_editor_id,
            preset_marker=cfg.preset_marker,
        )
        session = MatchingSession(pools=pools, cache=cache, rng=random.Random(cfg.random_seed))

        statuses: Counter[MatchStatus] = Counter()
        for npc in npcs:
            if not matcher.is_target(npc, session):
                continue
            statuses[matcher.match(npc, session).status] += 1

        executor.flush_all()
        if self.dry_run:
            logger.info("Dry run: patch overrides not committed")
        else:
            self.store.commit()

        report = RunReport(
            records=len(npcs),
            templates=len(pools),
            targets=sum(statuses.values()),
            matched=statuses[MatchStatus.MATCHED],
            fallback=statuses[MatchStatus.FALLBACK],
            unpatched=statuses[MatchStatus.UNPATCHED],
            already_patched=session.already_patched,
            template_counts=pools.counts(),
            skipped_templates=dict(session.skipped_templates),
            unpatched_reasons=dict(session.unpatched),
            filtered=list(session.filtered),
            enqueued=executor.enqueued_count,
            copied=executor.copied_count,
            flush_sizes=list(executor.flush_sizes),
            dry_run=self.dry_run,
        )
        logger.info(
            "Patched %d of %d targets (%d fallback, %d unpatched)",
            report.patched,
            report.targets,
            report.fallback,
            report.unpatched,
        )
        return report
