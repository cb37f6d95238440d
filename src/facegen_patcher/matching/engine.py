"""Template matching for target NPCs.

For each target NPC:
1. Expand its race through the compatibility table and gather the admitted
   templates of every compatible race.
2. Shuffle the candidates and take the first one whose facegen can be fully
   staged (archive-only plugins are skipped).
3. On a full match, patch the override, remember the template as proven for
   the target's race and mark the target.
4. Otherwise fall back to a template proven earlier in this run.
5. Otherwise leave the target unpatched and record why.

All run state (random source, pools, diagnostics) lives on
``MatchingSession``; ``TemplateMatcher`` itself holds only configuration and
collaborators.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field

from facegen_patcher.matching.assets import (
    ArchiveIndex,
    AssetExistenceCache,
    AssetLayout,
)
from facegen_patcher.matching.compatibility import CompatibilityTable
from facegen_patcher.matching.copier import BatchedCopyExecutor, CopyOperation
from facegen_patcher.matching.patcher import OverridePatchApplier
from facegen_patcher.matching.pools import ProvenPool, TemplatePool
from facegen_patcher.matching.remap import VoiceRemapTable
from facegen_patcher.models.enums import MatchStatus
from facegen_patcher.models.npc import NpcRecord
from facegen_patcher.store import EntityStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SkipRecord:
    """A template passed over because its plugin ships packed assets."""

    plugin: str
    reason: str


@dataclass
class MatchingSession:
    """Mutable state for one patch run."""

    pools: TemplatePool
    cache: AssetExistenceCache
    rng: random.Random = field(default_factory=random.Random)
    proven: ProvenPool = field(default_factory=ProvenPool)

    skipped_templates: dict[str, SkipRecord] = field(default_factory=dict)  # pyright: ignore[reportUnknownVariableType]
    """Template label → why it was skipped."""

    unpatched: dict[str, str] = field(default_factory=dict)  # pyright: ignore[reportUnknownVariableType]
    """Target label → reason it was left unchanged."""

    filtered: list[str] = field(default_factory=list)  # pyright: ignore[reportUnknownVariableType]
    """Targets excluded by name (reserved or preset)."""

    already_patched: int = 0


@dataclass
class MatchOutcome:
    """Result of matching one target."""

    status: MatchStatus
    reason: str
    template: NpcRecord | None = None
    operations: list[CopyOperation] = field(default_factory=list)  # pyright: ignore[reportUnknownVariableType]
    """Copies queued for this target."""

    @property
    def patched(self) -> bool:
        return self.status is not MatchStatus.UNPATCHED


class TemplateMatcher:
    """Matches targets against template pools and stages their facegen.

    Usage:
        matcher = TemplateMatcher(store, compatibility, remap, applier, executor, ...)
        session = MatchingSession(pools=pools, cache=cache, rng=random.Random(7))
        for npc in store.enumerate():
            if matcher.is_target(npc, session):
                matcher.match(npc, session)
        executor.flush_all()
    """

    def __init__(
        self,
        store: EntityStore,
        compatibility: CompatibilityTable,
        remap: VoiceRemapTable,
        applier: OverridePatchApplier,
        executor: BatchedCopyExecutor,
        *,
        source: AssetLayout,
        output: AssetLayout,
        archives: ArchiveIndex,
        eligible_races: frozenset[str],
        patched_keyword: str,
        target_plugins: frozenset[str] = frozenset(),
        exception_race: str = "DA13AfflictedRace",
        reference_plugin: str = "Skyrim.esm",
        reserved_editor_id: str = "Player",
        preset_marker: str = "preset",
    ) -> None:
        """Initialize the matcher.

        Args:
            store: Record store the patch overrides are written to.
            compatibility: Race compatibility clusters.
            remap: Voice remap tables.
            applier: Writes template attributes into overrides.
            executor: Receives the facegen copy operations.
            source: Layout of the game Data folder.
            output: Layout of the output mod folder.
            archives: Detects plugins whose assets are packed.
            eligible_races: Races that can be patched.
            patched_keyword: Marker added to every patched NPC.
            target_plugins: Plugins in scope; empty means all.
            exception_race: Race of reference templates without loose facegen.
            reference_plugin: Plugin the reference templates come from.
            reserved_editor_id: EditorID that is never patched.
            preset_marker: EditorID substring that marks character presets.
        """
        self.store = store
        self.compatibility = compatibility
        self.remap = remap
        self.applier = applier
        self.executor = executor
        self.source = source
        self.output = output
        self.archives = archives
        self.eligible_races = eligible_races
        self.patched_keyword = patched_keyword
        self.target_plugins = target_plugins
        self.exception_race = exception_race
        self.reference_plugin = reference_plugin
        self.reserved_editor_id = reserved_editor_id.lower()
        self.preset_marker = preset_marker.lower()
        self._voice_types: frozenset[str] | None = None

    # ─────────────────────────────────────────────────────────────────────────
    # Target selection
    # ─────────────────────────────────────────────────────────────────────────

    def is_target(self, npc: NpcRecord, session: MatchingSession) -> bool:
        if npc.race not in self.eligible_races:
            return False
        if self.target_plugins and npc.origin_plugin not in self.target_plugins:
            return False

        # Patched overrides are female, so the marker is checked first
        if npc.has_keyword(self.patched_keyword):
            session.already_patched += 1
            logger.debug("Skipping %s: already patched", npc.label)
            return False
        if npc.female:
            return False

        editor_id = (npc.editor_id or "").lower()
        if editor_id == self.reserved_editor_id or self.preset_marker in editor_id:
            session.filtered.append(npc.label)
            logger.debug("Skipping excluded NPC %s", npc.label)
            return False
        return True

    # ─────────────────────────────────────────────────────────────────────────
    # Matching
    # ─────────────────────────────────────────────────────────────────────────

    def match(self, npc: NpcRecord, session: MatchingSession) -> MatchOutcome:
        race = npc.race or ""
        if race == self.exception_race:
            logger.info("Processing afflicted NPC %s", npc.label)

        candidates = session.pools.templates_for(self.compatibility.expand(race))
        if not candidates:
            reason = f"no templates for race {race}"
            return self._unpatched(npc, session, reason)

        session.rng.shuffle(candidates)
        for template in candidates:
            if self.archives.is_archive_only(template.origin_plugin):
                self._skip(template, session)
                continue

            operations = self._provision(npc, template, session)
            if operations is None:
                continue

            self._patch(npc, template, session)
            session.proven.register(race, template)
            self._stage(operations)
            logger.info("Patched %s with %s (race %s)", npc.label, template.label, race)
            return MatchOutcome(
                status=MatchStatus.MATCHED,
                reason=f"matched template {template.label}",
                template=template,
                operations=operations,
            )

        return self._fallback(npc, session)

    def _fallback(self, npc: NpcRecord, session: MatchingSession) -> MatchOutcome:
        race = npc.race or ""
        template = session.proven.pick(race, session.rng)
        if template is None:
            reason = f"no valid templates or successful fallbacks for race {race}"
            return self._unpatched(npc, session, reason)

        # Proven templates already staged once, so their facegen is known-good
        operations = self._operations(npc, template, mesh=True, tint=True)

        self._patch(npc, template, session)
        self._stage(operations)
        logger.info("Patched %s with fallback template %s (race %s)", npc.label, template.label, race)
        return MatchOutcome(
            status=MatchStatus.FALLBACK,
            reason=f"fallback template {template.label}",
            template=template,
            operations=operations,
        )

    # ─────────────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────────────

    def _is_reference(self, template: NpcRecord) -> bool:
        return template.race == self.exception_race and template.origin_plugin == self.reference_plugin

    def _provision(
        self, npc: NpcRecord, template: NpcRecord, session: MatchingSession
    ) -> list[CopyOperation] | None:
        """Copies that stage ``template``'s facegen for ``npc``.

        Returns None unless both files resolve. Reference templates need no
        copies; their destination directories are created right away.
        """
        if self._is_reference(template):
            self._ensure_output_dirs(npc)
            return []

        flags = session.cache.get(template.form_key)
        if not flags.mesh:
            logger.warning(
                "No facegen mesh for template %s at %s",
                template.label,
                self.source.mesh_path(template.form_key),
            )
        if not flags.tint:
            logger.warning(
                "No facegen tint for template %s at %s",
                template.label,
                self.source.tint_path(template.form_key),
            )
        if not flags.complete:
            return None
        return self._operations(npc, template, mesh=flags.mesh, tint=flags.tint)

    def _operations(self, npc: NpcRecord, template: NpcRecord, *, mesh: bool, tint: bool) -> list[CopyOperation]:
        operations: list[CopyOperation] = []
        if mesh:
            operations.append(
                CopyOperation(self.source.mesh_path(template.form_key), self.output.mesh_path(npc.form_key))
            )
        if tint:
            operations.append(
                CopyOperation(self.source.tint_path(template.form_key), self.output.tint_path(npc.form_key))
            )
        return operations

    def _ensure_output_dirs(self, npc: NpcRecord) -> None:
        self.executor.ensure_directory(self.output.mesh_path(npc.form_key).parent)
        self.executor.ensure_directory(self.output.tint_path(npc.form_key).parent)

    def _stage(self, operations: list[CopyOperation]) -> None:
        for op in operations:
            self.executor.enqueue(op)

    def _patch(self, npc: NpcRecord, template: NpcRecord, session: MatchingSession) -> None:
        patched = self.store.get_override(npc.form_key)
        self.applier.carry_forward(patched, self.store.prior_override(npc.form_key))
        self.applier.apply_template(patched, template)
        self._remap_voice(npc, patched, session)
        self.applier.mark(patched, self.patched_keyword)

    def _remap_voice(self, npc: NpcRecord, patched: NpcRecord, session: MatchingSession) -> None:
        voice = self.remap.remap(npc.voice, npc.race, session.rng)
        if voice is None:
            if npc.voice is not None:
                logger.debug("No voice mapping for %s (%s, race %s)", npc.label, npc.voice, npc.race)
            return

        if self._voice_types is None:
            self._voice_types = self.store.voice_types()
        if voice not in self._voice_types:
            logger.warning("Voice type %s not found for %s; keeping %s", voice, npc.label, npc.voice)
            return

        patched.voice = voice
        logger.debug("Swapped voice for %s from %s to %s", npc.label, npc.voice, voice)

    def _skip(self, template: NpcRecord, session: MatchingSession) -> None:
        archive = self.archives.archive_path(template.origin_plugin)
        session.skipped_templates[template.label] = SkipRecord(
            plugin=template.origin_plugin,
            reason=f"assets packed in {archive.name}",
        )
        logger.warning("Skipping template %s: assets packed in %s", template.label, archive.name)

    def _unpatched(self, npc: NpcRecord, session: MatchingSession, reason: str) -> MatchOutcome:
        session.unpatched[npc.label] = reason
        logger.info("Left %s unchanged: %s", npc.label, reason)
        return MatchOutcome(status=MatchStatus.UNPATCHED, reason=reason)
