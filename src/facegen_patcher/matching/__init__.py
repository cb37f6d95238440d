"""Template matching: pools, compatibility, provisioning and patching."""

from facegen_patcher.matching.assets import (
    ArchiveIndex,
    AssetExistenceCache,
    AssetFlags,
    AssetLayout,
)
from facegen_patcher.matching.compatibility import DEFAULT_RACE_CLUSTERS, CompatibilityTable
from facegen_patcher.matching.copier import BatchedCopyExecutor, CopyOperation
from facegen_patcher.matching.engine import (
    MatchingSession,
    MatchOutcome,
    SkipRecord,
    TemplateMatcher,
)
from facegen_patcher.matching.patcher import OverridePatchApplier
from facegen_patcher.matching.pipeline import PatchRun, RunReport, parse_patched_keyword
from facegen_patcher.matching.pools import ProvenPool, TemplatePool, TemplatePoolBuilder
from facegen_patcher.matching.remap import VoiceRemapTable

__all__ = [
    "ArchiveIndex",
    "AssetExistenceCache",
    "AssetFlags",
    "AssetLayout",
    "BatchedCopyExecutor",
    "CompatibilityTable",
    "CopyOperation",
    "DEFAULT_RACE_CLUSTERS",
    "MatchOutcome",
    "MatchingSession",
    "OverridePatchApplier",
    "PatchRun",
    "ProvenPool",
    "RunReport",
    "SkipRecord",
    "TemplateMatcher",
    "TemplatePool",
    "TemplatePoolBuilder",
    "VoiceRemapTable",
    "parse_patched_keyword",
]
