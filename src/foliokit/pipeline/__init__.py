"""foliokit incremental content pipeline: fingerprints, dependencies, cache, scheduling."""

from foliokit.pipeline.cache import CacheStore
from foliokit.pipeline.extract import extract_dependencies
from foliokit.pipeline.fingerprint import Fingerprint, Fingerprinter
from foliokit.pipeline.graph import DependencyGraph
from foliokit.pipeline.orchestrator import (
    ContentPipeline,
    PipelineState,
    PipelineSummary,
    run_pipeline,
)
from foliokit.pipeline.scheduler import IncrementalScheduler, SchedulePlan

__all__ = [
    "CacheStore",
    "ContentPipeline",
    "DependencyGraph",
    "Fingerprint",
    "Fingerprinter",
    "IncrementalScheduler",
    "PipelineState",
    "PipelineSummary",
    "SchedulePlan",
    "extract_dependencies",
    "run_pipeline",
]
