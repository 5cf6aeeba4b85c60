from tagquality.core.stats import SummaryStats, summarize
from tagquality.eval.deltas import DeltaResult, compute_deltas
from tagquality.eval.quality_sweep import QUALITY_VALUES, QualityResult, ScatterRecord, run_quality_sweep
from tagquality.eval.tag_detection import Detection, TagDetector

__all__ = [
    "QUALITY_VALUES",
    "Detection",
    "DeltaResult",
    "QualityResult",
    "ScatterRecord",
    "SummaryStats",
    "TagDetector",
    "compute_deltas",
    "run_quality_sweep",
    "summarize",
]
