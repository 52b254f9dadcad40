"""Domain context assembly, health scoring and tier-aware compression."""

from .assembler import ContextAssembler
from .compressor import (
    PAGE_DESCRIPTIONS,
    compress_context,
    context_level_for_tier,
    describe_page,
    detect_focus_agency,
    fallback_context,
)
from .health import compute_health, health_label, snapshot_from_raw

__all__ = [
    "PAGE_DESCRIPTIONS",
    "ContextAssembler",
    "compress_context",
    "compute_health",
    "context_level_for_tier",
    "describe_page",
    "detect_focus_agency",
    "fallback_context",
    "health_label",
    "snapshot_from_raw",
]
