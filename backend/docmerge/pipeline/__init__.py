"""
Pipeline - per-row merge orchestration.

Components:
- naming: deterministic output filenames
- archive: incremental ZIP assembly
- orchestrator: validate -> parse -> render/convert per row -> archive
"""

from .orchestrator import MergePipeline

__all__ = [
    "MergePipeline",
]
