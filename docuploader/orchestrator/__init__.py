"""Orchestrator package - coordinates import workflows."""
from .core import DocumentImporter
from .models import AgentResult, Batch, ImportResult, ImportStatus, Portion, UnitResult
from .process import ImportProcess, ProcessState
from .timing import Jitter

__all__ = [
    "DocumentImporter",
    "ImportProcess",
    "ProcessState",
    "ImportResult",
    "ImportStatus",
    "AgentResult",
    "UnitResult",
    "Portion",
    "Batch",
    "Jitter",
]
