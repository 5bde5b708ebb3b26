"""Orchestrator data models."""
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple


class ImportStatus(Enum):
    """Overall status of an import run."""
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class Portion:
    """Contiguous chunk of an agent's files with its own start offset."""
    index: int
    documents: Tuple[Path, ...]

    def __len__(self) -> int:
        return len(self.documents)


@dataclass(frozen=True)
class Batch:
    """Documents of one portion sent as one grouped request."""
    documents: Tuple[Path, ...]

    def __len__(self) -> int:
        return len(self.documents)


@dataclass(frozen=True)
class UnitResult:
    """Outcome of one discrete document or one batch."""
    paths: Tuple[str, ...]
    success: bool = True
    error: Optional[str] = None

    @classmethod
    def ok(cls, paths):
        return cls(paths=tuple(paths))

    @classmethod
    def fail(cls, paths, error: str):
        return cls(paths=tuple(paths), success=False, error=error)


@dataclass
class AgentResult:
    """Result of one agent (one subfolder)."""
    folder: Path
    attempted: int = 0
    failed: int = 0
    connected: bool = True
    error: Optional[str] = None


@dataclass
class ImportResult:
    """
    Result of a whole import run.

    ``imported_count`` is the number of files attempted across all agents.
    Units rejected by the store are logged and counted in ``failed_count``
    but still belong to ``imported_count``.
    """
    status: ImportStatus
    imported_count: int = 0
    elapsed: float = 0.0
    agents: List[AgentResult] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status == ImportStatus.SUCCESS

    @property
    def failed_count(self) -> int:
        return sum(a.failed for a in self.agents)

    @property
    def exit_code(self) -> int:
        return 0 if self.success else -1

    @classmethod
    def ok(cls, agents: List[AgentResult], elapsed: float):
        return cls(
            status=ImportStatus.SUCCESS,
            imported_count=sum(a.attempted for a in agents),
            elapsed=elapsed,
            agents=list(agents),
        )

    @classmethod
    def fail(cls, error: str, elapsed: float = 0.0):
        return cls(status=ImportStatus.FAILED, elapsed=elapsed, error=error)
