"""
Models for docuploader.

Immutable dataclasses: settings are built once from validated input and
never mutated during a run.
"""
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Union

from .errors import ConfigurationError


class UploadOrder(Enum):
    """Order of document delivery inside a portion."""
    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"

    @classmethod
    def parse(cls, value: Union[str, "UploadOrder"]) -> "UploadOrder":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            choices = ", ".join(o.name.capitalize() for o in cls)
            raise ConfigurationError(f"Unknown upload order {value!r} (expected one of: {choices})")


@dataclass(frozen=True)
class UploadSettings:
    """
    Immutable settings for a document import run.

    Durations are in seconds.

    Attributes:
        agent_start_timeout: Window within which every agent must start
        upload_order: Delivery order inside a portion
        portion_size: Documents per portion (<= 0: one portion with everything)
        upload_portions_interval: Time between portion starts within an agent
        upload_interval: Time between units inside a portion (sequential only)
        trace_enabled: Log every imported document
        batch_size: Documents per grouped request (<= 0: discrete mode)
    """
    agent_start_timeout: float = 0.0
    upload_order: UploadOrder = UploadOrder.SEQUENTIAL
    portion_size: int = -1
    upload_portions_interval: float = 0.0
    upload_interval: float = 0.0
    trace_enabled: bool = True
    batch_size: int = 1

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Raise ConfigurationError if the settings cannot be run."""
        if not isinstance(self.upload_order, UploadOrder):
            raise ConfigurationError(f"Invalid upload order: {self.upload_order!r}")
        for name in ("agent_start_timeout", "upload_portions_interval", "upload_interval"):
            if getattr(self, name) < 0:
                raise ConfigurationError(f"{name} must not be negative")
        if self.portion_size > 0 and self.batch_size > self.portion_size:
            raise ConfigurationError(
                f"Batch size ({self.batch_size}) must be no more than portion size ({self.portion_size})"
            )

    @property
    def is_batch_mode(self) -> bool:
        return self.batch_size > 0

    @property
    def is_portioned(self) -> bool:
        return self.portion_size > 0


@dataclass(frozen=True)
class DocumentInfo:
    """Immutable description of one file to import."""
    name: str
    relative_path: str
    extension: str
    body: bytes = b""

    @property
    def is_empty(self) -> bool:
        return len(self.body) == 0

    @classmethod
    def from_path(cls, path: Path, root: Path) -> "DocumentInfo":
        """
        Build document info for a discovered file.

        ``relative_path`` is the path with the import root stripped, always
        using ``/`` separators. A path without a regular file behind it gets
        an empty body.
        """
        path = Path(path)
        try:
            relative = path.relative_to(root).as_posix()
        except ValueError:
            relative = path.as_posix()

        body = path.read_bytes() if path.is_file() else b""
        return cls(
            name=path.stem,
            relative_path=relative,
            extension=path.suffix.lstrip("."),
            body=body,
        )
