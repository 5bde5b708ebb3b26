"""Pools of existing entity ids used for references in generated documents."""
import os
import random
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from ..errors import ConfigurationError

TOKEN_DELIMITER = ","
RANGE_DELIMITER = ".."


class IdPool:
    """
    Set of ids to pick references from.

    Built from a string like ``"1,2,10..20"``: comma-separated ids and
    inclusive ranges.
    """

    def __init__(self, ids: Sequence[int] = (), rng: Optional[random.Random] = None):
        self._ids: List[int] = list(ids)
        self._rng = rng or random.Random()

    def __len__(self) -> int:
        return len(self._ids)

    @property
    def ids(self) -> List[int]:
        return list(self._ids)

    @classmethod
    def parse(cls, raw: Optional[str], rng: Optional[random.Random] = None) -> "IdPool":
        if not raw:
            return cls((), rng)

        ids: List[int] = []
        ranges: List[int] = []
        for token in raw.split(TOKEN_DELIMITER):
            token = token.strip()
            if not token:
                continue
            try:
                if RANGE_DELIMITER in token:
                    start, end = [int(p) for p in token.split(RANGE_DELIMITER) if p.strip()]
                    if end < start:
                        raise ValueError(f"range end {end} is before start {start}")
                    ranges.extend(range(start, end + 1))
                else:
                    ids.append(int(token))
            except ValueError as exc:
                raise ConfigurationError(f"Invalid id token {token!r} in {raw!r}: {exc}") from exc

        # Single ids first, then expanded ranges.
        return cls(ids + ranges, rng)

    def random_id(self) -> int:
        """Random id from the pool (0 when the pool is empty)."""
        if len(self._ids) <= 1:
            return self._ids[0] if self._ids else 0
        return self._rng.choice(self._ids)


@dataclass
class IdPools:
    """Id pools for the reference fields of generated documents."""
    applications: IdPool = field(default_factory=IdPool)
    cities: IdPool = field(default_factory=IdPool)
    employees: IdPool = field(default_factory=IdPool)
    regions: IdPool = field(default_factory=IdPool)

    @classmethod
    def from_env(cls, rng: Optional[random.Random] = None) -> "IdPools":
        """Read DOCUPLOADER_<NAME>_IDS environment variables."""
        def pool(name: str) -> IdPool:
            return IdPool.parse(os.getenv(f"DOCUPLOADER_{name}_IDS"), rng)

        return cls(
            applications=pool("APPLICATION"),
            cities=pool("CITY"),
            employees=pool("EMPLOYEE"),
            regions=pool("REGION"),
        )
