"""Splitting file lists into portions and batches."""
from pathlib import Path
from typing import Iterable, Iterator, List, Sequence, TypeVar, Union

from ..models import UploadSettings
from .models import Batch, Portion

T = TypeVar("T")

# A delivery unit: one path in discrete mode, a Batch otherwise.
Unit = Union[Path, Batch]


def split_pages(items: Iterable[T], page_size: int) -> Iterator[List[T]]:
    """Yield consecutive pages of at most page_size items. The last may be smaller."""
    if page_size <= 0:
        raise ValueError("page_size must be positive")
    page: List[T] = []
    for item in items:
        page.append(item)
        if len(page) == page_size:
            yield page
            page = []
    if page:
        yield page


class PortionScheduler:
    """Splits an agent's files into portions."""

    def __init__(self, settings: UploadSettings):
        self._settings = settings

    def split(self, files: Sequence[Path]) -> List[Portion]:
        """
        Split files into consecutive, disjoint portions.

        With a non-positive portion size all files form a single portion.
        An empty file list gives no portions.
        """
        if not files:
            return []
        if not self._settings.is_portioned:
            return [Portion(index=0, documents=tuple(files))]
        return [
            Portion(index=index, documents=tuple(page))
            for index, page in enumerate(split_pages(files, self._settings.portion_size))
        ]


class BatchSplitter:
    """Splits a portion into delivery units."""

    def __init__(self, settings: UploadSettings):
        self._settings = settings

    def split(self, portion: Portion) -> List[Unit]:
        """
        Batches of at most batch_size documents, or single paths in discrete mode.
        """
        if not self._settings.is_batch_mode:
            return list(portion.documents)
        return [
            Batch(documents=tuple(page))
            for page in split_pages(portion.documents, self._settings.batch_size)
        ]
