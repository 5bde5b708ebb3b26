import asyncio
import logging
import os
from pathlib import Path
from typing import List, Optional

from ..errors import innermost_message
from ..models import DocumentInfo
from ..protocols import IDocumentRepository
from ..utils.events import EventEmitter
from .models import Batch, UnitResult
from .portions import Unit

logger = logging.getLogger(__name__)


class UnitUploader:
    """
    Uploads one delivery unit: a single document or a batch.

    Failures are contained here. An error from the store (or from reading
    the file) is logged with the offending paths and returned as a failed
    UnitResult; it never reaches sibling units, portions or agents.
    """

    def __init__(
        self,
        repository: IDocumentRepository,
        root: Path,
        trace_enabled: bool = True,
        events: Optional[EventEmitter] = None,
    ):
        self._repository = repository
        self._root = Path(root)
        self._trace_enabled = trace_enabled
        self._events = events

    async def upload(self, unit: Unit) -> UnitResult:
        if isinstance(unit, Batch):
            return await self.upload_batch(unit)
        return await self.upload_document(unit)

    def _relative(self, path: Path) -> str:
        try:
            return Path(path).relative_to(self._root).as_posix()
        except ValueError:
            return Path(path).as_posix()

    async def _read(self, path: Path) -> DocumentInfo:
        return await asyncio.to_thread(DocumentInfo.from_path, path, self._root)

    async def upload_document(self, path: Path) -> UnitResult:
        """Discrete mode: create the document, then its version and body."""
        try:
            info = await self._read(path)
            await self._repository.import_document(info)
        except Exception as e:
            return await self._failed([self._relative(path)], e)

        if self._trace_enabled:
            logger.debug(f'Document "{info.relative_path}" has been imported.')
        return await self._completed(UnitResult.ok([info.relative_path]))

    async def upload_batch(self, batch: Batch) -> UnitResult:
        """Batch mode: all documents of the batch in one grouped request."""
        paths = [self._relative(p) for p in batch.documents]
        try:
            infos = [await self._read(p) for p in batch.documents]
            await self._repository.import_batch(infos)
        except Exception as e:
            return await self._failed(paths, e)

        if self._trace_enabled:
            if len(paths) == 1:
                logger.debug(f'Document "{paths[0]}" has been imported.')
            else:
                listing = os.linesep.join(paths)
                logger.debug(f"Documents have been imported:{os.linesep}{listing}")
        return await self._completed(UnitResult.ok(paths))

    async def _completed(self, result: UnitResult) -> UnitResult:
        if self._events:
            await self._events.emit("unit_complete", result)
        return result

    async def _failed(self, paths: List[str], error: Exception) -> UnitResult:
        message = innermost_message(error)
        if len(paths) == 1:
            logger.error(f'Failed to import "{paths[0]}": {message}', exc_info=error)
        else:
            logger.error(f"Failed to import batch of {len(paths)} documents ({', '.join(paths)}): {message}", exc_info=error)

        result = UnitResult.fail(paths, message)
        if self._events:
            await self._events.emit("unit_fail", result)
        return result
