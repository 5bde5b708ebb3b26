from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Optional, TYPE_CHECKING
from docuploader.models import UploadSettings
from docuploader.orchestrator.models import AgentResult, ImportResult, UnitResult
from docuploader.utils.events import EventEmitter
import asyncio
import logging
import traceback
logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from .core import DocumentImporter


class ProcessState(Enum):
    """State of import process."""
    PENDING = "pending"
    RUNNING = "running"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    FAILED = "failed"


class ImportProcess:
    """
    Process object for document imports with event-based progress tracking.

    Usage:
        process = importer.start_import(root, settings)
        process.on_agent_start(lambda folder: print(f"Agent: {folder}"))
        process.on_unit_fail(lambda result: print(f"Failed: {result.paths}"))
        process.on_finish(lambda result: print(f"Done: {result.imported_count}"))

        result = await process.wait()
    """
    def __init__(
        self,
        importer: 'DocumentImporter',
        root: Any,
        settings: UploadSettings
    ):
        self._importer = importer
        self._root = root
        self._settings = settings
        self._events = EventEmitter()
        self._state = ProcessState.PENDING
        self._task: Optional[asyncio.Task] = None
        self._cancelled = False
        self._result: Optional[ImportResult] = None
        self._error: Optional[Exception] = None

        # Stats
        self._stats = {
            "agents_total": 0,
            "agents_done": 0,
            "units_done": 0,
            "units_failed": 0,
            "documents_failed": 0,
        }
        self._stats_lock = asyncio.Lock()
        self._events.on("unit_complete", self._track_unit)
        self._events.on("unit_fail", self._track_unit)
        self._events.on("agent_complete", self._track_agent)

    @property
    def events(self) -> EventEmitter:
        return self._events

    # Event subscription methods
    def on_start(self, callback: Callable[[], None]):
        """Called when the import starts."""
        self._events.on("start", callback)

    def on_agent_start(self, callback: Callable[[Path], None]):
        """Called when an agent got its client and starts importing. Receives the folder."""
        self._events.on("agent_start", callback)

    def on_agent_complete(self, callback: Callable[[AgentResult], None]):
        """Called when an agent finishes. Receives AgentResult."""
        self._events.on("agent_complete", callback)

    def on_unit_complete(self, callback: Callable[[UnitResult], None]):
        """Called when a document or batch was imported. Receives UnitResult."""
        self._events.on("unit_complete", callback)

    def on_unit_fail(self, callback: Callable[[UnitResult], None]):
        """Called when a document or batch was rejected. Receives UnitResult."""
        self._events.on("unit_fail", callback)

    def on_progress(self, callback: Callable[[Dict[str, Any]], None]):
        """Called with overall progress stats. Receives stats dict."""
        self._events.on("progress", callback)

    def on_finish(self, callback: Callable[[ImportResult], None]):
        """Called when the import completes. Receives ImportResult."""
        self._events.on("finish", callback)

    def on_error(self, callback: Callable[[Exception], None]):
        """Called when a critical error occurs. Receives Exception."""
        self._events.on("error", callback)

    # Control methods
    async def start(self):
        """Start the import process (non-blocking)."""
        if self._state != ProcessState.PENDING:
            raise RuntimeError(f"Cannot start process in state: {self._state}")

        self._state = ProcessState.RUNNING
        self._task = asyncio.create_task(self._run())
        await self._events.emit("start")

    async def cancel(self, wait_in_flight: bool = False):
        """
        Cancel the import process.

        No new agents, portions or units are launched after this call. With
        ``wait_in_flight`` the units already uploading are allowed to finish;
        otherwise the running task is cancelled and in-flight requests are
        aborted by the HTTP client.
        """
        if self._state in (ProcessState.COMPLETED, ProcessState.CANCELLED, ProcessState.FAILED):
            return

        self._cancelled = True

        if self._task and not self._task.done():
            if wait_in_flight:
                await self._task
            else:
                self._task.cancel()
                try:
                    await self._task
                except asyncio.CancelledError:
                    pass

        self._state = ProcessState.CANCELLED

    async def wait(self) -> ImportResult:
        """Wait for the import process to complete and return result."""
        if self._state == ProcessState.PENDING:
            await self.start()

        if self._task:
            try:
                await self._task
            except asyncio.CancelledError:
                if not self._cancelled:
                    raise

        if self._result is None:
            self._result = ImportResult.fail("Process was cancelled or failed without result")

        return self._result

    # State properties
    @property
    def state(self) -> ProcessState:
        """Current state of the process."""
        return self._state

    @property
    def stats(self) -> Dict[str, Any]:
        """Current statistics (copy)."""
        return self._stats.copy()

    @property
    def result(self) -> Optional[ImportResult]:
        """Final result (None if not completed yet)."""
        return self._result

    @property
    def is_running(self) -> bool:
        return self._state == ProcessState.RUNNING

    @property
    def is_completed(self) -> bool:
        return self._state == ProcessState.COMPLETED

    @property
    def is_cancelled(self) -> bool:
        """True once cancel() was requested."""
        return self._cancelled

    async def set_agents_total(self, total: int):
        async with self._stats_lock:
            self._stats["agents_total"] = total
        await self._events.emit("progress", self.stats)

    # Internal methods
    async def _track_unit(self, result: UnitResult):
        async with self._stats_lock:
            self._stats["units_done"] += 1
            if not result.success:
                self._stats["units_failed"] += 1
                self._stats["documents_failed"] += len(result.paths)

    async def _track_agent(self, result: AgentResult):
        async with self._stats_lock:
            self._stats["agents_done"] += 1

    async def _run(self):
        """Internal method that runs the import."""
        try:
            self._result = await self._importer._import_internal(self._root, self._settings, self)

            if self._cancelled:
                self._state = ProcessState.CANCELLED
            elif self._result.success:
                self._state = ProcessState.COMPLETED
                await self._events.emit("finish", self._result)
            else:
                self._state = ProcessState.FAILED
                await self._events.emit("finish", self._result)

        except asyncio.CancelledError:
            self._state = ProcessState.CANCELLED
            raise
        except Exception as e:
            self._state = ProcessState.FAILED
            self._error = e
            logger.error(f"Import process failed: {e}", exc_info=True)
            await self._events.emit("error", e)

            self._result = ImportResult.fail(f"{str(e)}\n\n{traceback.format_exc()}")
