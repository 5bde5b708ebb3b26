"""Core orchestrator - dispatches agents and aggregates their results."""
import asyncio
import logging
import time
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Union

from ..errors import innermost_message
from ..models import UploadSettings
from ..protocols import IClientFactory, IDocumentRepository, IStoreClient
from .delivery import DeliveryStrategy
from .file_collector import FolderScanner
from .models import AgentResult, ImportResult, Portion, UnitResult
from .portions import BatchSplitter, PortionScheduler
from .process import ImportProcess
from .timing import Jitter, format_elapsed
from .unit_uploader import UnitUploader

logger = logging.getLogger(__name__)

RepositoryFactory = Callable[[IStoreClient], IDocumentRepository]
SleepFn = Callable[[float], Awaitable[None]]


class DocumentImporter:
    """
    Imports a folder tree into the document store.

    One agent per first-level subfolder, each with its own store client.
    Every agent splits its files into staggered portions; each portion is
    delivered sequentially or in parallel, per document or in batches.

    Usage:
        importer = DocumentImporter(ClientFactory(client_settings), make_repository)
        result = await importer.import_from("/data/docs", UploadSettings(portion_size=100))
        print(result.imported_count)
    """

    def __init__(
        self,
        client_factory: IClientFactory,
        repository_factory: RepositoryFactory,
        jitter: Optional[Jitter] = None,
        sleep: SleepFn = asyncio.sleep,
        scanner: Optional[FolderScanner] = None,
    ):
        """
        Initialize importer with dependencies.

        Args:
            client_factory: Creates one store client per agent
            repository_factory: Wraps an agent's client into a repository
            jitter: Random delay source (inject a seeded one in tests)
            sleep: Awaitable sleep used for every scheduled delay
            scanner: Folder scanner
        """
        self._client_factory = client_factory
        self._repository_factory = repository_factory
        self._jitter = jitter or Jitter()
        self._sleep = sleep
        self._scanner = scanner or FolderScanner()

    def start_import(self, root: Union[str, Path], settings: UploadSettings) -> ImportProcess:
        """
        Create an import process that can be started, monitored and cancelled.

        Example:
            process = importer.start_import(root, settings)
            process.on_unit_fail(lambda r: print(f"Failed: {r.paths}"))
            result = await process.wait()  # wait() starts automatically if needed
        """
        return ImportProcess(self, root, settings)

    async def import_from(self, root: Union[str, Path], settings: UploadSettings) -> ImportResult:
        """
        Import all documents under root.

        Never raises for upload problems: configuration and enumeration
        errors give a failed result, rejected documents are only logged.
        """
        return await self.start_import(root, settings).wait()

    async def _import_internal(
        self,
        root: Union[str, Path],
        settings: UploadSettings,
        process: ImportProcess,
    ) -> ImportResult:
        """Internal method that performs the actual import."""
        started = time.monotonic()
        try:
            logger.debug("Start importing documents")
            settings.validate()
            documents_root = self._scanner.resolve_root(root)
            logger.debug(f"Importing documents from folder {documents_root}:")

            subfolders = self._scanner.subfolders(documents_root)
            await process.set_agents_total(len(subfolders))

            tasks = [
                asyncio.create_task(self._run_agent(folder, documents_root, settings, process))
                for folder in subfolders
            ]
            try:
                agents = await asyncio.gather(*tasks)
            except BaseException:
                await self._cancel_remaining_tasks(tasks)
                raise

        except Exception as e:
            elapsed = time.monotonic() - started
            message = innermost_message(e)
            logger.error(f"Import failed: {message}", exc_info=True)
            return ImportResult.fail(message, elapsed)

        elapsed = time.monotonic() - started
        result = ImportResult.ok(list(agents), elapsed)
        logger.debug(f"End importing documents in {format_elapsed(elapsed)} time")
        logger.debug(f"Total imported documents count is about: {result.imported_count}")
        if result.failed_count:
            logger.warning(f"{result.failed_count} document(s) were rejected, see errors above")
        return result

    async def _run_agent(
        self,
        folder: Path,
        root: Path,
        settings: UploadSettings,
        process: ImportProcess,
    ) -> AgentResult:
        """One agent: wait, connect, import the folder's files."""
        result = AgentResult(folder=folder)

        await self._sleep(self._jitter(settings.agent_start_timeout))
        if process.is_cancelled:
            result.connected = False
            result.error = "Cancelled before start"
            await process.events.emit("agent_complete", result)
            return result

        try:
            client = await self._client_factory.create()
        except Exception as e:
            logger.error(f"Client factory failed: {innermost_message(e)}")
            client = None
        if client is None:
            logger.error(f'Client for document store is not created, skipping folder "{folder}"')
            result.connected = False
            result.error = "Client for document store is not created"
            await process.events.emit("agent_complete", result)
            return result

        logger.debug(f'Agent for folder "{folder}" started')
        await process.events.emit("agent_start", folder)
        try:
            files = self._scanner.collect_files(folder)
            repository = self._repository_factory(client)
            unit_results = await self._import_documents(repository, files, root, settings, process)
        finally:
            await client.aclose()

        if process.is_cancelled:
            # only documents of launched units count once the run is cancelled
            result.attempted = sum(len(r.paths) for r in unit_results)
        else:
            result.attempted = len(files)
        result.failed = sum(len(r.paths) for r in unit_results if not r.success)
        await process.events.emit("agent_complete", result)
        return result

    async def _import_documents(
        self,
        repository: IDocumentRepository,
        files: List[Path],
        root: Path,
        settings: UploadSettings,
        process: ImportProcess,
    ) -> List[UnitResult]:
        """Launch every portion concurrently and collect all unit results."""
        portions = PortionScheduler(settings).split(files)
        uploader = UnitUploader(repository, root, settings.trace_enabled, process.events)
        delivery = DeliveryStrategy.for_order(settings.upload_order, self._jitter, self._sleep)
        splitter = BatchSplitter(settings)

        tasks = [
            asyncio.create_task(
                self._run_portion(portion, splitter, delivery, uploader, settings, process)
            )
            for portion in portions
        ]
        results: List[UnitResult] = []
        for portion_results in await asyncio.gather(*tasks):
            results.extend(portion_results)
        return results

    async def _run_portion(
        self,
        portion: Portion,
        splitter: BatchSplitter,
        delivery: DeliveryStrategy,
        uploader: UnitUploader,
        settings: UploadSettings,
        process: ImportProcess,
    ) -> List[UnitResult]:
        """Wait for the portion's start offset, then deliver its units."""
        offset = self._jitter.portion_offset(portion.index, settings.upload_portions_interval)
        await self._sleep(offset)
        if process.is_cancelled:
            return []

        units = splitter.split(portion)
        logger.debug(f"Portion {portion.index}: {len(portion)} document(s) in {len(units)} unit(s)")
        return await delivery.deliver(units, uploader.upload, settings, lambda: process.is_cancelled)

    async def _cancel_remaining_tasks(self, tasks: List[asyncio.Task]) -> None:
        """Cancel all remaining tasks gracefully."""
        for task in tasks:
            if not task.done():
                task.cancel()

        await asyncio.gather(*tasks, return_exceptions=True)
