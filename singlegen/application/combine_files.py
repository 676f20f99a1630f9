"""
Application use case for combining a directory tree into one file.
Runs either the sequential pipeline or the concurrent fan-out/fan-in pipeline.
"""

import contextlib
import logging
import queue
import time
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

from ..domain.entities import CombineResult, CombinerSettings
from ..domain.errors import OutputFileError, OutputWriteError
from ..infrastructure.file_discovery import FileContentReader, TreeWalker
from ..infrastructure.ignore_rules import IgnoreMatcher
from ..infrastructure.output_writer import OutputWriter


logger = logging.getLogger(__name__)

# Path queue end-of-input marker, one per worker
_NO_MORE_PATHS = object()
# Results queue marker pushed by each worker as it exits
_WORKER_DONE = object()


class CombineFilesUseCase:
    """Walks the source directory and writes every accepted file to one output."""

    def __init__(
        self,
        settings: Optional[CombinerSettings] = None,
        matcher: Optional[IgnoreMatcher] = None,
    ):
        """Initialize with settings and an optional prebuilt matcher for testing."""
        self.settings = settings or CombinerSettings()
        self._matcher = matcher

    @property
    def matcher(self) -> IgnoreMatcher:
        if self._matcher is None:
            self._matcher = IgnoreMatcher.load(self.settings.root_path)
        return self._matcher

    def execute(self) -> CombineResult:
        """Run the whole pipeline and return the statistics."""
        start_time = time.time()
        output_path = self.settings.output_path

        try:
            stream = open(output_path, "wb")
        except OSError as e:
            raise OutputFileError(f"Error creating output file: {e}") from e

        writer = OutputWriter(stream)
        written: List[str] = []
        try:
            self._write_all(writer, written)
        except BaseException:
            # Partial output may fail to flush again; report the pipeline error
            with contextlib.suppress(OSError):
                stream.close()
            raise

        try:
            stream.close()
        except OSError as e:
            raise OutputWriteError(f"Error writing output file {output_path}: {e}") from e

        result = CombineResult(
            output_file=output_path,
            source_directory=self.settings.directory,
            files_written=written,
            files_failed=writer.entries_failed,
            total_bytes=writer.bytes_written,
            execution_time_seconds=time.time() - start_time,
        )
        logger.info(result.get_summary())
        return result

    def _write_all(self, writer: OutputWriter, written: List[str]) -> None:
        reader = self._build_reader()
        walker = self._build_walker(reader)
        writer.write_preamble(self.settings.directory)

        if self.settings.sequential:
            logger.debug("Running sequential pipeline")
            self._run_sequential(walker, reader, writer, written)
        else:
            logger.debug("Running concurrent pipeline with %d workers", self.settings.workers)
            self._run_concurrent(walker, reader, writer, written)

    def preview(self) -> List[str]:
        """Relative paths that a run would write, in traversal order."""
        reader = self._build_reader()
        walker = self._build_walker(reader)

        paths = []
        for path in walker.walk():
            relative = reader.accepts(path)
            if relative is not None:
                paths.append(relative)
        return paths

    def _build_reader(self) -> FileContentReader:
        return FileContentReader(self.settings.root_path, self.matcher)

    def _build_walker(self, reader: FileContentReader) -> TreeWalker:
        return TreeWalker(
            self.settings.root_path,
            exclude=self.settings.output_path,
            prune=reader.is_ignored_directory,
        )

    def _run_sequential(
        self,
        walker: TreeWalker,
        reader: FileContentReader,
        writer: OutputWriter,
        written: List[str],
    ) -> None:
        for path in walker.walk():
            entry = reader.read(path)
            if entry is not None and writer.write_entry(entry):
                written.append(entry.path)

    def _run_concurrent(
        self,
        walker: TreeWalker,
        reader: FileContentReader,
        writer: OutputWriter,
        written: List[str],
    ) -> None:
        workers = self.settings.workers
        paths: queue.Queue = queue.Queue()
        results: queue.Queue = queue.Queue()

        with ThreadPoolExecutor(max_workers=workers + 1, thread_name_prefix="singlegen") as executor:
            producer = executor.submit(self._produce, walker, paths, workers)
            consumers = [
                executor.submit(self._work, reader, paths, results)
                for _ in range(workers)
            ]

            # Single writer: drain until every worker has reported completion
            remaining = workers
            while remaining:
                entry = results.get()
                if entry is _WORKER_DONE:
                    remaining -= 1
                    continue
                if writer.write_entry(entry):
                    written.append(entry.path)

            producer.result()
            for consumer in consumers:
                consumer.result()

    @staticmethod
    def _produce(walker: TreeWalker, paths: queue.Queue, workers: int) -> None:
        try:
            for path in walker.walk():
                paths.put(path)
        finally:
            for _ in range(workers):
                paths.put(_NO_MORE_PATHS)

    @staticmethod
    def _work(reader: FileContentReader, paths: queue.Queue, results: queue.Queue) -> None:
        try:
            while True:
                path = paths.get()
                if path is _NO_MORE_PATHS:
                    return
                entry = reader.read(path)
                if entry is not None:
                    results.put(entry)
        finally:
            results.put(_WORKER_DONE)
