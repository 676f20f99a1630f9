"""End-to-end pipeline tests for CombineFilesUseCase.

Runs both the sequential and the concurrent pipelines over real temporary
trees and checks which entries land in the combined output.
"""

from __future__ import annotations

import os
import re
import tempfile
import threading
import unittest
from pathlib import Path
from unittest import mock

from singlegen.application.combine_files import CombineFilesUseCase
from singlegen.domain.entities import CombinerSettings
from singlegen.domain.errors import OutputFileError, OutputWriteError, TraversalError
from singlegen.infrastructure.file_discovery import FileContentReader
from singlegen.infrastructure.ignore_rules import IgnoreMatcher


HEADER_RE = re.compile(r"^### File: (.*)$", re.MULTILINE)


def _make_tree(root: Path, files: dict) -> None:
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, str):
            content = content.encode("utf-8")
        path.write_bytes(content)


def _entry_blocks(text: str) -> list:
    """Per-entry chunks of an output file, without the preamble."""
    return text.split("\n### File: ")[1:]


class CombineFilesTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.output = self.root / "combined_output.txt"

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def run_combine(self, **settings) -> str:
        settings.setdefault("directory", str(self.root))
        settings.setdefault("output", str(self.output))
        self.result = CombineFilesUseCase(CombinerSettings(**settings)).execute()
        return Path(settings["output"]).read_text(encoding="utf-8")

    def headers(self, text: str) -> list:
        return [
            Path(header).relative_to(self.root).as_posix()
            for header in HEADER_RE.findall(text)
        ]


class ScenarioTests(CombineFilesTestCase):
    def setUp(self) -> None:
        super().setUp()
        _make_tree(self.root, {
            "a.txt": "0123456789",
            ".gitignore": "b.txt\n",
            "b.txt": "ignored",
            "sub/c.txt": "see",
        })

    def test_gitignore_scenario_concurrent(self) -> None:
        text = self.run_combine()

        self.assertEqual(sorted(self.headers(text)), ["a.txt", "sub/c.txt"])
        self.assertIn(
            f"### File: {os.path.join(str(self.root), 'a.txt')}\n### Size: 10 bytes\n",
            text,
        )
        self.assertNotIn("combined_output.txt", "".join(HEADER_RE.findall(text)))
        self.assertNotIn(".gitignore", "".join(HEADER_RE.findall(text)))

    def test_gitignore_scenario_sequential_keeps_traversal_order(self) -> None:
        text = self.run_combine(sequential=True)

        self.assertEqual(self.headers(text), ["a.txt", "sub/c.txt"])
        self.assertIn("\n0123456789\n", text)
        self.assertIn("\nsee\n", text)

    def test_result_statistics(self) -> None:
        self.run_combine(workers=2)

        self.assertEqual(self.result.total_files, 2)
        self.assertEqual(self.result.files_failed, 0)
        self.assertEqual(self.result.total_bytes, 13)
        self.assertTrue(self.output.exists())
        self.assertIn("Combined 2 files", self.result.get_summary())

    def test_worker_count_does_not_change_entry_set(self) -> None:
        _make_tree(self.root, {f"many/file_{i:02d}.txt": f"content {i}\n" for i in range(40)})

        single = self.run_combine(workers=1)
        several = self.run_combine(workers=8)
        sequential = self.run_combine(sequential=True)

        self.assertEqual(len(_entry_blocks(single)), 42)
        self.assertEqual(sorted(_entry_blocks(single)), sorted(_entry_blocks(several)))
        self.assertEqual(sorted(_entry_blocks(single)), sorted(_entry_blocks(sequential)))

    def test_rerun_produces_same_entries(self) -> None:
        first = self.run_combine()
        second = self.run_combine()

        self.assertEqual(sorted(_entry_blocks(first)), sorted(_entry_blocks(second)))


class IgnoreLayeringTests(CombineFilesTestCase):
    def test_singlegenignore_excludes_logs_missing_from_gitignore(self) -> None:
        _make_tree(self.root, {
            ".gitignore": "*.tmp\n",
            ".singlegenignore": "*.log\n",
            "debug.log": "noise",
            "main.py": "print()\n",
        })

        text = self.run_combine()

        self.assertEqual(self.headers(text), ["main.py"])

    def test_ignored_directory_contents_never_appear(self) -> None:
        _make_tree(self.root, {
            ".gitignore": "vendor/\n!vendor/keep.txt\n",
            "vendor/keep.txt": "not reachable",
            "vendor/deep/lib.js": "lib",
            "src/app.js": "app",
        })

        text = self.run_combine(sequential=True)

        self.assertEqual(self.headers(text), ["src/app.js"])

    def test_hardcoded_exclusions_apply_without_pattern_files(self) -> None:
        _make_tree(self.root, {
            ".git/HEAD": "ref: refs/heads/main\n",
            ".DS_Store": b"\x00\x00",
            "nested/.DS_Store": b"\x00",
            "readme.md": "# hi\n",
        })

        text = self.run_combine()

        self.assertEqual(self.headers(text), ["readme.md"])

    def test_empty_tree_writes_only_preamble(self) -> None:
        _make_tree(self.root, {".gitignore": "*.o\n", ".singlegenignore": "*.log\n"})

        text = self.run_combine()

        self.assertTrue(text.startswith("# Combined File Contents\n# Generated: "))
        self.assertTrue(text.endswith(f"# Source Directory: {self.root}\n\n"))
        self.assertNotIn("### File:", text)


class FailureTests(CombineFilesTestCase):
    def test_per_file_error_is_logged_and_run_continues(self) -> None:
        _make_tree(self.root, {"a.txt": "a"})
        os.symlink(self.root / "missing-target", self.root / "dangling")

        with self.assertLogs("singlegen", level="ERROR") as logs:
            text = self.run_combine(workers=3)

        self.assertEqual(self.headers(text), ["a.txt"])
        self.assertEqual(self.result.files_failed, 1)
        self.assertTrue(any("dangling" in line for line in logs.output))

    @unittest.skipUnless(hasattr(os, "mkfifo"), "named pipes not supported")
    def test_named_pipe_in_tree_does_not_block_run(self) -> None:
        _make_tree(self.root, {"a.txt": "a"})
        os.mkfifo(self.root / "pipe")
        outcome = []

        def run() -> None:
            outcome.append(self.run_combine(sequential=True))

        thread = threading.Thread(target=run, daemon=True)
        thread.start()
        thread.join(timeout=10)

        self.assertFalse(thread.is_alive(), "run blocked on a named pipe")
        self.assertEqual(self.headers(outcome[0]), ["a.txt"])

    @unittest.skipUnless(os.path.exists("/dev/full"), "requires /dev/full")
    def test_unwritable_output_raises_write_error(self) -> None:
        _make_tree(self.root, {"a.txt": "a"})

        for sequential in (True, False):
            with self.subTest(sequential=sequential):
                with self.assertRaises(OutputWriteError):
                    self.run_combine(output="/dev/full", sequential=sequential)

    def test_close_failure_raises_write_error(self) -> None:
        _make_tree(self.root, {"a.txt": "a"})
        stream = mock.MagicMock()
        stream.close.side_effect = OSError(28, "No space left on device")
        settings = CombinerSettings(directory=str(self.root), output=str(self.output), sequential=True)

        with mock.patch("singlegen.application.combine_files.open", create=True, return_value=stream):
            with self.assertRaises(OutputWriteError) as ctx:
                CombineFilesUseCase(settings, matcher=IgnoreMatcher()).execute()

        self.assertIn("No space left on device", str(ctx.exception))

    def test_output_in_missing_directory_is_fatal(self) -> None:
        with self.assertRaises(OutputFileError):
            self.run_combine(output=str(self.root / "no" / "such" / "dir" / "out.txt"))

    def test_missing_source_directory_is_fatal_concurrent(self) -> None:
        with self.assertRaises(TraversalError):
            self.run_combine(directory=str(self.root / "missing"))

    def test_missing_source_directory_is_fatal_sequential(self) -> None:
        with self.assertRaises(TraversalError):
            self.run_combine(directory=str(self.root / "missing"), sequential=True)


class PreviewTests(CombineFilesTestCase):
    def test_preview_lists_accepted_files_without_writing(self) -> None:
        _make_tree(self.root, {
            ".gitignore": "b.txt\n",
            "a.txt": "a",
            "b.txt": "b",
            "sub/c.txt": "c",
        })
        settings = CombinerSettings(directory=str(self.root), output=str(self.output))

        paths = CombineFilesUseCase(settings).preview()

        self.assertEqual(paths, ["a.txt", "sub/c.txt"])
        self.assertFalse(self.output.exists())

    def test_preview_does_not_read_file_contents(self) -> None:
        _make_tree(self.root, {"a.txt": "a", "sub/c.txt": "c"})
        settings = CombinerSettings(directory=str(self.root), output=str(self.output))

        with mock.patch.object(FileContentReader, "read", side_effect=AssertionError("content read")):
            paths = CombineFilesUseCase(settings).preview()

        self.assertEqual(paths, ["a.txt", "sub/c.txt"])


if __name__ == "__main__":
    unittest.main()
