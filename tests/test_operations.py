"""
Tests for burying, unburying and the other graveyard operations.
"""

import io
import os
import sys
import errno
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from filetoolkit import operations
from filetoolkit.paths import join_absolute
from tombstonelib import (
    BURIED,
    DELETED,
    SKIPPED,
    UNLINKED,
    InvalidTargetError,
    NoGravesError,
    Record,
    RelocationError,
    TargetNotFoundError,
    bury,
    decompose,
    ensure_graveyard,
    graveyard_subdir,
    seance,
    unbury
)
from tombstonelib.record import RECORD
from filetoolkit.utils import is_windows


def always(answer):
    prompts = []

    def confirm(prompt):
        prompts.append(prompt)
        return answer

    confirm.prompts = prompts
    return confirm


class OperationsTestBase(unittest.TestCase):

    def setUp(self):
        self.test_dir = Path(tempfile.mkdtemp()).resolve()
        self.work = self.test_dir / 'work'
        self.work.mkdir()
        self.graveyard = self.test_dir / 'graveyard'
        ensure_graveyard(self.graveyard)
        self.record = Record(self.graveyard)

    def tearDown(self):
        shutil.rmtree(self.test_dir, ignore_errors=True)

    def make_file(self, name, content='content'):
        path = self.work / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        return path

    def bury(self, target, **kwargs):
        return bury(target, self.graveyard, self.record, cwd=self.work, **kwargs)

    def unbury(self, graves=(), **kwargs):
        return unbury(graves, self.record, self.graveyard, cwd=self.work, **kwargs)

    def rows(self):
        with self.record.open() as reader:
            return list(reader)


class TestBury(OperationsTestBase):

    def test_bury_file(self):
        source = self.make_file('notes.txt', 'hello')
        result = self.bury('notes.txt')

        expected = join_absolute(self.graveyard, source)
        self.assertEqual(result.outcome, BURIED)
        self.assertEqual(result.destination, expected)
        self.assertFalse(source.exists())
        self.assertEqual(expected.read_text(), 'hello')

        rows = self.rows()
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0].original, source)
        self.assertEqual(rows[0].destination, expected)

    def test_bury_directory_without_rename(self):
        self.make_file('tree/a/leaf.txt', 'leaf')
        result = self.bury('tree', allow_rename=False)
        self.assertEqual((result.destination / 'a' / 'leaf.txt').read_text(), 'leaf')
        self.assertFalse((self.work / 'tree').exists())

    def test_name_collision_gets_suffix(self):
        self.make_file('f.txt', 'first')
        first = self.bury('f.txt')
        self.make_file('f.txt', 'second')
        second = self.bury('f.txt')

        self.assertEqual(second.destination, first.destination.with_name('f.txt~1'))
        self.assertEqual(first.destination.read_text(), 'first')
        self.assertEqual(second.destination.read_text(), 'second')
        self.assertEqual(len(self.rows()), 2)

    def test_missing_target(self):
        with self.assertRaises(TargetNotFoundError) as ctx:
            self.bury('ghost.txt')
        self.assertEqual(str(ctx.exception), "Cannot remove ghost.txt: no such file or directory")

    def test_cannot_bury_record(self):
        with self.assertRaises(InvalidTargetError):
            self.bury(self.graveyard / RECORD)

    def test_cannot_bury_graveyard_ancestor(self):
        with self.assertRaises(InvalidTargetError):
            self.bury(self.test_dir)
        self.assertTrue(self.graveyard.exists())

    def test_already_in_graveyard_unlinked_on_confirm(self):
        self.make_file('f.txt')
        grave = self.bury('f.txt').destination
        confirm = always(True)

        result = self.bury(grave, confirm=confirm)
        self.assertEqual(result.outcome, UNLINKED)
        self.assertFalse(grave.exists())
        self.assertIn("is already in the graveyard.\nPermanently unlink it?", confirm.prompts[0])

    def test_already_in_graveyard_kept_on_decline(self):
        self.make_file('f.txt')
        grave = self.bury('f.txt').destination

        result = self.bury(grave, confirm=always(False))
        self.assertEqual(result.outcome, SKIPPED)
        self.assertTrue(grave.exists())

    def test_inspect_decline_leaves_target(self):
        source = self.make_file('f.txt', 'line one\nline two\n')
        stream = io.StringIO()
        confirm = always(False)

        result = self.bury('f.txt', inspect=True, confirm=confirm, stream=stream)
        self.assertEqual(result.outcome, SKIPPED)
        self.assertTrue(source.exists())
        output = stream.getvalue()
        self.assertIn("f.txt: file, 18 B", output)
        self.assertIn("> line one", output)
        self.assertEqual(confirm.prompts, ["Send f.txt to the graveyard?"])

    def test_inspect_directory(self):
        for index in range(8):
            self.make_file(f"tree/f{index}.txt", 'x')
        stream = io.StringIO()

        result = self.bury('tree', inspect=True, confirm=always(True), stream=stream)
        self.assertEqual(result.outcome, BURIED)
        lines = stream.getvalue().splitlines()
        self.assertEqual(lines[0], "tree: directory, 8 B including:")
        self.assertEqual(len(lines), 7)

    def test_declined_big_file_is_deleted(self):
        source = self.make_file('big.bin', 'x' * 100)
        with mock.patch.object(operations, 'BIG_FILE_THRESHOLD', 10):
            result = self.bury('big.bin', allow_rename=False, confirm=always(False))
        self.assertEqual(result.outcome, DELETED)
        self.assertFalse(source.exists())
        self.assertEqual(self.rows(), [])

    @unittest.skipIf(is_windows(), "Symlinks need privileges on Windows")
    def test_bury_symlink_buries_link(self):
        target = self.make_file('target.txt')
        os.symlink(target, self.work / 'link')

        result = self.bury('link')
        self.assertTrue(result.destination.is_symlink())
        self.assertTrue(target.exists())


class TestUnbury(OperationsTestBase):

    def test_unbury_last(self):
        source = self.make_file('f.txt', 'hello')
        grave = self.bury('f.txt').destination

        restored = self.unbury()
        self.assertEqual(restored, [(grave, source)])
        self.assertEqual(source.read_text(), 'hello')
        self.assertFalse(grave.exists())
        self.assertEqual(self.rows(), [])

    def test_unbury_picks_most_recent(self):
        self.make_file('a.txt')
        self.make_file('b.txt')
        self.bury('a.txt')
        self.bury('b.txt')

        self.unbury()
        self.assertTrue((self.work / 'b.txt').exists())
        self.assertFalse((self.work / 'a.txt').exists())

    def test_bury_unbury_twice(self):
        source = self.make_file('f.txt', 'hello')
        for _ in range(2):
            self.bury('f.txt')
            self.assertFalse(source.exists())
            self.unbury()
            self.assertEqual(source.read_text(), 'hello')
        self.assertEqual(self.rows(), [])

    def test_unbury_explicit_grave(self):
        self.make_file('a.txt', 'a')
        self.make_file('b.txt', 'b')
        grave_a = self.bury('a.txt').destination
        self.bury('b.txt')

        self.unbury([grave_a])
        self.assertEqual((self.work / 'a.txt').read_text(), 'a')
        self.assertFalse((self.work / 'b.txt').exists())
        self.assertEqual(len(self.rows()), 1)

    def test_unbury_onto_existing_file_renames(self):
        source = self.make_file('f.txt', 'buried')
        self.bury('f.txt')
        self.make_file('f.txt', 'new')

        restored = self.unbury()
        self.assertEqual(restored[0][1], source.with_name('f.txt~1'))
        self.assertEqual(source.read_text(), 'new')
        self.assertEqual(source.with_name('f.txt~1').read_text(), 'buried')

    def test_unbury_directory(self):
        self.make_file('tree/leaf.txt', 'leaf')
        self.bury('tree', allow_rename=False)
        self.unbury(allow_rename=False)
        self.assertEqual((self.work / 'tree' / 'leaf.txt').read_text(), 'leaf')

    def test_unbury_seance(self):
        self.make_file('a.txt')
        self.make_file('sub/b.txt')
        elsewhere = self.test_dir / 'elsewhere'
        elsewhere.mkdir()
        (elsewhere / 'c.txt').write_text('c')
        self.bury('a.txt')
        self.bury('sub/b.txt')
        bury(elsewhere / 'c.txt', self.graveyard, self.record, cwd=elsewhere)

        restored = self.unbury(seance=True)
        self.assertEqual(len(restored), 2)
        self.assertTrue((self.work / 'a.txt').exists())
        self.assertTrue((self.work / 'sub' / 'b.txt').exists())
        self.assertFalse((elsewhere / 'c.txt').exists())
        self.assertEqual(len(self.rows()), 1)

    def test_unbury_empty_graveyard(self):
        with self.assertRaises(NoGravesError):
            self.unbury()

    def test_unbury_grave_removed_by_hand(self):
        self.make_file('a.txt')
        self.make_file('b.txt')
        self.bury('a.txt')
        grave_b = self.bury('b.txt').destination
        grave_b.unlink()

        self.unbury()
        self.assertTrue((self.work / 'a.txt').exists())
        self.assertEqual(self.rows(), [])


class TestSeanceAndDecompose(OperationsTestBase):

    def test_seance_lists_graves_under_cwd(self):
        self.make_file('a.txt')
        self.make_file('sub/b.txt')
        self.bury('a.txt')
        self.bury('sub/b.txt')

        with seance(self.record, self.graveyard, cwd=self.work / 'sub') as reader:
            graves = list(reader)
        self.assertEqual([g.original for g in graves], [self.work / 'sub' / 'b.txt'])

    def test_graveyard_subdir(self):
        self.assertEqual(graveyard_subdir(self.graveyard, self.work),
                         join_absolute(self.graveyard, self.work))

    def test_decompose_declined(self):
        self.assertFalse(decompose(self.graveyard, confirm=always(False)))
        self.assertTrue(self.graveyard.exists())

    def test_decompose(self):
        self.make_file('a.txt')
        self.bury('a.txt')
        confirm = always(True)
        self.assertTrue(decompose(self.graveyard, confirm=confirm))
        self.assertFalse(self.graveyard.exists())
        self.assertEqual(confirm.prompts, ["Really unlink the entire graveyard?"])

    def test_decompose_force_never_asks(self):
        self.assertTrue(decompose(self.graveyard, confirm=always(False), force=True))
        self.assertFalse(self.graveyard.exists())

    @unittest.skipIf(is_windows(), "POSIX permission bits")
    def test_ensure_graveyard_is_private(self):
        graveyard = ensure_graveyard(self.test_dir / 'new' / 'graveyard')
        self.assertEqual(os.stat(graveyard).st_mode & 0o777, 0o700)


class TestPathEdgeCases(OperationsTestBase):
    """Names and graveyard locations that need care when recorded."""

    @unittest.skipUnless(sys.platform.startswith('linux') and sys.getfilesystemencoding() == 'utf-8',
                         "Needs a filesystem that accepts arbitrary bytes in names")
    def test_non_utf8_name_round_trips(self):
        name = os.fsdecode(b'bad\xffname.txt')
        source = self.make_file(name, 'bytes')

        result = self.bury(name)
        self.assertEqual(result.outcome, BURIED)
        self.assertIn(b'bad\xffname.txt\n', (self.graveyard / RECORD).read_bytes())
        self.assertEqual(self.rows()[0].original, source)

        restored = self.unbury()
        self.assertEqual(restored, [(result.destination, source)])
        self.assertEqual(source.read_text(), 'bytes')
        self.assertEqual(self.rows(), [])

    def test_relative_graveyard_records_absolute_paths(self):
        old_cwd = os.getcwd()
        os.chdir(self.test_dir)
        self.addCleanup(os.chdir, old_cwd)
        source = self.make_file('f.txt', 'hello')

        relative = Path('graveyard')
        result = bury('work/f.txt', relative, Record(relative))
        self.assertTrue(result.destination.is_absolute())
        self.assertEqual(result.destination, join_absolute(self.graveyard, source))
        self.assertTrue(self.rows()[0].destination.is_absolute())

        os.chdir(self.work)
        self.assertEqual(self.unbury(), [(result.destination, source)])
        self.assertEqual(source.read_text(), 'hello')

    def test_ensure_graveyard_created_concurrently(self):
        # Simulate losing the race: the directory appears after the check
        with mock.patch.object(Path, 'exists', return_value=False):
            self.assertEqual(ensure_graveyard(self.graveyard), self.graveyard)
        self.assertTrue(self.graveyard.is_dir())

    def test_ensure_graveyard_returns_absolute_path(self):
        old_cwd = os.getcwd()
        os.chdir(self.test_dir)
        self.addCleanup(os.chdir, old_cwd)
        self.assertEqual(ensure_graveyard('graveyard'), self.graveyard)


class TestFailures(OperationsTestBase):
    """Cleanup and bookkeeping when a move breaks halfway."""

    def failing_copy(self, fail_on):
        """Patch copy_file so that call number ``fail_on`` raises EIO."""
        real_copy = operations.copy_file
        calls = []

        def copy(*args, **kwargs):
            calls.append(args[0])
            if len(calls) == fail_on:
                raise OSError(errno.EIO, 'Input/output error')
            return real_copy(*args, **kwargs)

        return mock.patch.object(operations, 'copy_file', side_effect=copy)

    def test_failed_bury_removes_partial_grave(self):
        self.make_file('tree/a.txt', 'a')
        self.make_file('tree/b.txt', 'b')
        grave = join_absolute(self.graveyard, self.work / 'tree')

        with self.failing_copy(2), self.assertRaises(RelocationError) as ctx:
            self.bury('tree', allow_rename=False)

        self.assertTrue(str(ctx.exception).startswith("Failed to bury file"))
        self.assertEqual(ctx.exception.errno, errno.EIO)
        self.assertFalse(os.path.lexists(grave))
        self.assertEqual((self.work / 'tree' / 'a.txt').read_text(), 'a')
        self.assertEqual((self.work / 'tree' / 'b.txt').read_text(), 'b')
        self.assertEqual(self.rows(), [])

    def test_partial_unbury_prunes_only_restored_rows(self):
        self.make_file('a.txt', 'a')
        self.make_file('b.txt', 'b')
        grave_a = self.bury('a.txt').destination
        grave_b = self.bury('b.txt').destination

        with self.failing_copy(2), self.assertRaises(RelocationError) as ctx:
            self.unbury([grave_a, grave_b], allow_rename=False)

        self.assertTrue(str(ctx.exception).startswith(
            f"Unbury failed: couldn't copy files from {grave_b} to {self.work / 'b.txt'}"))
        self.assertEqual((self.work / 'a.txt').read_text(), 'a')
        self.assertFalse((self.work / 'b.txt').exists())
        self.assertTrue(grave_b.exists())
        self.assertEqual([grave.destination for grave in self.rows()], [grave_b])

    def test_declined_big_file_during_unbury_is_reported_as_deleted(self):
        self.make_file('big.bin', 'x' * 100)
        grave = self.bury('big.bin', force=True).destination
        confirm = always(False)

        with mock.patch.object(operations, 'BIG_FILE_THRESHOLD', 10), \
                self.assertLogs('tombstonelib', level='WARNING') as logs:
            restored = self.unbury(allow_rename=False, confirm=confirm)

        self.assertEqual(restored, [])
        self.assertFalse(grave.exists())
        self.assertFalse((self.work / 'big.bin').exists())
        self.assertEqual(self.rows(), [])
        self.assertIn(f"Copy it to {self.work} instead of deleting it permanently?", confirm.prompts[0])
        self.assertIn("Permanently deleted", logs.output[0])


if __name__ == '__main__':
    unittest.main()
