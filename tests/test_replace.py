import asyncio
import os
import pickle
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from symdedup.errors import ReplacementError, ReplaceStep
from symdedup.replace import ReplaceStrategy, replace_with_symlink
from symdedup.utils.processor import Processor

from .test_utils import write_files


class ReplaceWithSymlinkTest(unittest.TestCase):
    def setUp(self):
        self._tmpdir = tempfile.TemporaryDirectory()
        self.root = Path(self._tmpdir.name).resolve()
        write_files(self.root, {'src/a.txt': b'abcd', 'dst/a.txt': b'abcd'})
        self.source = self.root / 'src' / 'a.txt'
        self.destination = self.root / 'dst' / 'a.txt'

    def tearDown(self):
        self._tmpdir.cleanup()

    def assertReplaced(self):
        self.assertTrue(self.destination.is_symlink())
        self.assertEqual(self.source, Path(os.readlink(self.destination)))
        self.assertEqual(self.source, self.destination.resolve())
        self.assertFalse(self.source.is_symlink())
        self.assertEqual(b'abcd', self.source.read_bytes())

    def test_replace_atomic(self):
        replace_with_symlink(self.source, self.destination)

        self.assertReplaced()
        # No temporary link is left next to the destination
        self.assertEqual(['a.txt'], os.listdir(self.destination.parent))

    def test_replace_unlink(self):
        replace_with_symlink(self.source, self.destination, ReplaceStrategy.UNLINK)

        self.assertReplaced()

    def test_missing_source(self):
        self.source.unlink()

        with self.assertRaises(ReplacementError) as cm:
            replace_with_symlink(self.source, self.destination)

        self.assertEqual(ReplaceStep.CHECK_SOURCE, cm.exception.step)
        self.assertIn(str(self.source), str(cm.exception))
        self.assertEqual(b'abcd', self.destination.read_bytes())

    def test_destination_deleted_concurrently(self):
        """A destination removed after cataloguing fails the replacement and leaves the source alone."""
        self.destination.unlink()

        for strategy in ReplaceStrategy:
            with self.assertRaises(ReplacementError) as cm:
                replace_with_symlink(self.source, self.destination, strategy)

            self.assertEqual(ReplaceStep.CHECK_DESTINATION, cm.exception.step)
            self.assertFalse(os.path.lexists(self.destination))
            self.assertEqual(b'abcd', self.source.read_bytes())
            self.assertFalse(self.source.is_symlink())

    def test_destination_already_symlink(self):
        replace_with_symlink(self.source, self.destination)

        with self.assertRaises(ReplacementError) as cm:
            replace_with_symlink(self.source, self.destination)

        self.assertEqual(ReplaceStep.CHECK_DESTINATION, cm.exception.step)
        self.assertReplaced()

    def test_refuses_same_file(self):
        for strategy in ReplaceStrategy:
            with self.assertRaises(ReplacementError) as cm:
                replace_with_symlink(self.source, self.source, strategy)

            self.assertEqual(ReplaceStep.CHECK_DESTINATION, cm.exception.step)
            self.assertFalse(self.source.is_symlink())
            self.assertEqual(b'abcd', self.source.read_bytes())

    def test_refuses_hard_link(self):
        self.destination.unlink()
        os.link(self.source, self.destination)

        with self.assertRaises(ReplacementError):
            replace_with_symlink(self.source, self.destination)

        self.assertFalse(self.destination.is_symlink())

    def test_atomic_rename_failure_keeps_destination(self):
        with mock.patch('symdedup.replace.os.replace', side_effect=OSError(18, 'Invalid cross-device link')):
            with self.assertRaises(ReplacementError) as cm:
                replace_with_symlink(self.source, self.destination, ReplaceStrategy.ATOMIC)

        self.assertEqual(ReplaceStep.REMOVE, cm.exception.step)
        self.assertFalse(self.destination.is_symlink())
        self.assertEqual(b'abcd', self.destination.read_bytes())
        self.assertEqual(['a.txt'], os.listdir(self.destination.parent))

    def test_unlink_link_failure_loses_destination(self):
        with mock.patch.object(Path, 'symlink_to', side_effect=OSError(28, 'No space left on device')):
            with self.assertRaises(ReplacementError) as cm:
                replace_with_symlink(self.source, self.destination, ReplaceStrategy.UNLINK)

        self.assertEqual(ReplaceStep.LINK, cm.exception.step)
        self.assertIn('destination file was removed', str(cm.exception))
        self.assertFalse(os.path.lexists(self.destination))

    def test_error_survives_pickling(self):
        error = ReplacementError(ReplaceStep.LINK, 'failed to create symlink')

        restored = pickle.loads(pickle.dumps(error))

        self.assertEqual(ReplaceStep.LINK, restored.step)
        self.assertEqual('failed to create symlink', str(restored))

    def test_replace_in_processor(self):
        with Processor(2) as processor:
            asyncio.run(processor.replace_with_symlink(self.source, self.destination))

        self.assertReplaced()

    def test_processor_propagates_replacement_error(self):
        self.destination.unlink()

        async def replace():
            await processor.replace_with_symlink(self.source, self.destination)

        with Processor(2) as processor:
            with self.assertRaises(ReplacementError) as cm:
                asyncio.run(replace())

        self.assertEqual(ReplaceStep.CHECK_DESTINATION, cm.exception.step)


if __name__ == '__main__':
    unittest.main()
