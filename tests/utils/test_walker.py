import tempfile
import unittest
from pathlib import Path

from symdedup.utils.walker import FileContext, walk

from ..test_utils import write_files, failing_iterdir


class FileContextTest(unittest.TestCase):
    def test_name_property_read_only(self):
        context = FileContext(None, "test.txt")
        self.assertEqual("test.txt", context.name)

        with self.assertRaises(AttributeError):
            context.name = "other.txt"

    def test_parent_property_raises_on_none(self):
        context = FileContext(None, "root")

        with self.assertRaises(LookupError) as cm:
            _ = context.parent

        self.assertIn("no parent", str(cm.exception))

    def test_stat_lazy_loading(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            test_file = Path(tmpdir) / "test.txt"
            test_file.write_text("content")

            context = FileContext(None, "test.txt", test_file)
            self.assertIsNone(context._stat)

            st = context.stat
            self.assertEqual(7, st.st_size)
            self.assertIs(st, context.stat)

    def test_stat_does_not_follow_symlinks(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            target = Path(tmpdir) / "target"
            target.mkdir()
            link = Path(tmpdir) / "link"
            link.symlink_to(target)

            context = FileContext(None, "link", link)

            self.assertFalse(context.is_dir())
            self.assertFalse(context.is_file())

    def test_stat_raises_when_unavailable(self):
        context = FileContext(None, "test")

        with self.assertRaises(LookupError):
            _ = context.stat

    def test_relative_path_nested(self):
        root = FileContext(None, None)
        dir1 = FileContext(root, "dir1")
        file_ctx = FileContext(FileContext(dir1, "dir2"), "file.txt")

        self.assertIsNone(root.relative_path)
        self.assertEqual(Path("dir1/dir2/file.txt"), file_ctx.relative_path)


class WalkTest(unittest.TestCase):
    def test_walk_yields_all_entries(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            write_files(root, {'a.txt': 'a', 'd/b.txt': 'b', 'd/e/c.txt': 'c'})

            relative_paths = {context.relative_path for _, context in walk(root, FileContext(None, None, root))}

            self.assertEqual(
                {Path('a.txt'), Path('d'), Path('d/b.txt'), Path('d/e'), Path('d/e/c.txt')}, relative_paths)

    def test_send_false_skips_directory(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            write_files(root, {'skip/inner.txt': 'x', 'keep/inner.txt': 'y'})

            gen = walk(root, FileContext(None, None, root))
            seen = []
            pending = None
            try:
                while True:
                    _, context = gen.send(pending)
                    seen.append(context.relative_path)
                    pending = False if context.name == 'skip' else None
            except StopIteration:
                pass

            self.assertIn(Path('keep/inner.txt'), seen)
            self.assertNotIn(Path('skip/inner.txt'), seen)

    def test_subdirectory_error_handler(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            write_files(root, {'bad/x.txt': 'x', 'good/y.txt': 'y'})
            errors = []

            with failing_iterdir(root / 'bad'):
                relative_paths = [
                    context.relative_path
                    for _, context in walk(root, FileContext(None, None, root),
                                           lambda path, error: errors.append(path))]

            self.assertEqual([root / 'bad'], errors)
            self.assertIn(Path('good/y.txt'), relative_paths)
            self.assertNotIn(Path('bad/x.txt'), relative_paths)

    def test_subdirectory_error_without_handler_raises(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            write_files(root, {'bad/x.txt': 'x'})

            with failing_iterdir(root / 'bad'):
                with self.assertRaises(PermissionError):
                    list(walk(root, FileContext(None, None, root)))


if __name__ == '__main__':
    unittest.main()
