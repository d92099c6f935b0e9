import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from symdedup.utils.profiling import (
    PROFILE_ENV,
    SESSION_ENV,
    current_session,
    profile_main,
    profile_worker,
)


class ProfilingTest(unittest.TestCase):
    def setUp(self):
        patcher = mock.patch.dict(os.environ)
        patcher.start()
        self.addCleanup(patcher.stop)
        os.environ.pop(PROFILE_ENV, None)
        os.environ.pop(SESSION_ENV, None)

    def test_no_session_when_not_set(self):
        self.assertIsNone(current_session())

    def test_session_named_after_start_time_and_pid(self):
        os.environ[PROFILE_ENV] = '/tmp/test_profile'

        session = current_session()

        self.assertEqual(Path('/tmp/test_profile'), session.directory.parent)
        timestamp, pid = session.name.split('_')
        self.assertTrue(timestamp.isdigit())
        self.assertEqual(str(os.getpid()), pid)

    def test_session_inherited_from_environment(self):
        os.environ[PROFILE_ENV] = '/tmp/test_profile'
        os.environ[SESSION_ENV] = '123_456'

        self.assertEqual(Path('/tmp/test_profile/123_456'), current_session().directory)

    def test_profile_files_are_unique(self):
        os.environ[PROFILE_ENV] = '/tmp/test_profile'
        session = current_session()

        first = session.next_file('worker', 'sha256')
        second = session.next_file('worker', 'sha256')

        self.assertNotEqual(first, second)
        self.assertTrue(first.name.startswith(f"worker_sha256_{os.getpid()}_"))
        self.assertEqual('.prof', first.suffix)

    def test_disabled_calls_through(self):
        wrapped = profile_worker(lambda x: x * 2)

        self.assertEqual(4, wrapped(2))

    def test_profile_main_writes_profile(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            os.environ[PROFILE_ENV] = tmpdir

            @profile_main
            def main():
                return 'done'

            self.assertEqual('done', main())

            session_dir = Path(tmpdir) / os.environ[SESSION_ENV]
            profiles = list(session_dir.glob('main_main_*.prof'))
            self.assertEqual(1, len(profiles))

    def test_unwritable_profile_does_not_fail_call(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            blocker = Path(tmpdir) / 'blocker'
            blocker.write_text('not a directory')
            os.environ[PROFILE_ENV] = str(blocker)

            @profile_worker
            def work():
                return 42

            with self.assertLogs('symdedup.utils.profiling', level='WARNING'):
                self.assertEqual(42, work())


if __name__ == '__main__':
    unittest.main()
