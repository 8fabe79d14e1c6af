"""
Tests for the csim command line
"""
import contextlib
import io
import os
import tempfile
import unittest

import csim

HERE = os.path.dirname(os.path.abspath(__file__))
YI = os.path.join(HERE, os.pardir, "traces", "yi.trace")


class TestCsim(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = self._tmp.name
        self.results = os.path.join(self.tmp, ".csim_results")

    def tearDown(self):
        self._tmp.cleanup()

    def run_csim(self, *argv):
        out, err = io.StringIO(), io.StringIO()
        with contextlib.redirect_stdout(out), contextlib.redirect_stderr(err):
            try:
                code = csim.main(list(argv))
            except SystemExit as e:
                code = e.code
        return code, out.getvalue(), err.getvalue()

    def test_summary_and_results_file(self):
        code, out, _ = self.run_csim("-s", "4", "-E", "1", "-b", "4", "-t", YI, "--results", self.results)
        self.assertEqual(code, 0)
        self.assertEqual(out.strip(), "hits:4 misses:5 evictions:3")
        with open(self.results) as f:
            self.assertEqual(f.read(), "4 5 3\n")

    def test_verbose(self):
        code, out, _ = self.run_csim("-v", "-s", "4", "-E", "1", "-b", "4", "-t", YI, "--no-results")
        self.assertEqual(code, 0)
        lines = out.splitlines()
        self.assertEqual(lines[0], "L 10,1 miss")
        self.assertEqual(lines[1], "M 20,1 miss hit")
        self.assertEqual(lines[-1], "hits:4 misses:5 evictions:3")
        self.assertFalse(os.path.exists(self.results))

    def test_missing_argument(self):
        code, out, err = self.run_csim("-s", "4", "-b", "4", "-t", YI)
        self.assertEqual(code, 2)
        self.assertIn("-E", err)
        self.assertEqual(out, "")

    def test_zero_counts_as_missing(self):
        code, _, err = self.run_csim("-s", "0", "-E", "1", "-b", "4", "-t", YI)
        self.assertEqual(code, 2)
        self.assertIn("missing", err)

    def test_negative_rejected(self):
        code, _, err = self.run_csim("-s", "-1", "-E", "1", "-b", "4", "-t", YI)
        self.assertEqual(code, 2)
        self.assertIn("positive", err)

    def test_unreadable_trace(self):
        missing = os.path.join(self.tmp, "nope.trace")
        code, out, err = self.run_csim("-s", "1", "-E", "1", "-b", "1", "-t", missing, "--results", self.results)
        self.assertEqual(code, 2)
        self.assertIn("cannot read trace", err)
        self.assertFalse(os.path.exists(self.results))

    def test_help(self):
        code, out, _ = self.run_csim("-h")
        self.assertEqual(code, 0)
        self.assertIn("-t <file>", out)


if __name__ == "__main__":
    unittest.main()
