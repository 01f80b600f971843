"""Tests for translating raw status and numstat output into changes."""

import unittest

from coparrot.models import Change, ChangeKind
from coparrot.vcs.status import parse_numstat, parse_status_line, translate


class TestTranslate(unittest.TestCase):
    def test_reference_scenario(self) -> None:
        status = "M  a.js\n?? b.txt\nA  c.json\n"
        numstat = "3\t1\ta.js\n"
        changes = translate(status, numstat)
        self.assertEqual(
            changes,
            [
                Change(path="a.js", status_code="M ", kind=ChangeKind.MODIFIED, additions=3, deletions=1),
                Change(path="b.txt", status_code="??", kind=ChangeKind.UNTRACKED),
                Change(path="c.json", status_code="A ", kind=ChangeKind.ADDED),
            ],
        )

    def test_one_change_per_line_in_order(self) -> None:
        status = " M z.py\nD  y.py\n M x.py\n"
        self.assertEqual([c.path for c in translate(status, "")], ["z.py", "y.py", "x.py"])

    def test_kinds(self) -> None:
        cases = [
            ("M ", ChangeKind.MODIFIED),
            (" M", ChangeKind.MODIFIED),
            ("MM", ChangeKind.MODIFIED),
            ("A ", ChangeKind.ADDED),
            ("AM", ChangeKind.ADDED),
            ("D ", ChangeKind.DELETED),
            (" D", ChangeKind.DELETED),
            ("C ", ChangeKind.COPIED),
            ("U ", ChangeKind.UPDATED),
            ("??", ChangeKind.UNTRACKED),
            ("UU", ChangeKind.UNKNOWN),
            ("T ", ChangeKind.UNKNOWN),
        ]
        for code, kind in cases:
            with self.subTest(code=code):
                changes = translate(f"{code} file.txt\n", "")
                self.assertEqual(changes[0].kind, kind)
                self.assertEqual(changes[0].status_code, code)

    def test_binary_numstat_counts_are_zero(self) -> None:
        changes = translate(" M logo.png\n", "-\t-\tlogo.png\n")
        self.assertEqual((changes[0].additions, changes[0].deletions), (0, 0))

    def test_missing_numstat_defaults_to_zero(self) -> None:
        changes = translate(" M a.py\n", "")
        self.assertEqual((changes[0].additions, changes[0].deletions), (0, 0))

    def test_malformed_lines_are_skipped(self) -> None:
        status = "M\n\n   \n M ok.py\nXY\n"
        self.assertEqual([c.path for c in translate(status, "garbage\n")], ["ok.py"])

    def test_rename(self) -> None:
        changes = translate("R  old.py -> new.py\n", "2\t0\tnew.py\n")
        self.assertEqual(changes[0].path, "new.py")
        self.assertEqual(changes[0].original_path, "old.py")
        self.assertEqual(changes[0].kind, ChangeKind.RENAMED)
        self.assertEqual(changes[0].paths, ("old.py", "new.py"))
        self.assertEqual(changes[0].additions, 2)

    def test_quoted_path(self) -> None:
        changes = translate('?? "my file.txt"\n', "")
        self.assertEqual(changes[0].path, "my file.txt")

    def test_octal_escaped_path(self) -> None:
        changes = translate('?? "caf\\303\\251.txt"\n', '1\t0\t"caf\\303\\251.txt"\n')
        self.assertEqual(changes[0].path, "café.txt")
        self.assertEqual(changes[0].additions, 1)

    def test_c_escapes_in_path(self) -> None:
        changes = translate('?? "tab\\there \\"q\\" back\\\\slash\\nline"\n', "")
        self.assertEqual(changes[0].path, 'tab\there "q" back\\slash\nline')

    def test_escaped_rename(self) -> None:
        changes = translate('R  "\\344\\275\\240.md" -> "docs/\\344\\275\\240.md"\n', "")
        self.assertEqual(changes[0].original_path, "你.md")
        self.assertEqual(changes[0].path, "docs/你.md")

    def test_duplicate_paths_keep_first(self) -> None:
        changes = translate(" M a.py\nM  a.py\n", "")
        self.assertEqual(len(changes), 1)
        self.assertEqual(changes[0].status_code, " M")

    def test_empty_status(self) -> None:
        self.assertEqual(translate("", "1\t1\ta.py"), [])


class TestParseHelpers(unittest.TestCase):
    def test_parse_numstat(self) -> None:
        stats = parse_numstat("3\t1\ta.js\n-\t-\timg.png\n10\t2\tsrc/{old.py => new.py}\n5\t0\tx.py => y.py\nbad line\n")
        self.assertEqual(stats["a.js"], (3, 1))
        self.assertEqual(stats["img.png"], (0, 0))
        self.assertEqual(stats["src/new.py"], (10, 2))
        self.assertEqual(stats["y.py"], (5, 0))
        self.assertEqual(len(stats), 4)

    def test_parse_status_line_offsets(self) -> None:
        self.assertEqual(parse_status_line("?? b.txt"), ("??", "b.txt", None))
        self.assertEqual(parse_status_line(" M a.js"), (" M", "a.js", None))
        self.assertEqual(parse_status_line("M  a.js"), ("M ", "a.js", None))
        self.assertIsNone(parse_status_line("M "))


if __name__ == "__main__":
    unittest.main()
