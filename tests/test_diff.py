import pytest

from saykai_gate.config import ForbiddenPatternRule
from saykai_gate.diff import AddedLine, DiffScanner, parse_added_lines
from saykai_gate.errors import DiffParseError

DIFF = """diff --git a/scripts/clean.sh b/scripts/clean.sh
index 1111111..2222222 100755
--- a/scripts/clean.sh
+++ b/scripts/clean.sh
@@ -10,0 +11,2 @@ set -e
+echo cleaning
+rm -rf /data
@@ -20 +21,0 @@ done
-rm -rf /old
diff --git a/docs/new.md b/docs/new.md
new file mode 100644
index 0000000..3333333
--- /dev/null
+++ b/docs/new.md
@@ -0,0 +1,3 @@
+# Title
+
+Body
diff --git a/gone.txt b/gone.txt
deleted file mode 100644
index 4444444..0000000
--- a/gone.txt
+++ /dev/null
@@ -1,2 +0,0 @@
-rm -rf /
-bye
"""


def test_added_lines_carry_post_change_numbers():
    lines = list(parse_added_lines(DIFF))

    assert lines == [
        AddedLine(file="scripts/clean.sh", line_number=11, content="echo cleaning"),
        AddedLine(file="scripts/clean.sh", line_number=12, content="rm -rf /data"),
        AddedLine(file="docs/new.md", line_number=1, content="# Title"),
        AddedLine(file="docs/new.md", line_number=2, content=""),
        AddedLine(file="docs/new.md", line_number=3, content="Body"),
    ]


def test_removed_lines_do_not_advance_counter():
    diff = """diff --git a/app.py b/app.py
--- a/app.py
+++ b/app.py
@@ -5,2 +5,3 @@
-old_one()
+new_one()
-old_two()
+new_two()
+new_three()
"""
    numbers = [line.line_number for line in parse_added_lines(diff)]

    assert numbers == [5, 6, 7]


def test_hunks_reseed_the_counter():
    diff = """diff --git a/a.txt b/a.txt
--- a/a.txt
+++ b/a.txt
@@ -1,0 +2,2 @@
+two
+three
@@ -40,0 +43 @@
+forty-three
"""
    numbers = [line.line_number for line in parse_added_lines(diff)]

    assert numbers == [2, 3, 43]


def test_renamed_file_uses_new_path():
    diff = """diff --git a/old.py b/new.py
similarity index 90%
rename from old.py
rename to new.py
index 5555555..6666666 100644
--- a/old.py
+++ b/new.py
@@ -3 +3 @@
-x = 1
+x = 2
"""
    assert list(parse_added_lines(diff)) == [AddedLine(file="new.py", line_number=3, content="x = 2")]


def test_files_filter_limits_output():
    lines = list(parse_added_lines(DIFF, files={"docs/new.md"}))

    assert {line.file for line in lines} == {"docs/new.md"}


def test_empty_diff_yields_nothing():
    assert list(parse_added_lines("")) == []


def test_malformed_hunk_raises():
    diff = """diff --git a/x b/x
--- a/x
+++ b/x
@@ -1,0 +1,2 @@
+only one
"""
    with pytest.raises(DiffParseError):
        list(parse_added_lines(diff))


def test_quoted_target_path_is_unquoted():
    diff = """diff --git "a/infra/r\\303\\251sum\\303\\251.tf" "b/infra/r\\303\\251sum\\303\\251.tf"
new file mode 100644
--- /dev/null
+++ "b/infra/r\\303\\251sum\\303\\251.tf"
@@ -0,0 +1 @@
+rm -rf /
"""
    lines = list(parse_added_lines(diff, frozenset({"infra/résumé.tf"})))

    assert lines == [AddedLine("infra/résumé.tf", 1, "rm -rf /")]


class FakeGit:
    def __init__(self, diff_text, files):
        self.diff_text = diff_text
        self.files = files
        self.fetches = 0
        self.calls = []

    def fetch(self):
        self.fetches += 1
        return True

    def diff(self, base, head):
        self.calls.append(("diff", base, head))
        return self.diff_text

    def changed_files(self, base, head):
        self.calls.append(("changed_files", base, head))
        return list(self.files)


def test_scanner_fetches_once_and_scans():
    git = FakeGit(DIFF, ["scripts/clean.sh", "docs/new.md", "gone.txt"])
    scanner = DiffScanner(git)
    rules = [ForbiddenPatternRule(id="no-rm-rf", pattern="rm -rf", message="blocked")]

    files = scanner.changed_files("base", "head")
    hits = scanner.scan_added_lines("base", "head", rules)

    assert files == ["scripts/clean.sh", "docs/new.md", "gone.txt"]
    assert git.fetches == 1
    assert len(hits) == 1
    assert (hits[0].rule_id, hits[0].file, hits[0].line) == ("no-rm-rf", "scripts/clean.sh", 12)
    assert ("diff", "base", "head") in git.calls


def test_pattern_only_in_removed_line_is_ignored():
    git = FakeGit(DIFF, ["gone.txt"])
    rules = [ForbiddenPatternRule(id="bye", pattern="bye", message="no goodbyes")]

    assert DiffScanner(git).scan_added_lines("base", "head", rules) == []
