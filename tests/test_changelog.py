"""Tests for the svn change log parser."""

from pluginsync.catalog.changelog import (
    ChangeLogParser,
    ChangeRecord,
    parse_change_log,
    parse_head_revision,
    touched_slugs,
)


SAMPLE_LOG = """\
------------------------------------------------------------------------
r3001 | alice | 2024-02-01 10:00:00 +0000 (Thu, 01 Feb 2024)
Changed paths:
   M /akismet/trunk/readme.txt
   A /akismet/tags/5.3.1
------------------------------------------------------------------------
r3002 | bob | 2024-02-01 10:05:00 +0000 (Thu, 01 Feb 2024)
Changed paths:
   A /hello-dolly/
   D /old-plugin/trunk/old.php
   R /wp-super-cache/trunk/wp-cache.php
------------------------------------------------------------------------
"""


class TestChangeLogParser:
    """Tests for ChangeLogParser."""

    def test_starts_awaiting_revision(self):
        """Test the parser has no revision before a header."""
        parser = ChangeLogParser()
        assert parser.awaiting_revision is True
        assert parser.revision is None

    def test_action_line_before_header_is_ignored(self):
        """Test action lines are dropped while awaiting a revision."""
        parser = ChangeLogParser()
        assert parser.feed("   M /akismet/trunk/readme.txt") is None

        assert parser.feed("r10 | alice | date") is None
        assert parser.awaiting_revision is False

        record = parser.feed("   M /akismet/trunk/readme.txt")
        assert record == ChangeRecord(slug="akismet", revision=10, action="M")

    def test_header_applies_to_following_lines(self):
        """Test each action line takes the most recent revision header."""
        records = parse_change_log(SAMPLE_LOG)

        assert [(r.slug, r.revision) for r in records] == [
            ("akismet", 3001),
            ("akismet", 3001),
            ("hello-dolly", 3002),
            ("old-plugin", 3002),
            ("wp-super-cache", 3002),
        ]

    def test_action_codes(self):
        """Test all four action codes are recognised."""
        records = parse_change_log(SAMPLE_LOG)
        names = {r.slug: r.action_name for r in records}
        assert names["hello-dolly"] == "Add"
        assert names["old-plugin"] == "Delete"
        assert names["wp-super-cache"] == "Replace"
        assert records[0].action_name == "Modify"

    def test_tracks_highest_revision(self):
        """Test highest_revision covers headers without matching paths."""
        parser = ChangeLogParser()
        parser.parse(["r5 | a | d", "   M /foo/trunk/x", "r7 | a | d", "Changed paths:"])
        assert parser.highest_revision == 7
        assert parser.revision == 7

    def test_unrelated_lines(self):
        """Test separators and path headers produce nothing."""
        assert parse_change_log("----\nChanged paths:\n\n") == []

    def test_requires_three_space_indent(self):
        """Test action lines must use the svn indentation."""
        parser = ChangeLogParser()
        parser.feed("r1 | a | d")
        assert parser.feed(" M /foo/trunk/x") is None
        assert parser.feed("M /foo/trunk/x") is None


class TestHelpers:
    """Tests for module helpers."""

    def test_touched_slugs_dedupes_in_order(self):
        """Test slugs are unique and keep first-seen order."""
        slugs = touched_slugs(parse_change_log(SAMPLE_LOG))
        assert slugs == ["akismet", "hello-dolly", "old-plugin", "wp-super-cache"]

    def test_parse_head_revision(self):
        """Test HEAD revision comes from the first header."""
        output = "------------------------------------------------------------------------\n" \
                 "r3123456 | someone | 2024-05-01 12:00:00 +0000\n" \
                 "Changed paths:\n   M /foo/trunk/foo.php\n"
        assert parse_head_revision(output) == 3123456

    def test_parse_head_revision_missing(self):
        """Test None when there is no header."""
        assert parse_head_revision("svn: E170013: Unable to connect") is None
