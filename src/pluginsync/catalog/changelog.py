"""Parser for ``svn log -v -q`` output.

A verbose quiet log looks like::

    ------------------------------------------------------------------------
    r3012345 | someone | 2024-02-01 10:00:00 +0000 (Thu, 01 Feb 2024)
    Changed paths:
       M /akismet/trunk/readme.txt
       A /hello-dolly/tags/1.7.2

The revision header always precedes the paths it covers, so the parser only
needs to remember the last header it has seen.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional

REVISION_RE = re.compile(r"^r([0-9]+) \|")
ACTION_RE = re.compile(r"^   ([ADMR]) /([^/\s]+)/")

ACTION_NAMES = {
    "A": "Add",
    "D": "Delete",
    "M": "Modify",
    "R": "Replace",
}


@dataclass(frozen=True)
class ChangeRecord:
    slug: str
    revision: int
    action: str = "M"

    @property
    def action_name(self) -> str:
        return ACTION_NAMES.get(self.action, self.action)


class ChangeLogParser:
    """Two-state parser: awaiting a revision, or holding revision R.

    Revision headers move the parser to (or within) the second state; action
    lines emit a record only while a revision is held.
    """

    def __init__(self) -> None:
        self.revision: Optional[int] = None
        self.highest_revision: Optional[int] = None

    @property
    def awaiting_revision(self) -> bool:
        return self.revision is None

    def feed(self, line: str) -> Optional[ChangeRecord]:
        match = REVISION_RE.match(line)
        if match:
            self.revision = int(match.group(1))
            if self.highest_revision is None or self.revision > self.highest_revision:
                self.highest_revision = self.revision
            return None

        match = ACTION_RE.match(line)
        if match and self.revision is not None:
            return ChangeRecord(
                slug=match.group(2).strip(),
                revision=self.revision,
                action=match.group(1),
            )
        return None

    def parse(self, lines: Iterable[str]) -> List[ChangeRecord]:
        records = []
        for line in lines:
            record = self.feed(line.rstrip("\r\n"))
            if record is not None:
                records.append(record)
        return records


def parse_change_log(text: str) -> List[ChangeRecord]:
    """Parse a whole log into (slug, revision) records in log order."""
    return ChangeLogParser().parse(text.splitlines())


def touched_slugs(records: Iterable[ChangeRecord]) -> List[str]:
    """De-duplicated slugs in first-seen order."""
    seen: dict = {}
    for record in records:
        seen.setdefault(record.slug, None)
    return list(seen)


def parse_head_revision(text: str) -> Optional[int]:
    """Return the first revision header in ``text``, if any."""
    for line in text.splitlines():
        match = REVISION_RE.match(line)
        if match:
            return int(match.group(1))
    return None
