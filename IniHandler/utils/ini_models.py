"""Dataclass models shared by the INI parser and serializer."""
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class LineKind(Enum):
    BLANK = "blank"          # empty or whitespace only
    COMMENT = "comment"      # first non-blank char is ';' or '#'
    SECTION = "section"      # [Name]
    ENTRY = "entry"          # key = value, key non-empty
    CONTENT = "content"      # anything else, kept verbatim


@dataclass
class ParsedLine:
    """One raw line classified against the section it appears in."""
    kind: LineKind
    section: str = ""
    key: Optional[str] = None
    value: Optional[str] = None

    @property
    def is_entry(self) -> bool:
        return self.kind is LineKind.ENTRY
