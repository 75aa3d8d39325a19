import logging
import math
import re
from typing import Dict, Iterator, List, Optional, Tuple

from .utils.exceptions import (
    ConfigError,
    IniIOError,
    InvalidFormat,
    KeyNotFound,
    OutOfRange,
    SectionNotFound,
)
from .utils.ini_models import LineKind, ParsedLine


INT_MIN = -(2 ** 31)
INT_MAX = 2 ** 31 - 1

# Leading numeric prefix; whatever follows it is ignored
_INT_PREFIX = re.compile(r"[ \t\n\r\f\v]*([+-]?[0-9]+)")
_DOUBLE_PREFIX = re.compile(
    r"[ \t\n\r\f\v]*([+-]?)(?:"
    r"(?P<mantissa>[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?"
    r"|(?P<special>infinity|inf|nan))",
    re.IGNORECASE,
)


class IniFile:
    """ Reader/writer for INI files that keeps the original formatting on save """

    WHITESPACE = " \t\r\n"
    COMMENT_CHARS = ";#"
    TRUE_STRINGS = ("true", "t", "1")

    def __init__(self, filename: Optional[str] = None, logger: Optional[logging.Logger] = None,
                 encoding: str = "utf-8"):
        self._filename = ""
        self._data: Dict[str, Dict[str, str]] = {}     # section -> key -> value
        self._lines: List[str] = []                    # raw lines, without the trailing '\n'
        self._index: Dict[str, Dict[str, int]] = {}    # section -> key -> zero-based line number
        self._pending_changes = False
        self.encoding = encoding
        self.logger = logger if logger is not None else logging.getLogger(__name__)

        if filename is not None:
            self.set_filename(filename)
        else:
            self.logger.info("IniFile instance created without filename.")

    @property
    def filename(self) -> str:
        return self._filename

    @property
    def pending_changes(self) -> bool:
        return self._pending_changes

    def set_filename(self, filename: str, load: bool = True) -> None:
        """Set the file backing this store and, unless load=False, read it right away."""
        self._filename = filename
        self.logger.info("Filename set to: %s", self._filename)
        if load:
            self.load()

    # --- Loading ---

    def load(self, filename: Optional[str] = None) -> bool:
        """Read the file and rebuild the value table, the raw lines and the line index.

        Nothing is cleared when the file cannot be opened.
        """
        if filename is not None:
            self._filename = filename
        if not self._filename:
            self.logger.error("Error: Filename not set for loading.")
            raise ConfigError("Filename not set for loading.")

        try:
            with open(self._filename, "r", encoding=self.encoding, errors="surrogateescape", newline="") as f:
                content = f.read()
        except OSError as e:
            self.logger.error("Error: Cannot open file %s", self._filename)
            raise IniIOError(e.errno, f"Cannot open file: {e.strerror}", self._filename) from e

        self._parse(content)
        self.logger.info("Successfully loaded INI file: %s", self._filename)
        return True

    def loads(self, text: str) -> None:
        """Parse INI text the same way load() parses a file."""
        self._parse(text)

    def _parse(self, content: str) -> None:
        self._data.clear()
        self._index.clear()
        self._lines = self.split_lines(content)
        self._pending_changes = False

        for line_num, parsed in self._scan(self._lines):
            if parsed.is_entry:
                self._data.setdefault(parsed.section, {})[parsed.key] = parsed.value
                self._index.setdefault(parsed.section, {})[parsed.key] = line_num

    def _scan(self, lines: List[str]) -> Iterator[Tuple[int, ParsedLine]]:
        current_section = ""
        for line_num, line in enumerate(lines):
            parsed = self.classify_line(line, current_section)
            if parsed.kind is LineKind.SECTION:
                current_section = parsed.section
            yield line_num, parsed

    def _rebuild_index(self) -> None:
        self._index.clear()
        for line_num, parsed in self._scan(self._lines):
            if parsed.is_entry:
                self._index.setdefault(parsed.section, {})[parsed.key] = line_num

    # --- Saving ---

    def save(self, filename: Optional[str] = None) -> bool:
        """Write the raw lines back, patching every line whose key is tracked.

        Keys with no line in the file are appended to their section, and sections
        with no header in the file are appended at the end. After a successful write
        the written lines become the raw lines.
        """
        if filename is not None:
            self._filename = filename
        if not self._filename:
            self.logger.error("Error: Filename not set for saving.")
            raise ConfigError("Filename not set for saving.")

        lines = self._render()
        try:
            with open(self._filename, "w", encoding=self.encoding, errors="surrogateescape", newline="") as f:
                for line in lines:
                    f.write(line + "\n")
        except OSError as e:
            self.logger.error("Error: Cannot write to file %s", self._filename)
            raise IniIOError(e.errno, f"Cannot write to file: {e.strerror}", self._filename) from e

        self._lines = lines
        self._rebuild_index()
        self.logger.info("Successfully saved INI file: %s", self._filename)
        return True

    def dumps(self) -> str:
        """Return the text save() would write."""
        return "".join(line + "\n" for line in self._render())

    def _render(self) -> List[str]:
        out: List[str] = []
        written: Dict[str, set] = {}
        insert_at: Dict[str, int] = {}   # section -> position right after its last header/entry line
        # Appended lines follow the line ending of the file's first line
        new_eol = "\r" if self._lines and self._lines[0].endswith("\r") else ""

        for line_num, parsed in self._scan(self._lines):
            line = self._lines[line_num]
            section_values = self._data.get(parsed.section, {})
            if parsed.is_entry and parsed.key in section_values:
                eol = "\r" if line.endswith("\r") else ""
                out.append(f"{parsed.key} = {section_values[parsed.key]}{eol}")
                written.setdefault(parsed.section, set()).add(parsed.key)
            else:
                out.append(line)
            if parsed.kind in (LineKind.SECTION, LineKind.ENTRY):
                insert_at[parsed.section] = len(out)

        inserts: Dict[int, List[str]] = {}
        new_sections: List[List[str]] = []
        for section, values in self._data.items():
            done = written.get(section, set())
            entries = [f"{key} = {value}{new_eol}" for key, value in values.items() if key not in done]
            if not entries:
                continue
            if section in insert_at:
                inserts.setdefault(insert_at[section], []).extend(entries)
            elif section == "":
                # Keys without a section have to precede the first header
                inserts.setdefault(0, []).extend(entries)
            else:
                new_sections.append([f"[{section}]{new_eol}"] + entries)

        result: List[str] = []
        for pos, line in enumerate(out):
            result.extend(inserts.get(pos, ()))
            result.append(line)
        result.extend(inserts.get(len(out), ()))

        for block in new_sections:
            if result and self.trim(result[-1]):
                result.append(new_eol)
            result.extend(block)
        return result

    def commit_changes(self) -> None:
        """Save only if a setter ran since the last commit."""
        if self._pending_changes:
            self.save()
            self._pending_changes = False

    # --- Lookup ---

    def get_value(self, section: str, key: str) -> str:
        values = self._data.get(section)
        if values is None:
            self.logger.error("Section not found: %s", section)
            raise SectionNotFound(section)
        if key not in values:
            self.logger.error("Key not found in section %s: %s", section, key)
            raise KeyNotFound(section, key)
        return values[key]

    def get_int_value(self, section: str, key: str) -> int:
        value = self.get_value(section, key)
        try:
            return self.string_to_int(value)
        except (InvalidFormat, OutOfRange) as e:
            self.logger.error("Error parsing integer for %s/%s: %s", section, key, e)
            raise

    def get_double_value(self, section: str, key: str) -> float:
        value = self.get_value(section, key)
        try:
            return self.string_to_double(value)
        except (InvalidFormat, OutOfRange) as e:
            self.logger.error("Error parsing double for %s/%s: %s", section, key, e)
            raise

    def get_bool_value(self, section: str, key: str) -> bool:
        return self.string_to_bool(self.get_value(section, key))

    def has_section(self, section: str) -> bool:
        return section in self._data

    def has_value(self, section: str, key: str) -> bool:
        return key in self._data.get(section, {})

    def sections(self) -> List[str]:
        return list(self._data)

    def keys(self, section: str) -> List[str]:
        if section not in self._data:
            self.logger.error("Section not found: %s", section)
            raise SectionNotFound(section)
        return list(self._data[section])

    def line_number(self, section: str, key: str) -> Optional[int]:
        return self._index.get(section, {}).get(key)

    # --- Mutation ---

    def set_string_value(self, section: str, key: str, value: str) -> None:
        self._data.setdefault(section, {})[key] = str(value)
        self._pending_changes = True

    set_value = set_string_value

    def set_bool_value(self, section: str, key: str, value: bool) -> None:
        self.set_string_value(section, key, self.bool_to_string(value))

    def set_int_value(self, section: str, key: str, value: int) -> None:
        self.set_string_value(section, key, str(int(value)))

    def set_double_value(self, section: str, key: str, value: float) -> None:
        self.set_string_value(section, key, repr(float(value)))

    # --- String helpers ---

    @classmethod
    def trim(cls, text: str) -> str:
        return text.strip(cls.WHITESPACE)

    @classmethod
    def is_comment(cls, line: str) -> bool:
        return not line or line[0] in cls.COMMENT_CHARS

    @classmethod
    def strip_inline_comment(cls, value: str) -> str:
        for pos, ch in enumerate(value):
            if ch in cls.COMMENT_CHARS:
                return cls.trim(value[:pos])
        return value

    @staticmethod
    def split_lines(content: str) -> List[str]:
        # '\r' of CRLF files stays on the line, like a plain getline() would leave it
        lines = content.split("\n")
        if lines[-1] == "":
            lines.pop()
        return lines

    @classmethod
    def classify_line(cls, line: str, section: str) -> ParsedLine:
        """Classify a raw line found under `section`.

        A header must start with '[' and end with ']' once trimmed, so a header
        followed by an inline comment is plain content. For an entry, the key is
        the text before the first '=' and the value is cut at the first ';' or '#'.
        """
        trimmed = cls.trim(line)
        if not trimmed:
            return ParsedLine(LineKind.BLANK, section)
        if cls.is_comment(trimmed):
            return ParsedLine(LineKind.COMMENT, section)
        if trimmed.startswith("[") and trimmed.endswith("]"):
            return ParsedLine(LineKind.SECTION, trimmed[1:-1])

        pos = trimmed.find("=")
        if pos == -1:
            return ParsedLine(LineKind.CONTENT, section)
        key = cls.trim(trimmed[:pos])
        if not key:
            return ParsedLine(LineKind.CONTENT, section)
        value = cls.strip_inline_comment(cls.trim(trimmed[pos + 1:]))
        return ParsedLine(LineKind.ENTRY, section, key, value)

    @staticmethod
    def bool_to_string(value: bool) -> str:
        return "true" if value else "false"

    @classmethod
    def string_to_bool(cls, value: str) -> bool:
        return cls.trim(value).lower() in cls.TRUE_STRINGS

    @staticmethod
    def string_to_int(value: str) -> int:
        """Convert the leading decimal integer of `value`; trailing text is ignored."""
        match = _INT_PREFIX.match(value)
        if match is None:
            raise InvalidFormat(f"'{value}' is not an integer")
        n = int(match.group(1))
        if n < INT_MIN or n > INT_MAX:
            raise OutOfRange(f"'{value}' is out of the integer range")
        return n

    @staticmethod
    def string_to_double(value: str) -> float:
        """Convert the leading floating point number of `value`; trailing text is ignored.

        inf, infinity and nan are accepted as written. A literal that overflows to
        infinity, or a non-zero literal that underflows to zero, is out of range.
        """
        match = _DOUBLE_PREFIX.match(value)
        if match is None:
            raise InvalidFormat(f"'{value}' is not a number")
        n = float(match.group(0))
        if match.group("special") is None:
            if math.isinf(n):
                raise OutOfRange(f"'{value}' is out of the double range")
            if n == 0.0 and re.search("[1-9]", match.group("mantissa")):
                raise OutOfRange(f"'{value}' is out of the double range")
        return n
