class IniFileError(RuntimeError):
    """Raised when an INI file operation cannot be completed."""


class ConfigError(IniFileError):
    """Raised when load or save is attempted before a filename is set."""


class IniIOError(OSError, IniFileError):
    """Raised when the INI file cannot be opened for reading or writing."""


class SectionNotFound(IniFileError, LookupError):
    """Raised when a lookup names a section that does not exist."""

    def __init__(self, section: str):
        super().__init__(f"Section '{section}' not found in INI file.")
        self.section = section


class KeyNotFound(IniFileError, LookupError):
    """Raised when a lookup names a key missing from an existing section."""

    def __init__(self, section: str, key: str):
        super().__init__(f"Key '{key}' not found in section '{section}'.")
        self.section = section
        self.key = key


class InvalidFormat(IniFileError, ValueError):
    """Raised when a stored value cannot be converted to the requested type."""


class OutOfRange(IniFileError, OverflowError):
    """Raised when a stored numeric value exceeds the range of its type."""
