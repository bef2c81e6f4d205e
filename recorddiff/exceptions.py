"""Custom exceptions for the recorddiff engine."""


class RecordDiffError(Exception):
    """Base exception for recorddiff errors."""
    pass


class MalformedPathError(RecordDiffError, ValueError):
    """Raised when a field path cannot be parsed."""
    def __init__(self, path: str, reason: str):
        super().__init__(f"Malformed field path '{path}': {reason}")
        self.path = path
        self.reason = reason


class TerminalIndexUnsupportedError(RecordDiffError):
    """Raised when an ignored path indexes into a repeated scalar field."""
    def __init__(self, path: str):
        super().__init__(
            f"Terminally ignoring fields by index is currently not supported ('{path}')"
        )
        self.path = path


class TypeMismatchError(RecordDiffError):
    """Raised when actual and expected records have different types."""
    def __init__(self, actual_type: str, expected_type: str):
        super().__init__(
            f"Cannot compare records of different types: "
            f"actual is {actual_type}, expected is {expected_type}"
        )
        self.actual_type = actual_type
        self.expected_type = expected_type


class PolicyError(RecordDiffError, ValueError):
    """Raised when a comparison policy is configured with invalid values."""
    def __init__(self, setting: str, message: str):
        super().__init__(f"Invalid {setting}: {message}")
        self.setting = setting
        self.message = message


class TextParseError(RecordDiffError):
    """Raised when a text expectation does not parse as the requested type."""
    def __init__(self, type_name: str, reason: str):
        super().__init__(f"Failed to parse text as a {type_name}: {reason}")
        self.type_name = type_name
        self.reason = reason


class MaxDepthExceededError(RecordDiffError):
    """Raised when maximum recursion depth is exceeded."""
    def __init__(self, depth: int, path: str):
        super().__init__(f"Maximum depth ({depth}) exceeded at path: {path}")
        self.depth = depth
        self.path = path
