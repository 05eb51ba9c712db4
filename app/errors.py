"""Errors raised for malformed benchmark submissions."""


class ValidationError(Exception):
    """Input was rejected before anything touched the database."""


class JsonlParseError(ValidationError):
    """A line of newline-delimited JSON could not be parsed."""

    def __init__(self, line_number: int, line: str):
        self.line_number = line_number
        self.line = line
        super().__init__(f"Invalid JSON on line {line_number}: {line[:200]}")
