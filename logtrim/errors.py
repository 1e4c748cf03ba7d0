"""Decode errors shared by the plain-text and JSON line decoders."""


class ParseError(ValueError):
    """A line is not a recognised log entry. Callers skip the line."""

    def __init__(self, reason: str, line: str = ""):
        super().__init__(reason)
        self.reason = reason
        self.line = line
