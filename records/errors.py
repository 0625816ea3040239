from __future__ import annotations


class RecordError(RuntimeError):
    """Request-scoped failure whose message is shown to the user verbatim."""

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = str(code)
        self.message = str(message)
