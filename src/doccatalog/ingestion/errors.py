"""Ingestion errors."""


class TargetError(Exception):
    """Raised when a watched directory cannot be created or enumerated."""

    def __init__(self, path: object, message: str) -> None:
        super().__init__(message)
        self.path = path
