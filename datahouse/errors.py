from __future__ import annotations


class DatahouseError(Exception):
    """Base class for workspace errors."""


class ConfigurationError(DatahouseError):
    """The workspace configuration could not be read or written."""


class MetadataError(DatahouseError):
    pass


class UpdaterError(DatahouseError):
    def __init__(self, message: str, source_id: str | None = None) -> None:
        super().__init__(message)
        self.source_id = source_id


class UpdaterOnlyManually(UpdaterError):
    """Raised by updaters whose upstream cannot be fetched automatically."""


class ParserError(DatahouseError):
    def __init__(self, message: str, source_id: str | None = None) -> None:
        super().__init__(message)
        self.source_id = source_id
