"""Exceptions raised by a trimming run."""

from __future__ import annotations

from collections.abc import Sequence

NO_METHODS_RESOLVED = "No methods matched the given selectors; no files were trimmed."


class TrimError(Exception):
    """Base class for every fatal trimming error."""


class ParseFailure(TrimError):
    def __init__(self, files: Sequence[str], details: str) -> None:
        self.files = list(files)
        self.details = details
        super().__init__(f"Failed to parse proto files {', '.join(self.files)}: {details}")


class MethodNotFound(TrimError):
    def __init__(self, selector: str) -> None:
        self.selector = selector
        super().__init__(f"Method matching '{selector}' not found in any of the entry files or their imports.")


class EntryFileNotFound(TrimError):
    def __init__(self, identity: str) -> None:
        self.identity = identity
        super().__init__(f"Entry file '{identity}' was not found in the supplied proto files.")


class DescriptorRebuildFailure(TrimError):
    def __init__(self, file_name: str, reason: str) -> None:
        self.file_name = file_name
        super().__init__(f"Failed to rebuild trimmed descriptor {file_name}: {reason}")


class SerializationFailure(TrimError):
    def __init__(self, file_name: str, reason: str) -> None:
        self.file_name = file_name
        super().__init__(f"Failed to print trimmed proto file {file_name}: {reason}")


class PathConflict(TrimError):
    def __init__(self, canonical: str, first: str, second: str) -> None:
        self.canonical = canonical
        super().__init__(f"Files '{first}' and '{second}' both map to '{canonical}'.")


class UnknownTypeReference(TrimError):
    def __init__(self, type_name: str, referrer: str) -> None:
        self.type_name = type_name
        self.referrer = referrer
        super().__init__(f"Type '{type_name}' referenced by '{referrer}' is not defined in the parsed files.")
