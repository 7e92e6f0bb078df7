"""Exceptions raised by the content transfer engine."""

from __future__ import annotations


class TransferError(Exception):
    """Base class for all transfer failures."""


class StateMismatchError(TransferError):
    """Source and destination are at different migration versions."""

    def __init__(
        self,
        source: str,
        source_version: int | None,
        destination: str,
        destination_version: int | None,
    ) -> None:
        self.source = source
        self.source_version = source_version
        self.destination = destination
        self.destination_version = destination_version
        super().__init__(
            f"Different migration states detected. "
            f"{source} ({source_version}) != "
            f"{destination} ({destination_version})"
        )


class FetchError(TransferError):
    """Retrieving an environment snapshot failed."""

    def __init__(self, environment: str, collection: str, reason: str) -> None:
        self.environment = environment
        self.collection = collection
        super().__init__(
            f"Failed to fetch {collection} from environment "
            f"'{environment}': {reason}"
        )


class DiffResolutionError(TransferError):
    """A field value does not match the shape of its declared type.

    Raised and caught inside the diff engine only; the field is then
    reported as an opaque change.
    """

    def __init__(self, field_id: str, field_type: str, value: object) -> None:
        self.field_id = field_id
        self.field_type = field_type
        super().__init__(
            f"Cannot interpret value of field '{field_id}' as {field_type}: "
            f"{type(value).__name__}"
        )


class CommitError(TransferError):
    """The import into the destination environment failed.

    Attributes:
        messages: One message per failed record (or a single message
            for a failure of the whole import).
    """

    def __init__(self, messages: list[str]) -> None:
        self.messages = list(messages)
        detail = "; ".join(self.messages) if self.messages else "unknown error"
        super().__init__(f"Import failed: {detail}")
