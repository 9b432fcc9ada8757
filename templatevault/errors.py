class StoreError(Exception):
    """Base class for every failure raised by the template store."""


class NotInitializedError(StoreError):
    def __init__(self, message="Database not initialized"):
        super().__init__(message)


class LockError(StoreError):
    """The access gate could not be acquired."""


class EncodeError(StoreError):
    """A nested field could not be serialized for storage."""


class DecodeError(StoreError):
    """A stored column could not be parsed back into a record."""

    def __init__(self, record_id, column, reason):
        self.record_id = record_id
        self.column = column
        super().__init__(f"Failed to decode column {column!r} of record {record_id!r}: {reason}")


class StorageEngineError(StoreError):
    """The embedded database reported a failure."""
