"""Errors raised at the store boundary."""


class StoreError(RuntimeError):
    """A read or write against the entry store failed."""


class EntryNotFoundError(StoreError):
    """The requested record does not exist."""

    def __init__(self, collection: str, record_id: str) -> None:
        super().__init__(f"{collection} record {record_id} not found")
        self.collection = collection
        self.record_id = record_id


class TransactionConflictError(StoreError):
    """A read-modify-write kept losing to concurrent writers."""

    def __init__(self, user_id: str, attempts: int) -> None:
        super().__init__(
            f"Stats transaction for user {user_id} failed after {attempts} attempts"
        )
        self.user_id = user_id
        self.attempts = attempts


class UndecodableDocumentError(StoreError):
    """A stored document could not be decoded and has no safe default."""
