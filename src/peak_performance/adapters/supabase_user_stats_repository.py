"""Supabase repository for user stats documents."""

import logging
from dataclasses import dataclass

from supabase import Client

from peak_performance.adapters.supabase_query import Row, execute, is_unique_violation
from peak_performance.domain.documents import Document
from peak_performance.domain.errors import StoreError, TransactionConflictError
from peak_performance.services.stats import StatsMutation, UserStatsRepository

_logger = logging.getLogger(__name__)

_TABLE = "users"


@dataclass
class SupabaseUserStatsRepository(UserStatsRepository):
    """Stats documents in the ``users`` table.

    PostgREST has no multi-statement transactions, so read-modify-write uses
    optimistic concurrency on the ``version`` column: the write only lands if
    the version is still the one that was read, otherwise the mutation is
    re-run against a fresh read.
    """

    client: Client
    max_attempts: int = 5

    def get_document(self, user_id: str) -> Document | None:
        row = self._select(user_id)
        return _document(row) if row is not None else None

    def insert_document(self, user_id: str, document: Document) -> None:
        execute(
            self.client.table(_TABLE).insert({**document, "id": user_id, "version": 1})
        )

    def merge_document(self, user_id: str, document: Document) -> None:
        self.run_transaction(user_id, lambda _current: document)

    def run_transaction(self, user_id: str, mutation: StatsMutation) -> Document:
        for attempt in range(1, self.max_attempts + 1):
            row = self._select(user_id)
            if row is None:
                committed = self._try_insert(user_id, mutation(None))
            else:
                version = int(row.get("version") or 0)
                committed = self._try_update(user_id, version, mutation(_document(row)))
            if committed is not None:
                return _document(committed)
            _logger.info(
                "Stats write conflict: user_id=%s attempt=%s", user_id, attempt
            )
        raise TransactionConflictError(user_id, self.max_attempts)

    def _select(self, user_id: str) -> Row | None:
        rows = execute(
            self.client.table(_TABLE).select("*").eq("id", user_id).limit(1)
        )
        return rows[0] if rows else None

    def _try_insert(self, user_id: str, document: Document) -> Row | None:
        try:
            rows = execute(
                self.client.table(_TABLE).insert(
                    {**document, "id": user_id, "version": 1}
                )
            )
        except StoreError as exc:
            if is_unique_violation(exc):
                return None
            raise
        return rows[0] if rows else None

    def _try_update(self, user_id: str, version: int, document: Document) -> Row | None:
        rows = execute(
            self.client.table(_TABLE)
            .update({**document, "version": version + 1})
            .eq("id", user_id)
            .eq("version", version)
        )
        return rows[0] if rows else None


def _document(row: Row) -> Document:
    return {key: value for key, value in row.items() if key not in {"id", "version"}}
