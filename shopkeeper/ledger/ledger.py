"""
Transaction Ledger

The ledger is the only source of truth for money and ice movements.
Every dashboard figure is derived from it on demand.

GUARANTEES:
- Records are never mutated after append
- Only the owner can remove a record; a staff attempt changes nothing
- Display order is newest first, aggregation order oldest first
"""

from typing import Iterable, Iterator, Optional
from uuid import UUID

from shopkeeper.ledger.aggregator import ice_balance
from shopkeeper.models.catalog import ActorRole
from shopkeeper.models.records import TransactionRecord
from shopkeeper.permissions import DELETE_RECORD, require_owner


class TransactionLedger:
    """
    In-memory collection of committed records.

    Persistence and stock reconciliation are triggered by the
    ShopAssistant after each append/remove; the ledger itself does no I/O.
    """

    def __init__(self, records: Optional[Iterable[TransactionRecord]] = None):
        self._records: list[TransactionRecord] = list(records or [])

    def __iter__(self) -> Iterator[TransactionRecord]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def append(self, record: TransactionRecord) -> UUID:
        """Append a committed record and return its id."""
        if self.get(record.id) is not None:
            raise ValueError(f"Record already in ledger: {record.id}")
        self._records.append(record)
        return record.id

    def remove(self, record_id: UUID, role: ActorRole) -> bool:
        """
        Remove a record.

        Returns False if no such record.
        Raises PermissionDeniedError for non-owners, ledger unchanged.
        """
        require_owner(role, DELETE_RECORD)
        for index, record in enumerate(self._records):
            if record.id == record_id:
                del self._records[index]
                return True
        return False

    def get(self, record_id: UUID) -> Optional[TransactionRecord]:
        for record in self._records:
            if record.id == record_id:
                return record
        return None

    def list(self, newest_first: bool = True) -> list[TransactionRecord]:
        """Records ordered by timestamp (newest first for display)."""
        return sorted(
            self._records,
            key=lambda record: record.timestamp,
            reverse=newest_first,
        )

    def ice_balance(self) -> int:
        """Bags outstanding at the shop: delivered minus returned."""
        return ice_balance(self._records)
