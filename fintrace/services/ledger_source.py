"""
FinTrace Forensics - Ledger Source

Read-only access to the normalized transaction ledger. The engine never
writes to this table.
"""

import logging
import uuid
from typing import Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fintrace.models.transaction import LedgerTransaction
from fintrace.schemas.forensic import TransactionRecord
from fintrace.utils.error_handling import TransactionNotFoundException

logger = logging.getLogger(__name__)


class LedgerSource:
    """Loads an owner's transactions as immutable TransactionRecord snapshots."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def snapshot(self, owner_id: uuid.UUID) -> List[TransactionRecord]:
        """All of the owner's transactions, oldest first."""
        result = await self.db.execute(
            select(LedgerTransaction)
            .where(LedgerTransaction.user_id == owner_id)
            .order_by(LedgerTransaction.transaction_date, LedgerTransaction.created_at)
        )
        records = [TransactionRecord.from_ledger(t) for t in result.scalars().all()]
        logger.debug(f"Loaded {len(records)} ledger transactions for owner {owner_id}")
        return records

    async def get(self, owner_id: uuid.UUID, transaction_id: uuid.UUID) -> Optional[TransactionRecord]:
        result = await self.db.execute(
            select(LedgerTransaction).where(
                LedgerTransaction.id == transaction_id,
                LedgerTransaction.user_id == owner_id,
            )
        )
        transaction = result.scalar_one_or_none()
        return TransactionRecord.from_ledger(transaction) if transaction else None

    async def get_many(
        self,
        owner_id: uuid.UUID,
        transaction_ids: Iterable[uuid.UUID],
    ) -> List[TransactionRecord]:
        """
        Load the given transactions in the order requested.

        Raises:
            TransactionNotFoundException: an id is not in the owner's ledger
        """
        ids = list(transaction_ids)
        if not ids:
            return []

        result = await self.db.execute(
            select(LedgerTransaction).where(
                LedgerTransaction.id.in_(ids),
                LedgerTransaction.user_id == owner_id,
            )
        )
        found = {t.id: t for t in result.scalars().all()}

        records = []
        for transaction_id in ids:
            transaction = found.get(transaction_id)
            if transaction is None:
                raise TransactionNotFoundException(transaction_id)
            records.append(TransactionRecord.from_ledger(transaction))
        return records
