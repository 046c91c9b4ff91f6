"""
FinTrace Forensics - Flow-of-Funds Tracer

Follows a ledger transaction towards its ultimate beneficiaries. The
first hop is always the source transaction. Further hops come only from
FlowOfFundsRecord rows an investigator linked to that transaction; no
automatic multi-hop resolution is attempted.
"""

import logging
import uuid
from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fintrace.models.base import utcnow
from fintrace.models.forensic import FlowOfFundsRecord, Traceability
from fintrace.models.transaction import TransactionType
from fintrace.schemas.forensic import (
    FlowOfFundsRecordCreateRequest,
    FlowOfFundsTrace,
    FlowStep,
    TransactionRecord,
)
from fintrace.services.ledger_source import LedgerSource
from fintrace.utils.error_handling import TransactionNotFoundException

logger = logging.getLogger(__name__)


SOURCE_ACCOUNT_LABEL = "Source Account"
UNKNOWN_ENTITY = "Unknown"


def _hop_sort_key(record: FlowOfFundsRecord):
    # Undated hops go last, ties keep recording order
    return (record.transaction_date is None, record.transaction_date or datetime.min, record.created_at)


def build_trace(
    source: TransactionRecord,
    recorded_hops: Sequence[FlowOfFundsRecord] = (),
) -> FlowOfFundsTrace:
    """Assemble a trace from the source transaction and any recorded hops."""
    entity = source.title or UNKNOWN_ENTITY
    amount = abs(source.amount)

    path = [FlowStep(
        step=1,
        account=SOURCE_ACCOUNT_LABEL,
        entity=entity,
        amount=amount,
        date=source.date or utcnow(),
        method="payment" if source.type == TransactionType.EXPENSE else "deposit",
    )]

    beneficiaries: List[str] = []
    fully_traced = False

    for record in sorted(recorded_hops, key=_hop_sort_key):
        path.append(FlowStep(
            step=len(path) + 1,
            account=record.destination_account,
            entity=", ".join(record.beneficiaries) or record.destination_account,
            amount=record.amount,
            date=record.transaction_date or record.created_at or utcnow(),
            method=record.transfer_method.value if record.transfer_method else "other",
        ))
        for beneficiary in record.beneficiaries:
            if beneficiary not in beneficiaries:
                beneficiaries.append(beneficiary)
        if record.traceability == Traceability.FULLY_TRACED:
            fully_traced = True

    return FlowOfFundsTrace(
        flow_id=uuid.uuid4(),
        path=path,
        total_amount=amount,
        ultimate_beneficiaries=beneficiaries or [entity],
        traceability=Traceability.FULLY_TRACED if fully_traced else Traceability.PARTIALLY_TRACED,
    )


class FlowOfFundsService:
    """Service for tracing funds and recording investigator hops."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.ledger = LedgerSource(db)

    async def trace_flow_of_funds(
        self,
        investigation_id: uuid.UUID,
        owner_id: uuid.UUID,
        source_transaction_id: uuid.UUID,
    ) -> FlowOfFundsTrace:
        """
        Raises:
            TransactionNotFoundException: source is not in the owner's ledger
        """
        source = await self.ledger.get(owner_id, source_transaction_id)
        if source is None:
            raise TransactionNotFoundException(source_transaction_id)

        result = await self.db.execute(
            select(FlowOfFundsRecord).where(
                FlowOfFundsRecord.investigation_id == investigation_id,
                FlowOfFundsRecord.source_transaction_id == source_transaction_id,
            )
        )
        hops = list(result.scalars().all())

        trace = build_trace(source, hops)
        logger.info(
            f"Traced transaction {source_transaction_id} for investigation {investigation_id}: "
            f"{len(trace.path)} hops, {trace.traceability.value}"
        )
        return trace

    async def create_flow_of_funds_record(
        self,
        investigation_id: uuid.UUID,
        owner_id: uuid.UUID,
        data: FlowOfFundsRecordCreateRequest,
    ) -> FlowOfFundsRecord:
        """Record one investigator-traced money movement."""
        if data.source_transaction_id is not None:
            source = await self.ledger.get(owner_id, data.source_transaction_id)
            if source is None:
                raise TransactionNotFoundException(data.source_transaction_id)

        record = FlowOfFundsRecord(
            investigation_id=investigation_id,
            **data.model_dump(),
        )
        self.db.add(record)
        await self.db.commit()
        await self.db.refresh(record)

        logger.info(f"Recorded flow '{record.flow_name}' for investigation {investigation_id}")
        return record

    async def get_flow_of_funds(
        self,
        investigation_id: uuid.UUID,
        source_transaction_id: Optional[uuid.UUID] = None,
    ) -> List[FlowOfFundsRecord]:
        """Recorded flows for an investigation, oldest first."""
        query = select(FlowOfFundsRecord).where(FlowOfFundsRecord.investigation_id == investigation_id)
        if source_transaction_id is not None:
            query = query.where(FlowOfFundsRecord.source_transaction_id == source_transaction_id)
        result = await self.db.execute(query.order_by(FlowOfFundsRecord.created_at))
        return list(result.scalars().all())


__all__ = ["FlowOfFundsService", "build_trace"]
