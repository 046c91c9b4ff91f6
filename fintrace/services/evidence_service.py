"""
FinTrace Forensics - Evidence Ledger

Append-only store of evidentiary artifacts and their chain of custody.

Evidence rows and custody entries are inserted, never updated or
deleted. The only write on an existing evidence item is appending the
next custody entry.
"""

import hashlib
import logging
import uuid
from datetime import datetime
from typing import Any, BinaryIO, Dict, List, Optional, Sequence, Union

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from fintrace.models.base import utcnow
from fintrace.models.forensic import CustodyEntry, Evidence, EvidenceType
from fintrace.schemas.forensic import CustodyEntryCreateRequest, EvidenceHashVerification
from fintrace.utils.error_handling import DuplicateEntryException, EvidenceNotFoundException
from fintrace.utils.numbering import next_sequence

logger = logging.getLogger(__name__)


HASH_CHUNK_SIZE = 64 * 1024


def calculate_file_hash(content: Union[bytes, BinaryIO]) -> str:
    """SHA-256 hex digest of raw bytes or a binary file object."""
    digest = hashlib.sha256()
    if isinstance(content, (bytes, bytearray, memoryview)):
        digest.update(content)
    else:
        for chunk in iter(lambda: content.read(HASH_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


class EvidenceService:
    """Service for evidence and chain-of-custody records."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def add_evidence(
        self,
        investigation_id: uuid.UUID,
        evidence_type: EvidenceType,
        description: str,
        source: str,
        evidence_number: Optional[str] = None,
        date_received: Optional[datetime] = None,
        collected_by: Optional[str] = None,
        storage_location: Optional[str] = None,
        hash_value: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        chain_of_custody: Sequence[CustodyEntryCreateRequest] = (),
    ) -> Evidence:
        """Record a new evidence item, optionally with its prior custody history."""
        if evidence_number:
            existing = await self.db.execute(
                select(Evidence.id).where(
                    Evidence.investigation_id == investigation_id,
                    Evidence.evidence_number == evidence_number,
                )
            )
            if existing.scalar_one_or_none() is not None:
                raise DuplicateEntryException("Evidence", "evidence_number", evidence_number)
        else:
            evidence_number = await self._generate_evidence_number(investigation_id)

        evidence = Evidence(
            investigation_id=investigation_id,
            evidence_number=evidence_number,
            evidence_type=evidence_type,
            description=description,
            source=source,
            date_received=date_received or utcnow(),
            collected_by=collected_by,
            storage_location=storage_location,
            hash_value=hash_value.lower() if hash_value else None,
            evidence_metadata=metadata or {},
        )
        self.db.add(evidence)
        await self.db.flush()

        for sequence, entry in enumerate(chain_of_custody, start=1):
            self.db.add(self._custody_row(evidence.id, sequence, entry))

        await self.db.commit()

        logger.info(
            f"Evidence {evidence_number} added to investigation {investigation_id} "
            f"with {len(chain_of_custody)} custody entries"
        )
        return await self._load(evidence.id)

    async def get_evidence(self, investigation_id: uuid.UUID) -> List[Evidence]:
        """All evidence for an investigation in the order it was recorded."""
        result = await self.db.execute(
            select(Evidence)
            .options(selectinload(Evidence.custody_entries))
            .where(Evidence.investigation_id == investigation_id)
            .order_by(Evidence.created_at)
        )
        return list(result.scalars().all())

    async def get_evidence_item(
        self,
        investigation_id: uuid.UUID,
        evidence_id: uuid.UUID,
    ) -> Evidence:
        evidence = await self._load(evidence_id)
        if evidence is None or evidence.investigation_id != investigation_id:
            raise EvidenceNotFoundException(evidence_id)
        return evidence

    async def append_custody_entry(
        self,
        investigation_id: uuid.UUID,
        evidence_id: uuid.UUID,
        entry: CustodyEntryCreateRequest,
    ) -> Evidence:
        """
        Append the next entry to an evidence item's custody log.

        Existing entries are never touched; the new entry gets the next
        sequence number.
        """
        await self.get_evidence_item(investigation_id, evidence_id)

        result = await self.db.execute(
            select(func.max(CustodyEntry.sequence)).where(CustodyEntry.evidence_id == evidence_id)
        )
        sequence = (result.scalar() or 0) + 1

        self.db.add(self._custody_row(evidence_id, sequence, entry))
        await self.db.commit()

        logger.info(
            f"Custody entry {sequence} appended to evidence {evidence_id}: "
            f"{entry.transferred_by} -> {entry.transferred_to}"
        )
        return await self._load(evidence_id)

    async def verify_evidence_hash(
        self,
        investigation_id: uuid.UUID,
        evidence_id: uuid.UUID,
        content: Union[bytes, BinaryIO],
    ) -> EvidenceHashVerification:
        """Compare file content against the hash recorded for the evidence."""
        evidence = await self.get_evidence_item(investigation_id, evidence_id)
        actual = calculate_file_hash(content)
        matches = evidence.hash_value is not None and evidence.hash_value.lower() == actual

        if not matches:
            logger.warning(f"Hash mismatch for evidence {evidence.evidence_number} ({evidence_id})")

        return EvidenceHashVerification(
            evidence_id=evidence_id,
            expected_hash=evidence.hash_value,
            actual_hash=actual,
            matches=matches,
        )

    def _custody_row(
        self,
        evidence_id: uuid.UUID,
        sequence: int,
        entry: CustodyEntryCreateRequest,
    ) -> CustodyEntry:
        return CustodyEntry(
            evidence_id=evidence_id,
            sequence=sequence,
            transferred_to=entry.transferred_to,
            transferred_by=entry.transferred_by,
            timestamp=entry.timestamp or utcnow(),
            location=entry.location,
            purpose=entry.purpose,
        )

    async def _load(self, evidence_id: uuid.UUID) -> Optional[Evidence]:
        result = await self.db.execute(
            select(Evidence)
            .options(selectinload(Evidence.custody_entries))
            .where(Evidence.id == evidence_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _generate_evidence_number(self, investigation_id: uuid.UUID) -> str:
        """Next EV-NNNN number within the investigation."""
        prefix = "EV-"
        result = await self.db.execute(
            select(Evidence.evidence_number).where(Evidence.investigation_id == investigation_id)
        )
        sequence = next_sequence(result.scalars().all(), prefix)
        return f"{prefix}{sequence:04d}"
