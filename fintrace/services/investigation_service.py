"""
FinTrace Forensics - Investigation Case Manager

Case lifecycle for forensic investigations:

    open -> in_progress -> completed -> closed

Status only moves forward (skipping ahead is allowed). A completed or
closed case goes back to open only through reopen(), which records the
reason in the case metadata. Investigations are never deleted.
"""

import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fintrace.models.base import utcnow
from fintrace.models.forensic import Investigation, InvestigationStatus
from fintrace.utils.error_handling import (
    BusinessRuleException,
    DuplicateEntryException,
    ErrorCode,
    InvalidDateRangeException,
    InvalidStatusTransitionException,
    InvestigationNotFoundException,
)
from fintrace.utils.numbering import next_sequence

logger = logging.getLogger(__name__)


STATUS_ORDER = {
    InvestigationStatus.OPEN: 0,
    InvestigationStatus.IN_PROGRESS: 1,
    InvestigationStatus.COMPLETED: 2,
    InvestigationStatus.CLOSED: 3,
}

REOPENABLE_STATUSES = {InvestigationStatus.COMPLETED, InvestigationStatus.CLOSED}


class InvestigationService:
    """Service for investigation case management."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_investigation(
        self,
        user_id: uuid.UUID,
        title: str,
        case_number: Optional[str] = None,
        description: Optional[str] = None,
        allegations: Optional[str] = None,
        investigation_period_start: Optional[datetime] = None,
        investigation_period_end: Optional[datetime] = None,
        lead_investigator: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Investigation:
        """Open a new investigation owned by user_id."""
        if (
            investigation_period_start
            and investigation_period_end
            and investigation_period_end < investigation_period_start
        ):
            raise InvalidDateRangeException(
                investigation_period_start.isoformat(),
                investigation_period_end.isoformat(),
            )

        if case_number:
            existing = await self.db.execute(
                select(Investigation.id).where(Investigation.case_number == case_number)
            )
            if existing.scalar_one_or_none() is not None:
                raise DuplicateEntryException("Investigation", "case_number", case_number)
        else:
            case_number = await self._generate_case_number()

        investigation = Investigation(
            user_id=user_id,
            case_number=case_number,
            title=title,
            description=description,
            allegations=allegations,
            investigation_period_start=investigation_period_start,
            investigation_period_end=investigation_period_end,
            status=InvestigationStatus.OPEN,
            lead_investigator=lead_investigator,
            case_metadata=metadata or {},
        )

        self.db.add(investigation)
        await self.db.commit()
        await self.db.refresh(investigation)

        logger.info(f"Opened investigation {investigation.case_number} ({investigation.id}) for user {user_id}")
        return investigation

    async def get_investigation(self, investigation_id: uuid.UUID) -> Optional[Investigation]:
        result = await self.db.execute(
            select(Investigation).where(Investigation.id == investigation_id)
        )
        return result.scalar_one_or_none()

    async def list_investigations(self, user_id: uuid.UUID) -> List[Investigation]:
        """Investigations owned by the user, newest first."""
        result = await self.db.execute(
            select(Investigation)
            .where(Investigation.user_id == user_id)
            .order_by(Investigation.created_at.desc())
        )
        return list(result.scalars().all())

    async def update_status(
        self,
        investigation_id: uuid.UUID,
        status: InvestigationStatus,
    ) -> Investigation:
        """
        Move an investigation forward in its lifecycle.

        Setting the current status again is a no-op.

        Raises:
            InvestigationNotFoundException: no such investigation
            InvalidStatusTransitionException: requested status is behind the current one
        """
        investigation = await self._get_or_raise(investigation_id)
        current = investigation.status

        if status == current:
            return investigation

        if STATUS_ORDER[status] < STATUS_ORDER[current]:
            raise InvalidStatusTransitionException(current.value, status.value)

        investigation.status = status
        await self.db.commit()
        await self.db.refresh(investigation)

        logger.info(f"Investigation {investigation.case_number}: {current.value} -> {status.value}")
        return investigation

    async def reopen(
        self,
        investigation_id: uuid.UUID,
        reason: str,
        reopened_by: Optional[uuid.UUID] = None,
    ) -> Investigation:
        """
        Move a completed or closed investigation back to open.

        The reason, the previous status and the time are appended to
        metadata["reopen_history"].
        """
        investigation = await self._get_or_raise(investigation_id)
        previous = investigation.status

        if previous not in REOPENABLE_STATUSES:
            raise BusinessRuleException(
                message=f"Only completed or closed investigations can be reopened (current: {previous.value})",
                rule="REOPEN_REQUIRES_COMPLETED_OR_CLOSED",
                code=ErrorCode.INVALID_STATUS_TRANSITION,
                details={"current_status": previous.value},
            )

        # Reassign a new dict so the JSON column is flagged as changed
        metadata = dict(investigation.case_metadata or {})
        history = list(metadata.get("reopen_history", []))
        history.append({
            "reason": reason,
            "previous_status": previous.value,
            "reopened_at": utcnow().isoformat(),
            "reopened_by": str(reopened_by) if reopened_by else None,
        })
        metadata["reopen_history"] = history

        investigation.case_metadata = metadata
        investigation.status = InvestigationStatus.OPEN
        await self.db.commit()
        await self.db.refresh(investigation)

        logger.info(f"Investigation {investigation.case_number} reopened from {previous.value}: {reason}")
        return investigation

    async def _get_or_raise(self, investigation_id: uuid.UUID) -> Investigation:
        investigation = await self.get_investigation(investigation_id)
        if investigation is None:
            raise InvestigationNotFoundException(investigation_id)
        return investigation

    async def _generate_case_number(self) -> str:
        """Generate a unique case number."""
        prefix = f"FI-{utcnow().year}-"

        result = await self.db.execute(
            select(Investigation.case_number).where(
                Investigation.case_number.like(f"{prefix}%")
            )
        )
        sequence = next_sequence(result.scalars().all(), prefix)

        return f"{prefix}{sequence:04d}"
