"""
FinTrace Forensics - Investigation Access Gate

Single capability check run before every investigation-scoped read or
write: a caller may use an investigation only if they own it.
"""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fintrace.models.forensic import Investigation
from fintrace.utils.error_handling import AccessDeniedException, InvestigationNotFoundException

logger = logging.getLogger(__name__)


class InvestigationAccessGate:
    """Ownership check for investigations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def can_access(self, investigation_id: uuid.UUID, caller_id: uuid.UUID) -> bool:
        owner_id = await self._owner_of(investigation_id)
        return owner_id is not None and owner_id == caller_id

    async def require(self, investigation_id: uuid.UUID, caller_id: uuid.UUID) -> Investigation:
        """
        Return the investigation if the caller owns it.

        Raises:
            InvestigationNotFoundException: no such investigation
            AccessDeniedException: investigation belongs to someone else
        """
        result = await self.db.execute(
            select(Investigation).where(Investigation.id == investigation_id)
        )
        investigation = result.scalar_one_or_none()
        if investigation is None:
            raise InvestigationNotFoundException(investigation_id)

        if investigation.user_id != caller_id:
            logger.warning(
                f"Access denied: user {caller_id} attempted to use investigation {investigation_id}"
            )
            raise AccessDeniedException(investigation_id, caller_id)

        return investigation

    async def _owner_of(self, investigation_id: uuid.UUID):
        result = await self.db.execute(
            select(Investigation.user_id).where(Investigation.id == investigation_id)
        )
        return result.scalar_one_or_none()
