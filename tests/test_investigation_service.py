"""
FinTrace Forensics - Investigation Service Tests

Case lifecycle and access gate.
"""

import pytest
from datetime import datetime, timezone
from uuid import uuid4

from fintrace.models.forensic import InvestigationStatus
from fintrace.services.access_gate import InvestigationAccessGate
from fintrace.services.investigation_service import InvestigationService
from fintrace.utils.error_handling import (
    AccessDeniedException,
    BusinessRuleException,
    DuplicateEntryException,
    InvalidDateRangeException,
    InvalidStatusTransitionException,
    InvestigationNotFoundException,
)


class TestInvestigationService:
    """Test cases for InvestigationService."""

    @pytest.mark.asyncio
    async def test_create_investigation(self, db_session, test_user):
        service = InvestigationService(db_session)

        investigation = await service.create_investigation(
            user_id=test_user.id,
            title="Payroll ghost employees",
            metadata={"department": "finance"},
        )

        assert investigation.status == InvestigationStatus.OPEN
        assert investigation.case_number.startswith(f"FI-{datetime.now(timezone.utc).year}-")
        assert investigation.case_metadata == {"department": "finance"}
        assert investigation.user_id == test_user.id

    @pytest.mark.asyncio
    async def test_case_numbers_are_sequential(self, db_session, test_user):
        service = InvestigationService(db_session)

        first = await service.create_investigation(user_id=test_user.id, title="First")
        second = await service.create_investigation(user_id=test_user.id, title="Second")

        assert first.case_number.endswith("-0001")
        assert second.case_number.endswith("-0002")

    @pytest.mark.asyncio
    async def test_generated_number_follows_explicit_one(self, db_session, test_user):
        service = InvestigationService(db_session)
        year = datetime.now(timezone.utc).year

        await service.create_investigation(user_id=test_user.id, title="Imported", case_number=f"FI-{year}-0002")
        generated = await service.create_investigation(user_id=test_user.id, title="New")

        assert generated.case_number == f"FI-{year}-0003"

    @pytest.mark.asyncio
    async def test_duplicate_case_number_rejected(self, db_session, test_user):
        service = InvestigationService(db_session)
        await service.create_investigation(user_id=test_user.id, title="A", case_number="CASE-42")

        with pytest.raises(DuplicateEntryException):
            await service.create_investigation(user_id=test_user.id, title="B", case_number="CASE-42")

    @pytest.mark.asyncio
    async def test_invalid_period_rejected(self, db_session, test_user):
        service = InvestigationService(db_session)

        with pytest.raises(InvalidDateRangeException):
            await service.create_investigation(
                user_id=test_user.id,
                title="Backwards",
                investigation_period_start=datetime(2024, 6, 1, tzinfo=timezone.utc),
                investigation_period_end=datetime(2024, 1, 1, tzinfo=timezone.utc),
            )

    @pytest.mark.asyncio
    async def test_list_is_scoped_to_owner(self, db_session, test_user, other_user, test_investigation):
        service = InvestigationService(db_session)
        await service.create_investigation(user_id=other_user.id, title="Someone else's case")

        mine = await service.list_investigations(test_user.id)

        assert [i.id for i in mine] == [test_investigation.id]


class TestInvestigationLifecycle:

    @pytest.mark.asyncio
    async def test_forward_transitions(self, db_session, test_investigation):
        service = InvestigationService(db_session)

        updated = await service.update_status(test_investigation.id, InvestigationStatus.IN_PROGRESS)
        assert updated.status == InvestigationStatus.IN_PROGRESS

        updated = await service.update_status(test_investigation.id, InvestigationStatus.CLOSED)
        assert updated.status == InvestigationStatus.CLOSED

    @pytest.mark.asyncio
    async def test_same_status_is_noop(self, db_session, test_investigation):
        service = InvestigationService(db_session)

        updated = await service.update_status(test_investigation.id, InvestigationStatus.OPEN)

        assert updated.status == InvestigationStatus.OPEN

    @pytest.mark.asyncio
    async def test_backward_transition_rejected(self, db_session, test_investigation):
        service = InvestigationService(db_session)
        await service.update_status(test_investigation.id, InvestigationStatus.COMPLETED)

        with pytest.raises(InvalidStatusTransitionException) as exc_info:
            await service.update_status(test_investigation.id, InvestigationStatus.IN_PROGRESS)

        assert exc_info.value.status_code == 422
        assert exc_info.value.details["current_status"] == "completed"

    @pytest.mark.asyncio
    async def test_reopen_records_history(self, db_session, test_user, test_investigation):
        service = InvestigationService(db_session)
        await service.update_status(test_investigation.id, InvestigationStatus.CLOSED)

        reopened = await service.reopen(test_investigation.id, "New bank records received", test_user.id)

        assert reopened.status == InvestigationStatus.OPEN
        history = reopened.case_metadata["reopen_history"]
        assert len(history) == 1
        assert history[0]["reason"] == "New bank records received"
        assert history[0]["previous_status"] == "closed"
        assert history[0]["reopened_by"] == str(test_user.id)

    @pytest.mark.asyncio
    async def test_reopen_requires_completed_or_closed(self, db_session, test_investigation):
        service = InvestigationService(db_session)

        with pytest.raises(BusinessRuleException):
            await service.reopen(test_investigation.id, "Too early")

    @pytest.mark.asyncio
    async def test_unknown_investigation(self, db_session):
        service = InvestigationService(db_session)

        with pytest.raises(InvestigationNotFoundException):
            await service.update_status(uuid4(), InvestigationStatus.CLOSED)


class TestAccessGate:

    @pytest.mark.asyncio
    async def test_owner_has_access(self, db_session, test_user, test_investigation):
        gate = InvestigationAccessGate(db_session)

        assert await gate.can_access(test_investigation.id, test_user.id) is True
        assert (await gate.require(test_investigation.id, test_user.id)).id == test_investigation.id

    @pytest.mark.asyncio
    async def test_other_user_is_denied(self, db_session, other_user, test_investigation):
        gate = InvestigationAccessGate(db_session)

        assert await gate.can_access(test_investigation.id, other_user.id) is False
        with pytest.raises(AccessDeniedException):
            await gate.require(test_investigation.id, other_user.id)

    @pytest.mark.asyncio
    async def test_missing_investigation(self, db_session, test_user):
        gate = InvestigationAccessGate(db_session)

        assert await gate.can_access(uuid4(), test_user.id) is False
        with pytest.raises(InvestigationNotFoundException):
            await gate.require(uuid4(), test_user.id)
