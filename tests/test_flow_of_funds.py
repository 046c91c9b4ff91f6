"""
FinTrace Forensics - Flow-of-Funds Tests
"""

import pytest
from datetime import datetime
from decimal import Decimal
from uuid import uuid4

from fintrace.models.forensic import FlowOfFundsRecord, Traceability, TransferMethod
from fintrace.models.transaction import TransactionType
from fintrace.schemas.forensic import FlowOfFundsRecordCreateRequest, TransactionRecord
from fintrace.services.flow_of_funds import FlowOfFundsService, build_trace
from fintrace.utils.error_handling import TransactionNotFoundException


def hop(destination: str, amount: str, when: datetime, beneficiaries=(), traceability=Traceability.PARTIALLY_TRACED):
    return FlowOfFundsRecord(
        flow_name=f"To {destination}",
        source_account="Operating account",
        destination_account=destination,
        amount=Decimal(amount),
        transaction_date=when,
        transfer_method=TransferMethod.WIRE,
        intermediaries=[],
        beneficiaries=list(beneficiaries),
        traceability=traceability,
    )


class TestBuildTrace:

    def setup_method(self):
        self.source = TransactionRecord(
            id=uuid4(),
            amount=Decimal("-75000.00"),
            date=datetime(2024, 3, 9, 11, 0),
            description="consulting",
            title="Shell Advisory LLC",
        )

    def test_single_hop_from_source(self):
        trace = build_trace(self.source)

        assert len(trace.path) == 1
        first = trace.path[0]
        assert first.step == 1
        assert first.account == "Source Account"
        assert first.entity == "Shell Advisory LLC"
        assert first.amount == Decimal("75000.00")
        assert first.method == "payment"
        assert trace.total_amount == Decimal("75000.00")
        assert trace.ultimate_beneficiaries == ["Shell Advisory LLC"]
        assert trace.traceability == Traceability.PARTIALLY_TRACED

    def test_income_source_is_a_deposit(self):
        income = TransactionRecord(amount=Decimal("5200.75"), type=TransactionType.INCOME)

        trace = build_trace(income)

        assert trace.path[0].method == "deposit"
        assert trace.path[0].entity == "Unknown"
        assert trace.ultimate_beneficiaries == ["Unknown"]

    def test_recorded_hops_follow_in_date_order(self):
        later = hop("Offshore Ltd", "40000", datetime(2024, 3, 20), beneficiaries=["J. Doe"],
                    traceability=Traceability.FULLY_TRACED)
        earlier = hop("Holding Co", "75000", datetime(2024, 3, 12), beneficiaries=["Holding Co", "J. Doe"])

        trace = build_trace(self.source, [later, earlier])

        assert [step.step for step in trace.path] == [1, 2, 3]
        assert [step.account for step in trace.path] == ["Source Account", "Holding Co", "Offshore Ltd"]
        assert trace.path[1].method == "wire"
        assert trace.ultimate_beneficiaries == ["Holding Co", "J. Doe"]
        assert trace.traceability == Traceability.FULLY_TRACED

    def test_each_trace_gets_its_own_id(self):
        assert build_trace(self.source).flow_id != build_trace(self.source).flow_id


class TestFlowOfFundsService:

    @pytest.mark.asyncio
    async def test_trace_ledger_transaction(self, db_session, test_user, test_investigation, ledger_transactions):
        service = FlowOfFundsService(db_session)
        consulting = ledger_transactions[2]

        trace = await service.trace_flow_of_funds(test_investigation.id, test_user.id, consulting.id)

        assert trace.total_amount == Decimal("75000.00")
        assert trace.path[0].entity == "Shell Advisory LLC"

    @pytest.mark.asyncio
    async def test_recorded_hop_extends_trace(self, db_session, test_user, test_investigation, ledger_transactions):
        service = FlowOfFundsService(db_session)
        consulting = ledger_transactions[2]

        await service.create_flow_of_funds_record(
            test_investigation.id,
            test_user.id,
            FlowOfFundsRecordCreateRequest(
                flow_name="Consulting fee onward transfer",
                source_transaction_id=consulting.id,
                source_account="Shell Advisory LLC",
                destination_account="Private account 4471",
                amount=Decimal("70000.00"),
                transaction_date=datetime(2024, 3, 11, 9, 0),
                transfer_method=TransferMethod.ACH,
                beneficiaries=["R. Vendor"],
            ),
        )

        trace = await service.trace_flow_of_funds(test_investigation.id, test_user.id, consulting.id)
        records = await service.get_flow_of_funds(test_investigation.id, consulting.id)

        assert len(records) == 1
        assert len(trace.path) == 2
        assert trace.path[1].account == "Private account 4471"
        assert trace.ultimate_beneficiaries == ["R. Vendor"]

    @pytest.mark.asyncio
    async def test_unknown_transaction(self, db_session, test_user, test_investigation):
        service = FlowOfFundsService(db_session)

        with pytest.raises(TransactionNotFoundException):
            await service.trace_flow_of_funds(test_investigation.id, test_user.id, uuid4())

    @pytest.mark.asyncio
    async def test_other_owners_transaction_is_not_found(
        self, db_session, other_user, test_investigation, ledger_transactions
    ):
        service = FlowOfFundsService(db_session)

        with pytest.raises(TransactionNotFoundException):
            await service.trace_flow_of_funds(test_investigation.id, other_user.id, ledger_transactions[0].id)
