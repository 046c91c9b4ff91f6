"""
FinTrace Forensics - Forensics Router

API endpoints for forensic investigations:
1. Investigation case management
2. Evidence and chain of custody
3. Transaction risk scoring and anomaly detection
4. Benford's Law analysis
5. Flow-of-funds tracing
6. Damage calculations
7. Executive summaries and reports

Every /investigations/{investigation_id} route resolves the investigation
through the access gate before doing anything else.
"""

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from fintrace.database import get_db
from fintrace.dependencies import get_authorized_investigation, get_current_user
from fintrace.models.forensic import Investigation
from fintrace.models.user import User
from fintrace.schemas.forensic import (
    AnomalyDetectionResult,
    AnomalyResponse,
    BenfordAmountsRequest,
    BenfordAnalysisSummary,
    ComprehensiveAnalysisResult,
    CustodyEntryCreateRequest,
    DamageCalculation,
    DirectLossRequest,
    EvidenceCreateRequest,
    EvidenceHashVerification,
    EvidenceResponse,
    ExecutiveSummaryResponse,
    FileHashResponse,
    FlowOfFundsRecordCreateRequest,
    FlowOfFundsRecordResponse,
    FlowOfFundsTrace,
    FlowTraceRequest,
    ForensicReportCreateRequest,
    ForensicReportResponse,
    InterestRequest,
    InterestResponse,
    InvestigationCreateRequest,
    InvestigationReopenRequest,
    InvestigationResponse,
    InvestigationStatusUpdateRequest,
    NetWorthRequest,
    TransactionAnalysisResponse,
    TransactionAnalysisResult,
    TransactionRecord,
)
from fintrace.services.evidence_service import EvidenceService, calculate_file_hash
from fintrace.services.flow_of_funds import FlowOfFundsService
from fintrace.services.forensic_analysis_service import ForensicAnalysisService
from fintrace.services.investigation_service import InvestigationService
from fintrace.services.report_synthesizer import ReportService


router = APIRouter(prefix="/forensics", tags=["Forensics"])


# =============================================================================
# INVESTIGATIONS
# =============================================================================

@router.post(
    "/investigations",
    response_model=InvestigationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_investigation(
    request: InvestigationCreateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Open a new investigation owned by the caller."""
    service = InvestigationService(db)
    return await service.create_investigation(
        user_id=current_user.id,
        title=request.title,
        case_number=request.case_number,
        description=request.description,
        allegations=request.allegations,
        investigation_period_start=request.investigation_period_start,
        investigation_period_end=request.investigation_period_end,
        lead_investigator=request.lead_investigator,
        metadata=request.metadata,
    )


@router.get("/investigations", response_model=List[InvestigationResponse])
async def list_investigations(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List the caller's investigations, newest first."""
    service = InvestigationService(db)
    return await service.list_investigations(current_user.id)


@router.get("/investigations/{investigation_id}", response_model=InvestigationResponse)
async def get_investigation(
    investigation: Investigation = Depends(get_authorized_investigation),
):
    return investigation


@router.patch("/investigations/{investigation_id}/status", response_model=InvestigationResponse)
async def update_investigation_status(
    request: InvestigationStatusUpdateRequest,
    investigation: Investigation = Depends(get_authorized_investigation),
    db: AsyncSession = Depends(get_db),
):
    """
    Move the investigation forward in its lifecycle.

    Backward moves are rejected; use the reopen endpoint instead.
    """
    service = InvestigationService(db)
    return await service.update_status(investigation.id, request.status)


@router.post("/investigations/{investigation_id}/reopen", response_model=InvestigationResponse)
async def reopen_investigation(
    request: InvestigationReopenRequest,
    investigation: Investigation = Depends(get_authorized_investigation),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Reopen a completed or closed investigation, recording the reason."""
    service = InvestigationService(db)
    return await service.reopen(investigation.id, request.reason, reopened_by=current_user.id)


# =============================================================================
# EVIDENCE
# =============================================================================

@router.post(
    "/investigations/{investigation_id}/evidence",
    response_model=EvidenceResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_evidence(
    request: EvidenceCreateRequest,
    investigation: Investigation = Depends(get_authorized_investigation),
    db: AsyncSession = Depends(get_db),
):
    service = EvidenceService(db)
    return await service.add_evidence(
        investigation_id=investigation.id,
        evidence_type=request.evidence_type,
        description=request.description,
        source=request.source,
        evidence_number=request.evidence_number,
        date_received=request.date_received,
        collected_by=request.collected_by,
        storage_location=request.storage_location,
        hash_value=request.hash_value,
        metadata=request.metadata,
        chain_of_custody=request.chain_of_custody,
    )


@router.get("/investigations/{investigation_id}/evidence", response_model=List[EvidenceResponse])
async def get_evidence(
    investigation: Investigation = Depends(get_authorized_investigation),
    db: AsyncSession = Depends(get_db),
):
    service = EvidenceService(db)
    return await service.get_evidence(investigation.id)


@router.get(
    "/investigations/{investigation_id}/evidence/{evidence_id}",
    response_model=EvidenceResponse,
)
async def get_evidence_item(
    evidence_id: uuid.UUID,
    investigation: Investigation = Depends(get_authorized_investigation),
    db: AsyncSession = Depends(get_db),
):
    service = EvidenceService(db)
    return await service.get_evidence_item(investigation.id, evidence_id)


@router.post(
    "/investigations/{investigation_id}/evidence/{evidence_id}/custody",
    response_model=EvidenceResponse,
    status_code=status.HTTP_201_CREATED,
)
async def append_custody_entry(
    evidence_id: uuid.UUID,
    request: CustodyEntryCreateRequest,
    investigation: Investigation = Depends(get_authorized_investigation),
    db: AsyncSession = Depends(get_db),
):
    """Append a transfer to the evidence's chain of custody."""
    service = EvidenceService(db)
    return await service.append_custody_entry(investigation.id, evidence_id, request)


@router.post(
    "/investigations/{investigation_id}/evidence/{evidence_id}/verify-hash",
    response_model=EvidenceHashVerification,
)
async def verify_evidence_hash(
    evidence_id: uuid.UUID,
    file: UploadFile = File(...),
    investigation: Investigation = Depends(get_authorized_investigation),
    db: AsyncSession = Depends(get_db),
):
    """Check an uploaded file against the hash recorded for the evidence."""
    content = await file.read()
    service = EvidenceService(db)
    return await service.verify_evidence_hash(investigation.id, evidence_id, content)


@router.post("/evidence/hash", response_model=FileHashResponse)
async def calculate_evidence_file_hash(
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
):
    """SHA-256 of an uploaded file, for recording with new evidence."""
    content = await file.read()
    return FileHashResponse(
        filename=file.filename,
        size_bytes=len(content),
        hash_value=calculate_file_hash(content),
    )


# =============================================================================
# TRANSACTION ANALYSIS & ANOMALY DETECTION
# =============================================================================

@router.post(
    "/investigations/{investigation_id}/analyze-transaction",
    response_model=TransactionAnalysisResult,
)
async def analyze_transaction(
    transaction: TransactionRecord,
    investigation: Investigation = Depends(get_authorized_investigation),
    db: AsyncSession = Depends(get_db),
):
    service = ForensicAnalysisService(db)
    return await service.analyze_transaction(investigation.id, transaction)


@router.post(
    "/investigations/{investigation_id}/analyze-all",
    response_model=List[TransactionAnalysisResult],
)
async def analyze_all_transactions(
    investigation: Investigation = Depends(get_authorized_investigation),
    db: AsyncSession = Depends(get_db),
):
    """Score every transaction in the investigation owner's ledger."""
    service = ForensicAnalysisService(db)
    return await service.analyze_all_transactions(investigation.id, investigation.user_id)


@router.get(
    "/investigations/{investigation_id}/analyses",
    response_model=List[TransactionAnalysisResponse],
)
async def list_transaction_analyses(
    investigation: Investigation = Depends(get_authorized_investigation),
    db: AsyncSession = Depends(get_db),
):
    service = ForensicAnalysisService(db)
    return await service.list_transaction_analyses(investigation.id)


@router.post(
    "/investigations/{investigation_id}/detect/duplicates",
    response_model=List[AnomalyDetectionResult],
)
async def detect_duplicate_payments(
    investigation: Investigation = Depends(get_authorized_investigation),
    db: AsyncSession = Depends(get_db),
):
    service = ForensicAnalysisService(db)
    return await service.detect_duplicate_payments(investigation.id, investigation.user_id)


@router.post(
    "/investigations/{investigation_id}/detect/timing",
    response_model=List[AnomalyDetectionResult],
)
async def detect_unusual_timing(
    investigation: Investigation = Depends(get_authorized_investigation),
    db: AsyncSession = Depends(get_db),
):
    service = ForensicAnalysisService(db)
    return await service.detect_unusual_timing(investigation.id, investigation.user_id)


@router.post(
    "/investigations/{investigation_id}/detect/round-dollar",
    response_model=List[AnomalyDetectionResult],
)
async def detect_round_dollar_anomalies(
    investigation: Investigation = Depends(get_authorized_investigation),
    db: AsyncSession = Depends(get_db),
):
    service = ForensicAnalysisService(db)
    return await service.detect_round_dollar_anomalies(investigation.id, investigation.user_id)


@router.get(
    "/investigations/{investigation_id}/anomalies",
    response_model=List[AnomalyResponse],
)
async def list_anomalies(
    investigation: Investigation = Depends(get_authorized_investigation),
    db: AsyncSession = Depends(get_db),
):
    service = ForensicAnalysisService(db)
    return await service.list_anomalies(investigation.id)


@router.post(
    "/investigations/{investigation_id}/comprehensive-analysis",
    response_model=ComprehensiveAnalysisResult,
)
async def run_comprehensive_analysis(
    investigation: Investigation = Depends(get_authorized_investigation),
    db: AsyncSession = Depends(get_db),
):
    """
    Run the scorer and every detector concurrently.

    Sections that fail or time out are listed in `sections` and the
    response is marked `partial`.
    """
    service = ForensicAnalysisService(db)
    return await service.run_comprehensive_analysis(investigation.id, investigation.user_id)


# =============================================================================
# BENFORD'S LAW
# =============================================================================

@router.post("/benfords-law", response_model=BenfordAnalysisSummary)
async def analyze_benfords_law(
    request: BenfordAmountsRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Benford test over ad-hoc amounts. Nothing is persisted."""
    service = ForensicAnalysisService(db)
    return service.analyze_benfords_law(request.amounts)


@router.post(
    "/investigations/{investigation_id}/benfords-law",
    response_model=BenfordAnalysisSummary,
)
async def run_benfords_law_analysis(
    investigation: Investigation = Depends(get_authorized_investigation),
    db: AsyncSession = Depends(get_db),
):
    service = ForensicAnalysisService(db)
    return await service.run_benfords_law_analysis(investigation.id, investigation.user_id)


# =============================================================================
# FLOW OF FUNDS
# =============================================================================

@router.post(
    "/investigations/{investigation_id}/flow-of-funds/trace",
    response_model=FlowOfFundsTrace,
)
async def trace_flow_of_funds(
    request: FlowTraceRequest,
    investigation: Investigation = Depends(get_authorized_investigation),
    db: AsyncSession = Depends(get_db),
):
    service = FlowOfFundsService(db)
    return await service.trace_flow_of_funds(
        investigation.id, investigation.user_id, request.source_transaction_id
    )


@router.post(
    "/investigations/{investigation_id}/flow-of-funds",
    response_model=FlowOfFundsRecordResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_flow_of_funds_record(
    request: FlowOfFundsRecordCreateRequest,
    investigation: Investigation = Depends(get_authorized_investigation),
    db: AsyncSession = Depends(get_db),
):
    service = FlowOfFundsService(db)
    return await service.create_flow_of_funds_record(investigation.id, investigation.user_id, request)


@router.get(
    "/investigations/{investigation_id}/flow-of-funds",
    response_model=List[FlowOfFundsRecordResponse],
)
async def get_flow_of_funds(
    source_transaction_id: Optional[uuid.UUID] = Query(None),
    investigation: Investigation = Depends(get_authorized_investigation),
    db: AsyncSession = Depends(get_db),
):
    service = FlowOfFundsService(db)
    return await service.get_flow_of_funds(investigation.id, source_transaction_id)


# =============================================================================
# DAMAGES
# =============================================================================

@router.post(
    "/investigations/{investigation_id}/damages/direct-loss",
    response_model=DamageCalculation,
)
async def calculate_direct_loss(
    request: DirectLossRequest,
    investigation: Investigation = Depends(get_authorized_investigation),
    db: AsyncSession = Depends(get_db),
):
    service = ForensicAnalysisService(db)
    return await service.calculate_direct_loss(investigation.user_id, request.transaction_ids)


@router.post("/damages/net-worth", response_model=DamageCalculation)
async def calculate_net_worth_method(
    request: NetWorthRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    service = ForensicAnalysisService(db)
    return service.calculate_net_worth_method(
        request.beginning_net_worth,
        request.ending_net_worth,
        request.personal_expenditures,
        request.legitimate_income,
    )


@router.post("/damages/interest", response_model=InterestResponse)
async def calculate_pre_judgment_interest(
    request: InterestRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    service = ForensicAnalysisService(db)
    interest = service.calculate_pre_judgment_interest(
        request.amount, request.loss_date, request.rate, request.as_of
    )
    return InterestResponse(interest=interest, total_with_interest=request.amount + interest)


# =============================================================================
# REPORTS
# =============================================================================

@router.get(
    "/investigations/{investigation_id}/executive-summary",
    response_model=ExecutiveSummaryResponse,
)
async def generate_executive_summary(
    investigation: Investigation = Depends(get_authorized_investigation),
    db: AsyncSession = Depends(get_db),
):
    service = ReportService(db)
    summary = await service.generate_executive_summary(investigation.id)
    return ExecutiveSummaryResponse(investigation_id=investigation.id, summary=summary)


@router.post(
    "/investigations/{investigation_id}/executive-summary",
    response_model=ForensicReportResponse,
    status_code=status.HTTP_201_CREATED,
)
async def save_executive_summary(
    investigation: Investigation = Depends(get_authorized_investigation),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Persist the current executive summary as a new report version."""
    service = ReportService(db)
    return await service.save_executive_summary(investigation.id, generated_by=current_user.full_name)


@router.post(
    "/investigations/{investigation_id}/reports",
    response_model=ForensicReportResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_forensic_report(
    request: ForensicReportCreateRequest,
    investigation: Investigation = Depends(get_authorized_investigation),
    db: AsyncSession = Depends(get_db),
):
    service = ReportService(db)
    return await service.create_forensic_report(
        investigation_id=investigation.id,
        **request.model_dump(),
    )


@router.get(
    "/investigations/{investigation_id}/reports",
    response_model=List[ForensicReportResponse],
)
async def get_forensic_reports(
    investigation: Investigation = Depends(get_authorized_investigation),
    db: AsyncSession = Depends(get_db),
):
    """Report versions, newest first."""
    service = ReportService(db)
    return await service.get_forensic_reports(investigation.id)
