"""
FinTrace Forensics - Forensic Schemas

Pydantic schemas for investigations, evidence, analysis results,
damage calculations and reports.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

from fintrace.models.forensic import (
    AnomalySeverity,
    AnomalyStatus,
    AnomalyType,
    DetectionMethod,
    EvidenceType,
    InvestigationStatus,
    LegitimacyAssessment,
    ReportStatus,
    ReportType,
    RiskLevel,
    Traceability,
    TransferMethod,
)
from fintrace.models.transaction import LedgerTransaction, TransactionType


# ===========================================
# ENGINE INPUT
# ===========================================

class TransactionRecord(BaseModel):
    """
    Normalized transaction as seen by the analysis engine.

    Snapshots are built from the ledger once per request and are never
    mutated while detectors run over them.
    """
    model_config = ConfigDict(frozen=True)

    id: Optional[UUID] = None
    amount: Decimal = Field(..., description="Signed amount as recorded in the ledger")
    date: Optional[datetime] = None
    description: Optional[str] = None
    type: TransactionType = TransactionType.EXPENSE
    title: Optional[str] = None

    @classmethod
    def from_ledger(cls, transaction: LedgerTransaction) -> "TransactionRecord":
        return cls(
            id=transaction.id,
            amount=transaction.amount,
            date=transaction.transaction_date,
            description=transaction.description,
            type=transaction.transaction_type,
            title=transaction.title,
        )


# ===========================================
# INVESTIGATION SCHEMAS
# ===========================================

class InvestigationCreateRequest(BaseModel):
    """Schema for opening a new investigation."""
    title: str = Field(..., min_length=1, max_length=255)
    case_number: Optional[str] = Field(
        None, min_length=1, max_length=50,
        description="Generated as FI-YYYY-NNNN when omitted",
    )
    description: Optional[str] = None
    allegations: Optional[str] = None
    investigation_period_start: Optional[datetime] = None
    investigation_period_end: Optional[datetime] = None
    lead_investigator: Optional[str] = Field(None, max_length=200)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_period(self) -> "InvestigationCreateRequest":
        start, end = self.investigation_period_start, self.investigation_period_end
        if start and end and end < start:
            raise ValueError("investigation_period_end must not be before investigation_period_start")
        return self


class InvestigationStatusUpdateRequest(BaseModel):
    """Schema for moving an investigation forward in its lifecycle."""
    status: InvestigationStatus


class InvestigationReopenRequest(BaseModel):
    """Schema for reopening a completed or closed investigation."""
    reason: str = Field(..., min_length=1, max_length=2000)


class InvestigationResponse(BaseModel):
    """Investigation response."""
    id: UUID
    user_id: UUID
    case_number: str
    title: str
    description: Optional[str] = None
    allegations: Optional[str] = None
    investigation_period_start: Optional[datetime] = None
    investigation_period_end: Optional[datetime] = None
    status: InvestigationStatus
    lead_investigator: Optional[str] = None
    metadata: Dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("case_metadata", "metadata"),
    )
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ===========================================
# EVIDENCE SCHEMAS
# ===========================================

class CustodyEntryCreateRequest(BaseModel):
    """One transfer in an evidence item's chain of custody."""
    transferred_to: str = Field(..., min_length=1, max_length=200)
    transferred_by: str = Field(..., min_length=1, max_length=200)
    timestamp: Optional[datetime] = Field(None, description="Defaults to the time of the request")
    location: str = Field(..., min_length=1, max_length=500)
    purpose: str = Field(..., min_length=1)


class CustodyEntryResponse(BaseModel):
    """Custody entry response."""
    sequence: int
    transferred_to: str
    transferred_by: str
    timestamp: datetime
    location: str
    purpose: str

    model_config = ConfigDict(from_attributes=True)


class EvidenceCreateRequest(BaseModel):
    """Schema for adding evidence to an investigation."""
    evidence_number: Optional[str] = Field(
        None, min_length=1, max_length=50,
        description="Generated as EV-NNNN within the investigation when omitted",
    )
    evidence_type: EvidenceType
    description: str = Field(..., min_length=1)
    source: str = Field(..., min_length=1, max_length=255)
    date_received: Optional[datetime] = None
    collected_by: Optional[str] = Field(None, max_length=200)
    storage_location: Optional[str] = Field(None, max_length=500)
    hash_value: Optional[str] = Field(
        None, pattern=r"^[0-9a-fA-F]{64}$",
        description="SHA-256 hex digest of the evidence file",
    )
    metadata: Dict[str, Any] = Field(default_factory=dict)
    chain_of_custody: List[CustodyEntryCreateRequest] = Field(
        default_factory=list,
        description="Custody entries recorded before the evidence reached the case",
    )


class EvidenceResponse(BaseModel):
    """Evidence response with its ordered custody log."""
    id: UUID
    investigation_id: UUID
    evidence_number: str
    evidence_type: EvidenceType
    description: str
    source: str
    date_received: datetime
    collected_by: Optional[str] = None
    storage_location: Optional[str] = None
    hash_value: Optional[str] = None
    metadata: Dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("evidence_metadata", "metadata"),
    )
    chain_of_custody: List[CustodyEntryResponse] = Field(
        default_factory=list,
        validation_alias=AliasChoices("custody_entries", "chain_of_custody"),
    )
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class FileHashResponse(BaseModel):
    """SHA-256 of an uploaded file."""
    filename: Optional[str] = None
    size_bytes: int
    hash_value: str


class EvidenceHashVerification(BaseModel):
    """Outcome of comparing an uploaded file against stored evidence."""
    evidence_id: UUID
    expected_hash: Optional[str] = None
    actual_hash: str
    matches: bool


# ===========================================
# ANALYSIS RESULTS
# ===========================================

class TransactionAnalysisResult(BaseModel):
    """Risk scoring output for a single transaction."""
    transaction_id: Optional[UUID] = None
    risk_level: RiskLevel
    legitimacy_assessment: LegitimacyAssessment
    red_flags: List[str] = Field(default_factory=list)
    score: int


class TransactionAnalysisResponse(BaseModel):
    """Persisted transaction analysis."""
    id: UUID
    investigation_id: UUID
    transaction_id: Optional[UUID] = None
    transaction_date: Optional[datetime] = None
    transaction_amount: Optional[Decimal] = None
    transaction_description: Optional[str] = None
    risk_level: RiskLevel
    legitimacy_assessment: LegitimacyAssessment
    red_flags: List[str]
    score: int
    analysis_notes: Optional[str] = None
    analyzed_by: Optional[str] = None
    analyzed_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AnomalyDetectionResult(BaseModel):
    """Output of one detector hit."""
    anomaly_type: AnomalyType
    severity: AnomalySeverity
    description: str
    affected_transactions: List[str] = Field(default_factory=list)
    detection_method: DetectionMethod = DetectionMethod.AUTOMATED


class AnomalyResponse(BaseModel):
    """Persisted anomaly."""
    id: UUID
    investigation_id: UUID
    anomaly_type: AnomalyType
    severity: AnomalySeverity
    description: str
    detection_method: DetectionMethod
    related_transactions: List[str]
    status: AnomalyStatus
    detected_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BenfordDigitResult(BaseModel):
    """Observed vs expected frequency for one leading digit."""
    digit: int = Field(..., ge=1, le=9)
    observed_pct: float
    expected_pct: float
    deviation: float
    chi_square: float
    passed: bool


class BenfordAnalysisSummary(BaseModel):
    """Per-digit rows plus totals for one Benford run."""
    results: List[BenfordDigitResult]
    sample_size: int
    total_chi_square: float
    failed_digits: int
    violation: bool


class BenfordAmountsRequest(BaseModel):
    """Ad-hoc amounts for a Benford run."""
    amounts: List[Decimal] = Field(..., min_length=1)


class SectionStatus(BaseModel):
    """Completion state of one section of a comprehensive run."""
    status: str = Field(..., description="completed, failed or timed_out")
    error: Optional[str] = None


class ComprehensiveAnalysisResult(BaseModel):
    """Combined output of the scorer batch and every detector."""
    transaction_analyses: List[TransactionAnalysisResult] = Field(default_factory=list)
    duplicate_payments: List[AnomalyDetectionResult] = Field(default_factory=list)
    unusual_timing: List[AnomalyDetectionResult] = Field(default_factory=list)
    round_dollar: List[AnomalyDetectionResult] = Field(default_factory=list)
    benfords_law: Optional[BenfordAnalysisSummary] = None
    sections: Dict[str, SectionStatus]
    partial: bool


# ===========================================
# FLOW OF FUNDS
# ===========================================

class FlowTraceRequest(BaseModel):
    """Trace funds from a ledger transaction."""
    source_transaction_id: UUID


class FlowStep(BaseModel):
    """One hop along a flow-of-funds path."""
    step: int
    account: str
    entity: str
    amount: Decimal
    date: datetime
    method: str


class FlowOfFundsTrace(BaseModel):
    """Computed path from a source transaction to its beneficiaries."""
    flow_id: UUID
    path: List[FlowStep]
    total_amount: Decimal
    ultimate_beneficiaries: List[str]
    traceability: Traceability


class FlowOfFundsRecordCreateRequest(BaseModel):
    """Investigator-recorded money movement."""
    flow_name: str = Field(..., min_length=1, max_length=255)
    source_transaction_id: Optional[UUID] = None
    source_account: str = Field(..., min_length=1, max_length=255)
    destination_account: str = Field(..., min_length=1, max_length=255)
    amount: Decimal = Field(..., ge=0)
    transaction_date: Optional[datetime] = None
    transfer_method: Optional[TransferMethod] = None
    intermediaries: List[str] = Field(default_factory=list)
    stated_purpose: Optional[str] = None
    actual_purpose: Optional[str] = None
    beneficiaries: List[str] = Field(default_factory=list)
    traceability: Traceability = Traceability.PARTIALLY_TRACED
    analysis_notes: Optional[str] = None


class FlowOfFundsRecordResponse(BaseModel):
    """Persisted flow-of-funds record."""
    id: UUID
    investigation_id: UUID
    flow_name: str
    source_transaction_id: Optional[UUID] = None
    source_account: str
    destination_account: str
    amount: Decimal
    transaction_date: Optional[datetime] = None
    transfer_method: Optional[TransferMethod] = None
    intermediaries: List[str]
    stated_purpose: Optional[str] = None
    actual_purpose: Optional[str] = None
    beneficiaries: List[str]
    traceability: Traceability
    analysis_notes: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ===========================================
# DAMAGES
# ===========================================

class DamageBreakdownItem(BaseModel):
    category: str
    amount: Decimal
    description: str


class DamageCalculation(BaseModel):
    """Quantified loss with the assumptions it rests on."""
    method: str
    total_damage: Decimal
    breakdown: List[DamageBreakdownItem]
    confidence_level: str
    assumptions: List[str] = Field(..., min_length=1)
    limitations: List[str] = Field(..., min_length=1)


class DirectLossRequest(BaseModel):
    transaction_ids: List[UUID]


class NetWorthRequest(BaseModel):
    beginning_net_worth: Decimal
    ending_net_worth: Decimal
    personal_expenditures: Decimal = Field(..., ge=0)
    legitimate_income: Decimal = Field(..., ge=0)


class InterestRequest(BaseModel):
    amount: Decimal
    loss_date: datetime
    rate: Decimal = Field(..., description="Annual rate as a fraction, e.g. 0.05")
    as_of: Optional[datetime] = None


class InterestResponse(BaseModel):
    interest: Decimal
    total_with_interest: Decimal


# ===========================================
# REPORTS
# ===========================================

class ForensicReportCreateRequest(BaseModel):
    """Schema for persisting a new report version."""
    report_type: ReportType
    title: str = Field(..., min_length=1, max_length=255)
    methodology: Optional[str] = None
    findings: Optional[str] = None
    damage_calculations: Optional[Dict[str, Any]] = None
    attribution_analysis: Optional[str] = None
    conclusions: Optional[str] = None
    limitations: Optional[str] = None
    generated_by: Optional[str] = Field(None, max_length=200)
    status: ReportStatus = ReportStatus.DRAFT
    file_url: Optional[str] = Field(None, max_length=1000)


class ForensicReportResponse(BaseModel):
    """Persisted report version."""
    id: UUID
    investigation_id: UUID
    report_number: str
    report_type: ReportType
    version: int
    title: str
    methodology: Optional[str] = None
    findings: Optional[str] = None
    damage_calculations: Optional[Dict[str, Any]] = None
    attribution_analysis: Optional[str] = None
    conclusions: Optional[str] = None
    limitations: Optional[str] = None
    generated_by: Optional[str] = None
    generated_at: datetime
    peer_reviewed_by: Optional[str] = None
    peer_reviewed_at: Optional[datetime] = None
    status: ReportStatus
    file_url: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class ExecutiveSummaryResponse(BaseModel):
    investigation_id: UUID
    summary: str
