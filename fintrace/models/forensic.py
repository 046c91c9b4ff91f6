"""
FinTrace Forensics - Forensic Investigation Models

This module provides all database models for the forensic engine:

1. CASE MANAGEMENT:
   - Investigation: the aggregation root every artifact attaches to

2. EVIDENCE LEDGER:
   - Evidence: evidentiary artifacts with content hash
   - CustodyEntry: chain-of-custody log, one row per transfer

3. ANALYSIS ARTIFACTS:
   - TransactionAnalysis: per-transaction risk scoring snapshot
   - Anomaly: detector output awaiting human review
   - FlowOfFundsRecord: investigator-recorded money movements
   - ForensicReport: versioned report artifacts

APPEND-ONLY:
- Evidence, CustodyEntry, TransactionAnalysis and ForensicReport rows are
  never updated or deleted. Re-analysis and new report versions insert rows.
"""

import enum
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    DateTime, Enum, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint, Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fintrace.models.base import AppendOnlyModel, BaseModel, JSONType, utcnow


# ===========================================
# ENUMS
# ===========================================

class InvestigationStatus(str, enum.Enum):
    """Lifecycle of a forensic case."""
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CLOSED = "closed"


class EvidenceType(str, enum.Enum):
    """Type of evidentiary artifact."""
    BANK_STATEMENT = "bank_statement"
    EMAIL = "email"
    DOCUMENT = "document"
    DEVICE = "device"
    TRANSACTION_RECORD = "transaction_record"
    OTHER = "other"


class RiskLevel(str, enum.Enum):
    """Per-transaction risk level."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class LegitimacyAssessment(str, enum.Enum):
    """Automated legitimacy assessment of a transaction."""
    PROPER = "proper"
    QUESTIONABLE = "questionable"
    IMPROPER = "improper"
    UNABLE_TO_DETERMINE = "unable_to_determine"


class AnomalyType(str, enum.Enum):
    """Kind of anomaly raised by a detector."""
    DUPLICATE_PAYMENT = "duplicate_payment"
    ROUND_DOLLAR = "round_dollar"
    UNUSUAL_TIMING = "unusual_timing"
    BENFORD_VIOLATION = "benford_violation"
    OTHER = "other"


class AnomalySeverity(str, enum.Enum):
    """Severity of an anomaly."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class DetectionMethod(str, enum.Enum):
    """How an anomaly was detected."""
    AUTOMATED = "automated"
    MANUAL = "manual"
    AI_ASSISTED = "ai_assisted"


class AnomalyStatus(str, enum.Enum):
    """Review workflow status. Advanced by human reviewers only."""
    PENDING = "pending"
    REVIEWED = "reviewed"
    DISMISSED = "dismissed"
    ESCALATED = "escalated"


class TransferMethod(str, enum.Enum):
    """How funds moved between accounts."""
    WIRE = "wire"
    CHECK = "check"
    ACH = "ach"
    CASH = "cash"
    OTHER = "other"


class Traceability(str, enum.Enum):
    """How completely a flow of funds has been traced."""
    FULLY_TRACED = "fully_traced"
    PARTIALLY_TRACED = "partially_traced"
    UNTRACED = "untraced"


class ReportType(str, enum.Enum):
    """Kind of forensic report."""
    EXECUTIVE_SUMMARY = "executive_summary"
    DETAILED_ANALYSIS = "detailed_analysis"
    DAMAGE_CALCULATION = "damage_calculation"
    FINAL_REPORT = "final_report"


class ReportStatus(str, enum.Enum):
    """Review status of a report version."""
    DRAFT = "draft"
    PEER_REVIEW = "peer_review"
    FINALIZED = "finalized"


# ===========================================
# CASE MANAGEMENT
# ===========================================

class Investigation(BaseModel):
    """
    A forensic case.

    Owns every evidence item, analysis, anomaly, flow record and report
    created for it. Investigations are never deleted, only closed.
    """

    __tablename__ = "forensic_investigations"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )

    case_number: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    allegations: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    investigation_period_start: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    investigation_period_end: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    status: Mapped[InvestigationStatus] = mapped_column(
        Enum(InvestigationStatus),
        default=InvestigationStatus.OPEN,
        nullable=False,
        index=True,
    )

    lead_investigator: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    case_metadata: Mapped[Dict[str, Any]] = mapped_column(
        "metadata",
        JSONType,
        nullable=False,
        default=dict,
    )

    owner = relationship("User", back_populates="investigations")

    def __repr__(self) -> str:
        return f"<Investigation(id={self.id}, case_number={self.case_number}, status={self.status})>"


# ===========================================
# EVIDENCE LEDGER
# ===========================================

class Evidence(AppendOnlyModel):
    """
    An evidentiary artifact collected for an investigation.

    The custody log lives in CustodyEntry rows, so appending to it
    never rewrites the evidence row itself.
    """

    __tablename__ = "forensic_evidence"
    __table_args__ = (
        UniqueConstraint("investigation_id", "evidence_number", name="uq_forensic_evidence_number"),
    )

    investigation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("forensic_investigations.id"),
        nullable=False,
        index=True,
    )

    evidence_number: Mapped[str] = mapped_column(String(50), nullable=False)
    evidence_type: Mapped[EvidenceType] = mapped_column(Enum(EvidenceType), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    source: Mapped[str] = mapped_column(String(255), nullable=False)

    date_received: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
    collected_by: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    storage_location: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    hash_value: Mapped[Optional[str]] = mapped_column(
        String(64),
        nullable=True,
        comment="SHA-256 of file-backed evidence content",
    )

    evidence_metadata: Mapped[Dict[str, Any]] = mapped_column(
        "metadata",
        JSONType,
        nullable=False,
        default=dict,
    )

    custody_entries: Mapped[List["CustodyEntry"]] = relationship(
        "CustodyEntry",
        order_by="CustodyEntry.sequence",
        lazy="selectin",
    )


class CustodyEntry(AppendOnlyModel):
    """One transfer in an evidence item's chain of custody."""

    __tablename__ = "forensic_custody_entries"
    __table_args__ = (
        UniqueConstraint("evidence_id", "sequence", name="uq_forensic_custody_sequence"),
    )

    evidence_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("forensic_evidence.id"),
        nullable=False,
        index=True,
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)

    transferred_to: Mapped[str] = mapped_column(String(200), nullable=False)
    transferred_by: Mapped[str] = mapped_column(String(200), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    location: Mapped[str] = mapped_column(String(500), nullable=False)
    purpose: Mapped[str] = mapped_column(Text, nullable=False)


# ===========================================
# ANALYSIS ARTIFACTS
# ===========================================

class TransactionAnalysis(AppendOnlyModel):
    """
    Risk scoring result for one transaction within one investigation.

    Holds a denormalized snapshot of the transaction so the analysis stays
    meaningful even if the source ledger changes later.
    """

    __tablename__ = "forensic_transaction_analysis"

    investigation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("forensic_investigations.id"),
        nullable=False,
        index=True,
    )
    transaction_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)

    transaction_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    transaction_amount: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(precision=15, scale=2),
        nullable=True,
    )
    transaction_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    risk_level: Mapped[RiskLevel] = mapped_column(Enum(RiskLevel), nullable=False, index=True)
    legitimacy_assessment: Mapped[LegitimacyAssessment] = mapped_column(
        Enum(LegitimacyAssessment),
        nullable=False,
    )
    red_flags: Mapped[List[str]] = mapped_column(JSONType, nullable=False, default=list)
    score: Mapped[int] = mapped_column(Integer, nullable=False)

    analysis_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    analyzed_by: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    analyzed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
    evidence_references: Mapped[List[str]] = mapped_column(JSONType, nullable=False, default=list)


class Anomaly(BaseModel):
    """
    Detector output. Mutable only in its review fields, which are
    advanced by human reviewers outside this engine.
    """

    __tablename__ = "forensic_anomalies"

    investigation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("forensic_investigations.id"),
        nullable=False,
        index=True,
    )

    anomaly_type: Mapped[AnomalyType] = mapped_column(Enum(AnomalyType), nullable=False)
    severity: Mapped[AnomalySeverity] = mapped_column(Enum(AnomalySeverity), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    detected_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
    detection_method: Mapped[DetectionMethod] = mapped_column(
        Enum(DetectionMethod),
        default=DetectionMethod.AUTOMATED,
        nullable=False,
    )
    related_transactions: Mapped[List[str]] = mapped_column(JSONType, nullable=False, default=list)

    status: Mapped[AnomalyStatus] = mapped_column(
        Enum(AnomalyStatus),
        default=AnomalyStatus.PENDING,
        nullable=False,
    )
    review_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reviewed_by: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)


class FlowOfFundsRecord(BaseModel):
    """A money movement recorded by an investigator while tracing funds."""

    __tablename__ = "forensic_flow_of_funds"

    investigation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("forensic_investigations.id"),
        nullable=False,
        index=True,
    )
    source_transaction_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        nullable=True,
        index=True,
        comment="Ledger transaction this hop continues from",
    )

    flow_name: Mapped[str] = mapped_column(String(255), nullable=False)
    source_account: Mapped[str] = mapped_column(String(255), nullable=False)
    destination_account: Mapped[str] = mapped_column(String(255), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(precision=15, scale=2), nullable=False)
    transaction_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    transfer_method: Mapped[Optional[TransferMethod]] = mapped_column(Enum(TransferMethod), nullable=True)

    intermediaries: Mapped[List[str]] = mapped_column(JSONType, nullable=False, default=list)
    stated_purpose: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    actual_purpose: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    beneficiaries: Mapped[List[str]] = mapped_column(JSONType, nullable=False, default=list)
    traceability: Mapped[Traceability] = mapped_column(
        Enum(Traceability),
        default=Traceability.PARTIALLY_TRACED,
        nullable=False,
    )
    analysis_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class ForensicReport(AppendOnlyModel):
    """A versioned report artifact. New versions are new rows."""

    __tablename__ = "forensic_reports"

    investigation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("forensic_investigations.id"),
        nullable=False,
        index=True,
    )

    report_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    report_type: Mapped[ReportType] = mapped_column(Enum(ReportType), nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    title: Mapped[str] = mapped_column(String(255), nullable=False)

    methodology: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    findings: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    damage_calculations: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONType, nullable=True)
    attribution_analysis: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    conclusions: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    limitations: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    generated_by: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    generated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
    peer_reviewed_by: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    peer_reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    status: Mapped[ReportStatus] = mapped_column(
        Enum(ReportStatus),
        default=ReportStatus.DRAFT,
        nullable=False,
    )
    file_url: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
