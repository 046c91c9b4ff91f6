"""
FinTrace Forensics - SQLAlchemy Models Package

This package contains all database models for the application.
"""

from fintrace.models.base import AppendOnlyModel, BaseModel, TimestampMixin
from fintrace.models.user import User
from fintrace.models.transaction import LedgerTransaction, TransactionType
from fintrace.models.forensic import (
    # Case management
    Investigation,
    InvestigationStatus,
    # Evidence ledger
    Evidence,
    EvidenceType,
    CustodyEntry,
    # Analysis artifacts
    TransactionAnalysis,
    RiskLevel,
    LegitimacyAssessment,
    Anomaly,
    AnomalyType,
    AnomalySeverity,
    AnomalyStatus,
    DetectionMethod,
    FlowOfFundsRecord,
    TransferMethod,
    Traceability,
    ForensicReport,
    ReportType,
    ReportStatus,
)

__all__ = [
    "AppendOnlyModel",
    "BaseModel",
    "TimestampMixin",
    "User",
    "LedgerTransaction",
    "TransactionType",
    "Investigation",
    "InvestigationStatus",
    "Evidence",
    "EvidenceType",
    "CustodyEntry",
    "TransactionAnalysis",
    "RiskLevel",
    "LegitimacyAssessment",
    "Anomaly",
    "AnomalyType",
    "AnomalySeverity",
    "AnomalyStatus",
    "DetectionMethod",
    "FlowOfFundsRecord",
    "TransferMethod",
    "Traceability",
    "ForensicReport",
    "ReportType",
    "ReportStatus",
]
