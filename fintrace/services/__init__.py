"""
FinTrace Forensics - Services Package

Business logic services.
"""

from fintrace.services.access_gate import InvestigationAccessGate
from fintrace.services.anomaly_detection import AnomalyDetector
from fintrace.services.benfords_law import BenfordsLawAnalyzer, BenfordTable
from fintrace.services.damage_calculator import DamageCalculator
from fintrace.services.evidence_service import EvidenceService, calculate_file_hash
from fintrace.services.flow_of_funds import FlowOfFundsService
from fintrace.services.forensic_analysis_service import ForensicAnalysisService
from fintrace.services.investigation_service import InvestigationService
from fintrace.services.ledger_source import LedgerSource
from fintrace.services.report_synthesizer import ReportService
from fintrace.services.risk_scoring import HeuristicWeights, TransactionRiskScorer

__all__ = [
    "InvestigationAccessGate",
    "AnomalyDetector",
    "BenfordsLawAnalyzer",
    "BenfordTable",
    "DamageCalculator",
    "EvidenceService",
    "calculate_file_hash",
    "FlowOfFundsService",
    "ForensicAnalysisService",
    "InvestigationService",
    "LedgerSource",
    "ReportService",
    "HeuristicWeights",
    "TransactionRiskScorer",
]
