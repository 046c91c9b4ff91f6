"""
FinTrace Forensics - Forensic Analysis Service

Runs the risk scorer and anomaly detectors over an investigation owner's
ledger snapshot and persists their results:
1. Transaction risk scoring (one TransactionAnalysis per transaction)
2. Duplicate payment, unusual timing and round-dollar detectors
3. Benford's Law digit distribution test
4. Comprehensive runner executing all of the above concurrently
5. Damage calculations over ledger transactions

Detectors are pure and run against an in-memory snapshot. Persistence is
sequential on the request's session.
"""

import asyncio
import logging
import uuid
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fintrace.config import get_settings
from fintrace.models.base import utcnow
from fintrace.models.forensic import (
    Anomaly,
    AnomalySeverity,
    AnomalyType,
    TransactionAnalysis,
)
from fintrace.schemas.forensic import (
    AnomalyDetectionResult,
    BenfordAnalysisSummary,
    ComprehensiveAnalysisResult,
    DamageCalculation,
    SectionStatus,
    TransactionAnalysisResult,
    TransactionRecord,
)
from fintrace.services.anomaly_detection import AnomalyDetector
from fintrace.services.benfords_law import BenfordsLawAnalyzer, BenfordTable
from fintrace.services.damage_calculator import DamageCalculator, damage_calculator
from fintrace.services.ledger_source import LedgerSource
from fintrace.services.risk_scoring import TransactionRiskScorer, risk_scorer
from fintrace.utils.error_handling import ValidationException

logger = logging.getLogger(__name__)


AUTOMATED_ANALYST = "Automated System"

SECTION_COMPLETED = "completed"
SECTION_FAILED = "failed"
SECTION_TIMED_OUT = "timed_out"

DETECTOR_THREAD_PREFIX = "forensic-detector"

_detector_pool: Optional[ThreadPoolExecutor] = None


def get_detector_pool() -> ThreadPoolExecutor:
    """
    Shared pool for comprehensive-run sections.

    A timed-out section keeps its worker until the detector returns, so the
    pool is bounded and separate from the event loop's default executor.
    """
    global _detector_pool
    if _detector_pool is None:
        _detector_pool = ThreadPoolExecutor(
            max_workers=get_settings().forensic_detector_workers,
            thread_name_prefix=DETECTOR_THREAD_PREFIX,
        )
    return _detector_pool


def _default_detector() -> AnomalyDetector:
    settings = get_settings()
    return AnomalyDetector(round_dollar_threshold_pct=settings.forensic_round_dollar_threshold_pct)


def _default_benford_analyzer() -> BenfordsLawAnalyzer:
    settings = get_settings()
    return BenfordsLawAnalyzer(BenfordTable(
        tolerance_pct=settings.forensic_benford_tolerance_pct,
        violation_digits=settings.forensic_benford_violation_digits,
    ))


class ForensicAnalysisService:
    """Service for automated forensic analysis of an investigation."""

    def __init__(
        self,
        db: AsyncSession,
        scorer: TransactionRiskScorer = risk_scorer,
        detector: Optional[AnomalyDetector] = None,
        benford: Optional[BenfordsLawAnalyzer] = None,
        calculator: DamageCalculator = damage_calculator,
        detector_timeout: Optional[float] = None,
        executor: Optional[ThreadPoolExecutor] = None,
    ):
        self.db = db
        self.ledger = LedgerSource(db)
        self.scorer = scorer
        self.detector = detector or _default_detector()
        self.benford = benford or _default_benford_analyzer()
        self.calculator = calculator
        self.detector_timeout = (
            detector_timeout if detector_timeout is not None
            else get_settings().forensic_detector_timeout_seconds
        )
        self.executor = executor or get_detector_pool()

    # ===========================================
    # TRANSACTION RISK SCORING
    # ===========================================

    async def analyze_transaction(
        self,
        investigation_id: uuid.UUID,
        transaction: TransactionRecord,
    ) -> TransactionAnalysisResult:
        """Score a single transaction and persist the analysis."""
        result = self.scorer.score(transaction)
        self._add_analysis(investigation_id, transaction, result)
        await self.db.commit()
        return result

    async def analyze_all_transactions(
        self,
        investigation_id: uuid.UUID,
        owner_id: uuid.UUID,
    ) -> List[TransactionAnalysisResult]:
        """Score every ledger transaction of the owner, in ledger order."""
        snapshot = await self.ledger.snapshot(owner_id)
        results = self.scorer.score_many(snapshot)
        self._persist_analyses(investigation_id, snapshot, results)
        await self.db.commit()

        logger.info(f"Analyzed {len(results)} transactions for investigation {investigation_id}")
        return results

    async def list_transaction_analyses(self, investigation_id: uuid.UUID) -> List[TransactionAnalysis]:
        result = await self.db.execute(
            select(TransactionAnalysis)
            .where(TransactionAnalysis.investigation_id == investigation_id)
            .order_by(TransactionAnalysis.analyzed_at, TransactionAnalysis.created_at)
        )
        return list(result.scalars().all())

    # ===========================================
    # ANOMALY DETECTION
    # ===========================================

    async def detect_duplicate_payments(
        self,
        investigation_id: uuid.UUID,
        owner_id: uuid.UUID,
    ) -> List[AnomalyDetectionResult]:
        return await self._detect_and_persist(
            investigation_id, owner_id, "duplicate_payments", self.detector.detect_duplicate_payments
        )

    async def detect_unusual_timing(
        self,
        investigation_id: uuid.UUID,
        owner_id: uuid.UUID,
    ) -> List[AnomalyDetectionResult]:
        return await self._detect_and_persist(
            investigation_id, owner_id, "unusual_timing", self.detector.detect_unusual_timing
        )

    async def detect_round_dollar_anomalies(
        self,
        investigation_id: uuid.UUID,
        owner_id: uuid.UUID,
    ) -> List[AnomalyDetectionResult]:
        return await self._detect_and_persist(
            investigation_id, owner_id, "round_dollar", self.detector.detect_round_dollar_anomalies
        )

    async def list_anomalies(self, investigation_id: uuid.UUID) -> List[Anomaly]:
        result = await self.db.execute(
            select(Anomaly)
            .where(Anomaly.investigation_id == investigation_id)
            .order_by(Anomaly.detected_at, Anomaly.created_at)
        )
        return list(result.scalars().all())

    # ===========================================
    # BENFORD'S LAW
    # ===========================================

    def analyze_benfords_law(self, amounts: Iterable) -> BenfordAnalysisSummary:
        """Benford test over ad-hoc amounts. Nothing is persisted."""
        return self.benford.analyze(amounts)

    async def run_benfords_law_analysis(
        self,
        investigation_id: uuid.UUID,
        owner_id: uuid.UUID,
    ) -> BenfordAnalysisSummary:
        """Benford test over the owner's ledger; persists an anomaly on violation."""
        snapshot = await self.ledger.snapshot(owner_id)
        summary = self.benford.analyze(t.amount for t in snapshot)
        self._persist_benford(investigation_id, snapshot, summary)
        await self.db.commit()
        return summary

    # ===========================================
    # COMPREHENSIVE ANALYSIS
    # ===========================================

    async def run_comprehensive_analysis(
        self,
        investigation_id: uuid.UUID,
        owner_id: uuid.UUID,
    ) -> ComprehensiveAnalysisResult:
        """
        Run the scorer batch and every detector concurrently over one snapshot.

        Each section runs on the detector pool under the detector time budget.
        A failed or timed-out section is reported in `sections` and the
        bundle is marked partial; the other sections are still persisted
        and returned.
        """
        snapshot = tuple(await self.ledger.snapshot(owner_id))
        amounts = tuple(t.amount for t in snapshot)

        sections: List[Tuple[str, Callable, Any]] = [
            ("transaction_analyses", self.scorer.score_many, snapshot),
            ("duplicate_payments", self.detector.detect_duplicate_payments, snapshot),
            ("unusual_timing", self.detector.detect_unusual_timing, snapshot),
            ("round_dollar", self.detector.detect_round_dollar_anomalies, snapshot),
            ("benfords_law", self.benford.analyze, amounts),
        ]

        outcomes = await asyncio.gather(*(
            self._run_section(investigation_id, name, func, arg) for name, func, arg in sections
        ))

        statuses: Dict[str, SectionStatus] = {}
        payload: Dict[str, Any] = {}
        for name, status, value in outcomes:
            statuses[name] = status
            if status.status == SECTION_COMPLETED:
                payload[name] = value

        # Sequential writes on the shared session
        if "transaction_analyses" in payload:
            self._persist_analyses(investigation_id, snapshot, payload["transaction_analyses"])
        for name in ("duplicate_payments", "unusual_timing", "round_dollar"):
            if name in payload:
                self._persist_anomalies(investigation_id, payload[name])
        if "benfords_law" in payload:
            self._persist_benford(investigation_id, snapshot, payload["benfords_law"])
        await self.db.commit()

        partial = any(s.status != SECTION_COMPLETED for s in statuses.values())
        if partial:
            logger.warning(
                f"Comprehensive analysis for investigation {investigation_id} completed partially: "
                + ", ".join(f"{n}={s.status}" for n, s in statuses.items() if s.status != SECTION_COMPLETED)
            )
        else:
            logger.info(f"Comprehensive analysis for investigation {investigation_id} completed")

        return ComprehensiveAnalysisResult(
            sections=statuses,
            partial=partial,
            **payload,
        )

    async def _run_section(
        self,
        investigation_id: uuid.UUID,
        name: str,
        func: Callable,
        arg: Any,
    ) -> Tuple[str, SectionStatus, Any]:
        try:
            loop = asyncio.get_running_loop()
            value = await asyncio.wait_for(
                loop.run_in_executor(self.executor, func, arg),
                timeout=self.detector_timeout,
            )
        except asyncio.TimeoutError:
            logger.error(
                f"Section {name} timed out after {self.detector_timeout}s "
                f"for investigation {investigation_id}"
            )
            return name, SectionStatus(
                status=SECTION_TIMED_OUT,
                error=f"Exceeded time budget of {self.detector_timeout} seconds",
            ), None
        except Exception as e:
            logger.error(f"Section {name} failed for investigation {investigation_id}: {e}", exc_info=True)
            return name, SectionStatus(status=SECTION_FAILED, error=str(e) or type(e).__name__), None
        return name, SectionStatus(status=SECTION_COMPLETED), value

    # ===========================================
    # DAMAGES
    # ===========================================

    async def calculate_direct_loss(
        self,
        owner_id: uuid.UUID,
        transaction_ids: Sequence[uuid.UUID],
    ) -> DamageCalculation:
        """
        Direct loss over investigator-selected ledger transactions.

        Repeated ids are counted once.

        Raises:
            ValidationException: transaction_ids is not a list
            TransactionNotFoundException: an id is not in the owner's ledger
        """
        if not isinstance(transaction_ids, (list, tuple)):
            raise ValidationException("transaction_ids must be a list", field="transaction_ids")

        unique_ids = list(dict.fromkeys(transaction_ids))
        transactions = await self.ledger.get_many(owner_id, unique_ids)
        return self.calculator.direct_loss(transactions)

    def calculate_net_worth_method(
        self,
        beginning_net_worth: Decimal,
        ending_net_worth: Decimal,
        personal_expenditures: Decimal,
        legitimate_income: Decimal,
    ) -> DamageCalculation:
        return self.calculator.net_worth(
            beginning_net_worth, ending_net_worth, personal_expenditures, legitimate_income
        )

    def calculate_pre_judgment_interest(
        self,
        amount: Decimal,
        loss_date: datetime,
        rate: Decimal,
        as_of: Optional[datetime] = None,
    ) -> Decimal:
        return self.calculator.pre_judgment_interest(amount, loss_date, rate, as_of)

    # ===========================================
    # PERSISTENCE HELPERS
    # ===========================================

    async def _detect_and_persist(
        self,
        investigation_id: uuid.UUID,
        owner_id: uuid.UUID,
        name: str,
        detect: Callable[[Sequence[TransactionRecord]], List[AnomalyDetectionResult]],
    ) -> List[AnomalyDetectionResult]:
        snapshot = await self.ledger.snapshot(owner_id)
        results = detect(snapshot)
        self._persist_anomalies(investigation_id, results)
        await self.db.commit()

        logger.info(f"Detector {name} found {len(results)} anomalies for investigation {investigation_id}")
        return results

    def _add_analysis(
        self,
        investigation_id: uuid.UUID,
        transaction: TransactionRecord,
        result: TransactionAnalysisResult,
    ) -> None:
        self.db.add(TransactionAnalysis(
            investigation_id=investigation_id,
            transaction_id=transaction.id,
            transaction_date=transaction.date,
            transaction_amount=transaction.amount,
            transaction_description=transaction.description,
            risk_level=result.risk_level,
            legitimacy_assessment=result.legitimacy_assessment,
            red_flags=list(result.red_flags),
            score=result.score,
            analysis_notes=f"Automated analysis score: {result.score}",
            analyzed_by=AUTOMATED_ANALYST,
            analyzed_at=utcnow(),
        ))

    def _persist_analyses(
        self,
        investigation_id: uuid.UUID,
        snapshot: Sequence[TransactionRecord],
        results: Sequence[TransactionAnalysisResult],
    ) -> None:
        for transaction, result in zip(snapshot, results):
            self._add_analysis(investigation_id, transaction, result)

    def _persist_anomalies(
        self,
        investigation_id: uuid.UUID,
        results: Iterable[AnomalyDetectionResult],
    ) -> None:
        detected_at = utcnow()
        for result in results:
            self.db.add(Anomaly(
                investigation_id=investigation_id,
                anomaly_type=result.anomaly_type,
                severity=result.severity,
                description=result.description,
                detection_method=result.detection_method,
                related_transactions=list(result.affected_transactions),
                detected_at=detected_at,
            ))

    def _persist_benford(
        self,
        investigation_id: uuid.UUID,
        snapshot: Sequence[TransactionRecord],
        summary: BenfordAnalysisSummary,
    ) -> None:
        if not summary.violation:
            return

        logger.warning(
            f"Benford's Law violation for investigation {investigation_id}: "
            f"{summary.failed_digits} digits outside tolerance"
        )
        self._persist_anomalies(investigation_id, [AnomalyDetectionResult(
            anomaly_type=AnomalyType.BENFORD_VIOLATION,
            severity=AnomalySeverity.HIGH,
            description=(
                f"Benford's Law analysis failed for {summary.failed_digits} digits, "
                f"suggesting potential data manipulation"
            ),
            affected_transactions=[str(t.id) for t in snapshot if t.id is not None],
        )])
