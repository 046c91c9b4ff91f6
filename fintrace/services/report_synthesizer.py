"""
FinTrace Forensics - Report Synthesizer

Aggregates the analysis artifacts of an investigation into a Markdown
executive summary, and persists versioned report artifacts.
"""

import logging
import uuid
from collections import Counter
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from fintrace.models.base import utcnow
from fintrace.models.forensic import (
    Anomaly,
    AnomalySeverity,
    ForensicReport,
    Investigation,
    LegitimacyAssessment,
    ReportStatus,
    ReportType,
    RiskLevel,
    TransactionAnalysis,
)
from fintrace.utils.error_handling import InvestigationNotFoundException
from fintrace.utils.numbering import next_sequence

logger = logging.getLogger(__name__)


RECOMMENDATIONS = (
    "Conduct detailed investigation of all high-risk transactions",
    "Obtain supporting documentation for questionable transactions",
    "Interview relevant personnel",
    "Implement enhanced controls to prevent future occurrences",
)


@dataclass
class FindingsSummary:
    """Counts and totals behind an executive summary."""
    total_analyses: int
    by_legitimacy: Dict[str, int]
    by_risk_level: Dict[str, int]
    total_anomalies: int
    anomalies_by_severity: Dict[str, int]
    improper_total: Decimal

    def legitimacy(self, assessment: LegitimacyAssessment) -> int:
        return self.by_legitimacy.get(assessment.value, 0)

    def risk(self, level: RiskLevel) -> int:
        return self.by_risk_level.get(level.value, 0)

    def severity(self, severity: AnomalySeverity) -> int:
        return self.anomalies_by_severity.get(severity.value, 0)


def summarize_findings(
    analyses: Sequence[TransactionAnalysis],
    anomalies: Sequence[Anomaly],
) -> FindingsSummary:
    improper_total = sum(
        (abs(a.transaction_amount or Decimal("0")) for a in analyses
         if a.legitimacy_assessment == LegitimacyAssessment.IMPROPER),
        Decimal("0"),
    )
    return FindingsSummary(
        total_analyses=len(analyses),
        by_legitimacy=dict(Counter(a.legitimacy_assessment.value for a in analyses)),
        by_risk_level=dict(Counter(a.risk_level.value for a in analyses)),
        total_anomalies=len(anomalies),
        anomalies_by_severity=dict(Counter(a.severity.value for a in anomalies)),
        improper_total=improper_total,
    )


def _format_date(value) -> str:
    return value.date().isoformat() if value else "not specified"


def render_executive_summary(investigation: Investigation, findings: FindingsSummary) -> str:
    """Markdown executive summary for one investigation."""
    lines = [
        f"# Executive Summary: {investigation.title}",
        "",
        f"**Case Number:** {investigation.case_number}",
        f"**Investigation Period:** {_format_date(investigation.investigation_period_start)} "
        f"to {_format_date(investigation.investigation_period_end)}",
        f"**Status:** {investigation.status.value}",
        "",
        "## Key Findings",
        "",
        f"- **Total Transactions Analyzed:** {findings.total_analyses}",
        f"- **High Risk Transactions:** {findings.risk(RiskLevel.HIGH)}",
        f"- **Improper Transactions:** {findings.legitimacy(LegitimacyAssessment.IMPROPER)}",
        f"- **Questionable Transactions:** {findings.legitimacy(LegitimacyAssessment.QUESTIONABLE)}",
        f"- **Anomalies Detected:** {findings.total_anomalies}",
        "",
        "## Estimated Damages",
        "",
        "Based on direct loss calculation of identified improper transactions:",
        f"**${findings.improper_total:.2f}**",
        "",
        "## Primary Concerns",
        "",
    ]

    if findings.total_anomalies:
        lines.append(
            f"- {findings.severity(AnomalySeverity.CRITICAL)} critical anomalies requiring immediate attention"
        )
        lines.append(f"- {findings.severity(AnomalySeverity.HIGH)} high-severity anomalies")
    else:
        lines.append("- No anomalies detected")

    lines += ["", "## Recommendations", ""]
    lines += [f"{number}. {text}" for number, text in enumerate(RECOMMENDATIONS, start=1)]

    return "\n".join(lines) + "\n"


class ReportService:
    """Service for executive summaries and persisted report versions."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def collect_findings(self, investigation_id: uuid.UUID) -> FindingsSummary:
        analyses = await self.db.execute(
            select(TransactionAnalysis).where(TransactionAnalysis.investigation_id == investigation_id)
        )
        anomalies = await self.db.execute(
            select(Anomaly).where(Anomaly.investigation_id == investigation_id)
        )
        return summarize_findings(analyses.scalars().all(), anomalies.scalars().all())

    async def generate_executive_summary(self, investigation_id: uuid.UUID) -> str:
        """
        Read-only aggregation of every analysis artifact.

        Raises:
            InvestigationNotFoundException: no such investigation
        """
        result = await self.db.execute(
            select(Investigation).where(Investigation.id == investigation_id)
        )
        investigation = result.scalar_one_or_none()
        if investigation is None:
            raise InvestigationNotFoundException(investigation_id)

        findings = await self.collect_findings(investigation_id)
        return render_executive_summary(investigation, findings)

    async def create_forensic_report(
        self,
        investigation_id: uuid.UUID,
        report_type: ReportType,
        title: str,
        methodology: Optional[str] = None,
        findings: Optional[str] = None,
        damage_calculations: Optional[Dict[str, Any]] = None,
        attribution_analysis: Optional[str] = None,
        conclusions: Optional[str] = None,
        limitations: Optional[str] = None,
        generated_by: Optional[str] = None,
        status: ReportStatus = ReportStatus.DRAFT,
        file_url: Optional[str] = None,
    ) -> ForensicReport:
        """Insert the next version of a report type for the investigation."""
        version = await self._next_version(investigation_id, report_type)
        report_number = await self._generate_report_number()

        report = ForensicReport(
            investigation_id=investigation_id,
            report_number=report_number,
            report_type=report_type,
            version=version,
            title=title,
            methodology=methodology,
            findings=findings,
            damage_calculations=damage_calculations,
            attribution_analysis=attribution_analysis,
            conclusions=conclusions,
            limitations=limitations,
            generated_by=generated_by,
            generated_at=utcnow(),
            status=status,
            file_url=file_url,
        )
        self.db.add(report)
        await self.db.commit()
        await self.db.refresh(report)

        logger.info(
            f"Created report {report_number} ({report_type.value} v{version}) "
            f"for investigation {investigation_id}"
        )
        return report

    async def save_executive_summary(
        self,
        investigation_id: uuid.UUID,
        generated_by: Optional[str] = None,
    ) -> ForensicReport:
        """Persist the current executive summary as a new report version."""
        summary = await self.generate_executive_summary(investigation_id)
        findings = await self.collect_findings(investigation_id)
        return await self.create_forensic_report(
            investigation_id=investigation_id,
            report_type=ReportType.EXECUTIVE_SUMMARY,
            title="Executive Summary",
            methodology="Automated heuristic scoring and statistical anomaly detection",
            findings=summary,
            damage_calculations={
                "method": "direct_loss",
                "improper_total": str(findings.improper_total),
            },
            generated_by=generated_by,
        )

    async def get_forensic_reports(self, investigation_id: uuid.UUID) -> List[ForensicReport]:
        """Report versions for an investigation, newest first."""
        result = await self.db.execute(
            select(ForensicReport)
            .where(ForensicReport.investigation_id == investigation_id)
            .order_by(ForensicReport.generated_at.desc(), ForensicReport.version.desc())
        )
        return list(result.scalars().all())

    async def _next_version(self, investigation_id: uuid.UUID, report_type: ReportType) -> int:
        result = await self.db.execute(
            select(func.max(ForensicReport.version)).where(
                ForensicReport.investigation_id == investigation_id,
                ForensicReport.report_type == report_type,
            )
        )
        return (result.scalar() or 0) + 1

    async def _generate_report_number(self) -> str:
        """Generate a unique report number."""
        prefix = f"FR-{utcnow().year}-"

        result = await self.db.execute(
            select(ForensicReport.report_number).where(
                ForensicReport.report_number.like(f"{prefix}%")
            )
        )
        sequence = next_sequence(result.scalars().all(), prefix)

        return f"{prefix}{sequence:05d}"
