"""
FinTrace Forensics - Report Synthesizer Tests
"""

import pytest
from datetime import datetime, timezone
from uuid import uuid4

from fintrace.models.forensic import ForensicReport, ReportStatus, ReportType
from fintrace.services.forensic_analysis_service import ForensicAnalysisService
from fintrace.services.report_synthesizer import RECOMMENDATIONS, ReportService
from fintrace.utils.error_handling import InvestigationNotFoundException


class TestExecutiveSummary:

    @pytest.mark.asyncio
    async def test_summary_without_analysis(self, db_session, test_investigation):
        service = ReportService(db_session)

        summary = await service.generate_executive_summary(test_investigation.id)

        assert summary.startswith("# Executive Summary: Vendor kickback review\n")
        assert f"**Case Number:** {test_investigation.case_number}" in summary
        assert "**Investigation Period:** 2024-01-01 to 2024-12-31" in summary
        assert "**Status:** open" in summary
        assert "- **Total Transactions Analyzed:** 0" in summary
        assert "**$0.00**" in summary
        assert "- No anomalies detected" in summary

    @pytest.mark.asyncio
    async def test_summary_reflects_findings(self, db_session, test_user, test_investigation, ledger_transactions):
        analysis = ForensicAnalysisService(db_session)
        await analysis.analyze_all_transactions(test_investigation.id, test_user.id)
        await analysis.detect_duplicate_payments(test_investigation.id, test_user.id)
        await analysis.detect_unusual_timing(test_investigation.id, test_user.id)

        summary = await ReportService(db_session).generate_executive_summary(test_investigation.id)

        assert "- **Total Transactions Analyzed:** 5" in summary
        assert "- **High Risk Transactions:** 1" in summary
        assert "- **Improper Transactions:** 1" in summary
        assert "- **Questionable Transactions:** 0" in summary
        assert "- **Anomalies Detected:** 3" in summary
        assert "**$75000.00**" in summary
        assert "- 0 critical anomalies requiring immediate attention" in summary
        assert "- 1 high-severity anomalies" in summary

    @pytest.mark.asyncio
    async def test_recommendations_are_numbered(self, db_session, test_investigation):
        summary = await ReportService(db_session).generate_executive_summary(test_investigation.id)

        for number, text in enumerate(RECOMMENDATIONS, start=1):
            assert f"{number}. {text}" in summary

    @pytest.mark.asyncio
    async def test_generation_is_read_only(self, db_session, test_investigation):
        service = ReportService(db_session)

        await service.generate_executive_summary(test_investigation.id)

        assert await service.get_forensic_reports(test_investigation.id) == []

    @pytest.mark.asyncio
    async def test_unknown_investigation(self, db_session):
        with pytest.raises(InvestigationNotFoundException):
            await ReportService(db_session).generate_executive_summary(uuid4())


class TestForensicReports:

    @pytest.mark.asyncio
    async def test_versions_increase_per_report_type(self, db_session, test_investigation):
        service = ReportService(db_session)

        first = await service.create_forensic_report(
            test_investigation.id, ReportType.DETAILED_ANALYSIS, "Detailed analysis"
        )
        second = await service.create_forensic_report(
            test_investigation.id, ReportType.DETAILED_ANALYSIS, "Detailed analysis (revised)",
            status=ReportStatus.PEER_REVIEW,
        )
        other_type = await service.create_forensic_report(
            test_investigation.id, ReportType.FINAL_REPORT, "Final report"
        )

        assert (first.version, second.version, other_type.version) == (1, 2, 1)
        assert first.status == ReportStatus.DRAFT
        assert second.status == ReportStatus.PEER_REVIEW

    @pytest.mark.asyncio
    async def test_report_numbers(self, db_session, test_investigation):
        service = ReportService(db_session)
        year = datetime.now(timezone.utc).year

        first = await service.create_forensic_report(test_investigation.id, ReportType.FINAL_REPORT, "One")
        second = await service.create_forensic_report(test_investigation.id, ReportType.FINAL_REPORT, "Two")

        assert first.report_number == f"FR-{year}-00001"
        assert second.report_number == f"FR-{year}-00002"

    @pytest.mark.asyncio
    async def test_report_number_follows_highest_existing(self, db_session, test_investigation):
        service = ReportService(db_session)
        year = datetime.now(timezone.utc).year
        db_session.add(ForensicReport(
            investigation_id=test_investigation.id,
            report_number=f"FR-{year}-00007",
            report_type=ReportType.DETAILED_ANALYSIS,
            version=1,
            title="Imported",
            generated_at=datetime.now(timezone.utc),
            status=ReportStatus.FINALIZED,
        ))
        await db_session.commit()

        report = await service.create_forensic_report(test_investigation.id, ReportType.FINAL_REPORT, "Next")

        assert report.report_number == f"FR-{year}-00008"

    @pytest.mark.asyncio
    async def test_save_executive_summary(self, db_session, test_investigation):
        service = ReportService(db_session)

        report = await service.save_executive_summary(test_investigation.id, generated_by="Dana Investigator")
        reports = await service.get_forensic_reports(test_investigation.id)

        assert report.report_type == ReportType.EXECUTIVE_SUMMARY
        assert report.findings.startswith("# Executive Summary:")
        assert report.damage_calculations == {"method": "direct_loss", "improper_total": "0"}
        assert [r.id for r in reports] == [report.id]
