"""Create forensic engine tables

Revision ID: 20261019_0900_forensic_engine
Revises:
Create Date: 2026-10-19 09:00:00.000000

This migration creates:
- users, transactions: identity and ledger tables owned upstream
  (created here only when absent, for standalone deployments)
- forensic_investigations: case management
- forensic_evidence, forensic_custody_entries: evidence ledger
- forensic_transaction_analysis, forensic_anomalies: analysis artifacts
- forensic_flow_of_funds: investigator-recorded money movements
- forensic_reports: versioned report artifacts

Evidence, custody, analysis and report rows are append-only; the ORM
rejects updates and deletes on them.
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = '20261019_0900_forensic_engine'
down_revision = None
branch_labels = None
depends_on = None


JSON = sa.JSON().with_variant(postgresql.JSONB(), 'postgresql')

# Enum members are stored by name
transaction_type = sa.Enum('INCOME', 'EXPENSE', name='transactiontype')
investigation_status = sa.Enum('OPEN', 'IN_PROGRESS', 'COMPLETED', 'CLOSED', name='investigationstatus')
evidence_type = sa.Enum(
    'BANK_STATEMENT', 'EMAIL', 'DOCUMENT', 'DEVICE', 'TRANSACTION_RECORD', 'OTHER',
    name='evidencetype',
)
risk_level = sa.Enum('LOW', 'MEDIUM', 'HIGH', name='risklevel')
legitimacy_assessment = sa.Enum(
    'PROPER', 'QUESTIONABLE', 'IMPROPER', 'UNABLE_TO_DETERMINE',
    name='legitimacyassessment',
)
anomaly_type = sa.Enum(
    'DUPLICATE_PAYMENT', 'ROUND_DOLLAR', 'UNUSUAL_TIMING', 'BENFORD_VIOLATION', 'OTHER',
    name='anomalytype',
)
anomaly_severity = sa.Enum('LOW', 'MEDIUM', 'HIGH', 'CRITICAL', name='anomalyseverity')
detection_method = sa.Enum('AUTOMATED', 'MANUAL', 'AI_ASSISTED', name='detectionmethod')
anomaly_status = sa.Enum('PENDING', 'REVIEWED', 'DISMISSED', 'ESCALATED', name='anomalystatus')
transfer_method = sa.Enum('WIRE', 'CHECK', 'ACH', 'CASH', 'OTHER', name='transfermethod')
traceability = sa.Enum('FULLY_TRACED', 'PARTIALLY_TRACED', 'UNTRACED', name='traceability')
report_type = sa.Enum(
    'EXECUTIVE_SUMMARY', 'DETAILED_ANALYSIS', 'DAMAGE_CALCULATION', 'FINAL_REPORT',
    name='reporttype',
)
report_status = sa.Enum('DRAFT', 'PEER_REVIEW', 'FINALIZED', name='reportstatus')


def _timestamps(updated: bool = True):
    columns = [sa.Column('created_at', sa.DateTime(timezone=True), nullable=False)]
    if updated:
        columns.append(sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False))
    return columns


def upgrade() -> None:
    """Create forensic engine tables."""

    connection = op.get_bind()
    inspector = sa.inspect(connection)
    existing_tables = inspector.get_table_names()

    if 'users' not in existing_tables:
        op.create_table(
            'users',
            sa.Column('id', sa.Uuid(), primary_key=True),
            sa.Column('email', sa.String(255), nullable=False),
            sa.Column('full_name', sa.String(200), nullable=False),
            sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
            *_timestamps(),
        )
        op.create_index('ix_users_email', 'users', ['email'], unique=True)

    if 'transactions' not in existing_tables:
        op.create_table(
            'transactions',
            sa.Column('id', sa.Uuid(), primary_key=True),
            sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
            sa.Column('title', sa.String(255), nullable=False),
            sa.Column('description', sa.Text(), nullable=True),
            sa.Column('amount', sa.Numeric(15, 2), nullable=False),
            sa.Column('transaction_type', transaction_type, nullable=False),
            sa.Column('transaction_date', sa.DateTime(timezone=True), nullable=True),
            *_timestamps(),
        )
        op.create_index('ix_transactions_user_id', 'transactions', ['user_id'])
        op.create_index('ix_transactions_transaction_date', 'transactions', ['transaction_date'])

    # ===========================================
    # CASE MANAGEMENT
    # ===========================================
    op.create_table(
        'forensic_investigations',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('case_number', sa.String(50), nullable=False, unique=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('allegations', sa.Text(), nullable=True),
        sa.Column('investigation_period_start', sa.DateTime(timezone=True), nullable=True),
        sa.Column('investigation_period_end', sa.DateTime(timezone=True), nullable=True),
        sa.Column('status', investigation_status, nullable=False),
        sa.Column('lead_investigator', sa.String(200), nullable=True),
        sa.Column('metadata', JSON, nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_forensic_investigations_user_id', 'forensic_investigations', ['user_id'])
    op.create_index('ix_forensic_investigations_status', 'forensic_investigations', ['status'])

    # ===========================================
    # EVIDENCE LEDGER
    # ===========================================
    op.create_table(
        'forensic_evidence',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('investigation_id', sa.Uuid(), sa.ForeignKey('forensic_investigations.id'), nullable=False),
        sa.Column('evidence_number', sa.String(50), nullable=False),
        sa.Column('evidence_type', evidence_type, nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('source', sa.String(255), nullable=False),
        sa.Column('date_received', sa.DateTime(timezone=True), nullable=False),
        sa.Column('collected_by', sa.String(200), nullable=True),
        sa.Column('storage_location', sa.String(500), nullable=True),
        sa.Column('hash_value', sa.String(64), nullable=True, comment='SHA-256 of file-backed evidence content'),
        sa.Column('metadata', JSON, nullable=False),
        *_timestamps(updated=False),
        sa.UniqueConstraint('investigation_id', 'evidence_number', name='uq_forensic_evidence_number'),
    )
    op.create_index('ix_forensic_evidence_investigation_id', 'forensic_evidence', ['investigation_id'])

    op.create_table(
        'forensic_custody_entries',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('evidence_id', sa.Uuid(), sa.ForeignKey('forensic_evidence.id'), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.Column('transferred_to', sa.String(200), nullable=False),
        sa.Column('transferred_by', sa.String(200), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.Column('location', sa.String(500), nullable=False),
        sa.Column('purpose', sa.Text(), nullable=False),
        *_timestamps(updated=False),
        sa.UniqueConstraint('evidence_id', 'sequence', name='uq_forensic_custody_sequence'),
    )
    op.create_index('ix_forensic_custody_entries_evidence_id', 'forensic_custody_entries', ['evidence_id'])

    # ===========================================
    # ANALYSIS ARTIFACTS
    # ===========================================
    op.create_table(
        'forensic_transaction_analysis',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('investigation_id', sa.Uuid(), sa.ForeignKey('forensic_investigations.id'), nullable=False),
        sa.Column('transaction_id', sa.Uuid(), nullable=True),
        sa.Column('transaction_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('transaction_amount', sa.Numeric(15, 2), nullable=True),
        sa.Column('transaction_description', sa.Text(), nullable=True),
        sa.Column('risk_level', risk_level, nullable=False),
        sa.Column('legitimacy_assessment', legitimacy_assessment, nullable=False),
        sa.Column('red_flags', JSON, nullable=False),
        sa.Column('score', sa.Integer(), nullable=False),
        sa.Column('analysis_notes', sa.Text(), nullable=True),
        sa.Column('analyzed_by', sa.String(200), nullable=True),
        sa.Column('analyzed_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('evidence_references', JSON, nullable=False),
        *_timestamps(updated=False),
    )
    op.create_index(
        'ix_forensic_transaction_analysis_investigation_id',
        'forensic_transaction_analysis', ['investigation_id'],
    )
    op.create_index(
        'ix_forensic_transaction_analysis_risk_level',
        'forensic_transaction_analysis', ['risk_level'],
    )

    op.create_table(
        'forensic_anomalies',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('investigation_id', sa.Uuid(), sa.ForeignKey('forensic_investigations.id'), nullable=False),
        sa.Column('anomaly_type', anomaly_type, nullable=False),
        sa.Column('severity', anomaly_severity, nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('detected_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('detection_method', detection_method, nullable=False),
        sa.Column('related_transactions', JSON, nullable=False),
        sa.Column('status', anomaly_status, nullable=False),
        sa.Column('review_notes', sa.Text(), nullable=True),
        sa.Column('reviewed_by', sa.String(200), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_forensic_anomalies_investigation_id', 'forensic_anomalies', ['investigation_id'])
    op.create_index('ix_forensic_anomalies_severity', 'forensic_anomalies', ['severity'])

    op.create_table(
        'forensic_flow_of_funds',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('investigation_id', sa.Uuid(), sa.ForeignKey('forensic_investigations.id'), nullable=False),
        sa.Column('source_transaction_id', sa.Uuid(), nullable=True,
                  comment='Ledger transaction this hop continues from'),
        sa.Column('flow_name', sa.String(255), nullable=False),
        sa.Column('source_account', sa.String(255), nullable=False),
        sa.Column('destination_account', sa.String(255), nullable=False),
        sa.Column('amount', sa.Numeric(15, 2), nullable=False),
        sa.Column('transaction_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('transfer_method', transfer_method, nullable=True),
        sa.Column('intermediaries', JSON, nullable=False),
        sa.Column('stated_purpose', sa.Text(), nullable=True),
        sa.Column('actual_purpose', sa.Text(), nullable=True),
        sa.Column('beneficiaries', JSON, nullable=False),
        sa.Column('traceability', traceability, nullable=False),
        sa.Column('analysis_notes', sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_forensic_flow_of_funds_investigation_id', 'forensic_flow_of_funds', ['investigation_id'])
    op.create_index(
        'ix_forensic_flow_of_funds_source_transaction_id',
        'forensic_flow_of_funds', ['source_transaction_id'],
    )

    op.create_table(
        'forensic_reports',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('investigation_id', sa.Uuid(), sa.ForeignKey('forensic_investigations.id'), nullable=False),
        sa.Column('report_number', sa.String(50), nullable=False, unique=True),
        sa.Column('report_type', report_type, nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('methodology', sa.Text(), nullable=True),
        sa.Column('findings', sa.Text(), nullable=True),
        sa.Column('damage_calculations', JSON, nullable=True),
        sa.Column('attribution_analysis', sa.Text(), nullable=True),
        sa.Column('conclusions', sa.Text(), nullable=True),
        sa.Column('limitations', sa.Text(), nullable=True),
        sa.Column('generated_by', sa.String(200), nullable=True),
        sa.Column('generated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('peer_reviewed_by', sa.String(200), nullable=True),
        sa.Column('peer_reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('status', report_status, nullable=False),
        sa.Column('file_url', sa.String(1000), nullable=True),
        *_timestamps(updated=False),
    )
    op.create_index('ix_forensic_reports_investigation_id', 'forensic_reports', ['investigation_id'])


def downgrade() -> None:
    """Drop forensic engine tables. Upstream users/transactions are kept."""
    op.drop_table('forensic_reports')
    op.drop_table('forensic_flow_of_funds')
    op.drop_table('forensic_anomalies')
    op.drop_table('forensic_transaction_analysis')
    op.drop_table('forensic_custody_entries')
    op.drop_table('forensic_evidence')
    op.drop_table('forensic_investigations')

    # Drop enums
    for enum_type in (
        report_status, report_type, traceability, transfer_method, anomaly_status,
        detection_method, anomaly_severity, anomaly_type, legitimacy_assessment,
        risk_level, evidence_type, investigation_status,
    ):
        enum_type.drop(op.get_bind(), checkfirst=True)
