"""Initial awards schema: nominators, nominees, nominations, votes, bulk uploads, outboxes

Revision ID: 3f1a9c07d2e4
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1a9c07d2e4'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

NOW = sa.text('(CURRENT_TIMESTAMP)')


def _outbox_table(name):
    op.create_table(name,
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('event_type', sa.Text(), nullable=False),
        sa.Column('payload', sa.JSON(), nullable=False),
        sa.Column('status', sa.Text(), nullable=False, server_default='pending'),
        sa.Column('attempt_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_error', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=NOW, nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=NOW, nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(f'ix_{name}_status_created', name, ['status', 'created_at'])


def upgrade() -> None:
    op.create_table('nominators',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('email', sa.Text(), nullable=False),
        sa.Column('first_name', sa.Text(), nullable=True),
        sa.Column('last_name', sa.Text(), nullable=True),
        sa.Column('company', sa.Text(), nullable=True),
        sa.Column('job_title', sa.Text(), nullable=True),
        sa.Column('phone', sa.Text(), nullable=True),
        sa.Column('country', sa.Text(), nullable=True),
        sa.Column('linkedin', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=NOW, nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_nominators_email', 'nominators', ['email'])

    op.create_table('nominees',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('type', sa.Text(), nullable=False),
        sa.Column('email', sa.Text(), nullable=True),
        sa.Column('email_normalized', sa.Text(), nullable=True),
        sa.Column('first_name', sa.Text(), nullable=True),
        sa.Column('last_name', sa.Text(), nullable=True),
        sa.Column('job_title', sa.Text(), nullable=True),
        sa.Column('person_company', sa.Text(), nullable=True),
        sa.Column('person_phone', sa.Text(), nullable=True),
        sa.Column('person_country', sa.Text(), nullable=True),
        sa.Column('person_linkedin', sa.Text(), nullable=True),
        sa.Column('headshot_url', sa.Text(), nullable=True),
        sa.Column('why_me', sa.Text(), nullable=True),
        sa.Column('company_name', sa.Text(), nullable=True),
        sa.Column('company_website', sa.Text(), nullable=True),
        sa.Column('company_linkedin', sa.Text(), nullable=True),
        sa.Column('company_phone', sa.Text(), nullable=True),
        sa.Column('company_country', sa.Text(), nullable=True),
        sa.Column('company_industry', sa.Text(), nullable=True),
        sa.Column('company_size', sa.Text(), nullable=True),
        sa.Column('logo_url', sa.Text(), nullable=True),
        sa.Column('why_us', sa.Text(), nullable=True),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('achievements', sa.Text(), nullable=True),
        sa.Column('slug', sa.Text(), nullable=True),
        sa.Column('live_url', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=NOW, nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=NOW, nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email_normalized', name='uq_nominee_email_normalized'),
        sa.UniqueConstraint('slug', name='uq_nominee_slug'),
    )

    op.create_table('bulk_upload_batches',
        sa.Column('id', sa.Text(), nullable=False),
        sa.Column('filename', sa.Text(), nullable=False),
        sa.Column('upload_type', sa.Text(), nullable=False),
        sa.Column('status', sa.Text(), nullable=False, server_default='processing'),
        sa.Column('total_rows', sa.Integer(), nullable=True),
        sa.Column('processed_rows', sa.Integer(), nullable=True),
        sa.Column('successful_rows', sa.Integer(), nullable=True),
        sa.Column('failed_rows', sa.Integer(), nullable=True),
        sa.Column('draft_rows', sa.Integer(), nullable=True),
        sa.Column('approved_rows', sa.Integer(), nullable=True),
        sa.Column('uploaded_by', sa.Text(), nullable=True),
        sa.Column('csv_headers', sa.JSON(), nullable=True),
        sa.Column('error_summary', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=NOW, nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('approval_completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table('bulk_upload_errors',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('batch_id', sa.Text(), nullable=False),
        sa.Column('row_number', sa.Integer(), nullable=False),
        sa.Column('field_name', sa.Text(), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=False),
        sa.Column('error_type', sa.Text(), nullable=False),
        sa.Column('raw_data', sa.JSON(), nullable=True),
        sa.Column('suggested_fix', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=NOW, nullable=True),
        sa.ForeignKeyConstraint(['batch_id'], ['bulk_upload_batches.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_bulk_upload_errors_batch_id', 'bulk_upload_errors', ['batch_id'])

    op.create_table('nominations',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('nominator_id', sa.Integer(), nullable=False),
        sa.Column('nominee_id', sa.Integer(), nullable=False),
        sa.Column('category_group_id', sa.Text(), nullable=False),
        sa.Column('subcategory_id', sa.Text(), nullable=False),
        sa.Column('state', sa.Text(), nullable=False, server_default='submitted'),
        sa.Column('votes', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('additional_votes', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('approved_by', sa.Text(), nullable=True),
        sa.Column('rejected_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('admin_notes', sa.Text(), nullable=True),
        sa.Column('upload_source', sa.Text(), nullable=False, server_default='form'),
        sa.Column('bulk_upload_batch_id', sa.Text(), nullable=True),
        sa.Column('bulk_upload_row_number', sa.Integer(), nullable=True),
        sa.Column('uploaded_by', sa.Text(), nullable=True),
        sa.Column('hubspot_sync_pending', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('hubspot_synced_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('loops_sync_status', sa.Text(), nullable=True),
        sa.Column('loops_synced_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=NOW, nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=NOW, nullable=True),
        sa.ForeignKeyConstraint(['nominator_id'], ['nominators.id']),
        sa.ForeignKeyConstraint(['nominee_id'], ['nominees.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['bulk_upload_batch_id'], ['bulk_upload_batches.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('nominee_id', 'subcategory_id', name='uq_nomination_nominee_subcategory'),
    )
    op.create_index('ix_nominations_state', 'nominations', ['state'])
    op.create_index('ix_nominations_subcategory_id', 'nominations', ['subcategory_id'])
    op.create_index('ix_nominations_bulk_upload_batch_id', 'nominations', ['bulk_upload_batch_id'])

    op.create_table('voters',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('email', sa.Text(), nullable=False),
        sa.Column('first_name', sa.Text(), nullable=True),
        sa.Column('last_name', sa.Text(), nullable=True),
        sa.Column('company', sa.Text(), nullable=True),
        sa.Column('job_title', sa.Text(), nullable=True),
        sa.Column('country', sa.Text(), nullable=True),
        sa.Column('linkedin', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=NOW, nullable=True),
        sa.Column('last_voted_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )

    op.create_table('votes',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('voter_id', sa.Integer(), nullable=False),
        sa.Column('nomination_id', sa.Integer(), nullable=False),
        sa.Column('subcategory_id', sa.Text(), nullable=False),
        sa.Column('ip', sa.Text(), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=NOW, nullable=True),
        sa.ForeignKeyConstraint(['voter_id'], ['voters.id']),
        sa.ForeignKeyConstraint(['nomination_id'], ['nominations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('voter_id', 'subcategory_id', name='uq_vote_voter_subcategory'),
    )

    _outbox_table('hubspot_outbox')
    _outbox_table('loops_outbox')


def downgrade() -> None:
    op.drop_index('ix_loops_outbox_status_created', 'loops_outbox')
    op.drop_table('loops_outbox')
    op.drop_index('ix_hubspot_outbox_status_created', 'hubspot_outbox')
    op.drop_table('hubspot_outbox')
    op.drop_table('votes')
    op.drop_table('voters')
    op.drop_index('ix_nominations_bulk_upload_batch_id', 'nominations')
    op.drop_index('ix_nominations_subcategory_id', 'nominations')
    op.drop_index('ix_nominations_state', 'nominations')
    op.drop_table('nominations')
    op.drop_index('ix_bulk_upload_errors_batch_id', 'bulk_upload_errors')
    op.drop_table('bulk_upload_errors')
    op.drop_table('bulk_upload_batches')
    op.drop_table('nominees')
    op.drop_index('ix_nominators_email', 'nominators')
    op.drop_table('nominators')
