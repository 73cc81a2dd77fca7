"""Create project, document, branch and snapshot tables.

Revision ID: d1a7f3c2b9e0
Revises:
Create Date: 2026-10-17 09:00:00.000000

Branch heads, snapshot parents, the active branch and captured document
ids are plain UUID columns without foreign keys: the rows they point at
may be missing and readers handle that.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = 'd1a7f3c2b9e0'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _document_state_columns() -> list[sa.Column]:
    """Columns shared by Documents and SnapshotDocuments."""
    return [
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('document_type', sa.String(length=50), nullable=False),
        sa.Column('content_json', sa.Text(), nullable=True),
        sa.Column('content_plain', sa.Text(), nullable=False),
        sa.Column('word_count', sa.Integer(), nullable=False),
        sa.Column('paper_size', sa.String(length=20), nullable=False),
        sa.Column('margin_top', sa.Float(), nullable=False),
        sa.Column('margin_bottom', sa.Float(), nullable=False),
        sa.Column('margin_left', sa.Float(), nullable=False),
        sa.Column('margin_right', sa.Float(), nullable=False),
        sa.Column('line_spacing', sa.Float(), nullable=False),
        sa.Column('paragraph_spacing_before', sa.Float(), nullable=False),
        sa.Column('paragraph_spacing', sa.Float(), nullable=False),
        sa.Column('first_line_indent', sa.Float(), nullable=False),
        sa.Column('body_font_name', sa.String(length=100), nullable=False),
        sa.Column('body_font_size', sa.Float(), nullable=False),
        sa.Column('body_alignment', sa.String(length=20), nullable=False),
        sa.Column('hyphenation_enabled', sa.Boolean(), nullable=False),
        sa.Column('include_page_numbers', sa.Boolean(), nullable=False),
        sa.Column('include_table_of_contents', sa.Boolean(), nullable=False),
    ]


def upgrade() -> None:
    """Create the version control schema."""
    op.create_table(
        'Projects',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('color_tag', sa.String(length=20), nullable=True),
        sa.Column('sort_order', sa.Integer(), nullable=False),
        sa.Column('active_branch_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_Projects_name', 'Projects', ['name'], unique=False)

    op.create_table(
        'Documents',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('project_id', postgresql.UUID(as_uuid=True), nullable=True),
        *_document_state_columns(),
        sa.Column('sort_order', sa.Integer(), nullable=False),
        sa.Column('row_version', sa.Integer(), nullable=False),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['project_id'], ['Projects.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_Documents_project_id', 'Documents', ['project_id'], unique=False)
    op.create_index('ix_Documents_deleted_at', 'Documents', ['deleted_at'], unique=False)
    op.create_index('ix_documents_project_sort', 'Documents', ['project_id', 'sort_order'], unique=False)

    op.create_table(
        'ProjectBranches',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('project_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('is_default', sa.Boolean(), nullable=False),
        sa.Column('head_snapshot_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['project_id'], ['Projects.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_ProjectBranches_project_id', 'ProjectBranches', ['project_id'], unique=False)

    op.create_table(
        'ProjectSnapshots',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('project_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('label', sa.String(length=255), nullable=False),
        sa.Column('trigger_type', sa.String(length=50), nullable=False),
        sa.Column('word_count', sa.Integer(), nullable=False),
        sa.Column('page_count', sa.Integer(), nullable=False),
        sa.Column('preview_image_path', sa.String(length=512), nullable=True),
        sa.Column('parent_snapshot_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['project_id'], ['Projects.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_ProjectSnapshots_project_id', 'ProjectSnapshots', ['project_id'], unique=False)
    op.create_index(
        'ix_project_snapshots_project_created',
        'ProjectSnapshots',
        ['project_id', 'created_at'],
        unique=False,
    )

    op.create_table(
        'SnapshotDocuments',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('snapshot_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('document_id', postgresql.UUID(as_uuid=True), nullable=False),
        *_document_state_columns(),
        sa.ForeignKeyConstraint(['snapshot_id'], ['ProjectSnapshots.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_SnapshotDocuments_snapshot_id', 'SnapshotDocuments', ['snapshot_id'], unique=False)
    op.create_index('ix_SnapshotDocuments_document_id', 'SnapshotDocuments', ['document_id'], unique=False)


def downgrade() -> None:
    """Drop the version control schema."""
    op.drop_index('ix_SnapshotDocuments_document_id', table_name='SnapshotDocuments')
    op.drop_index('ix_SnapshotDocuments_snapshot_id', table_name='SnapshotDocuments')
    op.drop_table('SnapshotDocuments')
    op.drop_index('ix_project_snapshots_project_created', table_name='ProjectSnapshots')
    op.drop_index('ix_ProjectSnapshots_project_id', table_name='ProjectSnapshots')
    op.drop_table('ProjectSnapshots')
    op.drop_index('ix_ProjectBranches_project_id', table_name='ProjectBranches')
    op.drop_table('ProjectBranches')
    op.drop_index('ix_documents_project_sort', table_name='Documents')
    op.drop_index('ix_Documents_deleted_at', table_name='Documents')
    op.drop_index('ix_Documents_project_id', table_name='Documents')
    op.drop_table('Documents')
    op.drop_index('ix_Projects_name', table_name='Projects')
    op.drop_table('Projects')
