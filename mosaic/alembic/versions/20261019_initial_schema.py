"""initial schema

Revision ID: 0a1b2c3d4e5f
Revises:
Create Date: 2026-10-19 09:00:00.000000

Creates the content schema tables, pages with their section links, the
section type catalog and one table per built-in section variant.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0a1b2c3d4e5f'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JsonDocument = sa.JSON().with_variant(postgresql.JSONB(), 'postgresql')

# (column, type, nullable) for each built-in section table
SECTION_TABLES = {
    'components_sections_heroes': [
        ('heading', sa.String(length=500), True),
        ('title', sa.String(length=500), True),
        ('subtitle', sa.String(length=500), True),
        ('description', sa.Text(), True),
        ('label', sa.String(length=255), True),
        ('buttons', JsonDocument, False),
        ('picture_url', sa.String(length=1024), True),
        ('background_image_url', sa.String(length=1024), True),
        ('small_text_with_link', sa.Text(), True),
    ],
    'components_sections_feature_rows': [
        ('heading', sa.String(length=500), True),
        ('subheading', sa.Text(), True),
        ('features', JsonDocument, False),
    ],
    'components_sections_feature_columns': [
        ('heading', sa.String(length=500), True),
        ('subheading', sa.Text(), True),
        ('columns', JsonDocument, False),
    ],
    'components_sections_testimonials': [
        ('heading', sa.String(length=500), True),
        ('subheading', sa.Text(), True),
        ('testimonials', JsonDocument, False),
        ('logos', JsonDocument, False),
    ],
    'components_sections_rich_text': [
        ('content', sa.Text(), True),
    ],
    'components_sections_pricing': [
        ('heading', sa.String(length=500), True),
        ('subheading', sa.Text(), True),
        ('plans', JsonDocument, False),
    ],
    'components_sections_lead_form': [
        ('heading', sa.String(length=500), True),
        ('subheading', sa.Text(), True),
        ('submit_button_text', sa.String(length=255), True),
        ('fields', JsonDocument, False),
    ],
    'components_sections_large_video': [
        ('title', sa.String(length=500), True),
        ('description', sa.Text(), True),
        ('video_url', sa.String(length=1024), True),
        ('thumbnail_url', sa.String(length=1024), True),
    ],
    'components_sections_bottom_actions': [
        ('title', sa.String(length=500), True),
        ('description', sa.Text(), True),
        ('buttons', JsonDocument, False),
    ],
    'components_sections_team': [
        ('heading', sa.String(length=500), True),
        ('subheading', sa.Text(), True),
        ('members', JsonDocument, False),
    ],
    'components_sections_technology': [
        ('heading', sa.String(length=500), True),
        ('subheading', sa.Text(), True),
        ('technologies', JsonDocument, False),
    ],
    'components_sections_contact': [
        ('heading', sa.String(length=500), True),
        ('subheading', sa.Text(), True),
        ('email', sa.String(length=255), True),
        ('phone', sa.String(length=50), True),
        ('address', sa.Text(), True),
        ('social_links', JsonDocument, False),
        ('show_map', sa.Boolean(), False),
        ('map_latitude', sa.Float(), True),
        ('map_longitude', sa.Float(), True),
    ],
}


def _audit_columns() -> list[sa.Column]:
    return [
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table('content_types',
        *_audit_columns(),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('display_name', sa.String(length=255), nullable=False),
        sa.Column('singular_name', sa.String(length=255), nullable=False),
        sa.Column('plural_name', sa.String(length=255), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_content_types_name', 'content_types', ['name'], unique=True)
    op.create_index('ix_content_types_created_at', 'content_types', ['created_at'])

    op.create_table('content_type_fields',
        *_audit_columns(),
        sa.Column('content_type_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('display_name', sa.String(length=255), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('translatable', sa.Boolean(), nullable=False),
        sa.Column('required', sa.Boolean(), nullable=False),
        sa.Column('min_length', sa.Integer(), nullable=True),
        sa.Column('max_length', sa.Integer(), nullable=True),
        sa.Column('min_value', sa.Float(), nullable=True),
        sa.Column('max_value', sa.Float(), nullable=True),
        sa.Column('display_order', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['content_type_id'], ['content_types.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('content_type_id', 'name', name='uq_content_type_field_name'),
    )
    op.create_index('ix_content_type_fields_content_type_id', 'content_type_fields', ['content_type_id'])
    op.create_index('ix_content_type_fields_created_at', 'content_type_fields', ['created_at'])

    op.create_table('content_entries',
        *_audit_columns(),
        sa.Column('content_type_id', sa.Uuid(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('published_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('base_data', JsonDocument, nullable=False),
        sa.ForeignKeyConstraint(['content_type_id'], ['content_types.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_content_entries_content_type_id', 'content_entries', ['content_type_id'])
    op.create_index('ix_content_entries_status', 'content_entries', ['status'])
    op.create_index('ix_content_entries_created_at', 'content_entries', ['created_at'])

    op.create_table('content_translations',
        *_audit_columns(),
        sa.Column('entry_id', sa.Uuid(), nullable=False),
        sa.Column('language_code', sa.String(length=10), nullable=False),
        sa.Column('translated_data', JsonDocument, nullable=False),
        sa.ForeignKeyConstraint(['entry_id'], ['content_entries.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('entry_id', 'language_code', name='uq_content_translation_locale'),
    )
    op.create_index('ix_content_translations_entry_id', 'content_translations', ['entry_id'])
    op.create_index('ix_content_translations_language_code', 'content_translations', ['language_code'])
    op.create_index('ix_content_translations_created_at', 'content_translations', ['created_at'])

    op.create_table('pages',
        *_audit_columns(),
        sa.Column('slug', sa.String(length=255), nullable=False),
        sa.Column('title', sa.String(length=500), nullable=False),
        sa.Column('short_name', sa.String(length=255), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('published_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('metadata', JsonDocument, nullable=False),
        sa.Column('locale', sa.String(length=10), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_pages_slug', 'pages', ['slug'], unique=True)
    op.create_index('ix_pages_status', 'pages', ['status'])
    op.create_index('ix_pages_locale', 'pages', ['locale'])
    op.create_index('ix_pages_created_at', 'pages', ['created_at'])

    op.create_table('pages_sections',
        *_audit_columns(),
        sa.Column('page_id', sa.Uuid(), nullable=False),
        sa.Column('section_id', sa.Uuid(), nullable=False),
        sa.Column('section_type', sa.String(length=100), nullable=False),
        sa.Column('field', sa.String(length=100), nullable=False),
        sa.Column('display_order', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['page_id'], ['pages.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_pages_sections_page_id', 'pages_sections', ['page_id'])
    op.create_index('ix_pages_sections_page_order', 'pages_sections', ['page_id', 'display_order'])
    op.create_index('ix_pages_sections_section', 'pages_sections', ['section_type', 'section_id'], unique=True)
    op.create_index('ix_pages_sections_created_at', 'pages_sections', ['created_at'])

    op.create_table('section_types',
        *_audit_columns(),
        sa.Column('uid', sa.String(length=100), nullable=False),
        sa.Column('display_name', sa.String(length=255), nullable=False),
        sa.Column('category', sa.String(length=100), nullable=False),
        sa.Column('icon', sa.String(length=100), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('table_name', sa.String(length=255), nullable=False),
        sa.Column('active', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_section_types_uid', 'section_types', ['uid'], unique=True)
    op.create_index('ix_section_types_created_at', 'section_types', ['created_at'])

    for table_name, columns in SECTION_TABLES.items():
        op.create_table(table_name,
            *_audit_columns(),
            *[sa.Column(name, type_, nullable=nullable) for name, type_, nullable in columns],
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index(f'ix_{table_name}_created_at', table_name, ['created_at'])


def downgrade() -> None:
    for table_name in reversed(list(SECTION_TABLES)):
        op.drop_index(f'ix_{table_name}_created_at', table_name=table_name)
        op.drop_table(table_name)

    op.drop_table('section_types')
    op.drop_table('pages_sections')
    op.drop_table('pages')
    op.drop_table('content_translations')
    op.drop_table('content_entries')
    op.drop_table('content_type_fields')
    op.drop_table('content_types')
