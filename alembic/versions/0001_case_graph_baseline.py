"""Case graph baseline: holders, parties, properties, leases, documents, intake links.

Revision ID: 0001_case_graph_baseline
Revises:
Create Date: 2026-10-17

Creates:
- case_holders, individuals, organizations
- properties, leases, lease_parties
- documents (exactly-one-owner check, identity unique constraint)
- intake_links
- completion_status_changes
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001_case_graph_baseline'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'case_holders',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('kind', sa.String(20), nullable=False),
        sa.Column('role', sa.String(20), nullable=False),
        sa.Column('completion_status', sa.String(20), nullable=False),
        *_timestamps(),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_case_holders'),
    )

    op.create_table(
        'individuals',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('case_holder_id', sa.Uuid(), nullable=False),
        sa.Column('is_primary', sa.Boolean(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('first_name', sa.String(255), nullable=True),
        sa.Column('last_name', sa.String(255), nullable=True),
        sa.Column('email', sa.String(320), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('full_address', sa.Text(), nullable=True),
        sa.Column('nationality', sa.String(100), nullable=True),
        sa.Column('birth_date', sa.Date(), nullable=True),
        sa.Column('birth_place', sa.String(255), nullable=True),
        sa.Column('family_status', sa.String(20), nullable=True),
        sa.Column('matrimonial_regime', sa.String(100), nullable=True),
        sa.Column('profession', sa.String(255), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ['case_holder_id'], ['case_holders.id'], ondelete='CASCADE',
            name='fk_individuals_case_holder_id_case_holders',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_individuals'),
    )
    op.create_index(
        'idx_individuals_holder_order', 'individuals',
        ['case_holder_id', 'is_primary', 'position'],
    )

    op.create_table(
        'organizations',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('case_holder_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('legal_name', sa.String(255), nullable=True),
        sa.Column('registration', sa.String(100), nullable=True),
        sa.Column('nationality', sa.String(100), nullable=True),
        sa.Column('email', sa.String(320), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('full_address', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ['case_holder_id'], ['case_holders.id'], ondelete='CASCADE',
            name='fk_organizations_case_holder_id_case_holders',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_organizations'),
        sa.UniqueConstraint('case_holder_id', name='uq_organizations_case_holder_id'),
    )

    op.create_table(
        'properties',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('owner_id', sa.Uuid(), nullable=False),
        sa.Column('label', sa.String(255), nullable=True),
        sa.Column('full_address', sa.Text(), nullable=True),
        sa.Column('surface_m2', sa.Numeric(10, 2), nullable=True),
        sa.Column('property_type', sa.String(50), nullable=True),
        sa.Column('legal_status', sa.String(30), nullable=True),
        sa.Column('completion_status', sa.String(20), nullable=False),
        *_timestamps(),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(
            ['owner_id'], ['case_holders.id'], ondelete='CASCADE',
            name='fk_properties_owner_id_case_holders',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_properties'),
    )
    op.create_index('idx_properties_owner', 'properties', ['owner_id'])

    op.create_table(
        'leases',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('property_id', sa.Uuid(), nullable=False),
        sa.Column('status', sa.String(30), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ['property_id'], ['properties.id'], ondelete='CASCADE',
            name='fk_leases_property_id_properties',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_leases'),
    )

    op.create_table(
        'lease_parties',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('lease_id', sa.Uuid(), nullable=False),
        sa.Column('case_holder_id', sa.Uuid(), nullable=False),
        sa.Column('side', sa.String(20), nullable=False),
        sa.ForeignKeyConstraint(
            ['lease_id'], ['leases.id'], ondelete='CASCADE',
            name='fk_lease_parties_lease_id_leases',
        ),
        sa.ForeignKeyConstraint(
            ['case_holder_id'], ['case_holders.id'], ondelete='CASCADE',
            name='fk_lease_parties_case_holder_id_case_holders',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_lease_parties'),
        sa.UniqueConstraint('lease_id', 'case_holder_id', name='uq_lease_parties_lease_holder'),
    )

    # ==========================================================================
    # documents: exactly one owner, identity key unique
    # ==========================================================================
    op.create_table(
        'documents',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('kind', sa.String(50), nullable=False),
        sa.Column('content_locator', sa.String(1024), nullable=False),
        sa.Column('media_type', sa.String(100), nullable=True),
        sa.Column('size', sa.Integer(), nullable=True),
        sa.Column('label', sa.String(255), nullable=True),
        sa.Column('uploaded_by_id', sa.Uuid(), nullable=True),
        sa.Column('individual_id', sa.Uuid(), nullable=True),
        sa.Column('organization_id', sa.Uuid(), nullable=True),
        sa.Column('case_holder_id', sa.Uuid(), nullable=True),
        sa.Column('property_id', sa.Uuid(), nullable=True),
        sa.Column('lease_id', sa.Uuid(), nullable=True),
        sa.Column('owner_key', sa.String(80), nullable=False),
        *_timestamps(),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(
            ['individual_id'], ['individuals.id'], ondelete='CASCADE',
            name='fk_documents_individual_id_individuals',
        ),
        sa.ForeignKeyConstraint(
            ['organization_id'], ['organizations.id'], ondelete='CASCADE',
            name='fk_documents_organization_id_organizations',
        ),
        sa.ForeignKeyConstraint(
            ['case_holder_id'], ['case_holders.id'], ondelete='CASCADE',
            name='fk_documents_case_holder_id_case_holders',
        ),
        sa.ForeignKeyConstraint(
            ['property_id'], ['properties.id'], ondelete='CASCADE',
            name='fk_documents_property_id_properties',
        ),
        sa.ForeignKeyConstraint(
            ['lease_id'], ['leases.id'], ondelete='CASCADE',
            name='fk_documents_lease_id_leases',
        ),
        sa.CheckConstraint(
            "(CASE WHEN individual_id IS NULL THEN 0 ELSE 1 END)"
            " + (CASE WHEN organization_id IS NULL THEN 0 ELSE 1 END)"
            " + (CASE WHEN case_holder_id IS NULL THEN 0 ELSE 1 END)"
            " + (CASE WHEN property_id IS NULL THEN 0 ELSE 1 END)"
            " + (CASE WHEN lease_id IS NULL THEN 0 ELSE 1 END) = 1",
            name='ck_documents_exactly_one_owner',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_documents'),
        sa.UniqueConstraint('content_locator', 'kind', 'owner_key', name='uq_documents_identity'),
    )
    for column in ('individual', 'organization', 'case_holder', 'property', 'lease'):
        op.create_index(f'idx_documents_{column}', 'documents', [f'{column}_id'])

    op.create_table(
        'intake_links',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('token', sa.String(128), nullable=False),
        sa.Column('case_holder_id', sa.Uuid(), nullable=False),
        sa.Column('property_id', sa.Uuid(), nullable=True),
        sa.Column('lease_id', sa.Uuid(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False),
        *_timestamps(),
        sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ['case_holder_id'], ['case_holders.id'], ondelete='CASCADE',
            name='fk_intake_links_case_holder_id_case_holders',
        ),
        sa.ForeignKeyConstraint(
            ['property_id'], ['properties.id'], ondelete='SET NULL',
            name='fk_intake_links_property_id_properties',
        ),
        sa.ForeignKeyConstraint(
            ['lease_id'], ['leases.id'], ondelete='SET NULL',
            name='fk_intake_links_lease_id_leases',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_intake_links'),
        sa.UniqueConstraint('token', name='uq_intake_links_token'),
    )

    op.create_table(
        'completion_status_changes',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('entity_type', sa.String(20), nullable=False),
        sa.Column('entity_id', sa.Uuid(), nullable=False),
        sa.Column('old_status', sa.String(20), nullable=False),
        sa.Column('new_status', sa.String(20), nullable=False),
        sa.Column('changed_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_completion_status_changes'),
    )
    op.create_index(
        'idx_completion_changes_entity', 'completion_status_changes',
        ['entity_type', 'entity_id'],
    )


def downgrade() -> None:
    op.drop_table('completion_status_changes')
    op.drop_table('intake_links')
    op.drop_table('documents')
    op.drop_table('lease_parties')
    op.drop_table('leases')
    op.drop_table('properties')
    op.drop_table('organizations')
    op.drop_table('individuals')
    op.drop_table('case_holders')
