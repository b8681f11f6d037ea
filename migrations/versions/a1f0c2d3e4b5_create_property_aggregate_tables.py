"""Create property aggregate tables

Revision ID: a1f0c2d3e4b5
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'a1f0c2d3e4b5'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


ATTRIBUTE_TABLES = (
    ('property_amenities', 'amenity_type', ()),
    ('property_facilities', 'facility_type', (('facility_category', 100),)),
    ('property_views', 'view_type', ()),
    ('property_highlights', 'highlight_type', ()),
    ('property_labels', 'label_type', ()),
    ('property_nearby', 'nearby_type', (('distance', 50),)),
)

MEDIA_TABLES = ('property_images', 'floor_plans', 'unit_plans')


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # Users (contact fields only)
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
        sa.Column('role', sa.String(20), nullable=False, server_default='user'),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('line_id', sa.String(100), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_role', 'users', ['role'])

    # Icon catalog
    op.create_table(
        'icons',
        sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
        sa.Column('key', sa.String(100), nullable=True),
        sa.Column('category', sa.String(50), nullable=True),
        sa.Column('icon_path', sa.String(500), nullable=True),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('name_th', sa.String(255), nullable=True),
        sa.Column('name_ch', sa.String(255), nullable=True),
        sa.Column('name_ru', sa.String(255), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('key'),
    )

    # Properties
    op.create_table(
        'properties',
        sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('property_code', sa.String(20), nullable=True),
        sa.Column('reference_id', sa.String(100), nullable=True),
        sa.Column('property_type_id', sa.Integer(), nullable=True),
        sa.Column('zone_id', sa.Integer(), nullable=True),
        sa.Column('title', sa.String(255), nullable=True),
        sa.Column('project_name', sa.String(255), nullable=True),
        sa.Column('address', sa.String(500), nullable=True),
        sa.Column('search_address', sa.String(500), nullable=True),
        sa.Column('district', sa.String(100), nullable=True),
        sa.Column('subdistrict', sa.String(100), nullable=True),
        sa.Column('province', sa.String(100), nullable=True),
        sa.Column('city', sa.String(100), nullable=True),
        sa.Column('country', sa.String(100), nullable=True),
        sa.Column('zip_code', sa.String(20), nullable=True),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('area', sa.Float(), nullable=True),
        sa.Column('usable_area', sa.Float(), nullable=True),
        sa.Column('land_size_rai', sa.Float(), nullable=True),
        sa.Column('land_size_ngan', sa.Float(), nullable=True),
        sa.Column('land_size_sq_wah', sa.Float(), nullable=True),
        sa.Column('land_size_sqm', sa.Float(), nullable=True),
        sa.Column('land_width', sa.Float(), nullable=True),
        sa.Column('land_length', sa.Float(), nullable=True),
        sa.Column('land_shape', sa.String(100), nullable=True),
        sa.Column('land_grade', sa.String(100), nullable=True),
        sa.Column('land_access', sa.String(100), nullable=True),
        sa.Column('ownership_type', sa.String(100), nullable=True),
        sa.Column('ownership_quota', sa.String(100), nullable=True),
        sa.Column('bedrooms', sa.Integer(), nullable=True),
        sa.Column('bathrooms', sa.Integer(), nullable=True),
        sa.Column('floors', sa.Integer(), nullable=True),
        sa.Column('floor', sa.Integer(), nullable=True),
        sa.Column('furnishing', sa.String(100), nullable=True),
        sa.Column('construction_year', sa.Integer(), nullable=True),
        sa.Column('community_fee', sa.Float(), nullable=True),
        sa.Column('building_unit', sa.String(100), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('payment_plan', sa.Text(), nullable=True),
        sa.Column('video_url', sa.String(500), nullable=True),
        sa.Column('translated_titles', sa.Text(), nullable=True),
        sa.Column('translated_descriptions', sa.Text(), nullable=True),
        sa.Column('translated_payment_plans', sa.Text(), nullable=True),
        sa.Column('social_media', sa.Text(), nullable=True),
        sa.Column('contact_info', sa.Text(), nullable=True),
        sa.Column('co_agent_accept', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('commission_type', sa.String(50), nullable=True),
        sa.Column('commission_percent', sa.Float(), nullable=True),
        sa.Column('commission_amount', sa.Float(), nullable=True),
        sa.Column('private_note', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='ACTIVE'),
        sa.Column('is_published', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_featured', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('view_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('interested_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
    )
    op.create_index('ix_properties_property_code', 'properties', ['property_code'], unique=True)
    op.create_index('ix_properties_user_id', 'properties', ['user_id'])
    op.create_index('ix_properties_property_type_id', 'properties', ['property_type_id'])
    op.create_index('ix_properties_zone_id', 'properties', ['zone_id'])
    op.create_index('ix_properties_status', 'properties', ['status'])
    op.create_index('ix_properties_is_published', 'properties', ['is_published'])
    op.create_index('ix_properties_deleted_at', 'properties', ['deleted_at'])

    # Listings
    op.create_table(
        'property_listings',
        sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
        sa.Column('property_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('listing_type', sa.String(10), nullable=False, server_default='SALE'),
        sa.Column('status', sa.String(20), nullable=False, server_default='ACTIVE'),
        sa.Column('price', sa.Float(), nullable=False, server_default='0'),
        sa.Column('promotional_price', sa.Float(), nullable=True),
        sa.Column('price_per_sqm', sa.Float(), nullable=True),
        sa.Column('currency', sa.String(10), nullable=False, server_default='THB'),
        sa.Column('short_term_3_months', sa.Float(), nullable=True),
        sa.Column('short_term_6_months', sa.Float(), nullable=True),
        sa.Column('short_term_1_year', sa.Float(), nullable=True),
        sa.Column('minimum_stay', sa.Integer(), nullable=True),
        sa.Column('commission_percent', sa.Float(), nullable=True),
        sa.Column('commission_amount', sa.Float(), nullable=True),
        sa.Column('contact_name', sa.String(255), nullable=True),
        sa.Column('contact_phone', sa.String(50), nullable=True),
        sa.Column('contact_email', sa.String(255), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['property_id'], ['properties.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
    )
    op.create_index('ix_property_listings_property_id', 'property_listings', ['property_id'])
    op.create_index('ix_property_listings_user_id', 'property_listings', ['user_id'])
    op.create_index('ix_property_listings_property_type', 'property_listings', ['property_id', 'listing_type'])

    # Attribute collections
    for table, type_column, extra_columns in ATTRIBUTE_TABLES:
        op.create_table(
            table,
            sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
            sa.Column('property_id', sa.Integer(), nullable=False),
            sa.Column(type_column, sa.String(100), nullable=False),
            sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('icon_id', sa.Integer(), nullable=True),
            *[sa.Column(name, sa.String(length), nullable=True) for name, length in extra_columns],
            *_timestamps(),
            sa.PrimaryKeyConstraint('id'),
            sa.ForeignKeyConstraint(['property_id'], ['properties.id'], ondelete='CASCADE'),
        )
        op.create_index(f'ix_{table}_property_id', table, ['property_id'])
        op.create_index(f'ix_{table}_icon_id', table, ['icon_id'])

    # Media
    for table in MEDIA_TABLES:
        columns = [
            sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
            sa.Column('property_id', sa.Integer(), nullable=False),
            sa.Column('url', sa.String(500), nullable=False),
            sa.Column('title', sa.String(255), nullable=True),
            sa.Column('description', sa.Text(), nullable=True),
            sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        ]
        if table == 'property_images':
            columns.append(sa.Column('is_featured', sa.Boolean(), nullable=False, server_default=sa.false()))
        op.create_table(
            table,
            *columns,
            *_timestamps(),
            sa.PrimaryKeyConstraint('id'),
            sa.ForeignKeyConstraint(['property_id'], ['properties.id'], ondelete='CASCADE'),
        )
        op.create_index(f'ix_{table}_property_id', table, ['property_id'])


def downgrade() -> None:
    for table in reversed(MEDIA_TABLES):
        op.drop_index(f'ix_{table}_property_id', table_name=table)
        op.drop_table(table)

    for table, _, _ in reversed(ATTRIBUTE_TABLES):
        op.drop_index(f'ix_{table}_icon_id', table_name=table)
        op.drop_index(f'ix_{table}_property_id', table_name=table)
        op.drop_table(table)

    op.drop_index('ix_property_listings_property_type', table_name='property_listings')
    op.drop_index('ix_property_listings_user_id', table_name='property_listings')
    op.drop_index('ix_property_listings_property_id', table_name='property_listings')
    op.drop_table('property_listings')

    for index in (
        'ix_properties_deleted_at', 'ix_properties_is_published', 'ix_properties_status',
        'ix_properties_zone_id', 'ix_properties_property_type_id', 'ix_properties_user_id',
        'ix_properties_property_code',
    ):
        op.drop_index(index, table_name='properties')
    op.drop_table('properties')

    op.drop_table('icons')
    op.drop_index('ix_users_role', table_name='users')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
