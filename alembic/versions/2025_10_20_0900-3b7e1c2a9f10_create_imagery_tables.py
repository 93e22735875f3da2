"""create profiles, image_records, payments and guest_previews tables

Revision ID: 3b7e1c2a9f10
Revises:
Create Date: 2025-10-20 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = '3b7e1c2a9f10'
down_revision = None
branch_labels = None
depends_on = None

def upgrade() -> None:
    op.create_table('profiles',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('full_name', sa.String(), nullable=True),
        sa.Column('credits', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('plan', sa.String(), nullable=False, server_default='NONE'),
        sa.Column('role', sa.String(), nullable=False, server_default='USER'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('has_used_free_preview', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('stripe_customer_id', sa.String(), nullable=True),
        sa.Column('joined_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('credits >= 0', name='ck_profiles_credits_non_negative'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_profiles_stripe_customer_id'), 'profiles', ['stripe_customer_id'], unique=False)

    op.create_table('image_records',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('original_image_base64', sa.Text(), nullable=False),
        sa.Column('generated_image_base64', sa.Text(), nullable=True),
        sa.Column('prompt', sa.String(), nullable=False),
        sa.Column('is_unlocked', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_free_preview', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['user_id'], ['profiles.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_image_records_user_id'), 'image_records', ['user_id'], unique=False)

    op.create_table('payments',
        sa.Column('reference', sa.String(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('kind', sa.String(), nullable=False),
        sa.Column('amount_total', sa.Integer(), nullable=False),
        sa.Column('currency', sa.String(), nullable=True),
        sa.Column('credits_added', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('plan', sa.String(), nullable=True),
        sa.Column('status', sa.String(), nullable=False, server_default='SUCCESS'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['user_id'], ['profiles.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('reference')
    )
    op.create_index(op.f('ix_payments_user_id'), 'payments', ['user_id'], unique=False)

    op.create_table('guest_previews',
        sa.Column('client_key', sa.String(), nullable=False),
        sa.Column('count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_used_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('client_key')
    )

def downgrade() -> None:
    op.drop_table('guest_previews')
    op.drop_index(op.f('ix_payments_user_id'), table_name='payments')
    op.drop_table('payments')
    op.drop_index(op.f('ix_image_records_user_id'), table_name='image_records')
    op.drop_table('image_records')
    op.drop_index(op.f('ix_profiles_stripe_customer_id'), table_name='profiles')
    op.drop_table('profiles')
