"""Initial migration - invoice sequences, invoices and invoice lines

Revision ID: 001_initial
Revises:
Create Date: 2025-01-15

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'invoice_sequences',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('month', sa.Integer(), nullable=False),
        sa.Column('current_number', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('prefix', sa.String(length=10), nullable=False, server_default='INV'),
        sa.Column('suffix', sa.String(length=10), nullable=False, server_default=''),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('year', 'month', name='uq_invoice_sequences_year_month'),
        sa.CheckConstraint('current_number >= 0', name='ck_invoice_sequences_current_number'),
        sa.CheckConstraint('month >= 1 AND month <= 12', name='ck_invoice_sequences_month'),
    )

    op.create_table(
        'invoices',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('invoice_number', sa.String(length=50), nullable=False),
        sa.Column('company_id', sa.String(length=36), nullable=False),
        sa.Column('invoice_date', sa.Date(), nullable=False),

        # Totals
        sa.Column('subtotal', sa.Numeric(precision=15, scale=2), nullable=False, server_default='0'),
        sa.Column('vat_percentage', sa.Numeric(precision=5, scale=2), nullable=False, server_default='11'),
        sa.Column('vat_amount', sa.Numeric(precision=15, scale=2), nullable=False, server_default='0'),
        sa.Column('total_amount', sa.Numeric(precision=15, scale=2), nullable=False, server_default='0'),

        sa.Column('status', sa.String(length=20), nullable=False, server_default='draft'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('bank_account_id', sa.String(length=36), nullable=True),
        sa.Column('printed_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_printed_at', sa.DateTime(), nullable=True),

        sa.Column('created_by', sa.String(length=36), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),

        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('invoice_number'),
        sa.CheckConstraint("status IN ('draft', 'finalized', 'paid', 'cancelled')", name='ck_invoices_status'),
        sa.CheckConstraint('subtotal >= 0', name='ck_invoices_subtotal'),
        sa.CheckConstraint('vat_amount >= 0', name='ck_invoices_vat_amount'),
        sa.CheckConstraint('total_amount >= 0', name='ck_invoices_total_amount'),
    )
    op.create_index('ix_invoices_company_id', 'invoices', ['company_id'], unique=False)
    op.create_index('ix_invoices_status', 'invoices', ['status'], unique=False)
    op.create_index('ix_invoices_invoice_date', 'invoices', ['invoice_date'], unique=False)

    op.create_table(
        'invoice_lines',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('invoice_id', sa.String(length=36), nullable=False),
        sa.Column('baris', sa.Integer(), nullable=False),
        sa.Column('line_order', sa.Integer(), nullable=False),
        sa.Column('tka_id', sa.String(length=36), nullable=False),
        sa.Column('job_description_id', sa.String(length=36), nullable=False),
        sa.Column('custom_job_name', sa.String(length=200), nullable=True),
        sa.Column('custom_job_description', sa.Text(), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('unit_price', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column('custom_price', sa.Numeric(precision=15, scale=2), nullable=True),
        sa.Column('line_total', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['invoice_id'], ['invoices.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('quantity > 0', name='ck_invoice_lines_quantity'),
        sa.CheckConstraint('unit_price >= 0', name='ck_invoice_lines_unit_price'),
        sa.CheckConstraint('line_total >= 0', name='ck_invoice_lines_line_total'),
    )
    op.create_index('ix_invoice_lines_invoice_id', 'invoice_lines', ['invoice_id', 'line_order'], unique=False)
    op.create_index('ix_invoice_lines_tka_id', 'invoice_lines', ['tka_id'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_invoice_lines_tka_id', table_name='invoice_lines')
    op.drop_index('ix_invoice_lines_invoice_id', table_name='invoice_lines')
    op.drop_table('invoice_lines')
    op.drop_index('ix_invoices_invoice_date', table_name='invoices')
    op.drop_index('ix_invoices_status', table_name='invoices')
    op.drop_index('ix_invoices_company_id', table_name='invoices')
    op.drop_table('invoices')
    op.drop_table('invoice_sequences')
