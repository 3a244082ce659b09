"""initial schema: users, normative tables, evaluations, results, stock and audit log

Revision ID: 0001_initial
Revises: 
Create Date: 2025-11-08
"""
from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy import inspect

revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    bind = op.get_bind()
    existing_tables = set(inspect(bind).get_table_names())

    if 'users' not in existing_tables:
        op.create_table(
            'users',
            sa.Column('id', sa.Integer, primary_key=True),
            sa.Column('name', sa.String(255), nullable=False),
            sa.Column('email', sa.String(255), nullable=False, unique=True),
            sa.Column('role', sa.String(40), nullable=False, server_default='psicologo'),
            sa.Column('created_at', sa.DateTime, nullable=False),
        )
    if 'normative_tables' not in existing_tables:
        op.create_table(
            'normative_tables',
            sa.Column('id', sa.Integer, primary_key=True),
            sa.Column('test_type', sa.String(20), nullable=False),
            sa.Column('name', sa.String(255), nullable=False),
            sa.Column('version', sa.String(40), nullable=False, server_default='1.0'),
            sa.Column('criterion', sa.String(100), nullable=True),
            sa.Column('description', sa.Text, nullable=True),
            sa.Column('reference_curve', sa.String(30), nullable=True),
            sa.Column('evaluation_subtype', sa.String(30), nullable=True),
            sa.Column('active', sa.Boolean, nullable=False, server_default=sa.true()),
            sa.Column('created_at', sa.DateTime, nullable=False),
        )
        op.create_index('ix_normative_tables_test_type', 'normative_tables', ['test_type'])
    if 'normative_rows' not in existing_tables:
        op.create_table(
            'normative_rows',
            sa.Column('id', sa.Integer, primary_key=True),
            sa.Column('table_id', sa.Integer, sa.ForeignKey('normative_tables.id', ondelete='CASCADE'), nullable=False),
            sa.Column('category', sa.String(60), nullable=True),
            sa.Column('min_value', sa.Float, nullable=False),
            sa.Column('max_value', sa.Float, nullable=False),
            sa.Column('percentile', sa.Float, nullable=True),
            sa.Column('classification', sa.String(60), nullable=False),
            sa.Column('iq', sa.Integer, nullable=True),
        )
        op.create_index('ix_normative_rows_table_category', 'normative_rows', ['table_id', 'category'])
    if 'examinees' not in existing_tables:
        op.create_table(
            'examinees',
            sa.Column('id', sa.Integer, primary_key=True),
            sa.Column('name', sa.String(255), nullable=False),
            sa.Column('birth_date', sa.Date, nullable=True),
            sa.Column('education', sa.String(60), nullable=True),
            sa.Column('created_at', sa.DateTime, nullable=False),
        )
    if 'evaluations' not in existing_tables:
        op.create_table(
            'evaluations',
            sa.Column('id', sa.Integer, primary_key=True),
            sa.Column('examinee_id', sa.Integer, sa.ForeignKey('examinees.id'), nullable=True),
            sa.Column('owner_id', sa.Integer, sa.ForeignKey('users.id'), nullable=True),
            sa.Column('report_number', sa.String(40), nullable=False),
            sa.Column('application_date', sa.Date, nullable=False),
            sa.Column('application_mode', sa.String(30), nullable=False, server_default='Individual'),
            sa.Column('category', sa.String(30), nullable=False),
            sa.Column('created_at', sa.DateTime, nullable=False),
            sa.Column('updated_at', sa.DateTime, nullable=False),
            sa.UniqueConstraint('examinee_id', 'report_number', name='uq_evaluation_examinee_report'),
        )
        op.create_index('ix_evaluations_examinee_id', 'evaluations', ['examinee_id'])
    # normative_table_id arrives in 0002 so older deployments can be upgraded in place
    if 'test_results' not in existing_tables:
        op.create_table(
            'test_results',
            sa.Column('id', sa.Integer, primary_key=True),
            sa.Column('evaluation_id', sa.Integer, sa.ForeignKey('evaluations.id', ondelete='CASCADE'), nullable=False),
            sa.Column('test_type', sa.String(20), nullable=False),
            sa.Column('raw_input', sa.JSON, nullable=True),
            sa.Column('raw_score', sa.Float, nullable=True),
            sa.Column('percentile', sa.Float, nullable=True),
            sa.Column('classification', sa.String(60), nullable=True),
            sa.Column('components', sa.JSON, nullable=True),
            sa.Column('created_at', sa.DateTime, nullable=False),
            sa.UniqueConstraint('evaluation_id', 'test_type', name='uq_test_result_evaluation_type'),
        )
    if 'stock_items' not in existing_tables:
        op.create_table(
            'stock_items',
            sa.Column('id', sa.Integer, primary_key=True),
            sa.Column('name', sa.String(150), nullable=False),
            sa.Column('quantity', sa.Integer, nullable=False, server_default='0'),
            sa.Column('minimum_quantity', sa.Integer, nullable=False, server_default='0'),
            sa.Column('active', sa.Boolean, nullable=False, server_default=sa.true()),
            sa.Column('updated_at', sa.DateTime, nullable=False),
            sa.CheckConstraint('quantity >= 0', name='ck_stock_items_quantity_non_negative'),
        )
        op.create_index('ix_stock_items_name', 'stock_items', ['name'])
    if 'stock_movements' not in existing_tables:
        op.create_table(
            'stock_movements',
            sa.Column('id', sa.Integer, primary_key=True),
            sa.Column('item_id', sa.Integer, sa.ForeignKey('stock_items.id'), nullable=False),
            sa.Column('movement_type', sa.String(20), nullable=False),
            sa.Column('quantity', sa.Integer, nullable=False),
            sa.Column('notes', sa.String(255), nullable=True),
            sa.Column('owner_id', sa.Integer, sa.ForeignKey('users.id'), nullable=True),
            sa.Column('evaluation_id', sa.Integer, sa.ForeignKey('evaluations.id'), nullable=True),
            sa.Column('created_at', sa.DateTime, nullable=False),
        )
    if 'calculation_logs' not in existing_tables:
        op.create_table(
            'calculation_logs',
            sa.Column('id', sa.Integer, primary_key=True),
            sa.Column('owner_id', sa.Integer, sa.ForeignKey('users.id'), nullable=True),
            sa.Column('test_type', sa.String(20), nullable=False),
            sa.Column('raw_input', sa.JSON, nullable=True),
            sa.Column('result', sa.JSON, nullable=True),
            sa.Column('normative_table_id', sa.Integer, nullable=True),
            sa.Column('client_address', sa.String(64), nullable=True),
            sa.Column('created_at', sa.DateTime, nullable=False),
        )


def downgrade() -> None:
    for table in (
        'calculation_logs',
        'stock_movements',
        'stock_items',
        'test_results',
        'evaluations',
        'examinees',
        'normative_rows',
        'normative_tables',
        'users',
    ):
        op.drop_table(table)
