"""record which normative table produced each stored result

Revision ID: 0002_add_result_normative_table
Revises: 0001_initial
Create Date: 2025-11-10
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect

# revision identifiers, used by Alembic.
revision = '0002_add_result_normative_table'
down_revision = '0001_initial'
branch_labels = None
depends_on = None


def upgrade() -> None:
    bind = op.get_bind()
    existing_columns = {col['name'] for col in inspect(bind).get_columns('test_results')}
    if 'normative_table_id' in existing_columns:
        return
    with op.batch_alter_table('test_results') as batch_op:
        batch_op.add_column(sa.Column('normative_table_id', sa.Integer(), nullable=True))
        batch_op.create_foreign_key(
            'fk_test_results_normative_table',
            'normative_tables',
            ['normative_table_id'],
            ['id'],
            ondelete='SET NULL',
        )


def downgrade() -> None:
    with op.batch_alter_table('test_results') as batch_op:
        batch_op.drop_constraint('fk_test_results_normative_table', type_='foreignkey')
        batch_op.drop_column('normative_table_id')
