"""create training plan tables

Revision ID: 001
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'app_user',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('email', sa.Text(), nullable=True, unique=True),
        sa.Column('display_name', sa.Text(), nullable=True),
        sa.Column('training_max', sa.Float(), nullable=True),
    )

    op.create_table(
        'exercise',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('muscle_group', sa.Text(), nullable=True),
        sa.Column('equipment', sa.Text(), nullable=True),
    )
    op.create_index('ix_exercise_created_at', 'exercise', ['created_at'])
    op.create_index('ix_exercise_equipment', 'exercise', ['equipment'])

    op.create_table(
        'plan',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('goal', sa.Text(), nullable=False),
        sa.Column('microcycle_length', sa.Integer(), nullable=False),
        sa.Column('mesocycle_weeks', sa.Integer(), nullable=False),
        sa.Column('progression_rule', sa.Text(), nullable=False),
        sa.Column('training_max', sa.Float(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['app_user.id'], ),
    )
    op.create_index('ix_plan_user_created', 'plan', ['user_id', 'created_at'])

    op.create_table(
        'workout',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('plan_id', sa.String(36), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('scheduled_at', sa.Date(), nullable=False),
        sa.Column('microcycle', sa.Integer(), nullable=False),
        sa.Column('mesocycle', sa.Integer(), nullable=False),
        sa.Column('rpe_target', sa.Float(), nullable=False),
        sa.Column('rest_seconds', sa.Integer(), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['plan_id'], ['plan.id'], ),
        sa.UniqueConstraint('plan_id', 'sequence', name='uq_workout_plan_sequence'),
    )
    op.create_index('ix_workout_plan_id', 'workout', ['plan_id'])
    op.create_index('ix_workout_plan_pending', 'workout', ['plan_id', 'completed_at', 'scheduled_at'])

    op.create_table(
        'workout_exercise',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('workout_id', sa.String(36), nullable=False),
        sa.Column('exercise_id', sa.String(36), nullable=False),
        sa.Column('order', sa.Integer(), nullable=False),
        sa.Column('target_sets', sa.Integer(), nullable=False),
        sa.Column('target_reps', sa.Integer(), nullable=False),
        sa.Column('target_weight', sa.Float(), nullable=True),
        sa.Column('rest_seconds', sa.Integer(), nullable=False),
        sa.Column('rpe_target', sa.Float(), nullable=False),
        sa.Column('microcycle', sa.Integer(), nullable=False),
        sa.Column('mesocycle', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['workout_id'], ['workout.id'], ),
        sa.ForeignKeyConstraint(['exercise_id'], ['exercise.id'], ),
        sa.UniqueConstraint('workout_id', 'order', name='uq_workout_exercise_order'),
    )
    op.create_index('ix_workout_exercise_workout_id', 'workout_exercise', ['workout_id'])

    op.create_table(
        'workout_set',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('workout_id', sa.String(36), nullable=False),
        sa.Column('exercise_id', sa.String(36), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('weight', sa.Float(), nullable=False),
        sa.Column('reps', sa.Integer(), nullable=False),
        sa.Column('rpe', sa.Float(), nullable=True),
        sa.Column('rir', sa.Integer(), nullable=True),
        sa.Column('rest_seconds', sa.Integer(), nullable=False),
        sa.Column('notes', sa.String(280), nullable=True),
        sa.ForeignKeyConstraint(['workout_id'], ['workout.id'], ),
        sa.ForeignKeyConstraint(['exercise_id'], ['exercise.id'], ),
        sa.CheckConstraint('rpe IS NULL OR (rpe >= 5 AND rpe <= 10)', name='ck_workout_set_rpe'),
        sa.CheckConstraint('rir IS NULL OR (rir >= 0 AND rir <= 5)', name='ck_workout_set_rir'),
        sa.CheckConstraint('rest_seconds >= 30 AND rest_seconds <= 600', name='ck_workout_set_rest'),
    )
    op.create_index('ix_workout_set_exercise_created', 'workout_set', ['exercise_id', 'created_at'])
    op.create_index('ix_workout_set_workout_id', 'workout_set', ['workout_id'])

    op.create_table(
        'adherence_metric',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('workout_id', sa.String(36), nullable=False),
        sa.Column('plan_id', sa.String(36), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('adherence', sa.Float(), nullable=False),
        sa.ForeignKeyConstraint(['workout_id'], ['workout.id'], ),
        sa.ForeignKeyConstraint(['plan_id'], ['plan.id'], ),
        sa.UniqueConstraint('workout_id', name='uq_adherence_metric_workout'),
        sa.CheckConstraint('adherence >= 0 AND adherence <= 1', name='ck_adherence_metric_range'),
    )
    op.create_index('ix_adherence_metric_plan_id', 'adherence_metric', ['plan_id'])


def downgrade() -> None:
    op.drop_index('ix_adherence_metric_plan_id', table_name='adherence_metric')
    op.drop_table('adherence_metric')
    op.drop_index('ix_workout_set_workout_id', table_name='workout_set')
    op.drop_index('ix_workout_set_exercise_created', table_name='workout_set')
    op.drop_table('workout_set')
    op.drop_index('ix_workout_exercise_workout_id', table_name='workout_exercise')
    op.drop_table('workout_exercise')
    op.drop_index('ix_workout_plan_pending', table_name='workout')
    op.drop_index('ix_workout_plan_id', table_name='workout')
    op.drop_table('workout')
    op.drop_index('ix_plan_user_created', table_name='plan')
    op.drop_table('plan')
    op.drop_index('ix_exercise_equipment', table_name='exercise')
    op.drop_index('ix_exercise_created_at', table_name='exercise')
    op.drop_table('exercise')
    op.drop_table('app_user')
