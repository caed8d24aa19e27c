"""init schema

Revision ID: 0001_init_schema
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa


revision: str = "0001_init_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _branding_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("color", sa.String(length=16), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("logo_url", sa.String(length=1024), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("login", sa.String(length=128), nullable=False),
        sa.Column("password_hash", sa.String(length=512), nullable=False),
        sa.Column("first_name", sa.String(length=128), nullable=False),
        sa.Column("last_name", sa.String(length=128), nullable=False),
        sa.Column("role", sa.String(length=32), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_login", "users", ["login"], unique=True)

    op.create_table(
        "houses",
        *_branding_columns(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_houses_name", "houses", ["name"], unique=True)

    op.create_table(
        "pods",
        *_branding_columns(),
        sa.Column("house_id", sa.String(length=36), nullable=True),
        sa.ForeignKeyConstraint(["house_id"], ["houses.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_pods_name", "pods", ["name"], unique=True)
    op.create_index("ix_pods_house_id", "pods", ["house_id"], unique=False)

    op.create_table(
        "classes",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=64), nullable=False),
        sa.Column("grade_level", sa.String(length=16), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("pod_id", sa.String(length=36), nullable=False),
        sa.ForeignKeyConstraint(["pod_id"], ["pods.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_classes_name", "classes", ["name"], unique=True)
    op.create_index("ix_classes_pod_id", "classes", ["pod_id"], unique=False)

    op.create_table(
        "students",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("first_name", sa.String(length=128), nullable=False),
        sa.Column("last_name", sa.String(length=128), nullable=False),
        sa.Column("grade_level", sa.String(length=16), nullable=True),
        sa.Column("section", sa.String(length=16), nullable=True),
        sa.Column("class_id", sa.String(length=36), nullable=False),
        sa.Column("house_id", sa.String(length=36), nullable=True),
        sa.ForeignKeyConstraint(["class_id"], ["classes.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["house_id"], ["houses.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_students_class_id", "students", ["class_id"], unique=False)
    op.create_index("ix_students_house_id", "students", ["house_id"], unique=False)

    op.create_table(
        "behavior_categories",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_positive", sa.Boolean(), nullable=False),
        sa.Column("point_value", sa.Integer(), nullable=False),
        sa.CheckConstraint(
            "point_value >= 1 AND point_value <= 10", name="ck_behavior_categories_point_value_range"
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_behavior_categories_name", "behavior_categories", ["name"], unique=True)

    op.create_table(
        "behavior_points",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("student_id", sa.String(length=36), nullable=False),
        sa.Column("category_id", sa.String(length=36), nullable=False),
        sa.Column("teacher_id", sa.String(length=36), nullable=False),
        sa.Column("points", sa.Integer(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("points <> 0", name="ck_behavior_points_points_nonzero"),
        sa.ForeignKeyConstraint(["student_id"], ["students.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["category_id"], ["behavior_categories.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["teacher_id"], ["users.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_behavior_points_student_id", "behavior_points", ["student_id"], unique=False)
    op.create_index("ix_behavior_points_category_id", "behavior_points", ["category_id"], unique=False)
    op.create_index("ix_behavior_points_teacher_id", "behavior_points", ["teacher_id"], unique=False)
    op.create_index("ix_behavior_points_created_at", "behavior_points", ["created_at"], unique=False)

    op.create_table(
        "rewards",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("point_cost", sa.Integer(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("image_url", sa.String(length=1024), nullable=True),
        sa.CheckConstraint("point_cost > 0", name="ck_rewards_point_cost_positive"),
        sa.CheckConstraint("quantity >= 0", name="ck_rewards_quantity_non_negative"),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "reward_redemptions",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("student_id", sa.String(length=36), nullable=False),
        sa.Column("reward_id", sa.String(length=36), nullable=False),
        sa.Column("points_spent", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["student_id"], ["students.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["reward_id"], ["rewards.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_reward_redemptions_student_id", "reward_redemptions", ["student_id"], unique=False)
    op.create_index("ix_reward_redemptions_reward_id", "reward_redemptions", ["reward_id"], unique=False)
    op.create_index("ix_reward_redemptions_status", "reward_redemptions", ["status"], unique=False)
    op.create_index("ix_reward_redemptions_created_at", "reward_redemptions", ["created_at"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_reward_redemptions_created_at", table_name="reward_redemptions")
    op.drop_index("ix_reward_redemptions_status", table_name="reward_redemptions")
    op.drop_index("ix_reward_redemptions_reward_id", table_name="reward_redemptions")
    op.drop_index("ix_reward_redemptions_student_id", table_name="reward_redemptions")
    op.drop_table("reward_redemptions")

    op.drop_table("rewards")

    op.drop_index("ix_behavior_points_created_at", table_name="behavior_points")
    op.drop_index("ix_behavior_points_teacher_id", table_name="behavior_points")
    op.drop_index("ix_behavior_points_category_id", table_name="behavior_points")
    op.drop_index("ix_behavior_points_student_id", table_name="behavior_points")
    op.drop_table("behavior_points")

    op.drop_index("ix_behavior_categories_name", table_name="behavior_categories")
    op.drop_table("behavior_categories")

    op.drop_index("ix_students_house_id", table_name="students")
    op.drop_index("ix_students_class_id", table_name="students")
    op.drop_table("students")

    op.drop_index("ix_classes_pod_id", table_name="classes")
    op.drop_index("ix_classes_name", table_name="classes")
    op.drop_table("classes")

    op.drop_index("ix_pods_house_id", table_name="pods")
    op.drop_index("ix_pods_name", table_name="pods")
    op.drop_table("pods")

    op.drop_index("ix_houses_name", table_name="houses")
    op.drop_table("houses")

    op.drop_index("ix_users_login", table_name="users")
    op.drop_table("users")
