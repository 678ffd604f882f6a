"""initial schema: users, pending registrations, projects

Users are created only from a verified pending registration. Projects
link to users three ways: owners, the creator's project list, and
watch lists.

Revision ID: 3f1c2a9d7e10
Revises:
Create Date: 2026-10-18 09:12:44.210381
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c2a9d7e10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("username", sa.String(39), nullable=False),
        sa.Column("fullname", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("github_id", sa.String(39), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("position", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("profile_pic", sa.String(500), nullable=False),
        sa.Column("cover_img", sa.String(500), nullable=False),
        sa.Column("tech_stack", sa.JSON(), nullable=False),
        sa.Column("domains", sa.JSON(), nullable=False),
        sa.Column("refresh_token", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True)),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    op.create_table(
        "pending_registrations",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("otp_hash", sa.String(255), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True)),
    )

    op.create_table(
        "projects",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("repo_id", sa.String(100), nullable=False),
        sa.Column("url", sa.String(500), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("domain", sa.String(100), nullable=False),
        sa.Column("tech_stacks", sa.JSON(), nullable=False),
        sa.Column("stars", sa.Integer(), nullable=False),
        sa.Column("videos", sa.JSON(), nullable=False),
        sa.Column("images", sa.JSON(), nullable=False),
        sa.Column("thumbnail", sa.String(500), nullable=False),
        sa.Column(
            "created_by_id",
            sa.Uuid(),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True)),
    )
    op.create_index("ix_projects_name", "projects", ["name"])

    _create_link_table("project_owners", ("project_id", "projects"), ("user_id", "users"))
    _create_link_table("user_projects", ("user_id", "users"), ("project_id", "projects"))
    _create_link_table("watch_list", ("user_id", "users"), ("project_id", "projects"))


def _create_link_table(name: str, *columns: tuple[str, str]) -> None:
    op.create_table(
        name,
        *(
            sa.Column(
                column,
                sa.Uuid(),
                sa.ForeignKey(f"{target}.id", ondelete="CASCADE"),
                primary_key=True,
            )
            for column, target in columns
        ),
    )


def downgrade() -> None:
    op.drop_table("watch_list")
    op.drop_table("user_projects")
    op.drop_table("project_owners")
    op.drop_index("ix_projects_name", table_name="projects")
    op.drop_table("projects")
    op.drop_table("pending_registrations")
    op.drop_index("ix_users_username", table_name="users")
    op.drop_table("users")
