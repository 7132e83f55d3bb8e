"""add last_modified_by to posts

Revision ID: 3c4d5e6f7a8b
Revises: 2b3c4d5e6f7a
Create Date: 2026-10-15 09:00:00.000000

Records the author who last edited a post.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
import advanced_alchemy.types


# revision identifiers, used by Alembic.
revision: str = '3c4d5e6f7a8b'
down_revision: Union[str, None] = '2b3c4d5e6f7a'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    with op.batch_alter_table("posts") as batch_op:
        batch_op.add_column(
            sa.Column('last_modified_by', advanced_alchemy.types.guid.GUID(length=16), nullable=True),
        )
        batch_op.create_foreign_key(
            op.f("fk_posts_last_modified_by_authors"),
            "authors",
            ["last_modified_by"],
            ["id"],
            ondelete="SET NULL",
        )
        batch_op.create_index(op.f('ix_posts_last_modified_by'), ['last_modified_by'], unique=False)


def downgrade() -> None:
    with op.batch_alter_table("posts") as batch_op:
        batch_op.drop_index(op.f('ix_posts_last_modified_by'))
        batch_op.drop_constraint(op.f("fk_posts_last_modified_by_authors"), type_="foreignkey")
        batch_op.drop_column('last_modified_by')
