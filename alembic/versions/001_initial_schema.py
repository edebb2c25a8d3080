"""Initial schema: content classes, attributes, objects, object attributes, groups.

Revision ID: 001
Revises:
Create Date: 2026-10-17

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "001"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "content_classes",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("identifier", sa.String(255), nullable=False, unique=True),
        sa.Column("remote_id", sa.String(100), nullable=False, unique=True),
        sa.Column("name_list", sa.JSON, nullable=False),
        sa.Column("description_list", sa.JSON, nullable=False),
        sa.Column("object_name_pattern", sa.Text, nullable=False, server_default=""),
        sa.Column("url_alias_pattern", sa.Text, nullable=True),
        sa.Column("is_container", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("always_available", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("sort_field", sa.String(50), nullable=True),
        sa.Column("sort_order", sa.Integer, nullable=True),
        sa.Column("created", sa.String(32), nullable=False, server_default=""),
        sa.Column("modified", sa.String(32), nullable=False, server_default=""),
    )
    op.create_table(
        "class_attributes",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("class_id", sa.Integer, sa.ForeignKey("content_classes.id"), nullable=False),
        sa.Column("identifier", sa.String(255), nullable=False),
        sa.Column("datatype", sa.String(50), nullable=False),
        sa.Column("placement", sa.Integer, nullable=False, server_default="0"),
        sa.Column("category", sa.String(50), nullable=False, server_default=""),
        sa.Column("is_required", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("is_searchable", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("is_information_collector", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("can_translate", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("name_list", sa.JSON, nullable=False),
        sa.Column("description_list", sa.JSON, nullable=False),
        sa.Column("data_text", sa.JSON, nullable=False),
        sa.Column("datatype_parameters", sa.Text, nullable=False, server_default=""),
        sa.UniqueConstraint("class_id", "identifier"),
    )
    op.create_index("ix_class_attributes_class_id", "class_attributes", ["class_id"])
    op.create_table(
        "content_objects",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("class_id", sa.Integer, sa.ForeignKey("content_classes.id"), nullable=False),
        sa.Column("name", sa.Text, nullable=False, server_default=""),
        sa.Column("languages", sa.JSON, nullable=False),
        sa.Column("main_node_id", sa.Integer, nullable=True, unique=True),
        sa.Column("url_alias", sa.Text, nullable=True),
    )
    op.create_index("ix_content_objects_class_id", "content_objects", ["class_id"])
    op.create_table(
        "object_attributes",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("object_id", sa.Integer, sa.ForeignKey("content_objects.id"), nullable=False),
        sa.Column("class_attribute_id", sa.Integer, sa.ForeignKey("class_attributes.id"), nullable=False),
        sa.Column("identifier", sa.String(255), nullable=False),
        sa.Column("language_code", sa.String(20), nullable=False, server_default=""),
        sa.Column("data_text", sa.Text, nullable=False, server_default=""),
    )
    op.create_index("ix_object_attributes_object_id", "object_attributes", ["object_id"])
    op.create_index("ix_object_attributes_class_attribute_id", "object_attributes", ["class_attribute_id"])
    op.create_table(
        "class_groups",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
    )
    op.create_table(
        "class_group_members",
        sa.Column("class_id", sa.Integer, sa.ForeignKey("content_classes.id"), nullable=False),
        sa.Column("group_id", sa.Integer, sa.ForeignKey("class_groups.id"), nullable=False),
        sa.PrimaryKeyConstraint("class_id", "group_id"),
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("class_group_members")
    op.drop_table("class_groups")
    op.drop_index("ix_object_attributes_class_attribute_id", table_name="object_attributes")
    op.drop_index("ix_object_attributes_object_id", table_name="object_attributes")
    op.drop_table("object_attributes")
    op.drop_index("ix_content_objects_class_id", table_name="content_objects")
    op.drop_table("content_objects")
    op.drop_index("ix_class_attributes_class_id", table_name="class_attributes")
    op.drop_table("class_attributes")
    op.drop_table("content_classes")
