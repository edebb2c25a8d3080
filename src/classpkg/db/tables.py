import sqlalchemy as sa

metadata = sa.MetaData()

content_classes = sa.Table(
    "content_classes",
    metadata,
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

class_attributes = sa.Table(
    "class_attributes",
    metadata,
    sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
    sa.Column("class_id", sa.Integer, sa.ForeignKey("content_classes.id"), nullable=False, index=True),
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

content_objects = sa.Table(
    "content_objects",
    metadata,
    sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
    sa.Column("class_id", sa.Integer, sa.ForeignKey("content_classes.id"), nullable=False, index=True),
    sa.Column("name", sa.Text, nullable=False, server_default=""),
    sa.Column("languages", sa.JSON, nullable=False),
    sa.Column("main_node_id", sa.Integer, nullable=True, unique=True),
    sa.Column("url_alias", sa.Text, nullable=True),
)

object_attributes = sa.Table(
    "object_attributes",
    metadata,
    sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
    sa.Column("object_id", sa.Integer, sa.ForeignKey("content_objects.id"), nullable=False, index=True),
    sa.Column("class_attribute_id", sa.Integer, sa.ForeignKey("class_attributes.id"), nullable=False, index=True),
    sa.Column("identifier", sa.String(255), nullable=False),
    sa.Column("language_code", sa.String(20), nullable=False, server_default=""),
    sa.Column("data_text", sa.Text, nullable=False, server_default=""),
)

class_groups = sa.Table(
    "class_groups",
    metadata,
    sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
    sa.Column("name", sa.String(255), nullable=False),
)

class_group_members = sa.Table(
    "class_group_members",
    metadata,
    sa.Column("class_id", sa.Integer, sa.ForeignKey("content_classes.id"), nullable=False),
    sa.Column("group_id", sa.Integer, sa.ForeignKey("class_groups.id"), nullable=False),
    sa.PrimaryKeyConstraint("class_id", "group_id"),
)
