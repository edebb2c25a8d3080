from enum import StrEnum

from pydantic import BaseModel, Field


class ItemKind(StrEnum):
    CONTENT_CLASS = "ezcontentclass"


class InstallOutcome(StrEnum):
    INSTALLED = "installed"
    SKIPPED = "skipped"
    REMOVED = "removed"
    FAILED = "failed"


class ConflictKind(StrEnum):
    CLASS_EXISTS = "class-exists"
    HAS_OBJECTS = "has-objects"


class Action(StrEnum):
    REPLACE = "replace"
    SKIP = "skip"
    NEW = "new"
    DELETE = "delete"


class DiffStatus(StrEnum):
    NEW = "new"
    REMOVED = "removed"
    MODIFIED = "modified"


# ---------------------------------------------------------------------------
# On-disk definitions
# ---------------------------------------------------------------------------


class GroupRef(BaseModel):
    id: int | None = None
    name: str


class AttributeDefinition(BaseModel):
    model_config = {"frozen": True}

    identifier: str
    datatype: str
    placement: int = 0
    category: str = ""
    required: bool = False
    searchable: bool = False
    is_information_collector: bool = False
    translatable: bool = True
    name_list: dict[str, str] = Field(default_factory=dict)
    description_list: dict[str, str] = Field(default_factory=dict)
    data_text: dict[str, str] = Field(default_factory=dict)
    datatype_parameters: str = ""


class ClassDefinition(BaseModel):
    model_config = {"frozen": True}

    identifier: str
    remote_id: str = ""
    modified: str = ""
    created: str = ""
    name_list: dict[str, str] = Field(default_factory=dict)
    description_list: dict[str, str] = Field(default_factory=dict)
    object_name_pattern: str = ""
    url_alias_pattern: str | None = None
    is_container: bool = False
    always_available: bool | None = None
    sort_field: str | None = None
    sort_order: int | None = None
    attributes: tuple[AttributeDefinition, ...] = ()
    groups: tuple[GroupRef, ...] = ()


class InstallItem(BaseModel):
    type: str
    filename: str | None = None
    sub_directory: str | None = None
    name: str | None = None


class PackageManifest(BaseModel):
    name: str
    path: str
    install_items: list[InstallItem] = Field(default_factory=list)
    uninstall_items: list[InstallItem] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Persisted records
# ---------------------------------------------------------------------------


class PersistedClass(BaseModel):
    id: int = 0
    identifier: str
    remote_id: str
    name_list: dict[str, str] = Field(default_factory=dict)
    description_list: dict[str, str] = Field(default_factory=dict)
    object_name_pattern: str = ""
    url_alias_pattern: str | None = None
    is_container: bool = False
    always_available: bool = False
    sort_field: str | None = None
    sort_order: int | None = None
    created: str = ""
    modified: str = ""


class PersistedAttribute(BaseModel):
    id: int = 0
    class_id: int
    identifier: str
    datatype: str
    placement: int = 0
    category: str = ""
    is_required: bool = False
    is_searchable: bool = False
    is_information_collector: bool = False
    can_translate: bool = True
    name_list: dict[str, str] = Field(default_factory=dict)
    description_list: dict[str, str] = Field(default_factory=dict)
    data_text: dict[str, str] = Field(default_factory=dict)
    datatype_parameters: str = ""


class ClassGroup(BaseModel):
    id: int = 0
    name: str


class ContentObject(BaseModel):
    id: int = 0
    class_id: int
    name: str = ""
    languages: list[str] = Field(default_factory=list)
    main_node_id: int | None = None
    url_alias: str | None = None


class ObjectAttribute(BaseModel):
    id: int = 0
    object_id: int
    class_attribute_id: int
    identifier: str
    language_code: str = ""
    data_text: str = ""


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class ConflictRequest(BaseModel):
    kind: ConflictKind
    element_id: str
    description: str
    actions: dict[Action, str] = Field(default_factory=dict)
    object_count: int = 0


class ItemResult(BaseModel):
    item: InstallItem
    outcome: InstallOutcome
    identifier: str | None = None
    class_id: int | None = None
    reason: str = ""
    conflict: ConflictRequest | None = None


class PackageResult(BaseModel):
    package: str
    items: list[ItemResult] = Field(default_factory=list)
    error: str = ""

    @property
    def failed(self) -> bool:
        return bool(self.error) or any(r.outcome == InstallOutcome.FAILED for r in self.items)

    @property
    def skipped(self) -> bool:
        return bool(self.items) and all(r.outcome == InstallOutcome.SKIPPED for r in self.items)


class PackageStatus(BaseModel):
    package: str
    needs_update: bool = False
    error: str = ""


class RemovalReport(BaseModel):
    identifier: str
    exists: bool
    object_count: int = 0
    removed: bool = False
    dry_run: bool = False
    conflict: ConflictRequest | None = None
