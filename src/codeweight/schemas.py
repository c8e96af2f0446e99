"""Pydantic models for collaborator input: graph facts, change context, call paths."""

from __future__ import annotations

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Graph facts
# ---------------------------------------------------------------------------

class ProjectBody(BaseModel):
    name: str = ""
    version: str = "1.0.0"
    description: str = ""

    model_config = {"extra": "allow"}


class ClassBody(BaseModel):
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    qualified_name: str = ""
    package: str = ""
    layer: str | None = None
    business_domain: str | None = None
    annotations: list[str] = Field(default_factory=list)
    super_class: str | None = None
    interfaces: list[str] = Field(default_factory=list)
    is_abstract: bool = False
    is_interface: bool = False
    method_count: int | None = Field(default=None, ge=0)
    file_path: str = ""

    model_config = {"extra": "allow"}


class ParameterBody(BaseModel):
    name: str
    type: str
    is_varargs: bool = False


class MethodBody(BaseModel):
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    class_id: str = Field(..., min_length=1)
    signature: str = ""
    return_type: str = "void"
    parameters: list[ParameterBody] = Field(default_factory=list)
    modifiers: list[str] = Field(default_factory=list)
    line_number: int = 0
    is_constructor: bool = False
    is_static: bool | None = None
    is_abstract: bool | None = None
    is_public: bool | None = None
    is_private: bool | None = None

    model_config = {"extra": "allow"}


class EdgeBody(BaseModel):
    id: str | None = None
    from_method_id: str = Field(..., min_length=1)
    to_method_id: str = Field(..., min_length=1)
    from_class_id: str | None = None
    to_class_id: str | None = None
    call_type: str = "DIRECT"
    line_number: int = 0
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)

    model_config = {"extra": "allow"}


class GraphDocument(BaseModel):
    project: ProjectBody = Field(default_factory=ProjectBody)
    classes: list[ClassBody] = Field(default_factory=list)
    methods: list[MethodBody] = Field(default_factory=list)
    edges: list[EdgeBody] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Change context
# ---------------------------------------------------------------------------

class ChangedFileBody(BaseModel):
    path: str = Field(..., min_length=1)
    change_type: str = "MODIFIED"
    added_lines: int = Field(default=0, ge=0)
    deleted_lines: int = Field(default=0, ge=0)
    added_content: list[str] = Field(default_factory=list)


class CommitBody(BaseModel):
    hash: str = ""
    message: str = ""
    author: str = ""
    date: str = ""


class ChangeDocument(BaseModel):
    source_branch: str = ""
    target_branch: str = ""
    changed_files: list[ChangedFileBody] = Field(default_factory=list)
    added_lines: int | None = Field(default=None, ge=0)
    deleted_lines: int | None = Field(default=None, ge=0)
    commits: list[CommitBody] = Field(default_factory=list)

    model_config = {"extra": "allow"}


# ---------------------------------------------------------------------------
# Call paths
# ---------------------------------------------------------------------------

class CallPathBody(BaseModel):
    id: str = Field(..., min_length=1)
    methods: list[str] = Field(..., min_length=1)
    description: str = ""
    related_changes: list[str] = Field(default_factory=list, description="Changed file paths")


class CallPathsDocument(BaseModel):
    paths: list[CallPathBody] = Field(default_factory=list)
