"""Block graph data model.

Blocks live in a flat ``blocks`` map keyed by id; parent/child relations are
expressed only as ordered id lists in each block's ``children`` slots. The
persisted form uses camelCase keys.
"""

import json
from datetime import datetime, timezone
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

FieldValue = Union[str, bool, int, float, None]


def now_iso() -> str:
    """Current UTC time as an ISO-8601 string with milliseconds."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class WorkflowModel(BaseModel):
    """Base model: camelCase aliases, construction by field name or alias."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class SourcePosition(WorkflowModel):
    line: int
    column: int


class SourceLocation(WorkflowModel):
    start: SourcePosition
    end: SourcePosition


class BlockMetadata(WorkflowModel):
    """Advisory display metadata; never read by the generator."""
    source_location: SourceLocation | None = None
    comments: list[str] | None = None


class BlockInstance(WorkflowModel):
    """One statement or recognised automation call."""
    id: str
    kind: str
    data: dict[str, FieldValue] = Field(default_factory=dict)
    children: dict[str, list[str]] = Field(default_factory=dict)
    metadata: BlockMetadata | None = None


class PortReference(WorkflowModel):
    block_id: str
    port_id: str


class Connection(WorkflowModel):
    """Data-flow edge between block ports."""
    id: str
    source: PortReference = Field(alias="from")
    target: PortReference = Field(alias="to")


class DocumentMetadata(WorkflowModel):
    name: str
    description: str | None = None
    created_at: str = Field(default_factory=now_iso)
    updated_at: str = Field(default_factory=now_iso)
    source_path: str | None = None


class WorkflowDocument(WorkflowModel):
    """A rooted block tree plus document metadata."""
    id: str
    root: str
    blocks: dict[str, BlockInstance]
    connections: list[Connection] = Field(default_factory=list)
    metadata: DocumentMetadata
    version: int = 1

    @property
    def root_block(self) -> BlockInstance:
        return self.blocks[self.root]

    def get_block(self, block_id: str) -> BlockInstance | None:
        """Find block by id."""
        return self.blocks.get(block_id)

    def to_json(self, indent: int | None = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, text: str) -> "WorkflowDocument":
        return cls.model_validate_json(text)


class BlockLocation(WorkflowModel):
    """Where a block sits: its parent, the parent's slot, and the index in it."""
    parent_id: str
    slot_id: str
    index: int
