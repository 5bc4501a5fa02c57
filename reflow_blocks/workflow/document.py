"""Structural mutation API over workflow documents.

Every operation takes a document and returns a new one; the input document is
never modified. Blocks that an edit does not touch are shared between the old
and the new document, so blocks must be treated as immutable values. An
operation that cannot be applied raises StructuralError before producing
anything.
"""

import logging
import uuid
from typing import Any, Iterator

from pydantic import ValidationError

from ..errors import StructuralError
from .catalog import BlockRegistry, block_registry
from .models import BlockInstance, BlockLocation, DocumentMetadata, WorkflowDocument, now_iso

logger = logging.getLogger(__name__)


def generate_id() -> str:
    """New unique block or document id."""
    return uuid.uuid4().hex


def create_block_instance(
    kind: str,
    initial_data: dict[str, Any] | None = None,
    registry: BlockRegistry = block_registry,
) -> BlockInstance:
    """Create a detached block with catalog defaults and empty child slots.

    Raises:
        UnsupportedBlockKindError: If the kind has no schema.
        StructuralError: If a field value is not a string, number, boolean or null.
    """
    schema = registry.require(kind)
    data = {**schema.field_defaults(), **(initial_data or {})}
    children = {slot_id: [] for slot_id in schema.slot_ids()}
    return _validated_block({"id": generate_id(), "kind": kind, "data": data, "children": children})


def _validated_block(values: dict[str, Any]) -> BlockInstance:
    try:
        return BlockInstance.model_validate(values)
    except ValidationError as e:
        fields = sorted({str(error["loc"][1]) for error in e.errors() if len(error["loc"]) > 1})
        raise StructuralError(
            f"Block {values['id']} fields must hold a string, number, boolean or null: {', '.join(fields)}"
        ) from e


def create_document(name: str, source_path: str | None = None) -> WorkflowDocument:
    """Create an empty document holding only the program root."""
    program = create_block_instance("program")
    timestamp = now_iso()
    return WorkflowDocument(
        id=generate_id(),
        root=program.id,
        blocks={program.id: program},
        connections=[],
        metadata=DocumentMetadata(name=name, created_at=timestamp, updated_at=timestamp, source_path=source_path),
        version=1,
    )


def clone_document(document: WorkflowDocument) -> WorkflowDocument:
    """Deep copy, for handing a document to a separate editing session."""
    return document.model_copy(deep=True)


def find_block_location(document: WorkflowDocument, block_id: str) -> BlockLocation | None:
    """Parent, slot and index of a block, or None if it is not attached anywhere."""
    for parent in document.blocks.values():
        for slot_id, child_ids in parent.children.items():
            if block_id in child_ids:
                return BlockLocation(parent_id=parent.id, slot_id=slot_id, index=child_ids.index(block_id))
    return None


def iter_subtree(document: WorkflowDocument, block_id: str) -> Iterator[str]:
    """Ids of a block and all of its descendants, parents before children."""
    stack = [block_id]
    seen: set[str] = set()
    while stack:
        current = stack.pop()
        if current in seen:
            continue
        seen.add(current)
        yield current
        block = document.blocks.get(current)
        if block is None:
            continue
        for child_ids in reversed(list(block.children.values())):
            stack.extend(reversed(child_ids))


def iter_ancestors(document: WorkflowDocument, block_id: str) -> Iterator[str]:
    """Ids of the parents of a block, nearest first, up to the root."""
    parents = {
        child_id: parent.id
        for parent in document.blocks.values()
        for child_ids in parent.children.values()
        for child_id in child_ids
    }
    seen = {block_id}
    current = parents.get(block_id)
    while current is not None and current not in seen:
        yield current
        seen.add(current)
        current = parents.get(current)


def is_descendant(document: WorkflowDocument, ancestor_id: str, candidate_id: str) -> bool:
    """True if ``candidate_id`` is ``ancestor_id`` or lies inside its subtree."""
    if ancestor_id == candidate_id:
        return True
    return ancestor_id in iter_ancestors(document, candidate_id)


def _require_block(document: WorkflowDocument, block_id: str, role: str = "Block") -> BlockInstance:
    block = document.blocks.get(block_id)
    if block is None:
        raise StructuralError(f"{role} not found: {block_id}")
    return block


def _slot_ids(parent: BlockInstance, slot_id: str, registry: BlockRegistry) -> list[str]:
    """Current children of a slot, validating that the slot exists on the parent."""
    if slot_id in parent.children:
        return list(parent.children[slot_id])
    schema = registry.get(parent.kind)
    if schema is not None and slot_id in schema.slot_ids():
        return []
    raise StructuralError(f"Block {parent.id} ({parent.kind}) has no slot '{slot_id}'")


def _with_slot(block: BlockInstance, slot_id: str, child_ids: list[str]) -> BlockInstance:
    return block.model_copy(update={"children": {**block.children, slot_id: child_ids}})


def _commit(document: WorkflowDocument, blocks: dict[str, BlockInstance], **changes) -> WorkflowDocument:
    metadata = document.metadata.model_copy(update={"updated_at": now_iso()})
    return document.model_copy(update={"blocks": blocks, "metadata": metadata, **changes})


def _clamp(index: int | None, length: int) -> int:
    if index is None:
        return length
    return max(0, min(index, length))


def insert_block(
    document: WorkflowDocument,
    parent_id: str,
    slot_id: str,
    block: BlockInstance,
    index: int | None = None,
    registry: BlockRegistry = block_registry,
) -> WorkflowDocument:
    """Insert a new block into ``parent_id.children[slot_id]`` at ``index``.

    The index is clamped to the slot bounds; None appends. The block must be
    new to the document and have no children of its own.
    """
    parent = _require_block(document, parent_id, "Parent block")
    child_ids = _slot_ids(parent, slot_id, registry)
    if block.id in document.blocks:
        raise StructuralError(f"Block id already exists in document: {block.id}")
    if any(block.children.values()):
        raise StructuralError(f"Block {block.id} already has children; insert it empty or move it")

    child_ids.insert(_clamp(index, len(child_ids)), block.id)
    blocks = {**document.blocks, block.id: block, parent_id: _with_slot(parent, slot_id, child_ids)}
    logger.debug("Inserted %s (%s) into %s.%s", block.id, block.kind, parent_id, slot_id)
    return _commit(document, blocks)


def remove_block(
    document: WorkflowDocument,
    block_id: str,
    parent_id: str | None = None,
    slot_id: str | None = None,
) -> WorkflowDocument:
    """Delete a block and its whole subtree, detaching it from its parent slot.

    ``parent_id`` and ``slot_id`` are looked up when omitted; when given they
    must match where the block actually is.
    """
    if block_id == document.root:
        raise StructuralError("The root block cannot be removed")
    _require_block(document, block_id)
    location = find_block_location(document, block_id)
    if location is None:
        if parent_id is not None or slot_id is not None:
            raise StructuralError(f"Block {block_id} is not attached to the document")
    else:
        if parent_id is None:
            parent_id = location.parent_id
        if slot_id is None:
            slot_id = location.slot_id

    blocks = dict(document.blocks)
    if parent_id is not None:
        parent = _require_block(document, parent_id, "Parent block")
        child_ids = list(parent.children.get(slot_id, []))
        if block_id not in child_ids:
            raise StructuralError(f"Block {block_id} is not in slot '{slot_id}' of {parent_id}")
        child_ids.remove(block_id)
        blocks[parent_id] = _with_slot(parent, slot_id, child_ids)

    removed = set(iter_subtree(document, block_id))
    for removed_id in removed:
        blocks.pop(removed_id, None)
    connections = [
        c for c in document.connections
        if c.source.block_id not in removed and c.target.block_id not in removed
    ]
    logger.debug("Removed %s and %d descendants", block_id, len(removed) - 1)
    return _commit(document, blocks, connections=connections)


def move_block(
    document: WorkflowDocument,
    block_id: str,
    parent_id: str,
    slot_id: str,
    index: int | None = None,
    registry: BlockRegistry = block_registry,
) -> WorkflowDocument:
    """Move an attached block (with its subtree) to another slot position.

    Rejected when ``parent_id`` is the block itself or one of its descendants.
    """
    if block_id == document.root:
        raise StructuralError("The root block cannot be moved")
    block = _require_block(document, block_id)
    target = _require_block(document, parent_id, "Parent block")
    if parent_id == block_id or block_id in iter_ancestors(document, parent_id):
        raise StructuralError(f"Cannot move block {block_id} into its own subtree")
    target_ids = _slot_ids(target, slot_id, registry)

    location = find_block_location(document, block_id)
    if location is None:
        raise StructuralError(f"Block {block_id} is not attached to the document")

    blocks = dict(document.blocks)
    source = blocks[location.parent_id]
    source_ids = list(source.children[location.slot_id])
    source_ids.remove(block_id)
    blocks[source.id] = _with_slot(source, location.slot_id, source_ids)

    if location.parent_id == parent_id and location.slot_id == slot_id:
        target_ids = source_ids
        if index is not None and location.index < index:
            index -= 1
    target = blocks[parent_id]
    target_ids.insert(_clamp(index, len(target_ids)), block.id)
    blocks[parent_id] = _with_slot(target, slot_id, target_ids)
    logger.debug("Moved %s to %s.%s", block_id, parent_id, slot_id)
    return _commit(document, blocks)


def reorder_child(
    document: WorkflowDocument,
    parent_id: str,
    slot_id: str,
    from_index: int,
    to_index: int,
) -> WorkflowDocument:
    """Move the child at ``from_index`` to ``to_index`` within one slot."""
    parent = _require_block(document, parent_id, "Parent block")
    if slot_id not in parent.children:
        raise StructuralError(f"Block {parent_id} ({parent.kind}) has no slot '{slot_id}'")
    child_ids = list(parent.children[slot_id])
    if not 0 <= from_index < len(child_ids):
        raise StructuralError(f"Index {from_index} out of range for slot '{slot_id}' ({len(child_ids)} children)")

    moved = child_ids.pop(from_index)
    child_ids.insert(max(0, min(to_index, len(child_ids))), moved)
    return _commit(document, {**document.blocks, parent_id: _with_slot(parent, slot_id, child_ids)})


def _clone_subtree(document: WorkflowDocument, block_id: str, clones: dict[str, BlockInstance]) -> str:
    original = _require_block(document, block_id)
    children = {
        slot_id: [_clone_subtree(document, child_id, clones) for child_id in child_ids]
        for slot_id, child_ids in original.children.items()
    }
    clone = BlockInstance(
        id=generate_id(),
        kind=original.kind,
        data=dict(original.data),
        children=children,
        metadata=original.metadata.model_copy(deep=True) if original.metadata else None,
    )
    clones[clone.id] = clone
    return clone.id


def duplicate_block(document: WorkflowDocument, block_id: str) -> WorkflowDocument:
    """Deep-clone a block's subtree with fresh ids and insert it right after the original."""
    if block_id == document.root:
        raise StructuralError("The root block cannot be duplicated")
    _require_block(document, block_id)
    location = find_block_location(document, block_id)
    if location is None:
        raise StructuralError(f"Block {block_id} is not attached to the document")

    clones: dict[str, BlockInstance] = {}
    clone_id = _clone_subtree(document, block_id, clones)
    parent = document.blocks[location.parent_id]
    child_ids = list(parent.children[location.slot_id])
    child_ids.insert(location.index + 1, clone_id)
    blocks = {**document.blocks, **clones, parent.id: _with_slot(parent, location.slot_id, child_ids)}
    logger.debug("Duplicated %s as %s (%d blocks)", block_id, clone_id, len(clones))
    return _commit(document, blocks)


def update_block_data(document: WorkflowDocument, block_id: str, updates: dict[str, Any]) -> WorkflowDocument:
    """Merge ``updates`` into a block's data; children are left alone.

    Field values must be strings, numbers, booleans or null.
    """
    block = _require_block(document, block_id)
    updated = _validated_block({**block.model_dump(), "data": {**block.data, **updates}})
    return _commit(document, {**document.blocks, block_id: updated})


def rename_document(document: WorkflowDocument, name: str) -> WorkflowDocument:
    metadata = document.metadata.model_copy(update={"name": name, "updated_at": now_iso()})
    return document.model_copy(update={"metadata": metadata})


def validate_document(document: WorkflowDocument):
    """Check the tree invariants, raising StructuralError on the first violation.

    The root must be a program block, every child id must resolve, no block
    may have two parents, and no block may be its own descendant.
    """
    root = document.blocks.get(document.root)
    if root is None:
        raise StructuralError(f"Root block not found: {document.root}")
    if root.kind != "program":
        raise StructuralError(f"Root block must be a program, got {root.kind}")

    parents: dict[str, str] = {}
    for block_id, block in document.blocks.items():
        if block.id != block_id:
            raise StructuralError(f"Block stored under {block_id} has id {block.id}")
        for slot_id, child_ids in block.children.items():
            for child_id in child_ids:
                if child_id not in document.blocks:
                    raise StructuralError(f"Block {block_id} slot '{slot_id}' references missing block {child_id}")
                if child_id in parents:
                    raise StructuralError(f"Block {child_id} has more than one parent")
                parents[child_id] = block_id
    if document.root in parents:
        raise StructuralError("The root block cannot be a child")
    for block_id in parents:
        seen = {block_id}
        current = parents.get(block_id)
        while current is not None:
            if current in seen:
                raise StructuralError(f"Block {current} is its own descendant")
            seen.add(current)
            current = parents.get(current)
