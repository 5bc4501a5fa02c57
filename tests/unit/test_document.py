"""Unit tests for the structural mutation API."""

import pytest

from reflow_blocks.errors import StructuralError, UnsupportedBlockKindError
from reflow_blocks.workflow import (
    BlockInstance,
    Connection,
    WorkflowDocument,
    clone_document,
    create_block_instance,
    create_document,
    duplicate_block,
    find_block_location,
    insert_block,
    move_block,
    remove_block,
    reorder_child,
    update_block_data,
    validate_document,
)
from reflow_blocks.workflow.document import is_descendant, iter_ancestors, iter_subtree, rename_document


def body(document: WorkflowDocument, block_id: str | None = None, slot_id: str = "body") -> list[str]:
    return document.blocks[block_id or document.root].children[slot_id]


class TestCreate:
    """Test block and document construction."""

    def test_create_block_applies_defaults(self):
        block = create_block_instance("open-call", {"appName": "Mail"})

        assert block.data["appName"] == "Mail"
        assert block.data["bringToFront"] is True
        assert block.data["waitSeconds"] == 5
        assert block.children == {}

    def test_create_block_with_slots(self):
        block = create_block_instance("try-statement")

        assert block.children == {"try": [], "catch": [], "finally": []}

    def test_create_block_ids_are_unique(self):
        assert create_block_instance("wait-call").id != create_block_instance("wait-call").id

    def test_create_block_rejects_list_field(self):
        with pytest.raises(StructuralError, match="message"):
            create_block_instance("log-call", {"message": ["a", "b"]})

    def test_create_unknown_kind(self):
        with pytest.raises(UnsupportedBlockKindError):
            create_block_instance("teleport-call")

    def test_create_document(self):
        document = create_document("Morning routine", source_path="routine.js")

        assert document.root_block.kind == "program"
        assert body(document) == []
        assert document.metadata.name == "Morning routine"
        assert document.metadata.source_path == "routine.js"
        assert document.metadata.created_at == document.metadata.updated_at
        validate_document(document)


class TestQueries:
    """Test tree queries."""

    def test_find_block_location(self, nested_document: WorkflowDocument):
        location = find_block_location(nested_document, "log-b")

        assert (location.parent_id, location.slot_id, location.index) == ("if", "consequent", 1)

    def test_root_has_no_location(self, nested_document: WorkflowDocument):
        assert find_block_location(nested_document, nested_document.root) is None

    def test_iter_subtree(self, nested_document: WorkflowDocument):
        assert list(iter_subtree(nested_document, "if")) == ["if", "log-a", "log-b"]

    def test_iter_ancestors(self, nested_document: WorkflowDocument):
        assert list(iter_ancestors(nested_document, "log-a")) == ["if", nested_document.root]

    def test_is_descendant(self, nested_document: WorkflowDocument):
        assert is_descendant(nested_document, "if", "log-a")
        assert not is_descendant(nested_document, "log-a", "if")


class TestInsert:
    """Test inserting blocks."""

    def test_insert_appends_by_default(self, nested_document: WorkflowDocument):
        block = create_block_instance("log-call", {"message": '"c"'})
        document = insert_block(nested_document, "if", "consequent", block)

        assert body(document, "if", "consequent") == ["log-a", "log-b", block.id]

    def test_insert_at_index_is_clamped(self, nested_document: WorkflowDocument):
        first = create_block_instance("wait-call")
        last = create_block_instance("wait-call")
        document = insert_block(nested_document, nested_document.root, "body", first, index=-5)
        document = insert_block(document, document.root, "body", last, index=99)

        assert body(document) == [first.id, "if", "wait", last.id]

    def test_insert_does_not_modify_input(self, nested_document: WorkflowDocument):
        before = nested_document.model_dump()
        insert_block(nested_document, "if", "alternate", create_block_instance("break-statement"))

        assert nested_document.model_dump() == before

    def test_insert_into_missing_parent(self, nested_document: WorkflowDocument):
        with pytest.raises(StructuralError, match="Parent block not found"):
            insert_block(nested_document, "nope", "body", create_block_instance("wait-call"))

    def test_insert_into_missing_slot(self, nested_document: WorkflowDocument):
        with pytest.raises(StructuralError, match="has no slot 'body'"):
            insert_block(nested_document, "wait", "body", create_block_instance("wait-call"))

    def test_insert_duplicate_id(self, nested_document: WorkflowDocument):
        block = create_block_instance("wait-call").model_copy(update={"id": "wait"})

        with pytest.raises(StructuralError, match="already exists"):
            insert_block(nested_document, nested_document.root, "body", block)

    def test_insert_block_with_children(self, nested_document: WorkflowDocument):
        block = BlockInstance(id="loop", kind="while-statement", children={"body": ["wait"]})

        with pytest.raises(StructuralError, match="already has children"):
            insert_block(nested_document, nested_document.root, "body", block)


class TestRemove:
    """Test removing blocks."""

    def test_remove_subtree(self, nested_document: WorkflowDocument):
        document = remove_block(nested_document, "if")

        assert body(document) == ["wait"]
        assert set(document.blocks) == {document.root, "wait"}
        validate_document(document)

    def test_remove_with_explicit_location(self, nested_document: WorkflowDocument):
        document = remove_block(nested_document, "log-a", "if", "consequent")

        assert body(document, "if", "consequent") == ["log-b"]

    def test_remove_with_wrong_location(self, nested_document: WorkflowDocument):
        with pytest.raises(StructuralError, match="is not in slot"):
            remove_block(nested_document, "log-a", "if", "alternate")

    def test_remove_with_slot_only(self, nested_document: WorkflowDocument):
        """Test that the parent is looked up when only the slot is given."""
        document = remove_block(nested_document, "log-a", slot_id="consequent")

        assert body(document, "if", "consequent") == ["log-b"]
        assert "log-a" not in document.blocks
        validate_document(document)

    def test_remove_with_wrong_slot_only(self, nested_document: WorkflowDocument):
        with pytest.raises(StructuralError, match="is not in slot 'alternate'"):
            remove_block(nested_document, "log-a", slot_id="alternate")

    def test_remove_detached_block_with_location(self, nested_document: WorkflowDocument):
        blocks = {**nested_document.blocks, "loose": BlockInstance(id="loose", kind="wait-call")}
        document = nested_document.model_copy(update={"blocks": blocks})

        with pytest.raises(StructuralError, match="not attached"):
            remove_block(document, "loose", parent_id="if")

    def test_remove_root(self, nested_document: WorkflowDocument):
        with pytest.raises(StructuralError, match="root block cannot be removed"):
            remove_block(nested_document, nested_document.root)

    def test_remove_missing_block(self, nested_document: WorkflowDocument):
        with pytest.raises(StructuralError, match="Block not found"):
            remove_block(nested_document, "nope")

    def test_remove_drops_connections(self, nested_document: WorkflowDocument):
        connection = Connection.model_validate({
            "id": "c1",
            "from": {"blockId": "log-a", "portId": "flow-out"},
            "to": {"blockId": "wait", "portId": "flow-in"},
        })
        document = nested_document.model_copy(update={"connections": [connection]})

        assert remove_block(document, "if").connections == []


class TestMove:
    """Test moving and reordering blocks."""

    def test_move_within_same_slot(self, nested_document: WorkflowDocument):
        document = move_block(nested_document, "log-a", "if", "consequent", 2)

        assert body(document, "if", "consequent") == ["log-b", "log-a"]

    def test_move_to_other_parent(self, nested_document: WorkflowDocument):
        document = move_block(nested_document, "wait", "if", "alternate")

        assert body(document) == ["if"]
        assert body(document, "if", "alternate") == ["wait"]
        validate_document(document)

    def test_move_into_own_subtree(self, nested_document: WorkflowDocument):
        with pytest.raises(StructuralError, match="into its own subtree"):
            move_block(nested_document, "if", "if", "consequent")

    def test_move_into_descendant_leaves_document_unchanged(self, nested_document: WorkflowDocument):
        loop = create_block_instance("while-statement", {"test": "true"})
        document = insert_block(nested_document, "if", "consequent", loop)
        before = clone_document(document)

        with pytest.raises(StructuralError, match="into its own subtree"):
            move_block(document, "if", loop.id, "body")

        assert document == before
        assert body(document, loop.id) == []
        assert body(document) == ["if", "wait"]

    def test_move_root(self, nested_document: WorkflowDocument):
        with pytest.raises(StructuralError, match="root block cannot be moved"):
            move_block(nested_document, nested_document.root, "if", "consequent")

    def test_move_detached_block(self, nested_document: WorkflowDocument):
        blocks = {**nested_document.blocks, "loose": BlockInstance(id="loose", kind="wait-call")}
        document = nested_document.model_copy(update={"blocks": blocks})

        with pytest.raises(StructuralError, match="not attached"):
            move_block(document, "loose", "if", "consequent")

    def test_reorder(self):
        document = create_document("Reorder")
        ids = []
        for _ in range(3):
            block = create_block_instance("wait-call")
            ids.append(block.id)
            document = insert_block(document, document.root, "body", block)

        document = reorder_child(document, document.root, "body", 0, 2)

        assert body(document) == [ids[1], ids[2], ids[0]]

    def test_reorder_clamps_target(self, nested_document: WorkflowDocument):
        document = reorder_child(nested_document, "if", "consequent", 1, -3)

        assert body(document, "if", "consequent") == ["log-b", "log-a"]

    def test_reorder_bad_source_index(self, nested_document: WorkflowDocument):
        with pytest.raises(StructuralError, match="out of range"):
            reorder_child(nested_document, "if", "consequent", 2, 0)


class TestDuplicateAndUpdate:
    """Test duplication, data updates and renaming."""

    def test_duplicate_subtree(self, nested_document: WorkflowDocument):
        document = duplicate_block(nested_document, "if")

        root_body = body(document)
        assert root_body[0] == "if"
        clone_id = root_body[1]
        clone = document.blocks[clone_id]
        assert clone.kind == "if-statement"
        assert clone.data == {"test": "ready"}
        clone_children = clone.children["consequent"]
        assert len(clone_children) == 2
        assert not set(clone_children) & {"log-a", "log-b"}
        assert [document.blocks[i].data["message"] for i in clone_children] == ['"a"', '"b"']
        validate_document(document)

    def test_duplicate_root(self, nested_document: WorkflowDocument):
        with pytest.raises(StructuralError):
            duplicate_block(nested_document, nested_document.root)

    def test_editing_clone_leaves_original_alone(self, nested_document: WorkflowDocument):
        document = duplicate_block(nested_document, "if")
        clone_id = body(document)[1]
        clone_log = body(document, clone_id, "consequent")[0]

        document = update_block_data(document, clone_log, {"message": '"changed"'})
        document = remove_block(document, body(document, clone_id, "consequent")[1])
        document.blocks[clone_id].data["test"] = "other"

        assert document.blocks["log-a"].data["message"] == '"a"'
        assert body(document, "if", "consequent") == ["log-a", "log-b"]
        assert document.blocks["if"].data == {"test": "ready"}
        assert body(document, clone_id, "consequent") == [clone_log]
        validate_document(document)

    def test_update_block_data(self, nested_document: WorkflowDocument):
        document = update_block_data(nested_document, "wait", {"duration": 3})

        assert document.blocks["wait"].data["duration"] == 3
        assert nested_document.blocks["wait"].data["duration"] == 2
        assert document.blocks["if"] is nested_document.blocks["if"]

    @pytest.mark.parametrize("value", [{"nested": [1]}, [1, 2], ("a",)])
    def test_update_rejects_non_primitive_values(self, nested_document: WorkflowDocument, value):
        with pytest.raises(StructuralError, match="duration"):
            update_block_data(nested_document, "wait", {"duration": value})

        assert nested_document.blocks["wait"].data["duration"] == 2

    def test_rename_document(self, nested_document: WorkflowDocument):
        document = rename_document(nested_document, "Renamed")

        assert document.metadata.name == "Renamed"
        assert nested_document.metadata.name == "Nested"

    def test_clone_document_is_deep(self, nested_document: WorkflowDocument):
        copy = clone_document(nested_document)

        assert copy == nested_document
        assert copy.blocks["if"] is not nested_document.blocks["if"]


class TestValidateDocument:
    """Test structural validation."""

    def test_valid(self, nested_document: WorkflowDocument):
        validate_document(nested_document)

    def test_valid_after_mutation_sequence(self, nested_document: WorkflowDocument):
        loop = create_block_instance("while-statement", {"test": "running"})
        steps = [
            lambda d: insert_block(d, d.root, "body", loop, 0),
            lambda d: move_block(d, "if", loop.id, "body"),
            lambda d: duplicate_block(d, "log-a"),
            lambda d: move_block(d, "wait", "if", "alternate", 0),
            lambda d: reorder_child(d, "if", "consequent", 2, 0),
            lambda d: update_block_data(d, "wait", {"duration": 0.5}),
            lambda d: remove_block(d, "log-b"),
            lambda d: duplicate_block(d, loop.id),
            lambda d: remove_block(d, "if"),
        ]

        document = nested_document
        for step in steps:
            document = step(document)
            validate_document(document)

        assert len(body(document)) == 2
        assert set(iter_subtree(document, document.root)) == set(document.blocks)

    def test_dangling_reference(self, nested_document: WorkflowDocument):
        blocks = {k: v for k, v in nested_document.blocks.items() if k != "log-a"}
        document = nested_document.model_copy(update={"blocks": blocks})

        with pytest.raises(StructuralError, match="missing block log-a"):
            validate_document(document)

    def test_two_parents(self, nested_document: WorkflowDocument):
        parent = nested_document.blocks["if"]
        shared = parent.model_copy(update={"children": {**parent.children, "alternate": ["wait"]}})
        document = nested_document.model_copy(update={"blocks": {**nested_document.blocks, "if": shared}})

        with pytest.raises(StructuralError, match="more than one parent"):
            validate_document(document)

    def test_cycle(self, nested_document: WorkflowDocument):
        blocks = dict(nested_document.blocks)
        blocks["a"] = BlockInstance(id="a", kind="while-statement", children={"body": ["b"]})
        blocks["b"] = BlockInstance(id="b", kind="while-statement", children={"body": ["a"]})
        document = nested_document.model_copy(update={"blocks": blocks})

        with pytest.raises(StructuralError, match="its own descendant"):
            validate_document(document)

    def test_root_must_be_program(self, nested_document: WorkflowDocument):
        document = nested_document.model_copy(update={"root": "wait"})

        with pytest.raises(StructuralError, match="must be a program"):
            validate_document(document)
