"""Unit tests for the block catalog, document models and configuration."""

import json
import os
from pathlib import Path

import pytest

from reflow_blocks.config import DEFAULT_CONFIG, ReflowConfig, get_config
from reflow_blocks.errors import ScriptSyntaxError, UnsupportedBlockKindError, WorkflowError
from reflow_blocks.workflow import BlockRegistry, WorkflowDocument, block_registry
from reflow_blocks.workflow.catalog import KNOWN_BLOCK_SCHEMAS, binding_field
from reflow_blocks.workflow.converter import VERB_KINDS


class TestBlockRegistry:
    """Test block schema lookup."""

    def test_all_kinds_registered(self):
        assert len(block_registry.kinds()) == len(KNOWN_BLOCK_SCHEMAS) == 33
        for kind in VERB_KINDS.values():
            assert kind in block_registry

    def test_require_unknown(self):
        with pytest.raises(UnsupportedBlockKindError) as exc_info:
            block_registry.require("teleport-call")

        assert exc_info.value.kind == "teleport-call"
        assert str(exc_info.value) == "Unsupported block kind: teleport-call"

    def test_get_unknown(self):
        assert block_registry.get("teleport-call") is None

    def test_register_duplicate(self):
        registry = BlockRegistry(KNOWN_BLOCK_SCHEMAS[:1])

        with pytest.raises(ValueError, match="already registered"):
            registry.register(KNOWN_BLOCK_SCHEMAS[0])

    def test_by_category(self):
        kinds = {schema.kind for schema in block_registry.by_category("io")}

        assert kinds == {"read-clipboard-call", "file-reader-call"}

    def test_schema_helpers(self):
        schema = block_registry.require("if-statement")

        assert schema.slot_ids() == ["consequent", "alternate"]
        assert schema.get_field("test").required is True
        assert schema.get_field("missing") is None

    def test_field_defaults(self):
        defaults = block_registry.require("scroll-call").field_defaults()

        assert defaults["origin"] == "[0, 0]"
        assert defaults["direction"] == "down"
        assert defaults["amount"] == 1

    def test_schema_serialises_camel_case(self):
        data = block_registry.require("switch-statement").to_dict()

        assert data["childSlots"][0]["allowedKinds"] == ["switch-case"]
        assert "defaultValue" in data["fields"][0]

    @pytest.mark.parametrize("kind,expected", [
        ("wait-call", "identifier"),
        ("locator-call", "identifier"),
        ("function-call", "assignTo"),
        ("screenshot-call", "assignTo"),
        ("read-clipboard-call", "assignTo"),
        ("file-reader-call", "assignTo"),
        ("if-statement", None),
        ("teleport-call", None),
    ])
    def test_binding_field(self, kind, expected):
        assert binding_field(kind) == expected


class TestDocumentModel:
    """Test document persistence format."""

    def test_json_uses_camel_case(self, nested_document: WorkflowDocument):
        data = json.loads(nested_document.to_json())

        assert set(data) == {"id", "root", "blocks", "connections", "metadata", "version"}
        assert "createdAt" in data["metadata"]
        assert "sourcePath" in data["metadata"]
        assert data["blocks"]["if"]["children"]["consequent"] == ["log-a", "log-b"]

    def test_json_round_trip(self, sample_document: WorkflowDocument):
        restored = WorkflowDocument.from_json(sample_document.to_json())

        assert restored == sample_document

    def test_metadata_location_serialisation(self, sample_document: WorkflowDocument):
        data = sample_document.to_dict()
        first = data["blocks"][data["blocks"][data["root"]]["children"]["body"][0]]

        assert first["metadata"]["sourceLocation"]["start"] == {"line": 2, "column": 0}

    def test_connection_aliases(self):
        document = WorkflowDocument.model_validate({
            "id": "doc",
            "root": "p",
            "blocks": {"p": {"id": "p", "kind": "program", "children": {"body": []}}},
            "connections": [{
                "id": "c",
                "from": {"blockId": "p", "portId": "flow-out"},
                "to": {"blockId": "p", "portId": "flow-in"},
            }],
            "metadata": {"name": "Linked"},
        })

        assert document.connections[0].source.block_id == "p"
        assert document.to_dict()["connections"][0]["to"]["portId"] == "flow-in"


class TestConfig:
    """Test configuration."""

    def test_defaults(self):
        config = ReflowConfig()

        assert config.default_workflow_name == "Imported Workflow"
        assert config.history_limit == 50
        assert config.max_open_documents == 32
        assert config.workspace_dir == Path.home() / "reflow-workflows"

    def test_workspace_from_string(self, tmp_path):
        assert ReflowConfig(workspace_dir=str(tmp_path)).workspace_dir == tmp_path

    def test_history_limit_must_be_positive(self):
        with pytest.raises(ValueError, match="history_limit"):
            ReflowConfig(history_limit=0)

    def test_max_open_documents_must_be_positive(self):
        with pytest.raises(ValueError, match="max_open_documents"):
            ReflowConfig(max_open_documents=0)

    def test_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("REFLOW_DEFAULT_NAME", "From Env")
        monkeypatch.setenv("REFLOW_HISTORY_LIMIT", "7")
        monkeypatch.setenv("REFLOW_MAX_OPEN_DOCUMENTS", "4")
        monkeypatch.setenv("REFLOW_WORKSPACE_DIR", str(tmp_path))
        monkeypatch.setenv("REFLOW_DEBUG", "TRUE")

        config = get_config()

        assert config.default_workflow_name == "From Env"
        assert config.history_limit == 7
        assert config.max_open_documents == 4
        assert config.workspace_dir == tmp_path
        assert config.debug is True

    def test_default_config_without_env(self, monkeypatch):
        for key in [k for k in os.environ if k.startswith("REFLOW_")]:
            monkeypatch.delenv(key)

        assert get_config() is DEFAULT_CONFIG


class TestErrors:
    """Test the error hierarchy."""

    def test_syntax_error_message(self):
        error = ScriptSyntaxError("Unexpected token ')'", 3, 7)

        assert isinstance(error, WorkflowError)
        assert str(error) == "Unexpected token ')' (line 3, column 7)"

    def test_syntax_error_without_position(self):
        assert str(ScriptSyntaxError("Bad input")) == "Bad input"
