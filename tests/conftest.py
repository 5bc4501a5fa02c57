"""Pytest configuration and shared fixtures."""

import pytest
from pathlib import Path

from reflow_blocks.script import ScriptParser
from reflow_blocks.workflow import (
    ScriptToWorkflowConverter,
    WorkflowDocument,
    WorkflowToScriptConverter,
    create_block_instance,
    create_document,
    import_workflow,
    insert_block,
)


SAMPLE_SCRIPT = '''// Open the browser and search
open("Chrome", true, 5);
wait(0.5);
let results = locator({ instruction: "search box", waitTime: 2 });
click(results);
type("hello world");
press("return", ["cmd"]);
let count = 0;
for (let i = 0; i < 3; i++) {
  count += 1;
}
if (count > 2) {
  log("done");
} else {
  throw new Error("too few");
}
'''


@pytest.fixture
def sample_script() -> str:
    """Sample automation script in canonical formatting."""
    return SAMPLE_SCRIPT


@pytest.fixture
def script_parser() -> ScriptParser:
    """Script parser instance."""
    return ScriptParser()


@pytest.fixture
def script_to_workflow() -> ScriptToWorkflowConverter:
    return ScriptToWorkflowConverter()


@pytest.fixture
def workflow_to_script(script_parser: ScriptParser) -> WorkflowToScriptConverter:
    return WorkflowToScriptConverter(script_parser)


@pytest.fixture
def sample_document(sample_script: str) -> WorkflowDocument:
    """Workflow document imported from the sample script."""
    return import_workflow(sample_script, "Sample")


@pytest.fixture
def nested_document() -> WorkflowDocument:
    """Program with an if block holding two calls, followed by a wait.

    Block ids are fixed so tests can address them: ``if``, ``log-a``,
    ``log-b`` and ``wait``.
    """
    document = create_document("Nested")
    blocks = [
        (document.root, "body", "if-statement", "if", {"test": "ready"}),
        ("if", "consequent", "log-call", "log-a", {"message": '"a"'}),
        ("if", "consequent", "log-call", "log-b", {"message": '"b"'}),
        (document.root, "body", "wait-call", "wait", {"duration": 2}),
    ]
    for parent_id, slot_id, kind, block_id, data in blocks:
        block = create_block_instance(kind, data).model_copy(update={"id": block_id})
        document = insert_block(document, parent_id, slot_id, block)
    return document


class MockContext:
    """Mock MCP context for testing."""

    def __init__(self):
        self.messages = []

    async def info(self, message: str):
        """Mock info method."""
        self.messages.append(("info", message))

    async def error(self, message: str):
        """Mock error method."""
        self.messages.append(("error", message))


@pytest.fixture
def mock_context() -> MockContext:
    """Mock MCP context for testing tools."""
    return MockContext()


@pytest.fixture
def workspace(tmp_path: Path, monkeypatch) -> Path:
    """Point the MCP server at a temporary workspace with no open sessions."""
    from reflow_blocks.mcp import server

    monkeypatch.setattr(server, "WORKSPACE", tmp_path)
    monkeypatch.setattr(server, "sessions", {})
    return tmp_path
