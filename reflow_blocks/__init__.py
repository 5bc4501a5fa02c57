"""Reflow Blocks - edit automation scripts as text or as a tree of blocks.

A script is parsed into a workflow document: a flat map of typed blocks (If,
While, Function Call, Click, Wait, AI Call, ...) wired together through named
child slots. The document can be edited structurally and turned back into
equivalent source text at any time.

Example:
    Round-trip a script through the block view:

    >>> from reflow_blocks import import_workflow, export_workflow
    >>> document = import_workflow('open("Chrome")\\nwait(0.5)')
    >>> print(export_workflow(document))
    open("Chrome", true, 5);
    wait(0.5);

    Or serve the editing tools over MCP:

    $ reflow-mcp --workspace ./workflows

Modules:
    script: Script grammar, AST and parser
    workflow: Block documents, conversion, mutations and editing sessions
    api: HTTP API for import/export
    mcp: Model Context Protocol server implementation
"""

__version__ = "0.1.0"
__license__ = "MIT"

from .errors import ScriptSyntaxError, StructuralError, UnsupportedBlockKindError, WorkflowError
from .script import ScriptParser
from .workflow import EditingSession, WorkflowDocument, export_workflow, import_workflow

__all__ = [
    "ScriptParser",
    "EditingSession",
    "WorkflowDocument",
    "import_workflow",
    "export_workflow",
    "WorkflowError",
    "ScriptSyntaxError",
    "StructuralError",
    "UnsupportedBlockKindError",
]
