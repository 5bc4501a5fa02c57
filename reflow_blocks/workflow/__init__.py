"""Workflow package: block documents and their conversion to and from scripts.

Classes:
    WorkflowDocument: Rooted block tree plus metadata
    BlockInstance: One block (statement or automation call)
    BlockRegistry: Block schemas keyed by kind
    ScriptToWorkflowConverter: Convert a script AST into a document
    WorkflowToScriptConverter: Generate script source from a document
    EditingSession: Current document with undo/redo and change listeners

Functions:
    import_workflow: Parse source text into a new document
    export_workflow: Generate source text from a document
    load_document / save_document: JSON persistence
"""

from .catalog import BlockRegistry, BlockSchema, block_registry
from .converter import ScriptToWorkflowConverter, WorkflowToScriptConverter
from .document import (
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
from .io import export_workflow, import_file, import_workflow, load_document, save_document
from .models import BlockInstance, BlockLocation, Connection, DocumentMetadata, WorkflowDocument
from .session import EditingSession

__all__ = [
    "BlockRegistry",
    "BlockSchema",
    "block_registry",
    "ScriptToWorkflowConverter",
    "WorkflowToScriptConverter",
    "clone_document",
    "create_block_instance",
    "create_document",
    "duplicate_block",
    "find_block_location",
    "insert_block",
    "move_block",
    "remove_block",
    "reorder_child",
    "update_block_data",
    "validate_document",
    "export_workflow",
    "import_file",
    "import_workflow",
    "load_document",
    "save_document",
    "BlockInstance",
    "BlockLocation",
    "Connection",
    "DocumentMetadata",
    "WorkflowDocument",
    "EditingSession",
]
