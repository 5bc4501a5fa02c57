"""Reflow Workflow MCP Server

Provides tools for importing, editing and exporting automation workflows.
Agents can work on scripts as text or edit the block tree directly; every
edit goes through an editing session with undo/redo.
"""

import logging
import sys
from collections import Counter
from pathlib import Path
from typing import Any

from fastmcp import Context, FastMCP
from fastmcp.exceptions import ToolError

from .. import __version__
from ..config import get_config
from ..errors import WorkflowError
from ..workflow import (
    EditingSession,
    block_registry,
    import_file,
    import_workflow,
    load_document,
    save_document,
)

logger = logging.getLogger(__name__)

# Create MCP server
mcp = FastMCP("Reflow Workflow Editor")

# Security: file operations stay inside this directory
WORKSPACE = get_config().workspace_dir

SCRIPT_SUFFIX = ".js"
DOCUMENT_SUFFIX = ".json"

# Open editing sessions keyed by document id, least recently used first
sessions: dict[str, EditingSession] = {}


def validate_path(filepath: str, base: Path | None = None) -> Path:
    """Resolve a path against the workspace and check it stays inside it."""
    base = (base or WORKSPACE).resolve()
    path = (base / filepath).resolve()
    try:
        path.relative_to(base)
        return path
    except ValueError:
        raise ToolError(f"Access denied: {filepath} is outside the workspace")


def get_session(document_id: str) -> EditingSession:
    session = sessions.pop(document_id, None)
    if session is None:
        raise ToolError(f"No open document with id {document_id}; import or read one first")
    sessions[document_id] = session
    return session


def open_session(document) -> EditingSession:
    """Open an editing session, closing the least recently used ones beyond the configured limit."""
    session = EditingSession()
    session.load_document(document)
    sessions.pop(session.document.id, None)
    sessions[session.document.id] = session

    limit = get_config().max_open_documents
    while len(sessions) > limit:
        closed_id = next(iter(sessions))
        del sessions[closed_id]
        logger.info("Closed workflow %s: more than %d documents open", closed_id, limit)
    return session


def outline(session: EditingSession, block_id: str | None = None, depth: int = 0) -> list[dict]:
    """Flattened block tree: one entry per block, parents before children."""
    document = session.document
    block = document.blocks[block_id or document.root]
    entries = []
    for slot_id, child_ids in block.children.items():
        for child_id in child_ids:
            child = document.blocks[child_id]
            entries.append({
                "id": child.id,
                "kind": child.kind,
                "parent": block.id,
                "slot": slot_id,
                "depth": depth,
                "data": child.data,
            })
            entries.extend(outline(session, child.id, depth + 1))
    return entries


def session_state(session: EditingSession, include_blocks: bool = False) -> dict[str, Any]:
    state = {
        "document_id": session.document.id,
        "name": session.document.metadata.name,
        "code": session.code,
        "block_count": len(session.document.blocks) - 1,
        "selected": session.selected_block_id,
        "can_undo": session.can_undo,
        "can_redo": session.can_redo,
        "error": session.last_error,
    }
    if include_blocks:
        state["blocks"] = outline(session)
    return state


def apply_edit(session: EditingSession, succeeded: bool) -> dict[str, Any]:
    if not succeeded:
        raise ToolError(session.last_error or "Edit failed")
    return session_state(session)


# ===== IMPORT / EXPORT TOOLS =====

async def import_script(ctx: Context, code: str, name: str | None = None) -> dict:
    """Import script source as a new workflow document.

    Parses the script into blocks and opens an editing session for it.
    Statements without a dedicated block are kept as raw statements.

    Args:
        code: Script source text
        name: Document name (default: configured import name)

    Returns:
        Session state with document id, regenerated code and block outline

    Examples:
        import_script('open("Chrome")\\nwait(2)')
    """
    await ctx.info(f"Importing script ({len(code)} chars)")
    try:
        document = import_workflow(code, name)
    except WorkflowError as e:
        raise ToolError(f"Failed to import script: {e}")

    session = open_session(document)
    await ctx.info(f"✓ Imported {len(document.blocks) - 1} blocks")
    return session_state(session, include_blocks=True)


def export_script(document_id: str) -> str:
    """Generate script source for an open document.

    Args:
        document_id: Id returned by import_script or read_workflow

    Returns:
        Script source text
    """
    session = get_session(document_id)
    if session.last_error:
        raise ToolError(f"Cannot generate code: {session.last_error}")
    return session.code


def get_document(document_id: str) -> dict:
    """Return an open document in its persisted JSON form."""
    return get_session(document_id).document.to_dict()


def validate_script(code: str) -> dict:
    """Check script syntax and summarise the blocks it would produce.

    Args:
        code: Script source text

    Returns:
        Validation result with is_valid, errors and block counts by kind
    """
    try:
        document = import_workflow(code)
    except WorkflowError as e:
        return {"is_valid": False, "errors": [str(e)], "message": "Script syntax error"}

    kinds = Counter(block.kind for block in document.blocks.values() if block.id != document.root)
    return {
        "is_valid": True,
        "errors": [],
        "block_count": sum(kinds.values()),
        "kinds": dict(kinds),
        "raw_statements": kinds.get("raw-statement", 0),
    }


def list_block_kinds(category: str | None = None) -> list[dict]:
    """List block kinds with their fields and child slots.

    Args:
        category: Only list kinds in this category (e.g. "control", "automation")
    """
    schemas = block_registry.by_category(category) if category else block_registry.list()
    return [
        {
            "kind": schema.kind,
            "label": schema.label,
            "category": schema.category,
            "fields": [field.id for field in schema.fields],
            "slots": schema.slot_ids(),
        }
        for schema in schemas
    ]


# ===== FILE OPERATION TOOLS =====

async def read_workflow(ctx: Context, filepath: str) -> dict:
    """Open a workflow file from the workspace.

    Script files are imported; JSON files are loaded as saved documents.

    Args:
        filepath: Path relative to the workspace (.js or .json)

    Returns:
        Session state with document id, code and block outline
    """
    await ctx.info(f"Reading workflow from {filepath}")
    path = validate_path(filepath)
    if not path.exists():
        raise ToolError(f"File not found: {filepath}")

    try:
        if path.suffix == DOCUMENT_SUFFIX:
            document = load_document(path)
        elif path.suffix == SCRIPT_SUFFIX:
            document = import_file(path)
        else:
            raise ToolError(f"Unsupported file format: {path.suffix}")
    except (WorkflowError, OSError) as e:
        raise ToolError(f"Error reading workflow: {e}")

    session = open_session(document)
    if session.last_error:
        await ctx.error(f"Document loaded but code generation failed: {session.last_error}")
    return session_state(session, include_blocks=True)


async def write_workflow(ctx: Context, document_id: str, filepath: str, format: str = "json") -> dict:
    """Write an open document to the workspace.

    Args:
        document_id: Id of the open document
        filepath: Destination path relative to the workspace
        format: "json" for the block document, "script" for generated source

    Returns:
        Status dict with path, size and format
    """
    session = get_session(document_id)
    path = validate_path(filepath)
    if path.exists():
        await ctx.info(f"⚠️  File {filepath} already exists, will overwrite")

    try:
        if format == "json":
            save_document(session.document, path)
        elif format == "script":
            if session.last_error:
                raise ToolError(f"Cannot generate code: {session.last_error}")
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(session.code, encoding="utf-8")
        else:
            raise ToolError(f"Unsupported format: {format}. Use 'json' or 'script'")
    except OSError as e:
        raise ToolError(f"Error writing workflow: {e}")

    await ctx.info(f"✓ Wrote {format} to {filepath}")
    return {"status": "success", "path": str(path), "size": path.stat().st_size, "format": format}


def list_workflows(directory: str = ".", pattern: str = "*") -> list[dict]:
    """List workflow files (.js and .json) in a workspace directory.

    Args:
        directory: Directory relative to the workspace (default: workspace root)
        pattern: Glob pattern for filtering file names
    """
    search_path = validate_path(directory)
    if not search_path.is_dir():
        raise ToolError(f"Directory not found: {directory}")

    workflows = []
    for suffix in (SCRIPT_SUFFIX, DOCUMENT_SUFFIX):
        for path in search_path.glob(f"{pattern}{suffix}"):
            if path.is_file():
                stat = path.stat()
                workflows.append({
                    "name": path.name,
                    "path": str(path.relative_to(WORKSPACE.resolve())),
                    "size": stat.st_size,
                    "modified": stat.st_mtime,
                    "format": "script" if suffix == SCRIPT_SUFFIX else "json",
                })
    workflows.sort(key=lambda w: w["name"])
    return workflows


# ===== EDITING TOOLS =====

def insert_block(
    document_id: str,
    kind: str,
    parent_id: str | None = None,
    slot_id: str = "body",
    index: int | None = None,
    fields: dict[str, Any] | None = None,
) -> dict:
    """Insert a new block.

    Args:
        document_id: Id of the open document
        kind: Block kind (see list_block_kinds)
        parent_id: Parent block id (default: the program root)
        slot_id: Parent slot, e.g. "body", "consequent", "alternate"
        index: Position in the slot (default: append)
        fields: Initial field values

    Returns:
        Session state; "selected" holds the new block id
    """
    session = get_session(document_id)
    return apply_edit(session, session.add_block(kind, parent_id, slot_id, index, fields) is not None)


def remove_block(document_id: str, block_id: str) -> dict:
    """Remove a block and everything nested inside it."""
    session = get_session(document_id)
    return apply_edit(session, session.delete_block(block_id))


def move_block(document_id: str, block_id: str, parent_id: str, slot_id: str, index: int | None = None) -> dict:
    """Move a block (with its children) into another slot position.

    Moving a block into itself or one of its descendants is rejected.
    """
    session = get_session(document_id)
    return apply_edit(session, session.move_block(block_id, parent_id, slot_id, index))


def reorder_block(document_id: str, parent_id: str, slot_id: str, from_index: int, to_index: int) -> dict:
    session = get_session(document_id)
    return apply_edit(session, session.reorder_block(parent_id, slot_id, from_index, to_index))


def duplicate_block(document_id: str, block_id: str) -> dict:
    """Duplicate a block and its children right after the original."""
    session = get_session(document_id)
    return apply_edit(session, session.duplicate_block(block_id) is not None)


def update_block(document_id: str, block_id: str, fields: dict[str, Any]) -> dict:
    """Merge new field values into a block."""
    session = get_session(document_id)
    return apply_edit(session, session.update_block_fields(block_id, fields))


def replace_code(document_id: str, code: str) -> dict:
    """Replace an open document's blocks with a re-import of edited source."""
    session = get_session(document_id)
    return apply_edit(session, session.load_from_code(code))


def undo(document_id: str) -> dict:
    session = get_session(document_id)
    if not session.undo():
        raise ToolError("Nothing to undo")
    return session_state(session)


def redo(document_id: str) -> dict:
    session = get_session(document_id)
    if not session.redo():
        raise ToolError("Nothing to redo")
    return session_state(session)


def close_document(document_id: str) -> dict:
    """Close an open document and discard its undo history.

    Unsaved edits are lost; write the workflow first to keep them.
    """
    get_session(document_id)
    del sessions[document_id]
    return {"document_id": document_id, "closed": True, "open_documents": len(sessions)}


for tool in (
    import_script, export_script, get_document, validate_script, list_block_kinds,
    read_workflow, write_workflow, list_workflows,
    insert_block, remove_block, move_block, reorder_block, duplicate_block, update_block, replace_code,
    undo, redo, close_document,
):
    mcp.tool(tool)


# ===== MCP RESOURCES =====

async def block_catalog() -> str:
    """Block kinds grouped by category, with fields and slots"""
    output = "# Reflow Block Catalog\n\n"
    categories: dict[str, list] = {}
    for schema in block_registry.list():
        categories.setdefault(schema.category, []).append(schema)

    for category, schemas in categories.items():
        output += f"## {category}\n\n"
        for schema in schemas:
            output += f"### {schema.label} (`{schema.kind}`)\n\n"
            if schema.description:
                output += f"{schema.description}\n\n"
            for field in schema.fields:
                required = " (required)" if field.required else ""
                output += f"- `{field.id}`: {field.label}{required}\n"
            for slot in schema.child_slots:
                output += f"- slot `{slot.id}`: {slot.label}\n"
            output += "\n"
    return output


mcp.resource("reflow://blocks/catalog")(block_catalog)


# ===== CLI SUPPORT =====

def main():
    """Main entry point for the CLI."""
    import argparse

    global WORKSPACE

    parser = argparse.ArgumentParser(description="Reflow MCP Server - block-based automation workflow editing")
    parser.add_argument(
        "--workspace",
        default=None,
        help=f"Directory for workflow files (default: {WORKSPACE})",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="version", version=f"reflow-blocks {__version__}")
    args = parser.parse_args()

    if args.workspace:
        WORKSPACE = Path(args.workspace)
    WORKSPACE.mkdir(parents=True, exist_ok=True)

    level = logging.DEBUG if args.debug or get_config().debug else logging.INFO
    logging.basicConfig(level=level)
    logger.info("Starting Reflow MCP Server (workspace: %s)", WORKSPACE)

    try:
        mcp.run()
    except KeyboardInterrupt:
        logger.info("Reflow MCP Server stopped")
        sys.exit(0)


if __name__ == "__main__":
    main()
