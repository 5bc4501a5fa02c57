"""MCP Server package for block workflow editing.

This package provides a Model Context Protocol (MCP) server that exposes
workflow import, export and structural editing tools to AI agents.

Import/Export:
    - import_script: Parse a script into a new document
    - export_script: Generate source for an open document
    - validate_script: Check syntax and count blocks by kind

File Operations:
    - read_workflow / write_workflow: Scripts and JSON documents in the workspace
    - list_workflows: Discover workflow files

Editing:
    - insert_block, remove_block, move_block, reorder_block,
      duplicate_block, update_block, replace_code, undo, redo

Sessions:
    - close_document: Discard an open document and its history

Example:
    Start the MCP server:

    >>> from reflow_blocks.mcp.server import mcp
    >>> if __name__ == "__main__":
    ...     mcp.run()
"""

from .server import mcp, sessions

__all__ = [
    "mcp",
    "sessions",
]
