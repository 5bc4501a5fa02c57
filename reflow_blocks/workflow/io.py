"""Import, export and JSON persistence of workflow documents."""

import logging
from pathlib import Path

from pydantic import ValidationError

from ..config import get_config
from ..errors import ScriptSyntaxError, WorkflowError
from ..script.parser import get_parser
from .converter import ScriptToWorkflowConverter, WorkflowToScriptConverter
from .models import WorkflowDocument

logger = logging.getLogger(__name__)


def import_workflow(code: str, name: str | None = None, source_path: str | None = None) -> WorkflowDocument:
    """Parse script source into a new workflow document.

    Args:
        code: Script source text
        name: Document name; defaults to the configured import name
        source_path: Where the script came from, recorded in the metadata

    Raises:
        ScriptSyntaxError: If the source does not parse. No document is produced.
    """
    program = get_parser().parse(code)
    try:
        document = ScriptToWorkflowConverter().convert(
            program, name or get_config().default_workflow_name, source_path
        )
    except RecursionError as e:
        raise ScriptSyntaxError("Script is nested too deeply") from e
    logger.info("Imported workflow %r with %d blocks", document.metadata.name, len(document.blocks))
    return document


def export_workflow(document: WorkflowDocument) -> str:
    """Generate script source from a workflow document."""
    try:
        return WorkflowToScriptConverter().convert(document)
    except RecursionError as e:
        raise WorkflowError(f"Workflow {document.id} is nested too deeply to generate") from e


def import_file(path: str | Path, name: str | None = None) -> WorkflowDocument:
    """Import a script file, naming the document after the file by default."""
    path = Path(path)
    return import_workflow(path.read_text(encoding="utf-8"), name or path.stem, source_path=str(path))


def load_document(path: str | Path) -> WorkflowDocument:
    """Load a workflow document from a JSON file."""
    try:
        return WorkflowDocument.from_json(Path(path).read_text(encoding="utf-8"))
    except ValidationError as e:
        raise WorkflowError(f"Invalid workflow document {path}: {e}") from e


def save_document(document: WorkflowDocument, path: str | Path) -> None:
    """Save a workflow document as JSON, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(document.to_json() + "\n", encoding="utf-8")
    logger.debug("Saved workflow %s to %s", document.id, path)
