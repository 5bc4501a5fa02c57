"""FastAPI HTTP API for workflow import and export."""

import logging
from collections import Counter

from fastapi import FastAPI, HTTPException
from pydantic import Field

from . import __version__
from .errors import WorkflowError
from .workflow import block_registry, export_workflow, import_workflow, validate_document
from .workflow.catalog import BlockSchema
from .workflow.models import WorkflowDocument, WorkflowModel

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Reflow Blocks API",
    description="Convert between automation scripts and block workflow documents",
    version=__version__,
)


# Request/Response models
class ImportRequest(WorkflowModel):
    """Request to import script source as a workflow document."""
    code: str = Field(..., description="Script source text")
    name: str | None = Field(None, description="Document name")
    source_path: str | None = Field(None, description="Where the script came from")


class ImportResponse(WorkflowModel):
    document: WorkflowDocument


class ExportRequest(WorkflowModel):
    """Request to generate script source from a workflow document."""
    document: WorkflowDocument


class ExportResponse(WorkflowModel):
    code: str = Field(..., description="Generated script source")


class ValidateRequest(WorkflowModel):
    code: str = Field(..., description="Script source text")


class ValidateResponse(WorkflowModel):
    is_valid: bool
    errors: list[str] = Field(default_factory=list)
    block_count: int = 0
    kinds: dict[str, int] = Field(default_factory=dict)


# Endpoints
@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "Reflow Blocks API",
        "version": __version__,
        "endpoints": {
            "import": "POST /import - Convert script source to a workflow document",
            "export": "POST /export - Convert a workflow document to script source",
            "validate": "POST /validate - Check that script source parses",
            "blocks": "GET /blocks - List block schemas",
        },
    }


@app.post("/import", response_model=ImportResponse)
async def import_script(request: ImportRequest):
    """Convert script source to a workflow document."""
    try:
        document = import_workflow(request.code, request.name, request.source_path)
    except WorkflowError as e:
        raise HTTPException(status_code=400, detail=f"Failed to import script: {e}")
    return ImportResponse(document=document)


@app.post("/export", response_model=ExportResponse)
async def export_script(request: ExportRequest):
    """Convert a workflow document to script source."""
    try:
        validate_document(request.document)
        code = export_workflow(request.document)
    except WorkflowError as e:
        raise HTTPException(status_code=400, detail=f"Failed to export workflow: {e}")
    return ExportResponse(code=code)


@app.post("/validate", response_model=ValidateResponse)
async def validate_script(request: ValidateRequest):
    """Check script syntax and summarise the blocks it would produce."""
    try:
        document = import_workflow(request.code)
    except WorkflowError as e:
        return ValidateResponse(is_valid=False, errors=[str(e)])

    kinds = Counter(block.kind for block in document.blocks.values() if block.id != document.root)
    return ValidateResponse(is_valid=True, block_count=sum(kinds.values()), kinds=dict(kinds))


@app.get("/blocks", response_model=list[BlockSchema])
async def list_blocks(category: str | None = None):
    """List block schemas, optionally for one category."""
    if category:
        return block_registry.by_category(category)
    return block_registry.list()


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}
