"""Editing session: the owner of the current document.

The mutation API is pure; a session is the single place that decides which
document is current, keeps the generated code in sync with it, and records
undo/redo history. Edits are applied one at a time. An edit that fails leaves
the previous document in place and records the error message.
"""

import logging
from collections import deque
from contextlib import contextmanager
from typing import Any, Callable, Iterator

from ..config import ReflowConfig, get_config
from ..errors import WorkflowError
from . import document as ops
from .io import export_workflow, import_workflow
from .models import WorkflowDocument

logger = logging.getLogger(__name__)

DocumentListener = Callable[[WorkflowDocument], None]
CodeListener = Callable[[str], None]


class EditingSession:
    """Current document, its code, selection and bounded undo/redo history."""

    def __init__(self, document: WorkflowDocument | None = None, config: ReflowConfig | None = None):
        self.config = config or get_config()
        self.document = document or ops.create_document(self.config.untitled_workflow_name)
        self.code = ""
        self.last_error: str | None = None
        self.selected_block_id: str | None = None
        self._undo: deque[WorkflowDocument] = deque(maxlen=self.config.history_limit)
        self._redo: deque[WorkflowDocument] = deque(maxlen=self.config.history_limit)
        self._document_listeners: list[DocumentListener] = []
        self._code_listeners: list[CodeListener] = []
        self._suppress_depth = 0
        self._regenerate()

    # -- listeners -----------------------------------------------------------

    def on_document_change(self, listener: DocumentListener) -> Callable[[], None]:
        """Register a listener; returns a function that unregisters it."""
        self._document_listeners.append(listener)
        return lambda: self._document_listeners.remove(listener)

    def on_code_change(self, listener: CodeListener) -> Callable[[], None]:
        self._code_listeners.append(listener)
        return lambda: self._code_listeners.remove(listener)

    @contextmanager
    def suppressed(self) -> Iterator["EditingSession"]:
        """Apply changes without notifying listeners for the duration of the block."""
        self._suppress_depth += 1
        try:
            yield self
        finally:
            self._suppress_depth -= 1

    def _notify(self, silent: bool = False):
        if silent or self._suppress_depth:
            return
        for listener in list(self._document_listeners):
            listener(self.document)
        for listener in list(self._code_listeners):
            listener(self.code)

    # -- history -------------------------------------------------------------

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    def undo(self) -> bool:
        if not self._undo:
            return False
        self._redo.append(self.document)
        self._set(self._undo.pop())
        return True

    def redo(self) -> bool:
        if not self._redo:
            return False
        self._undo.append(self.document)
        self._set(self._redo.pop())
        return True

    # -- state ---------------------------------------------------------------

    def _regenerate(self):
        """Regenerate code; on failure keep the last good text and record the error."""
        try:
            self.code = export_workflow(self.document)
            self.last_error = None
        except WorkflowError as e:
            self.last_error = str(e)
            logger.warning("Code generation failed: %s", e)

    def _set(self, document: WorkflowDocument, code: str | None = None, silent: bool = False):
        self.document = document
        if code is None:
            self._regenerate()
        else:
            self.code = code
            self.last_error = None
        if self.selected_block_id is not None and self.selected_block_id not in document.blocks:
            self.selected_block_id = None
        self._notify(silent)

    def _apply(self, operation: Callable[[WorkflowDocument], WorkflowDocument], code: str | None = None) -> bool:
        """Run a pure edit against the current document and make the result current."""
        try:
            document = operation(self.document)
        except WorkflowError as e:
            self.last_error = str(e)
            logger.warning("Edit rejected: %s", e)
            return False
        self._undo.append(self.document)
        self._redo.clear()
        self._set(document, code)
        return True

    def load_document(self, document: WorkflowDocument, code: str | None = None, silent: bool = True) -> bool:
        """Replace the current document, resetting history and selection.

        The document is validated and deep-copied so the session never shares
        blocks with its caller. Listeners are not notified unless ``silent``
        is false.
        """
        try:
            ops.validate_document(document)
        except WorkflowError as e:
            self.last_error = str(e)
            return False
        self._undo.clear()
        self._redo.clear()
        self.selected_block_id = None
        self._set(ops.clone_document(document), code, silent=silent)
        return True

    def load_from_code(self, code: str, name: str | None = None) -> bool:
        """Replace the document with one imported from source text, as an undoable edit."""
        name = name or self.document.metadata.name

        def reimport(document: WorkflowDocument) -> WorkflowDocument:
            imported = import_workflow(code, name, document.metadata.source_path)
            return imported.model_copy(update={"id": document.id})

        return self._apply(reimport, code=code)

    def rename(self, name: str) -> bool:
        return self._apply(lambda document: ops.rename_document(document, name))

    def select(self, block_id: str | None) -> bool:
        if block_id is not None and block_id not in self.document.blocks:
            self.last_error = f"Block not found: {block_id}"
            return False
        self.selected_block_id = block_id
        return True

    def update_block_fields(self, block_id: str, updates: dict[str, Any]) -> bool:
        return self._apply(lambda document: ops.update_block_data(document, block_id, updates))

    def add_block(
        self,
        kind: str,
        parent_id: str | None = None,
        slot_id: str = "body",
        index: int | None = None,
        data: dict[str, Any] | None = None,
    ) -> str | None:
        """Create a block and insert it; returns the new id, or None on failure."""
        try:
            block = ops.create_block_instance(kind, data)
        except WorkflowError as e:
            self.last_error = str(e)
            return None
        parent_id = parent_id or self.document.root
        if not self._apply(lambda document: ops.insert_block(document, parent_id, slot_id, block, index)):
            return None
        self.selected_block_id = block.id
        return block.id

    def delete_block(self, block_id: str) -> bool:
        return self._apply(lambda document: ops.remove_block(document, block_id))

    def move_block(self, block_id: str, parent_id: str, slot_id: str, index: int | None = None) -> bool:
        return self._apply(lambda document: ops.move_block(document, block_id, parent_id, slot_id, index))

    def reorder_block(self, parent_id: str, slot_id: str, from_index: int, to_index: int) -> bool:
        return self._apply(lambda document: ops.reorder_child(document, parent_id, slot_id, from_index, to_index))

    def duplicate_block(self, block_id: str) -> str | None:
        """Duplicate a block; returns the clone's id, or None on failure."""
        if not self._apply(lambda document: ops.duplicate_block(document, block_id)):
            return None
        location = ops.find_block_location(self.document, block_id)
        clone_id = self.document.blocks[location.parent_id].children[location.slot_id][location.index + 1]
        self.selected_block_id = clone_id
        return clone_id
