"""Block schema catalog.

Maps each block kind to its fields, ports and child slots. The editor uses
the catalog to render and validate blocks; ``create_block_instance`` uses it
for field defaults and empty child slots.
"""

from typing import Literal

from pydantic import Field

from ..errors import UnsupportedBlockKindError
from .models import FieldValue, WorkflowModel

InputKind = Literal["string", "number", "boolean", "enum", "expression", "identifier", "code", "json-schema"]


class EnumOption(WorkflowModel):
    label: str
    value: str


class FieldInput(WorkflowModel):
    """How a field is edited."""
    kind: InputKind
    multiline: bool | None = None
    placeholder: str | None = None
    options: list[EnumOption] | None = None
    scope: Literal["any", "variable", "function"] | None = None
    allow_creation: bool | None = None
    language: Literal["reflow", "json", "text"] | None = None


class BlockFieldDefinition(WorkflowModel):
    id: str
    label: str
    description: str | None = None
    required: bool = False
    default_value: FieldValue = None
    input: FieldInput


class BlockPortDefinition(WorkflowModel):
    id: str
    label: str
    direction: Literal["input", "output"]
    port_kind: Literal["flow", "value"] = "flow"
    multiplicity: Literal["single", "many"] = "single"


class BlockChildSlotDefinition(WorkflowModel):
    id: str
    label: str
    allowed_kinds: list[str] | None = None


class BlockSchema(WorkflowModel):
    """Declarative description of one block kind."""
    kind: str
    label: str
    category: str
    description: str | None = None
    fields: list[BlockFieldDefinition] = Field(default_factory=list)
    ports: list[BlockPortDefinition] = Field(default_factory=list)
    child_slots: list[BlockChildSlotDefinition] = Field(default_factory=list)

    def field_defaults(self) -> dict[str, FieldValue]:
        return {f.id: f.default_value for f in self.fields if f.default_value is not None}

    def slot_ids(self) -> list[str]:
        return [slot.id for slot in self.child_slots]

    def get_field(self, field_id: str) -> BlockFieldDefinition | None:
        return next((f for f in self.fields if f.id == field_id), None)


class BlockRegistry:
    """Registry of block schemas keyed by kind."""

    def __init__(self, schemas: list[BlockSchema] | None = None):
        self._schemas: dict[str, BlockSchema] = {}
        for schema in schemas or []:
            self._schemas[schema.kind] = schema

    def register(self, schema: BlockSchema):
        if schema.kind in self._schemas:
            raise ValueError(f'Block schema already registered for kind "{schema.kind}"')
        self._schemas[schema.kind] = schema

    def get(self, kind: str) -> BlockSchema | None:
        return self._schemas.get(kind)

    def require(self, kind: str) -> BlockSchema:
        """Get a schema, raising UnsupportedBlockKindError for unknown kinds."""
        schema = self._schemas.get(kind)
        if schema is None:
            raise UnsupportedBlockKindError(kind)
        return schema

    def kinds(self) -> list[str]:
        return list(self._schemas)

    def by_category(self, category: str) -> list[BlockSchema]:
        return [schema for schema in self._schemas.values() if schema.category == category]

    def __contains__(self, kind: str) -> bool:
        return kind in self._schemas

    def list(self) -> list[BlockSchema]:
        return [*self._schemas.values()]


FLOW_IN = BlockPortDefinition(id="flow-in", label="In", direction="input")
FLOW_OUT = BlockPortDefinition(id="flow-out", label="Out", direction="output")

FORMAT_OPTIONS = [EnumOption(label="Text", value="text"), EnumOption(label="JSON", value="json")]


def _field(field_id: str, label: str, kind: InputKind, required: bool = False,
           default: FieldValue = None, description: str | None = None, **config) -> BlockFieldDefinition:
    return BlockFieldDefinition(
        id=field_id, label=label, required=required, default_value=default,
        description=description, input=FieldInput(kind=kind, **config),
    )


def _store_as(field_id: str = "identifier") -> BlockFieldDefinition:
    return _field(field_id, "Store As", "identifier", scope="variable", allow_creation=True)


def _slot(slot_id: str, label: str, allowed: list[str] | None = None) -> BlockChildSlotDefinition:
    return BlockChildSlotDefinition(id=slot_id, label=label, allowed_kinds=allowed)


def _schema(kind: str, label: str, category: str, fields=(), slots=(), description: str | None = None) -> BlockSchema:
    return BlockSchema(
        kind=kind, label=label, category=category, description=description,
        fields=list(fields), ports=[FLOW_IN, FLOW_OUT], child_slots=list(slots),
    )


KNOWN_BLOCK_SCHEMAS = [
    BlockSchema(kind="program", label="Program", category="program", ports=[FLOW_OUT], child_slots=[_slot("body", "Body")]),
    _schema("expression-statement", "Expression", "expressions", [
        _field("code", "Expression", "code", language="reflow"),
    ]),
    _schema("variable-declaration", "Variable", "variables", [
        _field("identifier", "Name", "identifier", required=True, scope="variable", allow_creation=True),
        _field("initializer", "Initializer", "expression"),
    ]),
    _schema("variable-update", "Update Variable", "variables", [
        _field("identifier", "Variable", "identifier", required=True, scope="variable"),
        _field("operation", "Operation", "enum", default="assign", options=[
            EnumOption(label=name.title(), value=name)
            for name in ("assign", "add", "subtract", "multiply", "divide", "modulo")
        ]),
        _field("value", "Value", "expression"),
        _field("operatorStyle", "Operator Style", "enum", default="compound", options=[
            EnumOption(label="x += v", value="compound"), EnumOption(label="x = x + v", value="binary"),
        ]),
    ]),
    _schema("array-push", "Append To Array", "variables", [
        _field("array", "Array", "identifier", required=True, scope="variable"),
        _field("value", "Value", "expression"),
        _field("storeResult", "Store New Length", "boolean", default=False),
    ]),
    _schema("return-statement", "Return", "control", [_field("argument", "Value", "expression")]),
    _schema("if-statement", "If", "control", [
        _field("test", "Condition", "code", required=True, language="reflow"),
    ], [_slot("consequent", "Then"), _slot("alternate", "Else")]),
    _schema("function-declaration", "Function", "functions", [
        _field("identifier", "Name", "identifier", required=True, scope="function", allow_creation=True),
        _field("parameters", "Parameters", "code", description="Comma-separated parameter names",
               language="reflow", placeholder="arg1, arg2"),
        _field("isAsync", "Async", "boolean", default=False),
    ], [_slot("body", "Body")]),
    _schema("while-statement", "While", "control", [
        _field("test", "Condition", "code", required=True, language="reflow"),
    ], [_slot("body", "Body")]),
    _schema("for-statement", "For", "control", [
        _field("initializer", "Initializer", "code", language="reflow", placeholder="let i = 0"),
        _field("test", "Condition", "code", language="reflow", placeholder="i < 10"),
        _field("update", "Update", "code", language="reflow", placeholder="i++"),
    ], [_slot("body", "Body")]),
    _schema("break-statement", "Break", "control"),
    _schema("throw-statement", "Throw", "control", [
        _field("argument", "Expression", "code", required=True, language="reflow"),
    ]),
    _schema("function-call", "Call Function", "functions", [
        _store_as("assignTo"),
        _field("functionName", "Function", "identifier", required=True, scope="function"),
        _field("arguments", "Arguments", "code", language="reflow", placeholder="arg1, arg2"),
    ]),
    _schema("wait-call", "Wait", "automation", [
        _store_as(),
        _field("duration", "Seconds", "number", required=True, default=1),
    ]),
    _schema("press-call", "Press Key", "automation", [
        _store_as(),
        _field("key", "Key", "string", required=True, default="return"),
        _field("modifiers", "Modifiers", "string", description="Comma-separated modifier keys",
               placeholder="cmd, shift"),
    ]),
    _schema("scroll-call", "Scroll", "automation", [
        _store_as(),
        _field("origin", "Origin", "expression", default="[0, 0]"),
        _field("direction", "Direction", "enum", default="down", options=[
            EnumOption(label=name.title(), value=name) for name in ("up", "down", "left", "right")
        ]),
        _field("amount", "Amount", "number", default=1),
    ]),
    _schema("select-all-call", "Select All", "automation", [_store_as()]),
    _schema("click-call", "Click", "automation", [
        _store_as(),
        _field("target", "Target", "expression", required=True, default="[0, 0]"),
    ]),
    _schema("type-call", "Type Text", "automation", [
        _store_as(),
        _field("text", "Text", "expression", required=True, default='""'),
    ]),
    _schema("log-call", "Log Message", "utility", [
        _store_as(),
        _field("message", "Message", "expression", required=True),
    ]),
    _schema("open-call", "Open App", "automation", [
        _store_as(),
        _field("appName", "Application", "string", required=True),
        _field("bringToFront", "Bring To Front", "boolean", default=True),
        _field("waitSeconds", "Wait Seconds", "number", default=5),
    ]),
    _schema("open-url-call", "Open URL", "automation", [
        _store_as(),
        _field("url", "URL", "string", required=True, placeholder="https://"),
    ]),
    _schema("vision-call", "Vision Analysis", "ai", [
        _store_as(),
        _field("target", "Image Source", "expression", required=True),
        _field("prompt", "Prompt", "string", required=True, multiline=True),
        _field("format", "Output Format", "enum", default="json", options=FORMAT_OPTIONS),
        _field("schema", "JSON Schema", "json-schema"),
    ]),
    _schema("screenshot-call", "Screenshot", "automation", [
        _store_as("assignTo"),
        _field("target", "Target", "expression"),
    ]),
    _schema("ai-call", "AI Response", "ai", [
        _store_as(),
        _field("prompt", "Prompt", "string", required=True, multiline=True),
        _field("format", "Output Format", "enum", default="text", options=FORMAT_OPTIONS),
        _field("schema", "JSON Schema", "json-schema"),
    ]),
    _schema("locator-call", "Locate Element", "automation", [
        _store_as(),
        _field("instruction", "Instruction", "expression", required=True),
        _field("element", "Accessibility Query", "string"),
        _field("waitTime", "Wait Time (s)", "number"),
    ]),
    _schema("read-clipboard-call", "Read Clipboard", "io", [_store_as("assignTo")]),
    _schema("file-reader-call", "Read Files", "io", [
        _store_as("assignTo"),
        _field("paths", "Paths", "expression", default="[]"),
    ]),
    _schema("switch-statement", "Switch", "control", [
        _field("discriminant", "Expression", "code", required=True, language="reflow"),
    ], [_slot("cases", "Cases", ["switch-case"])]),
    _schema("switch-case", "Case", "control", [
        _field("isDefault", "Default Case", "boolean", default=False),
        _field("test", "Match Expression", "code", language="reflow"),
    ], [_slot("body", "Body")]),
    _schema("try-statement", "Try", "control", slots=[
        _slot("try", "Try"), _slot("catch", "Catch", ["catch-clause"]), _slot("finally", "Finally"),
    ]),
    _schema("catch-clause", "Catch", "control", [
        _field("param", "Identifier", "identifier", scope="variable", allow_creation=True),
    ], [_slot("body", "Body")]),
    _schema("raw-statement", "Raw Statement", "raw", [
        _field("code", "Code", "code", required=True, multiline=True, language="reflow"),
    ], description="Source the block editor does not model; emitted verbatim."),
]

block_registry = BlockRegistry(KNOWN_BLOCK_SCHEMAS)


def binding_field(kind: str) -> str | None:
    """Field that names the variable a call block's result is stored in."""
    schema = block_registry.get(kind)
    if schema is None or not kind.endswith("-call"):
        return None
    for definition in schema.fields:
        if definition.id in ("identifier", "assignTo"):
            return definition.id
    return None


# Data key listing the text fields of a block that hold expression source
# rather than plain text, as a comma-separated list of field ids.
EXPRESSION_FIELDS = "expressionFields"


def expression_fields(data: dict[str, FieldValue]) -> set[str]:
    """Ids of the text fields marked as holding expression source."""
    return {field_id.strip() for field_id in str(data.get(EXPRESSION_FIELDS) or "").split(",") if field_id.strip()}
