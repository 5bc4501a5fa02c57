"""Converter between script ASTs and workflow block documents."""

import logging
from typing import Any

from ..errors import ScriptSyntaxError, StructuralError, UnsupportedBlockKindError, WorkflowError
from ..script.ast_nodes import (
    ArrayExpression,
    AssignmentExpression,
    BinaryExpression,
    BlockStatement,
    BooleanLiteral,
    BreakStatement,
    CallExpression,
    CatchClause,
    Expression,
    ExpressionStatement,
    ForStatement,
    FunctionDeclaration,
    Identifier,
    IfStatement,
    MemberExpression,
    NumberLiteral,
    ObjectExpression,
    Program,
    Property,
    RawStatement,
    ReturnStatement,
    SpreadElement,
    Statement,
    StringLiteral,
    SwitchCase,
    SwitchStatement,
    ThrowStatement,
    TryStatement,
    UnaryExpression,
    VariableDeclaration,
    VariableDeclarator,
    WhileStatement,
    format_number,
    render_params,
)
from ..script.parser import ScriptParser, get_parser
from .catalog import EXPRESSION_FIELDS, binding_field, expression_fields
from .document import create_block_instance, create_document
from .models import BlockInstance, BlockMetadata, SourceLocation, SourcePosition, WorkflowDocument

logger = logging.getLogger(__name__)

# Automation verbs and the block kind each one maps to.
VERB_KINDS = {
    "wait": "wait-call",
    "press": "press-call",
    "scroll": "scroll-call",
    "selectAll": "select-all-call",
    "click": "click-call",
    "type": "type-call",
    "log": "log-call",
    "open": "open-call",
    "openUrl": "open-url-call",
    "vision": "vision-call",
    "screenshot": "screenshot-call",
    "ai": "ai-call",
    "locator": "locator-call",
    "readClipboard": "read-clipboard-call",
    "fileReader": "file-reader-call",
}
KIND_VERBS = {kind: verb for verb, kind in VERB_KINDS.items()}

OPERATION_SYMBOLS = {"add": "+", "subtract": "-", "multiply": "*", "divide": "/", "modulo": "%"}
SYMBOL_OPERATIONS = {symbol: operation for operation, symbol in OPERATION_SYMBOLS.items()}
COMPOUND_OPERATIONS = {symbol + "=": operation for symbol, operation in SYMBOL_OPERATIONS.items()}


def _text(expression: Expression | None) -> str | None:
    """Plain text of a string literal argument."""
    if isinstance(expression, StringLiteral):
        return expression.value
    return None


def _number(expression: Expression | None) -> int | float | None:
    """Value of a numeric literal argument, including a negated one."""
    if isinstance(expression, NumberLiteral):
        return expression.value
    if isinstance(expression, UnaryExpression) and isinstance(expression.argument, NumberLiteral):
        if expression.operator == "-":
            return -expression.argument.value
        if expression.operator == "+":
            return expression.argument.value
    return None


def _options(expression: Expression | None, allowed: set[str]) -> dict[str, Expression] | None:
    """Key/value pairs of an options object literal, or None if it has any other shape."""
    if not isinstance(expression, ObjectExpression):
        return None
    options = {}
    for prop in expression.properties:
        if not isinstance(prop, Property) or prop.shorthand:
            return None
        match prop.key:
            case Identifier(name=name) | StringLiteral(value=name):
                pass
            case _:
                return None
        if name not in allowed:
            return None
        options[name] = prop.value
    return options


def _callee_name(callee: Expression) -> str | None:
    """Dotted name of a plain callee such as ``run`` or ``console.log``."""
    match callee:
        case Identifier(name=name):
            return name
        case MemberExpression(object=target, property=Identifier(name=name), computed=False, optional=False):
            prefix = _callee_name(target)
            return f"{prefix}.{name}" if prefix else None
    return None


def _push_call(expression: Expression) -> tuple[str, Expression] | None:
    """Array name and pushed value of ``array.push(value)``."""
    match expression:
        case CallExpression(
            callee=MemberExpression(
                object=Identifier(name=array), property=Identifier(name="push"), computed=False, optional=False
            ),
            arguments=[value],
            optional=False,
        ) if not isinstance(value, SpreadElement):
            return array, value
    return None


def _metadata(node) -> BlockMetadata | None:
    span = getattr(node, "span", None)
    comments = getattr(node, "comments", None) or []
    if span is None and not comments:
        return None
    location = None
    if span is not None:
        location = SourceLocation(
            start=SourcePosition(line=span.line, column=span.column - 1),
            end=SourcePosition(line=span.end_line, column=span.end_column - 1),
        )
    return BlockMetadata(source_location=location, comments=comments or None)


class ScriptToWorkflowConverter:
    """Convert a parsed script into a workflow document.

    Each statement becomes exactly one block, in source order. Statements
    with a dedicated block kind are matched first, then automation verb calls,
    then any other plain call; everything else is kept as a raw statement
    holding its re-printed source.
    """

    def __init__(self):
        self.blocks: dict[str, BlockInstance] = {}

    def convert(self, program: Program, name: str, source_path: str | None = None) -> WorkflowDocument:
        """Convert program AST to a workflow document."""
        document = create_document(name, source_path)
        root = document.root_block
        self.blocks = {root.id: root}
        root.children["body"] = self._convert_list(program.body)

        logger.debug("Converted %d statements into %d blocks", len(program.body), len(self.blocks) - 1)
        return document.model_copy(update={"blocks": self.blocks})

    def _convert_list(self, statements: list[Statement]) -> list[str]:
        return [self._convert_statement(statement).id for statement in statements]

    def _convert_body(self, statement: Statement | None) -> list[str]:
        """Child ids for a branch or loop body, braced or not."""
        if statement is None:
            return []
        if isinstance(statement, BlockStatement):
            return self._convert_list(statement.body)
        return [self._convert_statement(statement).id]

    def _add(self, kind: str, node, **data: Any) -> BlockInstance:
        """Create and register a block before its children, keeping pre-order."""
        block = create_block_instance(kind, data)
        block.metadata = _metadata(node)
        self.blocks[block.id] = block
        return block

    def _convert_statement(self, statement: Statement) -> BlockInstance:
        match statement:
            case FunctionDeclaration(name=name, params=params, body=body, is_async=is_async, is_generator=False):
                block = self._add(
                    "function-declaration", statement,
                    identifier=name, parameters=render_params(params), isAsync=is_async,
                )
                block.children["body"] = self._convert_list(body.body)

            case VariableDeclaration(
                kind="let", declarations=[VariableDeclarator(target=Identifier(name=name), init=init)]
            ):
                block = self._convert_let(statement, name, init)

            case ExpressionStatement(expression=expression) if (
                (block := self._convert_expression(statement, expression)) is not None
            ):
                pass

            case ReturnStatement(argument=argument):
                block = self._add("return-statement", statement, argument=str(argument) if argument else "")

            case IfStatement(test=test, consequent=consequent, alternate=alternate):
                block = self._add("if-statement", statement, test=str(test))
                block.children["consequent"] = self._convert_body(consequent)
                block.children["alternate"] = self._convert_body(alternate)

            case WhileStatement(test=test, body=body):
                block = self._add("while-statement", statement, test=str(test))
                block.children["body"] = self._convert_body(body)

            case ForStatement(init=init, test=test, update=update, body=body):
                if isinstance(init, VariableDeclaration):
                    initializer = init.render_head()
                else:
                    initializer = str(init) if init is not None else ""
                block = self._add(
                    "for-statement", statement,
                    initializer=initializer,
                    test=str(test) if test is not None else "",
                    update=str(update) if update is not None else "",
                )
                block.children["body"] = self._convert_body(body)

            case BreakStatement(label=None):
                block = self._add("break-statement", statement)

            case ThrowStatement(argument=argument):
                block = self._add("throw-statement", statement, argument=str(argument))

            case SwitchStatement(discriminant=discriminant, cases=cases):
                block = self._add("switch-statement", statement, discriminant=str(discriminant))
                block.children["cases"] = [self._convert_case(case).id for case in cases]

            case TryStatement(block=body, handler=handler, finalizer=finalizer):
                block = self._add("try-statement", statement)
                block.children["try"] = self._convert_list(body.body)
                block.children["catch"] = [self._convert_catch(handler).id] if handler else []
                block.children["finally"] = self._convert_list(finalizer.body) if finalizer else []

            case _:
                block = self._add("raw-statement", statement, code=statement.render(0))

        return block

    def _convert_case(self, case: SwitchCase) -> BlockInstance:
        block = self._add(
            "switch-case", case,
            isDefault=case.test is None, test=str(case.test) if case.test is not None else "",
        )
        block.children["body"] = self._convert_list(case.consequent)
        return block

    def _convert_catch(self, handler: CatchClause) -> BlockInstance:
        block = self._add("catch-clause", handler, param=str(handler.param) if handler.param else "")
        block.children["body"] = self._convert_list(handler.body.body)
        return block

    def _convert_let(self, statement: Statement, name: str, init: Expression | None) -> BlockInstance:
        """``let name = ...`` binding a verb call, a plain call, or any other value."""
        if isinstance(init, CallExpression) and not init.optional:
            block = self._convert_call(statement, init, name)
            if block is not None:
                return block
        return self._add(
            "variable-declaration", statement,
            identifier=name, initializer=str(init) if init is not None else "",
        )

    def _convert_expression(self, statement: Statement, expression: Expression) -> BlockInstance | None:
        match expression:
            case AssignmentExpression(operator="=", target=Identifier(name=name), value=value) if (
                (push := _push_call(value)) and push[0] == name
            ):
                return self._add("array-push", statement, array=name, value=str(push[1]), storeResult=True)

            case AssignmentExpression(
                operator="=",
                target=Identifier(name=name),
                value=BinaryExpression(operator=symbol, left=Identifier(name=left), right=right),
            ) if left == name and symbol in SYMBOL_OPERATIONS:
                return self._add(
                    "variable-update", statement,
                    identifier=name, operation=SYMBOL_OPERATIONS[symbol], value=str(right), operatorStyle="binary",
                )

            case AssignmentExpression(operator="=", target=Identifier(name=name), value=value):
                return self._add("variable-update", statement, identifier=name, operation="assign", value=str(value))

            case AssignmentExpression(operator=operator, target=Identifier(name=name), value=value) if (
                operator in COMPOUND_OPERATIONS
            ):
                return self._add(
                    "variable-update", statement,
                    identifier=name, operation=COMPOUND_OPERATIONS[operator], value=str(value),
                    operatorStyle="compound",
                )

            case CallExpression() if (push := _push_call(expression)):
                return self._add("array-push", statement, array=push[0], value=str(push[1]), storeResult=False)

            case CallExpression(optional=False):
                return self._convert_call(statement, expression, None)

        return None

    def _convert_call(self, statement: Statement, call: CallExpression, binding: str | None) -> BlockInstance | None:
        """Verb call block, else a generic function-call block, else None."""
        match call.callee:
            case Identifier(name=verb) if verb in VERB_KINDS:
                fields = self._verb_fields(verb, call.arguments)
                if fields is not None:
                    kind = VERB_KINDS[verb]
                    if binding is not None:
                        fields[binding_field(kind)] = binding
                    return self._add(kind, statement, **fields)

        function_name = _callee_name(call.callee)
        if function_name is None:
            return None
        return self._add(
            "function-call", statement,
            assignTo=binding or "", functionName=function_name, arguments=render_params(call.arguments),
        )

    def _verb_fields(self, verb: str, args: list[Expression]) -> dict[str, Any] | None:
        """Field values for a verb call, or None when its arguments do not fit the block.

        A text argument that is not a string literal keeps its source in the
        field, and the field is listed under ``expressionFields`` so the
        generator emits it as an expression.
        """
        if any(isinstance(arg, SpreadElement) for arg in args):
            return None
        expressions: list[str] = []

        def text(field_id: str, expression: Expression | None, default: str = "") -> str:
            if expression is None:
                return default
            value = _text(expression)
            if value is None:
                expressions.append(field_id)
                return str(expression)
            return value

        fields = self._verb_values(verb, args, text)
        if fields is not None and expressions:
            fields[EXPRESSION_FIELDS] = ", ".join(expressions)
        return fields

    def _verb_values(self, verb: str, args: list[Expression], text) -> dict[str, Any] | None:
        first, second, third = (args + [None, None, None])[:3]

        match verb:
            case "wait" if len(args) <= 1:
                if first is None:
                    return {"duration": 1}
                number = _number(first)
                return {"duration": number if number is not None else str(first)}

            case "press" if len(args) <= 2:
                modifiers = ""
                if second is not None:
                    if not isinstance(second, ArrayExpression) or not all(
                        isinstance(e, StringLiteral) for e in second.elements
                    ):
                        return None
                    modifiers = ", ".join(e.value for e in second.elements)
                return {"key": text("key", first, "return"), "modifiers": modifiers}

            case "scroll" if len(args) <= 3:
                direction = _text(second) if second is not None else "down"
                if direction is None:
                    return None
                amount = _number(third)
                return {
                    "origin": str(first) if first is not None else "[0, 0]",
                    "direction": direction,
                    "amount": 1 if third is None else amount if amount is not None else str(third),
                }

            case "selectAll" | "readClipboard" if not args:
                return {}

            case "fileReader" if len(args) <= 1:
                return {"paths": str(first) if first is not None else "[]"}

            case "click" if len(args) <= 1:
                return {"target": str(first) if first is not None else "[0, 0]"}

            case "type" if len(args) <= 1:
                return {"text": str(first) if first is not None else '""'}

            case "log" if len(args) <= 1:
                return {"message": str(first) if first is not None else ""}

            case "open" if len(args) <= 3:
                bring_to_front = second.value if isinstance(second, BooleanLiteral) else True
                wait_seconds = _number(third)
                return {
                    "appName": text("appName", first),
                    "bringToFront": bring_to_front,
                    "waitSeconds": wait_seconds if wait_seconds is not None else 5,
                }

            case "openUrl" if len(args) <= 1:
                return {"url": text("url", first)}

            case "vision" if 2 <= len(args) <= 3:
                options = _options(third, {"format", "schema"}) if third is not None else {}
                if options is None:
                    return None
                return self._ai_fields(options, {"target": str(first), "prompt": text("prompt", second)}, "json")

            case "screenshot" if len(args) <= 1:
                return {"target": str(first) if first is not None else ""}

            case "ai" if 1 <= len(args) <= 2:
                options = _options(second, {"format", "schema"}) if second is not None else {}
                if options is None:
                    return None
                return self._ai_fields(options, {"prompt": text("prompt", first)}, "text")

            case "locator" if len(args) == 1:
                options = _options(first, {"instruction", "element", "waitTime"})
                if options is None or "instruction" not in options:
                    return None
                wait_time = options.get("waitTime")
                fields = {
                    "instruction": str(options["instruction"]),
                    "element": text("element", options.get("element")),
                    "waitTime": None,
                }
                if wait_time is not None:
                    number = _number(wait_time)
                    fields["waitTime"] = number if number is not None else str(wait_time)
                return fields

        return None

    @staticmethod
    def _ai_fields(options: dict[str, Expression], fields: dict[str, Any], default_format: str) -> dict[str, Any] | None:
        output_format = _text(options["format"]) if "format" in options else default_format
        if output_format is None:
            return None
        schema = options.get("schema")
        return {**fields, "format": output_format, "schema": str(schema) if schema is not None else ""}


def _source(value: Any) -> str:
    """Field value as expression source text."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return format_number(value)
    return str(value).strip()


class WorkflowToScriptConverter:
    """Convert a workflow document back into script source.

    Expression-valued fields are parsed and re-printed so they are
    parenthesised correctly in their new position. Text fields are emitted as
    string literals unless the block lists them under ``expressionFields``.
    Raw statements are copied out verbatim.
    """

    def __init__(self, parser: ScriptParser | None = None):
        self.parser = parser or get_parser()
        self.document: WorkflowDocument | None = None
        self._emitters = {
            "expression-statement": self._expression_statement,
            "variable-declaration": self._variable_declaration,
            "variable-update": self._variable_update,
            "array-push": self._array_push,
            "return-statement": self._return_statement,
            "if-statement": self._if_statement,
            "function-declaration": self._function_declaration,
            "while-statement": self._while_statement,
            "for-statement": self._for_statement,
            "break-statement": lambda block: BreakStatement(),
            "throw-statement": self._throw_statement,
            "function-call": self._function_call,
            "switch-statement": self._switch_statement,
            "try-statement": self._try_statement,
            "raw-statement": self._raw_statement,
            **{kind: self._verb_call for kind in KIND_VERBS},
        }

    def convert(self, document: WorkflowDocument) -> str:
        """Convert workflow document to script text."""
        self.document = document
        root = document.blocks.get(document.root)
        if root is None:
            raise StructuralError(f"Root block not found: {document.root}")
        if root.kind != "program":
            raise StructuralError(f"Root block must be a program, got {root.kind}")

        program = Program(body=self._statements(root.children.get("body", [])))
        logger.debug("Generated %d top-level statements", len(program.body))
        return program.render()

    # -- structure -----------------------------------------------------------

    def _block(self, block_id: str) -> BlockInstance:
        block = self.document.blocks.get(block_id)
        if block is None:
            raise StructuralError(f"Dangling child reference: {block_id}")
        return block

    def _children(self, block: BlockInstance, slot_id: str) -> list[BlockInstance]:
        return [self._block(child_id) for child_id in block.children.get(slot_id, [])]

    def _statements(self, block_ids: list[str]) -> list[Statement]:
        statements = []
        for block_id in block_ids:
            statement = self._statement(self._block(block_id))
            if statement is not None:
                statements.append(statement)
        return statements

    def _body(self, block: BlockInstance, slot_id: str) -> BlockStatement:
        return BlockStatement(body=self._statements(block.children.get(slot_id, [])))

    def _statement(self, block: BlockInstance) -> Statement | None:
        emitter = self._emitters.get(block.kind)
        if emitter is None:
            if block.kind in ("program", "switch-case", "catch-clause"):
                raise StructuralError(f"Block {block.id} ({block.kind}) cannot appear in a statement list")
            raise UnsupportedBlockKindError(block.kind)
        return emitter(block)

    # -- field access --------------------------------------------------------

    def _expression(self, block: BlockInstance, field_id: str, required: bool = False) -> Expression | None:
        source = _source(block.data.get(field_id))
        if not source:
            if required:
                raise WorkflowError(f"Block {block.id} ({block.kind}) is missing required field '{field_id}'")
            return None
        try:
            return self.parser.parse_expression(source)
        except ScriptSyntaxError as e:
            raise ScriptSyntaxError(f"Block {block.id} ({block.kind}) field '{field_id}': {e}") from e

    def _expression_or_text(self, block: BlockInstance, field_id: str) -> Expression | None:
        """Expression field that holds plain text when it does not parse."""
        source = _source(block.data.get(field_id))
        if not source:
            return None
        try:
            return self.parser.parse_expression(source)
        except ScriptSyntaxError:
            return StringLiteral(value=source)

    def _identifier(self, block: BlockInstance, field_id: str) -> Identifier:
        name = _source(block.data.get(field_id))
        if not name:
            raise WorkflowError(f"Block {block.id} ({block.kind}) is missing required field '{field_id}'")
        return Identifier(name=name)

    def _string(self, block: BlockInstance, field_id: str, default: str = "") -> Expression:
        """Text field as a string literal, or as an expression when the block marks it as one."""
        if field_id in expression_fields(block.data):
            expression = self._expression(block, field_id)
            if expression is not None:
                return expression
        value = block.data.get(field_id)
        return StringLiteral(value=default if value is None else str(value))

    def _number(self, block: BlockInstance, field_id: str, default: int | float) -> Expression:
        value = block.data.get(field_id)
        if value is None or value == "":
            return NumberLiteral(value=default)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return NumberLiteral(value=value)
        return self._expression(block, field_id)

    @staticmethod
    def _bind(block: BlockInstance, field_id: str | None, expression: Expression) -> Statement:
        """``let name = expression;`` when the block stores its result, else a bare statement."""
        name = _source(block.data.get(field_id)) if field_id else ""
        if name:
            declarator = VariableDeclarator(target=Identifier(name=name), init=expression)
            return VariableDeclaration(kind="let", declarations=[declarator])
        return ExpressionStatement(expression=expression)

    # -- statements ----------------------------------------------------------

    def _expression_statement(self, block):
        code = _source(block.data.get("code")).rstrip(";")
        if not code:
            return None
        try:
            return ExpressionStatement(expression=self.parser.parse_expression(code))
        except ScriptSyntaxError as e:
            raise ScriptSyntaxError(f"Block {block.id} ({block.kind}) field 'code': {e}") from e

    def _variable_declaration(self, block):
        declarator = VariableDeclarator(
            target=self._identifier(block, "identifier"),
            init=self._expression(block, "initializer"),
        )
        return VariableDeclaration(kind="let", declarations=[declarator])

    def _variable_update(self, block):
        target = self._identifier(block, "identifier")
        value = self._expression(block, "value", required=True)
        operation = block.data.get("operation") or "assign"
        if operation == "assign":
            return ExpressionStatement(expression=AssignmentExpression(operator="=", target=target, value=value))
        symbol = OPERATION_SYMBOLS.get(operation)
        if symbol is None:
            raise WorkflowError(f"Block {block.id} has unknown operation '{operation}'")
        if block.data.get("operatorStyle") == "binary":
            value = BinaryExpression(operator=symbol, left=target, right=value)
            expression = AssignmentExpression(operator="=", target=target, value=value)
        else:
            expression = AssignmentExpression(operator=symbol + "=", target=target, value=value)
        return ExpressionStatement(expression=expression)

    def _array_push(self, block):
        array = self._identifier(block, "array")
        value = self._expression(block, "value", required=True)
        call = CallExpression(callee=MemberExpression(object=array, property=Identifier(name="push")), arguments=[value])
        if block.data.get("storeResult"):
            return ExpressionStatement(expression=AssignmentExpression(operator="=", target=array, value=call))
        return ExpressionStatement(expression=call)

    def _return_statement(self, block):
        return ReturnStatement(argument=self._expression(block, "argument"))

    def _throw_statement(self, block):
        return ThrowStatement(argument=self._expression(block, "argument", required=True))

    def _if_statement(self, block):
        alternates = self._children(block, "alternate")
        if len(alternates) == 1 and alternates[0].kind == "if-statement":
            alternate = self._if_statement(alternates[0])
        elif alternates:
            alternate = self._body(block, "alternate")
        else:
            alternate = None
        return IfStatement(
            test=self._expression(block, "test", required=True),
            consequent=self._body(block, "consequent"),
            alternate=alternate,
        )

    def _function_declaration(self, block):
        params = _source(block.data.get("parameters"))
        try:
            header = self.parser.parse(f"function _({params}) {{}}").body[0]
        except ScriptSyntaxError as e:
            raise ScriptSyntaxError(f"Block {block.id} ({block.kind}) field 'parameters': {e}") from e
        return FunctionDeclaration(
            name=self._identifier(block, "identifier").name,
            params=header.params,
            body=self._body(block, "body"),
            is_async=bool(block.data.get("isAsync")),
        )

    def _while_statement(self, block):
        return WhileStatement(test=self._expression(block, "test", required=True), body=self._body(block, "body"))

    def _for_statement(self, block):
        clauses = "; ".join(_source(block.data.get(f)) for f in ("initializer", "test", "update"))
        try:
            header = self.parser.parse(f"for ({clauses}) {{}}").body[0]
        except ScriptSyntaxError as e:
            raise ScriptSyntaxError(f"Block {block.id} ({block.kind}) header: {e}") from e
        if not isinstance(header, ForStatement):
            raise WorkflowError(f"Block {block.id} ({block.kind}) does not describe a counted loop")
        return header.model_copy(update={"body": self._body(block, "body"), "span": None})

    def _function_call(self, block):
        callee = self._expression(block, "functionName", required=True)
        arguments = _source(block.data.get("arguments"))
        try:
            call = self.parser.parse_expression(f"_({arguments})")
        except ScriptSyntaxError as e:
            raise ScriptSyntaxError(f"Block {block.id} ({block.kind}) field 'arguments': {e}") from e
        return self._bind(block, "assignTo", CallExpression(callee=callee, arguments=call.arguments))

    def _switch_statement(self, block):
        cases = []
        for case in self._children(block, "cases"):
            if case.kind != "switch-case":
                raise StructuralError(f"Switch {block.id} holds a {case.kind} block in its cases slot")
            test = None if case.data.get("isDefault") else self._expression(case, "test", required=True)
            cases.append(SwitchCase(test=test, consequent=self._statements(case.children.get("body", []))))
        return SwitchStatement(discriminant=self._expression(block, "discriminant", required=True), cases=cases)

    def _try_statement(self, block):
        handlers = self._children(block, "catch")
        if len(handlers) > 1:
            raise StructuralError(f"Try {block.id} has more than one catch clause")
        handler = None
        if handlers:
            clause = handlers[0]
            if clause.kind != "catch-clause":
                raise StructuralError(f"Try {block.id} holds a {clause.kind} block in its catch slot")
            handler = CatchClause(param=self._expression(clause, "param"), body=self._body(clause, "body"))
        finalizer = None
        if block.children.get("finally") or handler is None:
            finalizer = self._body(block, "finally")
        return TryStatement(block=self._body(block, "try"), handler=handler, finalizer=finalizer)

    def _raw_statement(self, block):
        code = str(block.data.get("code") or "").strip("\n")
        return RawStatement(code=code) if code.strip() else None

    # -- automation verbs ----------------------------------------------------

    def _verb_call(self, block):
        verb = KIND_VERBS[block.kind]
        arguments = getattr(self, f"_{block.kind.replace('-', '_')}_arguments", lambda b: [])(block)
        call = CallExpression(callee=Identifier(name=verb), arguments=arguments)
        return self._bind(block, binding_field(block.kind), call)

    def _wait_call_arguments(self, block):
        return [self._number(block, "duration", 1)]

    def _press_call_arguments(self, block):
        arguments = [self._string(block, "key", "return")]
        modifiers = [m.strip() for m in str(block.data.get("modifiers") or "").split(",") if m.strip()]
        if modifiers:
            arguments.append(ArrayExpression(elements=[StringLiteral(value=m) for m in modifiers]))
        return arguments

    def _scroll_call_arguments(self, block):
        return [
            self._expression(block, "origin") or self.parser.parse_expression("[0, 0]"),
            self._string(block, "direction", "down"),
            self._number(block, "amount", 1),
        ]

    def _click_call_arguments(self, block):
        return [self._expression(block, "target") or self.parser.parse_expression("[0, 0]")]

    def _type_call_arguments(self, block):
        return [self._expression_or_text(block, "text") or StringLiteral(value="")]

    def _log_call_arguments(self, block):
        message = self._expression(block, "message")
        return [message] if message is not None else []

    def _open_call_arguments(self, block):
        bring_to_front = block.data.get("bringToFront")
        return [
            self._string(block, "appName"),
            BooleanLiteral(value=True if bring_to_front is None else bool(bring_to_front)),
            self._number(block, "waitSeconds", 5),
        ]

    def _open_url_call_arguments(self, block):
        return [self._string(block, "url")]

    def _file_reader_call_arguments(self, block):
        return [self._expression(block, "paths") or ArrayExpression()]

    def _screenshot_call_arguments(self, block):
        target = self._expression(block, "target")
        return [target] if target is not None else []

    def _format_options(self, block, default_format: str, always: bool) -> ObjectExpression | None:
        value = block.data.get("format")
        output_format = default_format if value is None else str(value)
        schema = self._expression_or_text(block, "schema")
        properties = []
        if always or output_format != default_format:
            properties.append(Property(key=Identifier(name="format"), value=StringLiteral(value=output_format)))
        if schema is not None:
            properties.append(Property(key=Identifier(name="schema"), value=schema))
        return ObjectExpression(properties=properties) if properties else None

    def _vision_call_arguments(self, block):
        arguments = [self._expression(block, "target", required=True), self._string(block, "prompt")]
        arguments.append(self._format_options(block, "json", always=True))
        return arguments

    def _ai_call_arguments(self, block):
        arguments = [self._string(block, "prompt")]
        options = self._format_options(block, "text", always=False)
        if options is not None:
            arguments.append(options)
        return arguments

    def _locator_call_arguments(self, block):
        properties = [
            Property(key=Identifier(name="instruction"), value=self._expression_or_text(block, "instruction")
                     or StringLiteral(value="")),
        ]
        if block.data.get("element"):
            properties.append(Property(key=Identifier(name="element"), value=self._string(block, "element")))
        if block.data.get("waitTime") not in (None, ""):
            properties.append(Property(key=Identifier(name="waitTime"), value=self._number(block, "waitTime", 0)))
        return [ObjectExpression(properties=properties)]
