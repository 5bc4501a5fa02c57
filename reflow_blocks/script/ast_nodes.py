"""AST node definitions for automation scripts.

Every node can print itself back to source. Expression printing is
precedence aware: operands are parenthesised only where the grammar requires
it, so ``str(node)`` is the canonical re-printed form of a sub-expression.
"""

import json
from typing import ClassVar, Union

from pydantic import BaseModel, Field

INDENT = "  "

# Binding strength, loosest first.
SEQUENCE = 1
ASSIGNMENT = 2
CONDITIONAL = 3
NULLISH = 4
LOGICAL_OR = 4
LOGICAL_AND = 5
BITWISE_OR = 6
BITWISE_XOR = 7
BITWISE_AND = 8
EQUALITY = 9
RELATIONAL = 10
SHIFT = 11
ADDITIVE = 12
MULTIPLICATIVE = 13
EXPONENT = 14
UNARY = 15
POSTFIX = 16
NEW = 17
CALL = 18
PRIMARY = 20

BINARY_PRECEDENCE = {
    "??": NULLISH,
    "||": LOGICAL_OR,
    "&&": LOGICAL_AND,
    "|": BITWISE_OR,
    "^": BITWISE_XOR,
    "&": BITWISE_AND,
    "==": EQUALITY,
    "!=": EQUALITY,
    "===": EQUALITY,
    "!==": EQUALITY,
    "<": RELATIONAL,
    ">": RELATIONAL,
    "<=": RELATIONAL,
    ">=": RELATIONAL,
    "in": RELATIONAL,
    "instanceof": RELATIONAL,
    "<<": SHIFT,
    ">>": SHIFT,
    ">>>": SHIFT,
    "+": ADDITIVE,
    "-": ADDITIVE,
    "*": MULTIPLICATIVE,
    "/": MULTIPLICATIVE,
    "%": MULTIPLICATIVE,
    "**": EXPONENT,
}


def quote_string(value: str) -> str:
    """Render text as a double-quoted string literal."""
    return json.dumps(value, ensure_ascii=False)


def format_number(value: int | float) -> str:
    """Render a number the way it would be written in a script."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return repr(value) if isinstance(value, float) else str(value)


def pad(indent: int) -> str:
    return INDENT * indent


class Span(BaseModel):
    """Source position of a statement (1-based lines, lark columns)."""
    line: int
    column: int
    end_line: int
    end_column: int
    start_pos: int
    end_pos: int


class Node(BaseModel):
    """Base class for all script nodes."""

    def render(self, indent: int = 0) -> str:
        raise NotImplementedError

    def __str__(self) -> str:
        return self.render()


# ---------------------------------------------------------------------------
# Expressions
# ---------------------------------------------------------------------------


class Expression(Node):
    """Base class for expressions."""
    binding: ClassVar[int] = PRIMARY

    def precedence(self) -> int:
        return self.binding

    def leftmost(self) -> "Expression":
        """The expression whose text starts this expression's text."""
        return self


def wrap(expression: Expression, minimum: int, indent: int = 0) -> str:
    """Render an operand, parenthesised when it binds looser than required."""
    text = expression.render(indent)
    if expression.precedence() < minimum:
        return f"({text})"
    return text


class Statement(Node):
    """Base class for statements."""
    span: Span | None = None
    comments: list[str] = Field(default_factory=list)


class BlockStatement(Statement):
    """Braced statement list."""
    body: list[Statement] = Field(default_factory=list)

    def render_block(self, indent: int = 0) -> str:
        if not self.body:
            return "{}"
        inner = "\n".join(statement.render(indent + 1) for statement in self.body)
        return f"{{\n{inner}\n{pad(indent)}}}"

    def render(self, indent: int = 0) -> str:
        return pad(indent) + self.render_block(indent)


class Identifier(Expression):
    name: str

    def render(self, indent: int = 0) -> str:
        return self.name


class StringLiteral(Expression):
    value: str
    raw: str | None = None

    def render(self, indent: int = 0) -> str:
        return self.raw if self.raw is not None else quote_string(self.value)


class NumberLiteral(Expression):
    value: int | float
    raw: str | None = None

    def render(self, indent: int = 0) -> str:
        return self.raw if self.raw is not None else format_number(self.value)

    def precedence(self) -> int:
        # Negative numbers built in code print as a unary minus.
        return UNARY if self.value < 0 and self.raw is None else PRIMARY


class BooleanLiteral(Expression):
    value: bool

    def render(self, indent: int = 0) -> str:
        return "true" if self.value else "false"


class NullLiteral(Expression):
    def render(self, indent: int = 0) -> str:
        return "null"


class ThisExpression(Expression):
    def render(self, indent: int = 0) -> str:
        return "this"


class SuperExpression(Expression):
    def render(self, indent: int = 0) -> str:
        return "super"


class RegexLiteral(Expression):
    raw: str

    def render(self, indent: int = 0) -> str:
        return self.raw


class TemplateLiteral(Expression):
    """Template string; ``quasis`` holds the raw text around each expression."""
    quasis: list[str]
    expressions: list[Expression] = Field(default_factory=list)

    def render(self, indent: int = 0) -> str:
        parts = [self.quasis[0]]
        for expression, quasi in zip(self.expressions, self.quasis[1:]):
            parts.append("${" + expression.render(indent) + "}")
            parts.append(quasi)
        return "`" + "".join(parts) + "`"


class SpreadElement(Expression):
    """``...argument`` in arrays, calls, objects and parameter lists."""
    argument: Expression
    binding: ClassVar[int] = ASSIGNMENT

    def render(self, indent: int = 0) -> str:
        return "..." + wrap(self.argument, ASSIGNMENT, indent)


class ComputedKey(Expression):
    """``[expression]`` used as an object or class member name."""
    expression: Expression

    def render(self, indent: int = 0) -> str:
        return f"[{wrap(self.expression, ASSIGNMENT, indent)}]"


class ArrayExpression(Expression):
    elements: list[Expression] = Field(default_factory=list)

    def render(self, indent: int = 0) -> str:
        return "[" + ", ".join(wrap(e, ASSIGNMENT, indent) for e in self.elements) + "]"


class Property(Expression):
    key: Expression
    value: Expression
    shorthand: bool = False

    def render(self, indent: int = 0) -> str:
        if self.shorthand:
            return self.key.render(indent)
        return f"{self.key.render(indent)}: {wrap(self.value, ASSIGNMENT, indent)}"


class ObjectMethod(Expression):
    key: Expression
    params: list[Expression] = Field(default_factory=list)
    body: BlockStatement
    is_async: bool = False
    is_generator: bool = False
    accessor: str | None = None

    def render(self, indent: int = 0) -> str:
        prefix = method_prefix(self.is_async, self.is_generator, self.accessor)
        return f"{prefix}{self.key.render(indent)}({render_params(self.params, indent)}) {self.body.render_block(indent)}"


class ObjectExpression(Expression):
    properties: list[Expression] = Field(default_factory=list)

    def render(self, indent: int = 0) -> str:
        if not self.properties:
            return "{}"
        items = [p.render(indent + 1) for p in self.properties]
        inline = "{ " + ", ".join(items) + " }"
        if "\n" not in inline and len(inline) <= 80:
            return inline
        lines = ",\n".join(pad(indent + 1) + item for item in items)
        return f"{{\n{lines}\n{pad(indent)}}}"


def render_params(params: list[Expression], indent: int = 0) -> str:
    return ", ".join(wrap(p, ASSIGNMENT, indent) for p in params)


def function_keyword(is_async: bool, is_generator: bool) -> str:
    keyword = "function*" if is_generator else "function"
    return f"async {keyword}" if is_async else keyword


def method_prefix(is_async: bool, is_generator: bool, accessor: str | None = None) -> str:
    """Text before a method name: ``get ``, ``async ``, ``*`` or ``async *``."""
    if accessor:
        return f"{accessor} "
    return ("async " if is_async else "") + ("*" if is_generator else "")


class FunctionExpression(Expression):
    name: str | None = None
    params: list[Expression] = Field(default_factory=list)
    body: BlockStatement
    is_async: bool = False
    is_generator: bool = False

    def render(self, indent: int = 0) -> str:
        prefix = function_keyword(self.is_async, self.is_generator)
        name = f" {self.name}" if self.name else ""
        return f"{prefix}{name}({render_params(self.params, indent)}) {self.body.render_block(indent)}"


class ArrowFunction(Expression):
    params: list[Expression] = Field(default_factory=list)
    body: Union[BlockStatement, Expression]
    is_async: bool = False
    binding: ClassVar[int] = ASSIGNMENT

    def render(self, indent: int = 0) -> str:
        prefix = "async " if self.is_async else ""
        head = f"{prefix}({render_params(self.params, indent)}) =>"
        if isinstance(self.body, BlockStatement):
            return f"{head} {self.body.render_block(indent)}"
        body = wrap(self.body, ASSIGNMENT, indent)
        if isinstance(self.body.leftmost(), ObjectExpression) and not body.startswith("("):
            body = f"({body})"
        return f"{head} {body}"


class UnaryExpression(Expression):
    operator: str
    argument: Expression
    binding: ClassVar[int] = UNARY

    def render(self, indent: int = 0) -> str:
        argument = wrap(self.argument, UNARY, indent)
        if self.operator.isalpha():
            return f"{self.operator} {argument}"
        if self.operator in "+-" and argument.startswith(self.operator):
            return f"{self.operator} {argument}"
        return self.operator + argument


class AwaitExpression(Expression):
    argument: Expression
    binding: ClassVar[int] = UNARY

    def render(self, indent: int = 0) -> str:
        return "await " + wrap(self.argument, UNARY, indent)


class YieldExpression(Expression):
    argument: Expression | None = None
    delegate: bool = False
    binding: ClassVar[int] = ASSIGNMENT

    def render(self, indent: int = 0) -> str:
        keyword = "yield*" if self.delegate else "yield"
        if self.argument is None:
            return keyword
        return f"{keyword} {wrap(self.argument, ASSIGNMENT, indent)}"


class UpdateExpression(Expression):
    operator: str
    argument: Expression
    prefix: bool

    def precedence(self) -> int:
        return UNARY if self.prefix else POSTFIX

    def render(self, indent: int = 0) -> str:
        argument = wrap(self.argument, NEW, indent)
        return self.operator + argument if self.prefix else argument + self.operator

    def leftmost(self) -> Expression:
        return self if self.prefix else self.argument.leftmost()


class BinaryExpression(Expression):
    operator: str
    left: Expression
    right: Expression

    def precedence(self) -> int:
        return BINARY_PRECEDENCE[self.operator]

    def render(self, indent: int = 0) -> str:
        # Left-nested chains such as ``a + b + c`` are walked in a loop.
        tails = []
        node = self
        while True:
            tails.append(f" {node.operator} {node.render_right(indent)}")
            if not (isinstance(node.left, BinaryExpression) and node.inlines_left(node.left)):
                break
            node = node.left
        return node.render_left(indent) + "".join(reversed(tails))

    def inlines_left(self, left: "BinaryExpression") -> bool:
        """True when the left operand prints without parentheses."""
        return self.operator != "**" and left.precedence() >= self.precedence()

    def render_left(self, indent: int = 0) -> str:
        if self.operator == "**":
            return wrap(self.left, POSTFIX, indent)
        return wrap(self.left, self.precedence(), indent)

    def render_right(self, indent: int = 0) -> str:
        own = self.precedence()
        return wrap(self.right, own if self.operator == "**" else own + 1, indent)

    def leftmost(self) -> Expression:
        node = self
        while isinstance(node, BinaryExpression):
            node = node.left
        return node.leftmost()


class LogicalExpression(BinaryExpression):
    """``&&``, ``||`` and ``??``; nullish never mixes with the others unparenthesised."""

    def inlines_left(self, left: BinaryExpression) -> bool:
        return left.precedence() >= self.precedence() and not self._mixes(left)

    def render_left(self, indent: int = 0) -> str:
        left = wrap(self.left, self.precedence(), indent)
        if self._mixes(self.left) and not left.startswith("("):
            left = f"({left})"
        return left

    def render_right(self, indent: int = 0) -> str:
        right = wrap(self.right, self.precedence() + 1, indent)
        if self._mixes(self.right) and not right.startswith("("):
            right = f"({right})"
        return right

    def _mixes(self, operand: Expression) -> bool:
        if not isinstance(operand, LogicalExpression):
            return False
        return (self.operator == "??") != (operand.operator == "??")


class ConditionalExpression(Expression):
    test: Expression
    consequent: Expression
    alternate: Expression
    binding: ClassVar[int] = CONDITIONAL

    def render(self, indent: int = 0) -> str:
        test = wrap(self.test, CONDITIONAL + 1, indent)
        consequent = wrap(self.consequent, ASSIGNMENT, indent)
        alternate = wrap(self.alternate, ASSIGNMENT, indent)
        return f"{test} ? {consequent} : {alternate}"

    def leftmost(self) -> Expression:
        return self.test.leftmost()


class AssignmentExpression(Expression):
    operator: str
    target: Expression
    value: Expression
    binding: ClassVar[int] = ASSIGNMENT

    def render(self, indent: int = 0) -> str:
        return f"{self.target.render(indent)} {self.operator} {wrap(self.value, ASSIGNMENT, indent)}"

    def leftmost(self) -> Expression:
        return self.target.leftmost()


class SequenceExpression(Expression):
    expressions: list[Expression]
    binding: ClassVar[int] = SEQUENCE

    def render(self, indent: int = 0) -> str:
        return ", ".join(wrap(e, ASSIGNMENT, indent) for e in self.expressions)

    def leftmost(self) -> Expression:
        return self.expressions[0].leftmost()


class MemberExpression(Expression):
    object: Expression
    property: Expression
    computed: bool = False
    optional: bool = False
    binding: ClassVar[int] = CALL

    def render(self, indent: int = 0) -> str:
        target = wrap(self.object, CALL, indent)
        if isinstance(self.object, NumberLiteral) and target.isdigit():
            target = f"({target})"
        if self.computed:
            accessor = "?.[" if self.optional else "["
            return f"{target}{accessor}{self.property.render(indent)}]"
        accessor = "?." if self.optional else "."
        return f"{target}{accessor}{self.property.render(indent)}"

    def leftmost(self) -> Expression:
        return self.object.leftmost()


class CallExpression(Expression):
    callee: Expression
    arguments: list[Expression] = Field(default_factory=list)
    optional: bool = False
    binding: ClassVar[int] = CALL

    def render(self, indent: int = 0) -> str:
        callee = wrap(self.callee, CALL, indent)
        accessor = "?.(" if self.optional else "("
        return f"{callee}{accessor}{render_params(self.arguments, indent)})"

    def leftmost(self) -> Expression:
        return self.callee.leftmost()


class NewExpression(Expression):
    callee: Expression
    arguments: list[Expression] | None = None

    def precedence(self) -> int:
        return NEW if self.arguments is None else CALL

    def render(self, indent: int = 0) -> str:
        callee = wrap(self.callee, CALL, indent)
        if _contains_call(self.callee) and not callee.startswith("("):
            callee = f"({callee})"
        if self.arguments is None:
            return f"new {callee}"
        return f"new {callee}({render_params(self.arguments, indent)})"


def _contains_call(expression: Expression) -> bool:
    while isinstance(expression, MemberExpression):
        expression = expression.object
    return isinstance(expression, CallExpression)


# ---------------------------------------------------------------------------
# Statements
# ---------------------------------------------------------------------------


def render_body(body: Statement, indent: int) -> str:
    """Render a loop or branch body after its header."""
    if isinstance(body, BlockStatement):
        return " " + body.render_block(indent)
    return "\n" + body.render(indent + 1)


class Program(Node):
    body: list[Statement] = Field(default_factory=list)

    def render(self, indent: int = 0) -> str:
        result = "\n".join(statement.render(indent) for statement in self.body)
        if self.body:
            result += "\n"
        return result


class ExpressionStatement(Statement):
    expression: Expression

    def render(self, indent: int = 0) -> str:
        text = self.expression.render(indent)
        leftmost = self.expression.leftmost()
        if isinstance(leftmost, (ObjectExpression, FunctionExpression)):
            text = f"({text})"
        return f"{pad(indent)}{text};"


class VariableDeclarator(Node):
    target: Expression
    init: Expression | None = None

    def render(self, indent: int = 0) -> str:
        if self.init is None:
            return self.target.render(indent)
        return f"{self.target.render(indent)} = {wrap(self.init, ASSIGNMENT, indent)}"


class VariableDeclaration(Statement):
    kind: str
    declarations: list[VariableDeclarator]

    def render_head(self, indent: int = 0) -> str:
        return f"{self.kind} " + ", ".join(d.render(indent) for d in self.declarations)

    def render(self, indent: int = 0) -> str:
        return f"{pad(indent)}{self.render_head(indent)};"


class FunctionDeclaration(Statement):
    name: str
    params: list[Expression] = Field(default_factory=list)
    body: BlockStatement
    is_async: bool = False
    is_generator: bool = False

    def render(self, indent: int = 0) -> str:
        prefix = function_keyword(self.is_async, self.is_generator)
        params = render_params(self.params, indent)
        return f"{pad(indent)}{prefix} {self.name}({params}) {self.body.render_block(indent)}"


class MethodDefinition(Node):
    key: Expression
    params: list[Expression] = Field(default_factory=list)
    body: BlockStatement
    is_static: bool = False
    is_async: bool = False
    is_generator: bool = False
    accessor: str | None = None

    def render(self, indent: int = 0) -> str:
        prefix = ("static " if self.is_static else "") + method_prefix(self.is_async, self.is_generator, self.accessor)
        params = render_params(self.params, indent)
        return f"{pad(indent)}{prefix}{self.key.render(indent)}({params}) {self.body.render_block(indent)}"


class ClassField(Node):
    key: Expression
    value: Expression | None = None
    is_static: bool = False

    def render(self, indent: int = 0) -> str:
        prefix = "static " if self.is_static else ""
        if self.value is None:
            return f"{pad(indent)}{prefix}{self.key.render(indent)};"
        return f"{pad(indent)}{prefix}{self.key.render(indent)} = {wrap(self.value, ASSIGNMENT, indent)};"


class ClassDeclaration(Statement):
    name: str
    superclass: Expression | None = None
    members: list[Union[MethodDefinition, ClassField]] = Field(default_factory=list)

    def render(self, indent: int = 0) -> str:
        heritage = f" extends {wrap(self.superclass, CALL, indent)}" if self.superclass else ""
        head = f"{pad(indent)}class {self.name}{heritage}"
        if not self.members:
            return head + " {}"
        members = "\n".join(member.render(indent + 1) for member in self.members)
        return f"{head} {{\n{members}\n{pad(indent)}}}"


class ReturnStatement(Statement):
    argument: Expression | None = None

    def render(self, indent: int = 0) -> str:
        if self.argument is None:
            return f"{pad(indent)}return;"
        return f"{pad(indent)}return {self.argument.render(indent)};"


class ThrowStatement(Statement):
    argument: Expression

    def render(self, indent: int = 0) -> str:
        return f"{pad(indent)}throw {self.argument.render(indent)};"


class BreakStatement(Statement):
    label: str | None = None

    def render(self, indent: int = 0) -> str:
        return f"{pad(indent)}break {self.label};" if self.label else f"{pad(indent)}break;"


class ContinueStatement(Statement):
    label: str | None = None

    def render(self, indent: int = 0) -> str:
        return f"{pad(indent)}continue {self.label};" if self.label else f"{pad(indent)}continue;"


class IfStatement(Statement):
    test: Expression
    consequent: Statement
    alternate: Statement | None = None

    def render(self, indent: int = 0) -> str:
        text = f"{pad(indent)}if ({self.test.render(indent)})" + render_body(self.consequent, indent)
        if self.alternate is None:
            return text
        text += " else" if isinstance(self.consequent, BlockStatement) else f"\n{pad(indent)}else"
        if isinstance(self.alternate, IfStatement):
            return text + " " + self.alternate.render(indent)[len(pad(indent)):]
        return text + render_body(self.alternate, indent)


class WhileStatement(Statement):
    test: Expression
    body: Statement

    def render(self, indent: int = 0) -> str:
        return f"{pad(indent)}while ({self.test.render(indent)})" + render_body(self.body, indent)


class DoWhileStatement(Statement):
    body: Statement
    test: Expression

    def render(self, indent: int = 0) -> str:
        body = render_body(self.body, indent)
        separator = " " if isinstance(self.body, BlockStatement) else f"\n{pad(indent)}"
        return f"{pad(indent)}do{body}{separator}while ({self.test.render(indent)});"


class ForStatement(Statement):
    init: Union[VariableDeclaration, Expression, None] = None
    test: Expression | None = None
    update: Expression | None = None
    body: Statement

    def render(self, indent: int = 0) -> str:
        if isinstance(self.init, VariableDeclaration):
            init = self.init.render_head(indent)
        else:
            init = self.init.render(indent) if self.init is not None else ""
        test = f" {self.test.render(indent)}" if self.test is not None else ""
        update = f" {self.update.render(indent)}" if self.update is not None else ""
        return f"{pad(indent)}for ({init};{test};{update})" + render_body(self.body, indent)


class ForInStatement(Statement):
    left: VariableDeclaration
    right: Expression
    body: Statement
    of: bool = False
    is_await: bool = False

    def render(self, indent: int = 0) -> str:
        keyword = "of" if self.of else "in"
        head = f"{self.left.render_head(indent)} {keyword} {self.right.render(indent)}"
        loop = "for await" if self.is_await else "for"
        return f"{pad(indent)}{loop} ({head})" + render_body(self.body, indent)


class SwitchCase(Node):
    test: Expression | None = None
    consequent: list[Statement] = Field(default_factory=list)
    span: Span | None = None

    def render(self, indent: int = 0) -> str:
        head = f"{pad(indent)}case {self.test.render(indent)}:" if self.test is not None else f"{pad(indent)}default:"
        if not self.consequent:
            return head
        body = "\n".join(statement.render(indent + 1) for statement in self.consequent)
        return f"{head}\n{body}"


class SwitchStatement(Statement):
    discriminant: Expression
    cases: list[SwitchCase] = Field(default_factory=list)

    def render(self, indent: int = 0) -> str:
        head = f"{pad(indent)}switch ({self.discriminant.render(indent)})"
        if not self.cases:
            return head + " {}"
        cases = "\n".join(case.render(indent + 1) for case in self.cases)
        return f"{head} {{\n{cases}\n{pad(indent)}}}"


class CatchClause(Node):
    param: Expression | None = None
    body: BlockStatement
    span: Span | None = None
    comments: list[str] = Field(default_factory=list)

    def render(self, indent: int = 0) -> str:
        if self.param is None:
            return f"catch {self.body.render_block(indent)}"
        return f"catch ({self.param.render(indent)}) {self.body.render_block(indent)}"


class TryStatement(Statement):
    block: BlockStatement
    handler: CatchClause | None = None
    finalizer: BlockStatement | None = None

    def render(self, indent: int = 0) -> str:
        text = f"{pad(indent)}try {self.block.render_block(indent)}"
        if self.handler is not None:
            text += " " + self.handler.render(indent)
        if self.finalizer is not None:
            text += " finally " + self.finalizer.render_block(indent)
        return text


class LabeledStatement(Statement):
    label: str
    body: Statement

    def render(self, indent: int = 0) -> str:
        return f"{pad(indent)}{self.label}: {self.body.render(indent)[len(pad(indent)):]}"


class DebuggerStatement(Statement):
    def render(self, indent: int = 0) -> str:
        return f"{pad(indent)}debugger;"


class EmptyStatement(Statement):
    def render(self, indent: int = 0) -> str:
        return f"{pad(indent)};"


def literal_continuation_lines(code: str) -> set[int]:
    """Indexes of the lines of ``code`` that begin inside a string or template literal."""
    lines: set[int] = set()
    line = 0
    quote = None
    # "`" while in template text, "{" for braces in code (including "${")
    stack: list[str] = []
    i = 0
    while i < len(code):
        char = code[i]
        in_text = quote is not None or (stack and stack[-1] == "`")
        if char == "\n":
            line += 1
            if in_text:
                lines.add(line)
        elif in_text and char == "\\":
            if code[i + 1:i + 2] == "\n":
                line += 1
                lines.add(line)
            i += 1
        elif quote is not None:
            if char == quote:
                quote = None
        elif stack and stack[-1] == "`":
            if char == "`":
                stack.pop()
            elif code.startswith("${", i):
                stack.append("{")
                i += 1
        elif code.startswith("//", i):
            end = code.find("\n", i)
            i = len(code) if end < 0 else end
            continue
        elif code.startswith("/*", i):
            end = code.find("*/", i + 2)
            skipped = code[i:] if end < 0 else code[i:end + 2]
            line += skipped.count("\n")
            i += len(skipped)
            continue
        elif char in "'\"":
            quote = char
        elif char == "`":
            stack.append("`")
        elif char == "{":
            stack.append("{")
        elif char == "}" and stack:
            stack.pop()
        i += 1
    return lines


class RawStatement(Statement):
    """Pre-rendered statement text emitted verbatim at the current indent.

    Lines that continue a multi-line string, template literal or comment
    are not indented.
    """
    code: str

    def render(self, indent: int = 0) -> str:
        prefix = pad(indent)
        verbatim = literal_continuation_lines(self.code)
        return "\n".join(
            line if not line or number in verbatim else prefix + line
            for number, line in enumerate(self.code.split("\n"))
        )
