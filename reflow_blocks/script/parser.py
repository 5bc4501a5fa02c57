"""Parser and AST transformer for automation scripts."""

import logging
import re
import threading
from pathlib import Path

from lark import Lark, Token, v_args
from lark.exceptions import UnexpectedCharacters, UnexpectedInput, UnexpectedToken, VisitError
from lark.lark import PostLex
from lark.visitors import Transformer_NonRecursive

from ..errors import ScriptSyntaxError, WorkflowError
from .ast_nodes import (
    ArrayExpression,
    ArrowFunction,
    AssignmentExpression,
    AwaitExpression,
    BinaryExpression,
    BlockStatement,
    BooleanLiteral,
    BreakStatement,
    CallExpression,
    CatchClause,
    ClassDeclaration,
    ClassField,
    ComputedKey,
    ConditionalExpression,
    ContinueStatement,
    DebuggerStatement,
    DoWhileStatement,
    EmptyStatement,
    Expression,
    ExpressionStatement,
    ForInStatement,
    ForStatement,
    FunctionDeclaration,
    FunctionExpression,
    Identifier,
    IfStatement,
    LabeledStatement,
    LogicalExpression,
    MemberExpression,
    MethodDefinition,
    NewExpression,
    NullLiteral,
    NumberLiteral,
    ObjectExpression,
    ObjectMethod,
    Program,
    Property,
    RegexLiteral,
    ReturnStatement,
    SequenceExpression,
    Span,
    SpreadElement,
    Statement,
    StringLiteral,
    SuperExpression,
    SwitchCase,
    SwitchStatement,
    TemplateLiteral,
    ThisExpression,
    ThrowStatement,
    TryStatement,
    UnaryExpression,
    UpdateExpression,
    VariableDeclaration,
    VariableDeclarator,
    WhileStatement,
    YieldExpression,
)

logger = logging.getLogger(__name__)

KEYWORDS = (
    "ASYNC", "AWAIT", "BREAK", "CASE", "CATCH", "CLASS", "CONST", "CONTINUE",
    "DEBUGGER", "DEFAULT", "DELETE", "DO", "ELSE", "EXTENDS", "FALSE",
    "FINALLY", "FOR", "FUNCTION", "IF", "IN", "INSTANCEOF", "LET", "NEW",
    "NULL", "RETURN", "SUPER", "SWITCH", "THIS", "THROW", "TRUE", "TRY",
    "TYPEOF", "VAR", "VOID", "WHILE",
)

# Tokens after which a new statement begins.
STATEMENT_BOUNDARIES = {
    "SEMICOLON", "_BLOCK_LBRACE", "RBRACE", "RPAR",
    "ELSE", "DO", "TRY", "FINALLY", "CATCH",
}

# A line break after these ends the statement.
RESTRICTED = {"RETURN", "BREAK", "CONTINUE"}

# A line break before "++" or "--" ends the statement when one of these comes first.
UPDATE_OPERATORS = {"INCREMENT", "DECREMENT"}
EXPRESSION_END = {
    "IDENT", "GET", "SET", "NUMBER", "STRING", "TEMPLATE", "REGEX", "RSQB",
    "INCREMENT", "DECREMENT", "THIS", "SUPER", "TRUE", "FALSE", "NULL",
}

OPENERS = {"LPAR": "paren", "LSQB": "paren", "LBRACE": "object", "_BLOCK_LBRACE": "block"}
CLOSERS = {"RPAR", "RSQB", "RBRACE"}

ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "b": "\b", "f": "\f", "v": "\v", "0": "\0"}
ESCAPE_PATTERN = re.compile(r"\\(u\{[0-9a-fA-F]+\}|u[0-9a-fA-F]{4}|x[0-9a-fA-F]{2}|\r\n|[\s\S])")


class _Frame:
    """An open bracket and the ``?`` / ``case`` markers still waiting for a colon."""

    def __init__(self, kind: str):
        self.kind = kind
        self.pending_ternaries = 0
        self.pending_case = False


class ScriptPostLex(PostLex):
    """Token stream pass that tells blocks from object literals.

    A ``{`` at the start of a statement (or after ``=>``) opens a block and is
    retyped to ``_BLOCK_LBRACE``; ``function`` at the start of a statement is a
    declaration. A line break after ``return``/``break``/``continue`` ends the
    statement, and so does a line break before a prefix ``++``/``--``.
    """

    always_accept = KEYWORDS + ("LBRACE",)

    def __init__(self):
        self.reset()

    def reset(self, statement_context: bool = True):
        self.previous: Token | None = None
        self.penultimate: Token | None = None
        self.frames = [_Frame("block" if statement_context else "paren")]
        self.statement_context = statement_context
        self.colon_starts_statement = False
        self.async_starts_statement = False

    def at_statement_start(self) -> bool:
        previous = self.previous
        if previous is None:
            return self.statement_context
        if previous.type in STATEMENT_BOUNDARIES:
            return True
        return previous.type == "COLON" and self.colon_starts_statement

    def process(self, stream):
        for token in stream:
            previous = self.previous
            if (
                previous is not None
                and previous.type in RESTRICTED
                and (self.penultimate is None or self.penultimate.type not in ("DOT", "OPTIONAL_CHAIN"))
                and token.type != "SEMICOLON"
                and token.line > previous.end_line
            ):
                yield self._advance(Token.new_borrow_pos("SEMICOLON", ";", previous))
            elif (
                previous is not None
                and token.type in UPDATE_OPERATORS
                and previous.type in EXPRESSION_END
                and token.line > previous.end_line
            ):
                yield self._advance(Token.new_borrow_pos("SEMICOLON", ";", previous))
            yield self._advance(self._classify(token))

    def _classify(self, token: Token) -> Token:
        if token.type == "LBRACE":
            if self.at_statement_start() or (self.previous is not None and self.previous.type == "ARROW"):
                return Token.new_borrow_pos("_BLOCK_LBRACE", token.value, token)
        elif token.type == "FUNCTION":
            previous = self.previous
            if self.at_statement_start() or (
                previous is not None and previous.type == "ASYNC" and self.async_starts_statement
            ):
                return Token.new_borrow_pos("_FUNCTION_DECL", token.value, token)
        elif token.type == "ASYNC":
            self.async_starts_statement = self.at_statement_start()
        return token

    def _advance(self, token: Token) -> Token:
        frame = self.frames[-1]
        if token.type in OPENERS:
            self.frames.append(_Frame(OPENERS[token.type]))
        elif token.type in CLOSERS:
            if len(self.frames) > 1:
                self.frames.pop()
        elif token.type == "QMARK":
            frame.pending_ternaries += 1
        elif token.type in ("CASE", "DEFAULT") and frame.kind == "block":
            frame.pending_case = True
        elif token.type == "COLON":
            if frame.pending_ternaries:
                frame.pending_ternaries -= 1
                self.colon_starts_statement = False
            elif frame.pending_case:
                frame.pending_case = False
                self.colon_starts_statement = True
            else:
                self.colon_starts_statement = frame.kind == "block"
        self.penultimate, self.previous = self.previous, token
        return token

    def promote_to_statement(self, token: Token) -> Token:
        """Retype a token that follows an inserted semicolon."""
        if token.type == "LBRACE":
            self.frames[-1].kind = "block"
            return Token.new_borrow_pos("_BLOCK_LBRACE", token.value, token)
        if token.type == "FUNCTION":
            return Token.new_borrow_pos("_FUNCTION_DECL", token.value, token)
        return token


def decode_string(raw: str) -> str:
    """Decode a quoted string literal into its text."""

    def replace(match: re.Match) -> str:
        escape = match.group(1)
        if escape in ("\n", "\r\n", "\r", "\u2028", "\u2029"):
            return ""
        if escape.startswith("u{"):
            return chr(int(escape[2:-1], 16))
        if escape.startswith("u") and len(escape) == 5:
            return chr(int(escape[1:], 16))
        if escape.startswith("x") and len(escape) == 3:
            return chr(int(escape[1:], 16))
        return ESCAPES.get(escape, escape)

    return ESCAPE_PATTERN.sub(replace, raw[1:-1])


def parse_number(raw: str) -> int | float:
    """Numeric value of a number literal."""
    if raw[:2].lower() in ("0x", "0b", "0o"):
        return int(raw, 0)
    if raw.isdigit():
        return int(raw)
    return float(raw)


def split_template(raw: str) -> tuple[list[str], list[str]]:
    """Split a template literal into raw text chunks and expression sources."""
    body = raw[1:-1]
    quasis: list[str] = []
    expressions: list[str] = []
    current = []
    i = 0
    while i < len(body):
        char = body[i]
        if char == "\\":
            current.append(body[i:i + 2])
            i += 2
            continue
        if char == "$" and body[i + 1:i + 2] == "{":
            depth = 1
            j = i + 2
            while j < len(body) and depth:
                if body[j] == "{":
                    depth += 1
                elif body[j] == "}":
                    depth -= 1
                j += 1
            quasis.append("".join(current))
            expressions.append(body[i + 2:j - 1])
            current = []
            i = j
            continue
        current.append(char)
        i += 1
    quasis.append("".join(current))
    return quasis, expressions


def comment_text(token: Token) -> str:
    value = str(token)
    if value.startswith("//"):
        return value[2:].strip()
    return value[2:-2].strip()


def span_from(meta) -> Span | None:
    if getattr(meta, "empty", True):
        return None
    return Span(
        line=meta.line,
        column=meta.column,
        end_line=meta.end_line,
        end_column=meta.end_column,
        start_pos=meta.start_pos,
        end_pos=meta.end_pos,
    )


class ScriptTransformer(Transformer_NonRecursive):
    """Transform Lark parse tree into AST nodes."""

    def __init__(self, comments: list[Token], parse_expression):
        super().__init__()
        self.comments = [(c.start_pos, c.end_pos, comment_text(c)) for c in comments]
        self.parse_expression = parse_expression

    def _attach_comments(self, statements: list[Statement], cursor: int):
        """Give each statement the comments between it and the previous one."""
        for statement in statements:
            if statement.span is None:
                continue
            statement.comments = [
                text for start, end, text in self.comments
                if cursor <= start and end <= statement.span.start_pos
            ]
            cursor = statement.span.end_pos

    def _statement(self, node: Statement, meta) -> Statement:
        node.span = span_from(meta)
        return node

    # -- statements ----------------------------------------------------------

    @v_args(meta=True)
    def program(self, meta, items):
        """Transform program: statement*"""
        self._attach_comments(items, 0)
        return Program(body=items)

    @v_args(meta=True)
    def block(self, meta, items):
        """Transform block: { statement* }"""
        span = span_from(meta)
        if span is not None:
            self._attach_comments(items, span.start_pos + 1)
        return BlockStatement(body=items, span=span)

    @v_args(meta=True)
    def variable_statement(self, meta, items):
        return self._statement(items[0], meta)

    def variable_declaration(self, items):
        kind, *declarators = items
        return VariableDeclaration(kind=kind, declarations=declarators)

    def declaration_kind(self, items):
        return str(items[0])

    def variable_declarator(self, items):
        return VariableDeclarator(target=items[0], init=items[1])

    @v_args(meta=True)
    def function_declaration(self, meta, items):
        is_async, star, name, params, body = items
        node = FunctionDeclaration(
            name=name.name, params=params, body=body,
            is_async=is_async is not None, is_generator=star is not None,
        )
        return self._statement(node, meta)

    def generator_star(self, items):
        return True

    def accessor_kind(self, items):
        return str(items[0])

    def parameters(self, items):
        return list(items)

    @v_args(meta=True)
    def class_declaration(self, meta, items):
        name, superclass, *members = items
        return self._statement(ClassDeclaration(name=name.name, superclass=superclass, members=members), meta)

    def method_definition(self, items):
        is_static, is_async, star, key, params, body = items
        return MethodDefinition(
            key=key, params=params, body=body,
            is_static=is_static is not None, is_async=is_async is not None, is_generator=star is not None,
        )

    def accessor_definition(self, items):
        is_static, accessor, key, params, body = items
        return MethodDefinition(key=key, params=params, body=body, is_static=is_static is not None, accessor=accessor)

    def class_field(self, items):
        is_static, key, value = items
        return ClassField(key=key, value=value, is_static=is_static is not None)

    @v_args(meta=True)
    def if_statement(self, meta, items):
        test, consequent, alternate = items
        return self._statement(IfStatement(test=test, consequent=consequent, alternate=alternate), meta)

    @v_args(meta=True)
    def while_statement(self, meta, items):
        test, body = items
        return self._statement(WhileStatement(test=test, body=body), meta)

    @v_args(meta=True)
    def do_while_statement(self, meta, items):
        body, test = items
        return self._statement(DoWhileStatement(body=body, test=test), meta)

    @v_args(meta=True)
    def for_statement(self, meta, items):
        init, test, update, body = items
        return self._statement(ForStatement(init=init, test=test, update=update, body=body), meta)

    @v_args(meta=True)
    def for_in_statement(self, meta, items):
        left, right, body = items
        return self._statement(ForInStatement(left=left, right=right, body=body), meta)

    @v_args(meta=True)
    def for_of_statement(self, meta, items):
        is_await, left, right, body = items
        node = ForInStatement(left=left, right=right, body=body, of=True, is_await=is_await is not None)
        return self._statement(node, meta)

    def for_binding(self, items):
        kind, target = items
        return VariableDeclaration(kind=kind, declarations=[VariableDeclarator(target=target)])

    @v_args(meta=True)
    def break_statement(self, meta, items):
        label = items[0].name if items[0] is not None else None
        return self._statement(BreakStatement(label=label), meta)

    @v_args(meta=True)
    def continue_statement(self, meta, items):
        label = items[0].name if items[0] is not None else None
        return self._statement(ContinueStatement(label=label), meta)

    @v_args(meta=True)
    def return_statement(self, meta, items):
        return self._statement(ReturnStatement(argument=items[0]), meta)

    @v_args(meta=True)
    def throw_statement(self, meta, items):
        return self._statement(ThrowStatement(argument=items[0]), meta)

    @v_args(meta=True)
    def switch_statement(self, meta, items):
        discriminant, *cases = items
        return self._statement(SwitchStatement(discriminant=discriminant, cases=cases), meta)

    @v_args(meta=True)
    def switch_case(self, meta, items):
        test, *consequent = items
        span = span_from(meta)
        if span is not None:
            self._attach_comments(consequent, span.start_pos)
        return SwitchCase(test=test, consequent=consequent, span=span)

    @v_args(meta=True)
    def default_case(self, meta, items):
        span = span_from(meta)
        if span is not None:
            self._attach_comments(items, span.start_pos)
        return SwitchCase(test=None, consequent=items, span=span)

    @v_args(meta=True)
    def try_statement(self, meta, items):
        block, handler, finalizer = items
        if handler is not None and block.span is not None:
            self._attach_comments([handler], block.span.end_pos)
        return self._statement(TryStatement(block=block, handler=handler, finalizer=finalizer), meta)

    @v_args(meta=True)
    def catch_clause(self, meta, items):
        param, body = items
        return CatchClause(param=param, body=body, span=span_from(meta))

    def finally_clause(self, items):
        return items[0]

    @v_args(meta=True)
    def labeled_statement(self, meta, items):
        label, body = items
        return self._statement(LabeledStatement(label=label.name, body=body), meta)

    @v_args(meta=True)
    def debugger_statement(self, meta, items):
        return self._statement(DebuggerStatement(), meta)

    @v_args(meta=True)
    def empty_statement(self, meta, items):
        return self._statement(EmptyStatement(), meta)

    @v_args(meta=True)
    def expression_statement(self, meta, items):
        return self._statement(ExpressionStatement(expression=items[0]), meta)

    # -- expressions ---------------------------------------------------------

    def sequence_expression(self, items):
        left, right = items
        if isinstance(left, SequenceExpression):
            return SequenceExpression(expressions=[*left.expressions, right])
        return SequenceExpression(expressions=[left, right])

    def assignment_expression(self, items):
        target, operator, value = items
        return AssignmentExpression(operator=operator, target=target, value=value)

    def _operator(self, items):
        return str(items[0])

    assign_op = logical_or_op = logical_and_op = _operator
    bitwise_or_op = bitwise_xor_op = bitwise_and_op = _operator
    equality_op = relational_op = shift_op = _operator
    additive_op = multiplicative_op = exponent_op = _operator
    unary_op = update_op = _operator

    def arrow_function(self, items):
        is_async, params, body = items
        return ArrowFunction(params=params, body=body, is_async=is_async is not None)

    def arrow_parameters(self, items):
        params = []
        for item in items:
            if isinstance(item, SequenceExpression):
                params.extend(item.expressions)
            else:
                params.append(item)
        return params

    def rest_parameter(self, items):
        return SpreadElement(argument=items[0])

    def spread_element(self, items):
        return SpreadElement(argument=items[0])

    def conditional_expression(self, items):
        test, consequent, alternate = items
        return ConditionalExpression(test=test, consequent=consequent, alternate=alternate)

    def logical_expression(self, items):
        left, operator, right = items
        return LogicalExpression(operator=operator, left=left, right=right)

    def binary_expression(self, items):
        left, operator, right = items
        return BinaryExpression(operator=operator, left=left, right=right)

    def unary_expression(self, items):
        operator, argument = items
        return UnaryExpression(operator=operator, argument=argument)

    def update_prefix(self, items):
        operator, argument = items
        return UpdateExpression(operator=operator, argument=argument, prefix=True)

    def update_postfix(self, items):
        argument, operator = items
        return UpdateExpression(operator=operator, argument=argument, prefix=False)

    def await_expression(self, items):
        return AwaitExpression(argument=items[0])

    def yield_expression(self, items):
        return YieldExpression(argument=items[0])

    def yield_delegate(self, items):
        return YieldExpression(argument=items[0], delegate=True)

    def new_bare(self, items):
        return NewExpression(callee=items[0])

    def new_call(self, items):
        callee, arguments = items
        return NewExpression(callee=callee, arguments=arguments)

    def member(self, items):
        target, name = items
        return MemberExpression(object=target, property=name)

    def computed_member(self, items):
        target, prop = items
        return MemberExpression(object=target, property=prop, computed=True)

    def optional_member(self, items):
        target, name = items
        return MemberExpression(object=target, property=name, optional=True)

    def optional_computed_member(self, items):
        target, prop = items
        return MemberExpression(object=target, property=prop, computed=True, optional=True)

    def call(self, items):
        callee, arguments = items
        return CallExpression(callee=callee, arguments=arguments)

    def optional_call(self, items):
        callee, arguments = items
        return CallExpression(callee=callee, arguments=arguments, optional=True)

    def arguments(self, items):
        return list(items)

    def parenthesized(self, items):
        return items[0]

    def function_expression(self, items):
        is_async, star, name, params, body = items
        return FunctionExpression(
            name=name.name if name is not None else None,
            params=params, body=body, is_async=is_async is not None, is_generator=star is not None,
        )

    def array(self, items):
        return ArrayExpression(elements=list(items))

    def object(self, items):
        return ObjectExpression(properties=list(items))

    def pair(self, items):
        key, value = items
        return Property(key=key, value=value)

    def shorthand_property(self, items):
        return Property(key=items[0], value=items[0], shorthand=True)

    def object_method(self, items):
        is_async, star, key, params, body = items
        return ObjectMethod(
            key=key, params=params, body=body, is_async=is_async is not None, is_generator=star is not None,
        )

    def object_accessor(self, items):
        accessor, key, params, body = items
        return ObjectMethod(key=key, params=params, body=body, accessor=accessor)

    def string_key(self, items):
        return self.string_literal(items)

    def number_key(self, items):
        return self.number_literal(items)

    def computed_key(self, items):
        return ComputedKey(expression=items[0])

    def identifier(self, items):
        """Transform identifier: IDENT"""
        return Identifier(name=str(items[0]))

    def identifier_name(self, items):
        """Member and property names, keywords included."""
        return Identifier(name=str(items[0]))

    def reserved_word(self, items):
        return str(items[0])

    def string_literal(self, items):
        raw = str(items[0])
        return StringLiteral(value=decode_string(raw), raw=raw)

    def number_literal(self, items):
        raw = str(items[0])
        return NumberLiteral(value=parse_number(raw), raw=raw)

    def template_literal(self, items):
        quasis, sources = split_template(str(items[0]))
        return TemplateLiteral(quasis=quasis, expressions=[self.parse_expression(s) for s in sources])

    def regex_literal(self, items):
        return RegexLiteral(raw=str(items[0]))

    def true_literal(self, items):
        return BooleanLiteral(value=True)

    def false_literal(self, items):
        return BooleanLiteral(value=False)

    def null_literal(self, items):
        return NullLiteral()

    def this_expression(self, items):
        return ThisExpression()

    def super_expression(self, items):
        return SuperExpression()


class ScriptParser:
    """Parse automation scripts into AST nodes.

    Lark runs in LALR mode with a contextual lexer. Missing semicolons are
    inserted from the parser's error handler: before a token that starts a new
    line, before ``}``, and at the end of input.
    """

    def __init__(self):
        """Initialize parser with grammar."""
        grammar_path = Path(__file__).parent / "grammar.lark"
        self.postlex = ScriptPostLex()
        self._comments: list[Token] = []
        self._last_insertion: tuple[str, int] | None = None
        self.parser = Lark(
            grammar_path.read_text(),
            parser="lalr",
            start=["program", "expression"],
            postlex=self.postlex,
            propagate_positions=True,
            maybe_placeholders=True,
            lexer_callbacks={"COMMENT": self._comments.append},
        )

    def parse(self, text: str) -> Program:
        """Parse script text into a Program node."""
        program = self._parse(text, "program")
        logger.debug("Parsed %d top-level statements", len(program.body))
        return program

    def parse_file(self, path: Path) -> Program:
        """Parse script from file."""
        return self.parse(Path(path).read_text(encoding="utf-8"))

    def parse_expression(self, text: str) -> Expression:
        """Parse a single expression."""
        return self._parse(text, "expression")

    def _parse(self, text: str, start: str):
        self._comments.clear()
        self._last_insertion = None
        self.postlex.reset(statement_context=start == "program")
        try:
            tree = self.parser.parse(text, start=start, on_error=self._insert_semicolon)
        except UnexpectedInput as e:
            raise ScriptSyntaxError(self._describe(e), e.line, e.column) from e

        comments = sorted({c.start_pos: c for c in self._comments}.values(), key=lambda c: c.start_pos)
        try:
            return ScriptTransformer(comments, self.parse_expression).transform(tree)
        except VisitError as e:
            if isinstance(e.orig_exc, WorkflowError):
                raise e.orig_exc from e
            if isinstance(e.orig_exc, RecursionError):
                raise ScriptSyntaxError("Script is nested too deeply") from e
            raise
        except RecursionError as e:
            raise ScriptSyntaxError("Script is nested too deeply") from e

    def _insert_semicolon(self, error: UnexpectedInput) -> bool:
        """Automatic semicolon insertion. Returns True when parsing can resume."""
        if not isinstance(error, UnexpectedToken):
            return False
        token = error.token
        if "SEMICOLON" not in error.expected:
            return False

        at_end = token.type == "$END"
        before = self.postlex.previous if at_end else self.postlex.penultimate
        if before is None:
            return False
        on_new_line = token.line is not None and before.end_line is not None and token.line > before.end_line
        if not (at_end or token.type == "RBRACE" or on_new_line):
            return False

        marker = (token.type, token.start_pos)
        if marker == self._last_insertion:
            return False
        self._last_insertion = marker

        parser = error.interactive_parser
        parser.feed_token(Token.new_borrow_pos("SEMICOLON", ";", before))
        if not at_end:
            parser.feed_token(self.postlex.promote_to_statement(token))
        return True

    @staticmethod
    def _describe(error: UnexpectedInput) -> str:
        if isinstance(error, UnexpectedCharacters):
            return f"Unexpected character {error.char!r}"
        if isinstance(error, UnexpectedToken):
            if error.token.type == "$END":
                return "Unexpected end of input"
            return f"Unexpected token {str(error.token)!r}"
        return "Invalid syntax"


_local = threading.local()


def get_parser() -> ScriptParser:
    """Return the calling thread's shared parser.

    Building the LALR tables is the expensive part of parsing, so each thread
    keeps one parser around.
    """
    parser = getattr(_local, "parser", None)
    if parser is None:
        parser = _local.parser = ScriptParser()
    return parser
