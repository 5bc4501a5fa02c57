"""Unit tests for the script parser and AST printer."""

import pytest

from reflow_blocks.errors import ScriptSyntaxError
from reflow_blocks.script import ScriptParser, get_parser
from reflow_blocks.script.ast_nodes import (
    ArrowFunction,
    BinaryExpression,
    BlockStatement,
    CallExpression,
    ExpressionStatement,
    ForStatement,
    FunctionDeclaration,
    IfStatement,
    LabeledStatement,
    ObjectExpression,
    Program,
    ReturnStatement,
    StringLiteral,
    SwitchStatement,
    TemplateLiteral,
    TryStatement,
    VariableDeclaration,
)


class TestScriptParser:
    """Test script parsing."""

    def test_parse_sample_script(self, script_parser: ScriptParser, sample_script: str):
        """Test parsing the sample script into top-level statements."""
        program = script_parser.parse(sample_script)

        assert isinstance(program, Program)
        assert len(program.body) == 9
        assert isinstance(program.body[7], ForStatement)
        assert isinstance(program.body[8], IfStatement)

    def test_parse_empty_program(self, script_parser: ScriptParser):
        program = script_parser.parse("")
        assert program.body == []
        assert program.render() == ""

    def test_parse_declarations(self, script_parser: ScriptParser):
        program = script_parser.parse('let a = 1;\nconst b = "two";\nvar c;')

        kinds = [statement.kind for statement in program.body]
        assert kinds == ["let", "const", "var"]
        assert program.body[2].declarations[0].init is None

    def test_parse_async_function(self, script_parser: ScriptParser):
        program = script_parser.parse("async function search(query, limit = 5) {\n  return query;\n}")

        function = program.body[0]
        assert isinstance(function, FunctionDeclaration)
        assert function.name == "search"
        assert function.is_async is True
        assert len(function.params) == 2
        assert isinstance(function.body.body[0], ReturnStatement)

    def test_parse_object_literal_argument(self, script_parser: ScriptParser):
        """Test that braces inside an argument list form an object, not a block."""
        program = script_parser.parse('ai("Summarise", { format: "json" });')

        call = program.body[0].expression
        assert isinstance(call, CallExpression)
        assert isinstance(call.arguments[1], ObjectExpression)

    def test_parse_switch(self, script_parser: ScriptParser):
        code = 'switch (mode) {\n  case "fast":\n    wait(1);\n    break;\n  default:\n    wait(5);\n}'
        statement = script_parser.parse(code).body[0]

        assert isinstance(statement, SwitchStatement)
        assert len(statement.cases) == 2
        assert len(statement.cases[0].consequent) == 2
        assert statement.cases[1].test is None

    def test_parse_try_catch_finally(self, script_parser: ScriptParser):
        code = "try {\n  click([10, 20]);\n} catch (err) {\n  log(err);\n} finally {\n  wait(1);\n}"
        statement = script_parser.parse(code).body[0]

        assert isinstance(statement, TryStatement)
        assert statement.handler.param.name == "err"
        assert isinstance(statement.finalizer, BlockStatement)

    def test_parse_labeled_statement(self, script_parser: ScriptParser):
        statement = script_parser.parse("outer: while (true) {\n  break outer;\n}").body[0]

        assert isinstance(statement, LabeledStatement)
        assert statement.label == "outer"

    def test_parse_file(self, script_parser: ScriptParser, tmp_path, sample_script: str):
        path = tmp_path / "sample.js"
        path.write_text(sample_script)

        program = script_parser.parse_file(path)
        assert len(program.body) == 9

    def test_get_parser_is_shared(self):
        assert get_parser() is get_parser()


class TestSemicolonInsertion:
    """Test automatic semicolon insertion."""

    def test_newline_ends_statement(self, script_parser: ScriptParser):
        program = script_parser.parse("let a = 1\nlet b = 2\nlog(a + b)")

        assert len(program.body) == 3
        assert isinstance(program.body[0], VariableDeclaration)
        assert isinstance(program.body[2], ExpressionStatement)

    def test_missing_semicolon_before_closing_brace(self, script_parser: ScriptParser):
        program = script_parser.parse("if (ready) { wait(1) }")

        assert len(program.body[0].consequent.body) == 1

    def test_return_followed_by_newline(self, script_parser: ScriptParser):
        program = script_parser.parse("function f() {\n  return\n  1;\n}")

        body = program.body[0].body.body
        assert len(body) == 2
        assert isinstance(body[0], ReturnStatement)
        assert body[0].argument is None

    def test_expression_continues_across_lines(self, script_parser: ScriptParser):
        program = script_parser.parse("let total = 1 +\n  2;")

        assert len(program.body) == 1
        assert isinstance(program.body[0].declarations[0].init, BinaryExpression)

    def test_increment_on_next_line_starts_statement(self, script_parser: ScriptParser):
        program = script_parser.parse("x\n++y")

        assert len(program.body) == 2
        assert program.render() == "x;\n++y;\n"

    def test_increment_after_condition_is_the_body(self, script_parser: ScriptParser):
        program = script_parser.parse("if (x)\n++y")

        assert len(program.body) == 1
        assert isinstance(program.body[0], IfStatement)
        assert str(program.body[0].consequent.expression) == "++y"


class TestComments:
    """Test comment collection."""

    def test_leading_comments_attach_to_next_statement(self, script_parser: ScriptParser):
        program = script_parser.parse("// first\n/* second */\nwait(1);\nwait(2);")

        assert program.body[0].comments == ["first", "second"]
        assert program.body[1].comments == []

    def test_comments_inside_block(self, script_parser: ScriptParser):
        program = script_parser.parse("while (busy) {\n  // poll\n  wait(1);\n}")

        inner = program.body[0].body.body[0]
        assert inner.comments == ["poll"]


class TestSyntaxErrors:
    """Test syntax error reporting."""

    def test_syntax_error_has_position(self, script_parser: ScriptParser):
        with pytest.raises(ScriptSyntaxError) as exc_info:
            script_parser.parse("let = 5;")

        assert exc_info.value.line == 1
        assert exc_info.value.column is not None
        assert "line 1" in str(exc_info.value)

    def test_unterminated_block(self, script_parser: ScriptParser):
        with pytest.raises(ScriptSyntaxError):
            script_parser.parse("if (a) {\n  wait(1);\n")

    def test_unexpected_character(self, script_parser: ScriptParser):
        with pytest.raises(ScriptSyntaxError, match="Unexpected character"):
            script_parser.parse("wait(1) # comment")

    def test_long_operator_chain(self, script_parser: ScriptParser):
        source = " + ".join(["a"] * 600)

        assert str(script_parser.parse_expression(source)) == source

    def test_deeply_nested_parentheses(self, script_parser: ScriptParser):
        program = script_parser.parse("let x = " + "(" * 400 + "1" + ")" * 400 + ";")

        assert program.render() == "let x = 1;\n"


class TestPrinter:
    """Test re-printing of parsed expressions and statements."""

    @pytest.mark.parametrize("source", [
        "a + b * c",
        "(a + b) * c",
        "a - (b - c)",
        "a ** b ** c",
        "(a ** b) ** c",
        "a ?? (b || c)",
        "!(a && b)",
        "a ? b : c ? d : e",
        "x = y = 3",
        "obj.items[0].name",
        "a?.b?.(c)",
        "new Date()",
        "new (getClass())()",
        "typeof value === \"string\"",
        "`hello ${name}!`",
        "[1, ...rest]",
        "{ a: 1, b }",
        "await fetch(url)",
        "i++",
        "-x",
        "{ get size() {}, set size(value) {} }",
        "{ get: 1, set: 2 }",
        "{ *ids() {}, async *pages() {} }",
        "function*() {}",
        "yield",
        "yield* inner()",
    ])
    def test_expression_prints_canonically(self, script_parser: ScriptParser, source: str):
        assert str(script_parser.parse_expression(source)) == source

    def test_arrow_function_parameters_are_parenthesised(self, script_parser: ScriptParser):
        expression = script_parser.parse_expression("x => x * 2")

        assert isinstance(expression, ArrowFunction)
        assert str(expression) == "(x) => x * 2"

    def test_arrow_returning_object_keeps_parens(self, script_parser: ScriptParser):
        assert str(script_parser.parse_expression("() => ({ ok: true })")) == "() => ({ ok: true })"

    def test_object_statement_is_parenthesised(self, script_parser: ScriptParser):
        assert script_parser.parse("({ a: 1 });").render() == "({ a: 1 });\n"

    def test_string_literal_keeps_raw_quotes(self, script_parser: ScriptParser):
        literal = script_parser.parse_expression("'it\\'s'")

        assert isinstance(literal, StringLiteral)
        assert literal.value == "it's"
        assert str(literal) == "'it\\'s'"

    def test_template_literal_expressions_are_parsed(self, script_parser: ScriptParser):
        literal = script_parser.parse_expression("`${a + b} items`")

        assert isinstance(literal, TemplateLiteral)
        assert isinstance(literal.expressions[0], BinaryExpression)
        assert literal.quasis == ["", " items"]

    def test_statements_print_with_indentation(self, script_parser: ScriptParser):
        code = (
            "if (a) {\n"
            "  wait(1);\n"
            "} else if (b) {\n"
            "  wait(2);\n"
            "} else {\n"
            "  wait(3);\n"
            "}\n"
            "do {\n"
            "  i++;\n"
            "} while (i < 3);\n"
            "for (const item of items) {\n"
            "  log(item);\n"
            "}\n"
            "for await (const page of pages) {\n"
            "  log(page);\n"
            "}\n"
            "function* ids(start) {\n"
            "  let next = yield start;\n"
            "  yield* more(next);\n"
            "}\n"
            "class Robot extends Base {\n"
            "  static count = 0;\n"
            "  get size() {\n"
            "    return this.count;\n"
            "  }\n"
            "  static set size(value) {}\n"
            "  async run(task) {\n"
            "    return task;\n"
            "  }\n"
            "}\n"
        )
        assert script_parser.parse(code).render() == code
