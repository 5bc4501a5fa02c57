"""Script language package.

Parses automation scripts into AST nodes that can print themselves back to
source.

Classes:
    ScriptParser: Parse script text into a Program AST
    Program: Root AST node holding the top-level statements
    Statement: Base class of statement nodes
    Expression: Base class of expression nodes

Functions:
    get_parser: The calling thread's shared ScriptParser
"""

from .parser import ScriptParser, get_parser
from .ast_nodes import Expression, Program, Statement

__all__ = [
    "ScriptParser",
    "get_parser",
    "Program",
    "Statement",
    "Expression",
]
