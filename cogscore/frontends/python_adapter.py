"""Python front end.

Maps Python source onto the canonical construct model via ``ast``.
Module functions and class methods become FunctionUnits (``Class.method``
identifiers); everything defined inside a function stays in that
function's tree as a NestedFunction or Lambda node.
"""

import ast
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from cogscore.models.construct import (
    ConstructKind,
    ConstructNode,
    FunctionUnit,
    LogicalExpression,
    LogicalOperator,
    SourceLocation,
)
from cogscore.scoring.logical_runs import detect_runs
from cogscore.utils.logging import get_logger

logger = get_logger("frontends.python")

LANGUAGE = "python"

_FUNCTION_NODES = (ast.FunctionDef, ast.AsyncFunctionDef)
_LOOP_NODES = {
    ast.For: ConstructKind.FOR,
    ast.AsyncFor: ConstructKind.FOR,
    ast.While: ConstructKind.WHILE,
}
_OPERATORS = {ast.And: LogicalOperator.AND, ast.Or: LogicalOperator.OR}


class _SourceText:
    """Byte-offset lookups into the source, matching ast column offsets."""

    def __init__(self, source: str) -> None:
        self.lines = [line.encode("utf-8") for line in source.split("\n")]

    def _char_before(self, lineno: int, col: int) -> bytes:
        while lineno >= 1:
            text = self.lines[lineno - 1][:col].rstrip()
            if text:
                return text[-1:]
            lineno -= 1
            col = len(self.lines[lineno - 1]) if lineno >= 1 else 0
        return b""

    def _char_after(self, lineno: int, col: int) -> bytes:
        while lineno <= len(self.lines):
            text = self.lines[lineno - 1][col:].lstrip()
            if text:
                return text[:1]
            lineno += 1
            col = 0
        return b""

    def is_parenthesized(self, node: ast.expr) -> bool:
        if node.end_lineno is None or node.end_col_offset is None:
            return False
        return (
            self._char_before(node.lineno, node.col_offset) == b"("
            and self._char_after(node.end_lineno, node.end_col_offset) == b")"
        )

    def starts_with(self, node: ast.AST, keyword: str) -> bool:
        line = self.lines[node.lineno - 1]
        return line[node.col_offset:].startswith(keyword.encode("utf-8"))


class _Scope:
    """Names visible to one function body, for recursive-call resolution."""

    def __init__(self, identifier: str, functions: Dict[str, str], owner_class: Optional[str]):
        self.identifier = identifier
        self.functions = functions
        self.owner_class = owner_class


def _local_defs(body: Sequence[ast.stmt]) -> List[ast.AST]:
    """Function definitions in a body, not descending into other functions."""
    found: List[ast.AST] = []
    pending = list(body)
    while pending:
        node = pending.pop(0)
        if isinstance(node, _FUNCTION_NODES):
            found.append(node)
            continue
        if isinstance(node, (ast.Lambda, ast.ClassDef)):
            continue
        pending.extend(ast.iter_child_nodes(node))
    return found


def _returned_names(body: Sequence[ast.stmt]) -> List[str]:
    return [
        stmt.value.id
        for stmt in body
        if isinstance(stmt, ast.Return) and isinstance(stmt.value, ast.Name)
    ]


def _declarations_only(body: Sequence[ast.stmt]) -> bool:
    """True when a body holds nothing but nested defs and classes (and a docstring)."""
    statements = list(body)
    if (
        statements
        and isinstance(statements[0], ast.Expr)
        and isinstance(statements[0].value, ast.Constant)
        and isinstance(statements[0].value.value, str)
    ):
        statements = statements[1:]
    return bool(statements) and all(
        isinstance(stmt, _FUNCTION_NODES + (ast.ClassDef,)) for stmt in statements
    )


def _is_default_case(case: ast.match_case) -> bool:
    pattern = case.pattern
    return case.guard is None and isinstance(pattern, ast.MatchAs) and pattern.pattern is None


class _FunctionMapper:
    """Builds the construct tree of one function body."""

    def __init__(
        self,
        source: _SourceText,
        filename: str,
        module_functions: Dict[str, str],
        class_methods: Dict[str, Dict[str, str]],
    ) -> None:
        self.source = source
        self.filename = filename
        self.module_functions = module_functions
        self.class_methods = class_methods
        self.scopes: List[_Scope] = []

    def location(self, node: ast.AST) -> SourceLocation:
        return SourceLocation(self.filename, node.lineno, node.col_offset)

    # -- functions --------------------------------------------------------

    def map_function(
        self,
        node: ast.AST,
        identifier: str,
        owner_class: Optional[str] = None,
    ) -> Tuple[ConstructNode, ...]:
        local = {
            child.name: f"{identifier}.{child.name}" for child in _local_defs(node.body)
        }
        self.scopes.append(_Scope(identifier, local, owner_class))
        try:
            return tuple(self.statements(node.body, returned=_returned_names(node.body)))
        finally:
            self.scopes.pop()

    def nested_function(
        self,
        node: ast.AST,
        returned: Sequence[str] = (),
        qualifier: str = "",
        owner_class: Optional[str] = None,
    ) -> List[ConstructNode]:
        nodes = self.expressions(node.decorator_list)
        nodes.extend(self.expressions(node.args.defaults))
        nodes.extend(self.expressions([d for d in node.args.kw_defaults if d is not None]))

        name = f"{qualifier}{node.name}"
        if owner_class is None:
            # Closures inside a method see the same self
            owner_class = self.scopes[-1].owner_class
        identifier = f"{self.scopes[-1].identifier}.{name}"
        hints = {"namespace_wrapper": _declarations_only(node.body)}
        if node.name in returned and not qualifier:
            hints["returned"] = True
        nodes.append(
            ConstructNode(
                kind=ConstructKind.NESTED_FUNCTION,
                children=self.map_function(node, identifier, owner_class),
                location=self.location(node),
                language_hints=hints,
                name=name,
            )
        )
        return nodes

    def nested_class(self, node: ast.ClassDef, returned: Sequence[str]) -> List[ConstructNode]:
        nodes = self.expressions(node.decorator_list)
        nodes.extend(self.expressions(node.bases))
        class_id = f"{self.scopes[-1].identifier}.{node.name}"
        methods = {
            child.name: f"{class_id}.{child.name}"
            for child in node.body
            if isinstance(child, _FUNCTION_NODES)
        }
        self.class_methods[class_id] = methods
        for child in node.body:
            if isinstance(child, _FUNCTION_NODES):
                nodes.extend(
                    self.nested_function(
                        child, qualifier=f"{node.name}.", owner_class=class_id
                    )
                )
            else:
                nodes.extend(self.statement(child, returned))
        return nodes

    # -- statements -------------------------------------------------------

    def statements(
        self, body: Sequence[ast.stmt], returned: Sequence[str] = ()
    ) -> List[ConstructNode]:
        nodes: List[ConstructNode] = []
        for stmt in body:
            nodes.extend(self.statement(stmt, returned))
        return nodes

    def statement(self, stmt: ast.stmt, returned: Sequence[str] = ()) -> List[ConstructNode]:
        if isinstance(stmt, ast.If):
            return self.if_chain(stmt, ConstructKind.IF)
        if type(stmt) in _LOOP_NODES:
            return self.loop(stmt)
        if isinstance(stmt, (ast.Try, ast.TryStar)):
            return [self.try_block(stmt)]
        if isinstance(stmt, ast.Match):
            return [self.match(stmt)]
        if isinstance(stmt, (ast.With, ast.AsyncWith)):
            nodes = self.expressions(item.context_expr for item in stmt.items)
            return nodes + self.statements(stmt.body)
        if isinstance(stmt, _FUNCTION_NODES):
            return self.nested_function(stmt, returned)
        if isinstance(stmt, ast.ClassDef):
            return self.nested_class(stmt, returned)
        if isinstance(stmt, ast.Break):
            return [ConstructNode(ConstructKind.BREAK_PLAIN, location=self.location(stmt))]
        if isinstance(stmt, ast.Continue):
            return [ConstructNode(ConstructKind.CONTINUE_PLAIN, location=self.location(stmt))]
        return self.expressions(
            child for child in ast.iter_child_nodes(stmt) if isinstance(child, ast.expr)
        )

    def if_chain(self, stmt: ast.If, kind: ConstructKind) -> List[ConstructNode]:
        conditions, test_nodes = self.condition(stmt.test)
        nodes = [
            ConstructNode(
                kind=kind,
                children=tuple(test_nodes + self.statements(stmt.body)),
                location=self.location(stmt),
                conditions=tuple(conditions),
            )
        ]
        orelse = stmt.orelse
        if not orelse:
            return nodes

        first = orelse[0]
        if len(orelse) == 1 and isinstance(first, ast.If) and self.source.starts_with(first, "elif"):
            nodes.extend(self.if_chain(first, ConstructKind.ELSE_IF))
            return nodes

        only_if = len(orelse) == 1 and isinstance(first, ast.If)
        nodes.append(
            ConstructNode(
                kind=ConstructKind.ELSE,
                children=tuple(self.statements(orelse)),
                location=self.location(first),
                language_hints={"has_other_statements": not only_if},
            )
        )
        return nodes

    def loop(self, stmt: ast.stmt) -> List[ConstructNode]:
        if isinstance(stmt, ast.While):
            conditions, header = self.condition(stmt.test)
        else:
            conditions, header = [], self.expressions([stmt.iter])
        nodes = [
            ConstructNode(
                kind=_LOOP_NODES[type(stmt)],
                children=tuple(header + self.statements(stmt.body)),
                location=self.location(stmt),
                conditions=tuple(conditions),
            )
        ]
        if stmt.orelse:
            nodes.append(
                ConstructNode(
                    kind=ConstructKind.ELSE,
                    children=tuple(self.statements(stmt.orelse)),
                    location=self.location(stmt.orelse[0]),
                    language_hints={"has_other_statements": True},
                )
            )
        return nodes

    def try_block(self, stmt: ast.stmt) -> ConstructNode:
        children = self.statements(stmt.body)
        for handler in stmt.handlers:
            header = self.expressions([handler.type]) if handler.type is not None else []
            children.append(
                ConstructNode(
                    kind=ConstructKind.CATCH,
                    children=tuple(header + self.statements(handler.body)),
                    location=self.location(handler),
                )
            )
        # try/else runs on the no-exception path; it adds nothing itself
        children.extend(self.statements(stmt.orelse))
        if stmt.finalbody:
            children.append(
                ConstructNode(
                    kind=ConstructKind.FINALLY,
                    children=tuple(self.statements(stmt.finalbody)),
                    location=self.location(stmt.finalbody[0]),
                )
            )
        return ConstructNode(
            kind=ConstructKind.TRY, children=tuple(children), location=self.location(stmt)
        )

    def match(self, stmt: ast.Match) -> ConstructNode:
        children = self.expressions([stmt.subject])
        for case in stmt.cases:
            if case.guard is not None:
                children.extend(self.expressions([case.guard]))
            children.extend(self.statements(case.body))
        return ConstructNode(
            kind=ConstructKind.SWITCH,
            children=tuple(children),
            location=self.location(stmt),
            case_count=len([case for case in stmt.cases if not _is_default_case(case)]),
        )

    # -- expressions ------------------------------------------------------

    def condition(self, test: ast.expr) -> Tuple[List[LogicalExpression], List[ConstructNode]]:
        """Split a test into boolean expressions (kept as conditions) and other nodes."""
        if isinstance(test, ast.BoolOp):
            expression, leaves = self.logical_expression(test)
            return [expression], self.expressions(leaves)
        return [], self.expressions([test])

    def logical_expression(
        self, node: ast.expr, negated: bool = False
    ) -> Tuple[LogicalExpression, List[ast.expr]]:
        operands: list = []
        operators: List[LogicalOperator] = []
        leaves: List[ast.expr] = []
        self._flatten(node, operands, operators, leaves)
        return LogicalExpression(tuple(operands), tuple(operators), negated), leaves

    def _flatten(self, node: ast.BoolOp, operands: list, operators: list, leaves: list) -> None:
        op = _OPERATORS[type(node.op)]
        for i, value in enumerate(node.values):
            if i > 0:
                operators.append(op)
            group = self._group(value)
            if group is not None:
                expression, group_leaves = group
                operands.append(expression)
                leaves.extend(group_leaves)
            elif isinstance(value, ast.BoolOp):
                # Unparenthesized: precedence only, same physical sequence
                self._flatten(value, operands, operators, leaves)
            else:
                operands.append(ast.unparse(value))
                leaves.append(value)

    def _group(self, value: ast.expr):
        if isinstance(value, ast.BoolOp) and self.source.is_parenthesized(value):
            return self.logical_expression(value)
        if (
            isinstance(value, ast.UnaryOp)
            and isinstance(value.op, ast.Not)
            and isinstance(value.operand, ast.BoolOp)
        ):
            return self.logical_expression(value.operand, negated=True)
        return None

    def expressions(self, exprs) -> List[ConstructNode]:
        nodes: List[ConstructNode] = []
        for expr in exprs:
            nodes.extend(self.expression(expr))
        return nodes

    def expression(self, expr: ast.AST) -> List[ConstructNode]:
        if isinstance(expr, ast.BoolOp):
            expression, leaves = self.logical_expression(expr)
            return detect_runs(expression, self.location(expr)) + self.expressions(leaves)
        if isinstance(expr, ast.IfExp):
            conditions, test_nodes = self.condition(expr.test)
            return [
                ConstructNode(
                    kind=ConstructKind.TERNARY,
                    children=tuple(test_nodes + self.expressions([expr.body, expr.orelse])),
                    location=self.location(expr),
                    conditions=tuple(conditions),
                )
            ]
        if isinstance(expr, ast.Lambda):
            nodes = self.expressions(expr.args.defaults)
            nodes.append(
                ConstructNode(
                    kind=ConstructKind.LAMBDA,
                    children=tuple(self.expression(expr.body)),
                    location=self.location(expr),
                    language_hints={"namespace_wrapper": False},
                )
            )
            return nodes
        if isinstance(expr, ast.Call):
            nodes = []
            target = self.resolve_call(expr.func)
            if target is not None:
                nodes.append(
                    ConstructNode(
                        kind=ConstructKind.RECURSIVE_CALL,
                        location=self.location(expr),
                        target=target,
                    )
                )
            return nodes + self.expressions(ast.iter_child_nodes(expr))
        return self.expressions(ast.iter_child_nodes(expr))

    def resolve_call(self, func: ast.expr) -> Optional[str]:
        """Identifier of a same-module function the call targets, if any."""
        if isinstance(func, ast.Name):
            for scope in reversed(self.scopes):
                if func.id in scope.functions:
                    return scope.functions[func.id]
            return self.module_functions.get(func.id)
        if (
            isinstance(func, ast.Attribute)
            and isinstance(func.value, ast.Name)
            and func.value.id in ("self", "cls")
        ):
            owner = self.scopes[-1].owner_class if self.scopes else None
            if owner is not None:
                return self.class_methods.get(owner, {}).get(func.attr)
        return None


class PythonFrontend:
    """Turns Python source into FunctionUnits.

    Usage::

        frontend = PythonFrontend()
        units = frontend.parse_file(Path("app.py"), module="app")
    """

    language = LANGUAGE

    def parse_source(
        self,
        source: str,
        filename: str = "<string>",
        module: Optional[str] = None,
    ) -> List[FunctionUnit]:
        """Parse source text into function units.

        Args:
            source: Python source code.
            filename: File name used in source locations.
            module: Optional dotted module name prefixed to identifiers.

        Raises:
            SyntaxError: if the source does not parse.
        """
        tree = ast.parse(source, filename=filename)
        prefix = f"{module}." if module else ""

        module_functions: Dict[str, str] = {}
        class_methods: Dict[str, Dict[str, str]] = {}
        targets: List[Tuple[ast.AST, str, Optional[str]]] = []

        def collect(body, qualifier: str, owner: Optional[str]) -> None:
            for node in body:
                if isinstance(node, _FUNCTION_NODES):
                    identifier = f"{prefix}{qualifier}{node.name}"
                    if owner is None:
                        module_functions.setdefault(node.name, identifier)
                    else:
                        class_methods[owner][node.name] = identifier
                    targets.append((node, identifier, owner))
                elif isinstance(node, ast.ClassDef):
                    class_id = f"{prefix}{qualifier}{node.name}"
                    class_methods.setdefault(class_id, {})
                    collect(node.body, f"{qualifier}{node.name}.", class_id)

        collect(tree.body, "", None)

        source_text = _SourceText(source)
        units = []
        for node, identifier, owner in targets:
            mapper = _FunctionMapper(source_text, filename, module_functions, class_methods)
            units.append(
                FunctionUnit(
                    identifier=identifier,
                    body=mapper.map_function(node, identifier, owner),
                    location=mapper.location(node),
                    language=LANGUAGE,
                    language_hints={"namespace_wrapper": _declarations_only(node.body)},
                )
            )

        logger.debug(f"Parsed {len(units)} functions from {filename}")
        return units

    def parse_file(self, path: Path, module: Optional[str] = None) -> List[FunctionUnit]:
        path = Path(path)
        source = path.read_text(encoding="utf-8")
        return self.parse_source(source, filename=str(path), module=module)
