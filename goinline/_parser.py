"""
Reader turning Go source into the goinline node tree.

Go source is parsed with tree-sitter; only the structure the inliner needs is
kept as nodes (declarations, statement lists, assignments, calls, returns and
function literals). Everything else is carried as source text.
"""

import logging
from typing import Iterable, List, Optional, Sequence, Tuple, Union

import tree_sitter_go
from tree_sitter import Language, Parser
from tree_sitter import Node as TSNode

from goinline._exceptions import ParserSyntaxError
from goinline._nodes import (
    Assign,
    BaseDecl,
    BaseExpression,
    BaseStatement,
    Block,
    Branch,
    Call,
    CaseClause,
    Comment,
    Empty,
    ExprStmt,
    Field,
    For,
    FuncDecl,
    FuncLit,
    If,
    KeywordStmt,
    Labeled,
    Module,
    Name,
    RawDecl,
    RawStatement,
    Return,
    Switch,
    Verbatim,
)

log = logging.getLogger(__name__)

MARKER = "[always_inline]"

GO_LANGUAGE = Language(tree_sitter_go.language())

_FUNCTION_TYPES = {"function_declaration", "method_declaration"}
_SWITCH_TYPES = {
    "expression_switch_statement",
    "type_switch_statement",
    "select_statement",
}
_CASE_TYPES = {"expression_case", "default_case", "type_case", "communication_case"}
_BRANCH_TYPES = {
    "goto_statement",
    "break_statement",
    "continue_statement",
    "fallthrough_statement",
}


class ModuleBuilder:
    def __init__(self, source: bytes, marker: str = MARKER) -> None:
        self.source = source
        self.marker = marker

    def text(self, node: TSNode) -> str:
        return self.source[node.start_byte : node.end_byte].decode("utf-8")

    def text_between(self, start: int, end: int) -> str:
        return self.source[start:end].decode("utf-8").strip()

    def identifiers(self, nodes: Iterable[TSNode]) -> Tuple[str, ...]:
        """
        Names read by ``nodes``. Selector fields, labels, types and the insides
        of string literals are not identifiers in the grammar and are skipped.
        """
        names: List[str] = []
        stack = list(nodes)
        while stack:
            node = stack.pop()
            if node.type == "identifier":
                names.append(self.text(node))
            else:
                stack.extend(node.children)
        return tuple(dict.fromkeys(names))

    def build(self, root: TSNode) -> Module:
        package = ""
        header: List[str] = []
        body: List[BaseDecl] = []
        pending: List[str] = []
        for child in root.named_children:
            if child.type == "comment":
                pending.append(self.text(child))
            elif child.type == "package_clause":
                package = self.text(child.named_children[0])
                header.extend(pending)
                pending = []
            else:
                body.append(self.build_declaration(child, pending))
                pending = []
        return Module(
            package=package, body=tuple(body), header=tuple(header), footer=tuple(pending)
        )

    def build_declaration(self, node: TSNode, leading_lines: Sequence[str]) -> BaseDecl:
        if node.type not in _FUNCTION_TYPES:
            return RawDecl(text=self.text(node), leading_lines=tuple(leading_lines))

        result = node.child_by_field_name("result")
        results = None
        if result is not None:
            if result.type == "parameter_list":
                results = self.build_fields(result)
            else:
                results = (Field(names=(), type=self.text(result)),)
        body = node.child_by_field_name("body")
        receiver = node.child_by_field_name("receiver")
        type_params = node.child_by_field_name("type_parameters")

        decl = FuncDecl(
            name=self.text(node.child_by_field_name("name")),
            params=self.build_fields(node.child_by_field_name("parameters")),
            results=results,
            body=None if body is None else self.build_block(body),
            receiver=None if receiver is None else self.text(receiver),
            type_params=None if type_params is None else self.text(type_params),
            leading_lines=tuple(leading_lines),
            inline=any(self.marker in line for line in leading_lines),
        )
        if decl.inline:
            log.debug(f"Found inline marker on {decl.name}")
        return decl

    def build_fields(self, parameter_list: TSNode) -> Tuple[Field, ...]:
        fields = []
        for child in parameter_list.named_children:
            if child.type == "parameter_declaration":
                names = tuple(
                    self.text(name) for name in child.children_by_field_name("name")
                )
                field_type = self.text(child.child_by_field_name("type"))
                fields.append(Field(names=names, type=field_type))
            elif child.type == "variadic_parameter_declaration":
                name = child.child_by_field_name("name")
                field_type = self.text(child.child_by_field_name("type"))
                fields.append(
                    Field(
                        names=() if name is None else (self.text(name),),
                        type=f"...{field_type}",
                    )
                )
        return tuple(fields)

    def build_block(self, node: TSNode) -> Block:
        return Block(body=self.build_statements(node.named_children))

    def build_statements(self, nodes: Iterable[TSNode]) -> Tuple[BaseStatement, ...]:
        statements: List[BaseStatement] = []
        for node in nodes:
            if node.type == "statement_list":
                statements.extend(self.build_statements(node.named_children))
            else:
                statements.append(self.build_statement(node))
        return tuple(statements)

    def build_statement(self, node: TSNode) -> BaseStatement:
        kind = node.type
        if kind == "comment":
            return Comment(text=self.text(node))
        if kind == "block":
            return self.build_block(node)
        if kind == "short_var_declaration":
            return Assign(
                targets=self.build_expressions(node.child_by_field_name("left")),
                operator=":=",
                values=self.build_expressions(node.child_by_field_name("right")),
            )
        if kind == "assignment_statement":
            left = node.child_by_field_name("left")
            right = node.child_by_field_name("right")
            return Assign(
                targets=self.build_expressions(left),
                operator=self.text_between(left.end_byte, right.start_byte),
                values=self.build_expressions(right),
            )
        if kind == "expression_statement":
            return ExprStmt(value=self.build_expression(node.named_children[0]))
        if kind == "return_statement":
            results = [c for c in node.named_children if c.type != "comment"]
            return Return(results=self.build_expressions(results[0] if results else None))
        if kind == "if_statement":
            return self.build_if(node)
        if kind == "for_statement":
            body = node.child_by_field_name("body")
            return For(
                header=self.text_between(node.children[0].end_byte, body.start_byte),
                body=self.build_block(body),
                header_names=self.identifiers(_before(node.children[1:], body)),
            )
        if kind in _SWITCH_TYPES:
            return self.build_switch(node)
        if kind == "labeled_statement":
            return self.build_labeled(node)
        if kind in _BRANCH_TYPES:
            label = self._label_name(node)
            return Branch(
                keyword=node.children[0].type,
                label=None if label is None else self.text(label),
            )
        if kind in ("go_statement", "defer_statement"):
            return KeywordStmt(
                keyword=node.children[0].type,
                value=self.build_expression(node.named_children[0]),
            )
        if kind == "empty_statement":
            return Empty()
        return RawStatement(text=self.text(node), names=self.identifiers([node]))

    def build_if(self, node: TSNode) -> If:
        consequence = node.child_by_field_name("consequence")
        alternative = node.child_by_field_name("alternative")
        return If(
            header=self.text_between(node.children[0].end_byte, consequence.start_byte),
            body=self.build_block(consequence),
            orelse=None if alternative is None else self.build_statement(alternative),
            header_names=self.identifiers(_before(node.children[1:], consequence)),
        )

    def build_switch(self, node: TSNode) -> Switch:
        brace = next(child for child in node.children if child.type == "{")
        cases: List[Union[CaseClause, Comment]] = []
        for child in node.named_children:
            if child.type in _CASE_TYPES:
                cases.append(self.build_case(child))
            elif child.type == "comment" and child.start_byte > brace.start_byte:
                cases.append(Comment(text=self.text(child)))
        return Switch(
            keyword=node.children[0].type,
            header=self.text_between(node.children[0].end_byte, brace.start_byte),
            cases=tuple(cases),
            header_names=self.identifiers(_before(node.children[1:], brace)),
        )

    def build_case(self, node: TSNode) -> CaseClause:
        colon_index = next(
            idx for idx, child in enumerate(node.children) if child.type == ":"
        )
        return CaseClause(
            header=self.text_between(node.start_byte, node.children[colon_index].start_byte),
            body=self.build_statements(
                child for child in node.children[colon_index + 1 :] if child.is_named
            ),
            header_names=self.identifiers(node.children[:colon_index]),
        )

    def build_labeled(self, node: TSNode) -> Labeled:
        label = self._label_name(node)
        statements = [
            child
            for child in node.named_children
            if child.type not in ("label_name", "comment")
        ]
        return Labeled(
            label=self.text(label),
            statement=self.build_statement(statements[0]) if statements else Empty(),
        )

    def _label_name(self, node: TSNode) -> Optional[TSNode]:
        return next(
            (child for child in node.named_children if child.type == "label_name"), None
        )

    def build_expressions(self, node: Optional[TSNode]) -> Tuple[BaseExpression, ...]:
        if node is None:
            return ()
        if node.type == "expression_list":
            return tuple(
                self.build_expression(child)
                for child in node.named_children
                if child.type != "comment"
            )
        return (self.build_expression(node),)

    def build_expression(self, node: TSNode) -> BaseExpression:
        if node.type == "identifier":
            return Name(value=self.text(node))
        if node.type == "call_expression":
            return self.build_call(node)
        if node.type == "func_literal":
            body = node.child_by_field_name("body")
            return FuncLit(
                signature=self.text_between(node.children[0].end_byte, body.start_byte),
                body=self.build_block(body),
            )
        return self.build_verbatim(node)

    def build_verbatim(self, node: TSNode) -> Verbatim:
        return Verbatim(text=self.text(node), names=self.identifiers([node]))

    def build_call(self, node: TSNode) -> BaseExpression:
        if node.child_by_field_name("type_arguments") is not None:
            return self.build_verbatim(node)
        arguments = node.child_by_field_name("arguments")
        args: List[BaseExpression] = []
        ellipsis = any(child.type == "..." for child in arguments.children)
        for child in arguments.named_children:
            if child.type == "comment":
                continue
            if child.type == "variadic_argument":
                ellipsis = True
                args.append(self.build_expression(child.named_children[0]))
            else:
                args.append(self.build_expression(child))
        return Call(
            func=self.build_expression(node.child_by_field_name("function")),
            args=tuple(args),
            ellipsis=ellipsis,
        )


def _before(nodes: Sequence[TSNode], end: TSNode) -> List[TSNode]:
    return [node for node in nodes if node.end_byte <= end.start_byte]


def _first_error(node: TSNode) -> Optional[TSNode]:
    if node.type == "ERROR" or node.is_missing:
        return node
    for child in node.children:
        if child.has_error or child.is_missing:
            found = _first_error(child)
            if found is not None:
                return found
    return None


def parse_module(
    source: Union[str, bytes], marker: str = MARKER, path: Optional[str] = None
) -> Module:
    """
    Parse Go source into a :class:`Module`. Functions whose leading comments
    contain ``marker`` are flagged ``inline``.
    """
    if isinstance(source, str):
        source = source.encode("utf-8")
    tree = Parser(GO_LANGUAGE).parse(source)
    root = tree.root_node
    if root.has_error:
        error = _first_error(root) or root
        if error.is_missing:
            message = f"missing {error.type}"
        else:
            snippet = source[error.start_byte : error.end_byte].decode("utf-8")
            message = f"unexpected {snippet[:40]!r}"
        raise ParserSyntaxError(
            message,
            line=error.start_point[0] + 1,
            column=error.start_point[1] + 1,
            path=path,
        )
    return ModuleBuilder(source, marker).build(root)
