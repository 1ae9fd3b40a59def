from dataclasses import dataclass, field, fields, replace
from typing import List, Optional, Sequence, TypeVar, Union

from goinline._visitors import FlattenSentinel, RemovalSentinel, Transformer

_NodeT = TypeVar("_NodeT", bound="Node")


@dataclass
class CodegenState:
    indent_token: str = "\t"
    indent_tokens: List[str] = field(default_factory=list)
    tokens: List[str] = field(default_factory=list)

    def increase_indent(self) -> None:
        self.indent_tokens.append(self.indent_token)

    def decrease_indent(self) -> None:
        self.indent_tokens.pop()

    def add_indent_tokens(self) -> None:
        self.tokens.extend(self.indent_tokens)

    def add_token(self, value: str) -> None:
        self.tokens.append(value)


def visit_required(parent: "Node", fieldname: str, node: _NodeT, visitor: Transformer):
    result = node.visit(visitor)
    if isinstance(result, (RemovalSentinel, FlattenSentinel)):
        raise TypeError(
            f"We got a {type(result).__name__} while visiting a "
            f"{type(node).__name__} which belongs to "
            f"{type(parent).__name__}.{fieldname}, which is a required field."
        )
    return result


def visit_optional(
    parent: "Node", fieldname: str, node: Optional[_NodeT], visitor: Transformer
):
    if node is None:
        return None
    result = node.visit(visitor)
    if isinstance(result, FlattenSentinel):
        raise TypeError(
            f"We got a FlattenSentinel while visiting a {type(node).__name__} "
            f"which belongs to {type(parent).__name__}.{fieldname}. "
            "A FlattenSentinel is only allowed in a sequence."
        )
    if isinstance(result, RemovalSentinel):
        return None
    return result


def visit_sequence(
    parent: "Node", fieldname: str, children: Sequence[_NodeT], visitor: Transformer
) -> tuple:
    updated = []
    for child in children:
        result = child.visit(visitor)
        if isinstance(result, RemovalSentinel):
            continue
        if isinstance(result, FlattenSentinel):
            updated.extend(result.nodes)
            continue
        updated.append(result)
    return tuple(updated)


def visit_statement(
    parent: "Node", fieldname: str, node: "BaseStatement", visitor: Transformer
) -> "BaseStatement":
    # Slots that hold exactly one statement get a block when a transform
    # expands the statement.
    result = node.visit(visitor)
    if isinstance(result, RemovalSentinel):
        return Empty()
    if isinstance(result, FlattenSentinel):
        if len(result) == 1:
            return result[0]
        if not result:
            return Empty()
        return Block(body=tuple(result))
    return result


def _codegen_joined(
    state: CodegenState, nodes: Sequence["Node"], separator: str = ", "
) -> None:
    for idx, node in enumerate(nodes):
        if idx:
            state.add_token(separator)
        node._codegen(state)


class Node:
    def visit(self, visitor: Transformer):
        if visitor.on_visit(self):
            with_updated_children = self._visit_and_replace_children(visitor)
        else:
            with_updated_children = self
        return visitor.on_leave(self, with_updated_children)

    def _visit_and_replace_children(self: _NodeT, visitor: Transformer) -> _NodeT:
        return self

    def _codegen(self, state: CodegenState) -> None:
        self._codegen_impl(state)

    def _codegen_impl(self, state: CodegenState) -> None:
        raise NotImplementedError(f"{type(self).__name__} cannot be rendered")

    def deep_clone(self: _NodeT) -> _NodeT:
        changes = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, Node):
                changes[f.name] = value.deep_clone()
            elif isinstance(value, tuple):
                changes[f.name] = tuple(
                    v.deep_clone() if isinstance(v, Node) else v for v in value
                )
        return replace(self, **changes)

    def with_changes(self: _NodeT, **changes) -> _NodeT:
        return replace(self, **changes)


class BaseExpression(Node):
    pass


class BaseStatement(Node):
    pass


class BaseDecl(Node):
    pass


# Expressions


@dataclass(frozen=True)
class Name(BaseExpression):
    value: str

    def _codegen_impl(self, state: CodegenState) -> None:
        state.add_token(self.value)


@dataclass(frozen=True)
class Verbatim(BaseExpression):
    """An expression kept as its source text."""

    text: str
    #: Identifiers read by the expression, recorded by the reader.
    names: Optional[Sequence[str]] = field(default=None, compare=False)

    def _codegen_impl(self, state: CodegenState) -> None:
        state.add_token(self.text)


@dataclass(frozen=True)
class Call(BaseExpression):
    func: BaseExpression
    args: Sequence[BaseExpression] = ()
    #: ``f(xs...)``
    ellipsis: bool = False

    def _visit_and_replace_children(self, visitor: Transformer) -> "Call":
        return Call(
            func=visit_required(self, "func", self.func, visitor),
            args=visit_sequence(self, "args", self.args, visitor),
            ellipsis=self.ellipsis,
        )

    def _codegen_impl(self, state: CodegenState) -> None:
        self.func._codegen(state)
        state.add_token("(")
        _codegen_joined(state, self.args)
        if self.ellipsis:
            state.add_token("...")
        state.add_token(")")


@dataclass(frozen=True)
class FuncLit(BaseExpression):
    #: Parameters and results as written, e.g. ``(a int) error``.
    signature: str
    body: "Block"

    def _visit_and_replace_children(self, visitor: Transformer) -> "FuncLit":
        return FuncLit(
            signature=self.signature,
            body=visit_required(self, "body", self.body, visitor),
        )

    def _codegen_impl(self, state: CodegenState) -> None:
        state.add_token(f"func{self.signature} ")
        self.body._codegen_block(state)


# Fields and specs


@dataclass(frozen=True)
class Field(Node):
    """
    A parameter or result declaration. ``names`` may hold several names
    sharing one type (``a, b int``) or none at all (``int``). Variadic
    parameters keep the ``...`` in ``type``.
    """

    names: Sequence[str]
    type: str

    @property
    def is_variadic(self) -> bool:
        return self.type.startswith("...")

    def _codegen_impl(self, state: CodegenState) -> None:
        if self.names:
            state.add_token(f"{', '.join(self.names)} ")
        state.add_token(self.type)


@dataclass(frozen=True)
class ValueSpec(Node):
    names: Sequence[str]
    type: Optional[str] = None
    values: Sequence[BaseExpression] = ()

    def _visit_and_replace_children(self, visitor: Transformer) -> "ValueSpec":
        return ValueSpec(
            names=self.names,
            type=self.type,
            values=visit_sequence(self, "values", self.values, visitor),
        )

    def _codegen_impl(self, state: CodegenState) -> None:
        state.add_token(", ".join(self.names))
        if self.type:
            state.add_token(f" {self.type}")
        if self.values:
            state.add_token(" = ")
            _codegen_joined(state, self.values)


# Statements


@dataclass(frozen=True)
class Block(BaseStatement):
    body: Sequence[BaseStatement] = ()

    def _visit_and_replace_children(self, visitor: Transformer) -> "Block":
        return Block(body=visit_sequence(self, "body", self.body, visitor))

    def _codegen_block(self, state: CodegenState) -> None:
        state.add_token("{\n")
        state.increase_indent()
        for stmt in self.body:
            stmt._codegen(state)
        state.decrease_indent()
        state.add_indent_tokens()
        state.add_token("}")

    def _codegen_impl(self, state: CodegenState) -> None:
        state.add_indent_tokens()
        self._codegen_block(state)
        state.add_token("\n")


@dataclass(frozen=True)
class Assign(BaseStatement):
    """``targets <operator> values`` for ``:=``, ``=`` and compound operators."""

    targets: Sequence[BaseExpression]
    operator: str
    values: Sequence[BaseExpression]

    @property
    def is_define(self) -> bool:
        return self.operator == ":="

    def _visit_and_replace_children(self, visitor: Transformer) -> "Assign":
        return Assign(
            targets=visit_sequence(self, "targets", self.targets, visitor),
            operator=self.operator,
            values=visit_sequence(self, "values", self.values, visitor),
        )

    def _codegen_impl(self, state: CodegenState) -> None:
        state.add_indent_tokens()
        _codegen_joined(state, self.targets)
        state.add_token(f" {self.operator} ")
        _codegen_joined(state, self.values)
        state.add_token("\n")


@dataclass(frozen=True)
class ExprStmt(BaseStatement):
    value: BaseExpression

    def _visit_and_replace_children(self, visitor: Transformer) -> "ExprStmt":
        return ExprStmt(value=visit_required(self, "value", self.value, visitor))

    def _codegen_impl(self, state: CodegenState) -> None:
        state.add_indent_tokens()
        self.value._codegen(state)
        state.add_token("\n")


@dataclass(frozen=True)
class Return(BaseStatement):
    results: Sequence[BaseExpression] = ()

    def _visit_and_replace_children(self, visitor: Transformer) -> "Return":
        return Return(results=visit_sequence(self, "results", self.results, visitor))

    def _codegen_impl(self, state: CodegenState) -> None:
        state.add_indent_tokens()
        state.add_token("return")
        if self.results:
            state.add_token(" ")
            _codegen_joined(state, self.results)
        state.add_token("\n")


@dataclass(frozen=True)
class VarDecl(BaseStatement):
    specs: Sequence[ValueSpec]

    def _visit_and_replace_children(self, visitor: Transformer) -> "VarDecl":
        return VarDecl(specs=visit_sequence(self, "specs", self.specs, visitor))

    def _codegen_impl(self, state: CodegenState) -> None:
        state.add_indent_tokens()
        if len(self.specs) == 1:
            state.add_token("var ")
            self.specs[0]._codegen(state)
            state.add_token("\n")
            return
        state.add_token("var (\n")
        state.increase_indent()
        for spec in self.specs:
            state.add_indent_tokens()
            spec._codegen(state)
            state.add_token("\n")
        state.decrease_indent()
        state.add_indent_tokens()
        state.add_token(")\n")


@dataclass(frozen=True)
class If(BaseStatement):
    #: Everything between ``if`` and the opening brace.
    header: str
    body: Block
    orelse: Optional[Union[Block, "If"]] = None
    header_names: Optional[Sequence[str]] = field(default=None, compare=False)

    def _visit_and_replace_children(self, visitor: Transformer) -> "If":
        return self.with_changes(
            body=visit_required(self, "body", self.body, visitor),
            orelse=visit_optional(self, "orelse", self.orelse, visitor),
        )

    def _codegen_if(self, state: CodegenState) -> None:
        state.add_token(f"if {self.header} ")
        self.body._codegen_block(state)
        if self.orelse is None:
            return
        state.add_token(" else ")
        if isinstance(self.orelse, If):
            self.orelse._codegen_if(state)
        else:
            self.orelse._codegen_block(state)

    def _codegen_impl(self, state: CodegenState) -> None:
        state.add_indent_tokens()
        self._codegen_if(state)
        state.add_token("\n")


@dataclass(frozen=True)
class For(BaseStatement):
    #: Everything between ``for`` and the opening brace, possibly empty.
    header: str
    body: Block
    header_names: Optional[Sequence[str]] = field(default=None, compare=False)

    def _visit_and_replace_children(self, visitor: Transformer) -> "For":
        return self.with_changes(body=visit_required(self, "body", self.body, visitor))

    def _codegen_impl(self, state: CodegenState) -> None:
        state.add_indent_tokens()
        state.add_token(f"for {self.header} " if self.header else "for ")
        self.body._codegen_block(state)
        state.add_token("\n")


@dataclass(frozen=True)
class Comment(BaseStatement):
    text: str

    def _codegen_impl(self, state: CodegenState) -> None:
        state.add_indent_tokens()
        state.add_token(f"{self.text}\n")


@dataclass(frozen=True)
class CaseClause(Node):
    #: ``case a, b`` or ``default``, without the colon.
    header: str
    body: Sequence[BaseStatement] = ()
    header_names: Optional[Sequence[str]] = field(default=None, compare=False)

    def _visit_and_replace_children(self, visitor: Transformer) -> "CaseClause":
        return self.with_changes(body=visit_sequence(self, "body", self.body, visitor))

    def _codegen_impl(self, state: CodegenState) -> None:
        state.add_indent_tokens()
        state.add_token(f"{self.header}:\n")
        state.increase_indent()
        for stmt in self.body:
            stmt._codegen(state)
        state.decrease_indent()


@dataclass(frozen=True)
class Switch(BaseStatement):
    """Expression switches, type switches and ``select``."""

    keyword: str
    header: str
    cases: Sequence[Union[CaseClause, Comment]] = ()
    header_names: Optional[Sequence[str]] = field(default=None, compare=False)

    def _visit_and_replace_children(self, visitor: Transformer) -> "Switch":
        return self.with_changes(
            cases=visit_sequence(self, "cases", self.cases, visitor),
        )

    def _codegen_impl(self, state: CodegenState) -> None:
        state.add_indent_tokens()
        if self.header:
            state.add_token(f"{self.keyword} {self.header} {{\n")
        else:
            state.add_token(f"{self.keyword} {{\n")
        for case in self.cases:
            case._codegen(state)
        state.add_indent_tokens()
        state.add_token("}\n")


@dataclass(frozen=True)
class Empty(BaseStatement):
    def _codegen_impl(self, state: CodegenState) -> None:
        pass


@dataclass(frozen=True)
class Labeled(BaseStatement):
    label: str
    statement: BaseStatement = field(default_factory=Empty)

    def _visit_and_replace_children(self, visitor: Transformer) -> "Labeled":
        return Labeled(
            label=self.label,
            statement=visit_statement(self, "statement", self.statement, visitor),
        )

    def _codegen_impl(self, state: CodegenState) -> None:
        # Labels sit one level left of the statement they label.
        state.tokens.extend(state.indent_tokens[:-1])
        state.add_token(f"{self.label}:\n")
        self.statement._codegen(state)


@dataclass(frozen=True)
class Branch(BaseStatement):
    """``goto``, ``break``, ``continue`` and ``fallthrough``."""

    keyword: str
    label: Optional[str] = None

    def _codegen_impl(self, state: CodegenState) -> None:
        state.add_indent_tokens()
        if self.label:
            state.add_token(f"{self.keyword} {self.label}\n")
        else:
            state.add_token(f"{self.keyword}\n")


@dataclass(frozen=True)
class KeywordStmt(BaseStatement):
    """``go`` and ``defer``."""

    keyword: str
    value: BaseExpression

    def _visit_and_replace_children(self, visitor: Transformer) -> "KeywordStmt":
        return KeywordStmt(
            keyword=self.keyword,
            value=visit_required(self, "value", self.value, visitor),
        )

    def _codegen_impl(self, state: CodegenState) -> None:
        state.add_indent_tokens()
        state.add_token(f"{self.keyword} ")
        self.value._codegen(state)
        state.add_token("\n")


@dataclass(frozen=True)
class RawStatement(BaseStatement):
    """A statement kept as its source text."""

    text: str
    names: Optional[Sequence[str]] = field(default=None, compare=False)

    def _codegen_impl(self, state: CodegenState) -> None:
        state.add_indent_tokens()
        state.add_token(f"{self.text}\n")


# Declarations


def _codegen_leading_lines(state: CodegenState, lines: Sequence[str]) -> None:
    for line in lines:
        state.add_token(f"{line}\n")


@dataclass(frozen=True)
class FuncDecl(BaseDecl):
    name: str
    params: Sequence[Field] = ()
    #: ``None`` when the function declares no results.
    results: Optional[Sequence[Field]] = None
    body: Optional[Block] = None
    #: Receiver as written, e.g. ``(s *Stack)``.
    receiver: Optional[str] = None
    #: Type parameters as written, e.g. ``[T any]``.
    type_params: Optional[str] = None
    #: Comments directly above the declaration.
    leading_lines: Sequence[str] = ()
    #: Set when the leading comments carry the inline marker.
    inline: bool = False

    def _visit_and_replace_children(self, visitor: Transformer) -> "FuncDecl":
        return self.with_changes(
            params=visit_sequence(self, "params", self.params, visitor),
            results=(
                None
                if self.results is None
                else visit_sequence(self, "results", self.results, visitor)
            ),
            body=visit_optional(self, "body", self.body, visitor),
        )

    def _codegen_impl(self, state: CodegenState) -> None:
        _codegen_leading_lines(state, self.leading_lines)
        state.add_token("func ")
        if self.receiver:
            state.add_token(f"{self.receiver} ")
        state.add_token(self.name)
        if self.type_params:
            state.add_token(self.type_params)
        state.add_token("(")
        _codegen_joined(state, self.params)
        state.add_token(")")
        if self.results:
            if len(self.results) == 1 and not self.results[0].names:
                state.add_token(" ")
                self.results[0]._codegen(state)
            else:
                state.add_token(" (")
                _codegen_joined(state, self.results)
                state.add_token(")")
        if self.body is not None:
            state.add_token(" ")
            self.body._codegen_block(state)
        state.add_token("\n")


@dataclass(frozen=True)
class RawDecl(BaseDecl):
    """Imports, types, constants and package-level variables, verbatim."""

    text: str
    leading_lines: Sequence[str] = ()

    def _codegen_impl(self, state: CodegenState) -> None:
        _codegen_leading_lines(state, self.leading_lines)
        state.add_token(f"{self.text}\n")


@dataclass(frozen=True)
class Module(Node):
    package: str
    body: Sequence[BaseDecl] = ()
    #: Comments above the package clause.
    header: Sequence[str] = ()
    #: Comments after the last declaration.
    footer: Sequence[str] = ()

    def _visit_and_replace_children(self, visitor: Transformer) -> "Module":
        return self.with_changes(body=visit_sequence(self, "body", self.body, visitor))

    def _codegen_impl(self, state: CodegenState) -> None:
        _codegen_leading_lines(state, self.header)
        state.add_token(f"package {self.package}\n")
        for decl in self.body:
            state.add_token("\n")
            decl._codegen(state)
        if self.footer:
            state.add_token("\n")
            _codegen_leading_lines(state, self.footer)

    @property
    def code(self) -> str:
        return self.code_for_node(self)

    def code_for_node(self, node: Node) -> str:
        state = CodegenState()
        node._codegen(state)
        return "".join(state.tokens)
