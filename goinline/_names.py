import re
from typing import Dict, Iterable, List, Optional, Sequence, Set

from goinline._nodes import (
    BaseStatement,
    Block,
    Branch,
    CaseClause,
    Field,
    For,
    If,
    Labeled,
    Name,
    Node,
    RawStatement,
    Switch,
    Verbatim,
)
from goinline._visitors import Transformer, Visitor
from goinline.fields import flatten_fields

_IDENTIFIER = re.compile(r"[^\W\d]\w*")


def exit_label(callee: str, index: int) -> str:
    return f"{callee}_return_{index}"


def argument_name(callee: str, index: int, position: int) -> str:
    return f"_{callee}_arg{index}_{position}"


def capture_names(callee: str, index: int, results: Sequence[Field]) -> List[str]:
    names = []
    for position, result in enumerate(flatten_fields(results)):
        if result.names and result.names[0] != "_":
            suffix = result.names[0]
        else:
            suffix = str(position)
        names.append(f"_{callee}_rv{index}_{suffix}")
    return names


class ReferencedNamesVisitor(Visitor):
    """
    Collects every identifier that may refer to a variable. Nodes built by the
    reader carry the identifiers of their source text; for nodes without them
    the text is scanned for identifier-shaped tokens, which over-approximates.
    """

    def __init__(self) -> None:
        self.names: Set[str] = set()

    def _scan(self, text: str, names: Optional[Sequence[str]]) -> None:
        if names is None:
            names = _IDENTIFIER.findall(text)
        self.names.update(names)

    def visit_Name(self, node: Name) -> None:
        self.names.add(node.value)

    def visit_Verbatim(self, node: Verbatim) -> None:
        self._scan(node.text, node.names)

    def visit_RawStatement(self, node: RawStatement) -> None:
        self._scan(node.text, node.names)

    def visit_If(self, node: If) -> None:
        self._scan(node.header, node.header_names)

    def visit_For(self, node: For) -> None:
        self._scan(node.header, node.header_names)

    def visit_Switch(self, node: Switch) -> None:
        self._scan(node.header, node.header_names)

    def visit_CaseClause(self, node: CaseClause) -> None:
        self._scan(node.header, node.header_names)


def referenced_names(nodes: Iterable[Node]) -> Set[str]:
    visitor = ReferencedNamesVisitor()
    for node in nodes:
        node.visit(visitor)
    return visitor.names


class LabelCollector(Visitor):
    def __init__(self) -> None:
        self.labels: List[str] = []

    def visit_Labeled(self, node: Labeled) -> None:
        self.labels.append(node.label)


class LabelRenamer(Transformer):
    def __init__(self, renames: Dict[str, str]) -> None:
        self.renames = renames

    def leave_Labeled(self, original_node: Labeled, updated_node: Labeled) -> Labeled:
        if updated_node.label in self.renames:
            return updated_node.with_changes(label=self.renames[updated_node.label])
        return updated_node

    def leave_Branch(self, original_node: Branch, updated_node: Branch) -> Branch:
        if updated_node.label in self.renames:
            return updated_node.with_changes(label=self.renames[updated_node.label])
        return updated_node


def rename_labels(body: Sequence[BaseStatement], index: int) -> Sequence[BaseStatement]:
    """
    Suffix labels declared by an inlined body with the call-site index so two
    copies of the same callee can live in one function.
    """
    block = Block(body=tuple(body))
    collector = LabelCollector()
    block.visit(collector)
    if not collector.labels:
        return block.body
    renames = {label: f"{label}_{index}" for label in collector.labels}
    return block.visit(LabelRenamer(renames)).body
