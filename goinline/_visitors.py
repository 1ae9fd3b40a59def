from enum import Enum, auto
from typing import TYPE_CHECKING, Generic, Iterable, Iterator, Sequence, TypeVar, Union

if TYPE_CHECKING:
    from goinline._nodes import Node

NodeT = TypeVar("NodeT", bound="Node")


class RemovalSentinel(Enum):
    """
    Returned from a ``leave_`` method to drop the node from its parent
    sequence.
    """

    REMOVE = auto()


class FlattenSentinel(Sequence[NodeT], Generic[NodeT]):
    """
    Returned from a ``leave_`` method to replace one node of a parent sequence
    with zero or more nodes.
    """

    def __init__(self, nodes: Iterable[NodeT]) -> None:
        self.nodes = tuple(nodes)

    def __getitem__(self, idx):
        return self.nodes[idx]

    def __len__(self) -> int:
        return len(self.nodes)

    def __iter__(self) -> Iterator[NodeT]:
        return iter(self.nodes)

    def __repr__(self) -> str:
        return f"FlattenSentinel({list(self.nodes)!r})"


class Transformer:
    """
    Dispatches ``visit_<NodeClass>(node)`` before the children of a node are
    visited and ``leave_<NodeClass>(original_node, updated_node)`` after.
    ``visit_`` returning ``False`` skips the children; ``leave_`` returns the
    replacement node, a ``FlattenSentinel`` or ``RemovalSentinel.REMOVE``.
    """

    def on_visit(self, node: "Node") -> bool:
        visit_func = getattr(self, f"visit_{type(node).__name__}", None)
        if visit_func is None:
            return True
        retval = visit_func(node)
        return False if retval is False else True

    def on_leave(
        self, original_node: "Node", updated_node: "Node"
    ) -> Union["Node", FlattenSentinel, RemovalSentinel]:
        leave_func = getattr(self, f"leave_{type(original_node).__name__}", None)
        if leave_func is None:
            return updated_node
        return leave_func(original_node, updated_node)


class Visitor(Transformer):
    """
    Read-only traversal: ``leave_<NodeClass>(original_node)`` is called for
    its side effects and the tree is returned unchanged.
    """

    def on_leave(self, original_node: "Node", updated_node: "Node") -> "Node":
        leave_func = getattr(self, f"leave_{type(original_node).__name__}", None)
        if leave_func is not None:
            leave_func(original_node)
        return updated_node
