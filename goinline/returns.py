import logging
from typing import List, Optional, Sequence, Tuple, Union

from goinline._exceptions import UnsupportedConstructError
from goinline._nodes import (
    Assign,
    BaseStatement,
    Block,
    Branch,
    Empty,
    FuncLit,
    Labeled,
    Name,
    Return,
)
from goinline._visitors import FlattenSentinel, Transformer

log = logging.getLogger(__name__)


class ReturnRewriter(Transformer):
    """
    Replaces ``return`` statements of an inlined body. With ``captures`` the
    returned values are assigned to the capture variables, without them the
    values are discarded. Every return reached by visiting is an early return
    and is followed by a ``goto`` to ``label``.
    """

    def __init__(
        self,
        label: str,
        captures: Optional[Sequence[str]] = None,
        result_count: int = 0,
        named_results: Sequence[str] = (),
    ) -> None:
        self.label = label
        self.captures = captures
        self.result_count = result_count
        self.named_results = named_results
        self.found_early_return = False

    def visit_FuncLit(self, node: FuncLit) -> Optional[bool]:
        # Returns inside a closure leave the closure, not the inlined body.
        return False

    def leave_Return(
        self, original_node: Return, updated_node: Return
    ) -> Union[BaseStatement, FlattenSentinel[BaseStatement]]:
        self.found_early_return = True
        jump = Branch(keyword="goto", label=self.label)
        return FlattenSentinel([*self.replace_return(updated_node), jump])

    def replace_return(self, node: Return) -> List[BaseStatement]:
        if self.captures is None:
            return self._discard(node)
        return self._capture(node)

    def _capture(self, node: Return) -> List[BaseStatement]:
        results = list(node.results)
        if not results:
            if not self.named_results:
                return []
            results = [Name(name) for name in self.named_results]

        if len(results) == len(self.captures):
            return [
                Assign(targets=(Name(capture),), operator="=", values=(result,))
                for capture, result in zip(self.captures, results)
            ]
        if len(results) == 1:
            # return g() where g yields every result at once
            return [
                Assign(
                    targets=tuple(Name(capture) for capture in self.captures),
                    operator="=",
                    values=tuple(results),
                )
            ]
        raise UnsupportedConstructError(
            f"return of {len(results)} values does not match "
            f"{len(self.captures)} results"
        )

    def _discard(self, node: Return) -> List[BaseStatement]:
        if all(isinstance(result, Name) for result in node.results):
            return []
        count = len(node.results)
        if count == 1:
            count = max(self.result_count, 1)
        return [
            Assign(
                targets=tuple(Name("_") for _ in range(count)),
                operator="=",
                values=tuple(node.results),
            )
        ]


def rewrite_returns(
    body: Sequence[BaseStatement],
    label: str,
    captures: Optional[Sequence[str]] = None,
    result_count: int = 0,
    named_results: Sequence[str] = (),
) -> Tuple[BaseStatement, ...]:
    """
    Rewrite the returns of ``body`` so it can run in place of a call.

    The final statement is treated as the tail return (an empty one is assumed
    when the body does not end in ``return``). Any other return becomes a jump
    to ``label``, which is then placed after the body. The body is wrapped in a
    block so the jumps never skip over declarations in the label's scope.
    """
    if not body:
        return tuple(body)

    rewriter = ReturnRewriter(label, captures, result_count, named_results)
    *leading, last = body
    if not isinstance(last, Return):
        leading.append(last)
        last = Return()

    tail = rewriter.replace_return(last)
    leading = Block(body=tuple(leading)).visit(rewriter).body
    statements = (*leading, *tail)
    if not rewriter.found_early_return:
        return statements

    log.debug(f"Redirecting early returns to {label}")
    return (Block(body=statements), Labeled(label=label, statement=Empty()))
