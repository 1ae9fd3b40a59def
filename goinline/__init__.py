import logging
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union

from goinline._exceptions import (
    InlineError,
    MultiplePackagesError,
    ParserSyntaxError,
    RecursiveInlineError,
    UnsupportedConstructError,
)
from goinline._names import (
    argument_name,
    capture_names,
    exit_label,
    referenced_names,
    rename_labels,
)
from goinline._nodes import (
    Assign,
    BaseExpression,
    BaseStatement,
    Block,
    CaseClause,
    ExprStmt,
    Call,
    Field,
    FuncDecl,
    Labeled,
    Module,
    Name,
    ValueSpec,
    VarDecl,
)
from goinline._parser import MARKER, parse_module
from goinline._visitors import FlattenSentinel, RemovalSentinel, Transformer, Visitor
from goinline.fields import flatten_fields
from goinline.returns import rewrite_returns

log = logging.getLogger(__name__)

__all__ = [
    "MARKER",
    "FlattenSentinel",
    "InlineError",
    "InlineFunctionCollector",
    "InlineTransformer",
    "Module",
    "MultiplePackagesError",
    "ParserSyntaxError",
    "RecursiveInlineError",
    "RemovalSentinel",
    "Transformer",
    "UnsupportedConstructError",
    "Visitor",
    "extract_inline_functions",
    "flatten_fields",
    "inline_module",
    "inline_source",
    "parse_module",
    "rewrite_returns",
]


class InlineFunctionCollector(Transformer):
    """
    Moves every top-level function flagged ``inline`` out of the module and
    into ``inline_functions``, keyed by name.
    """

    def __init__(self) -> None:
        self.inline_functions: Dict[str, FuncDecl] = {}
        self._extracted: List[FuncDecl] = []
        super().__init__()

    def visit_FuncDecl(self, node: FuncDecl) -> Optional[bool]:
        if node.inline and self._can_inline(node):
            if node.name in self.inline_functions:
                log.warning(
                    f"Inline function {node.name} is declared more than once, "
                    "the last declaration wins"
                )
            log.debug(f"Extracting inline function {node.name}")
            self.inline_functions[node.name] = node.deep_clone()
            self._extracted.append(node)
        # Nested declarations are never inline candidates.
        return False

    def leave_FuncDecl(
        self, original_node: FuncDecl, updated_node: FuncDecl
    ) -> Union[FuncDecl, RemovalSentinel]:
        if any(original_node is extracted for extracted in self._extracted):
            return RemovalSentinel.REMOVE
        return updated_node

    def _can_inline(self, node: FuncDecl) -> bool:
        if node.receiver:
            log.warning(f"Ignoring inline marker on method {node.name}")
            return False
        if node.type_params:
            log.warning(f"Ignoring inline marker on generic function {node.name}")
            return False
        if node.body is None:
            log.warning(f"Ignoring inline marker on {node.name}, it has no body")
            return False
        return True


def extract_inline_functions(module: Module) -> Tuple[Module, Dict[str, FuncDecl]]:
    collector = InlineFunctionCollector()
    module = module.visit(collector)
    return module, collector.inline_functions


class InlineTransformer(Transformer):
    """
    Splices the body of inline functions into their call sites.

    A call site is a statement of the form ``targets := f(args)`` (or any
    other assignment operator) or ``f(args)`` where ``f`` names an inline
    function. Every statement list is scanned once, in order; the replacement
    statements are not scanned again. The callee is expanded with this same
    transformer first, so inline functions calling inline functions are fully
    inlined, and ``call_site_index`` keeps growing across the whole pass to
    keep generated names unique.
    """

    def __init__(self, inline_functions: Mapping[str, FuncDecl]) -> None:
        self.inline_functions = inline_functions
        self.call_site_index = 0
        self._expanding: List[str] = []
        super().__init__()

    def leave_Block(self, original_node: Block, updated_node: Block) -> Block:
        return updated_node.with_changes(body=self._inline_statements(updated_node.body))

    def leave_CaseClause(
        self, original_node: CaseClause, updated_node: CaseClause
    ) -> CaseClause:
        return updated_node.with_changes(body=self._inline_statements(updated_node.body))

    def _inline_statements(
        self, body: Sequence[BaseStatement]
    ) -> Tuple[BaseStatement, ...]:
        inlined: List[BaseStatement] = []
        for statement in body:
            if isinstance(statement, Labeled):
                replacement = self._inline_call_site(statement.statement)
                if replacement:
                    # The label now marks the start of the spliced code.
                    first, *rest = replacement
                    replacement = [statement.with_changes(statement=first), *rest]
            else:
                replacement = self._inline_call_site(statement)
            if replacement is None:
                inlined.append(statement)
            else:
                inlined.extend(replacement)
        return tuple(inlined)

    def _inline_call_site(
        self, statement: BaseStatement
    ) -> Optional[List[BaseStatement]]:
        if isinstance(statement, Assign):
            return self._inline_assignment(statement)
        if isinstance(statement, ExprStmt):
            call = self._match_call(statement.value)
            if call is not None:
                return self._inline_expression(call)
        return None

    def _match_call(self, node: BaseExpression) -> Optional[Call]:
        if (
            isinstance(node, Call)
            and isinstance(node.func, Name)
            and node.func.value in self.inline_functions
        ):
            return node
        return None

    def _next_call_site(self) -> int:
        index = self.call_site_index
        self.call_site_index += 1
        return index

    def _expand(self, name: str, index: int) -> FuncDecl:
        if name in self._expanding:
            raise RecursiveInlineError([*self._expanding, name])
        self._expanding.append(name)
        try:
            decl = self.inline_functions[name].deep_clone()
            body = Block(body=tuple(rename_labels(decl.body.body, index)))
            body = body.visit(self)
        finally:
            self._expanding.pop()
        return decl.with_changes(body=body)

    def _inline_assignment(self, node: Assign) -> Optional[List[BaseStatement]]:
        calls = [call for call in map(self._match_call, node.values) if call]
        if not calls:
            return None
        name = calls[0].func.value
        if len(node.values) > 1:
            raise UnsupportedConstructError(
                f"having more than a single RHS to a call to inline function "
                f"{name} is not supported"
            )
        call = calls[0]

        index = self._next_call_site()
        decl = self._expand(name, index)
        results = flatten_fields(decl.results)
        if len(node.targets) != len(results):
            raise UnsupportedConstructError(
                f"{name} returns {len(results)} values but "
                f"{len(node.targets)} are assigned"
            )
        log.debug(f"Replacing function call to {name} in an assignment")

        statements: List[BaseStatement] = []
        if node.is_define:
            declarations = self._declare_targets(name, node.targets, results)
            if declarations.specs:
                statements.append(declarations)

        captures = capture_names(name, index, results)
        body = rewrite_returns(
            decl.body.body,
            exit_label(name, index),
            captures=captures,
            result_count=len(results),
            named_results=self._named_results(results),
        )
        statements.append(
            Block(
                body=(
                    VarDecl(
                        specs=tuple(
                            ValueSpec(names=(capture,), type=result.type)
                            for capture, result in zip(captures, results)
                        )
                    ),
                    Block(body=(*self._bind(decl, call, index, body, results), *body)),
                    Assign(
                        targets=node.targets,
                        operator="=" if node.is_define else node.operator,
                        values=tuple(Name(capture) for capture in captures),
                    ),
                )
            )
        )
        return statements

    def _inline_expression(self, call: Call) -> List[BaseStatement]:
        name = call.func.value
        index = self._next_call_site()
        decl = self._expand(name, index)
        results = flatten_fields(decl.results)
        log.debug(f"Replacing function call to {name}")

        body = rewrite_returns(
            decl.body.body, exit_label(name, index), result_count=len(results)
        )
        return [Block(body=(*self._bind(decl, call, index, body, results), *body))]

    def _declare_targets(
        self, name: str, targets: Sequence[BaseExpression], results: Sequence[Field]
    ) -> VarDecl:
        specs = []
        for target, result in zip(targets, results):
            if not isinstance(target, Name):
                raise UnsupportedConstructError(
                    f"cannot declare a non-identifier from the results of {name}"
                )
            if target.value == "_":
                continue
            specs.append(ValueSpec(names=(target.value,), type=result.type))
        return VarDecl(specs=tuple(specs))

    def _named_results(self, results: Sequence[Field]) -> List[str]:
        if results and all(result.names for result in results):
            return [result.names[0] for result in results]
        return []

    def _bind(
        self,
        decl: FuncDecl,
        call: Call,
        index: int,
        body: Sequence[BaseStatement],
        results: Sequence[Field],
    ) -> List[BaseStatement]:
        """
        Declare the formal parameters of ``decl`` as fresh variables holding
        the call arguments, along with the named results the body refers to.
        A parameter the body never mentions is bound to ``_`` so its argument
        is still evaluated. When an argument reads a name that an earlier
        parameter rebinds, every argument is first evaluated into a temporary.
        """
        params = flatten_fields(decl.params)
        if call.ellipsis or any(param.is_variadic for param in params):
            raise UnsupportedConstructError(
                f"variadic calls to inline function {decl.name} are not supported"
            )
        if len(params) != len(call.args):
            raise UnsupportedConstructError(
                f"{decl.name} takes {len(params)} arguments but "
                f"{len(call.args)} were given"
            )

        used = referenced_names(body)
        names = []
        for param in params:
            name = param.names[0] if param.names else "_"
            names.append(name if name in used else "_")

        statements: List[BaseStatement] = []
        args: Sequence[BaseExpression] = call.args
        evaluate_first = self._shadows_arguments(names, call.args)
        if evaluate_first:
            log.debug(f"Evaluating arguments of {decl.name} before binding them")
            temporaries = [
                "_" if name == "_" else argument_name(decl.name, index, position)
                for position, name in enumerate(names)
            ]
            statements.append(
                VarDecl(
                    specs=tuple(
                        ValueSpec(names=(temporary,), type=param.type, values=(arg,))
                        for temporary, param, arg in zip(temporaries, params, call.args)
                    )
                )
            )
            args = [Name(temporary) for temporary in temporaries]

        specs = [
            ValueSpec(names=(name,), type=param.type, values=(arg,))
            for name, param, arg in zip(names, params, args)
            if not (evaluate_first and name == "_")
        ]
        declared = []
        for result in results:
            name = result.names[0] if result.names else "_"
            if name != "_" and name in used:
                specs.append(ValueSpec(names=(name,), type=result.type))
                declared.append(name)
        if specs:
            statements.append(VarDecl(specs=tuple(specs)))
        if declared:
            # A result the body only assigns still has to be read once.
            statements.append(
                Assign(
                    targets=tuple(Name("_") for _ in declared),
                    operator="=",
                    values=tuple(Name(name) for name in declared),
                )
            )
        return statements

    def _shadows_arguments(
        self, names: Sequence[str], args: Sequence[BaseExpression]
    ) -> bool:
        bound = set()
        for name, arg in zip(names, args):
            if bound & referenced_names([arg]):
                return True
            if name != "_":
                bound.add(name)
        return False


def inline_module(module: Module) -> Module:
    module, inline_functions = extract_inline_functions(module)
    if not inline_functions:
        return module
    return module.visit(InlineTransformer(inline_functions))


def inline_source(source: Union[str, bytes], marker: str = MARKER) -> str:
    return inline_module(parse_module(source, marker=marker)).code
