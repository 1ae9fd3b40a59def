from typing import List, Optional, Sequence

from goinline._nodes import Field


def flatten_fields(fields: Optional[Sequence[Field]]) -> List[Field]:
    """
    Split grouped declarations so each field carries at most one name.

    Go accepts both ``(x int, y int)`` and ``(x, y int)``; positional mapping of
    arguments to parameters and of results to capture variables works on the
    former, so ``(x, y int)`` becomes ``[Field(["x"], "int"), Field(["y"], "int")]``.
    Nameless fields are kept as they are.
    """
    flattened: List[Field] = []
    for field in fields or ():
        if len(field.names) <= 1:
            flattened.append(field)
            continue
        flattened.extend(field.with_changes(names=(name,)) for name in field.names)
    return flattened
