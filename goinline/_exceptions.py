from typing import Optional


class InlineError(ValueError):
    pass


class UnsupportedConstructError(InlineError):
    pass


class RecursiveInlineError(InlineError):
    def __init__(self, chain) -> None:
        self.chain = list(chain)
        super().__init__(
            f"Inline functions cannot be recursive: {' -> '.join(self.chain)}"
        )


class MultiplePackagesError(InlineError):
    def __init__(self, packages) -> None:
        self.packages = sorted(packages)
        super().__init__(
            "having multiple packages in the same directory is not supported "
            f"(found {', '.join(self.packages)})"
        )


class ParserSyntaxError(InlineError):
    def __init__(
        self, message: str, line: int, column: int, path: Optional[str] = None
    ) -> None:
        self.message = message
        self.line = line
        self.column = column
        self.path = path
        super().__init__(str(self))

    def __str__(self) -> str:
        location = f"{self.line}:{self.column}"
        if self.path:
            location = f"{self.path}:{location}"
        return f"Syntax Error @ {location}: {self.message}"
