import argparse
import difflib
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.syntax import Syntax

from goinline import InlineError, inline_module, parse_module
from goinline._parser import MARKER
from goinline.driver import DEFAULT_SUFFIX, inline_package

log = logging.getLogger("goinline")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        prog="goinline",
        description="Inline Go functions marked with an inline comment.",
    )
    parser.add_argument("--diff", action="store_true", help="Print as diff")
    parser.add_argument("--out", default=None, help="Output directory")
    parser.add_argument(
        "--suffix", default=DEFAULT_SUFFIX, help="Output file suffix"
    )
    parser.add_argument(
        "--marker", default=MARKER, help="Comment text marking inline functions"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("path", action="store", help="Go file or package directory")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    console = Console()
    path = Path(args.path)

    try:
        if path.is_dir():
            for written in inline_package(path, args.out, args.suffix, args.marker):
                console.print(str(written), markup=False, highlight=False, soft_wrap=True)
            return 0

        source = path.read_bytes()
        source_tree = parse_module(source, marker=args.marker, path=str(path))
        modified_tree = inline_module(source_tree)
    except (InlineError, OSError) as e:
        log.error(f"{args.path}: {e}")
        return 1

    if args.diff:
        diff = "\n".join(
            difflib.unified_diff(
                source.decode("utf-8").splitlines(),
                modified_tree.code.splitlines(),
                fromfile=str(path),
                tofile=str(path),
                lineterm="",
            )
        )
        console.print(Syntax(diff, "diff"))
    else:
        console.print(Syntax(modified_tree.code, "go"))
    return 0


if __name__ == "__main__":
    sys.exit(main())
