import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

from goinline import InlineFunctionCollector, InlineTransformer
from goinline._exceptions import InlineError, MultiplePackagesError
from goinline._nodes import Module
from goinline._parser import MARKER, parse_module

log = logging.getLogger(__name__)

DEFAULT_SUFFIX = "inlined"


def output_path(source: Path, out_dir: Path, suffix: str) -> Path:
    return out_dir / f"{source.stem}_{suffix}{source.suffix}"


def collect_sources(directory: Path, suffix: str = DEFAULT_SUFFIX) -> List[Path]:
    """Go files of ``directory``, skipping outputs of a previous run."""
    return sorted(
        path
        for path in directory.glob("*.go")
        if path.is_file() and not path.stem.endswith(f"_{suffix}")
    )


def inline_package(
    directory: Union[str, Path],
    out_dir: Optional[Union[str, Path]] = None,
    suffix: str = DEFAULT_SUFFIX,
    marker: str = MARKER,
) -> List[Path]:
    """
    Inline every marked function of the Go package in ``directory`` and write
    each file as ``<name>_<suffix>.go`` into ``out_dir`` (``directory`` by
    default). Inline functions are shared by all files of the package. Nothing
    is written unless every file was transformed.
    """
    directory = Path(directory)
    out_dir = directory if out_dir is None else Path(out_dir)

    modules: Dict[Path, Module] = {}
    for path in collect_sources(directory, suffix):
        log.debug(f"Parsing {path}")
        modules[path] = parse_module(path.read_bytes(), marker=marker, path=str(path))

    packages = {module.package for module in modules.values()}
    if len(packages) > 1:
        raise MultiplePackagesError(packages)

    collector = InlineFunctionCollector()
    modules = {path: module.visit(collector) for path, module in modules.items()}
    log.info(
        f"Found {len(collector.inline_functions)} inline functions in {directory}"
    )

    transformer = InlineTransformer(collector.inline_functions)
    outputs: Dict[Path, str] = {}
    for path, module in modules.items():
        try:
            outputs[output_path(path, out_dir, suffix)] = module.visit(transformer).code
        except InlineError as e:
            log.error(f"Inlining {path} failed: {e}")
            raise

    out_dir.mkdir(parents=True, exist_ok=True)
    for path, code in outputs.items():
        log.debug(f"Writing {path}")
        path.write_text(code, encoding="utf-8")
    return list(outputs)
