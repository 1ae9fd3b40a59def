import pytest

from goinline import MultiplePackagesError, RecursiveInlineError
from goinline.driver import collect_sources, inline_package, output_path

HELPERS = """package calc

// [always_inline]
func double(v int) int {
	return v * 2
}

func Exported(v int) int {
	return v
}
"""

USES = """package calc

func Quad(v int) int {
	d := double(v)
	q := double(d)
	return q
}

func Twice(v int) (r int) {
	r = double(v)
	return
}
"""


def write(directory, name, source):
    path = directory / name
    path.write_text(source, encoding="utf-8")
    return path


def test_output_path(tmp_path):
    assert output_path(tmp_path / "main.go", tmp_path / "out", "inlined") == (
        tmp_path / "out" / "main_inlined.go"
    )


def test_previous_outputs_are_skipped(tmp_path):
    write(tmp_path, "a.go", HELPERS)
    write(tmp_path, "a_inlined.go", HELPERS)
    write(tmp_path, "notes.txt", "")
    assert collect_sources(tmp_path) == [tmp_path / "a.go"]


def test_inline_functions_are_shared_across_files(tmp_path):
    write(tmp_path, "helpers.go", HELPERS)
    write(tmp_path, "uses.go", USES)
    out_dir = tmp_path / "out"

    written = inline_package(tmp_path, out_dir)

    assert sorted(path.name for path in written) == [
        "helpers_inlined.go",
        "uses_inlined.go",
    ]
    helpers = (out_dir / "helpers_inlined.go").read_text()
    assert "func double" not in helpers
    assert "func Exported" in helpers
    uses = (out_dir / "uses_inlined.go").read_text()
    assert "double(" not in uses
    assert "_double_rv0_0 = v * 2" in uses
    assert "r = _double_rv2_0" in uses


def test_outputs_default_to_package_directory(tmp_path):
    write(tmp_path, "helpers.go", HELPERS)
    inline_package(tmp_path, suffix="flat")
    assert (tmp_path / "helpers_flat.go").exists()
    # A second run ignores its own output.
    inline_package(tmp_path, suffix="flat")
    assert not (tmp_path / "helpers_flat_flat.go").exists()


def test_multiple_packages_are_rejected(tmp_path):
    write(tmp_path, "a.go", HELPERS)
    write(tmp_path, "b.go", "package other\n")
    with pytest.raises(MultiplePackagesError) as excinfo:
        inline_package(tmp_path)
    assert excinfo.value.packages == ["calc", "other"]
    assert not list(tmp_path.glob("*_inlined.go"))


def test_failed_package_writes_nothing(tmp_path, fixture_source):
    write(tmp_path, "a.go", HELPERS)
    write(tmp_path, "b.go", fixture_source("recursive.go").replace("package main", "package calc"))
    with pytest.raises(RecursiveInlineError):
        inline_package(tmp_path)
    assert not list(tmp_path.glob("*_inlined.go"))
