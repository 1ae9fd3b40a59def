import shutil
import subprocess

import pytest

from goinline import inline_source

pytestmark = pytest.mark.skipif(
    shutil.which("go") is None, reason="the Go toolchain is not installed"
)


def go_run(directory, source):
    directory.mkdir()
    (directory / "main.go").write_text(source, encoding="utf-8")
    completed = subprocess.run(
        ["go", "run", "main.go"],
        cwd=directory,
        capture_output=True,
        text=True,
        timeout=300,
    )
    assert completed.returncode == 0, completed.stderr
    return completed.stdout


@pytest.mark.parametrize(
    "name, expected",
    [
        ("multi_return.go", "16 -2 63\n"),
        ("nested.go", "16 -2 63\n"),
        ("early_return.go", "negative\nvalue 4\n10 0 5\n"),
        ("named_results.go", "3 2 6 right left\n0\n"),
        ("bindings.go", "-7\n4\nn is 7\n"),
    ],
)
def test_inlined_program_behaves_the_same(tmp_path, fixture_source, name, expected):
    source = fixture_source(name)
    inlined = inline_source(source)
    assert go_run(tmp_path / "original", source) == expected
    assert go_run(tmp_path / "inlined", inlined) == expected
