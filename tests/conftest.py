from pathlib import Path

import pytest

from goinline._nodes import Module

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def fixture_source():
    def load(name: str) -> str:
        return (FIXTURES / name).read_text(encoding="utf-8")

    return load


@pytest.fixture
def render():
    def code(node) -> str:
        return Module(package="main").code_for_node(node)

    return code
