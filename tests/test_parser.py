import pytest

from goinline import ParserSyntaxError, parse_module
from goinline._nodes import (
    Assign,
    Call,
    Comment,
    Field,
    For,
    FuncDecl,
    FuncLit,
    If,
    Labeled,
    Name,
    RawDecl,
    RawStatement,
    Return,
    Switch,
    Verbatim,
)

FIXTURES = [
    "multi_return.go",
    "nested.go",
    "early_return.go",
    "recursive.go",
    "named_results.go",
    "bindings.go",
]


@pytest.mark.parametrize("name", FIXTURES)
def test_fixtures_round_trip(fixture_source, name):
    source = fixture_source(name)
    assert parse_module(source).code == source


def test_declarations_and_marker(fixture_source):
    module = parse_module(fixture_source("multi_return.go"))
    assert module.package == "main"
    imports, calcs, main = module.body
    assert imports == RawDecl(text='import "fmt"')
    assert isinstance(calcs, FuncDecl)
    assert calcs.inline
    assert calcs.leading_lines == ("// [always_inline]",)
    assert calcs.params == (Field(names=("a", "b"), type="int"),)
    assert calcs.results == (Field(names=(), type="int"),) * 3
    assert not main.inline
    assert main.results is None


def test_call_sites_are_structured(fixture_source):
    module = parse_module(fixture_source("multi_return.go"))
    assignment = module.body[2].body.body[0]
    assert assignment == Assign(
        targets=(Name("a"), Name("b"), Name("c")),
        operator=":=",
        values=(Call(func=Name("calcs"), args=(Verbatim("7"), Verbatim("9"))),),
    )


def test_single_unnamed_result(fixture_source):
    module = parse_module(fixture_source("nested.go"))
    sum_decl = module.body[1]
    assert sum_decl.name == "sum"
    assert sum_decl.results == (Field(names=(), type="int"),)
    assert sum_decl.body.body == (Return(results=(Verbatim("a + b"),)),)


def test_custom_marker():
    source = "package p\n\n//go:inline\nfunc f() {\n}\n\n// [always_inline]\nfunc g() {\n}\n"
    module = parse_module(source, marker="go:inline")
    assert [decl.inline for decl in module.body] == [True, False]


def test_control_flow_statements():
    source = (
        "package p\n"
        "\n"
        "func f(xs []int, ch chan int) (total int) {\n"
        "\t// sum everything\n"
        "\tfor _, x := range xs {\n"
        "\t\tif x < 0 {\n"
        "\t\t\tcontinue\n"
        "\t\t} else if x == 0 {\n"
        "\t\t\tbreak\n"
        "\t\t} else {\n"
        "\t\t\ttotal += x\n"
        "\t\t}\n"
        "\t}\n"
        "\tswitch total {\n"
        "\tcase 1, 2:\n"
        "\t\ttotal++\n"
        "\tdefault:\n"
        "\t\tgoto done\n"
        "\t}\n"
        "\tdefer func() {\n"
        "\t\tclose(ch)\n"
        "\t}()\n"
        "done:\n"
        "\treturn\n"
        "}\n"
    )
    module = parse_module(source)
    assert module.code == source

    comment, loop, switch, deferred, labeled = module.body[0].body.body
    assert comment == Comment(text="// sum everything")
    assert isinstance(loop, For)
    assert loop.header == "_, x := range xs"
    condition = loop.body.body[0]
    assert isinstance(condition, If)
    assert isinstance(condition.orelse, If)
    assert isinstance(switch, Switch)
    assert [case.header for case in switch.cases] == ["case 1, 2", "default"]
    assert switch.cases[0].body == (RawStatement(text="total++"),)
    assert isinstance(deferred.value, Call)
    assert isinstance(deferred.value.func, FuncLit)
    assert labeled == Labeled(label="done", statement=Return())


def test_variadic_and_method_declarations():
    source = (
        "package p\n"
        "\n"
        "func (s *Stack) Push(vs ...int) {\n"
        "\ts.items = append(s.items, vs...)\n"
        "}\n"
    )
    decl = parse_module(source).body[0]
    assert decl.receiver == "(s *Stack)"
    assert decl.params == (Field(names=("vs",), type="...int"),)
    assert decl.params[0].is_variadic
    append = decl.body.body[0].values[0]
    assert append.ellipsis


def test_syntax_error_reports_position():
    with pytest.raises(ParserSyntaxError) as excinfo:
        parse_module("package p\n\nfunc f( {\n}\n", path="broken.go")
    assert excinfo.value.line >= 3
    assert "broken.go" in str(excinfo.value)


def test_identifiers_are_recorded():
    source = (
        "package p\n"
        "\n"
        "func f(t T) {\n"
        '\tfmt.Println("n is", t.n)\n'
        "\tif v := g(t); v > limit {\n"
        "\t}\n"
        "}\n"
    )
    printed, branch = parse_module(source).body[0].body.body
    text, selector = printed.value.args
    assert text.names == ()
    assert set(selector.names) == {"t"}
    assert set(branch.header_names) == {"v", "g", "t", "limit"}
