import pytest

from goinline import UnsupportedConstructError
from goinline._nodes import (
    Assign,
    Block,
    Branch,
    Call,
    ExprStmt,
    FuncLit,
    If,
    Labeled,
    Name,
    Return,
    Verbatim,
)
from goinline.returns import rewrite_returns


def test_empty_body_is_unchanged():
    assert rewrite_returns((), "f_return_0", captures=["_r"]) == ()


def test_tail_return_is_captured():
    body = (Return(results=(Verbatim("a + b"), Verbatim("a - b"))),)
    assert rewrite_returns(body, "f_return_0", captures=["_r0", "_r1"]) == (
        Assign(targets=(Name("_r0"),), operator="=", values=(Verbatim("a + b"),)),
        Assign(targets=(Name("_r1"),), operator="=", values=(Verbatim("a - b"),)),
    )


def test_missing_tail_return_is_anchored_and_dropped():
    body = (ExprStmt(value=Call(func=Verbatim("fmt.Println"))),)
    assert rewrite_returns(body, "f_return_0") == body


def test_multi_valued_tail_return():
    body = (Return(results=(Call(func=Name("pair")),)),)
    assert rewrite_returns(body, "f_return_0", captures=["_r0", "_r1"]) == (
        Assign(
            targets=(Name("_r0"), Name("_r1")),
            operator="=",
            values=(Call(func=Name("pair")),),
        ),
    )


def test_bare_return_uses_named_results():
    body = (Assign(targets=(Name("q"),), operator="=", values=(Verbatim("1"),)), Return())
    rewritten = rewrite_returns(
        body, "f_return_0", captures=["_rq"], result_count=1, named_results=["q"]
    )
    assert rewritten[-1] == Assign(targets=(Name("_rq"),), operator="=", values=(Name("q"),))


def test_mismatched_return_is_unsupported():
    body = (Return(results=(Verbatim("1"), Verbatim("2"))),)
    with pytest.raises(UnsupportedConstructError):
        rewrite_returns(body, "f_return_0", captures=["_r0", "_r1", "_r2"])


def test_discarded_results_keep_side_effects():
    body = (Return(results=(Call(func=Name("g")),)),)
    assert rewrite_returns(body, "f_return_0", result_count=2) == (
        Assign(
            targets=(Name("_"), Name("_")), operator="=", values=(Call(func=Name("g")),)
        ),
    )


def test_discarded_identifiers_are_dropped():
    body = (Return(results=(Name("x"),)),)
    assert rewrite_returns(body, "f_return_0", result_count=1) == ()


def test_early_return_jumps_to_label(render):
    body = (
        If(header="x < 0", body=Block(body=(Return(results=(Verbatim("-x"),)),))),
        Return(results=(Name("x"),)),
    )
    rewritten = rewrite_returns(body, "abs_return_3", captures=["_abs_rv3_0"])
    assert rewritten[-1] == Labeled(label="abs_return_3")
    assert render(Block(body=rewritten)) == (
        "{\n"
        "\t{\n"
        "\t\tif x < 0 {\n"
        "\t\t\t_abs_rv3_0 = -x\n"
        "\t\t\tgoto abs_return_3\n"
        "\t\t}\n"
        "\t\t_abs_rv3_0 = x\n"
        "\t}\n"
        "abs_return_3:\n"
        "}\n"
    )


def test_early_return_in_discard_mode_is_a_jump():
    body = (
        If(header="done", body=Block(body=(Return(),))),
        ExprStmt(value=Call(func=Name("work"))),
    )
    block, label = rewrite_returns(body, "f_return_1")
    assert label == Labeled(label="f_return_1")
    assert block.body[0].body.body == (Branch(keyword="goto", label="f_return_1"),)


def test_returns_inside_closures_are_untouched():
    closure = FuncLit(
        signature="() int", body=Block(body=(Return(results=(Verbatim("1"),)),))
    )
    body = (
        Assign(targets=(Name("g"),), operator=":=", values=(closure,)),
        Return(results=(Call(func=Name("g")),)),
    )
    rewritten = rewrite_returns(body, "f_return_0", captures=["_r"])
    assert rewritten[0] == body[0]
    assert not any(isinstance(statement, Labeled) for statement in rewritten)


def test_labeled_return_becomes_block():
    body = (
        Labeled(label="again", statement=Return(results=(Verbatim("1"),))),
        Return(results=(Verbatim("2"),)),
    )
    block, _ = rewrite_returns(body, "f_return_0", captures=["_r"])
    assert block.body[0] == Labeled(
        label="again",
        statement=Block(
            body=(
                Assign(targets=(Name("_r"),), operator="=", values=(Verbatim("1"),)),
                Branch(keyword="goto", label="f_return_0"),
            )
        ),
    )
