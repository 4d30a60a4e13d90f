from __future__ import annotations

import textwrap

import pytest

from kedro_catalog.source.matcher import MatchResult, ReferenceMatcher
from kedro_catalog.source.syntax import SourceTree

IMPORT = "from kedro.pipeline import Pipeline, node, pipeline\n\n"


def classify(source: str, *, header: str = IMPORT) -> MatchResult:
    """Classify the element at the ``|`` marker of *source*."""

    text = header + textwrap.dedent(source).lstrip("\n")
    cursor = text.index("|")
    text = text.replace("|", "", 1)
    tree = SourceTree(text)
    element = tree.element_at(len(text[:cursor].encode("utf-8")))
    target = element.enclosing_string() or element
    return ReferenceMatcher().classify(target)


CONFIRMED = MatchResult.CONFIRMED_REFERENCE
POTENTIAL = MatchResult.POTENTIAL_REFERENCE
NOT_A_REFERENCE = MatchResult.NOT_A_REFERENCE


@pytest.mark.parametrize(
    "source, expected",
    [
        ('node(preprocess, "comp|anies", "preprocessed")', CONFIRMED),
        ('node(preprocess, "companies", "pre|processed")', CONFIRMED),
        ('node("pre|process", "companies", "preprocessed")', NOT_A_REFERENCE),
        ('node(preprocess, "companies", "preprocessed", "na|me")', NOT_A_REFERENCE),
        ('node(func=preprocess, inputs="comp|anies", outputs="out")', CONFIRMED),
        ('node(func=preprocess, inputs="companies", outputs="o|ut")', CONFIRMED),
        ('node(func=preprocess, input="comp|anies", output="out")', CONFIRMED),
        ('node(preprocess, "companies", "out", name="preprocess_|node")', NOT_A_REFERENCE),
        ('node(preprocess, ["companies", "shut|tles"], "out")', CONFIRMED),
        ('node(preprocess, inputs=["companies", "shut|tles"], outputs="out")', CONFIRMED),
        ('node(preprocess, inputs={"param": "comp|anies"}, outputs="out")', CONFIRMED),
        ('node(preprocess, inputs={"par|am": "companies"}, outputs="out")', NOT_A_REFERENCE),
        ('node(preprocess, str("comp|anies"), "out")', NOT_A_REFERENCE),
        ('make_pipeline(preprocess, "comp|anies", "out")', NOT_A_REFERENCE),
    ],
)
def test_closed_calls(source: str, expected: MatchResult) -> None:
    assert classify(source) is expected


def test_keyword_decides_over_position_in_mixed_arguments() -> None:
    assert classify('node(func, inputs="a|", 1, outputs="b")') is CONFIRMED
    assert classify('node(func, inputs="a", 1, outputs="b|")') is CONFIRMED
    assert classify('node(func, name="a|", outputs="b")') is NOT_A_REFERENCE


def test_attribute_and_aliased_callees() -> None:
    assert classify('pipeline.node(func, "comp|anies", "out")') is CONFIRMED
    header = "from kedro.pipeline import node as make_node\n\n"
    assert classify('make_node(func, "comp|anies", "out")', header=header) is CONFIRMED


def test_call_without_kedro_import_is_not_a_reference() -> None:
    assert classify('node(func, "comp|anies", "out")', header="") is NOT_A_REFERENCE
    header = "from helpers import node_helper\n\n"
    assert classify('node_helper(func, "comp|anies", "out")', header=header) is NOT_A_REFERENCE


def test_import_inside_a_function_counts() -> None:
    source = """
    def create_pipeline():
        from kedro.pipeline import node
        return [node(func, "comp|anies", "out")]
    """
    assert classify(source, header="") is CONFIRMED


@pytest.mark.parametrize(
    "source, expected",
    [
        ("node(func, |", POTENTIAL),
        ("node(func, inputs=|", POTENTIAL),
        ('node(func, "companies", |', POTENTIAL),
        ('node(func, ["companies", |', POTENTIAL),
        ('node(func, "ra|"', POTENTIAL),
        ("node(func, |)", POTENTIAL),
        ("node(|", NOT_A_REFERENCE),
        ('node(func, "a", "b", |', NOT_A_REFERENCE),
        ("node(func, name=|", NOT_A_REFERENCE),
        ("helper(func, |", NOT_A_REFERENCE),
        ('node(func, inputs={"par|', NOT_A_REFERENCE),
        ('node(func, inputs={"a": "x", "b|', NOT_A_REFERENCE),
        ('node(func, inputs={"param": |', POTENTIAL),
    ],
)
def test_unfinished_calls(source: str, expected: MatchResult) -> None:
    assert classify(source) is expected


def test_settings_drive_the_gates() -> None:
    header = "from acme.flow import step\n\n"
    text = header + 'step(func, "comp|anies", "out")'
    cursor = text.index("|")
    text = text.replace("|", "", 1)
    tree = SourceTree(text)
    string = tree.string_at(len(text[:cursor].encode("utf-8")))
    assert string is not None
    assert ReferenceMatcher().classify(string) is NOT_A_REFERENCE
    assert ReferenceMatcher(node_token="step", library="acme").classify(string) is CONFIRMED
