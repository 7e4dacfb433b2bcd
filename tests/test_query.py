"""Tests for stack name/description filtering."""

from stackscope.models import StackSummary
from stackscope.options import QueryOptions
from stackscope.query import filter_stacks, text_contains


def _stack(name, description=""):
    return StackSummary(
        stack_name=name,
        stack_id=f"arn:aws:cloudformation:us-east-1:123:stack/{name}/uuid",
        status="CREATE_COMPLETE",
        description=description,
    )


STACKS = [
    _stack("prod-api", "Production API"),
    _stack("prod-web", "Production website (legacy)"),
    _stack("dev-api", "Development API"),
    _stack("Shared-Network"),
]


def _names(stacks):
    return [s.stack_name for s in stacks]


def test_empty_filters_keep_everything_in_order():
    assert _names(filter_stacks(STACKS, QueryOptions())) == _names(STACKS)


def test_name_substring():
    result = filter_stacks(STACKS, QueryOptions(name_filter="api"))
    assert _names(result) == ["prod-api", "dev-api"]


def test_name_filter_is_case_sensitive_by_default():
    assert filter_stacks(STACKS, QueryOptions(name_filter="shared")) == []


def test_ignore_case_applies_to_name():
    result = filter_stacks(STACKS, QueryOptions(name_filter="shared", ignore_case=True))
    assert _names(result) == ["Shared-Network"]


def test_description_contains():
    result = filter_stacks(STACKS, QueryOptions(desc_contains="Production"))
    assert _names(result) == ["prod-api", "prod-web"]


def test_description_excludes():
    result = filter_stacks(STACKS, QueryOptions(desc_excludes="legacy"))
    assert "prod-web" not in _names(result)
    assert "Shared-Network" in _names(result)


def test_description_contains_and_excludes_together():
    options = QueryOptions(desc_contains="production", desc_excludes="LEGACY", ignore_case=True)
    assert _names(filter_stacks(STACKS, options)) == ["prod-api"]


def test_missing_description_treated_as_empty():
    result = filter_stacks(STACKS, QueryOptions(desc_contains="API"))
    assert "Shared-Network" not in _names(result)


def test_filter_is_idempotent():
    options = QueryOptions(name_filter="prod", desc_excludes="legacy")
    once = filter_stacks(STACKS, options)
    assert filter_stacks(once, options) == once


def test_text_contains_empty_needle():
    assert text_contains("anything", "", ignore_case=False)
