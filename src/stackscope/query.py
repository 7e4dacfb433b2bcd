"""Name and description filtering of stack summaries."""

from collections.abc import Iterable

from stackscope.models import StackSummary
from stackscope.options import QueryOptions


def text_contains(haystack: str, needle: str, ignore_case: bool) -> bool:
    """Substring test. An empty needle matches everything."""
    if not needle:
        return True
    if ignore_case:
        return needle.casefold() in haystack.casefold()
    return needle in haystack


def text_equals(left: str, right: str, ignore_case: bool) -> bool:
    if ignore_case:
        return left.casefold() == right.casefold()
    return left == right


def stack_matches(stack: StackSummary, options: QueryOptions) -> bool:
    if not text_contains(stack.stack_name, options.name_filter, options.ignore_case):
        return False

    description = stack.description or ""
    if options.desc_contains and not text_contains(
        description, options.desc_contains, options.ignore_case
    ):
        return False
    if options.desc_excludes and text_contains(
        description, options.desc_excludes, options.ignore_case
    ):
        return False
    return True


def filter_stacks(stacks: Iterable[StackSummary], options: QueryOptions) -> list[StackSummary]:
    """Keep stacks whose name and description satisfy ``options``, in input order."""
    return [stack for stack in stacks if stack_matches(stack, options)]
