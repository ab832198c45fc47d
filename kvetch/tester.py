"""
Assertion adapter that turns comparator verdicts into ComparisonErrors.
"""
from typing import Any

from rich.pretty import pretty_repr

from . import comparator
from .errors import ComparisonError, ERROR_MESSAGES, FAILED_SUBSET_CHECK


class Tester:
    """Performs the pass/fail signaling for one argument comparison"""

    def __init__(self, max_width: int = 88):
        self.max_width = max_width

    def should_equal(self, actual: Any, expected: Any, message: str,
                     using_always: bool = False, no_debug: bool = False) -> None:
        if not comparator.deep_equal(actual, expected):
            raise self._failure(message, actual, expected, using_always, no_debug)

    def should_be_subset(self, actual: Any, expected: Any, message: str,
                         using_always: bool = False, no_debug: bool = False) -> None:
        if not comparator.is_subset(actual, expected):
            raise self._failure(f"{message} {FAILED_SUBSET_CHECK}", actual, expected, using_always, no_debug)

    def _failure(self, message: str, actual: Any, expected: Any,
                 using_always: bool, no_debug: bool) -> ComparisonError:
        entry = ERROR_MESSAGES["ComparisonShouldEqual"]
        if using_always:
            message = f"{message} (expectation set with 'should_always_be_called_with')"
        if not no_debug:
            message = "\n".join([
                message,
                f"  expected: {pretty_repr(expected, max_width=self.max_width)}",
                f"  actual:   {pretty_repr(actual, max_width=self.max_width)}",
            ])
        return ComparisonError(message, code=entry.code, name=entry.name)
