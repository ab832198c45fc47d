"""
Equality and subset-containment checks used when verifying recorded calls.

Exact comparison is deep structural equality: mappings by key, sequences by
position, exceptions by type and ``args``, and plain objects by their
instance state (``__dict__`` entries and slot values) when their type does
not define its own ``__eq__``. Functions, classes and modules are compared
with ``==``, never by their attributes. Subset comparison lets the actual
value carry extra keys or items that the expected value does not mention.
"""
import inspect
from collections.abc import Mapping, Set
from typing import Any, Dict, Optional, Tuple

from .constants import IgnoreParam
from .models import CallMode


def decide(call_subset: Optional[bool], always_subset: bool = False) -> CallMode:
    """
    Pick the comparison mode for one recorded call.

    A subset flag registered for this specific call wins; otherwise the
    "always" expectation's subset flag applies; otherwise exact.
    """
    if call_subset:
        return CallMode.SUBSET
    if call_subset is None and always_subset:
        return CallMode.SUBSET
    return CallMode.EXACT


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def _is_definition(value: Any) -> bool:
    return inspect.isroutine(value) or inspect.isclass(value) or inspect.ismodule(value)


def _slot_names(cls: type) -> Tuple[str, ...]:
    names = []
    for klass in cls.__mro__:
        slots = klass.__dict__.get("__slots__", ())
        if isinstance(slots, str):
            slots = (slots,)
        for name in slots:
            if name in ("__dict__", "__weakref__"):
                continue
            # Private slots are stored under their mangled name
            if name.startswith("__") and not name.endswith("__"):
                name = f"_{klass.__name__.lstrip('_')}{name}"
            names.append(name)
    return tuple(names)


def _instance_state(value: Any) -> Dict[str, Any]:
    state = dict(getattr(value, "__dict__", {}))
    for name in _slot_names(type(value)):
        if hasattr(value, name):
            state[name] = getattr(value, name)
    return state


def _has_plain_eq(value: Any) -> bool:
    if _is_definition(value) or isinstance(value, BaseException):
        return False
    if type(value).__eq__ is not object.__eq__:
        return False
    return hasattr(value, "__dict__") or bool(_slot_names(type(value)))


def deep_equal(actual: Any, expected: Any) -> bool:
    if expected is IgnoreParam:
        return True

    if isinstance(expected, Mapping):
        if not isinstance(actual, Mapping) or set(actual.keys()) != set(expected.keys()):
            return False
        return all(deep_equal(actual[key], expected[key]) for key in expected)

    if _is_sequence(expected):
        if not _is_sequence(actual) or len(actual) != len(expected):
            return False
        return all(deep_equal(a, e) for a, e in zip(actual, expected))

    if isinstance(expected, Set):
        return isinstance(actual, Set) and set(actual) == set(expected)

    if _is_definition(expected):
        return actual == expected

    if isinstance(expected, BaseException):
        return (type(actual) is type(expected)
                and deep_equal(list(actual.args), list(expected.args))
                and deep_equal(_instance_state(actual), _instance_state(expected)))

    if _has_plain_eq(expected) and type(actual) is type(expected):
        return actual is expected or deep_equal(_instance_state(actual), _instance_state(expected))

    try:
        return bool(actual == expected)
    except (TypeError, ValueError):
        return actual is expected


def is_subset(actual: Any, expected: Any) -> bool:
    """True when everything in `expected` is present and equal in `actual`."""
    if expected is IgnoreParam:
        return True

    if isinstance(expected, Mapping):
        if not isinstance(actual, Mapping):
            if _has_plain_eq(actual):
                actual = _instance_state(actual)
            else:
                return False
        return all(key in actual and is_subset(actual[key], value) for key, value in expected.items())

    if _is_sequence(expected):
        if not _is_sequence(actual):
            return False
        return all(any(is_subset(item, wanted) for item in actual) for wanted in expected)

    if _has_plain_eq(expected) and _has_plain_eq(actual):
        return is_subset(_instance_state(actual), _instance_state(expected))

    return deep_equal(actual, expected)
