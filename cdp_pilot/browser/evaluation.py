"""
Helpers for running JavaScript in a page and decoding what comes back.
"""
import json
import logging
import re
from typing import Any, Dict, Optional, Sequence

from .exceptions import RemoteEvaluationError

logger = logging.getLogger(__name__)

_FUNCTION_PATTERN = re.compile(
    r"""^\s*(async\s+)?(
        function\b                  # function () {} / function name() {}
        | \([^)]*\)\s*=>            # (a, b) => ...
        | [A-Za-z_$][\w$]*\s*=>     # a => ...
    )""",
    re.VERBOSE,
)

# Numbers JSON cannot carry, sent as unserializableValue
_UNSERIALIZABLE_NUMBERS = {
    "NaN": float("nan"),
    "Infinity": float("inf"),
    "-Infinity": float("-inf"),
    "-0": -0.0,
}


class _Undefined:
    """JavaScript ``undefined``, kept distinct from ``null`` (None)."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNDEFINED"


UNDEFINED = _Undefined()


def is_js_function(source: str) -> bool:
    """Tell whether ``source`` is the text of a JavaScript function."""
    return bool(_FUNCTION_PATTERN.match(source))


def build_expression(
    page_function: str,
    args: Optional[Sequence[Any]] = None,
    force_expr: bool = False,
) -> str:
    """
    Turn a function or expression into the expression sent to the page.

    Function source is invoked in place with its arguments serialized as
    JSON; anything else is sent untouched.

    Args:
        page_function: JavaScript function source or expression.
        args: Arguments for the function. Must be JSON serializable.
        force_expr: Send ``page_function`` as an expression even if it
            looks like a function.

    Raises:
        ValueError: If arguments are given with ``force_expr``.
        TypeError: If an argument cannot be serialized.
    """
    if force_expr:
        if args:
            raise ValueError("Arguments cannot be passed to an expression")
        return page_function

    if args is None and not is_js_function(page_function):
        return page_function

    serialized = ",".join(json.dumps(arg) for arg in (args or ()))
    return f"({page_function})({serialized})"


def unmarshal_result(response: Dict[str, Any]) -> Any:
    """
    Decode a ``Runtime.evaluate`` response into a Python value.

    Raises:
        RemoteEvaluationError: If the script threw.
    """
    details = response.get("exceptionDetails")
    if details:
        raise RemoteEvaluationError(details)

    result = response.get("result", {})
    result_type = result.get("type")

    if result_type == "bigint":
        return int(result["unserializableValue"][:-1])
    if result_type == "undefined":
        return UNDEFINED
    if result_type == "object" and result.get("subtype") == "null":
        return None

    unserializable = result.get("unserializableValue")
    if unserializable in _UNSERIALIZABLE_NUMBERS:
        return _UNSERIALIZABLE_NUMBERS[unserializable]

    return result.get("value")
