"""
Correctors for values read from external combatant records.

A record coming from disk or from a caller may carry anything: strings
where numbers belong, NaN hit points, a sword where a mapping was
expected. Each corrector below returns a usable value and reports what it
changed as a catchery warning, so a bad record degrades a combatant
instead of aborting the encounter.
"""

import math
from typing import Any, Optional

from catchery import log_warning


def _warn(
    message: str,
    param_name: str,
    context: Optional[dict[str, Any]],
    **details: Any,
) -> None:
    log_warning(message, {**(context or {}), "param_name": param_name, **details})


def _as_number(value: Any) -> Optional[float]:
    """Reads ints, finite floats and numeric strings; None for anything else."""
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if not isinstance(value, (int, float)) or not math.isfinite(value):
        return None
    return float(value)


def ensure_string(
    value: Any,
    param_name: str,
    default: str = "",
    context: Optional[dict[str, Any]] = None,
) -> str:
    """Returns `value` as text; None becomes `default`, other types are stringified."""
    if value is None:
        return default
    if isinstance(value, str):
        return value
    _warn(
        f"{param_name} should be text, got {type(value).__name__}, converting",
        param_name,
        context,
        value=value,
    )
    return str(value)


def ensure_int_in_range(
    value: Any,
    param_name: str,
    min_val: int,
    max_val: Optional[int] = None,
    default: Optional[int] = None,
    context: Optional[dict[str, Any]] = None,
) -> int:
    """
    Reads an integer and clamps it into [min_val, max_val].

    Args:
        value (Any): The raw value.
        param_name (str): Field name used in the warning.
        min_val (int): Inclusive lower bound.
        max_val (Optional[int]): Inclusive upper bound, None for unbounded.
        default (Optional[int]): Used when the value is missing or not a
            number. Defaults to `min_val`.
        context (Optional[dict[str, Any]]): Extra fields for the warning.

    Returns:
        int: The value, truncated towards zero and clamped.

    """
    fallback = min_val if default is None else default
    if value is None:
        return fallback
    number = _as_number(value)
    if number is None:
        _warn(
            f"{param_name} is not a usable number ({value!r}), using {fallback}",
            param_name,
            context,
            value=value,
            corrected_to=fallback,
        )
        return fallback
    result = int(number)
    if result < min_val:
        clamped = min_val
    elif max_val is not None and result > max_val:
        clamped = max_val
    else:
        return result
    _warn(
        f"{param_name} {value} is out of range [{min_val}, {max_val if max_val is not None else '...'}], "
        f"clamping to {clamped}",
        param_name,
        context,
        value=value,
        min_val=min_val,
        max_val=max_val,
        corrected_to=clamped,
    )
    return clamped


def ensure_non_negative_int(
    value: Any,
    param_name: str,
    default: int = 0,
    context: Optional[dict[str, Any]] = None,
) -> int:
    """Shorthand for an unbounded `ensure_int_in_range` starting at zero."""
    return ensure_int_in_range(value, param_name, 0, None, default, context)


def ensure_list_of_strings(
    value: Any,
    param_name: str,
    default: Optional[list[str]] = None,
    context: Optional[dict[str, Any]] = None,
) -> list[str]:
    """
    Reads a list of names, such as an inventory.

    A lone string is treated as a one-element list. Items that are not
    text are dropped, each with its own warning.
    """
    if value is None:
        return list(default or [])
    if isinstance(value, str):
        return [value]
    if not isinstance(value, (list, tuple, set, frozenset)):
        _warn(
            f"{param_name} should be a list, got {type(value).__name__}, using default",
            param_name,
            context,
            value=value,
        )
        return list(default or [])
    names: list[str] = []
    for index, item in enumerate(value):
        if isinstance(item, str):
            names.append(item)
        else:
            _warn(
                f"{param_name}[{index}] is not text, dropping {item!r}",
                param_name,
                context,
                index=index,
                item=item,
            )
    return names


def ensure_mapping(
    value: Any,
    param_name: str,
    context: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    """Returns `value` if it is a dict, otherwise an empty one."""
    if value is None:
        return {}
    if isinstance(value, dict):
        return value
    _warn(
        f"{param_name} should be a mapping, got {type(value).__name__}, ignoring it",
        param_name,
        context,
        value=value,
    )
    return {}
