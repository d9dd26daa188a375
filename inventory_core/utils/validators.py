# utils/validators.py
from ..errors import ValidationError


def non_empty(text: str) -> bool:
    """
    True if `text` is not None/empty after stripping whitespace.
    """
    return bool(text and str(text).strip())


# ---- Numeric parsing & validators ----

def try_parse_float(x):
    """
    Best-effort parse to float.

    Returns:
        (ok: bool, value: float|None)

    ok == False means parsing failed and value is None.
    """
    try:
        return True, float(x)
    except (TypeError, ValueError):
        return False, None


def is_non_negative_number(x) -> bool:
    """
    True iff x parses to a float and value >= 0.
    """
    ok, val = try_parse_float(x)
    return bool(ok and val is not None and val >= 0)


def is_strictly_positive_number(x) -> bool:
    """
    True iff x parses to a float and value > 0.
    """
    ok, val = try_parse_float(x)
    return bool(ok and val is not None and val > 0)


# ---- Raising variants used by the ledger services ----

def require_text(value, label: str) -> str:
    if not non_empty(value):
        raise ValidationError(f"{label} is required.")
    return str(value).strip()


def require_positive(value, label: str) -> float:
    if not is_strictly_positive_number(value):
        raise ValidationError(f"{label} must be greater than zero.")
    return float(value)


def require_non_negative(value, label: str) -> float:
    if not is_non_negative_number(value):
        raise ValidationError(f"{label} cannot be negative.")
    return float(value)


def require_choice(value, choices, label: str) -> str:
    if value not in choices:
        allowed = ", ".join(str(c) for c in choices)
        raise ValidationError(f"Invalid {label} {value!r}; expected one of: {allowed}.")
    return value
