from typing import Any


def reject_null(value: Any) -> Any:
    """
    For PATCH schemas: a field may be omitted, but an explicit null is only
    allowed where the column itself is nullable.
    """
    if value is None:
        raise ValueError("may not be null")
    return value
