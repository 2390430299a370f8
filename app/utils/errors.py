from typing import Any, Optional


def _first_attr(obj: Any, *names: str) -> Optional[str]:
    for name in names:
        value = obj.get(name) if isinstance(obj, dict) else getattr(obj, name, None)
        if value:
            return str(value)
    return None


def extract_error_message(error: Any) -> str:
    """Normalize a persistence error into a single readable line.

    Recognises objects (or dicts) exposing ``message``, ``details``, ``hint``
    and ``code``; DBAPI errors wrapped by SQLAlchemy are unwrapped through
    ``orig`` first. Produces ``"message (details) Hint: hint [Code: code]"``
    with absent parts omitted, falling back to ``str(error)`` and then to
    ``"Unknown error"``.
    """
    if error is None:
        return "Unknown error"
    if isinstance(error, str):
        return error or "Unknown error"

    source = getattr(error, 'orig', None) or error
    # asyncpg exposes detail/hint/sqlstate on the driver exception
    message = _first_attr(source, 'message')
    details = _first_attr(source, 'details', 'detail')
    hint = _first_attr(source, 'hint')
    code = _first_attr(source, 'code', 'sqlstate', 'pgcode')

    if not message:
        text = str(source) if not isinstance(source, dict) else ''
        if not text and source is not error:
            text = str(error)
        message = text.strip() or None

    if not message:
        return "Unknown error"

    parts = [message]
    if details:
        parts.append(f"({details})")
    if hint:
        parts.append(f"Hint: {hint}")
    if code:
        parts.append(f"[Code: {code}]")
    return " ".join(parts)
