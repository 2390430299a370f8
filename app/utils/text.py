import re
import unicodedata
from typing import Optional

_PUNCTUATION = re.compile(r"[^\w\s]", re.UNICODE)
_WHITESPACE = re.compile(r"\s+")


def normalize_text(value: Optional[str]) -> str:
    """Lowercase, fold Vietnamese diacritics and collapse punctuation/whitespace.

    ``"Mã đơn hàng"`` and ``"ma don-hang "`` both normalize to ``"ma don hang"``.
    """
    if value is None:
        return ""
    text = str(value).lower().replace("đ", "d")
    text = unicodedata.normalize("NFD", text)
    text = "".join(ch for ch in text if unicodedata.category(ch) != "Mn")
    text = _PUNCTUATION.sub(" ", text)
    # \w keeps underscores; treat them as separators too
    text = text.replace("_", " ")
    return _WHITESPACE.sub(" ", text).strip()
