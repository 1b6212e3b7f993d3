import re
import unicodedata

_WHITESPACE = re.compile(r"\s+")


def normalize_query(query: str | None) -> str:
    """Cache key for *query*: accents stripped, lowercased, whitespace collapsed.

    >>> normalize_query("  Cálculo   de  JUROS ")
    'calculo de juros'
    """
    if query is None:
        return ""
    decomposed = unicodedata.normalize("NFD", query)
    stripped = "".join(ch for ch in decomposed if not unicodedata.category(ch).startswith("M"))
    return _WHITESPACE.sub(" ", stripped.lower()).strip()
