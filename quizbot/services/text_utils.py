import re
import unicodedata


def strip_diacritics(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_text(text: str | None) -> str:
    """Trim, casefold, drop diacritics and collapse whitespace: "  Défi! " -> "defi!"."""
    if not text:
        return ""
    normalized = strip_diacritics(text.strip().casefold())
    return re.sub(r"\s+", " ", normalized)


def normalize_token(text: str | None) -> str:
    """Normalize a short answer token, also trimming surrounding punctuation ("1." -> "1")."""
    normalized = normalize_text(text)
    return re.sub(r"^[^\w]+|[^\w]+$", "", normalized)


def contains_token(text: str | None, token: str) -> bool:
    """Case- and accent-insensitive substring test: "Les JEUX" contains "jeu"."""
    needle = normalize_text(token)
    return bool(needle) and needle in normalize_text(text)
