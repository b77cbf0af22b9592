"""Spanish-aware sparse term-frequency vectors.

Tokens are accent-stripped, lowercased and lightly stemmed so that
"configuración" and "configuraciones" land on the same term.
"""

import re
import unicodedata
from collections import Counter

# Splits on anything that is not an ASCII letter/digit or a Spanish letter.
_TOKEN_SPLIT = re.compile(r"[^a-zA-Z0-9áéíóúÁÉÍÓÚñÑüÜ]+")
_COMBINING_MARKS = re.compile(r"[\u0300-\u036f]")

STOPWORDS = frozenset({
    "de", "la", "el", "los", "las", "y", "o", "en", "un", "una", "que",
    "con", "por", "para", "del", "al", "se", "es", "su", "sus", "como",
    "si", "no", "lo", "le", "les", "ya", "mas", "muy",
})

# Order matters: longer, more specific suffixes first.
SUFFIXES = (
    "mente", "ciones", "cion", "siones", "sion", "adores", "adora", "ador",
    "acion", "ando", "iendo", "ados", "adas", "ado", "ada", "idos", "idas",
    "ido", "ida", "ar", "er", "ir", "es", "s",
)

MIN_TOKEN_LENGTH = 2


def strip_diacritics(text: str) -> str:
    return _COMBINING_MARKS.sub("", unicodedata.normalize("NFD", text))


def normalize_token(token: str) -> str:
    return strip_diacritics(token).lower().strip()


def stem_token(token: str) -> str:
    """Strip at most one known suffix, keeping a stem of 3+ characters."""
    for suffix in SUFFIXES:
        if token.endswith(suffix) and len(token) > len(suffix) + 2:
            return token[: -len(suffix)]
    return token


def split_words(text: str) -> list[str]:
    """Split on non-alphanumeric boundaries and normalize each piece."""
    return [normalize_token(part) for part in _TOKEN_SPLIT.split(text or "") if part]


def tokenize(text: str) -> list[str]:
    stems = (stem_token(word) for word in split_words(text))
    return [t for t in stems if len(t) >= MIN_TOKEN_LENGTH and t not in STOPWORDS]


def build_lexical_vector(text: str) -> dict[str, float]:
    """Build a term-frequency vector whose weights sum to 1.

    Args:
        text (str): Chunk content or query text.

    Returns:
        dict[str, float]: token -> count / total tokens. Empty when no token survives.
    """
    tokens = tokenize(text)
    if not tokens:
        return {}
    total = len(tokens)
    return {token: count / total for token, count in Counter(tokens).items()}
