"""Question normalization and coarse topic derivation for analytics."""

import re
import unicodedata
from collections import Counter

from shared.retrieval.lexical import split_words, strip_diacritics

_NON_WORD = re.compile(r"[^\w\s]")

TOPIC_STOPWORDS = frozenset({
    "de", "la", "el", "los", "las", "y", "o", "en", "un", "una", "que",
    "con", "por", "para", "del", "al", "se", "es", "su", "sus", "como",
    "si", "no", "lo", "le", "les", "ya", "mas", "muy", "cual", "donde",
    "cuando",
})

MIN_TOPIC_TOKEN_LENGTH = 3
TOPIC_TOKEN_COUNT = 3
GENERAL_TOPIC_KEY = "general"
GENERAL_TOPIC_LABEL = "General"


def normalize_question(text: str) -> str:
    """Accent-, case- and punctuation-insensitive form of a question.

    "¿Cómo Funciona?" and "como   funciona" both become "como funciona".
    Letters of any script are kept, so "Что такое VPN?" stays "что такое vpn".
    Applying it twice gives the same result.
    """
    # recompose so marks outside the Latin range (e.g. kana voicing) stay on their letter
    folded = unicodedata.normalize("NFC", strip_diacritics((text or "").lower()))
    return " ".join(_NON_WORD.sub(" ", folded).split())


def tokenize_for_topic(text: str) -> list[str]:
    return [
        token
        for token in split_words(text)
        if len(token) >= MIN_TOPIC_TOKEN_LENGTH and token not in TOPIC_STOPWORDS
    ]


def derive_topic(tokens: list[str]) -> tuple[str, str]:
    """Build (key, label) from the most frequent topic tokens.

    Ties keep the order of first appearance.

    Returns:
        tuple[str, str]: e.g. ("vacaciones-solicitud", "Vacaciones / Solicitud"),
                         or ("general", "General") when no token survives.
    """
    if not tokens:
        return GENERAL_TOPIC_KEY, GENERAL_TOPIC_LABEL
    top = [token for token, _ in Counter(tokens).most_common(TOPIC_TOKEN_COUNT)]
    key = "-".join(top)
    label = " / ".join(token[:1].upper() + token[1:] for token in top)
    return key, label
