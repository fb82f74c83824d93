"""Text utility functions shared by the extraction components."""
from __future__ import annotations

import re
import unicodedata
from typing import List

_WORD_PATTERN = re.compile(r"[^\W_]+")
_JAPANESE_PATTERN = re.compile("[\u3000-\u303f\u3040-\u309f\u30a0-\u30ff\uff00-\uffef\u4e00-\u9faf]")
_FRENCH_PATTERN = re.compile(r"[éèêëàâäôöùûüïîçÉÈÊËÀÂÄÔÖÙÛÜÏÎÇ]")


def strip_accents(text: str) -> str:
    """Remove Latin diacritics ("bière" -> "biere") while leaving other scripts intact."""
    decomposed = unicodedata.normalize("NFKD", text)
    stripped = "".join(ch for ch in decomposed if not "\u0300" <= ch <= "\u036f")
    return unicodedata.normalize("NFC", stripped)


def normalize_name(text: str) -> str:
    """Lowercase, strip accents and collapse punctuation/whitespace to single spaces."""
    if not text:
        return ""
    return " ".join(tokenize_text(strip_accents(text.lower())))


def tokenize_text(text: str) -> List[str]:
    """
    Split text into lowercase word tokens.

    Hyphens, apostrophes and punctuation separate tokens; letters of any
    script and digits are kept.
    """
    return [token.lower() for token in _WORD_PATTERN.findall(text or "")]


def contains_keyword(normalized_text: str, normalized_keyword: str) -> bool:
    """Check whether a keyword occurs in already-normalized text.

    Latin keywords must match whole words; keywords in scripts written
    without spaces (Japanese) match as substrings.
    """
    if not normalized_keyword:
        return False
    if normalized_keyword.isascii():
        return f" {normalized_keyword} " in f" {normalized_text} "
    return normalized_keyword in normalized_text


def detect_language(text: str) -> str:
    """Guess the language of a document: Japanese script, French diacritics, else English."""
    if not text:
        return "en"
    if _JAPANESE_PATTERN.search(text):
        return "ja"
    if _FRENCH_PATTERN.search(text):
        return "fr"
    return "en"
