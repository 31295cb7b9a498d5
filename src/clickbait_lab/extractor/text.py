"""Tokenisation and segmentation helpers for mixed Chinese/English text."""

from __future__ import annotations

import re

TOKEN_RE = re.compile(r"[0-9a-zà-öø-ÿ]+|[\u3400-\u4dbf\u4e00-\u9fff]")
WORD_RUN_RE = re.compile(r"[0-9a-zà-öø-ÿ]+|[\u3400-\u4dbf\u4e00-\u9fff]+")
SENTENCE_SPLIT_RE = re.compile(r"[。！？.!?]+")
CJK_RE = re.compile(r"[\u3400-\u4dbf\u4e00-\u9fff]")
UPPER_RE = re.compile(r"[A-Z]")
DIGIT_RE = re.compile(r"[0-9]")

EXCLAMATION_MARKS = frozenset("!！")
QUESTION_MARKS = frozenset("?？")
PUNCTUATION = frozenset(
    "!\"#$%&'()*+,-./:;<=>?@[\\]^_`{|}~"
    "！？。，；：、“”‘’（）【】《》…—·「」"
)
SPECIAL_CHARACTERS = frozenset("！？!?…【】《》“”‘’\"'")


def normalize_text(text: object) -> str:
    """Return stripped text, mapping non-string input to an empty string."""

    if not isinstance(text, str):
        return ""
    return text.strip()


def tokenize(text: str) -> list[str]:
    """Split text into lower-cased latin words and single CJK characters."""

    return TOKEN_RE.findall(text.lower())


def word_runs(text: str) -> list[str]:
    """Split text on anything that is not a latin word or a run of CJK characters."""

    return WORD_RUN_RE.findall(text.lower())


def split_sentences(text: str) -> list[str]:
    return [part for part in SENTENCE_SPLIT_RE.split(text) if part.strip()]


def count_characters(text: str, characters: frozenset[str]) -> int:
    return sum(1 for char in text if char in characters)


def count_phrases(text: str, phrases: tuple[str, ...]) -> int:
    """Count non-overlapping, case-insensitive occurrences of every phrase."""

    lowered = text.lower()
    return sum(lowered.count(phrase.lower()) for phrase in phrases if phrase)


__all__ = [
    "CJK_RE",
    "DIGIT_RE",
    "EXCLAMATION_MARKS",
    "PUNCTUATION",
    "QUESTION_MARKS",
    "SPECIAL_CHARACTERS",
    "UPPER_RE",
    "count_characters",
    "count_phrases",
    "normalize_text",
    "split_sentences",
    "tokenize",
    "word_runs",
]
