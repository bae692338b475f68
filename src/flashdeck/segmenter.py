import re
from typing import List, NamedTuple

SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")
PARAGRAPH_SPLIT_RE = re.compile(r"\n\s*\n")

MIN_SENTENCE_LENGTH = 20
MIN_PARAGRAPH_LENGTH = 50
MIN_SENTENCE_CANDIDATES = 8

SENTENCES = "sentences"
PARAGRAPHS = "paragraphs"


class SegmentedText(NamedTuple):
    mode: str
    candidates: List[str]


def split_sentences(text: str, min_length: int = MIN_SENTENCE_LENGTH) -> List[str]:
    """Splits on runs of terminal punctuation, keeping trimmed pieces longer than min_length."""
    pieces = (p.strip() for p in SENTENCE_SPLIT_RE.split(text))
    return [p for p in pieces if len(p) > min_length]


def split_paragraphs(text: str, min_length: int = MIN_PARAGRAPH_LENGTH) -> List[str]:
    pieces = (p.strip() for p in PARAGRAPH_SPLIT_RE.split(text))
    return [p for p in pieces if len(p) > min_length]


def segment(text: str) -> SegmentedText:
    """
    Splits extracted text into sentences, or into paragraphs when the text
    yields too few usable sentences. The mode tells the deck builder which
    generation path applies.
    """
    sentences = split_sentences(text)
    if len(sentences) >= MIN_SENTENCE_CANDIDATES:
        return SegmentedText(SENTENCES, sentences)
    return SegmentedText(PARAGRAPHS, split_paragraphs(text))
