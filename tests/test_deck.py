"""
Tests for text segmentation and deck generation
"""
import random

import pytest

from flashdeck.deck import (
    DeckFactory,
    ParagraphDeckBuilder,
    SentenceDeckBuilder,
    generate_deck,
)
from flashdeck.segmenter import PARAGRAPHS, SENTENCES, segment

WORDS = [
    "alpha", "bravo", "charlie", "delta", "echo", "foxtrot", "golf",
    "hotel", "india", "juliet", "kilo", "lima", "mike", "oscar",
    "papa", "quebec", "romeo", "sierra", "tango", "uniform",
]


def plain_sentences(count):
    """Lowercase sentences of 31-40 characters: only summaries and top-ups fit."""
    return [f"{WORDS[i]} item detail with filler text {i:02d}" for i in range(count)]


def paragraph_text():
    return "\n\n".join(
        [
            "Cells are the basic unit of life in every organism. "
            "They carry out all of the processes needed to survive.",
            "Energy moves through ecosystems along food chains. "
            "Producers capture sunlight while consumers eat them.",
            "a single long paragraph without any terminal punctuation "
            "that still goes on for quite a while",
        ]
    )


class TestSegmenter:
    def test_sentence_mode(self, study_text):
        result = segment(study_text)
        assert result.mode == SENTENCES
        assert len(result.candidates) == 30
        assert all(c == c.strip() for c in result.candidates)

    def test_paragraph_fallback(self):
        """Fewer than eight sentences switches to paragraphs"""
        result = segment(paragraph_text())
        assert result.mode == PARAGRAPHS
        assert len(result.candidates) == 3

    def test_empty_text(self):
        result = segment("   \n\n  ")
        assert result.mode == PARAGRAPHS
        assert result.candidates == []


class TestSentenceDeck:
    def test_thirty_sentences(self, study_text):
        """Strategies rotate through all four kinds without duplicates"""
        deck = generate_deck(study_text, rng=random.Random(1))

        assert 8 <= len(deck) <= 12
        assert len(deck) == 10
        assert len({c.question for c in deck}) == len(deck)
        assert {c.strategy for c in deck} == {"definition", "concept", "detail", "summary"}
        assert [c.strategy for c in deck[:4]] == ["definition", "concept", "detail", "summary"]

    def test_top_up_uses_leftover_sentence(self):
        sentences = plain_sentences(10)
        deck = generate_deck(". ".join(sentences) + ".", rng=random.Random(0))

        assert [c.strategy for c in deck] == ["summary", "summary", "summary", "top_up"]
        assert deck[0].question == "What are the key points about alpha item detail?"
        assert deck[-1].answer == sentences[9]
        assert deck[-1].question == f'What is the main point about: "{sentences[9]}..."?'

    @pytest.mark.parametrize("seed", [0, 1, 2, 3, 4])
    def test_top_up_reaches_minimum(self, seed):
        deck = generate_deck(". ".join(plain_sentences(20)) + ".", rng=random.Random(seed))

        assert len(deck) == 8
        assert len({c.question for c in deck}) == 8
        assert sum(c.strategy == "top_up" for c in deck) == 2

    def test_short_sentences_terminate(self):
        """Sentences too short for any card are consumed rather than retried"""
        sentences = [f"tiny words number {i:02d} here" for i in range(10)]
        assert generate_deck(". ".join(sentences) + ".") == []

    def test_deck_never_exceeds_maximum(self, study_text):
        builder = SentenceDeckBuilder(rng=random.Random(7))
        candidates = segment(study_text * 3).candidates
        deck = builder.build(candidates, study_text)

        assert len(deck) <= 12
        assert len({c.question for c in deck}) == len(deck)


class TestParagraphDeck:
    def test_paragraph_questions(self):
        deck = generate_deck(paragraph_text())

        assert len(deck) == 3
        assert deck[0].question == (
            'What does the following text discuss: '
            '"Cells are the basic unit of life in every organism..."?'
        )
        assert deck[0].answer == (
            "Cells are the basic unit of life in every organism. "
            "They carry out all of the processes needed to survive"
        )
        assert deck[2].question.startswith("Summarize the key information about: ")
        assert deck[2].strategy == "paragraph_summary"

    def test_caps_at_twelve(self):
        paragraphs = [
            f"Paragraph {i} covers one topic at length. It adds a second sentence as well."
            for i in range(15)
        ]
        deck = ParagraphDeckBuilder().build(paragraphs, "\n\n".join(paragraphs))
        assert len(deck) == 12

    def test_duplicate_paragraphs_collapse(self):
        paragraph = "The same paragraph text appears here. It repeats on every page of the file."
        deck = ParagraphDeckBuilder().build([paragraph] * 3, paragraph)
        assert len(deck) == 1

    def test_empty_text_gives_empty_deck(self):
        assert generate_deck("") == []


class TestDeckFactory:
    def test_modes(self):
        assert isinstance(DeckFactory.create(SENTENCES), SentenceDeckBuilder)
        assert isinstance(DeckFactory.create(PARAGRAPHS), ParagraphDeckBuilder)

    def test_unknown_mode(self):
        with pytest.raises(ValueError):
            DeckFactory.create("chapters")


class RecordingRandom(random.Random):
    """Seeded RNG that records each draw and refuses to loop forever."""

    def __init__(self, seed, limit=50):
        super().__init__(seed)
        self.draws = 0
        self.limit = limit

    def randrange(self, *args, **kwargs):
        self.draws += 1
        assert self.draws <= self.limit, "top-up kept drawing the same sentences"
        return super().randrange(*args, **kwargs)


REPEATED = "repeated line shared by two pages here"


class TestTopUpWithRepeatedText:
    @pytest.mark.parametrize("seed", range(10))
    def test_each_draw_consumes_its_own_index(self, seed):
        """Identical sentences are marked used by position, not by text"""
        candidates = [REPEATED] * 3 + plain_sentences(6)
        rng = RecordingRandom(seed)
        builder = SentenceDeckBuilder(rng=rng)
        deck, used = [], set()

        builder._top_up(deck, candidates, used)

        assert used == set(range(9))
        assert rng.draws == 9
        assert len(deck) == 7
        assert len({c.question for c in deck}) == 7

    @pytest.mark.parametrize("seed", range(5))
    def test_repeats_left_for_top_up(self, seed):
        candidates = plain_sentences(18) + [REPEATED] * 2
        deck = SentenceDeckBuilder(rng=RecordingRandom(seed)).build(
            candidates, ". ".join(candidates)
        )

        assert len(deck) == 7
        assert len({c.question for c in deck}) == 7
        assert [c.answer for c in deck if c.strategy == "top_up"] == [REPEATED]
