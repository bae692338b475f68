import logging
import random
from abc import ABC, abstractmethod
from typing import List, Optional, Set

from .config import settings
from .models import Flashcard
from .segmenter import PARAGRAPHS, SENTENCES, segment, split_sentences
from .strategies import QuestionStrategy, default_strategies

logger = logging.getLogger(__name__)


def _append_unique(deck: List[Flashcard], card: Optional[Flashcard]) -> bool:
    if card is None or any(c.question == card.question for c in deck):
        return False
    deck.append(card)
    return True


# --- Builders: one per segmentation mode ---
class DeckBuilder(ABC):
    """Abstract Base Class for turning segmented text into a deck."""

    def __init__(
        self,
        min_cards: int = settings.MIN_CARDS,
        max_cards: int = settings.MAX_CARDS,
    ):
        self.min_cards = min_cards
        self.max_cards = max_cards

    @abstractmethod
    def build(self, candidates: List[str], full_text: str) -> List[Flashcard]:
        pass


class ParagraphDeckBuilder(DeckBuilder):
    """Fallback mode: one card per paragraph, in document order."""

    def build(self, candidates: List[str], full_text: str) -> List[Flashcard]:
        deck: List[Flashcard] = []
        target = min(self.max_cards, max(self.min_cards, len(candidates)))

        for paragraph in candidates[:target]:
            paragraph = paragraph.strip()
            if len(paragraph) <= 50:
                continue

            inner = split_sentences(paragraph, min_length=10)
            if len(inner) >= 2:
                card = Flashcard(
                    question=f'What does the following text discuss: "{inner[0][:150]}..."?',
                    answer=". ".join(inner[:3]).strip(),
                    strategy="paragraph",
                )
            else:
                card = Flashcard(
                    question=f'Summarize the key information about: "{paragraph[:100]}..."?',
                    answer=paragraph[:300],
                    strategy="paragraph_summary",
                )
            _append_unique(deck, card)

        return deck


class SentenceDeckBuilder(DeckBuilder):
    """
    Rotates through the question strategies until the target size is reached,
    then tops the deck up from randomly chosen leftover sentences.
    """

    def __init__(
        self,
        strategies: Optional[List[QuestionStrategy]] = None,
        rng: Optional[random.Random] = None,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.strategies = strategies or default_strategies()
        self.rng = rng or random.Random()

    def target_count(self, sentence_count: int) -> int:
        return min(self.max_cards, max(self.min_cards, sentence_count // 3))

    def build(self, candidates: List[str], full_text: str) -> List[Flashcard]:
        deck: List[Flashcard] = []
        used: Set[int] = set()
        target = self.target_count(len(candidates))
        max_attempts = target * 3

        attempts = 0
        while (
            len(deck) < target
            and len(used) < len(candidates)
            and attempts < max_attempts
        ):
            strategy = self.strategies[attempts % len(self.strategies)]
            _append_unique(deck, strategy.propose(candidates, used, full_text))
            attempts += 1

        if len(deck) < self.min_cards:
            self._top_up(deck, candidates, used)

        return deck[: self.max_cards]

    def _top_up(self, deck: List[Flashcard], candidates: List[str], used: Set[int]):
        while len(deck) < self.min_cards:
            remaining = [i for i in range(len(candidates)) if i not in used]
            if not remaining:
                break

            index = remaining[self.rng.randrange(len(remaining))]
            used.add(index)
            sentence = candidates[index].strip()
            if len(sentence) > 30:
                _append_unique(
                    deck,
                    Flashcard(
                        question=f'What is the main point about: "{sentence[:100]}..."?',
                        answer=sentence,
                        strategy="top_up",
                    ),
                )


class DeckFactory:
    """Factory to select the builder for a segmentation mode."""

    @staticmethod
    def create(mode: str, rng: Optional[random.Random] = None) -> DeckBuilder:
        if mode == SENTENCES:
            return SentenceDeckBuilder(rng=rng)
        elif mode == PARAGRAPHS:
            return ParagraphDeckBuilder()
        raise ValueError(f"Unknown segmentation mode: {mode}")


def generate_deck(text: str, rng: Optional[random.Random] = None) -> List[Flashcard]:
    """Segments text and builds a deck of at most MAX_CARDS unique questions."""
    segmented = segment(text)
    builder = DeckFactory.create(segmented.mode, rng=rng)
    deck = builder.build(segmented.candidates, text)
    logger.info(
        f"Generated {len(deck)} flashcards from {len(segmented.candidates)} {segmented.mode}"
    )
    return deck
