import re
from abc import ABC, abstractmethod
from typing import List, Optional, Set

from .models import Flashcard

CAPITALIZED_WORD_RE = re.compile(r"\b[A-Z][a-z]+\b", re.ASCII)
TOPIC_RE = re.compile(r"\b([A-Z][a-z]+(?:\s+[A-Z][a-z]+)?)\b", re.ASCII)


def extract_key_phrase(sentence: str, max_words: int = 8) -> str:
    return " ".join(sentence.split()[:max_words])


def extract_topic(sentence: str) -> str:
    """First capitalized phrase (up to two words), else the first three words."""
    match = TOPIC_RE.search(sentence)
    if match:
        return match.group(1)
    return " ".join(sentence.split()[:3])


# --- Strategy Pattern: Question Synthesis ---
class QuestionStrategy(ABC):
    """
    Turns unused sentences into one question/answer pair.

    Implementations scan from the first sentence on every call and add the
    indices they consume to ``used``. They return None when no sentence fits.
    """

    name: str = ""

    @abstractmethod
    def propose(
        self, sentences: List[str], used: Set[int], full_text: str
    ) -> Optional[Flashcard]:
        pass


class DefinitionStrategy(QuestionStrategy):
    """Asks for the meaning of the first capitalized word in a long sentence."""

    name = "definition"

    def propose(self, sentences, used, full_text):
        for i, raw in enumerate(sentences):
            if i in used:
                continue
            sentence = raw.strip()
            match = CAPITALIZED_WORD_RE.search(sentence)
            if match and len(sentence) > 40:
                used.add(i)
                return Flashcard(
                    question=f"What is {match.group(0)}?",
                    answer=sentence,
                    strategy=self.name,
                )
        return None


class ConceptStrategy(QuestionStrategy):
    name = "concept"

    def propose(self, sentences, used, full_text):
        for i, raw in enumerate(sentences):
            if i in used:
                continue
            sentence = raw.strip()
            if 60 < len(sentence) < 200:
                phrase = extract_key_phrase(sentence)
                if phrase:
                    used.add(i)
                    return Flashcard(
                        question=f"Explain: {phrase}",
                        answer=sentence,
                        strategy=self.name,
                    )
        return None


class DetailStrategy(QuestionStrategy):
    """Cloze-style card: the first half of the sentence is the prompt."""

    name = "detail"

    def propose(self, sentences, used, full_text):
        for i, raw in enumerate(sentences):
            if i in used:
                continue
            sentence = raw.strip()
            if len(sentence) > 50:
                used.add(i)
                prompt = sentence[: len(sentence) // 2] + "...?"
                return Flashcard(
                    question=f"Complete the following: {prompt}",
                    answer=sentence,
                    strategy=self.name,
                )
        return None


class SummaryStrategy(QuestionStrategy):
    """Summarizes a run of three neighbouring sentences."""

    name = "summary"
    cluster_size = 3

    def propose(self, sentences, used, full_text):
        for i in range(len(sentences) - self.cluster_size + 1):
            window = range(i, i + self.cluster_size)
            if any(j in used for j in window):
                continue

            cluster = [sentences[j].strip() for j in window]
            cluster = [s for s in cluster if len(s) > 30]
            if len(cluster) >= 2:
                # the whole window is consumed, kept sentences or not
                used.update(window)
                return Flashcard(
                    question=f"What are the key points about {extract_topic(cluster[0])}?",
                    answer=". ".join(cluster).strip(),
                    strategy=self.name,
                )
        return None


def default_strategies() -> List[QuestionStrategy]:
    return [DefinitionStrategy(), ConceptStrategy(), DetailStrategy(), SummaryStrategy()]
