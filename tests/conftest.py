import os

os.environ.setdefault("FLASHDECK_STORE", "memory")
os.environ.setdefault("FLASHDECK_LOG_TO_FILE", "0")

import pytest

from flashdeck.session import StudySessionController
from flashdeck.storage import AnalyticsStore, MemoryAnalyticsRepository

TOPICS = [
    "Photosynthesis", "Mitochondria", "Osmosis", "Diffusion", "Enzymes",
    "Chlorophyll", "Respiration", "Glycolysis", "Ribosomes", "Proteins",
    "Nucleus", "Membranes", "Vacuoles", "Cytoplasm", "Genetics",
    "Mutation", "Evolution", "Ecology", "Hormones", "Neurons",
    "Antibodies", "Bacteria", "Viruses", "Fungi", "Algae",
    "Pollination", "Germination", "Transpiration", "Homeostasis", "Metabolism",
]


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now


class FakeRedis:
    def __init__(self):
        self.data = {}

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value, ex=None):
        self.data[key] = value
        return True

    def delete(self, *keys):
        return sum(1 for key in keys if self.data.pop(key, None) is not None)


@pytest.fixture
def study_text():
    """Thirty distinct sentences, each long enough for every strategy."""
    sentences = [
        f"{topic} is an important idea that students review carefully in lesson {i}"
        for i, topic in enumerate(TOPICS)
    ]
    return ". ".join(sentences) + "."


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def store():
    return AnalyticsStore(MemoryAnalyticsRepository())


@pytest.fixture
def controller(store, clock):
    return StudySessionController(None, store, clock=clock, auto_advance_delay_ms=500)
