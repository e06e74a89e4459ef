import pytest

from splash.db.memory import InMemoryRepository
from splash.events.controller import TriggerController
from splash.state.store import StateStore
from splash.state.tiers import Tier, TierConfig


class RecordingNotifier:
    def __init__(self):
        self.events = []

    def emit(self, event):
        self.events.append(event)

    def statuses(self):
        return [e.status.value for e in self.events]


class RecordingSupervisor:
    """Stands in for TrackerSupervisor; records spawns without starting threads."""

    def __init__(self):
        self.spawned = []

    def spawn(self, symbol, record_id, ref):
        self.spawned.append((symbol, record_id, ref))


class ManualClock:
    def __init__(self, now=1_000_000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def supervisor():
    return RecordingSupervisor()


@pytest.fixture
def repo(clock):
    return InMemoryRepository(clock=clock)


@pytest.fixture
def store():
    return StateStore(window_duration=300.0)


@pytest.fixture
def tiers():
    return TierConfig([Tier(level=3, window=10), Tier(level=5, window=15)])


@pytest.fixture
def controller(store, tiers, repo, notifier, supervisor):
    return TriggerController(store, tiers, repo, notifier, supervisor)
