"""Shared test helpers."""
import asyncio

import pytest

from docuploader.orchestrator.timing import Jitter


class FixedRandom:
    """Stand-in for random.Random whose random() always returns the same value."""

    def __init__(self, value: float = 0.5):
        self.value = value

    def random(self) -> float:
        return self.value


class RecordingSleep:
    """Records requested delays and only yields to the event loop."""

    def __init__(self):
        self.delays = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


@pytest.fixture
def fixed_jitter():
    return Jitter(FixedRandom(0.5))


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


def make_tree(root, layout):
    """Create files under root from {"sub/file.txt": b"content"}."""
    for relative, content in layout.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
    return root
