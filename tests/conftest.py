import asyncio
import os
import sys
import pytest
from rich.console import Console
from rich.table import Table

# Add the project root directory to Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from app.config import Settings
from app.job_store import InMemoryJobStore
from app.models.stage import StageDefinition

CATEGORIES = ["unit", "integration", "api"]

# 60 characters of plausible documentation; passes the test min length of 10
VALID_INPUT = "Acme Notes is an AI note taker for remote engineering teams."


def pytest_configure(config):
    """Add custom markers"""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "api: API tests")


class TestProgress:
    """Collects pass/fail counts per test category for the summary table."""
    __test__ = False

    def __init__(self):
        self.stats = {
            category: {"total": 0, "passed": 0, "failed": 0, "duration": 0.0}
            for category in CATEGORIES
        }

    def update_stats(self, category, passed, duration):
        if category not in self.stats:
            return  # Ignore invalid categories
        self.stats[category]["total"] += 1
        self.stats[category]["passed" if passed else "failed"] += 1
        self.stats[category]["duration"] += duration

    def render(self) -> Table:
        table = Table(show_header=True, header_style="bold magenta")
        for column in ("Category", "Total", "Passed", "Failed", "Duration"):
            table.add_column(column)
        for category, stats in self.stats.items():
            table.add_row(
                category,
                str(stats["total"]),
                f"[green]{stats['passed']}[/]",
                f"[red]{stats['failed']}[/]",
                f"{stats['duration']:.2f}s"
            )
        return table


test_progress = TestProgress()


def pytest_runtest_logreport(report):
    """Update progress after each test"""
    if report.when != "call":
        return
    for marker_name in CATEGORIES:
        if f"/{marker_name}/" in report.nodeid or report.nodeid.startswith(f"{marker_name}/"):
            test_progress.update_stats(marker_name, report.passed, report.duration)
            return
    # If no marker found, assume it's a unit test
    test_progress.update_stats("unit", report.passed, report.duration)


def pytest_terminal_summary(terminalreporter):
    Console().print(test_progress.render())


class SpyGenerator:
    """Fake generation capability that records every call.

    outputs maps stage id to the text to return, or to an exception
    instance (raised every time) or a list of results consumed in order.
    """

    def __init__(self, outputs=None, delay: float = 0.0, delays=None):
        self.outputs = dict(outputs or {})
        self.delay = delay
        self.delays = dict(delays or {})
        self.calls = []

    @property
    def called_stages(self):
        return [stage_id for stage_id, _ in self.calls]

    async def generate(self, stage_id, context):
        self.calls.append((stage_id, context))
        delay = self.delays.get(context.request_input[:4], self.delay)
        if delay:
            await asyncio.sleep(delay)
        result = self.outputs.get(stage_id, f"output of {stage_id}")
        if isinstance(result, list):
            result = result.pop(0)
        if isinstance(result, BaseException):
            raise result
        return result


@pytest.fixture
def spy_generator():
    return SpyGenerator


@pytest.fixture
def job_store():
    return InMemoryJobStore()


@pytest.fixture
def three_stages():
    return (
        StageDefinition(id="stage-one", display_label="First stage", estimated_duration_seconds=30),
        StageDefinition(id="stage-two", display_label="Second stage", estimated_duration_seconds=20),
        StageDefinition(id="stage-three", display_label="Third stage", estimated_duration_seconds=10),
    )


@pytest.fixture
def test_settings():
    return Settings(
        _env_file=None,
        MIN_INPUT_LENGTH=10,
        MAX_INPUT_LENGTH=200,
        STAGE_TIMEOUT_SECONDS=2.0,
        STAGE_PACING_SECONDS=0.0,
        RETRY_BACKOFF_SECONDS=0.0,
    )


@pytest.fixture
def valid_input():
    return VALID_INPUT
