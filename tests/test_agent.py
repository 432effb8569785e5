"""Tests for the agent worker, with the controller faked out."""
import random
from types import SimpleNamespace

import pytest
import requests

import agent.agent as agent_module
from agent.agent import Agent, AgentStopped, collect_host_sample, generate_sample
from controller.models import MetricsSample


class FakeResponse:

    def __init__(self, status_code):
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class FakeSession:
    """Replays `outcomes` in order: an int is a status code, an exception is raised."""

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls = []
        self.closed = False

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        outcome = self.outcomes.pop(0) if self.outcomes else 200
        if isinstance(outcome, Exception):
            raise outcome
        return FakeResponse(outcome)

    def close(self):
        self.closed = True


def make_agent(session, **kwargs):
    kwargs.setdefault("delay", 0)
    kwargs.setdefault("min_interval", 0)
    kwargs.setdefault("max_interval", 0)
    return Agent(
        "Agent-1",
        controller_url="http://controller:8080/",
        source=lambda: MetricsSample(cpu_usage=1, memory_usage=2, disk_usage=3),
        session=session,
        **kwargs,
    )


def test_generate_sample_in_range():
    rng = random.Random(42)
    for _ in range(100):
        s = generate_sample(rng)
        for value in (s.cpu_usage, s.memory_usage, s.disk_usage):
            assert 0 <= value < 100


def test_send_posts_sample():
    session = FakeSession([200])
    agent = make_agent(session)
    assert agent.report_once() is True

    url, kwargs = session.calls[0]
    assert url == "http://controller:8080/update"
    assert kwargs["params"] == {"agent": "Agent-1"}
    assert MetricsSample.model_validate_json(kwargs["data"]).disk_usage == 3
    assert kwargs["timeout"] > 0


@pytest.mark.parametrize("strategy", ["fixed", "backoff"])
def test_server_errors_are_retried(strategy):
    session = FakeSession([500, requests.ConnectionError("refused"), 200])
    agent = make_agent(session, strategy=strategy, attempts=3)
    assert agent.report_once() is True
    assert len(session.calls) == 3


@pytest.mark.parametrize("strategy", ["fixed", "backoff"])
def test_exhaustion_is_contained(strategy):
    session = FakeSession([503] * 5)
    agent = make_agent(session, strategy=strategy, attempts=2)
    assert agent.report_once() is False
    assert len(session.calls) == 2


def test_retry_sleep_aborts_when_stopped():
    session = FakeSession([500] * 5)
    agent = make_agent(session, attempts=5, delay=10)
    agent.stop_event.set()
    with pytest.raises(AgentStopped):
        agent.report_once()
    assert len(session.calls) == 1


def test_run_stops_cleanly():
    session = FakeSession([])
    agent = make_agent(session, min_interval=0.01, max_interval=0.02)
    agent.start()
    while not session.calls:
        agent.stop_event.wait(0.01)
    agent.stop()
    assert not agent.thread.is_alive()
    assert session.closed


def test_rejects_unknown_strategy():
    with pytest.raises(ValueError):
        make_agent(FakeSession([]), strategy="linear")


def test_host_source_uses_psutil(monkeypatch):
    monkeypatch.setattr(agent_module, "AGENT_SOURCE", "host")
    monkeypatch.setattr(agent_module.psutil, "cpu_percent", lambda interval=None: 12.5)
    monkeypatch.setattr(agent_module.psutil, "virtual_memory", lambda: SimpleNamespace(percent=40.0))
    monkeypatch.setattr(agent_module.psutil, "disk_usage", lambda path: SimpleNamespace(percent=75.5))

    agent = Agent("Agent-1", session=FakeSession([]))
    assert agent.source is collect_host_sample

    s = agent.source()
    assert s == MetricsSample(cpu_usage=12.5, memory_usage=40.0, disk_usage=75.5)


def test_rejects_unknown_source(monkeypatch):
    monkeypatch.setattr(agent_module, "AGENT_SOURCE", "bogus")
    with pytest.raises(ValueError):
        Agent("Agent-1", session=FakeSession([]))
