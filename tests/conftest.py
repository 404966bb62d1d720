"""
Pytest configuration and shared fixtures.
"""

import json
from unittest.mock import Mock

import pytest
import requests

from msp_toolkit.itglue.client import ITGlueClient
from msp_toolkit.windows.runner import CommandResult


def _build_response(status_code=200, body=None, text=None, reason="OK"):
    response = requests.Response()
    response.status_code = status_code
    response.reason = reason
    response.encoding = "utf-8"
    if text is not None:
        response._content = text.encode("utf-8")
    elif body is not None:
        response._content = json.dumps(body).encode("utf-8")
    else:
        response._content = b""
    return response


@pytest.fixture
def make_response():
    """Factory for requests.Response objects with a JSON (or raw text) body."""
    return _build_response


@pytest.fixture
def session():
    """A mock requests.Session; set session.request.side_effect to a list of responses."""
    mock_session = Mock(spec=requests.Session)
    mock_session.headers = {}
    return mock_session


@pytest.fixture
def sleeps():
    """Records the delays passed to the client instead of sleeping."""
    return []


@pytest.fixture
def client(session, sleeps):
    """ITGlueClient wired to the mock session with a recording sleep."""
    return ITGlueClient(
        "ITG.test-key",
        base_url="https://api.itglue.test",
        session=session,
        sleep=sleeps.append,
    )


def _casefold(args):
    return tuple(str(a).lower() for a in args)


class FakeRunner:
    """
    Stand-in for CommandRunner.

    Responses are looked up by command prefix; the longest matching prefix
    wins. Arguments compare case-insensitively, as reg.exe and sc.exe do.
    Unmatched commands fail with exit code 1.
    """

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.calls = []

    def on(self, args, returncode=0, stdout="", stderr=""):
        self.responses[tuple(args)] = (returncode, stdout, stderr)

    def run(self, args):
        self.calls.append(list(args))
        best = None
        for prefix, response in self.responses.items():
            matches = _casefold(args[: len(prefix)]) == _casefold(prefix)
            if matches and (best is None or len(prefix) > len(best[0])):
                best = (prefix, response)
        if best is None:
            return CommandResult(list(args), 1, "", "ERROR: not found")
        returncode, stdout, stderr = best[1]
        return CommandResult(list(args), returncode, stdout, stderr)


@pytest.fixture
def fake_runner():
    return FakeRunner()


@pytest.fixture
def itglue_config():
    """Minimal configuration for the IT Glue client factory."""
    return {
        "itglue": {
            "base_url": "https://api.itglue.test",
            "api_key_env": "TEST_ITGLUE_KEY",
            "page_size": 50,
            "timeout": 5,
            "retry": {"max_attempts": 3, "initial_delay": 0.0, "backoff_factor": 2.0, "max_delay": 1.0},
        }
    }
