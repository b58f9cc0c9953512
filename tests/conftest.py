"""
Shared fixtures: clients wired to an in-memory server process.
"""

import sys
from pathlib import Path

import pytest

# Add src and the test helpers to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
sys.path.insert(0, str(Path(__file__).parent))

from lsplink.lsp.client import LSPClient
from lsp_fakes import FakeProcessFactory, complete_initialize, make_config

FAKE_SERVER = str(Path(__file__).parent / "fake_lsp_server.py")


@pytest.fixture
def factory():
    return FakeProcessFactory()


@pytest.fixture
def client(factory):
    client = LSPClient(config=make_config(), process_factory=factory)
    yield client
    client.stop()


@pytest.fixture
def ready_client(client, factory):
    """A client whose handshake has completed."""
    assert client.start("fake-server", ["--stdio"], "file:///tmp/project")
    complete_initialize(factory.last)
    assert client.is_ready
    return client


@pytest.fixture
def fake_server_argv():
    """argv that runs the Python fake language server."""
    return [sys.executable, FAKE_SERVER]
