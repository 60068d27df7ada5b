"""
Pytest configuration and shared fixtures.

Provides:
- Loopback stub manager
- Config isolation between tests
- Common utilities
"""

import pytest
from pathlib import Path
import sys
import logging

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from acclink.config import set_config
from acclink.testing import StubManager


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

ACCLINK_ENV_VARS = (
    'ACCLINK_CONFIG',
    'ACCLINK_HOST',
    'ACCLINK_PORT',
    'ACCLINK_CONNECT_TIMEOUT',
    'ACCLINK_READ_TIMEOUT',
    'ACCLINK_MAX_FRAME_SIZE',
    'ACCLINK_LOG_LEVEL',
    'ACCLINK_LOG_FORMAT',
    'ACCLINK_LOG_FILE',
    'ACCLINK_LOG_MAX_SIZE_MB',
    'ACCLINK_LOG_BACKUP_COUNT',
)


def pytest_configure(config):
    """Register markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests that exchange frames with a loopback peer"
    )


@pytest.fixture(autouse=True)
def clean_acclink_env(monkeypatch):
    """Keep ACCLINK_* settings and the global config from leaking between tests."""
    for name in ACCLINK_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    set_config(None)
    yield
    set_config(None)


@pytest.fixture
def stub_manager():
    """Running stub manager that grants every request."""
    manager = StubManager()
    manager.start()
    yield manager
    manager.stop()


@pytest.fixture
def unused_port():
    """A local port with nothing listening on it."""
    import socket
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port
