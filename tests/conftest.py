import logging

import pytest

from gdrive_mcp_server.auth.credential_store import CredentialStore
from gdrive_mcp_server.auth.credentials import ApplicationIdentity

from tests.support import InMemoryArtifactSource

logger = logging.getLogger(__name__)


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture
def identity():
    return ApplicationIdentity(client_id="test-client-id", client_secret="test-secret")


@pytest.fixture
def store(identity):
    store = CredentialStore()
    store.initialize(identity)
    return store


@pytest.fixture
def artifact_source():
    source = InMemoryArtifactSource()
    yield source
    source.close()
