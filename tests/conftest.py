"""Shared fixtures for the deposit tests."""

import json
from typing import Any, Optional
from unittest.mock import MagicMock

import pytest
import requests

from models.records import LocalRecord, TenantSettings
from repository import InMemoryRecordRepository
from zenodo_client import ZenodoClient


def make_response(
    status_code: int = 200,
    body: Optional[Any] = None,
    text: Optional[str] = None,
    reason: str = "OK",
    url: str = "https://sandbox.zenodo.org/api/records",
) -> requests.Response:
    """Build a real ``requests.Response`` without a network round trip."""
    response = requests.Response()
    response.status_code = status_code
    response.reason = reason
    response.url = url
    response.encoding = "utf-8"
    if text is not None:
        response._content = text.encode("utf-8")
    elif body is not None:
        response._content = json.dumps(body).encode("utf-8")
    else:
        response._content = b""
    return response


@pytest.fixture
def mock_session() -> requests.Session:
    """Create a mock requests session."""
    return MagicMock(spec=requests.Session)


@pytest.fixture
def client(mock_session: requests.Session) -> ZenodoClient:
    """Create a sandbox client over the mock session."""
    return ZenodoClient(
        api_key="k", base_url="https://sandbox.zenodo.org/api/", session=mock_session
    )


@pytest.fixture
def settings() -> TenantSettings:
    """Tenant settings with an API key and a DOI for every record."""
    return TenantSettings(tenant_id="journal-a", api_key="k", test_mode=True)


@pytest.fixture
def record() -> LocalRecord:
    """A never deposited record."""
    return LocalRecord(
        local_id="42",
        submission_id="5",
        tenant_id="journal-a",
        doi="10.1/x",
        title="T",
    )


@pytest.fixture
def repository(record: LocalRecord) -> InMemoryRecordRepository:
    """An in-memory repository holding the record fixture."""
    return InMemoryRecordRepository([record])


@pytest.fixture
def mock_client() -> ZenodoClient:
    """Create a mock API client."""
    return MagicMock(spec=ZenodoClient)


@pytest.fixture
def response():
    """Factory for canned ``requests.Response`` objects."""
    return make_response
