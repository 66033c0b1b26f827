from typing import Any, Generator

import pytest
from fastapi.testclient import TestClient
from pytest import FixtureRequest

from image_copy.config import AuthConfig, CopyConfig, CopyMachineConfig, JobConfig
from image_copy.dispatcher import CopyDispatcher
from image_copy.server import create_app
from tests.constants import NOW, TEST_NAMESPACE, Credentials
from tests.utils import FakeJobBackend


@pytest.fixture
def copy_machine_config(request: FixtureRequest) -> CopyMachineConfig:
    """Config with defaults; parametrize indirectly with a dict of CopyConfig fields to override them"""
    copy_overrides: dict[str, Any] = getattr(request, "param", {}) or {}

    return CopyMachineConfig(
        auth=AuthConfig(username=Credentials.USERNAME, password=Credentials.PASSWORD),
        job=JobConfig(namespace=TEST_NAMESPACE),
        copy=CopyConfig(**copy_overrides),
    )


@pytest.fixture
def fake_job_backend() -> FakeJobBackend:
    return FakeJobBackend()


@pytest.fixture
def copy_dispatcher(fake_job_backend: FakeJobBackend, copy_machine_config: CopyMachineConfig) -> CopyDispatcher:
    return CopyDispatcher(backend=fake_job_backend, config=copy_machine_config, clock=lambda: NOW)


@pytest.fixture
def api_client(copy_dispatcher: CopyDispatcher) -> Generator[TestClient, Any, Any]:
    with TestClient(create_app(dispatcher=copy_dispatcher)) as client:
        yield client
