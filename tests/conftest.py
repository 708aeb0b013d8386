import pathlib
import sys

import pytest
from fastapi.testclient import TestClient

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.container import AppContainer
from app.kv_backend import InMemoryKeyValueBackend
from app.main import create_app
from app.sandbox_config import SandboxConfig


@pytest.fixture(autouse=True)
def reset_env(monkeypatch: pytest.MonkeyPatch):
    for name in (
        "FMA_STORE_BACKEND",
        "FMA_SESSION_BACKEND",
        "FMA_REQUIRE_TRUESTACK",
        "SANDBOX_TENANT_CODES",
        "SANDBOX_TRACKED_KEYS",
        "SANDBOX_OVERRIDE_ROLE",
        "SANDBOX_CLASSIFY_FAIL_CLOSED",
    ):
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def sandbox_config() -> SandboxConfig:
    return SandboxConfig()


@pytest.fixture
def container(sandbox_config: SandboxConfig) -> AppContainer:
    return AppContainer.build(
        config=sandbox_config,
        persistent=InMemoryKeyValueBackend(),
        sessions=InMemoryKeyValueBackend(),
    )


@pytest.fixture
def client(container: AppContainer) -> TestClient:
    return TestClient(create_app(container))


@pytest.fixture
def sandbox_principal() -> dict:
    return {"tenant_code": "TAMJ", "role": "staff", "sandbox_flag": True, "user_id": "tamj-j1-staff1"}


@pytest.fixture
def override_principal() -> dict:
    return {"tenant_code": "SYSTEM", "role": "system_admin", "sandbox_flag": True, "user_id": "sysadmin"}


@pytest.fixture
def regular_principal() -> dict:
    return {"tenant_code": "ACME", "role": "company_admin", "sandbox_flag": False, "user_id": "acme-admin"}
