"""Shared test fixtures for dockercfg-controller tests."""

import base64
import copy
from collections.abc import Callable
from unittest.mock import MagicMock, patch

import pytest
from icecream import ic
from kubernetes import client

from dockercfg_controller.exceptions import ConflictError, NotFoundError
from dockercfg_controller.models import SERVICE_ACCOUNT_TOKEN_KEY, ControllerOptions, SecretType

TOKEN_VALUE = "token-value"


class FakeStore:
    """In-memory stand-in for KubeStore with resource version checks.

    Token secrets are filled in on their ``fill_token_after``-th fetch,
    the way the token controller would eventually fill them. Set it to
    None to never fill them.
    """

    def __init__(self) -> None:
        self.api = MagicMock()
        self.service_accounts: dict[tuple[str, str], client.V1ServiceAccount] = {}
        self.secrets: dict[tuple[str, str], client.V1Secret] = {}
        self.fill_token_after: int | None = 1
        self.token_value: str = TOKEN_VALUE
        self.secret_gets: dict[tuple[str, str], int] = {}
        self.calls: list[tuple[str, str]] = []
        # Called after each service account read, to simulate a concurrent writer
        self.after_get_service_account: Callable[[client.V1ServiceAccount], None] | None = None
        self._resource_version = 0

    def _next_resource_version(self) -> str:
        self._resource_version += 1
        return str(self._resource_version)

    def add_service_account(self, service_account: client.V1ServiceAccount) -> client.V1ServiceAccount:
        stored = copy.deepcopy(service_account)
        stored.metadata.resource_version = self._next_resource_version()
        self.service_accounts[(stored.metadata.namespace, stored.metadata.name)] = stored
        return copy.deepcopy(stored)

    def modify_service_account(self, namespace: str, name: str, mutate: Callable[[client.V1ServiceAccount], None]):
        """Apply a concurrent change and bump the resource version."""
        stored = self.service_accounts[(namespace, name)]
        mutate(stored)
        stored.metadata.resource_version = self._next_resource_version()
        return copy.deepcopy(stored)

    def get_service_account(self, namespace: str, name: str) -> client.V1ServiceAccount:
        self.calls.append(("get_service_account", f"{namespace}/{name}"))
        try:
            result = copy.deepcopy(self.service_accounts[(namespace, name)])
        except KeyError:
            raise NotFoundError(f"service account {namespace}/{name} not found") from None
        if self.after_get_service_account is not None:
            hook, self.after_get_service_account = self.after_get_service_account, None
            hook(result)
        return result

    def update_service_account(self, service_account: client.V1ServiceAccount) -> client.V1ServiceAccount:
        key = (service_account.metadata.namespace, service_account.metadata.name)
        self.calls.append(("update_service_account", "/".join(key)))
        current = self.service_accounts.get(key)
        if current is None:
            raise NotFoundError(f"service account {'/'.join(key)} not found")
        if current.metadata.resource_version != service_account.metadata.resource_version:
            raise ConflictError(f"service account {'/'.join(key)} has been modified")
        stored = copy.deepcopy(service_account)
        stored.metadata.resource_version = self._next_resource_version()
        self.service_accounts[key] = stored
        return copy.deepcopy(stored)

    def list_service_accounts(self, **kwargs) -> client.V1ServiceAccountList:
        return client.V1ServiceAccountList(
            items=[copy.deepcopy(sa) for sa in self.service_accounts.values()],
            metadata=client.V1ListMeta(resource_version=str(self._resource_version)),
        )

    def get_secret(self, namespace: str, name: str) -> client.V1Secret:
        key = (namespace, name)
        self.calls.append(("get_secret", f"{namespace}/{name}"))
        secret = self.secrets.get(key)
        if secret is None:
            raise NotFoundError(f"secret {namespace}/{name} not found")
        self.secret_gets[key] = self.secret_gets.get(key, 0) + 1
        if (
            secret.type == SecretType.SERVICE_ACCOUNT_TOKEN.value
            and self.fill_token_after is not None
            and self.secret_gets[key] >= self.fill_token_after
        ):
            secret.data = {SERVICE_ACCOUNT_TOKEN_KEY: base64.b64encode(self.token_value.encode()).decode()}
        return copy.deepcopy(secret)

    def create_secret(self, secret: client.V1Secret) -> client.V1Secret:
        key = (secret.metadata.namespace, secret.metadata.name)
        self.calls.append(("create_secret", "/".join(key)))
        if key in self.secrets:
            raise ConflictError(f"secret {'/'.join(key)} already exists")
        stored = copy.deepcopy(secret)
        stored.metadata.resource_version = self._next_resource_version()
        self.secrets[key] = stored
        ic(key)
        return copy.deepcopy(stored)

    def delete_secret(self, namespace: str, name: str) -> None:
        self.calls.append(("delete_secret", f"{namespace}/{name}"))
        if self.secrets.pop((namespace, name), None) is None:
            raise NotFoundError(f"secret {namespace}/{name} not found")

    def secrets_of_type(self, secret_type: SecretType) -> list[client.V1Secret]:
        return [secret for secret in self.secrets.values() if secret.type == secret_type.value]


def make_service_account(
    name: str = "default",
    namespace: str = "ns",
    *,
    secrets: list[str] | None = None,
    image_pull_secrets: list[str] | None = None,
    resource_version: str | None = None,
) -> client.V1ServiceAccount:
    """Build a service account referencing the given secret names."""
    return client.V1ServiceAccount(
        metadata=client.V1ObjectMeta(
            name=name,
            namespace=namespace,
            uid=f"uid-{namespace}-{name}",
            resource_version=resource_version,
        ),
        secrets=[client.V1ObjectReference(name=n) for n in secrets] if secrets is not None else None,
        image_pull_secrets=(
            [client.V1LocalObjectReference(name=n) for n in image_pull_secrets]
            if image_pull_secrets is not None
            else None
        ),
    )


@pytest.fixture(autouse=True)
def quiet_console():
    """Silence console output during tests."""
    with patch("dockercfg_controller.console.console.print"):
        yield


@pytest.fixture
def fake_store():
    """Empty in-memory store."""
    return FakeStore()


@pytest.fixture
def make_sa():
    """Factory for service accounts."""
    return make_service_account


@pytest.fixture
def options():
    """Controller options with fast token polling."""
    return ControllerOptions(
        docker_url="registry.example.com",
        token_wait_interval=0.0,
        token_wait_attempts=5,
        jitter_factor=0.0,
    )


@pytest.fixture
def mock_core_v1_api():
    """MagicMock standing in for CoreV1Api."""
    return MagicMock(spec=client.CoreV1Api)


@pytest.fixture
def mock_kube_contexts():
    """Mock kubernetes config contexts."""
    with patch("kubernetes.config.list_kube_config_contexts") as mock:
        mock.return_value = ([{"name": "test-context"}], {"name": "test-context"})
        yield mock


@pytest.fixture
def mock_kube_config():
    """Mock kubernetes config loading."""
    with patch("kubernetes.config.load_kube_config") as mock:
        yield mock
