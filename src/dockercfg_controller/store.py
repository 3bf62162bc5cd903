"""Kubernetes API access for service accounts and secrets.

This module provides the KubeStore class, a thin adapter over
CoreV1Api that translates API failures into the controller's
exception hierarchy.
"""

from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from icecream import ic
from kubernetes import client
from kubernetes.client.exceptions import ApiException
from urllib3.exceptions import MaxRetryError

from dockercfg_controller.exceptions import (
    ClusterConnectionError,
    ConflictError,
    NotFoundError,
    StoreError,
)


@contextmanager
def translate_api_errors(action: str) -> Generator[None, None, None]:
    """Translate kubernetes client errors raised inside the block.

    Args:
        action: Short description of the API call, used in error messages.

    Raises:
        ConflictError: If the API server answered 409.
        NotFoundError: If the API server answered 404.
        StoreError: For any other API error status.
        ClusterConnectionError: If the API server is unreachable.

    """
    try:
        yield
    except ApiException as e:
        message = f"Failed to {action}: {e.reason}"
        match e.status:
            case 409:
                raise ConflictError(message) from e
            case 404:
                raise NotFoundError(message) from e
            case _:
                raise StoreError(message, status=e.status) from e
    except MaxRetryError as e:
        raise ClusterConnectionError(f"Failed to connect to the Kubernetes cluster: {e.reason}") from e


class KubeStore:
    """Reads and writes service accounts and secrets through CoreV1Api.

    Writes carry the resource version of the object passed in, so the
    API server rejects them with a conflict when the object has moved on.

    Attributes:
        api: The CoreV1Api instance used for all calls.

    """

    def __init__(self, api: client.CoreV1Api | None = None) -> None:
        """Initialize KubeStore.

        Args:
            api: CoreV1Api to use. Defaults to one built from the loaded
                cluster configuration.

        """
        self.api: client.CoreV1Api = api if api is not None else client.CoreV1Api()

    def get_service_account(self, namespace: str, name: str) -> client.V1ServiceAccount:
        """Fetch the live service account."""
        with translate_api_errors(f"get service account {namespace}/{name}"):
            return self.api.read_namespaced_service_account(name=name, namespace=namespace)

    def update_service_account(self, service_account: client.V1ServiceAccount) -> client.V1ServiceAccount:
        """Replace a service account, guarded by its resource version.

        Args:
            service_account: The modified service account. Its
                metadata.resource_version must be the one it was read at.

        Returns:
            The updated service account as stored by the API server.

        Raises:
            ConflictError: If the service account changed since it was read.

        """
        namespace = service_account.metadata.namespace
        name = service_account.metadata.name
        with translate_api_errors(f"update service account {namespace}/{name}"):
            return self.api.replace_namespaced_service_account(name=name, namespace=namespace, body=service_account)

    def list_service_accounts(self, **kwargs: Any) -> client.V1ServiceAccountList:
        """List service accounts in all namespaces."""
        with translate_api_errors("list service accounts"):
            return self.api.list_service_account_for_all_namespaces(**kwargs)

    def get_secret(self, namespace: str, name: str) -> client.V1Secret:
        """Fetch the live secret."""
        with translate_api_errors(f"get secret {namespace}/{name}"):
            return self.api.read_namespaced_secret(name=name, namespace=namespace)

    def create_secret(self, secret: client.V1Secret) -> client.V1Secret:
        """Create a secret in the namespace named by its metadata."""
        namespace = secret.metadata.namespace
        with translate_api_errors(f"create secret {namespace}/{secret.metadata.name}"):
            return self.api.create_namespaced_secret(namespace=namespace, body=secret)

    def delete_secret(self, namespace: str, name: str) -> None:
        """Delete a secret.

        Raises:
            NotFoundError: If the secret does not exist.

        """
        with translate_api_errors(f"delete secret {namespace}/{name}"):
            self.api.delete_namespaced_secret(name=name, namespace=namespace)

    def __repr__(self) -> str:
        """Return a detailed string representation for debugging."""
        return f"KubeStore(api={self.api!r})"


def delete_secret_if_exists(store: KubeStore, namespace: str, name: str) -> bool:
    """Delete a secret, treating an already missing secret as success.

    Args:
        store: The store to delete through.
        namespace: Namespace of the secret.
        name: Name of the secret.

    Returns:
        True if the secret was deleted, False if it was already gone.

    """
    try:
        store.delete_secret(namespace, name)
    except NotFoundError:
        ic(f"secret {namespace}/{name} already deleted")
        return False
    return True
