"""Dockercfg secret rendering and creation.

This module builds the ``.dockercfg`` credential map for a service
account from its token and persists it as a new secret.
"""

import base64
import json
import threading

from icecream import ic
from kubernetes import client

from dockercfg_controller import console
from dockercfg_controller.models import (
    DOCKERCFG_KEY,
    SERVICE_ACCOUNT_NAME_KEY,
    SERVICE_ACCOUNT_UID_KEY,
    TOKEN_SECRET_NAME_KEY,
    ControllerOptions,
    ErrorHandler,
    SecretType,
)
from dockercfg_controller.naming import generate_name, get_dockercfg_secret_name_prefix
from dockercfg_controller.store import KubeStore
from dockercfg_controller.tokens import create_token_secret, get_token

DOCKERCFG_USERNAME = "serviceaccount"
DOCKERCFG_EMAIL = "serviceaccount@example.org"


class DockerURL:
    """Registry endpoint shared between secret creation and reconfiguration.

    The lock is only ever held for the read and render of a payload or
    for the write of a new value, never across an API call.
    """

    def __init__(self, url: str = "") -> None:
        self._url = url
        self._lock = threading.Lock()

    def get(self) -> str:
        """Return the current registry endpoint."""
        with self._lock:
            return self._url

    def set(self, url: str) -> None:
        """Replace the registry endpoint for all later secret creations."""
        with self._lock:
            self._url = url

    def render(self, token: str) -> bytes:
        """Render a dockercfg payload against the current endpoint.

        Args:
            token: The service account token used as registry password.

        Returns:
            The serialized dockercfg JSON.

        """
        with self._lock:
            return render_dockercfg(self._url, token)

    def __repr__(self) -> str:
        """Return a detailed string representation for debugging."""
        return f"DockerURL({self.get()!r})"


def render_dockercfg(docker_url: str, token: str) -> bytes:
    """Serialize a dockercfg credential map for a single registry.

    Args:
        docker_url: The registry endpoint used as the map key.
        token: The service account token used as password.

    Returns:
        Compact JSON bytes, e.g.
        b'{"registry.example.com":{"username":"serviceaccount",...}}'.

    """
    dockercfg = {
        docker_url: {
            "username": DOCKERCFG_USERNAME,
            "password": token,
            "email": DOCKERCFG_EMAIL,
        }
    }
    return json.dumps(dockercfg, separators=(",", ":")).encode()


def create_dockercfg_secret(
    store: KubeStore,
    service_account: client.V1ServiceAccount,
    docker_url: DockerURL,
    options: ControllerOptions,
    error_handler: ErrorHandler = console.handle_error,
) -> client.V1Secret:
    """Create a dockercfg secret for a service account.

    A fresh token secret is provisioned first; its token becomes the
    registry password. If creating the dockercfg secret fails, the token
    secret is left behind for the token cleanup controller.

    Args:
        store: The store to create secrets through.
        service_account: The owning service account.
        docker_url: Holder of the registry endpoint.
        options: Controller options for token provisioning.
        error_handler: Sink for errors reported during token provisioning.

    Returns:
        The created dockercfg secret.

    Raises:
        TokenTimeoutError: If the token secret was never filled in.
        StoreError: If any API call fails.

    """
    token_secret = create_token_secret(store, service_account, options, error_handler)

    payload = docker_url.render(get_token(token_secret))

    dockercfg_secret = client.V1Secret(
        metadata=client.V1ObjectMeta(
            name=generate_name(get_dockercfg_secret_name_prefix(service_account)),
            namespace=token_secret.metadata.namespace,
            annotations={
                SERVICE_ACCOUNT_NAME_KEY: service_account.metadata.name,
                SERVICE_ACCOUNT_UID_KEY: str(service_account.metadata.uid),
                TOKEN_SECRET_NAME_KEY: token_secret.metadata.name,
            },
        ),
        type=SecretType.DOCKERCFG.value,
        data={DOCKERCFG_KEY: base64.b64encode(payload).decode()},
    )
    ic(dockercfg_secret.metadata.name)

    return store.create_secret(dockercfg_secret)
