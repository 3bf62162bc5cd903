"""Service account token secret provisioning.

The token controller fills in new service account token secrets
asynchronously. This module creates such a secret and waits, for a
bounded number of polls, until the token is there.
"""

import base64
import random
import time

from icecream import ic
from kubernetes import client

from dockercfg_controller import console
from dockercfg_controller.exceptions import DockercfgControllerError, TokenTimeoutError
from dockercfg_controller.models import (
    SERVICE_ACCOUNT_NAME_KEY,
    SERVICE_ACCOUNT_TOKEN_KEY,
    SERVICE_ACCOUNT_UID_KEY,
    ControllerOptions,
    ErrorHandler,
    SecretType,
)
from dockercfg_controller.naming import generate_name, get_token_secret_name_prefix
from dockercfg_controller.store import KubeStore, delete_secret_if_exists


def jittered(interval: float, max_factor: float) -> float:
    """Return the interval plus a random extra of up to max_factor * interval."""
    return interval + random.random() * max_factor * interval  # noqa: S311


def get_token(secret: client.V1Secret) -> str:
    """Return the decoded token of a service account token secret.

    Args:
        secret: The token secret.

    Returns:
        The token, or an empty string if the secret is not populated yet.

    """
    encoded = (secret.data or {}).get(SERVICE_ACCOUNT_TOKEN_KEY)
    if not encoded:
        return ""
    return base64.b64decode(encoded).decode()


def create_token_secret(
    store: KubeStore,
    service_account: client.V1ServiceAccount,
    options: ControllerOptions,
    error_handler: ErrorHandler = console.handle_error,
) -> client.V1Secret:
    """Create a token secret for a service account and wait until it is filled.

    Args:
        store: The store to create and poll the secret through.
        service_account: The owning service account.
        options: Controller options providing the poll interval, jitter
            and number of attempts.
        error_handler: Sink for a failed delete of the unfilled secret.

    Returns:
        The live token secret with its token populated.

    Raises:
        TokenTimeoutError: If the token was never filled in. The unfilled
            secret is deleted first.
        StoreError: If creating or fetching the secret fails.

    """
    token_secret = client.V1Secret(
        metadata=client.V1ObjectMeta(
            name=generate_name(get_token_secret_name_prefix(service_account)),
            namespace=service_account.metadata.namespace,
            annotations={
                SERVICE_ACCOUNT_NAME_KEY: service_account.metadata.name,
                SERVICE_ACCOUNT_UID_KEY: str(service_account.metadata.uid),
            },
        ),
        type=SecretType.SERVICE_ACCOUNT_TOKEN.value,
        data={},
    )
    namespace = token_secret.metadata.namespace
    name = token_secret.metadata.name

    store.create_secret(token_secret)
    ic(f"created token secret {namespace}/{name}")

    for attempt in range(options.token_wait_attempts):
        live_token_secret = store.get_secret(namespace, name)
        if get_token(live_token_secret):
            ic(attempt)
            return live_token_secret

        if attempt < options.token_wait_attempts - 1:
            time.sleep(jittered(options.token_wait_interval, options.jitter_factor))

    console.warning(f"Deleting unfilled token secret {console.highlight(f'{namespace}/{name}')}")
    try:
        delete_secret_if_exists(store, namespace, name)
    except DockercfgControllerError as err:
        error_handler(err)
    raise TokenTimeoutError(namespace, name)
