"""Data models for dockercfg-controller.

This module provides the well-known secret types, annotation keys and the
typed option and result structures shared by the controller modules.
"""

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple


class SecretType(str, Enum):
    """Kubernetes secret types handled by the controller.

    Inherits from str to allow direct use as the V1Secret ``type`` field.
    """

    SERVICE_ACCOUNT_TOKEN = "kubernetes.io/service-account-token"
    DOCKERCFG = "kubernetes.io/dockercfg"


# Annotation keys binding generated secrets to their service account
SERVICE_ACCOUNT_NAME_KEY = "kubernetes.io/service-account.name"
SERVICE_ACCOUNT_UID_KEY = "kubernetes.io/service-account.uid"
TOKEN_SECRET_NAME_KEY = "openshift.io/token-secret.name"

# Data keys inside the generated secrets
SERVICE_ACCOUNT_TOKEN_KEY = "token"
DOCKERCFG_KEY = ".dockercfg"

# Sink for errors that are reported instead of raised
ErrorHandler = Callable[[BaseException], None]


class GeneratedSecretNames(NamedTuple):
    """Generated dockercfg secret names referenced by a service account.

    Attributes:
        mountable: Names found in the service account's ``secrets`` list.
        pull: Names found in the service account's ``image_pull_secrets`` list.

    """

    mountable: set[str]
    pull: set[str]


@dataclass(frozen=True, slots=True)
class ControllerOptions:
    """Options for running the dockercfg controller.

    Attributes:
        docker_url: Registry endpoint written into generated dockercfg secrets.
        resync_seconds: Period of the full service account re-list. Zero
            disables periodic re-lists.
        token_wait_interval: Seconds between polls of a new token secret.
        token_wait_attempts: Number of polls before giving up on a token.
        jitter_factor: Maximum extra fraction of the interval added per sleep.

    """

    docker_url: str = ""
    resync_seconds: int = 0
    token_wait_interval: float = 0.02
    token_wait_attempts: int = 100
    jitter_factor: float = 1.0
