"""Custom exceptions for dockercfg-controller.

This module defines the exception hierarchy used throughout the controller
to classify API failures and reconciliation outcomes.
"""


class DockercfgControllerError(Exception):
    """Base exception for all dockercfg-controller errors.

    All custom exceptions in this package inherit from this class,
    allowing callers to catch all controller errors with a single
    except clause if desired.
    """

    pass


class StoreError(DockercfgControllerError):
    """Raised when a Kubernetes API call fails.

    Attributes:
        status: The HTTP status returned by the API server, if any.

    """

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class ConflictError(StoreError):
    """Raised when a write is rejected because the object has changed.

    This can occur when:
    - The resource version sent with an update is no longer current
    - A reference decision was made on a stale service account
    """

    def __init__(self, message: str) -> None:
        super().__init__(message, status=409)


class NotFoundError(StoreError):
    """Raised when the requested object does not exist."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status=404)


class TokenTimeoutError(DockercfgControllerError):
    """Raised when a token secret is never populated by the token controller.

    Attributes:
        namespace: Namespace of the token secret.
        name: Name of the token secret.

    """

    def __init__(self, namespace: str, name: str) -> None:
        super().__init__(f"token never generated for {namespace}/{name}")
        self.namespace = namespace
        self.name = name


class ClusterConnectionError(DockercfgControllerError):
    """Raised when connection to the Kubernetes cluster fails.

    This can occur when:
    - The kubeconfig is invalid or missing
    - The in-cluster service account credentials are not mounted
    - The cluster is unreachable
    """

    pass


class ConfigError(DockercfgControllerError):
    """Raised when the controller configuration is invalid.

    This can occur when:
    - The configuration file does not exist or is not valid YAML
    - The configuration contains unknown keys
    - A value has the wrong type or is out of range
    """

    pass
