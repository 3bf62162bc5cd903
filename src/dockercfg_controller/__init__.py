"""dockercfg-controller: image pull secrets for Kubernetes service accounts.

This package provides a controller that makes sure every service account
references exactly one generated dockercfg secret, both as a mountable
secret and as an image pull secret.

Example usage:
    from dockercfg_controller import ControllerOptions, DockercfgController, KubeStore

    options = ControllerOptions(docker_url="registry.example.com")
    with DockercfgController(KubeStore(), options) as controller:
        controller.set_docker_url("registry.internal:5000")
"""

__version__ = "0.1.0"

from dockercfg_controller.cli import cli
from dockercfg_controller.cluster import Cluster
from dockercfg_controller.controller import DockercfgController
from dockercfg_controller.exceptions import (
    ClusterConnectionError,
    ConfigError,
    ConflictError,
    DockercfgControllerError,
    NotFoundError,
    StoreError,
    TokenTimeoutError,
)
from dockercfg_controller.models import ControllerOptions, GeneratedSecretNames
from dockercfg_controller.store import KubeStore

__all__ = [
    # Version
    "__version__",
    # Main CLI
    "cli",
    # Classes
    "Cluster",
    "ControllerOptions",
    "DockercfgController",
    "GeneratedSecretNames",
    "KubeStore",
    # Exceptions
    "DockercfgControllerError",
    "ClusterConnectionError",
    "ConfigError",
    "ConflictError",
    "NotFoundError",
    "StoreError",
    "TokenTimeoutError",
]
