"""Kubernetes cluster connection utilities.

This module provides the Cluster class, which loads the cluster
configuration the controller runs against and verifies the API
server is reachable.
"""

from icecream import ic
from kubernetes import client, config
from kubernetes.config.config_exception import ConfigException
from urllib3.exceptions import MaxRetryError

from dockercfg_controller import console
from dockercfg_controller.exceptions import ClusterConnectionError

IN_CLUSTER_CONTEXT = "in-cluster"


class Cluster:
    """Manages the connection to the Kubernetes cluster.

    Attributes:
        context: The active kubeconfig context name, or 'in-cluster'.

    """

    def __init__(self, *, context: str | None = None, in_cluster: bool = False) -> None:
        """Initialize Cluster and load its configuration.

        Args:
            context: Kubeconfig context to use. Defaults to the current one.
            in_cluster: If True, use the pod's service account credentials
                instead of a kubeconfig. Must be passed as a keyword argument.

        """
        self.context: str = self._load_config(context=context, in_cluster=in_cluster)

    @staticmethod
    def _load_config(*, context: str | None, in_cluster: bool) -> str:
        """Load the cluster configuration.

        Returns:
            The context name in use.

        Raises:
            ClusterConnectionError: If the configuration is invalid or missing.

        """
        if in_cluster:
            try:
                config.load_incluster_config()
            except ConfigException as e:
                raise ClusterConnectionError(f"Invalid in-cluster configuration: {e}") from e
            console.action(f"Working with {console.highlight(IN_CLUSTER_CONTEXT)} cluster")
            return IN_CLUSTER_CONTEXT

        try:
            _, current_context = config.list_kube_config_contexts()
            context = context or str(current_context["name"])
            config.load_kube_config(context=context)
        except ConfigException as e:
            raise ClusterConnectionError(f"Invalid or missing kubeconfig: {e}") from e
        console.action(f"Working with {console.highlight(context)} cluster")
        return context

    @staticmethod
    def check_connection() -> str:
        """Verify the API server answers.

        Returns:
            The API server's git version.

        Raises:
            ClusterConnectionError: If the cluster is unreachable.

        """
        try:
            version = client.VersionApi().get_code()
        except MaxRetryError as e:
            raise ClusterConnectionError(f"Failed to connect to the Kubernetes cluster: {e.reason}") from e
        ic(version)
        return str(version.git_version)

    def core_v1_api(self) -> client.CoreV1Api:
        """Return a CoreV1Api bound to the loaded configuration."""
        return client.CoreV1Api()

    def __repr__(self) -> str:
        """Return a detailed string representation for debugging."""
        return f"Cluster(context={self.context!r})"
