"""Dockercfg controller.

This module provides the DockercfgController class, which makes sure every
service account references exactly one generated dockercfg secret, both
as a mountable secret and as an image pull secret.
"""

from types import TracebackType

from icecream import ic
from kubernetes import client

from dockercfg_controller import console
from dockercfg_controller.dockercfg import DockerURL, create_dockercfg_secret
from dockercfg_controller.exceptions import ConflictError, DockercfgControllerError
from dockercfg_controller.informer import ServiceAccountInformer
from dockercfg_controller.models import ControllerOptions, ErrorHandler
from dockercfg_controller.naming import get_generated_dockercfg_secret_names
from dockercfg_controller.references import create_dockercfg_secret_reference
from dockercfg_controller.store import KubeStore, delete_secret_if_exists


class DockercfgController:
    """Manages generated dockercfg secrets for service accounts.

    The controller keeps no per-service-account state. Concurrent or
    repeated invocations for the same service account are made safe by
    resource version checks on the API server, not by local locking.
    Conflicts are never retried here; the next notification for the
    service account retries instead.

    Attributes:
        store: Store used for all API calls.
        options: Controller options.
        docker_url: Holder of the registry endpoint for new secrets.
        informer: Change feed delivering service account notifications.

    """

    def __init__(
        self,
        store: KubeStore,
        options: ControllerOptions,
        *,
        error_handler: ErrorHandler = console.handle_error,
    ) -> None:
        """Initialize DockercfgController.

        Args:
            store: Store used for all API calls.
            options: Controller options.
            error_handler: Sink for errors from event handlers. Defaults to
                printing them on the console.

        """
        self.store: KubeStore = store
        self.options: ControllerOptions = options
        self.docker_url: DockerURL = DockerURL(options.docker_url)
        self._error_handler: ErrorHandler = error_handler
        self.informer: ServiceAccountInformer = ServiceAccountInformer(
            store,
            on_add=self.service_account_added,
            on_update=self.service_account_updated,
            resync_seconds=options.resync_seconds,
            error_handler=error_handler,
        )

    def __enter__(self) -> "DockercfgController":
        """Start the controller."""
        self.run()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Stop the controller."""
        self.stop()

    def run(self) -> None:
        """Start watching service accounts and return immediately."""
        console.action("Starting dockercfg controller")
        self.informer.run()

    def stop(self) -> None:
        """Stop delivering new notifications. In-flight work is not cancelled."""
        console.action("Stopping dockercfg controller")
        self.informer.stop()

    def set_docker_url(self, new_docker_url: str) -> None:
        """Replace the registry endpoint used for dockercfg secrets created from now on."""
        self.docker_url.set(new_docker_url)
        console.info(f"Docker registry URL set to {console.highlight(new_docker_url)}")

    def service_account_added(self, service_account: client.V1ServiceAccount) -> None:
        """React to a service account creation."""
        try:
            self.create_dockercfg_secret_if_needed(service_account)
        except Exception as err:  # noqa: BLE001
            self._error_handler(err)

    def service_account_updated(
        self,
        old_service_account: client.V1ServiceAccount,
        new_service_account: client.V1ServiceAccount,
    ) -> None:
        """React to a service account update or re-list."""
        try:
            self.create_dockercfg_secret_if_needed(new_service_account)
        except Exception as err:  # noqa: BLE001
            self._error_handler(err)

    def create_dockercfg_secret_if_needed(self, service_account: client.V1ServiceAccount) -> None:
        """Make sure the service account references one generated dockercfg secret.

        If a generated secret is referenced in only one of the two lists,
        it is added to the other. If none is referenced, a new one is
        created and referenced from both, but only if ``service_account``
        is still the live version.

        Args:
            service_account: The service account as delivered by the change feed.

        Raises:
            TokenTimeoutError: If the token for a new secret was never filled in.
            StoreError: If an API call fails for a reason other than a conflict.

        """
        namespace = service_account.metadata.namespace
        name = service_account.metadata.name

        mountable, pull = get_generated_dockercfg_secret_names(service_account)
        ic(mountable, pull)

        if mountable and pull:
            return

        if mountable or pull:
            dockercfg_secret_name = sorted(pull or mountable)[0]
            try:
                create_dockercfg_secret_reference(self.store, service_account, dockercfg_secret_name)
            except ConflictError as err:
                # Stale decision or concurrent update; the service account has moved on.
                ic(err)
            return

        live_service_account = self.store.get_service_account(namespace, name)
        if live_service_account.metadata.resource_version != service_account.metadata.resource_version:
            console.step(f"View of service account {namespace}/{name} is not up to date, skipping dockercfg creation")
            return

        dockercfg_secret = create_dockercfg_secret(
            self.store, service_account, self.docker_url, self.options, self._error_handler
        )
        dockercfg_secret_name = dockercfg_secret.metadata.name

        try:
            create_dockercfg_secret_reference(self.store, service_account, dockercfg_secret_name)
        except ConflictError as err:
            ic(err)
            console.step(f"Deleting secret {namespace}/{dockercfg_secret_name} after reference conflict")
            try:
                delete_secret_if_exists(self.store, namespace, dockercfg_secret_name)
            except DockercfgControllerError as delete_err:
                self._error_handler(delete_err)
            return

        console.success(
            f"Created dockercfg secret {console.highlight(f'{namespace}/{dockercfg_secret_name}')} "
            f"for service account {console.highlight(f'{namespace}/{name}')}"
        )

    def __repr__(self) -> str:
        """Return a detailed string representation for debugging."""
        return f"DockercfgController(store={self.store!r}, docker_url={self.docker_url!r})"
