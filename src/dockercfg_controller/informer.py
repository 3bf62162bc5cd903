"""List/watch change feed for service accounts.

This module provides the ServiceAccountInformer class, which keeps a
local cache of service accounts in all namespaces and invokes add and
update callbacks as they change. Every re-list re-delivers all cached
objects as updates, which is how periodic resync happens.
"""

import contextlib
import threading
from collections.abc import Callable

from icecream import ic
from kubernetes import client, watch
from urllib3 import HTTPResponse

from dockercfg_controller import console
from dockercfg_controller.exceptions import StoreError
from dockercfg_controller.models import ErrorHandler
from dockercfg_controller.store import KubeStore, translate_api_errors

_HTTP_GONE = 410

AddHandler = Callable[[client.V1ServiceAccount], None]
UpdateHandler = Callable[[client.V1ServiceAccount, client.V1ServiceAccount], None]


def object_key(obj: client.V1ServiceAccount) -> str:
    """Return the namespace/name cache key of an object."""
    return f"{obj.metadata.namespace}/{obj.metadata.name}"


class ServiceAccountInformer:
    """Delivers service account add and update notifications.

    Attributes:
        store: The store whose API is listed and watched.
        resync_seconds: Watch timeout after which everything is re-listed
            and re-delivered. With zero the watch client reconnects on its
            own and a re-list only happens after a failed or expired watch.
        restart_delay: Seconds to wait before re-listing after a failure.

    """

    def __init__(
        self,
        store: KubeStore,
        *,
        on_add: AddHandler,
        on_update: UpdateHandler,
        resync_seconds: int = 0,
        error_handler: ErrorHandler = console.handle_error,
        restart_delay: float = 5.0,
    ) -> None:
        self.store = store
        self.resync_seconds = resync_seconds
        self.restart_delay = restart_delay
        self._on_add = on_add
        self._on_update = on_update
        self._error_handler = error_handler
        self._cache: dict[str, client.V1ServiceAccount] = {}
        self._stop_event = threading.Event()
        self._watcher: watch.Watch | None = None
        self._response: HTTPResponse | None = None
        self._watcher_lock = threading.Lock()
        self._thread: threading.Thread | None = None

    def run(self) -> None:
        """Start the list/watch loop in a background thread and return."""
        if self._thread is not None:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run_loop, name="service-account-informer", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = 10.0) -> None:
        """Stop delivering notifications.

        The live watch connection is shut down so that an idle watch ends
        at once. Handlers already running are not interrupted.

        Args:
            timeout: Seconds to wait for the loop thread to exit. The
                thread is a daemon and is left behind if it does not.

        """
        if self._thread is None:
            return
        self._stop_event.set()
        with self._watcher_lock:
            self._shutdown_response()
            if self._watcher is not None:
                self._watcher.stop()
        self._thread.join(timeout=timeout)
        if self._thread.is_alive():
            console.warning("Service account watch did not stop in time")
        self._thread = None

    @property
    def running(self) -> bool:
        """Whether the loop thread is alive."""
        return self._thread is not None and self._thread.is_alive()

    def cached(self) -> list[client.V1ServiceAccount]:
        """Return the service accounts currently in the cache."""
        return list(self._cache.values())

    def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                resource_version = self.relist()
                self.watch(resource_version)
                continue
            except StoreError as err:
                if err.status == _HTTP_GONE:
                    console.step("Watch resource version expired, re-listing")
                    continue
                self._error_handler(err)
            except Exception as err:  # noqa: BLE001
                self._error_handler(err)
            # Pause before re-listing after a failure
            self._stop_event.wait(self.restart_delay)

    def relist(self) -> str | None:
        """List all service accounts and deliver them.

        Objects seen for the first time are delivered as adds, known
        ones as updates. Objects missing from the list are dropped.

        Returns:
            The list's resource version to start watching from.

        """
        service_accounts = self.store.list_service_accounts()
        seen: set[str] = set()
        for service_account in service_accounts.items:
            if self._stop_event.is_set():
                break
            seen.add(object_key(service_account))
            self._deliver(service_account)

        for key in set(self._cache) - seen:
            del self._cache[key]

        ic(len(self._cache))
        return service_accounts.metadata.resource_version if service_accounts.metadata else None

    def watch(self, resource_version: str | None) -> None:
        """Watch for changes until the watch ends or the informer stops.

        Args:
            resource_version: Resource version to start watching from.

        Raises:
            StoreError: If the watch fails, including 410 when the
                resource version is too old.

        """
        kwargs: dict[str, object] = {}
        if resource_version:
            kwargs["resource_version"] = resource_version
        if self.resync_seconds > 0:
            kwargs["timeout_seconds"] = self.resync_seconds

        watcher = watch.Watch(return_type=client.V1ServiceAccount)
        with self._watcher_lock:
            if self._stop_event.is_set():
                return
            self._watcher = watcher

        def open_stream(**stream_kwargs):
            response = self.store.api.list_service_account_for_all_namespaces(**stream_kwargs)
            with self._watcher_lock:
                self._response = response
                if self._stop_event.is_set():
                    self._shutdown_response()
                    watcher.stop()
            return response

        try:
            with translate_api_errors("watch service accounts"):
                for event in watcher.stream(open_stream, **kwargs):
                    if self._stop_event.is_set():
                        break
                    self._handle_event(event)
        except Exception:
            # Reading from a connection shut down by stop() may fail
            if self._stop_event.is_set():
                return
            raise
        finally:
            with self._watcher_lock:
                self._watcher = None
                self._response = None

    def _shutdown_response(self) -> None:
        if self._response is None:
            return
        # The connection may already be closed
        with contextlib.suppress(OSError, ValueError):
            self._response.shutdown()

    def _handle_event(self, event: dict) -> None:
        event_type = event.get("type")
        obj = event.get("object")
        if obj is None or getattr(obj, "metadata", None) is None:
            return

        ic(event_type, object_key(obj))
        match event_type:
            case "ADDED" | "MODIFIED":
                self._deliver(obj)
            case "DELETED":
                self._cache.pop(object_key(obj), None)

    def _deliver(self, service_account: client.V1ServiceAccount) -> None:
        key = object_key(service_account)
        old = self._cache.get(key)
        self._cache[key] = service_account
        if old is None:
            self._on_add(service_account)
        else:
            self._on_update(old, service_account)
