"""Service account references to generated dockercfg secrets."""

from icecream import ic
from kubernetes import client

from dockercfg_controller.exceptions import ConflictError
from dockercfg_controller.naming import get_generated_dockercfg_secret_names
from dockercfg_controller.store import KubeStore


def create_dockercfg_secret_reference(
    store: KubeStore,
    stale_service_account: client.V1ServiceAccount,
    dockercfg_secret_name: str,
) -> None:
    """Reference a dockercfg secret as a secret and as an image pull secret.

    The decision to add the reference was made on ``stale_service_account``.
    If the live service account already references a different set of
    generated dockercfg secrets, that decision is void and a conflict is
    raised instead of writing. The write itself is not retried.

    Args:
        store: The store to read and update the service account through.
        stale_service_account: The service account the caller decided on.
        dockercfg_secret_name: Name of the dockercfg secret to reference.

    Raises:
        ConflictError: If the decision was based on stale data, or the
            service account changed again before the update landed.
        StoreError: If any other API call fails.

    """
    namespace = stale_service_account.metadata.namespace
    name = stale_service_account.metadata.name

    live_service_account = store.get_service_account(namespace, name)

    live_names = get_generated_dockercfg_secret_names(live_service_account)
    stale_names = get_generated_dockercfg_secret_names(stale_service_account)

    if live_names != stale_names:
        raise ConflictError(
            f"cannot add reference to {dockercfg_secret_name} based on stale data. "
            f"decision made for {sorted(stale_names.mountable)},{sorted(stale_names.pull)}, "
            f"but live version is {sorted(live_names.mountable)},{sorted(live_names.pull)}"
        )

    changed = False
    if dockercfg_secret_name not in live_names.mountable:
        live_service_account.secrets = [
            *(live_service_account.secrets or []),
            client.V1ObjectReference(name=dockercfg_secret_name),
        ]
        changed = True

    if dockercfg_secret_name not in live_names.pull:
        live_service_account.image_pull_secrets = [
            *(live_service_account.image_pull_secrets or []),
            client.V1LocalObjectReference(name=dockercfg_secret_name),
        ]
        changed = True

    ic(changed)
    if changed:
        # Conflicts unrelated to the generated secrets also abort here.
        store.update_service_account(live_service_account)
