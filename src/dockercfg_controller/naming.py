"""Naming conventions for generated service account secrets.

Generated dockercfg secrets are recognised purely by their name prefix,
which is derived from the owning service account's name.
"""

import random

from kubernetes import client

from dockercfg_controller.models import GeneratedSecretNames

# Same alphabet and suffix length the API server uses for generateName
_NAME_ALPHABET = "bcdfghjklmnpqrstvwxz2456789"
_RANDOM_SUFFIX_LENGTH = 5
_MAX_NAME_LENGTH = 63
_MAX_GENERATED_PREFIX_LENGTH = _MAX_NAME_LENGTH - _RANDOM_SUFFIX_LENGTH


def _name_prefix(service_account: client.V1ServiceAccount, kind: str) -> str:
    # Leaves room for the random suffix within the 63 character limit
    return f"{service_account.metadata.name}-{kind}-"[:_MAX_GENERATED_PREFIX_LENGTH]


def get_dockercfg_secret_name_prefix(service_account: client.V1ServiceAccount) -> str:
    """Return the name prefix of dockercfg secrets generated for a service account.

    Long service account names are cut so that a generated name still
    fits into 63 characters.
    """
    return _name_prefix(service_account, "dockercfg")


def get_token_secret_name_prefix(service_account: client.V1ServiceAccount) -> str:
    """Return the name prefix of token secrets generated for a service account."""
    return _name_prefix(service_account, "token")


def generate_name(prefix: str) -> str:
    """Append a random suffix to a name prefix.

    Args:
        prefix: The name prefix (e.g., 'default-dockercfg-'), at most
            58 characters long.

    Returns:
        The generated name (e.g., 'default-dockercfg-x7k2q').

    """
    suffix = "".join(random.choices(_NAME_ALPHABET, k=_RANDOM_SUFFIX_LENGTH))  # noqa: S311
    return f"{prefix}{suffix}"


def get_generated_dockercfg_secret_names(service_account: client.V1ServiceAccount) -> GeneratedSecretNames:
    """Classify the generated dockercfg secrets a service account references.

    Args:
        service_account: The service account to inspect.

    Returns:
        GeneratedSecretNames with the generated names found in the mountable
        secrets list and in the image pull secrets list.

    """
    prefix = get_dockercfg_secret_name_prefix(service_account)

    mountable = {ref.name for ref in service_account.secrets or [] if ref.name and ref.name.startswith(prefix)}
    pull = {ref.name for ref in service_account.image_pull_secrets or [] if ref.name and ref.name.startswith(prefix)}

    return GeneratedSecretNames(mountable=mountable, pull=pull)
