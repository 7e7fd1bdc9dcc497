"""
SFTPGo secret helpers.

SFTPGo transports secrets as ``{"status", "payload", "key", "additional_data"}``
objects. Configured values are plain strings; values already encrypted by an
SFTPGo KMS are accepted in the ``$<status>$<key>$<adlen>$<ad><payload>``
form the API itself echoes back.
"""

from collections.abc import Iterable
from typing import Any

from sftpgo_operator.constants import ENCRYPTED_SECRET_STATUSES, SECRET_STATUS_PLAIN


def encode_secret(value: str | None) -> dict[str, str]:
    """Convert a configured secret string into an SFTPGo secret object."""
    if not value:
        return {}

    parts = value.split("$", 4)
    if len(parts) == 5 and parts[0] == "" and parts[1] in ENCRYPTED_SECRET_STATUSES:
        try:
            additional_data_len = int(parts[3])
        except ValueError:
            additional_data_len = -1
        if 0 <= additional_data_len < len(parts[4]):
            return {
                "status": parts[1],
                "payload": parts[4][additional_data_len:],
                "key": parts[2],
                "additional_data": parts[4][:additional_data_len],
            }

    return {"status": SECRET_STATUS_PLAIN, "payload": value}


def decode_secret(secret: dict[str, Any] | None) -> str:
    """Convert an SFTPGo secret object back into its string form.

    An empty status yields ``""``. Encrypted secrets keep their envelope so
    that they can be sent back unchanged.
    """
    if not secret:
        return ""

    status = secret.get("status") or ""
    if not status:
        return ""
    if status == SECRET_STATUS_PLAIN:
        return secret.get("payload") or ""

    additional_data = secret.get("additional_data") or ""
    return (
        f"${status}${secret.get('key') or ''}${len(additional_data)}$"
        f"{additional_data}{secret.get('payload') or ''}"
    )


def _lookup(record: dict[str, Any] | None, path: list[str]) -> Any:
    current: Any = record
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def preserve_secrets(
    state: dict[str, Any], source: dict[str, Any] | None, paths: Iterable[str]
) -> dict[str, Any]:
    """
    Copy secret values from a source record into a decoded state record.

    SFTPGo never returns secrets in plaintext, so the values decoded after a
    write do not match what was configured. For every dotted path a non-null
    value in ``source`` replaces the one in ``state``; a null value leaves the
    remote echo untouched.

    Args:
        state: Record decoded from the API, modified in place
        source: Configuration (after create/update) or last known state (after read)
        paths: Dotted paths of the secret fields, e.g. ``"filesystem.s3config.access_secret"``

    Returns:
        The updated state record
    """
    if not source:
        return state

    for dotted in paths:
        path = dotted.split(".")
        value = _lookup(source, path)
        if value is None:
            continue

        target = state
        for key in path[:-1]:
            nested = target.get(key)
            if not isinstance(nested, dict):
                nested = {}
                target[key] = nested
            target = nested
        target[path[-1]] = value

    return state
