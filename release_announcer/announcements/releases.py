"""Resolve the release that precedes a given release id."""

from release_announcer.utils.constants import DEFAULT_RELEASE_BRANCH_PREFIX

from .exceptions import InvalidReleaseFormatError, ReleaseUnderflowError


def _parse_int(value: str) -> int | None:
    try:
        return int(value.strip())
    except ValueError:
        return None


def previous_release(release_id: str) -> str:
    """Compute the id of the release before release_id.

    Dotted ids decrement their second segment while it is positive
    (``2.1.0`` -> ``2.0``); otherwise the first segment is decremented and
    returned on its own (``2.0`` -> ``1``). Flat ids decrement as integers
    (``67`` -> ``66``).

    Raises:
        InvalidReleaseFormatError: If the id (or its first segment) is not an integer.
        ReleaseUnderflowError: If a flat id is 1 or lower.
    """
    release_id = release_id.strip()

    if "." in release_id:
        parts = release_id.split(".")
        if len(parts) > 1:
            minor = _parse_int(parts[1])
            if minor is not None and minor > 0:
                return f"{parts[0]}.{minor - 1}"
        major = _parse_int(parts[0])
        if major is None:
            raise InvalidReleaseFormatError(release_id)
        # The second segment is dropped here; branch lookups rely on this exact form.
        return str(major - 1)

    current = _parse_int(release_id)
    if current is None:
        raise InvalidReleaseFormatError(release_id)
    if current <= 1:
        raise ReleaseUnderflowError(release_id)
    return str(current - 1)


def release_branch(release_id: str, prefix: str = DEFAULT_RELEASE_BRANCH_PREFIX) -> str:
    """Build the branch name of a release."""
    return f"{prefix}{release_id}"
