"""
Ownership check applied uniformly at the deepest entity touched.
"""
from typing import Any

from exceptions import ForbiddenError, NotFoundError


def ensure_owner(
    resource_type: str,
    resource_id: Any,
    resolved_owner_id: str | None,
    acting_user_id: str,
    action: str = "access",
    conceal: bool = False
) -> None:
    """
    Compare the resolved owner with the acting user.

    conceal=True reports a foreign entity as missing (read paths that double
    as existence checks); otherwise a ForbiddenError is raised.
    """
    if resolved_owner_id is None:
        raise NotFoundError(resource_type, resource_id)
    if resolved_owner_id != acting_user_id:
        if conceal:
            raise NotFoundError(resource_type, resource_id)
        raise ForbiddenError(resource_type, resource_id, action=action)
