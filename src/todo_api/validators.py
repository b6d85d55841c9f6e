from __future__ import annotations

import logging
from typing import Iterable, Optional

from .errors import ValidationFailed
from .repositories import Repository

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
def ensure_users_exist(
    repo: Repository,
    user_ids: Optional[Iterable[str]],
    code: str = "INVALID_ASSIGNED_USERS",
    message: str = "One or more assigned users do not exist",
) -> None:
    """
    Check that every id in user_ids refers to an existing user.

    An absent or empty list is trivially valid and costs no lookup. Otherwise
    a single batch lookup is made and the set of ids found is compared with
    the set requested, so duplicated input ids cannot mask a missing one.

    Raises:
        ValidationFailed: with `details` naming the ids that did not resolve.
    """
    requested = set(user_ids or ())
    if not requested:
        return

    found = {u["id"] for u in repo.find_users_by_ids(requested)}
    missing = requested - found
    if missing:
        logger.warning("Rejected unknown user reference(s): %s", sorted(missing))
        raise ValidationFailed(
            code,
            message,
            f"Please provide valid user IDs. Unknown: {', '.join(sorted(missing))}",
        )
