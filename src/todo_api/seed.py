"""Startup loading of users from a JSON file."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Union

from .repositories import Repository

logger = logging.getLogger(__name__)


def load_seed_users(path: Union[str, Path]) -> List[Dict[str, Any]]:
    """
    Read a JSON array of users: [{"username": ..., "name": ..., "id": optional}].

    Raises:
        ValueError: the file is not a list of objects with username and name.
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a JSON array of users")
    users: List[Dict[str, Any]] = []
    for index, entry in enumerate(data):
        if not isinstance(entry, dict) or not entry.get("username") or not entry.get("name"):
            raise ValueError(f"{path}: entry {index} needs non-empty 'username' and 'name'")
        users.append(entry)
    return users


def seed_users(repo: Repository, users: List[Dict[str, Any]]) -> int:
    """
    Insert users whose username is not yet stored. Returns the number inserted.
    An entry whose explicit id already belongs to another user is skipped.
    """
    inserted = 0
    for entry in users:
        username = str(entry["username"]).strip()
        if repo.get_user_by_username(username) is not None:
            continue
        user_id = str(entry["id"]).strip() if entry.get("id") else None
        if user_id and repo.find_users_by_ids([user_id]):
            logger.warning("Skipping seed user '%s': id %s is already taken", username, user_id)
            continue
        repo.add_user(username, str(entry["name"]).strip(), user_id=user_id)
        inserted += 1
    if inserted:
        logger.info("Seeded %d user(s)", inserted)
    return inserted
