"""Dependency helpers shared across routers."""

from __future__ import annotations

from fastapi import Depends, Request

from .repositories import Repository
from .services import TodoService, UserService


def get_repository(request: Request) -> Repository:
    """Repository created by the application lifespan."""
    return request.app.state.repository


def get_todo_service(repo: Repository = Depends(get_repository)) -> TodoService:
    return TodoService(repo)


def get_user_service(repo: Repository = Depends(get_repository)) -> UserService:
    return UserService(repo)
