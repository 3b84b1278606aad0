"""
Dependency injection container for backend services.

We store a single Services instance on the Flask app (app.extensions["services"]).
Routes can then fetch dependencies via get_services() which makes route tests able
to inject fakes without importing/initializing global singletons.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from flask import current_app

from ..config import Config
from .kv import KeyValueStore
from .media import ImageStore
from .note_types import NoteTypeStore
from .storage import NoteStorage
from .tokens import TokenService
from .users import UserStore


@dataclass(frozen=True)
class Services:
    store: KeyValueStore
    users: UserStore
    notes: NoteStorage
    note_types: NoteTypeStore
    tokens: TokenService
    media: ImageStore


def build_services(
    store: KeyValueStore,
    *,
    jwt_secret: str,
    media: Optional[ImageStore] = None,
    bcrypt_rounds: int = 12,
) -> Services:
    """Wire the store adapters around one key-value store."""
    return Services(
        store=store,
        users=UserStore(store, bcrypt_rounds=bcrypt_rounds),
        notes=NoteStorage(store),
        note_types=NoteTypeStore(store),
        tokens=TokenService(jwt_secret),
        media=media or ImageStore.from_config(),
    )


def create_services(*, redis_url: Optional[str] = None) -> Services:
    """
    Build the production Services container.

    Args:
        redis_url: Optional override for the Redis URL (useful for tests).
    """
    return build_services(
        KeyValueStore.from_url(redis_url or Config.REDIS_URL),
        jwt_secret=Config.JWT_SECRET,
        bcrypt_rounds=Config.BCRYPT_ROUNDS,
    )


def get_services() -> Services:
    """
    Fetch the Services container from the current Flask app.

    Raises:
        RuntimeError if services have not been attached to the app.
    """
    services = current_app.extensions.get("services")
    if services is None:
        raise RuntimeError('Services not configured. Expected app.extensions["services"].')
    return services
