"""
identity/container.py -- Wires collaborators into the identity services.

Every service receives its gateway, hasher and token service explicitly;
nothing in identity/ reaches for a module-level global. An upper layer
builds one IdentityServices at startup and closes it on shutdown:

    services = create_services()          # reads get_settings()
    try:
        account = services.users.create("Alice", "alice@example.com", "s3cret-pass")
        token = services.tokens.sign({"user_id": account.id})
    finally:
        services.close()

Tests build their own IdentityServices from an in-memory gateway instead.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from core.config import Settings, get_settings
from identity.hashing import PasswordHasher
from identity.permissions import PermissionService
from identity.roles import RoleService
from identity.store import SqlGateway
from identity.tokens import TokenService
from identity.users import UserService

logger = logging.getLogger("rolegate.identity")


@dataclass
class IdentityServices:
    gateway: SqlGateway
    users: UserService
    roles: RoleService
    permissions: PermissionService
    tokens: TokenService

    def close(self) -> None:
        self.gateway.close()
        logger.info("Identity services shut down")


def build_services(gateway: SqlGateway, hasher: PasswordHasher, tokens: TokenService) -> IdentityServices:
    permissions = PermissionService(gateway)
    return IdentityServices(
        gateway=gateway,
        users=UserService(gateway, hasher),
        roles=RoleService(gateway, permissions),
        permissions=permissions,
        tokens=tokens,
    )


def create_services(settings: Optional[Settings] = None) -> IdentityServices:
    """Build the services from settings (get_settings() when omitted).

    Startup order: settings are resolved first so a missing SECRET_KEY or
    DATABASE_URL fails before any connection is opened.
    """
    settings = settings or get_settings()
    gateway = SqlGateway(settings.get("DATABASE_URL"))
    services = build_services(
        gateway,
        PasswordHasher(rounds=settings.bcrypt_rounds),
        TokenService(settings.get("SECRET_KEY"), default_expire_seconds=settings.token_expire_seconds),
    )
    logger.info("Identity services initialized")
    return services
