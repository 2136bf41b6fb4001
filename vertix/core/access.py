"""
Access Control - Role checks for administrative operations.

Roles are stored per account as a bit set, so one account may hold
several roles. ADMIN implies every other role.

The engine only asks `is_authorized(identity, role)`; how roles are
governed (timelocks, multisig) is outside the engine.
"""

from enum import IntFlag
from typing import Dict

from vertix.crypto import short_hex
from vertix.utils.logger import get_logger

logger = get_logger("access")


class Role(IntFlag):
    NONE = 0
    ADMIN = 1
    PAUSER = 2
    FEE_MANAGER = 4


class RoleService:
    """Interface to the permission service."""

    def is_authorized(self, identity: bytes, role: Role) -> bool:
        raise NotImplementedError


class RoleRegistry(RoleService):
    """In-memory role assignments."""

    def __init__(self, admin: bytes):
        self.permissions: Dict[bytes, Role] = {admin: Role.ADMIN}

    def grant(self, identity: bytes, roles: Role) -> None:
        self.permissions[identity] = self.permissions.get(identity, Role.NONE) | roles
        logger.info(f"Granted {roles!r} to {short_hex(identity)}")

    def revoke(self, identity: bytes, roles: Role) -> None:
        self.permissions[identity] = self.permissions.get(identity, Role.NONE) & ~roles
        logger.info(f"Revoked {roles!r} from {short_hex(identity)}")

    def roles_of(self, identity: bytes) -> Role:
        return self.permissions.get(identity, Role.NONE)

    def is_authorized(self, identity: bytes, role: Role) -> bool:
        held = self.roles_of(identity)
        return bool(held & Role.ADMIN) or (held & role) == role
