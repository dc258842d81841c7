"""Domain entity representing a user of the directory."""

from dataclasses import dataclass

ADMIN_ROLE = "admin"


@dataclass
class DirectoryUser:
    """Attributes of an application user needed for notification delivery."""

    id: str
    name: str
    email: str | None
    role: str = "user"
    is_active: bool = True

    def has_role(self, role: str) -> bool:
        """Return ``True`` when the user's role matches ``role``."""

        return self.role.lower() == role.lower()

    def is_admin(self) -> bool:
        """Return ``True`` when the user is an administrator."""

        return self.has_role(ADMIN_ROLE)


__all__ = ["ADMIN_ROLE", "DirectoryUser"]
