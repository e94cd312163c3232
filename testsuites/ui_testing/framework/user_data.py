"""
================================================================================
User Data
================================================================================

Value objects for the user-administration flows and a factory producing
unique, recognisable test users.

Records are frozen: an edit receives a fresh `UserUpdate`, it never mutates
the record it started from.

================================================================================
"""

from __future__ import annotations

import random
import string
from dataclasses import dataclass, fields, replace
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import uuid4


ROLES = ("Admin", "ESS")
STATUSES = ("Enabled", "Disabled")


# ================================================================================
# Data Models
# ================================================================================

@dataclass(frozen=True)
class UserRecord:
    """A system user as entered in the Add User form."""
    employee_name: str
    username: str
    password: str
    role: str = "ESS"
    status: str = "Enabled"

    def __post_init__(self) -> None:
        if self.role not in ROLES:
            raise ValueError(f"role must be one of {ROLES}, got {self.role!r}")
        if self.status not in STATUSES:
            raise ValueError(f"status must be one of {STATUSES}, got {self.status!r}")

    def __repr__(self) -> str:
        return (
            f"UserRecord(employee_name={self.employee_name!r}, username={self.username!r}, "
            f"password='***', role={self.role!r}, status={self.status!r})"
        )

    def updated(self, update: "UserUpdate") -> "UserRecord":
        """Record as it should read after `update` was applied."""
        return replace(self, **update.changes())


@dataclass(frozen=True)
class UserUpdate:
    """Partial update: only fields that are set are applied."""
    employee_name: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    role: Optional[str] = None
    status: Optional[str] = None

    def __post_init__(self) -> None:
        if self.role is not None and self.role not in ROLES:
            raise ValueError(f"role must be one of {ROLES}, got {self.role!r}")
        if self.status is not None and self.status not in STATUSES:
            raise ValueError(f"status must be one of {STATUSES}, got {self.status!r}")

    def changes(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}

    @property
    def is_empty(self) -> bool:
        return not self.changes()

    def __repr__(self) -> str:
        shown = {k: ("***" if k == "password" else v) for k, v in self.changes().items()}
        return f"UserUpdate({shown})"


# ================================================================================
# Factory
# ================================================================================

class UserDataFactory:
    """
    Builds unique users for create/delete flows.

    Usernames carry a fixed prefix plus timestamp and random suffix so that
    leftovers from aborted runs are easy to find and never collide.
    """

    PREFIX = "autotest."

    def __init__(self, employee_name: str, seed: Optional[int] = None):
        """
        Args:
            employee_name: Existing employee the users are attached to
            seed: Random seed for reproducible passwords
        """
        self.employee_name = employee_name
        self._random = random.Random(seed)
        self._created: List[UserRecord] = []

    def unique_username(self, stem: str = "user") -> str:
        timestamp = datetime.now().strftime("%m%d%H%M%S")
        return f"{self.PREFIX}{stem}.{timestamp}{uuid4().hex[:6]}"

    def password(self, length: int = 12) -> str:
        """Password satisfying the usual policy: upper, lower, digit, symbol."""
        body = "".join(self._random.choice(string.ascii_letters + string.digits) for _ in range(length - 4))
        return f"Aa1!{body}"

    def build(self, role: str = "ESS", status: str = "Enabled", stem: str = "user", **overrides: Any) -> UserRecord:
        """Create a new unique `UserRecord` and remember it for cleanup."""
        data: Dict[str, Any] = {
            "employee_name": self.employee_name,
            "username": self.unique_username(stem),
            "password": self.password(),
            "role": role,
            "status": status,
        }
        data.update(overrides)
        record = UserRecord(**data)
        self._created.append(record)
        return record

    @property
    def created(self) -> List[UserRecord]:
        return list(self._created)


__all__ = [
    "UserRecord",
    "UserUpdate",
    "UserDataFactory",
    "ROLES",
    "STATUSES",
]
