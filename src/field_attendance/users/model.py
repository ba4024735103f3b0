from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class User:
    """Domain entity: a field employee, manager or admin account.

    ``is_active`` is true while the user has an open attendance session; it is
    not an account-enabled flag.
    """

    user_id: int
    full_name: str
    phone: str
    password_hash: str
    role: Role
    manager_id: Optional[int] = None
    email: Optional[str] = None
    is_active: bool = False
