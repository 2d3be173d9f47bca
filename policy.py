from typing import Optional


def is_admin(permission_idx: Optional[int], admin_idx: int) -> bool:
    return permission_idx is not None and permission_idx == admin_idx


def may_act(
    caller_id: Optional[int],
    caller_permission: Optional[int],
    owner_id: Optional[int],
    admin_idx: int,
) -> bool:
    """Owner or administrator may act on a reservation group."""
    if is_admin(caller_permission, admin_idx):
        return True
    return caller_id is not None and caller_id == owner_id
