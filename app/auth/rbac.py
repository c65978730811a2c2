from fastapi import Depends, HTTPException, status

from app.auth.dependencies import get_current_user
from app.auth.schemas import CurrentUser
from app.core.enums import CashierPermission


async def require_admin(
    current_user: CurrentUser = Depends(get_current_user),
) -> CurrentUser:
    """Require the admin role. Used for cashier provisioning, catalogs and audit views."""
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only an admin can perform this action",
        )
    return current_user


def require_cashier_permission(permission: CashierPermission):
    """
    Dependency factory enforcing one cashier permission flag. Admins always pass.

    Example:
        Depends(require_cashier_permission(CashierPermission.DISCOUNT))
    """

    async def _checker(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if current_user.is_admin:
            return current_user
        if not getattr(current_user, permission.value, False):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return current_user

    return _checker
