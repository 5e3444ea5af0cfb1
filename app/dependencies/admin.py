from fastapi import Depends
from app.errors import ForbiddenError
from app.models.user import User
from app.utils.token import get_current_user

def require_admin(current_user: User = Depends(get_current_user)):
    if not current_user.is_admin:
        raise ForbiddenError("Admin access required")
    return current_user
