# auth/dependencies.py
from fastapi import Request, HTTPException, Depends

STAFF_ROLES = {"staff", "admin"}


async def get_current_user_id(request: Request) -> str:
    user_id = request.session.get("user_id")
    if not user_id:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return str(user_id)


async def get_current_staff_user(request: Request, user_id: str = Depends(get_current_user_id)) -> str:
    if request.session.get("role") not in STAFF_ROLES:
        raise HTTPException(status_code=403, detail="Staff access only")
    return user_id
