from fastapi import APIRouter, Depends

from taskboard.core.deps import get_current_user
from taskboard.models import User
from taskboard.schemas import UserOut

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserOut)
def get_me(user: User = Depends(get_current_user)):
    return user
