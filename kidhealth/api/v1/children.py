from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from ...core.database import get_db
from ...api.deps import get_current_user
from ...services.child_service import ChildService
from ...schemas.child import ChildCreate, ChildResponse
from ...models.user import User

router = APIRouter(prefix="/children", tags=["Children"])

@router.post("", response_model=ChildResponse, status_code=201)
async def add_child(
    child_data: ChildCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Add a child to the current user's profile."""
    return ChildService(db).add_child(current_user, child_data)

@router.get("", response_model=List[ChildResponse])
async def list_children(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """List the current user's children."""
    return ChildService(db).list_children(current_user)
