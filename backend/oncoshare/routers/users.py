from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from oncoshare.auth import require_admin
from oncoshare.database import get_db
from oncoshare.enums import Role
from oncoshare.schemas.content import DeletionResponse
from oncoshare.schemas.user import RoleChange, UserResponse
from oncoshare.services.deletion_service import deletion_coordinator
from oncoshare.services.user_admin_service import user_admin_service
from oncoshare.sessions import Session

router = APIRouter()


@router.get("")
async def list_users(
    role: Optional[Role] = Query(None),
    search: str = Query("", description="Search username, email or name"),
    db: AsyncSession = Depends(get_db),
    session: Session = Depends(require_admin),
):
    users = await user_admin_service.list_users(db, session, role=role, search=search or None)
    return {"users": [UserResponse.model_validate(u) for u in users], "total": len(users)}


@router.put("/{user_id}/role", response_model=UserResponse)
async def change_role(
    user_id: int,
    data: RoleChange,
    db: AsyncSession = Depends(get_db),
    session: Session = Depends(require_admin),
):
    user = await user_admin_service.change_role(db, session, user_id, data.role)
    return UserResponse.model_validate(user)


@router.delete("/{user_id}", response_model=DeletionResponse)
async def delete_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    session: Session = Depends(require_admin),
):
    report = await deletion_coordinator.delete_user(db, session, user_id)
    return DeletionResponse(**{k: getattr(report, k) for k in DeletionResponse.model_fields})
