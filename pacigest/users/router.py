"""
Staff Router - Staff account management for doctors.
"""
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from ..auth.dependencies import authorize
from ..auth.models import User
from ..auth.schemas import UserResponse
from ..core.pagination import PageParams, PageResponse, paginate
from ..core.permissions import Capability
from ..core.responses import DataResponse
from ..database import get_db
from ..notifications.sender import NotificationSender, get_notification_sender
from .schemas import StaffCreate, StaffUpdate
from . import service

router = APIRouter()

can_manage = authorize(Capability.MANAGE_SETTINGS)


@router.post("/", response_model=DataResponse[UserResponse], status_code=status.HTTP_201_CREATED)
async def create_staff(
    data: StaffCreate,
    request: Request,
    db: Session = Depends(get_db),
    sender: NotificationSender = Depends(get_notification_sender),
    current_user: User = Depends(can_manage),
):
    """
    Create a staff account. The temporary password is emailed, never returned.
    """
    staff = await service.create_staff(db, sender, data, current_user, request)
    return DataResponse(message="Staff member created", data=UserResponse.model_validate(staff))


@router.get("/", response_model=PageResponse[UserResponse])
def list_staff(
    page_params: PageParams = Depends(),
    db: Session = Depends(get_db),
    current_user: User = Depends(can_manage),
):
    return paginate(service.list_staff(db, current_user), page_params, UserResponse)


@router.get("/{staff_id}", response_model=DataResponse[UserResponse])
def get_staff(
    staff_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(can_manage),
):
    return DataResponse(data=UserResponse.model_validate(service.get_staff(db, staff_id, current_user)))


@router.patch("/{staff_id}", response_model=DataResponse[UserResponse])
def update_staff(
    staff_id: int,
    data: StaffUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(can_manage),
):
    staff = service.update_staff(db, staff_id, data, current_user, request)
    return DataResponse(message="Staff member updated", data=UserResponse.model_validate(staff))
