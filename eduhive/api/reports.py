from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from eduhive.core.security import get_current_active_user
from eduhive.crud import report as report_crud
from eduhive.db.database import get_db
from eduhive.models.profile import Profile
from eduhive.schemas.report import ReportCreate, ReportRead

router = APIRouter(prefix="/reports", tags=["reports"])


@router.post("/", response_model=ReportRead, status_code=status.HTTP_201_CREATED)
async def create_report(
    data: ReportCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_active_user)
):
    """Report a post or a comment for review"""
    return await report_crud.create_report(db, data, current_user)


@router.get("/mine", response_model=List[ReportRead])
async def list_my_reports(
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_active_user)
):
    return await report_crud.get_reports_by(db, current_user.id)
