import logging
from typing import List

from fastapi import status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from eduhive.core.error_codes import INVALID_REPORT_TARGET, REPORT_CREATION_ERROR
from eduhive.core.exceptions import CustomHTTPException
from eduhive.crud.comment import get_comment_or_404
from eduhive.crud.post import get_post_or_404
from eduhive.models.profile import Profile
from eduhive.models.report import Report
from eduhive.schemas.report import ReportCreate

logger = logging.getLogger(__name__)


async def create_report(db: AsyncSession, data: ReportCreate, reporter: Profile) -> Report:
    """
    File a report against a post or a comment.

    The reported user is always the author of the target, whatever the
    client claims. Members cannot report their own content.
    """
    if data.post_id:
        target = await get_post_or_404(db, data.post_id)
    else:
        target = await get_comment_or_404(db, data.comment_id)

    if target.user_id == reporter.id:
        raise CustomHTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot report your own content",
            error_code=INVALID_REPORT_TARGET
        )

    report = Report(
        reporter_id=reporter.id,
        reported_user_id=target.user_id,
        post_id=data.post_id,
        comment_id=data.comment_id,
        reason=data.reason,
        description=data.description,
    )
    try:
        db.add(report)
        await db.commit()
        await db.refresh(report)
    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to create report by {reporter.id}: {e}")
        raise CustomHTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to submit report",
            error_code=REPORT_CREATION_ERROR
        )

    logger.info(f"Report {report.id} filed against {report.reported_user_id} ({report.reason.value})")
    return report


async def get_reports_by(db: AsyncSession, reporter_id: str) -> List[Report]:
    result = await db.execute(
        select(Report).where(Report.reporter_id == reporter_id).order_by(Report.created_at.desc())
    )
    return list(result.scalars().all())
