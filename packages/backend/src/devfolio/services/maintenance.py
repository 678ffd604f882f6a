"""Maintenance jobs — run from the CLI (devfolio reconcile-projects / purge-otps).

Both are idempotent and safe to run on a schedule.
"""

from datetime import datetime
from typing import Optional

import structlog
from sqlalchemy import and_, delete, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from devfolio.db.models import PendingRegistration, Project, user_projects, utcnow

logger = structlog.get_logger()


async def reconcile_project_links(db: AsyncSession) -> int:
    """Append every project missing from its creator's list. Returns the count."""
    result = await db.execute(
        select(Project.id, Project.created_by_id)
        .outerjoin(
            user_projects,
            and_(
                user_projects.c.project_id == Project.id,
                user_projects.c.user_id == Project.created_by_id,
            ),
        )
        .where(
            Project.created_by_id.is_not(None),
            user_projects.c.project_id.is_(None),
        )
    )
    orphans = result.all()

    for project_id, user_id in orphans:
        await db.execute(insert(user_projects).values(user_id=user_id, project_id=project_id))
        logger.info(
            "devfolio.project_link_repaired",
            project_id=str(project_id),
            user_id=str(user_id),
        )

    await db.commit()
    return len(orphans)


async def purge_expired_registrations(
    db: AsyncSession, now: Optional[datetime] = None
) -> int:
    """Delete pending registrations whose code has expired. Returns the count."""
    result = await db.execute(
        delete(PendingRegistration).where(PendingRegistration.expires_at <= (now or utcnow()))
    )
    await db.commit()
    logger.info("devfolio.pending_registrations_purged", count=result.rowcount)
    return result.rowcount
