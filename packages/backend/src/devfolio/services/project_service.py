"""Project service — publishing and browsing projects, and watch lists.

Creating a project is two writes: the project row (with its owners) is
committed first, then the project is appended to the creator's list.
They are not atomic; a crash in between leaves a project that the
creator's profile doesn't list. reconcile_project_links() in
services/maintenance.py repairs exactly that case.
"""

import uuid
from typing import Optional, Sequence

import structlog
from fastapi import UploadFile
from sqlalchemy import delete, insert, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from devfolio.db.models import Project, User, user_projects, watch_list
from devfolio.errors import ApiError
from devfolio.services.storage import LocalMediaStorage, StorageError, has_file
from devfolio.services.validators import is_blank, parse_csv

logger = structlog.get_logger()


class ProjectService:
    """Business logic for projects."""

    def __init__(self, db: AsyncSession, storage: Optional[LocalMediaStorage] = None):
        self.db = db
        self.storage = storage

    # ─── Create ─────────────────────────────────────────

    async def create_project(
        self,
        creator: User,
        *,
        name: str,
        repo_id: str,
        url: str,
        description: str,
        domain: str,
        tech_stack: str,
        owners_usernames: str,
        stars: int = 0,
        videos: Sequence[UploadFile] = (),
        images: Sequence[UploadFile] = (),
        thumbnail: Optional[UploadFile] = None,
    ) -> Project:
        owner_usernames = list(dict.fromkeys(parse_csv(owners_usernames, lower=True)))
        tech_stacks = parse_csv(tech_stack)

        if any(is_blank(v) for v in (name, repo_id, url, description, domain)) or not (
            tech_stacks and owner_usernames
        ):
            raise ApiError.bad_request("Missing required project data")

        # Resolve every owner before touching storage or the database.
        owners = [await self._resolve_owner(username) for username in owner_usernames]

        video_urls = [await self._upload(f, "videos", "video") for f in videos if has_file(f)]
        image_urls = [await self._upload(f, "images", "image") for f in images if has_file(f)]
        thumbnail_url = await self._upload(thumbnail, "thumbnails", "thumbnail")

        project = Project(
            name=name.strip(),
            repo_id=repo_id.strip(),
            url=url.strip(),
            description=description.strip(),
            domain=domain.strip(),
            tech_stacks=tech_stacks,
            stars=stars or 0,
            owners=owners,
            videos=video_urls,
            images=image_urls,
            thumbnail=thumbnail_url,
            created_by_id=creator.id,
        )
        self.db.add(project)
        await self.db.commit()

        await self.db.execute(
            insert(user_projects).values(user_id=creator.id, project_id=project.id)
        )
        await self.db.commit()

        logger.info(
            "devfolio.project_created",
            project_id=str(project.id),
            name=project.name,
            creator=creator.username,
            owners=owner_usernames,
        )
        return project

    # ─── Read ───────────────────────────────────────────

    async def _user_with_projects(self, username: str) -> User:
        result = await self.db.execute(
            select(User)
            .where(User.username == username.strip().lower())
            .options(selectinload(User.projects).selectinload(Project.owners))
            .execution_options(populate_existing=True)
        )
        user = result.scalars().first()
        if user is None:
            raise ApiError.not_found(f"Owner with username {username} not found")
        return user

    async def list_user_projects(self, username: str) -> list[Project]:
        user = await self._user_with_projects(username)
        return sorted(user.projects, key=lambda p: p.created_at)

    async def get_user_project(self, username: str, project_name: str) -> Project:
        user = await self._user_with_projects(username)
        for project in user.projects:
            if project.name == project_name:
                return project
        raise ApiError.not_found(f"Project {project_name} not found for {username}")

    async def get_project(self, project_id: uuid.UUID) -> Project:
        project = await self.db.get(
            Project, project_id, options=[selectinload(Project.owners)]
        )
        if project is None:
            raise ApiError.not_found("Project not found")
        return project

    # ─── Watch list ─────────────────────────────────────

    async def list_watchlist(self, user: User) -> list[Project]:
        result = await self.db.execute(
            select(User)
            .where(User.id == user.id)
            .options(selectinload(User.watch_list).selectinload(Project.owners))
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().one().watch_list)

    async def add_to_watchlist(self, user: User, project_id: uuid.UUID) -> None:
        await self.get_project(project_id)
        exists = await self.db.execute(
            select(watch_list.c.project_id).where(
                watch_list.c.user_id == user.id,
                watch_list.c.project_id == project_id,
            )
        )
        if exists.first() is None:
            await self.db.execute(
                insert(watch_list).values(user_id=user.id, project_id=project_id)
            )
            await self.db.commit()

    async def remove_from_watchlist(self, user: User, project_id: uuid.UUID) -> None:
        await self.db.execute(
            delete(watch_list).where(
                watch_list.c.user_id == user.id,
                watch_list.c.project_id == project_id,
            )
        )
        await self.db.commit()

    # ─── Helpers ────────────────────────────────────────

    async def _resolve_owner(self, username: str) -> User:
        result = await self.db.execute(select(User).where(User.username == username))
        owner = result.scalars().first()
        if owner is None:
            raise ApiError.not_found(f"Owner with username {username} not found")
        return owner

    async def _upload(self, upload: Optional[UploadFile], folder: str, label: str) -> str:
        if not has_file(upload):
            return ""
        try:
            return await self.storage.save(upload, folder)
        except StorageError as e:
            raise ApiError.internal(f"Error uploading {label}: {e}")
