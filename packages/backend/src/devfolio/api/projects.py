"""Projects API — publish a project, browse a developer's projects.

- POST /users/projects → create (multipart: videos, images, thumbnail)
- GET /users/{username}/projects → every project on the user's profile
- GET /users/{username}/projects/{project_name} → one project, owners resolved
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from devfolio.auth.dependencies import get_current_user
from devfolio.db.engine import get_db
from devfolio.db.models import User
from devfolio.errors import ApiError
from devfolio.schemas.common import ApiResponse
from devfolio.schemas.project import ProjectList, ProjectRead
from devfolio.services.project_service import ProjectService
from devfolio.services.storage import LocalMediaStorage, get_storage

router = APIRouter(prefix="/users")


@router.post("/projects")
async def create_project(
    name: str = Form(""),
    repo_id: str = Form("", alias="repoId"),
    url: str = Form(""),
    description: str = Form(""),
    domain: str = Form(""),
    tech_stack: str = Form("", alias="techStack"),
    stars: int = Form(0),
    owners_usernames: str = Form("", alias="ownersUsernames"),
    videos: Optional[list[UploadFile]] = File(None),
    images: Optional[list[UploadFile]] = File(None),
    thumbnail: Optional[UploadFile] = File(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: LocalMediaStorage = Depends(get_storage),
) -> ApiResponse:
    """Publish a project. Every listed owner must already have an account."""
    service = ProjectService(db, storage=storage)
    try:
        project = await service.create_project(
            user,
            name=name,
            repo_id=repo_id,
            url=url,
            description=description,
            domain=domain,
            tech_stack=tech_stack,
            owners_usernames=owners_usernames,
            stars=stars,
            videos=videos or [],
            images=images or [],
            thumbnail=thumbnail,
        )
    except Exception as e:
        raise ApiError.wrap(e, "Internal Server Error while adding project")
    return ApiResponse.build(ProjectRead.model_validate(project), "New project added successfully")


@router.get("/{username}/projects")
async def list_user_projects(
    username: str,
    db: AsyncSession = Depends(get_db),
) -> ApiResponse:
    try:
        projects = await ProjectService(db).list_user_projects(username)
    except Exception as e:
        raise ApiError.wrap(e, "Error Fetching User Projects")

    data = ProjectList(project_objects=[ProjectRead.model_validate(p) for p in projects])
    message = "User Projects Successfully fetched" if projects else "No projects found for this user"
    return ApiResponse.build(data, message)


@router.get("/{username}/projects/{project_name}")
async def get_user_project(
    username: str,
    project_name: str,
    db: AsyncSession = Depends(get_db),
) -> ApiResponse:
    try:
        project = await ProjectService(db).get_user_project(username, project_name)
    except Exception as e:
        raise ApiError.wrap(e, "Error Fetching User Projects")
    return ApiResponse.build(ProjectRead.model_validate(project), "Project successfully fetched")
