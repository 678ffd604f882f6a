"""Pydantic schemas for projects."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from devfolio.schemas.common import CAMEL_CONFIG
from devfolio.schemas.user import UserRead


class ProjectRead(BaseModel):
    id: uuid.UUID
    name: str
    repo_id: str
    url: str
    description: str
    domain: str
    tech_stacks: list[str] = []
    stars: int = 0
    owners: list[UserRead] = []
    videos: list[str] = []
    images: list[str] = []
    thumbnail: str = ""
    created_at: Optional[datetime] = None

    model_config = {**CAMEL_CONFIG, "from_attributes": True}


class ProjectList(BaseModel):
    project_objects: list[ProjectRead] = []

    model_config = CAMEL_CONFIG
