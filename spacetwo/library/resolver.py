from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import func
from sqlalchemy.orm import Session

from spacetwo.core.errors import NotFound
from spacetwo.library.keys import match_slug
from spacetwo.models.base import active
from spacetwo.models.tables import Collection, Project

log = logging.getLogger("spacetwo")


@dataclass(frozen=True)
class Resolution:
    project: Project
    collection: Collection | None


def owned_projects(db: Session, *, owner_id: str):
    return db.query(Project).filter(Project.owner_id == owner_id, active(Project))


def get_project(db: Session, *, owner_id: str, project_id: str) -> Project:
    p = owned_projects(db, owner_id=owner_id).filter(Project.id == project_id).one_or_none()
    if not p:
        raise NotFound("Project not found or access denied")
    return p


def resolve_project(db: Session, *, owner_id: str, project_name: str) -> Project:
    p = owned_projects(db, owner_id=owner_id).filter(Project.name == project_name).one_or_none()
    if not p:
        raise NotFound("Project not found or access denied", details={"project_name": project_name})
    return p


def find_collection(db: Session, *, project_id: str, title: str) -> Collection | None:
    return (
        db.query(Collection)
        .filter(
            Collection.project_id == project_id,
            active(Collection),
            func.lower(Collection.title) == func.lower(title or ""),
        )
        .one_or_none()
    )


def get_collection(db: Session, *, owner_id: str, collection_id: str) -> Collection:
    c = (
        db.query(Collection)
        .join(Project, Project.id == Collection.project_id)
        .filter(
            Collection.id == collection_id,
            active(Collection),
            Project.owner_id == owner_id,
            active(Project),
        )
        .one_or_none()
    )
    if not c:
        raise NotFound("Collection not found")
    return c


def resolve(db: Session, *, owner_id: str, project_name: str, collection_name: str) -> Resolution:
    project = resolve_project(db, owner_id=owner_id, project_name=project_name)
    collection = find_collection(db, project_id=project.id, title=collection_name)
    if collection is None:
        log.info("Resolver: collection %r not found in project %s", collection_name, project.id)
    return Resolution(project=project, collection=collection)


def resolve_by_slug(db: Session, *, owner_id: str, project_slug: str, collection_slug: str) -> Resolution:
    projects = owned_projects(db, owner_id=owner_id).all()
    name = match_slug(project_slug, [p.name for p in projects])
    if name is None:
        raise NotFound("Project not found or access denied", details={"project_slug": project_slug})
    project = next(p for p in projects if p.name == name)

    titles = [
        c.title
        for c in db.query(Collection).filter(Collection.project_id == project.id, active(Collection)).all()
    ]
    title = match_slug(collection_slug, titles)
    if title is None:
        raise NotFound("Collection not found", details={"collection_slug": collection_slug})
    return Resolution(project=project, collection=find_collection(db, project_id=project.id, title=title))
