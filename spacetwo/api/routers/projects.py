from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from spacetwo.api.deps import get_db, get_identity
from spacetwo.core.errors import Conflict, ValidationFailed
from spacetwo.library.audit import audit
from spacetwo.library.resolver import get_project, owned_projects
from spacetwo.models.base import soft_delete
from spacetwo.models.tables import Project
from spacetwo.util.ids import new_uuid
from spacetwo.util.time import now_utc

router = APIRouter()

_STYLE_FIELDS = ("type", "icon", "label", "bg", "color", "description")


def _project_dict(p: Project) -> dict:
    return {
        "id": p.id,
        "name": p.name,
        "type": p.type,
        "icon": p.icon,
        "label": p.label,
        "bg": p.bg,
        "color": p.color,
        "description": p.description,
        "owner_id": p.owner_id,
        "created_at": p.created_at,
        "updated_at": p.updated_at,
    }


def _validate_style(data: dict) -> None:
    kind = data.get("type")
    if kind not in ("icon", "text"):
        raise ValidationFailed('Project type must be either "icon" or "text"')
    if kind == "icon" and not data.get("icon"):
        raise ValidationFailed("Icon is required for icon-type projects")
    label = (data.get("label") or "").strip()
    if kind == "text" and not label:
        raise ValidationFailed("Label is required for text-type projects")
    if len(label) > 4:
        raise ValidationFailed("Project label cannot exceed 4 characters")
    if not data.get("bg") or not data.get("color"):
        raise ValidationFailed("Background and text colors are required")


def _apply_style(p: Project, data: dict) -> None:
    p.type = data["type"]
    p.icon = data.get("icon") if p.type == "icon" else None
    p.label = ((data.get("label") or "").strip() or None) if p.type == "text" else None
    p.bg = data["bg"]
    p.color = data["color"]
    p.description = data.get("description")


@router.get("")
def list_projects(owner_id: str = Depends(get_identity), db: Session = Depends(get_db)) -> list[dict]:
    items = owned_projects(db, owner_id=owner_id).order_by(Project.created_at.desc()).limit(200).all()
    return [_project_dict(p) for p in items]


@router.get("/{project_id}")
def read_project(project_id: str, owner_id: str = Depends(get_identity), db: Session = Depends(get_db)) -> dict:
    return _project_dict(get_project(db, owner_id=owner_id, project_id=project_id))


@router.post("", status_code=201)
def create_project(payload: dict, owner_id: str = Depends(get_identity), db: Session = Depends(get_db)) -> dict:
    data = dict(payload or {})
    name = (data.get("name") or "").strip()
    if not name:
        raise ValidationFailed("Project name is required")
    _validate_style(data)

    now = now_utc()
    p = Project(id=new_uuid(), owner_id=owner_id, name=name, deleted=False, created_at=now, updated_at=now)
    _apply_style(p, data)
    db.add(p)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("A project with this name already exists") from None

    return {"message": "Project created successfully", "data": _project_dict(p)}


@router.put("/{project_id}")
def update_project(
    project_id: str, payload: dict, owner_id: str = Depends(get_identity), db: Session = Depends(get_db)
) -> dict:
    p = get_project(db, owner_id=owner_id, project_id=project_id)
    data = dict(payload or {})

    if "name" in data:
        name = (data.get("name") or "").strip()
        if not name:
            raise ValidationFailed("Project name cannot be empty")
        p.name = name

    if any(k in data for k in _STYLE_FIELDS):
        merged = {k: getattr(p, k) for k in _STYLE_FIELDS}
        merged.update({k: data[k] for k in _STYLE_FIELDS if k in data})
        _validate_style(merged)
        _apply_style(p, merged)

    p.updated_at = now_utc()
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("A project with this name already exists") from None

    return {"message": "Project updated successfully", "data": _project_dict(p)}


@router.delete("/{project_id}")
def delete_project(project_id: str, owner_id: str = Depends(get_identity), db: Session = Depends(get_db)) -> dict:
    p = get_project(db, owner_id=owner_id, project_id=project_id)
    soft_delete(p)
    audit(
        db,
        user_id=owner_id,
        event_type="project.delete",
        severity="INFO",
        message="Project deleted",
        context={"project_id": p.id},
    )
    db.commit()
    return {"message": "Project deleted successfully"}
