from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from housepoints.api.deps import require_admin
from housepoints.db.session import get_db
from housepoints.models.behavior import BehaviorCategory, BehaviorPoint
from housepoints.models.user import User
from housepoints.schemas.categories import (
    BehaviorCategoryCreateRequest,
    BehaviorCategoryOut,
    BehaviorCategoryUpdateRequest,
)

router = APIRouter(prefix="/behavior-categories", tags=["behavior-categories"])


def _get_category(db: Session, category_id: str) -> BehaviorCategory:
    category = db.get(BehaviorCategory, category_id)
    if not category:
        raise HTTPException(status_code=404, detail="Behavior category not found")
    return category


def _ensure_unique_name(db: Session, name: str, exclude_id: str | None = None) -> None:
    existing = db.scalar(select(BehaviorCategory).where(BehaviorCategory.name == name))
    if existing and existing.id != exclude_id:
        raise HTTPException(status_code=409, detail="Behavior category with this name already exists")


@router.get("", response_model=list[BehaviorCategoryOut])
def list_categories(db: Session = Depends(get_db)):
    rows = db.scalars(
        select(BehaviorCategory).order_by(BehaviorCategory.is_positive.desc(), BehaviorCategory.name)
    ).all()
    return rows


@router.post("", response_model=BehaviorCategoryOut, status_code=201)
def create_category(
    payload: BehaviorCategoryCreateRequest,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    _ensure_unique_name(db, payload.name)
    category = BehaviorCategory(
        name=payload.name,
        description=payload.description,
        is_positive=payload.is_positive,
        point_value=payload.point_value,
    )
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


@router.patch("/{category_id}", response_model=BehaviorCategoryOut)
def update_category(
    category_id: str,
    payload: BehaviorCategoryUpdateRequest,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    category = _get_category(db, category_id)
    if payload.name is not None:
        _ensure_unique_name(db, payload.name, exclude_id=category.id)
        category.name = payload.name
    if payload.description is not None:
        category.description = payload.description
    if payload.point_value is not None:
        category.point_value = payload.point_value
    if payload.is_positive is not None and payload.is_positive != category.is_positive:
        # Recorded rows keep their sign.
        used = db.scalar(select(BehaviorPoint.id).where(BehaviorPoint.category_id == category.id).limit(1))
        if used:
            raise HTTPException(status_code=409, detail="Category already has points recorded")
        category.is_positive = payload.is_positive

    db.add(category)
    db.commit()
    db.refresh(category)
    return category


@router.delete("/{category_id}")
def delete_category(
    category_id: str,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    category = _get_category(db, category_id)
    used = db.scalar(select(BehaviorPoint.id).where(BehaviorPoint.category_id == category.id).limit(1))
    if used:
        raise HTTPException(status_code=409, detail="Category already has points recorded")

    db.delete(category)
    db.commit()
    return {"ok": True}
