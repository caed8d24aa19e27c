from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from housepoints.api.deps import get_points_service, require_admin, require_staff
from housepoints.db.session import get_db
from housepoints.models.class_model import SchoolClass
from housepoints.models.pod import Pod
from housepoints.models.student import Student
from housepoints.models.user import User
from housepoints.schemas.school import ClassCreateRequest, ClassOut, ClassUpdateRequest, TopStudentOut
from housepoints.services import standings
from housepoints.services.points import PointsService, ScopeKeys

router = APIRouter(prefix="/classes", tags=["classes"])


def _class_out(school_class: SchoolClass, points: int) -> ClassOut:
    return ClassOut.model_validate(school_class).model_copy(update={"points": points})


def _class_with_points(db: Session, school_class: SchoolClass) -> ClassOut:
    standing = standings.find_standing(standings.class_standings(db), school_class.id)
    return _class_out(school_class, standing.points if standing else 0)


def _get_class(db: Session, class_id: str) -> SchoolClass:
    school_class = db.get(SchoolClass, class_id)
    if not school_class:
        raise HTTPException(status_code=404, detail="Class not found")
    return school_class


def _get_pod(db: Session, pod_id: str) -> Pod:
    pod = db.get(Pod, pod_id)
    if not pod:
        raise HTTPException(status_code=404, detail="Pod not found")
    return pod


def _ensure_unique_name(db: Session, name: str, exclude_id: str | None = None) -> None:
    existing = db.scalar(select(SchoolClass).where(SchoolClass.name == name))
    if existing and existing.id != exclude_id:
        raise HTTPException(status_code=409, detail="Class with this name already exists")


@router.get("", response_model=list[ClassOut])
def list_classes(db: Session = Depends(get_db)):
    return [_class_out(item.entity, item.points) for item in standings.class_standings(db)]


@router.get("/{class_id}", response_model=ClassOut, dependencies=[Depends(require_staff)])
def get_class(class_id: str, db: Session = Depends(get_db)):
    return _class_with_points(db, _get_class(db, class_id))


@router.get("/{class_id}/top-students", response_model=list[TopStudentOut], dependencies=[Depends(require_staff)])
def class_top_students(class_id: str, limit: int = Query(default=5, ge=1, le=50), db: Session = Depends(get_db)):
    _get_class(db, class_id)
    rows = standings.top_students(db, class_id=class_id, limit=limit)
    return [TopStudentOut.model_validate(item.entity).model_copy(update={"total_points": item.points}) for item in rows]


@router.post("", response_model=ClassOut, status_code=201)
def create_class(
    payload: ClassCreateRequest,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    _ensure_unique_name(db, payload.name)
    _get_pod(db, payload.pod_id)
    school_class = SchoolClass(
        name=payload.name,
        pod_id=payload.pod_id,
        grade_level=payload.grade_level,
        description=payload.description,
    )
    db.add(school_class)
    db.commit()
    db.refresh(school_class)
    return _class_out(school_class, 0)


@router.patch("/{class_id}", response_model=ClassOut)
def update_class(
    class_id: str,
    payload: ClassUpdateRequest,
    db: Session = Depends(get_db),
    points_service: PointsService = Depends(get_points_service),
    _: User = Depends(require_admin),
):
    school_class = _get_class(db, class_id)
    if payload.name is not None:
        _ensure_unique_name(db, payload.name, exclude_id=school_class.id)
        school_class.name = payload.name
    if payload.grade_level is not None:
        school_class.grade_level = payload.grade_level
    if payload.description is not None:
        school_class.description = payload.description

    old_pod = school_class.pod
    new_pod = old_pod
    if payload.pod_id is not None and payload.pod_id != school_class.pod_id:
        new_pod = _get_pod(db, payload.pod_id)
        school_class.pod_id = new_pod.id
    old_pod_id, old_house_id = old_pod.id, old_pod.house_id

    db.add(school_class)
    db.commit()
    db.refresh(school_class)

    if new_pod.id != old_pod_id:
        standing = standings.find_standing(standings.class_standings(db), school_class.id)
        points_service.announce_transfer(
            ScopeKeys(None, old_pod_id, None),
            ScopeKeys(None, new_pod.id, None),
            standing.points if standing else 0,
        )
        points_service.announce_transfer(
            ScopeKeys(None, None, old_house_id),
            ScopeKeys(None, None, new_pod.house_id),
            standings.inherited_house_total(db, class_id=school_class.id),
        )
    return _class_with_points(db, school_class)


@router.delete("/{class_id}")
def delete_class(
    class_id: str,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    school_class = _get_class(db, class_id)
    has_students = db.scalar(select(Student.id).where(Student.class_id == school_class.id).limit(1))
    if has_students:
        raise HTTPException(status_code=409, detail="Class still has students")

    db.delete(school_class)
    db.commit()
    return {"ok": True}
