from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from housepoints.api.deps import get_points_service, require_admin, require_staff
from housepoints.core.errors import LedgerWriteError, PointsError, PointsValidationError, UnknownReferenceError
from housepoints.db.session import get_db
from housepoints.models.behavior import BehaviorPoint
from housepoints.models.student import Student
from housepoints.models.user import User
from housepoints.schemas.points import (
    BatchAwardRequest,
    BatchAwardResponse,
    BatchFailureOut,
    BehaviorPointOut,
    PointAwardEntry,
    RecentBehaviorPointOut,
)
from housepoints.services.points import PointsService

router = APIRouter(prefix="/behavior-points", tags=["behavior-points"])


def _to_http_error(exc: PointsError) -> HTTPException:
    if isinstance(exc, UnknownReferenceError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, PointsValidationError):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
    if isinstance(exc, LedgerWriteError):
        return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.post("", response_model=BehaviorPointOut, status_code=status.HTTP_201_CREATED)
def award_points(
    payload: PointAwardEntry,
    service: PointsService = Depends(get_points_service),
    user: User = Depends(require_staff),
):
    try:
        return service.award_points(payload, actor=user)
    except PointsError as exc:
        raise _to_http_error(exc) from exc


@router.post("/batch", response_model=BatchAwardResponse)
def award_points_batch(
    payload: BatchAwardRequest,
    service: PointsService = Depends(get_points_service),
    user: User = Depends(require_staff),
):
    try:
        result = service.award_points_batch(payload.entries, actor=user)
    except PointsError as exc:
        raise _to_http_error(exc) from exc

    return BatchAwardResponse(
        count=result.count,
        created=[BehaviorPointOut.model_validate(point) for point in result.created],
        failed=[BatchFailureOut(index=item.index, error=item.error) for item in result.failed],
    )


@router.delete("/{point_id}")
def delete_point(
    point_id: str,
    service: PointsService = Depends(get_points_service),
    admin: User = Depends(require_admin),
):
    try:
        service.delete_point(point_id, actor=admin)
    except PointsError as exc:
        raise _to_http_error(exc) from exc
    return {"ok": True}


@router.get("/student/{student_id}", response_model=list[BehaviorPointOut], dependencies=[Depends(require_staff)])
def student_points(student_id: str, db: Session = Depends(get_db)):
    if not db.get(Student, student_id):
        raise HTTPException(status_code=404, detail="Student not found")

    rows = db.scalars(
        select(BehaviorPoint)
        .where(BehaviorPoint.student_id == student_id)
        .order_by(BehaviorPoint.created_at.desc())
    ).all()
    return rows


@router.get("/teacher/{teacher_id}", response_model=list[BehaviorPointOut])
def teacher_points(
    teacher_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(require_staff),
):
    if not user.is_admin and user.id != teacher_id:
        raise HTTPException(status_code=403, detail="Teachers can only view their own awards")
    if not db.get(User, teacher_id):
        raise HTTPException(status_code=404, detail="Teacher not found")

    rows = db.scalars(
        select(BehaviorPoint)
        .where(BehaviorPoint.teacher_id == teacher_id)
        .order_by(BehaviorPoint.created_at.desc())
    ).all()
    return rows


@router.get("/recent", response_model=list[RecentBehaviorPointOut], dependencies=[Depends(require_staff)])
def recent_points(limit: int = Query(default=10, ge=1, le=100), db: Session = Depends(get_db)):
    rows = db.scalars(
        select(BehaviorPoint)
        .options(
            selectinload(BehaviorPoint.student),
            selectinload(BehaviorPoint.teacher),
            selectinload(BehaviorPoint.category),
        )
        .order_by(BehaviorPoint.created_at.desc())
        .limit(limit)
    ).all()
    return rows
