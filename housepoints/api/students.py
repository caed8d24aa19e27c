import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from housepoints.api.deps import get_points_service, require_admin, require_staff
from housepoints.db.session import get_db
from housepoints.models.class_model import SchoolClass
from housepoints.models.house import House
from housepoints.models.student import Student
from housepoints.models.user import User
from housepoints.schemas.school import StudentCreateRequest, StudentDetail, StudentOut, StudentRosterUpdateRequest
from housepoints.services import standings
from housepoints.services.points import PointsService, ScopeKeys

router = APIRouter(prefix="/students", tags=["students"])
logger = logging.getLogger(__name__)


def _get_student(db: Session, student_id: str) -> Student:
    student = db.get(Student, student_id)
    if not student:
        raise HTTPException(status_code=404, detail="Student not found")
    return student


def _check_class(db: Session, class_id: str) -> None:
    if not db.get(SchoolClass, class_id):
        raise HTTPException(status_code=404, detail="Class not found")


def _check_house(db: Session, house_id: str | None) -> None:
    if house_id and not db.get(House, house_id):
        raise HTTPException(status_code=404, detail="House not found")


def _student_detail(db: Session, student: Student) -> StudentDetail:
    return StudentDetail(
        id=student.id,
        first_name=student.first_name,
        last_name=student.last_name,
        grade_level=student.grade_level,
        section=student.section,
        class_id=student.class_id,
        house_id=student.house_id,
        total_points=standings.student_total(db, student.id),
        effective_house_id=student.effective_house_id,
        balance=standings.student_balance(db, student.id),
    )


@router.get("", response_model=list[StudentOut], dependencies=[Depends(require_staff)])
def list_students(
    class_id: str | None = Query(default=None, max_length=36),
    house_id: str | None = Query(default=None, max_length=36),
    db: Session = Depends(get_db),
):
    rows = standings.students_with_totals(db, class_id=class_id, house_id=house_id)
    return [StudentOut.model_validate(item.entity).model_copy(update={"total_points": item.points}) for item in rows]


@router.get("/{student_id}", response_model=StudentDetail, dependencies=[Depends(require_staff)])
def get_student(student_id: str, db: Session = Depends(get_db)):
    return _student_detail(db, _get_student(db, student_id))


@router.post("", response_model=StudentDetail, status_code=201)
def create_student(
    payload: StudentCreateRequest,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    _check_class(db, payload.class_id)
    _check_house(db, payload.house_id)
    student = Student(
        first_name=payload.first_name,
        last_name=payload.last_name,
        class_id=payload.class_id,
        house_id=payload.house_id,
        grade_level=payload.grade_level,
        section=payload.section,
    )
    db.add(student)
    db.commit()
    db.refresh(student)
    return _student_detail(db, student)


@router.patch("/{student_id}/roster", response_model=StudentDetail)
def update_roster(
    student_id: str,
    payload: StudentRosterUpdateRequest,
    db: Session = Depends(get_db),
    points_service: PointsService = Depends(get_points_service),
    _: User = Depends(require_admin),
):
    student = _get_student(db, student_id)
    before = ScopeKeys.of(student)

    if payload.class_id is not None:
        _check_class(db, payload.class_id)
        student.class_id = payload.class_id
    if "house_id" in payload.model_fields_set:
        _check_house(db, payload.house_id)
        student.house_id = payload.house_id
    if payload.grade_level is not None:
        student.grade_level = payload.grade_level
    if payload.section is not None:
        student.section = payload.section

    db.add(student)
    db.commit()
    db.refresh(student)

    after = ScopeKeys.of(student)
    if after != before:
        logger.info("Student %s moved from %s to %s.", student.id, before, after)
        points_service.announce_transfer(before, after, standings.student_total(db, student.id))
    return _student_detail(db, student)


@router.delete("/{student_id}")
def delete_student(
    student_id: str,
    db: Session = Depends(get_db),
    points_service: PointsService = Depends(get_points_service),
    _: User = Depends(require_admin),
):
    student = _get_student(db, student_id)
    before = ScopeKeys.of(student)
    total = standings.student_total(db, student.id)

    db.delete(student)
    db.commit()

    logger.warning("Student %s deleted together with ledger rows worth %d point(s).", student_id, total)
    points_service.announce_transfer(before, ScopeKeys(None, None, None), total)
    return {"ok": True}
