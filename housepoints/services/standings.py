"""Point totals derived from the ledger.

Nothing here reads a stored running total: every number is a ``SUM`` over
``behavior_points`` for its scope, so totals stay equal to the ledger even
after rows are deleted or students change class.
"""

from collections import defaultdict
from typing import Any, NamedTuple

from sqlalchemy import Select, desc, func, select
from sqlalchemy.orm import Session

from housepoints.models.behavior import BehaviorPoint
from housepoints.models.class_model import SchoolClass
from housepoints.models.house import House
from housepoints.models.pod import Pod
from housepoints.models.reward import RewardRedemption
from housepoints.models.student import Student


class Standing(NamedTuple):
    entity: Any
    points: int


_points_sum = func.coalesce(func.sum(BehaviorPoint.points), 0)
_effective_house_id = func.coalesce(Student.house_id, Pod.house_id)


def student_total(db: Session, student_id: str) -> int:
    return int(db.scalar(select(_points_sum).where(BehaviorPoint.student_id == student_id)) or 0)


def student_totals(db: Session, student_ids: list[str] | None = None) -> dict[str, int]:
    stmt = select(BehaviorPoint.student_id, func.sum(BehaviorPoint.points)).group_by(BehaviorPoint.student_id)
    if student_ids is not None:
        if not student_ids:
            return {}
        stmt = stmt.where(BehaviorPoint.student_id.in_(student_ids))
    return {student_id: int(total or 0) for student_id, total in db.execute(stmt).all()}


def student_balance(db: Session, student_id: str) -> int:
    spent = db.scalar(
        select(func.coalesce(func.sum(RewardRedemption.points_spent), 0)).where(RewardRedemption.student_id == student_id)
    )
    return student_total(db, student_id) - int(spent or 0)


def class_standings(db: Session) -> list[Standing]:
    stmt = (
        select(SchoolClass, _points_sum.label("points"))
        .outerjoin(Student, Student.class_id == SchoolClass.id)
        .outerjoin(BehaviorPoint, BehaviorPoint.student_id == Student.id)
        .group_by(SchoolClass.id)
        .order_by(desc("points"), SchoolClass.name)
    )
    return [Standing(row, int(points)) for row, points in db.execute(stmt).all()]


def pod_standings(db: Session) -> list[Standing]:
    stmt = (
        select(Pod, _points_sum.label("points"))
        .outerjoin(SchoolClass, SchoolClass.pod_id == Pod.id)
        .outerjoin(Student, Student.class_id == SchoolClass.id)
        .outerjoin(BehaviorPoint, BehaviorPoint.student_id == Student.id)
        .group_by(Pod.id)
        .order_by(desc("points"), Pod.name)
    )
    return [Standing(row, int(points)) for row, points in db.execute(stmt).all()]


def house_standings(db: Session) -> list[Standing]:
    per_house = (
        select(_effective_house_id.label("house_id"), func.sum(BehaviorPoint.points).label("points"))
        .select_from(BehaviorPoint)
        .join(Student, Student.id == BehaviorPoint.student_id)
        .join(SchoolClass, SchoolClass.id == Student.class_id)
        .join(Pod, Pod.id == SchoolClass.pod_id)
        .group_by(_effective_house_id)
        .subquery()
    )
    total = func.coalesce(per_house.c.points, 0)
    stmt = (
        select(House, total.label("points"))
        .outerjoin(per_house, per_house.c.house_id == House.id)
        .order_by(desc("points"), House.name)
    )
    return [Standing(row, int(points)) for row, points in db.execute(stmt).all()]


def inherited_house_total(db: Session, *, pod_id: str | None = None, class_id: str | None = None) -> int:
    """Points of students without their own house, which count toward their pod's house."""
    stmt = (
        select(_points_sum)
        .select_from(BehaviorPoint)
        .join(Student, Student.id == BehaviorPoint.student_id)
        .join(SchoolClass, SchoolClass.id == Student.class_id)
        .where(Student.house_id.is_(None))
    )
    if pod_id is not None:
        stmt = stmt.where(SchoolClass.pod_id == pod_id)
    if class_id is not None:
        stmt = stmt.where(Student.class_id == class_id)
    return int(db.scalar(stmt) or 0)


def find_standing(standings: list[Standing], entity_id: str) -> Standing | None:
    return next((item for item in standings if item.entity.id == entity_id), None)


def _students_with_totals() -> Select:
    return (
        select(Student, _points_sum.label("points"))
        .join(SchoolClass, SchoolClass.id == Student.class_id)
        .join(Pod, Pod.id == SchoolClass.pod_id)
        .outerjoin(BehaviorPoint, BehaviorPoint.student_id == Student.id)
        .group_by(Student.id)
    )


def students_with_totals(db: Session, *, class_id: str | None = None, house_id: str | None = None) -> list[Standing]:
    stmt = _students_with_totals()
    if class_id is not None:
        stmt = stmt.where(Student.class_id == class_id)
    if house_id is not None:
        stmt = stmt.where(_effective_house_id == house_id)
    stmt = stmt.order_by(Student.last_name, Student.first_name)
    return [Standing(row, int(points)) for row, points in db.execute(stmt).all()]


def top_students(
    db: Session,
    *,
    class_id: str | None = None,
    pod_id: str | None = None,
    house_id: str | None = None,
    limit: int = 5,
) -> list[Standing]:
    stmt = _students_with_totals()
    if class_id is not None:
        stmt = stmt.where(Student.class_id == class_id)
    if pod_id is not None:
        stmt = stmt.where(SchoolClass.pod_id == pod_id)
    if house_id is not None:
        stmt = stmt.where(_effective_house_id == house_id)
    stmt = stmt.order_by(desc("points"), Student.last_name, Student.first_name).limit(limit)
    return [Standing(row, int(points)) for row, points in db.execute(stmt).all()]


def scope_deltas(changes: list[tuple[Student, int]]) -> tuple[dict[str, int], dict[str, int], dict[str, int]]:
    """Net point change per class, pod and house for a set of ledger changes."""
    class_deltas: dict[str, int] = defaultdict(int)
    pod_deltas: dict[str, int] = defaultdict(int)
    house_deltas: dict[str, int] = defaultdict(int)
    for student, delta in changes:
        class_deltas[student.class_id] += delta
        if student.school_class is not None:
            pod_deltas[student.school_class.pod_id] += delta
        house_id = student.effective_house_id
        if house_id:
            house_deltas[house_id] += delta
    return dict(class_deltas), dict(pod_deltas), dict(house_deltas)
