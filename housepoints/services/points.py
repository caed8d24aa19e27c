import logging
from dataclasses import dataclass, field
from typing import Any, NamedTuple

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from housepoints.core.errors import LedgerWriteError, PointsValidationError, UnknownReferenceError
from housepoints.models.behavior import BehaviorCategory, BehaviorPoint
from housepoints.models.class_model import SchoolClass
from housepoints.models.student import Student
from housepoints.models.user import User
from housepoints.realtime.bus import EventBus
from housepoints.realtime.events import ClassUpdated, HouseUpdated, PodUpdated, PointsUpdated, ScopeEvent
from housepoints.schemas.points import PointAwardEntry
from housepoints.services.standings import scope_deltas

logger = logging.getLogger(__name__)


class ScopeKeys(NamedTuple):
    class_id: str | None
    pod_id: str | None
    house_id: str | None

    @classmethod
    def of(cls, student: Student) -> "ScopeKeys":
        pod_id = student.school_class.pod_id if student.school_class else None
        return cls(student.class_id, pod_id, student.effective_house_id)


_SCOPE_FACTORIES = (
    ("class_id", lambda key, delta: ClassUpdated(class_id=key, delta=delta)),
    ("pod_id", lambda key, delta: PodUpdated(pod_id=key, delta=delta)),
    ("house_id", lambda key, delta: HouseUpdated(house_id=key, delta=delta)),
)


@dataclass
class BatchFailure:
    index: int
    error: str


@dataclass
class BatchResult:
    created: list[BehaviorPoint] = field(default_factory=list)
    failed: list[BatchFailure] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.created)


class PointsService:
    """Writes ledger rows and announces which scopes changed."""

    def __init__(self, db: Session, bus: EventBus) -> None:
        self.db = db
        self.bus = bus

    def award_points(self, entry: PointAwardEntry, actor: User) -> BehaviorPoint:
        point = self._build_point(entry, actor)
        self._commit([point])
        self._announce([point])
        return point

    def award_points_batch(self, entries: list[dict[str, Any]], actor: User) -> BatchResult:
        result = BatchResult()
        pending: list[BehaviorPoint] = []
        for index, raw in enumerate(entries):
            try:
                entry = PointAwardEntry.model_validate(raw)
                pending.append(self._build_point(entry, actor))
            except ValidationError as exc:
                result.failed.append(BatchFailure(index=index, error=_first_validation_message(exc)))
            except (UnknownReferenceError, PointsValidationError) as exc:
                result.failed.append(BatchFailure(index=index, error=str(exc)))

        if result.failed:
            logger.info("Batch award by %s: %d valid, %d rejected.", actor.login, len(pending), len(result.failed))
        if not pending:
            return result

        self._commit(pending)
        result.created = pending
        self._announce(pending)
        return result

    def delete_point(self, point_id: str, actor: User) -> None:
        point = self.db.get(BehaviorPoint, point_id)
        if point is None:
            raise UnknownReferenceError("Behavior point", point_id)

        student = point.student
        deleted_id, delta = point.id, point.points
        logger.warning(
            "Ledger row %s deleted by %s: student=%s category=%s teacher=%s points=%d created_at=%s notes=%r",
            point.id,
            actor.login,
            point.student_id,
            point.category_id,
            point.teacher_id,
            point.points,
            point.created_at.isoformat() if point.created_at else None,
            point.notes,
        )
        try:
            self.db.delete(point)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise LedgerWriteError("Failed to delete behavior point") from exc

        self._publish_scopes([(student, -delta)], point_ids=[deleted_id])

    def announce_transfer(self, before: ScopeKeys, after: ScopeKeys, points: int) -> None:
        """Publish scope events for points that moved between classes, pods or houses.

        Used after roster changes: the ledger is untouched but the totals of
        the old and new scopes shift by ``points``.
        """
        if points == 0:
            return
        events: list[ScopeEvent] = []
        for kind, make in _SCOPE_FACTORIES:
            old_id, new_id = getattr(before, kind), getattr(after, kind)
            if old_id == new_id:
                continue
            if old_id:
                events.append(make(old_id, -points))
            if new_id:
                events.append(make(new_id, points))
        for event in events:
            self.bus.publish(event.type, event)

    def _build_point(self, entry: PointAwardEntry, actor: User) -> BehaviorPoint:
        student = self.db.get(Student, entry.student_id)
        if student is None:
            raise UnknownReferenceError("Student", entry.student_id)
        category = self.db.get(BehaviorCategory, entry.category_id)
        if category is None:
            raise UnknownReferenceError("Behavior category", entry.category_id)

        teacher_id = actor.id
        if entry.teacher_id and entry.teacher_id != actor.id:
            if self.db.get(User, entry.teacher_id) is None:
                raise UnknownReferenceError("Teacher", entry.teacher_id)
            teacher_id = entry.teacher_id

        points = entry.points if entry.points is not None else category.signed_points
        if (points > 0) != category.is_positive:
            kind = "positive" if category.is_positive else "negative"
            raise PointsValidationError(f"Category '{category.name}' only allows {kind} points, got {points}")

        return BehaviorPoint(
            student_id=student.id,
            category_id=category.id,
            teacher_id=teacher_id,
            points=points,
            notes=entry.notes,
        )

    def _commit(self, points: list[BehaviorPoint]) -> None:
        try:
            self.db.add_all(points)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Ledger write of %d row(s) failed: %s", len(points), exc)
            raise LedgerWriteError("Failed to record behavior points") from exc
        for point in points:
            self.db.refresh(point)

    def _announce(self, points: list[BehaviorPoint]) -> None:
        student_ids = list(dict.fromkeys(point.student_id for point in points))
        students = {
            student.id: student
            for student in self.db.scalars(
                select(Student)
                .where(Student.id.in_(student_ids))
                .options(selectinload(Student.school_class).selectinload(SchoolClass.pod))
            )
        }
        changes = [(students[point.student_id], point.points) for point in points]
        self._publish_scopes(changes, point_ids=[point.id for point in points])

    def _publish_scopes(self, changes: list[tuple[Student, int]], *, point_ids: list[str]) -> None:
        """Publish one event per affected scope for one logical action."""
        student_ids = list(dict.fromkeys(student.id for student, _ in changes))
        class_deltas, pod_deltas, house_deltas = scope_deltas(changes)

        events = [PointsUpdated(student_ids=student_ids, point_ids=point_ids, delta=sum(delta for _, delta in changes))]
        events += [ClassUpdated(class_id=key, delta=value) for key, value in sorted(class_deltas.items())]
        events += [PodUpdated(pod_id=key, delta=value) for key, value in sorted(pod_deltas.items())]
        events += [HouseUpdated(house_id=key, delta=value) for key, value in sorted(house_deltas.items())]
        for event in events:
            self.bus.publish(event.type, event)


def _first_validation_message(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid entry"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first.get('msg', 'invalid value')}" if location else first.get("msg", "Invalid entry")
