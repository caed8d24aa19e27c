from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from sqlalchemy import select
from sqlalchemy.orm import Session

from housepoints.api.deps import get_points_service, get_storage_service, require_admin, require_staff
from housepoints.db.session import get_db
from housepoints.models.class_model import SchoolClass
from housepoints.models.house import House
from housepoints.models.pod import Pod
from housepoints.models.user import User
from housepoints.schemas.school import PodCreateRequest, PodOut, PodUpdateRequest, TopStudentOut
from housepoints.services import standings
from housepoints.services.points import PointsService, ScopeKeys
from housepoints.services.storage import StorageImageError, StorageService

router = APIRouter(prefix="/pods", tags=["pods"])


def _pod_out(pod: Pod, points: int) -> PodOut:
    return PodOut.model_validate(pod).model_copy(update={"points": points})


def _pod_with_points(db: Session, pod: Pod) -> PodOut:
    standing = standings.find_standing(standings.pod_standings(db), pod.id)
    return _pod_out(pod, standing.points if standing else 0)


def _get_pod(db: Session, pod_id: str) -> Pod:
    pod = db.get(Pod, pod_id)
    if not pod:
        raise HTTPException(status_code=404, detail="Pod not found")
    return pod


def _check_house(db: Session, house_id: str | None) -> None:
    if house_id and not db.get(House, house_id):
        raise HTTPException(status_code=404, detail="House not found")


def _ensure_unique_name(db: Session, name: str, exclude_id: str | None = None) -> None:
    existing = db.scalar(select(Pod).where(Pod.name == name))
    if existing and existing.id != exclude_id:
        raise HTTPException(status_code=409, detail="Pod with this name already exists")


@router.get("", response_model=list[PodOut])
def list_pods(db: Session = Depends(get_db)):
    return [_pod_out(item.entity, item.points) for item in standings.pod_standings(db)]


@router.get("/{pod_id}", response_model=PodOut, dependencies=[Depends(require_staff)])
def get_pod(pod_id: str, db: Session = Depends(get_db)):
    return _pod_with_points(db, _get_pod(db, pod_id))


@router.get("/{pod_id}/top-students", response_model=list[TopStudentOut], dependencies=[Depends(require_staff)])
def pod_top_students(pod_id: str, limit: int = Query(default=5, ge=1, le=50), db: Session = Depends(get_db)):
    _get_pod(db, pod_id)
    rows = standings.top_students(db, pod_id=pod_id, limit=limit)
    return [TopStudentOut.model_validate(item.entity).model_copy(update={"total_points": item.points}) for item in rows]


@router.post("", response_model=PodOut, status_code=201)
def create_pod(
    payload: PodCreateRequest,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    _ensure_unique_name(db, payload.name)
    _check_house(db, payload.house_id)
    pod = Pod(name=payload.name, color=payload.color, description=payload.description, house_id=payload.house_id)
    db.add(pod)
    db.commit()
    db.refresh(pod)
    return _pod_out(pod, 0)


@router.patch("/{pod_id}", response_model=PodOut)
def update_pod(
    pod_id: str,
    payload: PodUpdateRequest,
    db: Session = Depends(get_db),
    points_service: PointsService = Depends(get_points_service),
    _: User = Depends(require_admin),
):
    pod = _get_pod(db, pod_id)
    if payload.name is not None:
        _ensure_unique_name(db, payload.name, exclude_id=pod.id)
        pod.name = payload.name
    if payload.color is not None:
        pod.color = payload.color
    if payload.description is not None:
        pod.description = payload.description

    old_house_id = pod.house_id
    if "house_id" in payload.model_fields_set:
        _check_house(db, payload.house_id)
        pod.house_id = payload.house_id

    db.add(pod)
    db.commit()
    db.refresh(pod)

    if pod.house_id != old_house_id:
        points_service.announce_transfer(
            ScopeKeys(None, None, old_house_id),
            ScopeKeys(None, None, pod.house_id),
            standings.inherited_house_total(db, pod_id=pod.id),
        )
    return _pod_with_points(db, pod)


@router.delete("/{pod_id}")
def delete_pod(
    pod_id: str,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    pod = _get_pod(db, pod_id)
    has_classes = db.scalar(select(SchoolClass.id).where(SchoolClass.pod_id == pod.id).limit(1))
    if has_classes:
        raise HTTPException(status_code=409, detail="Pod still has classes")

    db.delete(pod)
    db.commit()
    return {"ok": True}


@router.post("/{pod_id}/logo", response_model=PodOut)
async def upload_pod_logo(
    pod_id: str,
    logo: UploadFile = File(...),
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage_service),
    _: User = Depends(require_admin),
):
    pod = _get_pod(db, pod_id)
    try:
        pod.logo_url = await storage.save_image(logo, prefix=f"pods/{pod_id}")
    except StorageImageError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    db.add(pod)
    db.commit()
    db.refresh(pod)
    return _pod_with_points(db, pod)
