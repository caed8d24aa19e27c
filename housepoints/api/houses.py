from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from sqlalchemy import select
from sqlalchemy.orm import Session

from housepoints.api.deps import get_storage_service, require_admin, require_staff
from housepoints.db.session import get_db
from housepoints.models.house import House
from housepoints.models.user import User
from housepoints.schemas.school import BrandingCreateRequest, BrandingUpdateRequest, HouseOut, TopStudentOut
from housepoints.services import standings
from housepoints.services.storage import StorageImageError, StorageService

router = APIRouter(prefix="/houses", tags=["houses"])


def _house_out(house: House, points: int) -> HouseOut:
    return HouseOut.model_validate(house).model_copy(update={"points": points})


def _house_with_points(db: Session, house: House) -> HouseOut:
    standing = standings.find_standing(standings.house_standings(db), house.id)
    return _house_out(house, standing.points if standing else 0)


def _get_house(db: Session, house_id: str) -> House:
    house = db.get(House, house_id)
    if not house:
        raise HTTPException(status_code=404, detail="House not found")
    return house


def _ensure_unique_name(db: Session, name: str, exclude_id: str | None = None) -> None:
    existing = db.scalar(select(House).where(House.name == name))
    if existing and existing.id != exclude_id:
        raise HTTPException(status_code=409, detail="House with this name already exists")


@router.get("", response_model=list[HouseOut])
def list_houses(db: Session = Depends(get_db)):
    return [_house_out(item.entity, item.points) for item in standings.house_standings(db)]


@router.get("/{house_id}", response_model=HouseOut, dependencies=[Depends(require_staff)])
def get_house(house_id: str, db: Session = Depends(get_db)):
    house = _get_house(db, house_id)
    return _house_with_points(db, house)


@router.get("/{house_id}/top-students", response_model=list[TopStudentOut], dependencies=[Depends(require_staff)])
def house_top_students(house_id: str, limit: int = Query(default=5, ge=1, le=50), db: Session = Depends(get_db)):
    _get_house(db, house_id)
    rows = standings.top_students(db, house_id=house_id, limit=limit)
    return [TopStudentOut.model_validate(item.entity).model_copy(update={"total_points": item.points}) for item in rows]


@router.post("", response_model=HouseOut, status_code=201)
def create_house(
    payload: BrandingCreateRequest,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    _ensure_unique_name(db, payload.name)
    house = House(name=payload.name, color=payload.color, description=payload.description)
    db.add(house)
    db.commit()
    db.refresh(house)
    return _house_out(house, 0)


@router.patch("/{house_id}", response_model=HouseOut)
def update_house(
    house_id: str,
    payload: BrandingUpdateRequest,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    house = _get_house(db, house_id)
    if payload.name is not None:
        _ensure_unique_name(db, payload.name, exclude_id=house.id)
        house.name = payload.name
    if payload.color is not None:
        house.color = payload.color
    if payload.description is not None:
        house.description = payload.description

    db.add(house)
    db.commit()
    db.refresh(house)
    return _house_with_points(db, house)


@router.delete("/{house_id}")
def delete_house(
    house_id: str,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    house = _get_house(db, house_id)
    db.delete(house)
    db.commit()
    return {"ok": True}


@router.post("/{house_id}/logo", response_model=HouseOut)
async def upload_house_logo(
    house_id: str,
    logo: UploadFile = File(...),
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage_service),
    _: User = Depends(require_admin),
):
    house = _get_house(db, house_id)
    try:
        house.logo_url = await storage.save_image(logo, prefix=f"houses/{house_id}")
    except StorageImageError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    db.add(house)
    db.commit()
    db.refresh(house)
    return _house_with_points(db, house)
