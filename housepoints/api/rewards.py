import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from housepoints.api.deps import get_storage_service, require_admin, require_staff
from housepoints.db.session import get_db
from housepoints.models.reward import Reward, RewardRedemption
from housepoints.models.student import Student
from housepoints.models.user import User
from housepoints.schemas.rewards import (
    RedeemRequest,
    RedeemResponse,
    RedemptionOut,
    RedemptionStatusRequest,
    RewardCreateRequest,
    RewardOut,
    RewardUpdateRequest,
)
from housepoints.services.standings import student_balance
from housepoints.services.storage import StorageImageError, StorageService

router = APIRouter(prefix="/rewards", tags=["rewards"])
logger = logging.getLogger(__name__)


def _get_reward(db: Session, reward_id: str) -> Reward:
    reward = db.get(Reward, reward_id)
    if not reward:
        raise HTTPException(status_code=404, detail="Reward not found")
    return reward


@router.get("", response_model=list[RewardOut])
def list_rewards(db: Session = Depends(get_db)):
    rows = db.scalars(select(Reward).order_by(Reward.point_cost, Reward.name)).all()
    return rows


@router.post("", response_model=RewardOut, status_code=201)
def create_reward(
    payload: RewardCreateRequest,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    reward = Reward(
        name=payload.name,
        description=payload.description,
        point_cost=payload.point_cost,
        quantity=payload.quantity,
    )
    db.add(reward)
    db.commit()
    db.refresh(reward)
    return reward


@router.patch("/{reward_id}", response_model=RewardOut)
def update_reward(
    reward_id: str,
    payload: RewardUpdateRequest,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    reward = _get_reward(db, reward_id)
    if payload.name is not None:
        reward.name = payload.name
    if payload.description is not None:
        reward.description = payload.description
    if payload.point_cost is not None:
        reward.point_cost = payload.point_cost
    if payload.quantity is not None:
        reward.quantity = payload.quantity

    db.add(reward)
    db.commit()
    db.refresh(reward)
    return reward


@router.delete("/{reward_id}")
def delete_reward(
    reward_id: str,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    reward = _get_reward(db, reward_id)
    redeemed = db.scalar(select(RewardRedemption.id).where(RewardRedemption.reward_id == reward.id).limit(1))
    if redeemed:
        raise HTTPException(status_code=409, detail="Reward has redemptions")

    db.delete(reward)
    db.commit()
    return {"ok": True}


@router.post("/{reward_id}/image", response_model=RewardOut)
async def upload_reward_image(
    reward_id: str,
    image: UploadFile = File(...),
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage_service),
    _: User = Depends(require_admin),
):
    reward = _get_reward(db, reward_id)
    try:
        reward.image_url = await storage.save_image(image, prefix=f"rewards/{reward_id}")
    except StorageImageError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    db.add(reward)
    db.commit()
    db.refresh(reward)
    return reward


@router.post("/redeem", response_model=RedeemResponse, status_code=201)
def redeem_reward(
    payload: RedeemRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_staff),
):
    student = db.get(Student, payload.student_id)
    if not student:
        raise HTTPException(status_code=404, detail="Student not found")
    reward = _get_reward(db, payload.reward_id)

    if reward.quantity <= 0:
        raise HTTPException(status_code=409, detail="Reward is out of stock")
    balance = student_balance(db, student.id)
    if balance < reward.point_cost:
        raise HTTPException(status_code=400, detail="Insufficient points")

    redemption = RewardRedemption(
        student_id=student.id,
        reward_id=reward.id,
        points_spent=reward.point_cost,
        status="pending",
    )
    reward.quantity -= 1
    db.add(redemption)
    db.add(reward)
    db.commit()
    db.refresh(redemption)
    logger.info("%s redeemed %r for student %s (%d points).", user.login, reward.name, student.id, reward.point_cost)

    return RedeemResponse(
        redemption=RedemptionOut.model_validate(redemption),
        balance=student_balance(db, student.id),
    )


@router.get(
    "/redemptions/student/{student_id}",
    response_model=list[RedemptionOut],
    dependencies=[Depends(require_staff)],
)
def student_redemptions(student_id: str, db: Session = Depends(get_db)):
    if not db.get(Student, student_id):
        raise HTTPException(status_code=404, detail="Student not found")

    rows = db.scalars(
        select(RewardRedemption)
        .where(RewardRedemption.student_id == student_id)
        .options(selectinload(RewardRedemption.reward))
        .order_by(RewardRedemption.created_at.desc())
    ).all()
    return rows


@router.patch("/redemptions/{redemption_id}", response_model=RedemptionOut)
def update_redemption_status(
    redemption_id: str,
    payload: RedemptionStatusRequest,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    redemption = db.get(RewardRedemption, redemption_id)
    if not redemption:
        raise HTTPException(status_code=404, detail="Redemption not found")

    redemption.status = payload.status
    db.add(redemption)
    db.commit()
    db.refresh(redemption)
    return redemption
