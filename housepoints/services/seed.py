import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from housepoints.models.behavior import BehaviorCategory
from housepoints.models.class_model import SchoolClass
from housepoints.models.house import House
from housepoints.models.pod import Pod
from housepoints.models.reward import Reward

logger = logging.getLogger(__name__)

DEFAULT_HOUSES = (
    ("Phoenix", "#3b82f6", "House of courage and rebirth"),
    ("Griffin", "#10b981", "House of nobility and strength"),
    ("Dragon", "#f59e0b", "House of wisdom and power"),
    ("Pegasus", "#ef4444", "House of freedom and inspiration"),
)

DEFAULT_CATEGORIES = (
    ("Academic Excellence", "Outstanding academic performance", True, 5),
    ("Helping Others", "Assisting peers or staff", True, 3),
    ("Teamwork", "Great collaboration with others", True, 4),
    ("Leadership", "Demonstrating leadership skills", True, 5),
    ("Classroom Disruption", "Disrupting the learning environment", False, 2),
    ("Late Assignment", "Submitting work after deadline", False, 1),
    ("Tardiness", "Arriving late to class", False, 1),
)

DEFAULT_REWARDS = (
    ("Homework Pass", "Skip one homework assignment", 20, 10),
    ("Lunch with Teacher", "Have lunch with your favorite teacher", 30, 5),
    ("School Store Voucher", "$5 voucher for the school store", 25, 15),
    ("Front of Lunch Line Pass", "Skip the lunch line for a week", 15, 20),
)

DEFAULT_GRADES = ("6", "7", "8")
DEFAULT_SECTIONS = ("A", "B")


def seed_school(db: Session) -> dict[str, int]:
    """Insert the demo houses, pods, classes, categories and rewards that are missing.

    Rows are matched by name, so running it twice inserts nothing the
    second time. Returns how many rows of each kind were inserted.
    """
    inserted = {"houses": 0, "pods": 0, "classes": 0, "categories": 0, "rewards": 0}

    houses: list[House] = []
    for name, color, description in DEFAULT_HOUSES:
        house = db.scalar(select(House).where(House.name == name))
        if not house:
            house = House(name=name, color=color, description=description)
            db.add(house)
            inserted["houses"] += 1
        houses.append(house)
    db.flush()

    pods: dict[str, Pod] = {}
    for grade, house in zip(DEFAULT_GRADES, houses):
        name = f"Grade {grade} Pod"
        pod = db.scalar(select(Pod).where(Pod.name == name))
        if not pod:
            pod = Pod(name=name, color=house.color, house_id=house.id)
            db.add(pod)
            inserted["pods"] += 1
        pods[grade] = pod
    db.flush()

    for grade, pod in pods.items():
        for section in DEFAULT_SECTIONS:
            name = f"{grade}{section}"
            if db.scalar(select(SchoolClass).where(SchoolClass.name == name)):
                continue
            db.add(SchoolClass(name=name, grade_level=grade, pod_id=pod.id))
            inserted["classes"] += 1

    for name, description, is_positive, point_value in DEFAULT_CATEGORIES:
        if db.scalar(select(BehaviorCategory).where(BehaviorCategory.name == name)):
            continue
        db.add(BehaviorCategory(name=name, description=description, is_positive=is_positive, point_value=point_value))
        inserted["categories"] += 1

    for name, description, point_cost, quantity in DEFAULT_REWARDS:
        if db.scalar(select(Reward).where(Reward.name == name)):
            continue
        db.add(Reward(name=name, description=description, point_cost=point_cost, quantity=quantity))
        inserted["rewards"] += 1

    db.commit()
    logger.info("Seeded school data: %s", inserted)
    return inserted
