from housepoints.models.behavior import BehaviorCategory, BehaviorPoint
from housepoints.models.class_model import SchoolClass
from housepoints.models.house import House
from housepoints.models.pod import Pod
from housepoints.models.reward import Reward, RewardRedemption
from housepoints.models.student import Student
from housepoints.models.user import User

__all__ = [
    "User",
    "House",
    "Pod",
    "SchoolClass",
    "Student",
    "BehaviorCategory",
    "BehaviorPoint",
    "Reward",
    "RewardRedemption",
]
