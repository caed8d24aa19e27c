from fastapi import APIRouter

from housepoints.api import auth, categories, classes, houses, pods, points, rewards, students, system, users

api_router = APIRouter()
api_router.include_router(system.router)
api_router.include_router(auth.router)
api_router.include_router(houses.router)
api_router.include_router(pods.router)
api_router.include_router(classes.router)
api_router.include_router(students.router)
api_router.include_router(categories.router)
api_router.include_router(points.router)
api_router.include_router(rewards.router)
api_router.include_router(users.router)
