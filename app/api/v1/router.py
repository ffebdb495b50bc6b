from fastapi import APIRouter

api_router = APIRouter()

from app.api.v1 import auth, partner, users

api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(partner.router, prefix="/partner", tags=["partner"])

@api_router.get("/")
def root():
    return {"message": "Shared budget API"}
