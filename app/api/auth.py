"""Signup, login and the current user."""
from fastapi import APIRouter, HTTPException, status

from app.api.deps import (
    CurrentIdentity,
    create_access_token,
    get_password_hash,
    verify_password,
)
from app.models.user import LoginRequest, User, UserCreate, UserOut
from app.realtime.stores import parse_object_id

router = APIRouter()


@router.post("/signup", status_code=status.HTTP_201_CREATED)
async def signup(data: UserCreate):
    existing = await User.find_one({"email": data.email})
    if existing:
        raise HTTPException(status_code=400, detail="Email already exists")
    user = User(
        name=data.name,
        email=data.email,
        hashed_password=get_password_hash(data.password),
        role=data.role,
    )
    await user.insert()
    return {"success": True, "data": UserOut.from_user(user).model_dump(by_alias=True, mode="json")}


@router.post("/login")
async def login(req: LoginRequest):
    user = await User.find_one({"email": req.email})
    if not user or not verify_password(req.password, user.hashed_password):
        raise HTTPException(status_code=400, detail="Invalid email or password")
    token = create_access_token(str(user.id), user.role.value)
    return {"success": True, "data": {"token": token}}


@router.get("/me")
async def me(identity: CurrentIdentity):
    oid = parse_object_id(identity.user_id)
    user = await User.get(oid) if oid else None
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return {"success": True, "data": UserOut.from_user(user).model_dump(by_alias=True, mode="json")}
