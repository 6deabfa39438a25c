import logging
from fastapi import APIRouter, HTTPException, status
from sqlalchemy import or_, select

from db_assistant.core import schemas, models
from db_assistant.api.deps import db_dep
from db_assistant.core.security import verify_password, create_access_token, hash_password

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


@router.post(
    "/signup",
    response_model=schemas.AuthResponse,
    status_code=status.HTTP_201_CREATED,
)
async def sign_up(user: schemas.CreateUser, db: db_dep):
    # Email and name are both unique
    query = select(models.User).where(
        or_(models.User.email == user.email, models.User.name == user.name)
    )
    result = await db.execute(query)
    db_user = result.scalars().first()

    if db_user:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User with this email already exists",
        )

    try:
        new_user = models.User(
            name=user.name, email=user.email, password=hash_password(user.password)
        )
        db.add(new_user)
        await db.commit()
        await db.refresh(new_user)
    except Exception as error:
        await db.rollback()
        logging.error(f"Failed to create user: {error}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create user",
        )

    token = create_access_token({"user_id": new_user.id})
    return {"token": token, "user": new_user}


@router.post("/login", response_model=schemas.AuthResponse)
async def login(user_credentials: schemas.UserLogin, db: db_dep):
    query = select(models.User).where(
        models.User.email == user_credentials.email, models.User.deleted_at.is_(None)
    )
    result = await db.execute(query)
    db_user = result.scalars().first()

    # Same answer for unknown email and wrong password
    if not db_user or not verify_password(user_credentials.password, db_user.password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    token = create_access_token({"user_id": db_user.id})
    return {"token": token, "user": db_user}
