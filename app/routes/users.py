"""
USERS ROUTE - Create, read, update and delete users

Each handler runs a parameterized statement against the users table and
returns the result inside the response envelope.

What it does:
1. POST   /users       creates a user (storage assigns id and timestamps)
2. GET    /users       lists every user, newest first
3. GET    /users/{id}  fetches one user
4. PUT    /users/{id}  replaces name and email, refreshing updated_at
5. DELETE /users/{id}  removes a user

Request bodies are only decoded, never validated: empty names and emails go
straight to storage, which rejects nothing but constraint violations such as
a duplicate email.
"""

from fastapi import APIRouter, Depends, HTTPException, Path
from sqlalchemy.orm import Session
from sqlalchemy.sql import func
from app.db import get_db
from app import models
from app.schemas import (
    UserIn, UserOut, DeleteOut,
    UserEnvelope, UserListEnvelope, DeleteEnvelope,
    envelope,
)
from app.utils import Constants, handle_db_errors, get_logger

logger = get_logger(__name__)

router = APIRouter()


def _ensure_storable_id(user_id: int) -> None:
    # Drivers reject out-of-range integers outright, and no such row exists
    if not Constants.MIN_USER_ID <= user_id <= Constants.MAX_USER_ID:
        raise HTTPException(status_code=404, detail=Constants.USER_NOT_FOUND)


def _find_user(db: Session, user_id: int) -> models.User:
    _ensure_storable_id(user_id)
    user = db.query(models.User).filter(models.User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail=Constants.USER_NOT_FOUND)
    return user


@router.post("", response_model=UserEnvelope, status_code=201)
@handle_db_errors
def create_user(payload: UserIn, db: Session = Depends(get_db)):
    """
    Create a user from a JSON body {name, email}.

    Output: the stored user with its id and timestamps, status 201
    """
    # STEP 1: Insert the row, letting storage assign id and timestamps
    user = models.User(name=payload.name, email=payload.email)
    db.add(user)
    db.commit()

    # STEP 2: Load the server-side defaults back
    db.refresh(user)
    logger.info(f"Created user {user.id}")
    return envelope(UserOut.model_validate(user), 201)


@router.get("", response_model=UserListEnvelope)
@handle_db_errors
def list_users(db: Session = Depends(get_db)):
    """
    List every user, most recently created first.

    Users created within the same clock tick come back newest id first.
    """
    users = (db.query(models.User)
               .order_by(models.User.created_at.desc(), models.User.id.desc())
               .all())
    return envelope([UserOut.model_validate(u) for u in users], 200)


@router.get("/{user_id}", response_model=UserEnvelope)
@handle_db_errors
def get_user(user_id: int = Path(...), db: Session = Depends(get_db)):
    user = _find_user(db, user_id)
    return envelope(UserOut.model_validate(user), 200)


@router.put("/{user_id}", response_model=UserEnvelope)
@handle_db_errors
def update_user(payload: UserIn, user_id: int = Path(...), db: Session = Depends(get_db)):
    """
    Replace a user's name and email.

    Input: user_id, JSON body {name, email}
    Output: the updated user; updated_at is set to the database's current time
    """
    # STEP 1: The user must exist
    user = _find_user(db, user_id)

    # STEP 2: Overwrite the mutable fields; id and created_at never change
    user.name = payload.name
    user.email = payload.email
    user.updated_at = func.now()
    db.commit()

    # STEP 3: Read back the timestamp storage just wrote
    db.refresh(user)
    return envelope(UserOut.model_validate(user), 200)


@router.delete("/{user_id}", response_model=DeleteEnvelope)
@handle_db_errors
def delete_user(user_id: int = Path(...), db: Session = Depends(get_db)):
    """
    Delete a user.

    Deleting an id that does not exist (or was already deleted) is a 404.
    """
    _ensure_storable_id(user_id)
    deleted = (db.query(models.User)
                 .filter(models.User.id == user_id)
                 .delete(synchronize_session=False))
    db.commit()
    if not deleted:
        raise HTTPException(status_code=404, detail=Constants.USER_NOT_FOUND)

    logger.info(f"Deleted user {user_id}")
    return envelope(DeleteOut(message=Constants.USER_DELETED), 200)
