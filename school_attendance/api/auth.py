from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from school_attendance.api.deps import get_db, get_current_user
from school_attendance.schemas.user import UserCreate, UserLogin, Token, UserOut
from school_attendance.crud import user as crud_user
from school_attendance.core.security import create_user_token, verify_password

router = APIRouter()


@router.post("/register", response_model=Token)
def register(user_in: UserCreate, db: Session = Depends(get_db)):
    if crud_user.get_user_by_username(db, user_in.username):
        raise HTTPException(status_code=400, detail="用户名已被注册")
    if user_in.role not in ["teacher", "student"]:
        raise HTTPException(status_code=400, detail="角色必须是 teacher 或 student")

    user = crud_user.create_user(db, user_in)
    access_token = create_user_token(user)
    return {"access_token": access_token, "token_type": "bearer"}


@router.post("/login", response_model=Token)
def login(form: UserLogin, db: Session = Depends(get_db)):
    user = crud_user.get_user_by_username(db, form.username)
    if not user or not verify_password(form.password, user.hashed_password):
        raise HTTPException(status_code=401, detail="用户名或密码错误")
    access_token = create_user_token(user)
    return {"access_token": access_token, "token_type": "bearer"}


@router.get("/me", response_model=UserOut)
def me(current_user=Depends(get_current_user)):
    return current_user
