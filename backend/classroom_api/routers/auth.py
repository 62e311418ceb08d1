from datetime import datetime, timedelta, timezone
from typing import Optional
import uuid

from fastapi import APIRouter, HTTPException, Depends
from fastapi.security import OAuth2PasswordRequestForm, OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel, Field

from ..settings import settings
from sqlalchemy.orm import Session
from ..db import get_db
from ..models import UserAccount, AuthSession
from ..schemas import AuthResponse, User, UserRole
from ..store import UserStore, new_id

router = APIRouter(prefix="/auth", tags=["auth"])

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.bcrypt_rounds)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")


class Token(BaseModel):
	access_token: str
	token_type: str = "bearer"


class RegisterRequest(BaseModel):
	name: str = Field(..., min_length=3, max_length=128)
	password: str = Field(..., min_length=1)
	role: UserRole


class LoginRequest(BaseModel):
	name: str
	password: str


def verify_password(plain_password: str, hashed_password: str) -> bool:
	return pwd_context.verify(plain_password, hashed_password)


def _to_user(row: UserAccount) -> User:
	return User(id=row.id, name=row.name, role=row.role)


def authenticate_user(db: Session, name: str, password: str) -> Optional[User]:
	row = UserStore(db).find_by_name(name)
	if row and verify_password(password, row.password_hash):
		return _to_user(row)
	return None


def _resolve_expiry(expires_delta: Optional[timedelta]) -> datetime:
	delta = expires_delta
	if delta is None:
		minutes = settings.access_token_expire_minutes
		delta = timedelta(minutes=minutes) if minutes > 0 else timedelta(days=30)
	now = datetime.now(timezone.utc)
	try:
		return now + delta
	except OverflowError:
		return datetime.max.replace(tzinfo=timezone.utc)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
	to_encode = data.copy()
	to_encode.update({"exp": _resolve_expiry(expires_delta)})
	return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def _open_session(db: Session, user: User) -> str:
	# Each login gets its own session id (jti) so it can be revoked server-side
	session_id = uuid.uuid4().hex
	db.add(AuthSession(session_id=session_id, user_id=user.id))
	db.commit()
	return create_access_token({"sub": user.id, "jti": session_id})


def _credentials_exception() -> HTTPException:
	return HTTPException(
		status_code=401,
		detail="Could not validate credentials",
		headers={"WWW-Authenticate": "Bearer"},
	)


def _decode(token: str) -> tuple[str, str]:
	try:
		payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
	except JWTError:
		raise _credentials_exception()
	user_id: str | None = payload.get("sub")
	jti: str | None = payload.get("jti")
	if user_id is None or jti is None:
		raise _credentials_exception()
	return user_id, jti


def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> User:
	user_id, jti = _decode(token)
	# Sessions removed by logout no longer authenticate
	session = db.get(AuthSession, jti)
	if not session or session.user_id != user_id:
		raise _credentials_exception()
	row = UserStore(db).get(user_id)
	if row is None:
		raise _credentials_exception()
	session.last_activity_at = datetime.utcnow()
	db.add(session)
	db.commit()
	return _to_user(row)


@router.post("/register", response_model=AuthResponse, status_code=201)
def register(req: RegisterRequest, db: Session = Depends(get_db)):
	name = req.name.strip()
	if len(name) < 3:
		raise HTTPException(status_code=400, detail="name must be 3-128 characters")
	users = UserStore(db)
	if users.find_by_name(name):
		raise HTTPException(status_code=409, detail="name already exists")
	row = UserAccount(
		id=new_id(),
		name=name,
		role=req.role.value,
		password_hash=pwd_context.hash(req.password),
		ai_requests_limit=settings.ai_requests_limit,
	)
	db.add(row)
	db.commit()
	user = _to_user(row)
	return AuthResponse(token=_open_session(db, user), user=user)


@router.post("/login", response_model=AuthResponse)
def login(req: LoginRequest, db: Session = Depends(get_db)):
	user = authenticate_user(db, req.name.strip(), req.password)
	if not user:
		raise HTTPException(status_code=401, detail="Invalid credentials")
	return AuthResponse(token=_open_session(db, user), user=user)


@router.post("/token", response_model=Token)
def token(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
	user = authenticate_user(db, form_data.username, form_data.password)
	if not user:
		raise HTTPException(status_code=401, detail="Incorrect username or password")
	return Token(access_token=_open_session(db, user))


@router.get("/me", response_model=User)
def me(user: User = Depends(get_current_user)):
	return user


@router.post("/logout", status_code=204)
def logout(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)):
	_, jti = _decode(token)
	session = db.get(AuthSession, jti)
	if session is not None:
		db.delete(session)
		db.commit()
