from __future__ import annotations
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Integer, JSON
from .db import Base


class UserAccount(Base):
	__tablename__ = "users"
	id = Column(String(24), primary_key=True)
	# Display name doubles as the login name
	name = Column(String(128), unique=True, index=True, nullable=False)
	role = Column(String(16), nullable=False)
	password_hash = Column(String(256), nullable=False)
	ai_requests_used = Column(Integer, default=0, nullable=False)
	ai_requests_limit = Column(Integer, default=1000, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class AuthSession(Base):
	__tablename__ = "auth_sessions"
	session_id = Column(String(64), primary_key=True)
	user_id = Column(String(24), index=True, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	last_activity_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class ClassroomDocument(Base):
	__tablename__ = "classrooms"
	id = Column(String(24), primary_key=True)
	tutor_id = Column(String(24), index=True, nullable=False)
	code = Column(String(16), unique=True, index=True, nullable=False)
	# Whole aggregate as camelCase JSON; tutor_id and code are copies kept for lookups
	document = Column(JSON, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
