from __future__ import annotations
import uuid
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import errors
from .models import ClassroomDocument, UserAccount
from .schemas import Classroom


def new_id() -> str:
	return uuid.uuid4().hex[:24]


class ClassroomStore:
	"""Whole-aggregate persistence for classrooms on top of a SQLAlchemy session.

	Reads return detached ``Classroom`` models; ``save`` writes the entire
	document back, so concurrent writers to one classroom are last-write-wins.
	"""

	def __init__(self, db: Session) -> None:
		self.db = db

	def find_by_id(self, classroom_id: str) -> Optional[Classroom]:
		row = self.db.get(ClassroomDocument, classroom_id)
		return Classroom.model_validate(row.document) if row else None

	def find_by_code(self, code: str) -> Optional[Classroom]:
		row = self.db.query(ClassroomDocument).filter(ClassroomDocument.code == code).first()
		return Classroom.model_validate(row.document) if row else None

	def code_exists(self, code: str) -> bool:
		return self.db.query(ClassroomDocument.id).filter(ClassroomDocument.code == code).first() is not None

	def find_for_tutor(self, tutor_id: str) -> List[Classroom]:
		rows = (
			self.db.query(ClassroomDocument)
			.filter(ClassroomDocument.tutor_id == tutor_id)
			.order_by(ClassroomDocument.created_at)
			.all()
		)
		return [Classroom.model_validate(r.document) for r in rows]

	def find_for_ward(self, ward_id: str) -> List[Classroom]:
		# Membership lives inside the JSON document, so filter after loading
		rows = self.db.query(ClassroomDocument).order_by(ClassroomDocument.created_at).all()
		classrooms = [Classroom.model_validate(r.document) for r in rows]
		return [c for c in classrooms if ward_id in c.ward_ids]

	def save(self, classroom: Classroom) -> Classroom:
		document = classroom.model_dump(by_alias=True, mode="json")
		row = self.db.get(ClassroomDocument, classroom.id)
		if row is None:
			row = ClassroomDocument(id=classroom.id, tutor_id=classroom.tutor_id, created_at=classroom.created_at)
		row.code = classroom.code
		row.document = document
		self.db.add(row)
		try:
			self.db.commit()
		except IntegrityError:
			self.db.rollback()
			raise errors.Conflict(f"join code {classroom.code} is already in use")
		return classroom


class UserStore:
	def __init__(self, db: Session) -> None:
		self.db = db

	def get(self, user_id: str) -> Optional[UserAccount]:
		return self.db.get(UserAccount, user_id)

	def find_by_name(self, name: str) -> Optional[UserAccount]:
		return self.db.query(UserAccount).filter(UserAccount.name == name).first()

	def list_by_ids(self, user_ids: List[str]) -> List[UserAccount]:
		if not user_ids:
			return []
		return self.db.query(UserAccount).filter(UserAccount.id.in_(user_ids)).all()

	def list_wards(self) -> List[UserAccount]:
		return (
			self.db.query(UserAccount)
			.filter(UserAccount.role == "ward")
			.order_by(UserAccount.created_at)
			.all()
		)
