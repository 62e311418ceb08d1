"""
Pydantic schemas for the classroom API.

The Classroom aggregate and everything nested inside it is stored as one JSON
document, so these models double as the persisted shape. Field names are
snake_case in Python and camelCase on the wire and in the store.
"""
from __future__ import annotations
import datetime as dt
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UserRole(str, Enum):
	tutor = "tutor"
	ward = "ward"


AttendanceStatusValue = Literal["present", "absent", "late"]


# -------- Classroom aggregate --------

class SyllabusItem(CamelModel):
	id: str
	topic: str
	completed: bool = False


class Course(CamelModel):
	id: str
	title: str
	description: str
	syllabus: List[SyllabusItem] = Field(default_factory=list)


class Question(CamelModel):
	question: str
	options: List[str]
	correct_answer: str


class WardSubmission(CamelModel):
	ward_id: str
	score: float
	answers: List[str]
	attempt: int


class Quiz(CamelModel):
	id: str
	title: str
	questions: List[Question]
	retake_allowed: bool = False
	submissions: List[WardSubmission] = Field(default_factory=list)


class AssignmentSubmission(CamelModel):
	ward_id: str
	content: str
	grade: Optional[float] = None
	feedback: Optional[str] = None


class Assignment(CamelModel):
	id: str
	title: str
	description: str = ""
	submissions: List[AssignmentSubmission] = Field(default_factory=list)


class AttendanceStatus(CamelModel):
	ward_id: str
	status: AttendanceStatusValue


class AttendanceRecord(CamelModel):
	date: str
	statuses: List[AttendanceStatus] = Field(default_factory=list)


class Classroom(CamelModel):
	id: str
	name: str
	description: str
	tutor_id: str
	code: str
	ward_ids: List[str] = Field(default_factory=list)
	join_requests: List[str] = Field(default_factory=list)
	course: Course
	quizzes: List[Quiz] = Field(default_factory=list)
	assignments: List[Assignment] = Field(default_factory=list)
	attendance: List[AttendanceRecord] = Field(default_factory=list)
	created_at: dt.datetime

	def find_quiz(self, quiz_id: str) -> Optional[Quiz]:
		return next((q for q in self.quizzes if q.id == quiz_id), None)

	def find_assignment(self, assignment_id: str) -> Optional[Assignment]:
		return next((a for a in self.assignments if a.id == assignment_id), None)


# -------- Users --------

class User(CamelModel):
	id: str
	name: str
	role: UserRole


class AuthResponse(CamelModel):
	success: bool = True
	token: str
	user: User


class InitialData(CamelModel):
	classrooms: List[Classroom]
	all_wards: List[User]


# -------- Request bodies --------

class CreateClassroomRequest(CamelModel):
	name: str = Field(..., min_length=1, max_length=200)
	description: str = Field(default="", max_length=2000)


class JoinClassroomRequest(CamelModel):
	code: str = Field(..., min_length=1, max_length=16)


class ApproveJoinRequest(CamelModel):
	ward_id: str


class QuizCreate(CamelModel):
	title: str
	questions: List[Question]
	retake_allowed: bool = False


class AssignmentCreate(CamelModel):
	title: str
	description: str = ""


class QuizSubmitRequest(CamelModel):
	# Clients may also send score/attempt; both are recomputed server-side
	answers: List[str]


class AssignmentSubmitRequest(CamelModel):
	content: str


class GradeRequest(CamelModel):
	ward_id: str
	grade: float = Field(..., ge=0, le=100)
	feedback: str = ""


class AttendanceRequest(CamelModel):
	date: dt.date
	statuses: List[AttendanceStatus]


class SyllabusItemCreate(CamelModel):
	topic: str = Field(..., min_length=1)


class SyllabusItemUpdate(CamelModel):
	completed: bool


# -------- Read models --------

class LeaderboardEntry(CamelModel):
	rank: int
	ward_id: str
	ward_name: str
	score: float
	attempt: int


class QuestionDifficulty(CamelModel):
	question: str
	incorrect_count: int


class QuizAnalytics(CamelModel):
	quiz_id: str
	title: str
	participation_rate: float
	average_score: float
	question_difficulty: List[QuestionDifficulty]


# -------- AI relay --------

class GenerateQuizRequest(CamelModel):
	text_content: str = Field(..., min_length=1)
	num_questions: int = Field(..., ge=1, le=50)


class GenerateQuizResponse(CamelModel):
	questions: List[Question]


class GenerateReviewRequest(CamelModel):
	questions: List[Question]
	user_answers: List[str]
	score: float


class GenerateReviewResponse(CamelModel):
	review: str
