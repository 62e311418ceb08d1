from __future__ import annotations
import logging
import secrets
import string
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from . import errors
from .schemas import (
	Assignment,
	AssignmentCreate,
	AssignmentSubmission,
	AttendanceRecord,
	AttendanceStatus,
	Classroom,
	Course,
	InitialData,
	LeaderboardEntry,
	QuestionDifficulty,
	Quiz,
	QuizAnalytics,
	QuizCreate,
	SyllabusItem,
	User,
	UserRole,
	WardSubmission,
)
from .settings import settings
from .store import ClassroomStore, UserStore, new_id

logger = logging.getLogger(__name__)

JOIN_CODE_ALPHABET = string.ascii_uppercase + string.digits
JOIN_CODE_LENGTH = 6


def generate_join_code() -> str:
	return "".join(secrets.choice(JOIN_CODE_ALPHABET) for _ in range(JOIN_CODE_LENGTH))


def score_answers(quiz: Quiz, answers: List[str]) -> float:
	"""Percentage of questions whose answer matches exactly, to two decimals.

	Missing trailing answers count as incorrect.
	"""
	if not quiz.questions:
		return 0.0
	correct = sum(
		1 for i, q in enumerate(quiz.questions)
		if i < len(answers) and answers[i] == q.correct_answer
	)
	return round(correct / len(quiz.questions) * 100, 2)


def next_attempt(quiz: Quiz, ward_id: str, *, per_ward: bool) -> int:
	# Cross-ward numbering is the historical behaviour; per_ward fixes it
	subs = [s for s in quiz.submissions if s.ward_id == ward_id] if per_ward else quiz.submissions
	return max((s.attempt for s in subs), default=0) + 1


class ClassroomService:
	"""Authorized mutations and reads on Classroom aggregates.

	Every mutating operation follows load -> authorize -> mutate -> save and
	returns the full updated aggregate.
	"""

	def __init__(
		self,
		db: Session,
		*,
		attempts_per_ward: Optional[bool] = None,
		enforce_retake: Optional[bool] = None,
		code_generator=generate_join_code,
	) -> None:
		self.classrooms = ClassroomStore(db)
		self.users = UserStore(db)
		self.attempts_per_ward = settings.quiz_attempts_per_ward if attempts_per_ward is None else attempts_per_ward
		self.enforce_retake = settings.enforce_quiz_retake if enforce_retake is None else enforce_retake
		self._generate_code = code_generator

	# ---- helpers ----

	def _load(self, classroom_id: str) -> Classroom:
		classroom = self.classrooms.find_by_id(classroom_id)
		if classroom is None:
			raise errors.NotFound("Classroom not found")
		return classroom

	def _load_owned(self, user: User, classroom_id: str) -> Classroom:
		classroom = self._load(classroom_id)
		if user.role != UserRole.tutor or classroom.tutor_id != user.id:
			raise errors.Forbidden("Only the classroom's tutor can do this")
		return classroom

	def _load_enrolled(self, user: User, classroom_id: str) -> Classroom:
		classroom = self._load(classroom_id)
		if user.role != UserRole.ward or user.id not in classroom.ward_ids:
			raise errors.Forbidden("Only wards enrolled in this classroom can do this")
		return classroom

	def _unique_code(self) -> str:
		for _ in range(max(1, settings.join_code_max_attempts)):
			code = self._generate_code()
			if not self.classrooms.code_exists(code):
				return code
			logger.info("join code collision on %s, regenerating", code)
		raise errors.Conflict("Could not generate a unique join code")

	# ---- reads ----

	def initial_data(self, user: User) -> InitialData:
		if user.role == UserRole.tutor:
			classrooms = self.classrooms.find_for_tutor(user.id)
		else:
			classrooms = self.classrooms.find_for_ward(user.id)
		wards = [User(id=u.id, name=u.name, role=u.role) for u in self.users.list_wards()]
		return InitialData(classrooms=classrooms, all_wards=wards)

	def get_classroom(self, user: User, classroom_id: str) -> Classroom:
		classroom = self._load(classroom_id)
		if classroom.tutor_id != user.id and user.id not in classroom.ward_ids:
			raise errors.Forbidden("You are not a member of this classroom")
		return classroom

	# ---- lifecycle ----

	def create_classroom(self, user: User, name: str, description: str) -> Classroom:
		if user.role != UserRole.tutor:
			raise errors.Forbidden("Only tutors can create classrooms")
		name = name.strip()
		if not name:
			raise errors.ValidationError("name is required")
		classroom = Classroom(
			id=new_id(),
			name=name,
			description=description.strip(),
			tutor_id=user.id,
			code=self._unique_code(),
			course=Course(id=new_id(), title=f"{name} Course", description=f"Syllabus for {name}"),
			created_at=datetime.utcnow(),
		)
		self.classrooms.save(classroom)
		logger.info("classroom %s created by tutor %s with code %s", classroom.id, user.id, classroom.code)
		return classroom

	def request_join(self, user: User, code: str) -> Classroom:
		if user.role != UserRole.ward:
			raise errors.Forbidden("Only wards can join classrooms")
		classroom = self.classrooms.find_by_code(code.strip().upper())
		if classroom is None:
			raise errors.NotFound("Classroom not found")
		if user.id in classroom.ward_ids or user.id in classroom.join_requests:
			raise errors.Conflict("You are already in this classroom or have a pending request")
		classroom.join_requests.append(user.id)
		self.classrooms.save(classroom)
		logger.info("ward %s requested to join classroom %s", user.id, classroom.id)
		return classroom

	def approve_join(self, user: User, classroom_id: str, ward_id: str) -> Classroom:
		classroom = self._load_owned(user, classroom_id)
		if ward_id not in classroom.join_requests:
			return classroom
		classroom.join_requests = [w for w in classroom.join_requests if w != ward_id]
		if ward_id not in classroom.ward_ids:
			classroom.ward_ids.append(ward_id)
		self.classrooms.save(classroom)
		logger.info("ward %s approved into classroom %s", ward_id, classroom.id)
		return classroom

	# ---- content authoring ----

	def add_quiz(self, user: User, classroom_id: str, data: QuizCreate) -> Classroom:
		classroom = self._load_owned(user, classroom_id)
		title = data.title.strip()
		if not title:
			raise errors.ValidationError("title is required")
		if not data.questions:
			raise errors.ValidationError("a quiz needs at least one question")
		for i, q in enumerate(data.questions, start=1):
			if q.correct_answer not in q.options:
				raise errors.ValidationError(f"question {i}: correctAnswer must match one of its options")
		quiz = Quiz(id=new_id(), title=title, questions=data.questions, retake_allowed=data.retake_allowed)
		classroom.quizzes.append(quiz)
		self.classrooms.save(classroom)
		logger.info("quiz %s added to classroom %s", quiz.id, classroom.id)
		return classroom

	def add_assignment(self, user: User, classroom_id: str, data: AssignmentCreate) -> Classroom:
		classroom = self._load_owned(user, classroom_id)
		title = data.title.strip()
		if not title:
			raise errors.ValidationError("title is required")
		assignment = Assignment(id=new_id(), title=title, description=data.description)
		classroom.assignments.append(assignment)
		self.classrooms.save(classroom)
		logger.info("assignment %s added to classroom %s", assignment.id, classroom.id)
		return classroom

	def add_syllabus_item(self, user: User, classroom_id: str, topic: str) -> Classroom:
		classroom = self._load_owned(user, classroom_id)
		topic = topic.strip()
		if not topic:
			raise errors.ValidationError("topic is required")
		classroom.course.syllabus.append(SyllabusItem(id=new_id(), topic=topic))
		self.classrooms.save(classroom)
		return classroom

	def set_syllabus_item_completed(self, user: User, classroom_id: str, item_id: str, completed: bool) -> Classroom:
		classroom = self._load_owned(user, classroom_id)
		item = next((s for s in classroom.course.syllabus if s.id == item_id), None)
		if item is None:
			raise errors.NotFound("Syllabus item not found")
		item.completed = completed
		self.classrooms.save(classroom)
		return classroom

	# ---- submissions & grading ----

	def submit_quiz(self, user: User, classroom_id: str, quiz_id: str, answers: List[str]) -> Classroom:
		classroom = self._load_enrolled(user, classroom_id)
		quiz = classroom.find_quiz(quiz_id)
		if quiz is None:
			raise errors.NotFound("Quiz not found")
		if len(answers) > len(quiz.questions):
			raise errors.ValidationError("more answers than questions")
		if self.enforce_retake and not quiz.retake_allowed and any(s.ward_id == user.id for s in quiz.submissions):
			raise errors.Conflict("Retakes are not allowed for this quiz")
		submission = WardSubmission(
			ward_id=user.id,
			score=score_answers(quiz, answers),
			answers=list(answers),
			attempt=next_attempt(quiz, user.id, per_ward=self.attempts_per_ward),
		)
		quiz.submissions.append(submission)
		self.classrooms.save(classroom)
		logger.info(
			"ward %s submitted quiz %s attempt %d score %.2f",
			user.id, quiz.id, submission.attempt, submission.score,
		)
		return classroom

	def submit_assignment(self, user: User, classroom_id: str, assignment_id: str, content: str) -> Classroom:
		classroom = self._load_enrolled(user, classroom_id)
		assignment = classroom.find_assignment(assignment_id)
		if assignment is None:
			raise errors.NotFound("Assignment not found")
		existing = next((s for s in assignment.submissions if s.ward_id == user.id), None)
		if existing is not None:
			# grade and feedback survive a resubmission
			existing.content = content
		else:
			assignment.submissions.append(AssignmentSubmission(ward_id=user.id, content=content))
		self.classrooms.save(classroom)
		logger.info("ward %s submitted assignment %s", user.id, assignment.id)
		return classroom

	def grade_assignment(
		self,
		user: User,
		classroom_id: str,
		assignment_id: str,
		ward_id: str,
		grade: float,
		feedback: Optional[str],
	) -> Classroom:
		classroom = self._load_owned(user, classroom_id)
		assignment = classroom.find_assignment(assignment_id)
		if assignment is None:
			raise errors.NotFound("Assignment not found")
		submission = next((s for s in assignment.submissions if s.ward_id == ward_id), None)
		if submission is None:
			raise errors.NotFound("Submission not found")
		if not 0 <= grade <= 100:
			raise errors.ValidationError("grade must be between 0 and 100")
		submission.grade = grade
		submission.feedback = feedback
		self.classrooms.save(classroom)
		logger.info("assignment %s graded for ward %s", assignment.id, ward_id)
		return classroom

	def record_attendance(self, user: User, classroom_id: str, date: str, statuses: List[AttendanceStatus]) -> Classroom:
		classroom = self._load_owned(user, classroom_id)
		record = next((r for r in classroom.attendance if r.date == date), None)
		if record is not None:
			record.statuses = list(statuses)
		else:
			classroom.attendance.append(AttendanceRecord(date=date, statuses=list(statuses)))
		self.classrooms.save(classroom)
		logger.info("attendance for %s recorded in classroom %s", date, classroom.id)
		return classroom

	# ---- quiz reporting ----

	def leaderboard(self, user: User, classroom_id: str, quiz_id: str) -> List[LeaderboardEntry]:
		classroom = self.get_classroom(user, classroom_id)
		quiz = classroom.find_quiz(quiz_id)
		if quiz is None:
			raise errors.NotFound("Quiz not found")
		best: Dict[str, WardSubmission] = {}
		for sub in quiz.submissions:
			current = best.get(sub.ward_id)
			if current is None or sub.score > current.score:
				best[sub.ward_id] = sub
		ranked = sorted(best.values(), key=lambda s: (-s.score, s.attempt))
		names = {u.id: u.name for u in self.users.list_by_ids(list(best))}
		return [
			LeaderboardEntry(
				rank=i,
				ward_id=sub.ward_id,
				ward_name=names.get(sub.ward_id, "Unknown Ward"),
				score=sub.score,
				attempt=sub.attempt,
			)
			for i, sub in enumerate(ranked, start=1)
		]

	def quiz_analytics(self, user: User, classroom_id: str, quiz_id: str) -> QuizAnalytics:
		classroom = self._load_owned(user, classroom_id)
		quiz = classroom.find_quiz(quiz_id)
		if quiz is None:
			raise errors.NotFound("Quiz not found")
		subs = quiz.submissions
		participants = {s.ward_id for s in subs}
		enrolled = len(classroom.ward_ids)
		participation = round(len(participants) / enrolled * 100, 2) if enrolled else 0.0
		average = round(sum(s.score for s in subs) / len(subs), 2) if subs else 0.0
		difficulty = [
			QuestionDifficulty(
				question=q.question,
				incorrect_count=sum(
					1 for s in subs if i >= len(s.answers) or s.answers[i] != q.correct_answer
				),
			)
			for i, q in enumerate(quiz.questions)
		]
		difficulty.sort(key=lambda d: d.incorrect_count, reverse=True)
		return QuizAnalytics(
			quiz_id=quiz.id,
			title=quiz.title,
			participation_rate=participation,
			average_score=average,
			question_difficulty=difficulty,
		)
