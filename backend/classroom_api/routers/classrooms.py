from __future__ import annotations
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..schemas import (
	ApproveJoinRequest,
	AssignmentCreate,
	AssignmentSubmitRequest,
	AttendanceRequest,
	Classroom,
	CreateClassroomRequest,
	GradeRequest,
	InitialData,
	JoinClassroomRequest,
	LeaderboardEntry,
	QuizAnalytics,
	QuizCreate,
	QuizSubmitRequest,
	SyllabusItemCreate,
	SyllabusItemUpdate,
	User,
)
from ..service import ClassroomService
from .auth import get_current_user

router = APIRouter(prefix="/classrooms", tags=["classrooms"])


def get_service(db: Session = Depends(get_db)) -> ClassroomService:
	return ClassroomService(db)


@router.get("/initial-data", response_model=InitialData)
def initial_data(user: User = Depends(get_current_user), svc: ClassroomService = Depends(get_service)):
	return svc.initial_data(user)


@router.post("", response_model=Classroom, status_code=201)
def create_classroom(
	req: CreateClassroomRequest,
	user: User = Depends(get_current_user),
	svc: ClassroomService = Depends(get_service),
):
	return svc.create_classroom(user, req.name, req.description)


@router.post("/join", response_model=Classroom)
def join_classroom(
	req: JoinClassroomRequest,
	user: User = Depends(get_current_user),
	svc: ClassroomService = Depends(get_service),
):
	return svc.request_join(user, req.code)


@router.get("/{classroom_id}", response_model=Classroom)
def get_classroom(classroom_id: str, user: User = Depends(get_current_user), svc: ClassroomService = Depends(get_service)):
	return svc.get_classroom(user, classroom_id)


@router.post("/{classroom_id}/approve", response_model=Classroom)
def approve_join(
	classroom_id: str,
	req: ApproveJoinRequest,
	user: User = Depends(get_current_user),
	svc: ClassroomService = Depends(get_service),
):
	return svc.approve_join(user, classroom_id, req.ward_id)


@router.post("/{classroom_id}/quizzes", response_model=Classroom, status_code=201)
def add_quiz(
	classroom_id: str,
	req: QuizCreate,
	user: User = Depends(get_current_user),
	svc: ClassroomService = Depends(get_service),
):
	return svc.add_quiz(user, classroom_id, req)


@router.post("/{classroom_id}/quizzes/{quiz_id}/submit", response_model=Classroom)
def submit_quiz(
	classroom_id: str,
	quiz_id: str,
	req: QuizSubmitRequest,
	user: User = Depends(get_current_user),
	svc: ClassroomService = Depends(get_service),
):
	return svc.submit_quiz(user, classroom_id, quiz_id, req.answers)


@router.get("/{classroom_id}/quizzes/{quiz_id}/leaderboard", response_model=List[LeaderboardEntry])
def quiz_leaderboard(
	classroom_id: str,
	quiz_id: str,
	user: User = Depends(get_current_user),
	svc: ClassroomService = Depends(get_service),
):
	return svc.leaderboard(user, classroom_id, quiz_id)


@router.get("/{classroom_id}/quizzes/{quiz_id}/analytics", response_model=QuizAnalytics)
def quiz_analytics(
	classroom_id: str,
	quiz_id: str,
	user: User = Depends(get_current_user),
	svc: ClassroomService = Depends(get_service),
):
	return svc.quiz_analytics(user, classroom_id, quiz_id)


@router.post("/{classroom_id}/assignments", response_model=Classroom, status_code=201)
def add_assignment(
	classroom_id: str,
	req: AssignmentCreate,
	user: User = Depends(get_current_user),
	svc: ClassroomService = Depends(get_service),
):
	return svc.add_assignment(user, classroom_id, req)


@router.post("/{classroom_id}/assignments/{assignment_id}/submit", response_model=Classroom)
def submit_assignment(
	classroom_id: str,
	assignment_id: str,
	req: AssignmentSubmitRequest,
	user: User = Depends(get_current_user),
	svc: ClassroomService = Depends(get_service),
):
	return svc.submit_assignment(user, classroom_id, assignment_id, req.content)


@router.post("/{classroom_id}/assignments/{assignment_id}/grade", response_model=Classroom)
def grade_assignment(
	classroom_id: str,
	assignment_id: str,
	req: GradeRequest,
	user: User = Depends(get_current_user),
	svc: ClassroomService = Depends(get_service),
):
	return svc.grade_assignment(user, classroom_id, assignment_id, req.ward_id, req.grade, req.feedback)


@router.post("/{classroom_id}/attendance", response_model=Classroom)
def record_attendance(
	classroom_id: str,
	req: AttendanceRequest,
	user: User = Depends(get_current_user),
	svc: ClassroomService = Depends(get_service),
):
	return svc.record_attendance(user, classroom_id, req.date.isoformat(), req.statuses)


@router.post("/{classroom_id}/syllabus", response_model=Classroom, status_code=201)
def add_syllabus_item(
	classroom_id: str,
	req: SyllabusItemCreate,
	user: User = Depends(get_current_user),
	svc: ClassroomService = Depends(get_service),
):
	return svc.add_syllabus_item(user, classroom_id, req.topic)


@router.patch("/{classroom_id}/syllabus/{item_id}", response_model=Classroom)
def update_syllabus_item(
	classroom_id: str,
	item_id: str,
	req: SyllabusItemUpdate,
	user: User = Depends(get_current_user),
	svc: ClassroomService = Depends(get_service),
):
	return svc.set_syllabus_item_completed(user, classroom_id, item_id, req.completed)
