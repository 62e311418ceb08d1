from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import ai_relay
from ..db import get_db
from ..errors import QuotaExceeded
from ..gemini_client import GeminiClient
from ..models import UserAccount
from ..schemas import (
	GenerateQuizRequest,
	GenerateQuizResponse,
	GenerateReviewRequest,
	GenerateReviewResponse,
	User,
)
from .auth import get_current_user

router = APIRouter(prefix="/ai", tags=["ai"])


async def get_gemini_client():
	client = GeminiClient()
	try:
		yield client
	finally:
		await client.aclose()


def enforce_ai_quota(user: User = Depends(get_current_user), db: Session = Depends(get_db)) -> User:
	row = db.get(UserAccount, user.id)
	if row:
		if row.ai_requests_used >= row.ai_requests_limit:
			raise QuotaExceeded("AI request limit reached")
		row.ai_requests_used += 1
		db.add(row)
		db.commit()
	return user


@router.post("/generate-quiz", response_model=GenerateQuizResponse)
async def generate_quiz(
	req: GenerateQuizRequest,
	user: User = Depends(enforce_ai_quota),
	client: GeminiClient = Depends(get_gemini_client),
):
	questions = await ai_relay.generate_quiz(client, req.text_content, req.num_questions)
	return GenerateQuizResponse(questions=questions)


@router.post("/generate-review", response_model=GenerateReviewResponse)
async def generate_review(
	req: GenerateReviewRequest,
	user: User = Depends(enforce_ai_quota),
	client: GeminiClient = Depends(get_gemini_client),
):
	review = await ai_relay.generate_review(client, req.questions, req.user_answers, req.score)
	return GenerateReviewResponse(review=review)
