from __future__ import annotations
import json
import logging
import re
from typing import Any, Dict, List

from .errors import AIServiceError
from .gemini_client import GeminiClient
from .schemas import Question

logger = logging.getLogger(__name__)


# Gemini response schema (OpenAPI subset) for a list of quiz questions
QUIZ_RESPONSE_SCHEMA: Dict[str, Any] = {
	"type": "ARRAY",
	"items": {
		"type": "OBJECT",
		"properties": {
			"question": {"type": "STRING"},
			"options": {"type": "ARRAY", "items": {"type": "STRING"}},
			"correctAnswer": {"type": "STRING"},
		},
		"required": ["question", "options", "correctAnswer"],
	},
}


def build_quiz_prompt(text_content: str, num_questions: int) -> str:
	return (
		f"Based on the following text, generate a multiple-choice quiz with exactly {num_questions} questions. "
		"Each question should have 4 options. For each question, identify the single correct answer. "
		"Ensure the 'correctAnswer' field exactly matches one of the strings in the 'options' array. "
		f"Text: --- {text_content} ---"
	)


def incorrect_answers(questions: List[Question], user_answers: List[str]) -> List[Dict[str, str]]:
	"""Questions the ward got wrong, paired with what they answered ("" if unanswered)."""
	wrong = []
	for i, q in enumerate(questions):
		answer = user_answers[i] if i < len(user_answers) else ""
		if answer != q.correct_answer:
			wrong.append({"question": q.question, "correctAnswer": q.correct_answer, "userAnswer": answer})
	return wrong


def build_review_prompt(questions: List[Question], user_answers: List[str], score: float) -> str:
	wrong = incorrect_answers(questions, user_answers)
	if wrong:
		listing = "\n".join(
			f"- Question: \"{w['question']}\", Correct Answer: \"{w['correctAnswer']}\", Their Answer: \"{w['userAnswer']}\""
			for w in wrong
		)
	else:
		listing = "None. Great job!"
	return (
		f"A student has just completed a quiz. Their score was {score:.0f}%. "
		f"Here are the questions they answered incorrectly: {listing} "
		"Please provide a brief, constructive, and encouraging performance review (2-4 sentences)."
	)


def _extract_json(text: str) -> Any:
	try:
		return json.loads(text)
	except ValueError:
		pass
	code_block = re.search(r"```(?:json)?\s*([\s\S]*?)\s*```", text)
	if code_block:
		try:
			return json.loads(code_block.group(1))
		except ValueError:
			pass
	first = text.find("[")
	last = text.rfind("]")
	if first != -1 and last > first:
		try:
			return json.loads(text[first : last + 1])
		except ValueError:
			pass
	raise AIServiceError("AI service did not return valid JSON")


def parse_questions(raw: str) -> List[Question]:
	data = _extract_json(raw)
	if isinstance(data, dict) and isinstance(data.get("questions"), list):
		data = data["questions"]
	if not isinstance(data, list):
		raise AIServiceError("AI service did not return a list of questions")
	questions: List[Question] = []
	for i, item in enumerate(data, start=1):
		if not isinstance(item, dict):
			raise AIServiceError(f"Invalid question format for question {i}")
		text = item.get("question")
		options = item.get("options")
		answer = item.get("correctAnswer")
		if not isinstance(text, str) or not isinstance(options, list) or not isinstance(answer, str):
			raise AIServiceError(f"Invalid question format for question {i}")
		questions.append(Question(question=text.strip(), options=[str(o) for o in options], correct_answer=answer))
	return questions


async def generate_quiz(client: GeminiClient, text_content: str, num_questions: int) -> List[Question]:
	prompt = build_quiz_prompt(text_content, num_questions)
	raw = await client.generate(
		prompt,
		response_mime_type="application/json",
		response_schema=QUIZ_RESPONSE_SCHEMA,
	)
	questions = parse_questions(raw)
	logger.info("generated %d quiz questions (%d requested)", len(questions), num_questions)
	return questions


async def generate_review(client: GeminiClient, questions: List[Question], user_answers: List[str], score: float) -> str:
	prompt = build_review_prompt(questions, user_answers, score)
	text = await client.generate(prompt)
	return text.strip()
