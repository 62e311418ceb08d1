"""Domain errors raised by the classroom service and the AI relay.

Each error carries the HTTP status it maps to; ``main`` installs a handler
that renders any of them as ``{"detail": message}``.
"""
from __future__ import annotations


class ClassroomAPIError(Exception):
	status_code: int = 500

	def __init__(self, message: str) -> None:
		super().__init__(message)
		self.message = message


class Unauthorized(ClassroomAPIError):
	status_code = 401


class Forbidden(ClassroomAPIError):
	status_code = 403


class NotFound(ClassroomAPIError):
	status_code = 404


class Conflict(ClassroomAPIError):
	status_code = 409


class ValidationError(ClassroomAPIError):
	status_code = 422


class QuotaExceeded(ClassroomAPIError):
	status_code = 429


class AIServiceError(ClassroomAPIError):
	status_code = 502
