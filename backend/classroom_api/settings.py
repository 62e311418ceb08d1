from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
	gemini_api_key: str | None = Field(default=None, validation_alias="GEMINI_API_KEY")
	# Provider can be "vertex" (Vertex AI Express) or "ai_studio" (Generative Language API)
	gemini_provider: str = Field(default="ai_studio", validation_alias="GEMINI_PROVIDER")
	gemini_model: str = Field(default="gemini-2.5-flash", validation_alias="GEMINI_MODEL")
	gemini_timeout_seconds: float = Field(default=30.0, validation_alias="GEMINI_TIMEOUT_SECONDS")
	# Vertex configuration
	vertex_region: str = Field(default="us-central1", validation_alias="GEMINI_VERTEX_REGION")
	vertex_project: str | None = Field(default=None, validation_alias="GEMINI_VERTEX_PROJECT")
	# Per-user cap on relayed AI calls
	ai_requests_limit: int = Field(default=1000, validation_alias="AI_REQUESTS_LIMIT")

	# Auth configuration
	jwt_secret_key: str = Field(default="change-me", validation_alias="JWT_SECRET_KEY")
	jwt_algorithm: str = Field(default="HS256", validation_alias="JWT_ALGORITHM")
	access_token_expire_minutes: int = Field(default=30 * 24 * 60, validation_alias="ACCESS_TOKEN_EXPIRE_MINUTES")
	bcrypt_rounds: int = Field(default=12, validation_alias="BCRYPT_ROUNDS")

	# Classroom behaviour
	join_code_max_attempts: int = Field(default=10, validation_alias="JOIN_CODE_MAX_ATTEMPTS")
	# False numbers attempts across every ward of a quiz, True numbers them per ward
	quiz_attempts_per_ward: bool = Field(default=False, validation_alias="QUIZ_ATTEMPTS_PER_WARD")
	enforce_quiz_retake: bool = Field(default=False, validation_alias="ENFORCE_QUIZ_RETAKE")

	# HTTP
	cors_origins: str = Field(default="*", validation_alias="CORS_ORIGINS")
	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

	# Database
	database_url: str | None = Field(default=None, validation_alias="DATABASE_URL")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore")

	@property
	def cors_origin_list(self) -> list[str]:
		return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

settings = Settings()
