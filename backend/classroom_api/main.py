from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .db import engine, init_db
from .errors import ClassroomAPIError
from .logging_config import configure_logging
from .settings import settings
from .routers import health, auth, classrooms, ai

logger = configure_logging()

app = FastAPI(title="Classroom API")

app.add_middleware(
	CORSMiddleware,
	allow_origins=settings.cors_origin_list,
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(auth.router)
app.include_router(classrooms.router)
app.include_router(ai.router)


@app.exception_handler(ClassroomAPIError)
async def classroom_error_handler(request: Request, exc: ClassroomAPIError):
	if exc.status_code >= 500:
		logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
	return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.on_event("startup")
async def startup_event():
	init_db()
	logger.info("database ready at %s", engine.url.render_as_string(hide_password=True))


if __name__ == "__main__":
	import os
	import uvicorn
	uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", 8000)))
