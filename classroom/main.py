from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware

from classroom.config import configure_logging, settings
from classroom.routes import group_assignment, organization, session, user

configure_logging()

if not settings.SESSION_SECRET:
    raise RuntimeError("SESSION_SECRET is not set in environment variables")

# Create FastAPI app
app = FastAPI(title="Classroom API")

origins = [
    "http://localhost:5173"
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.SESSION_SECRET,
    session_cookie="classroom_session",
    https_only=settings.CLASSROOM_ENV == "production",
)

app.include_router(session.router)
app.include_router(user.router)
app.include_router(organization.router)
app.include_router(group_assignment.router)

@app.get("/ping")
def ping():
    return {"message": "pong"}
