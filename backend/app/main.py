# Tutoring booking backend entrypoint: booking, points ledger and leaderboard.

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.app.api import agenda, auth, booking, leaderboard, points
from backend.app.core.dev_seed import ensure_default_dev_admin
from backend.app.core.settings import get_settings
from backend.app.db.base import Base
from backend.app.db.session import SessionLocal, engine

settings = get_settings()
app = FastAPI(title=settings.app_name, version=settings.api_version)

origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(booking.router)
app.include_router(points.router)
app.include_router(leaderboard.router)
app.include_router(agenda.router)


@app.get("/")
def read_root():
    return {"app": "Tutoring booking backend", "status": "ok"}


@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.on_event("startup")
def prepare_database():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        ensure_default_dev_admin(db)
    finally:
        db.close()
