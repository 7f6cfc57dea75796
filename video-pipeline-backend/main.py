import os
import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import CORS_ORIGINS, MEDIA_DIR, WORK_DIR, STITCH_DISPATCH, STORAGE_BACKEND
from database import engine, Base
from routers import jobs, tools
from schemas import HealthResponse

# --------------------------------------------------------------------------
# --- Configuration & Setup ---
# --------------------------------------------------------------------------

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")

os.makedirs(MEDIA_DIR, exist_ok=True)
os.makedirs(WORK_DIR, exist_ok=True)
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="AI Video Pipeline",
    description="Turns a script into a narrated video using LLM, TTS, image and video generation APIs."
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(jobs.router)
app.include_router(tools.router)


@app.get("/", response_model=HealthResponse)
def read_root():
    return HealthResponse(
        status="🚀 AI Video Pipeline is running!",
        service="video-pipeline-backend",
        details={"stitch_dispatch": STITCH_DISPATCH, "storage": STORAGE_BACKEND},
    )
