import logging
import os
from pathlib import Path

# 可选：仅当 TASK_PLANNING_LOAD_DOTENV=1 时从仓库根加载 .env（生产建议由部署脚本注入环境变量）
if os.environ.get("TASK_PLANNING_LOAD_DOTENV", "").strip() == "1":
    _env_file = Path(__file__).resolve().parent.parent.parent.parent / ".env"
    if _env_file.exists():
        from dotenv import load_dotenv
        load_dotenv(_env_file)

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.planning import router as planning_router
from app.api.tasks import router as tasks_router
from app.db import init_db as init_core_db
from app.settings import Settings

logging.basicConfig(
    level=os.getenv("TASK_PLANNING_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# 初始化数据库（tasks 表 + planning 表）
init_core_db()

settings = Settings.from_env()

app = FastAPI(title=settings.app_name)
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(tasks_router, prefix="/tasks", tags=["tasks"])
app.include_router(planning_router, prefix="/tasks", tags=["planning"])


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}
