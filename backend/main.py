#!/usr/bin/env python3
"""
谁是卧底 - 后端主入口
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from app.core.config import settings
from app.core.errors import ErrorCode, GameError
from app.api import api_router
from app.core.database import init_db

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用启动时的初始化"""
    logger.info("🚀 启动%s后端服务...", settings.APP_NAME)
    await init_db()
    yield
    logger.info("👋 %s后端服务已停止", settings.APP_NAME)


app = FastAPI(
    title=settings.APP_NAME,
    description="谁是卧底多人房间与对局流程后端API",
    version=settings.VERSION,
    lifespan=lifespan,
)

# CORS设置
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 注册API路由
app.include_router(api_router, prefix="/api")


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """请求体格式错误统一按INVALID_INPUT返回"""
    error = GameError(ErrorCode.INVALID_INPUT, "请求参数格式错误")
    return JSONResponse(content=error.to_dict(), status_code=error.status_code)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("❌ 处理请求 %s 时出现未预期的错误", request.url.path)
    error = GameError(ErrorCode.DATABASE_ERROR, "服务器内部错误，请重试")
    return JSONResponse(content=error.to_dict(), status_code=error.status_code)


@app.get("/health")
def health_check():
    """健康检查端点"""
    return {"status": "healthy", "service": "who-is-spy"}


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
