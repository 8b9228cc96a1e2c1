"""
LunchMate 后端服务 - 主应用入口
家庭厨师每日菜单与顾客订餐

主要功能模块：
- 厨师每日菜单（三道菜位，草稿/发布/关闭）
- 顾客下单、改单、截单前取消
- 厨师订单明细、按日汇总与状态推进
- 顾客周视图
- 操作日志记录

技术栈：FastAPI + DuckDB + JWT认证
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from .api import api_router
from .config import Settings, settings
from .core.database import db_manager
from .core.error_handler import (
    application_error_handler,
    general_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from .core.exceptions import BaseApplicationError, DatabaseError

logger = logging.getLogger(__name__)


def configure_logging(app_settings: Settings):
    """按配置初始化根日志"""
    handlers = [logging.StreamHandler()]
    if app_settings.log_file:
        handlers.append(logging.FileHandler(app_settings.log_file, encoding="utf-8"))

    logging.basicConfig(
        level=getattr(logging, app_settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        handlers=handlers,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    try:
        db_manager.init_database()
    except DatabaseError as e:
        # 不让应用启动失败，首次请求时会重试连接
        logger.error("Database initialization failed: %s", e)

    yield

    db_manager.close()


def create_app(app_settings: Settings = None) -> FastAPI:
    """创建FastAPI应用"""
    app_settings = app_settings or settings
    configure_logging(app_settings)

    app = FastAPI(
        title=app_settings.api_title,
        version=app_settings.api_version,
        description="LunchMate menu-day and order lifecycle API",
        debug=app_settings.debug,
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 注册异常处理器
    app.add_exception_handler(BaseApplicationError, application_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    # 注册路由
    app.include_router(api_router, prefix=app_settings.api_prefix)

    @app.get("/health")
    async def health_check():
        try:
            db_manager.get_connection()
            return {
                "status": "healthy",
                "version": app_settings.api_version,
                "database": "connected"
            }
        except DatabaseError as e:
            return {
                "status": "unhealthy",
                "version": app_settings.api_version,
                "database": f"error: {e}"
            }

    @app.get("/")
    async def root():
        return {
            "name": app_settings.api_title,
            "version": app_settings.api_version,
            "description": "LunchMate menu-day and order lifecycle API"
        }

    return app


# 应用实例
app = create_app()
