"""python -m lunchmate 启动开发服务器"""

import uvicorn

from .config import get_settings

if __name__ == "__main__":
    app_settings = get_settings()
    uvicorn.run(
        "lunchmate.app:app",
        host=app_settings.host,
        port=app_settings.port,
        reload=app_settings.debug,
        log_level=app_settings.log_level.lower(),
    )
