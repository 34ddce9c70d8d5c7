import os
import sys

import uvicorn

from bearer_server.core.config import settings

APP_URI = "bearer_server.main:app"


def main():
    is_linux = sys.platform.startswith("linux")

    if settings.debug:
        os.environ["PYTHONASYNCIODEBUG"] = "1"
        uvicorn.run(
            app=APP_URI,
            host=settings.backend_host,
            port=settings.backend_port,
            reload=settings.reload_uvicorn,
            workers=settings.workers_count,
            log_level="debug",
        )
    elif is_linux:
        from bearer_server.web import GunicornApplication

        options = {
            "bind": f"{settings.backend_host}:{settings.backend_port}",
            "workers": settings.workers_count,
        }
        GunicornApplication(APP_URI, options).run()
    else:
        uvicorn.run(
            app=APP_URI,
            host=settings.backend_host,
            port=settings.backend_port,
            reload=settings.reload_uvicorn,
            workers=settings.workers_count,
        )


if __name__ == "__main__":
    main()
