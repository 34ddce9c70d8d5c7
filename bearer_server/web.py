from gunicorn.app.base import BaseApplication
from gunicorn.util import import_app

DEFAULT_APP_URI = "bearer_server.main:app"
UVICORN_WORKER_CLASS = "uvicorn.workers.UvicornWorker"


class GunicornApplication(BaseApplication):
    """Gunicorn application running the token server with uvicorn workers."""

    def __init__(self, app_uri: str = DEFAULT_APP_URI, options: dict | None = None):
        self.app_uri = app_uri
        self.options = {"worker_class": UVICORN_WORKER_CLASS, **(options or {})}
        super().__init__()

    def load_config(self):
        for key, value in self.options.items():
            if key in self.cfg.settings and value is not None:
                self.cfg.set(key.lower(), value)

    def load(self):
        return import_app(self.app_uri)
