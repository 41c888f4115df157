import uvicorn

from app.core.config import get_settings
from app.core.logging import configure_logging
from . import create_app

settings = get_settings()
configure_logging(settings.LOG_LEVEL)
app = create_app(settings)


def run() -> None:
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_config=None)


if __name__ == "__main__":
    run()
