import os

import uvicorn

from mailbrief.config import Config
from mailbrief.utils.logger import configure_logging


def main():
    configure_logging(Config.LOG_FORMAT, Config.LOG_LEVEL)
    uvicorn.run(
        "mailbrief.api.service:sio_app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        log_config=None,
    )


if __name__ == "__main__":
    main()
