import logging

import uvicorn

from shorturls.core.config import get_settings


def main() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    uvicorn.run("shorturls.main:create_app", factory=True, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
