"""Run the SFU dashboard backend: python3 -m sfudash"""

import uvicorn

from sfudash.config import settings


def main() -> None:
    uvicorn.run("sfudash.api.app:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
