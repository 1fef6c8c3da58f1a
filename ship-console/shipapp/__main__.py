import uvicorn

from .config import CONFIG


def main() -> None:
    uvicorn.run("shipapp.app:app", host=CONFIG.host, port=CONFIG.port, log_level=CONFIG.log_level.lower())


if __name__ == "__main__":
    main()
