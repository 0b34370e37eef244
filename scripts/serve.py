"""Serve the dashboard API with uvicorn."""

import uvicorn

from src import config


def main():
    uvicorn.run("src.main:app", host=config.HOST, port=config.PORT)


if __name__ == "__main__":
    main()
