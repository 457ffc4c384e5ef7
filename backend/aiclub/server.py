"""Run the API with uvicorn on `SERVER_ADDRESS`."""

import uvicorn

from .config import settings


def run():
    host, _, port = settings.SERVER_ADDRESS.rpartition(":")
    uvicorn.run("aiclub.main:app", host=host, port=int(port), log_level="info")


if __name__ == "__main__":
    run()
