"""Application entry point for the CueCannon API server."""

import uvicorn

from cuecannon.api.app import app
from cuecannon.utils.config import load_config
from cuecannon.utils.logger import setup_logging


def main() -> None:
    """Start the FastAPI application server."""
    config = load_config()
    setup_logging(config.log_level)
    uvicorn.run(app, host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
