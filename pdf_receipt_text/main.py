"""Application entry point for the receipt PDF text API server."""

import uvicorn

from pdf_receipt_text.api.app import app
from pdf_receipt_text.utils.config import load_config
from pdf_receipt_text.utils.logger import setup_logging


def main() -> None:
    """Start the FastAPI application server."""
    config = load_config()
    setup_logging(config.log_level)
    uvicorn.run(app, host=config.server.host, port=config.server.port)


if __name__ == "__main__":
    main()
