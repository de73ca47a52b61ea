"""Application entry point for the viva portal server."""

from __future__ import annotations

from pathlib import Path

from viva_portal.constants.network_constants import DEFAULT_DATA_PATH, DEFAULT_HOST, DEFAULT_PORT
from viva_portal.core.document_store import JsonFileDocumentStore
from viva_portal.core.services.session_ticker import SessionTicker
from viva_portal.core.viva_manager import VivaManager
from viva_portal.server.api_server import start_api_server
from viva_portal.utils.logging_config import configure_logging


def main() -> None:
    """Initialize logging, load the store, start the viva clock and serve the API."""
    logger = configure_logging()
    logger.info("Starting viva portal…")

    store = JsonFileDocumentStore(Path(DEFAULT_DATA_PATH))
    viva_manager = VivaManager(store)
    ticker = SessionTicker(viva_manager.tick_all)
    ticker.start()

    server_thread = start_api_server(viva_manager=viva_manager, host=DEFAULT_HOST, port=DEFAULT_PORT)
    logger.info("Viva page available at http://%s:%d/?experiment=<id>&user=<id>", DEFAULT_HOST, DEFAULT_PORT)
    try:
        server_thread.join()
    except KeyboardInterrupt:
        logger.info("Shutting down viva portal")
    finally:
        ticker.stop(timeout=2.0)


if __name__ == "__main__":
    main()
