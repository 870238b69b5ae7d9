import logging
import sys

from snackbase.client import SnackBaseClient
from snackbase.config import SNACKBASE_LOG_LEVEL
from snackbase.errors import ConfigurationError
from snackbase.mcp.server import create_mcp_server

logger = logging.getLogger("snackbase.mcp")


def setup_logging() -> None:
    # stdout carries the MCP protocol, so logs go to stderr
    logging.basicConfig(
        stream=sys.stderr,
        level=SNACKBASE_LOG_LEVEL.upper(),
        format="%(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def main():
    setup_logging()
    try:
        client = SnackBaseClient.from_env()
    except ConfigurationError as e:
        logger.error("Startup error: %s", e)
        sys.exit(1)
    if not client.config.api_key:
        logger.warning("SNACKBASE_API_KEY is not set; tools will need snackbase_login first")

    mcp = create_mcp_server(client)
    logger.info("SnackBase MCP server running on stdio against %s", client.config.base_url)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
