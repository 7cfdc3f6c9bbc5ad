"""Storefront entrypoint.

Run with:
  python -m storefront
"""

import logging
import os

import uvicorn


def main() -> None:
    logging.basicConfig(
        level=os.getenv("STOREFRONT_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    host = os.getenv("STOREFRONT_HOST", "0.0.0.0")
    port = int(os.getenv("STOREFRONT_PORT", "8000"))
    reload = os.getenv("STOREFRONT_RELOAD", "false").lower() in {"1", "true", "yes", "y"}
    uvicorn.run("storefront.app:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    main()
