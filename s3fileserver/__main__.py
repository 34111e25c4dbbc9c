"""
S3 FileServer
"""

import argparse
import asyncio
import inspect
import logging
import sys
from pathlib import Path

import uvicorn
from uvicorn.config import LOGGING_CONFIG

from s3fileserver.config import Environment, get_settings, validate_settings
from s3fileserver.connections import fileserver_connections
from s3fileserver.errors import ConfigurationError
from s3fileserver.log import setup_logging


def run(args):
    settings = get_settings()
    port = int(args.port or settings.port)
    logging.info(f"Starting S3 FileServer at {settings.host}:{port}, debug={not args.nodebug}")
    logging.info(f"Serving bucket {settings.s3_bucket_name} at {settings.s3_endpoint or settings.s3_region}")
    logging.info(f"API URL: {settings.api_url}")
    if warning := validate_settings():
        logging.warning(warning)

    log_config = "logging.yml" if Path("logging.yml").exists() else LOGGING_CONFIG
    if settings.environment == Environment.production and log_config is LOGGING_CONFIG:
        log_config = None  # keep the json logging set up in main()
    uvicorn.run(
        "s3fileserver.api:create_app",
        factory=True,
        host=settings.host,
        reload=not args.nodebug,
        port=port,
        log_config=log_config,
    )


def config_fileserver(_args):
    # Echo the settings in .env format
    for fieldname, value in get_settings().model_dump().items():
        if fieldname == "env_file":
            continue
        if value is None:
            print(f"#{fieldname.upper()}=")
        else:
            print(f"{fieldname.upper()}={value.value if hasattr(value, 'value') else value}")


async def clear_cache(_args):
    async with fileserver_connections(get_settings()) as context:
        if not context.cache.enabled:
            logging.warning("No REDIS_URL configured, nothing to clear")
            return
        await context.cache.clear()
        logging.info("Cleared all cached directory listings")


def main():
    parser = argparse.ArgumentParser(description=__doc__, prog="python -m s3fileserver")

    subparsers = parser.add_subparsers(dest="action", title="action", help="Action to perform:", required=True)
    p = subparsers.add_parser("run", help="Run the file server")
    p.add_argument(
        "--no-debug",
        action="store_true",
        dest="nodebug",
        help="Disable debug mode (auto reload)",
    )
    p.add_argument("-p", "--port", help="Port (default: PORT setting, 3001)")
    p.set_defaults(func=run)

    p = subparsers.add_parser("config", help="Print the current settings in .env format")
    p.set_defaults(func=config_fileserver)

    p = subparsers.add_parser("clear-cache", help="Remove all cached directory listings")
    p.set_defaults(func=clear_cache)

    args = parser.parse_args()

    try:
        settings = get_settings()
    except ConfigurationError as e:
        logging.basicConfig(level=logging.INFO)
        logging.error(str(e))
        sys.exit(1)
    setup_logging(settings.environment)

    if inspect.iscoroutinefunction(args.func):
        asyncio.run(args.func(args))
    else:
        args.func(args)


if __name__ == "__main__":
    main()
