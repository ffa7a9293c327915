"""devgate server entry point.

Start with::

    python -m devgate --config devgate.json --password-from-file ./password.txt
    # or
    devgate --auth-password secret123 --port 8000
"""

from __future__ import annotations

import argparse
import logging
import os
import sys

from fastapi import FastAPI

from devgate.api import create_app
from devgate.config import GatewayConfig
from devgate.credentials import resolve_credential
from devgate.discovery import ZeroconfDiscovery
from devgate.errors import ConfigError, PersistenceFailure
from devgate.state import SharedState

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="devgate", description="HTTP gateway for smart-home devices")
    parser.add_argument("--config", help="Path to the JSON config file (default: ./devgate.json)")
    parser.add_argument("--host", help="Address to bind (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, help="Port to listen on (default: 8000)")
    password = parser.add_mutually_exclusive_group()
    password.add_argument("--auth-password", help="Password clients log in with")
    password.add_argument("--password-from-file", help="Read the login password from this file")
    parser.add_argument("--sessions-file", help="Where issued sessions are stored")
    parser.add_argument(
        "--log-level",
        default=os.environ.get("DEVGATE_LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    return parser


def prepare(args: argparse.Namespace) -> tuple[GatewayConfig, FastAPI]:
    """Resolve configuration and build the app; raises on fatal config."""
    config = GatewayConfig.load(
        args.config,
        host=args.host,
        port=args.port,
        auth_password=args.auth_password,
        password_file=args.password_from_file,
        sessions_file=args.sessions_file,
    )
    # The command line picks one source; don't let the environment add a second.
    if args.auth_password is not None:
        config.password_file = None
    elif args.password_from_file is not None:
        config.auth_password = None

    credential = resolve_credential(config.auth_password, config.password_file)
    shared = SharedState.init(
        credential=credential,
        devices=config.build_devices(),
        sessions_file=config.sessions_file,
    )
    app = create_app(
        shared,
        discovery=ZeroconfDiscovery(config.discovery.service_type),
        cors_origins=config.cors_origins,
        discovery_timeout=config.discovery.timeout,
        connect_on_startup=True,
    )
    logger.info(
        "Loaded %d device(s) and %d session(s)", len(shared.devices), len(shared.sessions)
    )
    return config, app


def main(argv: list[str] | None = None) -> int:
    import uvicorn

    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config, app = prepare(args)
    except (ConfigError, PersistenceFailure) as e:
        logger.error("Cannot start devgate: %s", e)
        return 2

    logger.info("Launching server on %s:%d...", config.host, config.port)
    uvicorn.run(app, host=config.host, port=config.port, log_level=args.log_level.lower())
    return 0


if __name__ == "__main__":
    sys.exit(main())
