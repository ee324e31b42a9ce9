"""Entry point for the NATS gateway.

Usage:
    python -m natsbridge_server --user u --pass p --host nats.example --port 4222
    NATS_USER=u NATS_PASS=p NATS_HOST=nats.example NATS_PORT=4222 natsbridge
    natsbridge --test diagnostics.ping   # test mode: subscribe and acknowledge

Every flag falls back to an environment variable; see ``--help``.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys

import uvicorn

from natsbridge_bus.diagnostic import DiagnosticSubscriber
from natsbridge_bus.errors import StartupError
from natsbridge_bus.nats_client import NatsBusClient
from natsbridge_server.app import create_app
from natsbridge_server.config import SETTINGS, GatewayConfig, resolve_config
from natsbridge_server.logging_config import configure_logging

logger = logging.getLogger("natsbridge_server")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="natsbridge", description="HTTP to NATS gateway")
    for setting in SETTINGS:
        help_text = f"{setting.help} (env {setting.env})"
        if isinstance(setting.default, bool):
            parser.add_argument(setting.flag, dest=setting.name, action="store_true", help=help_text)
        else:
            parser.add_argument(setting.flag, dest=setting.name, default=None, help=help_text)
    return parser


async def serve(config: GatewayConfig) -> None:
    """Connect to the bus and serve HTTP until uvicorn shuts down."""
    bus = await NatsBusClient.connect(config.bus_url())
    app = create_app(
        bus,
        max_body_size=config.max_body_size,
        request_timeout=config.request_timeout,
        close_bus_on_shutdown=True,
    )
    server = uvicorn.Server(
        uvicorn.Config(
            app,
            host=config.listen_host,
            port=config.listen_port,
            log_config=None,
        )
    )
    logger.info(
        "Waiting for requests on port %d, URLs /topics/{topic} and /requests/{topic}",
        config.listen_port,
    )
    await server.serve()


async def run_diagnostic(config: GatewayConfig) -> signal.Signals:
    """Subscribe to the test topic until interrupted."""
    assert config.test_topic
    bus = await NatsBusClient.connect(config.bus_url())
    try:
        return await DiagnosticSubscriber(bus, config.test_topic).run_until_interrupted()
    finally:
        await bus.close()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = resolve_config(vars(args))
    except StartupError as e:
        print(f"Error reading config: {e}", file=sys.stderr)
        return 1

    configure_logging(config.log_level, json_format=config.log_json)

    try:
        if config.diagnostic_mode:
            sig = asyncio.run(run_diagnostic(config))
            logger.error("Signal received: %s", sig.name)
            return 128 + sig.value
        asyncio.run(serve(config))
    except StartupError as e:
        logger.critical("%s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
