"""
Lights Agent - Main Entry Point.

Loads configuration, builds the provider, capability registry and
conversation driver, and runs the interactive session until end of input.

Exit codes:
    0: session ended normally (end of input).
    1: the provider failed; the session was aborted.
    2: configuration is missing or invalid; no session was started.
"""

import argparse
import asyncio
import logging
import sys

from lights_agent.capabilities.registry import CapabilityRegistry
from lights_agent.config import ConfigurationError, Settings, load_settings
from lights_agent.conversation.driver import ConversationDriver
from lights_agent.conversation.loop import FunctionCallingLoop
from lights_agent.conversation.providers import ProviderError, build_provider
from lights_agent.plugins.lights import LightsPlugin

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_PROVIDER_ERROR = 1
EXIT_CONFIG_ERROR = 2


def configure_logging(level: str) -> None:
    """Send log records to stderr so they stay out of the chat transcript."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def build_registry() -> CapabilityRegistry:
    registry = CapabilityRegistry()
    LightsPlugin().register(registry)
    return registry


def build_driver(settings: Settings) -> ConversationDriver:
    """Construct the provider, registry and driver from *settings*."""
    provider = build_provider(settings)
    loop = FunctionCallingLoop(
        provider=provider,
        max_iterations=settings.max_iterations,
        system_prompt=settings.system_prompt,
    )
    return ConversationDriver(loop=loop, registry=build_registry())


async def main(settings: Settings) -> int:
    """Run one interactive session and return the process exit code."""
    driver = build_driver(settings)
    logger.info(
        "Starting chat with model %s (%s)", settings.deployment_name, settings.api_flavor
    )
    try:
        return await driver.run()
    except ProviderError as exc:
        logger.error("Provider error, ending session: %s", exc)
        return EXIT_PROVIDER_ERROR


def cli_main(argv: list[str] | None = None) -> int:
    """Entry point for the lights-agent console script."""
    parser = argparse.ArgumentParser(
        description="Chat with an assistant that can list and switch your lights"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging (provider requests and capability calls)",
    )
    parser.add_argument(
        "--env-file",
        type=str,
        default=".env",
        help="Dotenv file to read configuration from (default: .env)",
    )
    parser.add_argument(
        "--system-prompt",
        type=str,
        default=None,
        help="System prompt prepended to every request",
    )
    args = parser.parse_args(argv)

    try:
        settings = load_settings(env_file=args.env_file)
    except ConfigurationError as exc:
        configure_logging("DEBUG" if args.debug else "INFO")
        logger.error("Configuration error: %s", exc)
        return EXIT_CONFIG_ERROR

    if args.debug:
        settings.log_level = "DEBUG"
    if args.system_prompt is not None:
        settings.system_prompt = args.system_prompt

    configure_logging(settings.log_level)
    return asyncio.run(main(settings))


if __name__ == "__main__":
    sys.exit(cli_main())
