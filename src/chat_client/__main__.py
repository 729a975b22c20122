"""Entrypoint: python -m chat_client"""
from __future__ import annotations

import asyncio
import logging

from chat_client.app import create_controller
from chat_client.config import settings
from chat_client.presentation.console import run_console


def main() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    async def _run() -> None:
        await run_console(await create_controller(settings))

    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
