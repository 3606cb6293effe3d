"""Main entry point for the tinytune terminal widget."""

import asyncio
import logging
import signal
import sys

from tinytune.constants import ServiceName
from tinytune.logging import configure_logging
from tinytune.widget.api_client import WidgetApiClient
from tinytune.widget.reconciler import ProgressReconciler
from tinytune.widget.renderer import TerminalRenderer
from tinytune.widget.runloop import WidgetRunLoop
from tinytune.widget.settings import WidgetSettings

logger = logging.getLogger(__name__)


def _register_shutdown_signals(loop: asyncio.AbstractEventLoop, shutdown_event: asyncio.Event) -> None:
    """Register signal handlers for graceful shutdown on both Unix and Windows."""

    def _signal_handler_sync(signum: int, _frame: object) -> None:
        logger.info("Shutdown signal received (signal %d)", signum)
        loop.call_soon_threadsafe(shutdown_event.set)

    if sys.platform != "win32":
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, shutdown_event.set)
    else:
        # loop.add_signal_handler is not supported on Windows
        signal.signal(signal.SIGTERM, _signal_handler_sync)
        signal.signal(signal.SIGINT, _signal_handler_sync)


async def main(settings: WidgetSettings | None = None) -> None:
    """Widget entry point with graceful shutdown."""
    settings = settings or WidgetSettings()
    if not settings.TINYTUNE_USER:
        raise SystemExit("TINYTUNE_USER must be set to the Spotify account id to display")

    api_client = WidgetApiClient(settings.TINYTUNE_BASE_URL, timeout=settings.REQUEST_TIMEOUT_SECONDS)
    reconciler = ProgressReconciler(
        lambda: api_client.get_now_playing(settings.TINYTUNE_USER),
        on_change=TerminalRenderer(),
        tick_interval=settings.TICK_INTERVAL_SECONDS,
    )
    shutdown_event = asyncio.Event()
    _register_shutdown_signals(asyncio.get_running_loop(), shutdown_event)

    try:
        await WidgetRunLoop(settings, reconciler).run(shutdown_event)
    except KeyboardInterrupt:
        logger.info("KeyboardInterrupt received, shutting down")
    finally:
        await api_client.close()
        logger.info("Widget shut down complete")


def run() -> None:
    """Console script entry point."""
    # Rendered lines own stdout.
    configure_logging(ServiceName.WIDGET, stream=sys.stderr)
    asyncio.run(main())


if __name__ == "__main__":
    run()
