"""Widget run loop — coarse polling of /now-playing feeding the progress reconciler."""

import asyncio
import logging

from tinytune.widget.reconciler import ProgressReconciler
from tinytune.widget.settings import WidgetSettings

logger = logging.getLogger(__name__)


class WidgetRunLoop:
    """Polls every ``POLL_INTERVAL_SECONDS`` until shutdown; the reconciler handles the rest."""

    def __init__(self, settings: WidgetSettings, reconciler: ProgressReconciler) -> None:
        self._settings = settings
        self._reconciler = reconciler

    async def run(self, shutdown_event: asyncio.Event) -> None:
        """Main loop: poll until shutdown_event is set, then stop the reconciler."""
        logger.info(
            "Widget run loop starting (user=%s, interval=%ds)",
            self._settings.TINYTUNE_USER,
            self._settings.POLL_INTERVAL_SECONDS,
        )

        try:
            while not shutdown_event.is_set():
                await self._reconciler.refetch()

                # Sleep in small increments so we can respond to shutdown quickly
                for _ in range(self._settings.POLL_INTERVAL_SECONDS):
                    if shutdown_event.is_set():
                        break
                    await asyncio.sleep(1)
        finally:
            await self._reconciler.aclose()

        logger.info("Widget run loop shutting down")
