"""Server Runner — uvicorn with the graceful-shutdown state machine wired in.

Invariants:
    - SIGINT/SIGTERM → uvicorn stops accepting, drains, runs lifespan shutdown (pool close)
    - The same path is taken on an uncaught asyncio or thread fault
    - ShutdownCoordinator's deadline forces exit code 1 if draining hangs
    - Exit code 0 once the coordinator reaches CLOSED
"""

import asyncio
import logging
import signal
import sys
import threading

import uvicorn

from restaurant_api.config import get_settings
from restaurant_api.core.shutdown import ShutdownCoordinator
from restaurant_api.infrastructure.observability import setup_logging
from restaurant_api.main import create_app

logger = logging.getLogger(__name__)


class RestaurantServer(uvicorn.Server):
    """uvicorn.Server that reports signals and loop faults to a ShutdownCoordinator."""

    def __init__(self, config: uvicorn.Config, coordinator: ShutdownCoordinator):
        super().__init__(config)
        self.coordinator = coordinator
        coordinator.attach(self._stop_accepting)

    def _stop_accepting(self) -> None:
        self.should_exit = True

    async def serve(self, sockets=None) -> None:
        asyncio.get_running_loop().set_exception_handler(self.coordinator.handle_loop_exception)
        await super().serve(sockets=sockets)

    def handle_exit(self, sig: int, frame) -> None:
        super().handle_exit(sig, frame)
        try:
            reason = signal.Signals(sig).name
        except ValueError:
            reason = f"signal {sig}"
        self.coordinator.begin(reason)


def main() -> None:
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)

    coordinator = ShutdownCoordinator(settings.shutdown_timeout_seconds)
    threading.excepthook = coordinator.handle_thread_exception

    app = create_app(settings, shutdown=coordinator)
    config = uvicorn.Config(
        app,
        host=settings.host,
        port=settings.port,
        lifespan="on",
        proxy_headers=False,
        access_log=False,
        log_config=None,
    )
    server = RestaurantServer(config, coordinator)
    server.run()
    if not server.started:
        sys.exit(1)
    sys.exit(coordinator.exit_code)


if __name__ == "__main__":
    main()
