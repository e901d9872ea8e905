"""
Health check server for keeper monitoring.

Exposes the keeper loop's last tick over HTTP.
"""

import asyncio

from aiohttp import web
from loguru import logger

from agentpay.services.keeper.scheduler import KeeperScheduler

# Global keeper reference for health checks
_keeper: KeeperScheduler | None = None


def set_keeper(keeper: KeeperScheduler | None) -> None:
    """
    Set the keeper instance for health checks.

    Args:
        keeper: KeeperScheduler to monitor (None to unregister)
    """
    global _keeper
    _keeper = keeper
    if keeper is not None:
        logger.info("Keeper registered for health checks")


async def health_handler(request: web.Request) -> web.Response:
    """
    Health check endpoint.

    Returns:
        JSON response with keeper status; 503 when the loop is stopped
        or has not finished a tick recently
    """
    if _keeper is None:
        return web.json_response(
            {
                "status": "unhealthy",
                "error": "Keeper not initialized",
            },
            status=503,
        )

    status = _keeper.status()
    if not _keeper.is_running:
        return web.json_response({"status": "stopped", **status}, status=503)
    if _keeper.is_stale():
        return web.json_response({"status": "stale", **status}, status=503)

    return web.json_response({"status": "healthy", **status})


async def readiness_handler(request: web.Request) -> web.Response:
    """
    Readiness check endpoint.

    Ready once the keeper loop is running.
    """
    if _keeper is None or not _keeper.is_running:
        return web.json_response(
            {
                "status": "not_ready",
                "ready": False,
            },
            status=503,
        )

    return web.json_response(
        {
            "status": "ready",
            "ready": True,
        }
    )


async def liveness_handler(request: web.Request) -> web.Response:
    """Liveness check endpoint."""
    return web.json_response(
        {
            "status": "alive",
            "alive": True,
        }
    )


def create_health_app() -> web.Application:
    """Build the aiohttp application with the health routes."""
    app = web.Application()
    app.router.add_get("/health", health_handler)
    app.router.add_get("/readiness", readiness_handler)
    app.router.add_get("/liveness", liveness_handler)
    return app


async def start_health_server(
    host: str = "0.0.0.0",
    port: int = 8081,
) -> tuple[web.AppRunner, web.TCPSite]:
    """
    Start health check server.

    Args:
        host: Host to bind to
        port: Port to bind to

    Returns:
        Tuple of (AppRunner, TCPSite) for cleanup
    """
    runner = web.AppRunner(create_health_app())
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()

    logger.info(f"Health check server started on {host}:{port}")

    return runner, site


async def stop_health_server(
    runner: web.AppRunner,
    timeout: int = 5,
) -> None:
    """
    Stop health check server gracefully.

    Args:
        runner: AppRunner to cleanup
        timeout: Maximum time to wait for cleanup in seconds
    """
    logger.info("Stopping health check server...")
    try:
        await asyncio.wait_for(runner.cleanup(), timeout=timeout)
        logger.info("Health check server stopped")
    except TimeoutError:
        logger.warning(f"Health check server cleanup timed out after {timeout}s")
