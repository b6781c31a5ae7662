"""
ASGI entry point: `uvicorn src.network.http.launch:server`
or `python -m src.network.http.launch` for a local reloading server.
"""

from src import setup

setup.run()

from src import settings  # noqa: E402
from src.network.http.server import server  # noqa: E402

__all__ = ['server']


if __name__ == '__main__':
    import uvicorn

    uvicorn.run(
        'src.network.http.launch:server',
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
        reload=settings.IS_LOCAL,
        log_config=None,
    )
