import asyncio

import uvicorn

from .config import HTTP_HOST, HTTP_PORT, LOG_LEVEL


async def main():
    config = uvicorn.Config(
        "chargewatch.api:create_app",
        factory=True,
        host=HTTP_HOST,
        port=HTTP_PORT,
        loop="asyncio",
        log_level=LOG_LEVEL.lower(),
    )
    server = uvicorn.Server(config)
    await server.serve()


if __name__ == "__main__":
    asyncio.run(main())
