from fastapi import Request

from jobchat.core import ClientCore


async def get_core(request: Request) -> ClientCore:
    """The client core built by the app lifespan."""
    return request.app.state.core
