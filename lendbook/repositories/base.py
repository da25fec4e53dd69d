from functools import wraps

from pymongo.errors import ConnectionFailure

from lendbook.core.errors import StoreUnavailable
from lendbook.core.logging import get_logger

logger = get_logger(__name__)


def store_call(func):
    """Surface driver connectivity faults as ``StoreUnavailable``."""

    @wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except ConnectionFailure as exc:
            logger.error("Store fault in %s: %s", func.__qualname__, exc)
            raise StoreUnavailable(str(exc)) from exc

    return wrapper
