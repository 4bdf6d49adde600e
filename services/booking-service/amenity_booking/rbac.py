from .domain import Caller
from .errors import Forbidden


def require_admin(caller: Caller) -> None:
    if not caller.is_admin:
        raise Forbidden("Access forbidden for this role")
