from __future__ import annotations
from functools import wraps
import logging

_log = logging.getLogger(__name__)

def logged(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        name = fn.__qualname__
        try:
            res = fn(*args, **kwargs)
            _log.debug("%s: ok -> %s", name, _describe(res))
            return res
        except Exception:
            _log.exception("%s: error", name)
            raise
    return wrapper

def _describe(res) -> str:
    # loaders return whole tables; log their size, not their content
    if hasattr(res, "__len__") and not isinstance(res, (str, bytes)):
        return f"<{type(res).__name__} len={len(res)}>"
    return repr(res)
