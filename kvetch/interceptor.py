"""
Minimal replace/restore capability over object attributes.

Built on ``unittest.mock.patch.object`` so attributes that live on a class,
an instance or a module are all put back exactly as they were found.
"""
from typing import Any, Callable
from unittest import mock

from .logging_config import get_logger

logger = get_logger("interceptor")


class InterceptHandle:
    """Owns one installed replacement; restore() is safe to call repeatedly"""

    def __init__(self, target: Any, attribute: str, patcher):
        self.target = target
        self.attribute = attribute
        self._patcher = patcher
        self.active = True

    def restore(self) -> bool:
        if not self.active:
            return False
        self._patcher.stop()
        self.active = False
        logger.debug(f"Restored {type(self.target).__name__}.{self.attribute}")
        return True


class Interceptor:

    @staticmethod
    def replace(target: Any, attribute: str, wrapper: Callable) -> InterceptHandle:
        patcher = mock.patch.object(target, attribute, new=wrapper)
        patcher.start()
        logger.debug(f"Replaced {type(target).__name__}.{attribute}")
        return InterceptHandle(target, attribute, patcher)
