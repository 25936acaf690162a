"""Vector index - Base interface and plugin."""
from abc import ABC, abstractmethod
from logging import Logger

from scitrera_app_framework import get_logger
from scitrera_app_framework.api import Plugin, Variables, enabled_option_pattern

from ...config import MEMENTO_VECTOR_INDEX, DEFAULT_MEMENTO_VECTOR_INDEX
from ...models.search import VectorMatch
from .._constants import EXT_VECTOR_INDEX


class VectorIndex(ABC):
    """
    Stores one vector per memory and answers workspace-filtered nearest-neighbour queries.

    Vectors are keyed by the ``(workspace_id, memory_id)`` pair; a query only
    ever sees vectors of its own workspace.
    """

    def __init__(self, v: Variables = None):
        self.logger = get_logger(v, name=self.__class__.__name__)

    async def connect(self) -> None:
        return

    async def disconnect(self) -> None:
        return

    @abstractmethod
    async def upsert(self, workspace_id: str, memory_id: str, vector: list[float]) -> None:
        pass

    @abstractmethod
    async def query(self, vector: list[float], top_k: int, workspace_id: str) -> list[VectorMatch]:
        """Most similar memories of ``workspace_id``, best first. Match ids are memory ids."""
        pass

    @abstractmethod
    async def delete(self, workspace_id: str, memory_id: str) -> bool:
        pass


# noinspection PyAbstractClass
class VectorIndexPluginBase(Plugin):
    PROVIDER_NAME: str = None

    def name(self) -> str:
        return f"{EXT_VECTOR_INDEX}|{self.PROVIDER_NAME}"

    def extension_point_name(self, v: Variables) -> str:
        return EXT_VECTOR_INDEX

    def is_enabled(self, v: Variables) -> bool:
        return enabled_option_pattern(self, v, MEMENTO_VECTOR_INDEX, self_attr='PROVIDER_NAME')

    def on_registration(self, v: Variables) -> None:
        v.set_default_value(MEMENTO_VECTOR_INDEX, DEFAULT_MEMENTO_VECTOR_INDEX)

    async def async_ready(self, v: Variables, logger: Logger, value: object | None) -> None:
        if isinstance(value, VectorIndex):
            await value.connect()
            logger.info("Vector index '%s' ready.", self.PROVIDER_NAME)

    async def async_stopping(self, v: Variables, logger: Logger, value: object | None) -> None:
        if isinstance(value, VectorIndex):
            try:
                await value.disconnect()
            except Exception as e:
                logger.error("Error closing vector index '%s': %s", self.PROVIDER_NAME, e)
