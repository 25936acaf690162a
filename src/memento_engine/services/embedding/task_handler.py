"""On-demand task that embeds one stored memory."""
from logging import Logger
from typing import Optional

from scitrera_app_framework import get_logger
from scitrera_app_framework.api import Variables

from ..storage import StorageBackend, EXT_STORAGE_BACKEND
from ..tasks import TaskHandlerPlugin, TaskSchedule
from .base import EXT_EMBEDDING_SERVICE
from .service_default import EmbeddingService

EMBED_MEMORY_TASK = 'embed_memory'


class EmbedMemoryTaskHandler(TaskHandlerPlugin):
    """Embeds a memory after it was written, e.g. the result of an explicit merge."""

    def get_task_type(self) -> str:
        return EMBED_MEMORY_TASK

    def get_schedule(self, v: Variables) -> Optional[TaskSchedule]:
        return None

    async def handle(self, payload: dict) -> None:
        embedding_service: EmbeddingService = self.get_extension(EXT_EMBEDDING_SERVICE, self._v)
        storage: StorageBackend = self.get_extension(EXT_STORAGE_BACKEND, self._v)
        logger: Logger = get_logger(self._v, name=self.get_task_type())

        workspace_id = payload['workspace_id']
        memory_id = payload['memory_id']
        if await embedding_service.embed_memory(storage, workspace_id, memory_id):
            logger.debug("Embedded memory %s in workspace %s", memory_id, workspace_id)
