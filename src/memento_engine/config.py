"""Configuration constants for the Memento engine.

Values are resolved through the scitrera-app-framework ``Variables`` instance
(``v.environ(NAME, default=DEFAULT_NAME, type_fn=...)``) so that they can come
from real environment variables or be set explicitly (tests, CLI).
"""

from enum import Enum

# ============================================
# Data Home Directory
# ============================================
MEMENTO_DATA_DIR = 'MEMENTO_DATA_DIR'

# ============================================
# Storage Backend
# ============================================
MEMENTO_STORAGE_BACKEND = 'MEMENTO_STORAGE_BACKEND'
DEFAULT_MEMENTO_STORAGE_BACKEND = 'sqlite'

MEMENTO_SQLITE_STORAGE_PATH = 'MEMENTO_SQLITE_STORAGE_PATH'
DEFAULT_MEMENTO_SQLITE_STORAGE_PATH = "memento.db"


# ============================================
# Embedding Providers
# ============================================
class EmbeddingProviderType(str, Enum):
    """Available embedding provider types."""

    OPENAI = "openai"  # OpenAI API (or any OpenAI-compatible endpoint)
    MOCK = "mock"  # deterministic hash-based vectors, testing only
    NONE = "none"  # no embedder configured; semantic features degrade to no-ops


MEMENTO_EMBEDDING_PROVIDER = 'MEMENTO_EMBEDDING_PROVIDER'
DEFAULT_MEMENTO_EMBEDDING_PROVIDER = EmbeddingProviderType.NONE
MEMENTO_EMBEDDING_MODEL = 'MEMENTO_EMBEDDING_MODEL'
MEMENTO_EMBEDDING_DIMENSIONS = 'MEMENTO_EMBEDDING_DIMENSIONS'

MEMENTO_EMBEDDING_SERVICE = 'MEMENTO_EMBEDDING_SERVICE'
DEFAULT_MEMENTO_EMBEDDING_SERVICE = 'default'

MEMENTO_EMBEDDING_BATCH_SIZE = 'MEMENTO_EMBEDDING_BATCH_SIZE'
DEFAULT_MEMENTO_EMBEDDING_BATCH_SIZE = 50


# ============================================
# Vector Index
# ============================================
class VectorIndexType(str, Enum):
    """Available vector index types."""

    MEMORY = "memory"  # process-local index, lost on restart
    SQLITE = "sqlite"  # vectors persisted next to the memories


MEMENTO_VECTOR_INDEX = 'MEMENTO_VECTOR_INDEX'
DEFAULT_MEMENTO_VECTOR_INDEX = VectorIndexType.MEMORY

MEMENTO_SQLITE_VECTOR_PATH = 'MEMENTO_SQLITE_VECTOR_PATH'
DEFAULT_MEMENTO_SQLITE_VECTOR_PATH = "memento-vectors.db"

# ============================================
# LLM / Summarizer
# ============================================
MEMENTO_SUMMARIZER_SERVICE = 'MEMENTO_SUMMARIZER_SERVICE'
DEFAULT_MEMENTO_SUMMARIZER_SERVICE = 'default'

MEMENTO_SUMMARIZER_TIMEOUT_SECONDS = 'MEMENTO_SUMMARIZER_TIMEOUT_SECONDS'
DEFAULT_MEMENTO_SUMMARIZER_TIMEOUT_SECONDS = 30.0

# ============================================
# Decay Service
# ============================================
MEMENTO_DECAY_PROVIDER = 'MEMENTO_DECAY_PROVIDER'
DEFAULT_MEMENTO_DECAY_PROVIDER = 'default'

MEMENTO_DECAY_BATCH_SIZE = 'MEMENTO_DECAY_BATCH_SIZE'
DEFAULT_MEMENTO_DECAY_BATCH_SIZE = 50

MEMENTO_DECAY_INTERVAL_SECONDS = 'MEMENTO_DECAY_INTERVAL_SECONDS'
DEFAULT_MEMENTO_DECAY_INTERVAL_SECONDS = 6 * 3600

# ============================================
# Consolidation Service
# ============================================
MEMENTO_CONSOLIDATION_PROVIDER = 'MEMENTO_CONSOLIDATION_PROVIDER'
DEFAULT_MEMENTO_CONSOLIDATION_PROVIDER = 'default'

MEMENTO_CONSOLIDATION_MIN_GROUP_SIZE = 'MEMENTO_CONSOLIDATION_MIN_GROUP_SIZE'
DEFAULT_MEMENTO_CONSOLIDATION_MIN_GROUP_SIZE = 3

MEMENTO_CONSOLIDATION_INTERVAL_SECONDS = 'MEMENTO_CONSOLIDATION_INTERVAL_SECONDS'
DEFAULT_MEMENTO_CONSOLIDATION_INTERVAL_SECONDS = 24 * 3600

# ============================================
# Maintenance Scheduler
# ============================================
MEMENTO_SCHEDULER_SERVICE = 'MEMENTO_SCHEDULER_SERVICE'
DEFAULT_MEMENTO_SCHEDULER_SERVICE = 'default'

# ============================================
# Task Service
# ============================================
MEMENTO_TASK_PROVIDER = 'MEMENTO_TASK_PROVIDER'
DEFAULT_MEMENTO_TASK_PROVIDER = 'asyncio'

MEMENTO_TASKS_ENABLED = 'MEMENTO_TASKS_ENABLED'
DEFAULT_MEMENTO_TASKS_ENABLED = True

# ============================================
# Retrieval
# ============================================
DEFAULT_HYBRID_ALPHA = 0.5
DEFAULT_RESULT_LIMIT = 10
DEFAULT_MEMORY_TYPE = "observation"
