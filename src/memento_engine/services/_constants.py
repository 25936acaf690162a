"""
Extension point constants for all Memento services.

Kept in one module so service packages can depend on each other's extension
points without importing each other.
"""

# ============================================
# Storage
# ============================================
EXT_STORAGE_BACKEND = 'memento-primary-storage'

# ============================================
# Embedding
# ============================================
EXT_EMBEDDING_PROVIDER = 'memento-embedding-provider'
EXT_EMBEDDING_SERVICE = 'memento-embedding-service'
EXT_VECTOR_INDEX = 'memento-vector-index'

# ============================================
# LLM / Summarizer
# ============================================
EXT_LLM_SERVICE = 'memento-llm-service'
EXT_LLM_REGISTRY = 'memento-llm-registry'
EXT_SUMMARIZER_SERVICE = 'memento-summarizer-service'

# ============================================
# Decay
# ============================================
EXT_DECAY_SERVICE = 'memento-decay-service'

# ============================================
# Consolidation
# ============================================
EXT_CONSOLIDATION_SERVICE = 'memento-consolidation-service'

# ============================================
# Maintenance Scheduler
# ============================================
EXT_SCHEDULER_SERVICE = 'memento-scheduler-service'

# ============================================
# Tasks
# ============================================
EXT_TASK_SERVICE = 'memento-task-service'
EXT_MULTI_TASK_HANDLERS = 'memento-multi-task-handlers'
EXT_TASK_HANDLER_SETUP = 'memento-task-handler-setup'
