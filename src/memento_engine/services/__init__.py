"""Services package for Memento.

This package provides the engine services using the plugin dependency injection pattern from scitrera-app-framework.

Prefer importing from specific service submodules (e.g., `from .decay import get_decay_service`)
rather than from this top-level package.
"""
