"""Feature modules and their registration."""

from src.core.module_registry import get_module, register_module


def register_default_modules() -> None:
    """Register the built-in modules, in dependency order (idempotent)."""
    from src.modules.directory import DirectoryModule
    from src.modules.tasks import TasksModule

    for module in (DirectoryModule(), TasksModule()):
        if get_module(module.name) is None:
            register_module(module)
