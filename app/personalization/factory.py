"""
Factory for creating the personalization module.
"""
from pathlib import Path
from typing import Optional

from personalization_service.config import PersonalizationConfig
from personalization_service.models.utils import Clock, now_ms

from .routes import create_personalization_blueprint
from .services import EngineRegistry


def create_personalization_module(
    user_data_dir: Path,
    config: Optional[PersonalizationConfig] = None,
    clock: Clock = now_ms,
) -> dict:
    """Create personalization module with service and routes.

    Args:
        user_data_dir: Directory holding one JSON file per user
        config: Component configuration
        clock: Epoch-ms clock shared by every engine

    Returns:
        Dictionary containing the service and blueprint
    """
    registry = EngineRegistry(user_data_dir, config, clock)
    blueprint = create_personalization_blueprint(registry)

    return {
        "service": registry,
        "blueprint": blueprint
    }
