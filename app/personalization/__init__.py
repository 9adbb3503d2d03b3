"""
Personalization Web Module

HTTP surface for the personalization engine: one engine per ``uid`` cookie,
persisted to a per-user JSON file.
"""

from .factory import create_personalization_module
from .services import EngineRegistry

__all__ = ['create_personalization_module', 'EngineRegistry']
