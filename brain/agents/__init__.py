"""
Agents - domain handlers run by the dispatcher
"""

from .base import BaseAgent
from .mock import MockConnectorAgent

__all__ = ["BaseAgent", "MockConnectorAgent"]
