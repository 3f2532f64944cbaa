"""Policy injection pipeline.

Main Components:
- PolicyPipeline: validates then applies policy, resource by resource
- PolicyContext: read-only project and identity lookups shared by steps
- process: functional entry point over a single project
"""

from .context import PolicyContext
from .pipeline import PolicyPipeline, process

__all__ = [
    "PolicyContext",
    "PolicyPipeline",
    "process",
]
