from __future__ import annotations

from .port import RemoteExecutionPort

__all__ = ["RemoteExecutionPort"]
