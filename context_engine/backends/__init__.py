"""Command execution backends."""

from context_engine.backends.base import CommandResult
from context_engine.backends.batched import BatchedCommandRunner
from context_engine.backends.local import CommandRunner

__all__ = ["BatchedCommandRunner", "CommandResult", "CommandRunner"]
