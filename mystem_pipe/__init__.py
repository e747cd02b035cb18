#!/usr/bin/env python3
"""
mystem_pipe

通过 stdin/stdout 管道驱动常驻的 MyStem 进程。
"""
from .core import (
    MyStemError,
    ExecutableNotFoundError,
    OptionsError,
    SessionClosedError,
    AnalysisError,
    MyStemOptions,
    ExchangeConfig,
    Config,
    get_config,
    set_config,
)
from .runtime import MyStemSession, ProcessManager, create_session

__version__ = "0.1.0"

__all__ = [
    "MyStemError",
    "ExecutableNotFoundError",
    "OptionsError",
    "SessionClosedError",
    "AnalysisError",
    "MyStemOptions",
    "ExchangeConfig",
    "Config",
    "get_config",
    "set_config",
    "MyStemSession",
    "ProcessManager",
    "create_session",
]
