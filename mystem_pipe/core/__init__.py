#!/usr/bin/env python3
"""
核心模块

导出配置类和异常。
"""
from .errors import (
    MyStemError,
    ExecutableNotFoundError,
    OptionsError,
    SessionClosedError,
    AnalysisError,
)

from .config import (
    MyStemOptions,
    ExchangeConfig,
    LogConfig,
    Config,
    get_config,
    set_config,
    reload_config,
)

__all__ = [
    # errors
    "MyStemError",
    "ExecutableNotFoundError",
    "OptionsError",
    "SessionClosedError",
    "AnalysisError",
    # config
    "MyStemOptions",
    "ExchangeConfig",
    "LogConfig",
    "Config",
    "get_config",
    "set_config",
    "reload_config",
]
