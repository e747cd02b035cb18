#!/usr/bin/env python3
"""
异常定义

配置错误在启动进程前抛出；交换过程中的任何错误统一包装为 AnalysisError。
"""
from typing import Optional


class MyStemError(Exception):
    """mystem_pipe 所有异常的基类"""


class ExecutableNotFoundError(MyStemError, FileNotFoundError):
    """mystem 可执行文件路径无效"""

    def __init__(self, path: str):
        super().__init__(f"Path to MyStem executable is not valid: '{path}'")
        self.path = path


class OptionsError(MyStemError, ValueError):
    """MyStem 选项不满足协议要求"""


class SessionClosedError(MyStemError):
    """会话已关闭"""


class AnalysisError(MyStemError):
    """一次交换失败

    Attributes:
        text: 原始输入文本
        cause: 底层异常
    """

    def __init__(self, text: str, cause: Optional[BaseException] = None):
        super().__init__(f"Error during MyStem analysis. See logs for details. Text: '{text}'")
        self.text = text
        self.cause = cause
