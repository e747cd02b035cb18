#!/usr/bin/env python3
"""
运行时模块

mystem 进程生命周期与线程安全的会话入口。
"""
from .process import ProcessManager
from .session import MyStemSession, create_session

__all__ = [
    "ProcessManager",
    "MyStemSession",
    "create_session",
]
