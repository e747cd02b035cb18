#!/usr/bin/env python3
"""
协议层模块

处理与 mystem 进程的 stdin/stdout 通信：请求分帧、自适应读取、请求写入。
"""
from .framing import Framing
from .reader import ReadMode, ReadResult, ChunkSource, PipeChunkSource, AdaptiveReader
from .writer import RequestWriter

__all__ = [
    # framing
    "Framing",
    # reader
    "ReadMode",
    "ReadResult",
    "ChunkSource",
    "PipeChunkSource",
    "AdaptiveReader",
    # writer
    "RequestWriter",
]
