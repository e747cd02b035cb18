#!/usr/bin/env python3
"""
协议写入层 - 向 MyStem stdin 发送请求
"""
import logging
from typing import Optional

logger = logging.getLogger(__name__)


class RequestWriter:
    """MyStem 请求写入器

    注意：
    - 每个请求以换行符结尾，文本流会把它转换为平台行结束符
    - 发送后必须 flush，否则 mystem 收不到
    """

    def __init__(self, output_stream):
        """
        Args:
            output_stream: 文本输出流（mystem 进程的 stdin）
        """
        self.output_stream = output_stream
        self._request_count = 0
        self._last_request: Optional[str] = None

    def send(self, request: str):
        """
        发送一个已编码的请求

        Args:
            request: 已追加结束串的请求文本
        """
        self._request_count += 1
        self._last_request = request

        self.output_stream.write(request + "\n")
        self.output_stream.flush()

        logger.debug(f"[Writer] Sent #{self._request_count}: {len(request)} chars")

    @property
    def request_count(self) -> int:
        """已发送的请求数"""
        return self._request_count

    @property
    def last_request(self) -> Optional[str]:
        """最后发送的请求"""
        return self._last_request
