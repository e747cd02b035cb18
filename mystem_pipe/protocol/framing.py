#!/usr/bin/env python3
"""
帧协议 - 请求结束标记与响应噪声

MyStem 没有请求边界的概念，所以在每个请求后追加一行 "ъъ"：
mystem 把它当作未知词回显为 "ъъ??"，读取端看到两个连续的 'ъ'
即认为本次响应结束。

注意：标记没有转义机制，真实输出中出现 "ъъ" 会导致提前结束。
"""
from typing import Optional

from mystem_pipe.core.config import ExchangeConfig


class Framing:
    """请求编码与响应解码

    纯逻辑，不涉及任何 I/O。
    """

    def __init__(self, end_string: str = "\nъъ", end_replace_string: str = "ъъ??\r\n"):
        """
        Args:
            end_string: 追加到请求末尾的结束串（换行 + 两个标记字符）
            end_replace_string: 解码时删除的回显噪声
        """
        marker = end_string.strip()
        if len(marker) < 2:
            raise ValueError(f"end_string must carry a marker pair, got {end_string!r}")

        self.end_string = end_string
        self.end_replace_string = end_replace_string
        self.end_marker = marker[-2:]

    @classmethod
    def from_config(cls, config: ExchangeConfig) -> 'Framing':
        return cls(config.end_string, config.end_replace_string)

    def encode(self, text: str) -> str:
        """追加结束串（行结束符由写入器负责）"""
        return text + self.end_string

    def contains_end(self, chunk: str, previous: Optional[str] = "") -> bool:
        """
        从后向前在最近读到的块中查找连续两个标记字符

        Args:
            chunk: 最近一次读到的文本
            previous: 之前累积的文本，只取最后一个字符，用于匹配跨块的标记

        Returns:
            True 表示响应已结束
        """
        if not chunk:
            return False
        window = (previous or "")[-1:] + chunk
        return window.rfind(self.end_marker) >= 0

    def strip_noise(self, buffer: str, completed: bool = False) -> str:
        """
        删除所有回显噪声

        Args:
            buffer: 累积的响应文本
            completed: 是否已识别到结束标记。为 True 时，末尾未收全的噪声
                （如 "ъъ" 或 "ъъ??"）也一并去掉，剩余部分留在管道中

        Returns:
            解码后的响应
        """
        text = buffer
        if self.end_replace_string:
            text = text.replace(self.end_replace_string, "")

        if completed:
            index = text.rfind(self.end_marker)
            if index >= 0 and self.end_replace_string.startswith(text[index:]):
                text = text[:index]
        return text
