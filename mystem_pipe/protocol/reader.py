#!/usr/bin/env python3
"""
协议读取层 - 从 MyStem stdout 读取响应

mystem 的输出块大小和到达时间都不可预测，读取分两个阶段：

- IMMEDIATE：只要管道里有数据就立即返回，进程大量输出时延迟最小
- DRAIN：预期数据量基本到齐后，改为带超时的读取，既能收尾慢到的字节，
  又不会在进程不再输出时永久阻塞

在 DRAIN 阶段看到结束标记，或读到 0 个字符（流关闭/连续超时）时进入 DONE。
"""
import codecs
import logging
import queue
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional, List

from mystem_pipe.core.config import ExchangeConfig
from mystem_pipe.protocol.framing import Framing

logger = logging.getLogger(__name__)

_EOF = ""


class ReadMode(Enum):
    """读取状态"""
    IMMEDIATE = "immediate"
    DRAIN = "drain"
    DONE = "done"


class ChunkSource(ABC):
    """文本块来源

    read() 的返回值约定：
    - 非空字符串：读到的数据（不超过 max_chars）
    - ""：流已关闭
    - None：timeout 到期仍无数据（仅在传入 timeout 时出现）
    """

    @abstractmethod
    def read(self, max_chars: int, timeout: Optional[float] = None) -> Optional[str]:
        ...

    def discard_pending(self) -> int:
        """丢弃已到达但未读取的数据，返回丢弃的字符数"""
        return 0


class PipeChunkSource(ChunkSource):
    """基于二进制管道的文本块来源

    后台线程持续读取原始字节、增量解码并放入队列。读取方只和队列交互，
    所以超时的读取不会在之后"偷走"下一次交换的数据。
    """

    def __init__(
        self,
        stream,
        encoding: str = "utf-8",
        chunk_size: int = 4096,
        name: str = "MyStemStdoutPump",
    ):
        """
        Args:
            stream: 二进制可读流（如 Popen.stdout）
            encoding: 输出编码
            chunk_size: 单次原始读取字节数
            name: 后台线程名
        """
        self._stream = stream
        self._chunk_size = chunk_size
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._queue: "queue.Queue[str]" = queue.Queue()
        self._pending = ""
        self._closed = False

        self._thread = threading.Thread(target=self._pump, daemon=True, name=name)
        self._thread.start()

    def _pump(self):
        read = getattr(self._stream, "read1", self._stream.read)
        try:
            while True:
                data = read(self._chunk_size)
                if not data:
                    break
                text = self._decoder.decode(data)
                if text:
                    self._queue.put(text)
            tail = self._decoder.decode(b"", final=True)
            if tail:
                self._queue.put(tail)
        except (OSError, ValueError) as e:
            # 进程被杀或管道被关闭
            logger.debug(f"[Pump] Pipe read stopped: {e}")
        finally:
            self._queue.put(_EOF)

    def read(self, max_chars: int, timeout: Optional[float] = None) -> Optional[str]:
        if self._pending:
            chunk, self._pending = self._pending, ""
        elif self._closed:
            return ""
        else:
            try:
                chunk = self._queue.get(timeout=timeout)
            except queue.Empty:
                return None
            if chunk == _EOF:
                self._closed = True
                return ""

        # 合并已经到达的数据，模拟一次 read() 拿到管道里现有的全部内容
        while len(chunk) < max_chars and not self._closed:
            try:
                more = self._queue.get_nowait()
            except queue.Empty:
                break
            if more == _EOF:
                self._closed = True
                break
            chunk += more

        if len(chunk) > max_chars:
            self._pending = chunk[max_chars:]
            chunk = chunk[:max_chars]
        return chunk

    def discard_pending(self) -> int:
        discarded = len(self._pending)
        self._pending = ""
        while not self._closed:
            try:
                more = self._queue.get_nowait()
            except queue.Empty:
                break
            if more == _EOF:
                self._closed = True
                break
            discarded += len(more)
        return discarded

    @property
    def closed(self) -> bool:
        """是否已读到流结束"""
        return self._closed and not self._pending


@dataclass
class ReadResult:
    """一次响应读取的结果"""
    text: str
    chars_read: int
    timeouts: int
    completed: bool  # True=看到结束标记，False=流关闭或超时结束
    mode: ReadMode = ReadMode.DONE


class AdaptiveReader:
    """自适应读取器

    按 IMMEDIATE → DRAIN → DONE 的状态机读取一次完整响应。
    """

    def __init__(
        self,
        source: ChunkSource,
        framing: Optional[Framing] = None,
        config: Optional[ExchangeConfig] = None,
    ):
        self.source = source
        self.config = config or ExchangeConfig()
        self.framing = framing or Framing.from_config(self.config)

    def step_size(self, encoded_length: int) -> int:
        """单次读取的字符上限"""
        return max(1, int(round(encoded_length * self.config.step_buffer_factor)))

    def estimated_size(self, encoded_length: int) -> int:
        """响应缓冲区的预估大小"""
        return max(1, int(round(encoded_length * self.config.total_buffer_factor)))

    @staticmethod
    def should_drain(mode: ReadMode, total_read: int, buffered: int, encoded_length: int) -> bool:
        """
        判断是否进入（或保持）排空阶段

        缓冲区短于输入时也进入排空阶段，短响应会提前切换到超时读取。

        Args:
            mode: 当前状态
            total_read: 累计读取字符数
            buffered: 累积缓冲区长度
            encoded_length: 编码后请求长度
        """
        return (
            mode is ReadMode.DRAIN
            or total_read >= encoded_length
            or buffered < encoded_length
        )

    def _read_step(self, mode: ReadMode, step: int) -> Optional[str]:
        if mode is ReadMode.DRAIN:
            return self.source.read(step, timeout=self.config.read_timeout)
        return self.source.read(step)

    def read_response(self, encoded_length: int) -> ReadResult:
        """
        读取一次完整响应并去除噪声

        看到结束标记就停止读取。标记之后的噪声如果还没有写进管道，
        会留在来源里，成为下一次读取的开头（调用方在写请求前只能丢弃
        已经到达的部分）。

        Args:
            encoded_length: 编码后（已追加结束串）的请求长度

        Returns:
            ReadResult
        """
        step = self.step_size(encoded_length)
        parts: List[str] = []
        total_read = 0
        buffered = 0
        timeouts = 0
        consecutive_timeouts = 0
        completed = False
        mode = ReadMode.IMMEDIATE

        while mode is not ReadMode.DONE:
            chunk = self._read_step(mode, step)

            if chunk is None:
                timeouts += 1
                consecutive_timeouts += 1
                logger.info(
                    f"[Reader] Timeout occurred while reading from MyStem process "
                    f"({consecutive_timeouts}/{self.config.drain_timeout_limit})"
                )
                if consecutive_timeouts < self.config.drain_timeout_limit:
                    continue
                chunk = ""
            else:
                consecutive_timeouts = 0

            if not chunk:
                mode = ReadMode.DONE
                break

            previous = parts[-1] if parts else ""
            parts.append(chunk)
            total_read += len(chunk)
            buffered += len(chunk)

            if self.should_drain(mode, total_read, buffered, encoded_length):
                mode = ReadMode.DRAIN
                if self.framing.contains_end(chunk, previous):
                    completed = True
                    mode = ReadMode.DONE

        estimated = self.estimated_size(encoded_length)
        if total_read > estimated:
            logger.debug(f"[Reader] Response of {total_read} chars outgrew estimate {estimated}")
        if not completed:
            logger.debug(f"[Reader] Read ended without end marker after {total_read} chars")

        text = self.framing.strip_noise("".join(parts), completed=completed)
        return ReadResult(
            text=text,
            chars_read=total_read,
            timeouts=timeouts,
            completed=completed,
            mode=mode,
        )
