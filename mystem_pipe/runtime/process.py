#!/usr/bin/env python3
"""
进程生命周期管理

负责启动 mystem、在进程退出或累计处理文本过多时重启、以及最终回收。
每个 ProcessManager 同一时间只持有一个子进程。
"""
import io
import logging
import os
import subprocess
import threading
import weakref
from typing import Optional, List

from mystem_pipe.core.config import MyStemOptions, ExchangeConfig
from mystem_pipe.core.errors import ExecutableNotFoundError, SessionClosedError
from mystem_pipe.protocol.reader import PipeChunkSource
from mystem_pipe.protocol.writer import RequestWriter

logger = logging.getLogger(__name__)


def _hidden_window_kwargs() -> dict:
    """Windows 下隐藏窗口且不创建新控制台"""
    if os.name != "nt":
        return {}
    startupinfo = subprocess.STARTUPINFO()
    startupinfo.dwFlags |= subprocess.STARTF_USESHOWWINDOW
    startupinfo.wShowWindow = subprocess.SW_HIDE
    return {
        "startupinfo": startupinfo,
        "creationflags": subprocess.CREATE_NO_WINDOW,
    }


def _drain_stderr(stream, pid: int):
    """把 mystem 的 stderr 转发到日志，避免管道写满阻塞进程"""
    try:
        for line in iter(stream.readline, b""):
            logger.debug(f"[Process] mystem[{pid}] stderr: {line.decode('utf-8', 'replace').rstrip()}")
    except (OSError, ValueError) as e:
        logger.debug(f"[Process] mystem[{pid}] stderr closed: {e}")


def _terminate(process: subprocess.Popen, stdin):
    """
    杀死进程并关闭管道

    尽力而为：回收过程中的任何错误只记录，不向上抛出。
    """
    try:
        if process.poll() is None:
            process.kill()
    except OSError as e:
        logger.debug(f"[Process] Kill failed for pid {process.pid}: {e}")

    _close_quietly(stdin, process.pid)
    try:
        process.wait(timeout=1.0)
    except (subprocess.TimeoutExpired, OSError) as e:
        logger.debug(f"[Process] Wait failed for pid {process.pid}: {e}")

    # 读取线程在进程退出后收到 EOF，此时再关闭读端
    _close_quietly(process.stdout, process.pid)
    _close_quietly(process.stderr, process.pid)


def _close_quietly(stream, pid: int):
    if stream is None:
        return
    try:
        stream.close()
    except (OSError, ValueError) as e:
        logger.debug(f"[Process] Closing pipe failed for pid {pid}: {e}")


class ProcessManager:
    """mystem 进程管理器

    不加锁：调用方（MyStemSession）保证所有访问都在同一把锁内进行。
    """

    def __init__(self, options: MyStemOptions, config: Optional[ExchangeConfig] = None):
        """
        Args:
            options: MyStem 选项（路径和命令行参数）
            config: 交换配置（重启阈值、输出编码等）
        """
        self.options = options
        self.config = config or ExchangeConfig()

        self._process: Optional[subprocess.Popen] = None
        self._writer: Optional[RequestWriter] = None
        self._source: Optional[PipeChunkSource] = None
        self._finalizer: Optional[weakref.finalize] = None

        self._processed_length = 0
        self._start_count = 0
        self._closed = False

    def check_executable(self) -> str:
        """
        检查可执行文件是否存在

        Returns:
            解析后的路径

        Raises:
            ExecutableNotFoundError: 路径不是已存在的文件
        """
        path = self.options.resolve_path()
        if not os.path.isfile(path):
            raise ExecutableNotFoundError(path)
        return path

    def needs_restart(self) -> bool:
        """没有进程、进程已退出、或累计处理量超过上限时需要（重新）启动"""
        return (
            self._process is None
            or self._process.poll() is not None
            or self._processed_length > self.config.max_length
        )

    def ensure_ready(self):
        """保证存在一个可用的进程

        Raises:
            SessionClosedError: 管理器已关闭，不再启动新进程
        """
        if self._closed:
            raise SessionClosedError("MyStem process manager is closed")
        if not self.needs_restart():
            return

        if self._process is not None:
            logger.info(
                f"[Process] Restarting MyStem (pid {self._process.pid}, "
                f"exit code {self._process.poll()}, processed {self._processed_length})"
            )
        self._teardown()
        self._processed_length = 0
        self._start()
        if self._closed:
            # close() 在启动期间发生，刚启动的进程不能留下
            self._teardown()
            raise SessionClosedError("MyStem process manager was closed while starting")

    def _start(self):
        path = self.check_executable()
        args = [path] + self.options.get_arguments()
        logger.info(f"[Process] Starting MyStem: {' '.join(args)}")

        process = self._spawn(args)
        stdin = io.TextIOWrapper(process.stdin, encoding=self.options.encoding, write_through=True)
        source = PipeChunkSource(
            process.stdout,
            encoding=self.config.output_encoding,
            chunk_size=self.config.pipe_chunk_size,
            name=f"MyStemStdout-{process.pid}",
        )
        if process.stderr is not None:
            threading.Thread(
                target=_drain_stderr,
                args=(process.stderr, process.pid),
                daemon=True,
                name=f"MyStemStderr-{process.pid}",
            ).start()

        self._process = process
        self._writer = RequestWriter(stdin)
        self._source = source
        # 未调用 close() 就被回收时的兜底
        self._finalizer = weakref.finalize(self, _terminate, process, stdin)
        self._start_count += 1

    def _spawn(self, args: List[str]) -> subprocess.Popen:
        return subprocess.Popen(
            args,
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            **_hidden_window_kwargs(),
        )

    def _teardown(self):
        if self._finalizer is not None:
            # finalize 只会执行一次
            self._finalizer()
        self._finalizer = None
        self._process = None
        self._writer = None
        self._source = None

    def add_processed(self, length: int):
        """累加已处理的文本长度"""
        self._processed_length += length

    def close(self):
        """杀死进程并释放管道（幂等）"""
        if self._closed:
            return
        self._closed = True
        self._teardown()
        logger.debug("[Process] Closed")

    @property
    def processed_length(self) -> int:
        """当前进程自启动以来累计处理的文本长度"""
        return self._processed_length

    @property
    def start_count(self) -> int:
        """启动过的进程数"""
        return self._start_count

    @property
    def restart_count(self) -> int:
        """重启次数（不含首次启动）"""
        return max(0, self._start_count - 1)

    @property
    def pid(self) -> Optional[int]:
        return self._process.pid if self._process is not None else None

    @property
    def running(self) -> bool:
        return self._process is not None and self._process.poll() is None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def source(self) -> Optional[PipeChunkSource]:
        return self._source

    @property
    def writer(self) -> Optional[RequestWriter]:
        return self._writer
