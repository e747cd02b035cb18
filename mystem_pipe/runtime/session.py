#!/usr/bin/env python3
"""
MyStem 会话 - 对外入口

一个会话管理一个 mystem 进程。进程只有一对 stdin/stdout，不能复用，
所以每次交换（确保进程就绪 + 写请求 + 读响应）都在会话自己的锁内完成。

用法：
    with MyStemSession(MyStemOptions(path="/usr/local/bin/mystem")) as session:
        print(session.analyze("мама мыла раму"))
"""
import logging
import threading
from typing import Optional

from mystem_pipe.core.config import MyStemOptions, ExchangeConfig, Config, get_config
from mystem_pipe.core.errors import AnalysisError, ExecutableNotFoundError, SessionClosedError
from mystem_pipe.protocol.framing import Framing
from mystem_pipe.protocol.reader import AdaptiveReader
from mystem_pipe.runtime.process import ProcessManager

logger = logging.getLogger(__name__)


class MyStemSession:
    """线程安全的 mystem 会话

    多个线程可以同时调用 analyze()，请求按获取锁的顺序串行执行。
    """

    def __init__(
        self,
        options: Optional[MyStemOptions] = None,
        config: Optional[ExchangeConfig] = None,
        process: Optional[ProcessManager] = None,
    ):
        """
        初始化会话

        Args:
            options: MyStem 选项，默认取全局配置
            config: 交换配置，默认取全局配置
            process: 进程管理器，默认按 options/config 创建。传入时选项和
                配置取自它，不能再同时传 options 或 config

        Raises:
            OptionsError: 选项未开启逐行输出等
            ValueError: 同时传入 process 与 options/config
        """
        if process is not None:
            if options is not None or config is not None:
                raise ValueError("Pass either a process manager or options/config, not both")
            self.options = process.options
            self.config = process.config
        else:
            self.options = options or get_config().mystem
            self.config = config or get_config().exchange
        self.options.validate()

        self.framing = Framing.from_config(self.config)
        self._process = process or ProcessManager(self.options, self.config)
        self._lock = threading.Lock()
        self._closed = False

        # 统计
        self._exchange_count = 0
        self._failure_count = 0
        self._timeout_count = 0
        self._incomplete_count = 0

    def start(self):
        """显式启动进程（否则在第一次 analyze 时启动）"""
        self._ensure_open()
        self._process.check_executable()
        with self._lock:
            self._ensure_open()
            self._process.ensure_ready()

    def analyze(self, text: str) -> str:
        """
        分析文本

        Args:
            text: 输入文本

        Returns:
            mystem 的原始输出（已去除结束标记）

        Raises:
            SessionClosedError: 会话已关闭
            ExecutableNotFoundError: mystem 路径无效（不会启动任何进程）
            AnalysisError: 交换过程中的任何其他错误
        """
        self._ensure_open()
        self._process.check_executable()

        with self._lock:
            self._ensure_open()
            try:
                self._process.ensure_ready()
                return self._exchange(text)
            except ExecutableNotFoundError:
                raise
            except Exception as e:
                self._failure_count += 1
                logger.error(f"[Session] Analysis failed: {e!r}")
                raise AnalysisError(text, e) from e

    def _exchange(self, text: str) -> str:
        """一次请求/响应交换（调用方持有锁）

        已知限制：读到结束标记就返回，标记之后的 "??\\r\\n" 若尚未到达管道，
        下一次交换开始时的 discard_pending() 清不掉它，它会成为下一个响应的前缀。
        """
        source = self._process.source
        stale = source.discard_pending()
        if stale:
            logger.warning(f"[Session] Discarded {stale} stale chars left by a previous exchange")

        request = self.framing.encode(text)
        self._process.writer.send(request)

        reader = AdaptiveReader(source, self.framing, self.config)
        result = reader.read_response(len(request))
        if self._closed:
            # close() 杀死了进程，读到的只是截断的输出
            raise SessionClosedError("MyStem session was closed during the exchange")

        # +1 让连续的空响应也能推动计数
        self._process.add_processed(len(result.text) + 1)

        self._exchange_count += 1
        self._timeout_count += result.timeouts
        if not result.completed:
            self._incomplete_count += 1
        return result.text

    def _ensure_open(self):
        if self._closed:
            raise SessionClosedError("MyStem session is closed")

    def close(self):
        """杀死进程（幂等）

        不等待锁：正在进行的交换会因进程被杀而失败。
        """
        if self._closed:
            return
        self._closed = True
        self._process.close()
        logger.debug("[Session] Closed")

    def __enter__(self) -> 'MyStemSession':
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def processed_length(self) -> int:
        """当前进程累计处理的文本长度"""
        return self._process.processed_length

    def get_stats(self) -> dict:
        """
        获取会话统计信息

        Returns:
            统计信息字典
        """
        return {
            "exchanges": self._exchange_count,
            "failures": self._failure_count,
            "timeouts": self._timeout_count,
            "incomplete": self._incomplete_count,
            "restarts": self._process.restart_count,
            "processed_length": self._process.processed_length,
        }

    def log_stats(self):
        """记录统计信息到日志"""
        stats = self.get_stats()
        logger.info(
            f"[Session] Stats: "
            f"{stats['exchanges']} exchanges, "
            f"{stats['failures']} failures, "
            f"{stats['timeouts']} read timeouts, "
            f"{stats['restarts']} restarts"
        )


# 便捷函数
def create_session(config_path: Optional[str] = None) -> MyStemSession:
    """
    按配置文件创建会话

    Args:
        config_path: YAML 配置路径，None 表示使用全局配置
    """
    config = Config.load(config_path) if config_path else get_config()
    return MyStemSession(config.mystem, config.exchange)
