#!/usr/bin/env python3
"""
进程生命周期测试（使用假 mystem 脚本）
"""
import pytest
import sys
import os
import time

# 添加项目根目录和测试目录到路径
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from conftest import posix_only
from mystem_pipe.core.config import MyStemOptions, ExchangeConfig
from mystem_pipe.core.errors import ExecutableNotFoundError, SessionClosedError
from mystem_pipe.protocol.reader import AdaptiveReader
from mystem_pipe.runtime.process import ProcessManager


class RecordingManager(ProcessManager):
    """记录 spawn 调用的管理器"""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.spawned = []

    def _spawn(self, args):
        self.spawned.append(args)
        return super()._spawn(args)


class ClosingManager(RecordingManager):
    """在进程刚启动后就被其他线程关闭的管理器"""

    def _spawn(self, args):
        process = super()._spawn(args)
        self.spawned_process = process
        self.close()
        return process


def wait_until(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


class TestExecutableCheck:
    """可执行文件检查测试"""

    def test_missing_executable(self, tmp_path):
        """测试路径不存在时在启动进程前失败"""
        manager = RecordingManager(MyStemOptions(path=str(tmp_path / "missing")))
        with pytest.raises(ExecutableNotFoundError):
            manager.ensure_ready()
        assert manager.spawned == []
        assert manager.start_count == 0
        assert manager.running is False

    def test_directory_is_not_executable(self, tmp_path):
        """测试目录不算有效路径"""
        manager = ProcessManager(MyStemOptions(path=str(tmp_path)))
        with pytest.raises(ExecutableNotFoundError):
            manager.check_executable()

    def test_existing_file(self, tmp_path):
        """测试存在的文件通过检查"""
        path = tmp_path / "mystem"
        path.write_text("", encoding="utf-8")
        manager = ProcessManager(MyStemOptions(path=str(path)))
        assert manager.check_executable() == str(path)

    def test_closed_manager_does_not_start(self, tmp_path):
        """测试关闭后的管理器先报告已关闭，不再检查路径或启动进程"""
        manager = RecordingManager(MyStemOptions(path=str(tmp_path / "missing")))
        manager.close()
        with pytest.raises(SessionClosedError):
            manager.ensure_ready()
        assert manager.spawned == []


@posix_only
class TestProcessManager:
    """ProcessManager 测试"""

    @pytest.fixture
    def manager(self, fake_mystem):
        manager = RecordingManager(
            MyStemOptions(path=fake_mystem),
            ExchangeConfig(read_timeout=1.0, max_length=20),
        )
        yield manager
        manager.close()

    def test_start_with_arguments(self, manager, fake_mystem):
        """测试首次启动使用配置的路径和参数"""
        manager.ensure_ready()
        assert manager.running is True
        assert manager.pid is not None
        assert manager.start_count == 1
        assert manager.restart_count == 0
        assert manager.spawned == [[fake_mystem, "-n", "-i", "-e", "utf-8"]]

    def test_reuse_running_process(self, manager):
        """测试进程可用时不重启"""
        manager.ensure_ready()
        pid = manager.pid
        manager.ensure_ready()
        assert manager.pid == pid
        assert manager.start_count == 1

    def test_exchange_through_pipes(self, manager):
        """测试通过管道完成一次交换"""
        manager.ensure_ready()
        request = "мама\nъъ"
        manager.writer.send(request)
        result = AdaptiveReader(manager.source, config=manager.config).read_response(len(request))
        assert result.completed is True
        assert result.text == "мама{мама}\r\n"

    def test_restart_after_max_length(self, manager):
        """测试累计长度超过上限后重启，计数归零"""
        manager.ensure_ready()
        pid = manager.pid

        manager.add_processed(20)
        manager.ensure_ready()
        assert manager.pid == pid
        assert manager.processed_length == 20

        manager.add_processed(1)
        manager.ensure_ready()
        assert manager.pid != pid
        assert manager.processed_length == 0
        assert manager.restart_count == 1

    def test_restart_after_exit(self, manager):
        """测试进程退出后重启"""
        manager.ensure_ready()
        pid = manager.pid
        manager.writer.send("__exit__")
        assert wait_until(lambda: not manager.running)

        manager.ensure_ready()
        assert manager.running is True
        assert manager.pid != pid

    def test_close_is_idempotent(self, manager):
        """测试关闭幂等"""
        manager.ensure_ready()
        manager.close()
        assert manager.closed is True
        assert manager.running is False
        assert manager.source is None
        manager.close()
        assert manager.closed is True

    def test_close_kills_process(self, manager):
        """测试关闭时杀死进程"""
        manager.ensure_ready()
        process = manager._process
        manager.close()
        assert process.poll() is not None

    def test_no_restart_after_close(self, manager):
        """测试关闭后 ensure_ready 失败且不留下新进程"""
        manager.ensure_ready()
        manager.close()
        with pytest.raises(SessionClosedError):
            manager.ensure_ready()
        assert len(manager.spawned) == 1
        assert manager.running is False
        assert manager.start_count == 1

    def test_close_while_starting_kills_new_process(self, fake_mystem):
        """测试启动过程中被关闭时，刚启动的进程被杀死"""
        manager = ClosingManager(MyStemOptions(path=fake_mystem), ExchangeConfig(read_timeout=1.0))
        with pytest.raises(SessionClosedError):
            manager.ensure_ready()
        assert manager.running is False
        assert manager.source is None
        assert wait_until(lambda: manager.spawned_process.poll() is not None)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
