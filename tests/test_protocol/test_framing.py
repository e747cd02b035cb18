#!/usr/bin/env python3
"""
帧协议测试
"""
import pytest
import sys
import os

# 添加项目根目录到路径
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from mystem_pipe.core.config import ExchangeConfig
from mystem_pipe.protocol.framing import Framing


class TestFraming:
    """Framing 测试"""

    def test_encode_appends_end_string(self):
        """测试编码追加结束串"""
        framing = Framing()
        assert framing.encode("тест") == "тест\nъъ"
        assert framing.encode("") == "\nъъ"

    def test_end_marker(self):
        """测试标记对取自结束串"""
        assert Framing().end_marker == "ъъ"
        assert Framing("\n##", "##\n").end_marker == "##"

    def test_invalid_end_string(self):
        """测试结束串必须包含标记对"""
        with pytest.raises(ValueError):
            Framing("\nъ")

    def test_from_config(self):
        """测试从配置创建"""
        framing = Framing.from_config(ExchangeConfig(end_string="\n@@", end_replace_string="@@!\n"))
        assert framing.encode("x") == "x\n@@"
        assert framing.strip_noise("a\n@@!\n") == "a\n"

    def test_contains_end(self):
        """测试在块中查找标记对"""
        framing = Framing()
        assert framing.contains_end("тест{тест}\r\nъъ??\r\n") is True
        assert framing.contains_end("тест{тест}\r\n") is False
        assert framing.contains_end("ъ") is False
        assert framing.contains_end("") is False

    def test_contains_end_across_chunks(self):
        """测试标记对被拆在两个块之间"""
        framing = Framing()
        assert framing.contains_end("ъ??\r\n", previous="раму{раму}\r\nъ") is True
        assert framing.contains_end("ъ", previous="ъ") is True
        assert framing.contains_end("ъ", previous="ъa") is False

    def test_strip_noise_removes_every_occurrence(self):
        """测试删除所有噪声"""
        framing = Framing()
        buffer = "мама{мама}\r\nъъ??\r\nмыла{мыла}\r\nъъ??\r\n"
        assert framing.strip_noise(buffer) == "мама{мама}\r\nмыла{мыла}\r\n"

    def test_strip_noise_only_noise(self):
        """测试只有噪声的响应解码为空串"""
        assert Framing().strip_noise("ъъ??\r\n") == ""

    def test_strip_noise_without_noise(self):
        """测试没有噪声时原样返回"""
        assert Framing().strip_noise("abc") == "abc"

    def test_strip_partial_noise_when_completed(self):
        """测试已识别标记但噪声未收全时，去掉尾部标记片段"""
        framing = Framing()
        assert framing.strip_noise("м{м}\r\nъъ", completed=True) == "м{м}\r\n"
        assert framing.strip_noise("м{м}\r\nъъ??", completed=True) == "м{м}\r\n"
        assert framing.strip_noise("м{м}\r\nъъ", completed=False) == "м{м}\r\nъъ"

    def test_strip_keeps_marker_in_content(self):
        """测试标记后面不是噪声前缀时不截断"""
        assert Framing().strip_noise("ъъ{ъъ}\r\n", completed=True) == "ъъ{ъъ}\r\n"

    def test_marker_collision_is_known_limitation(self):
        """已知限制：正文中的 "ъъ" 同样会被识别为结束"""
        framing = Framing()
        assert framing.contains_end("объъявление{объявление??}\r\n") is True


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
