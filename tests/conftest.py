#!/usr/bin/env python3
"""
测试公共夹具

fake_mystem: 一个模拟 mystem -n 行为的 Python 脚本
- 每个词输出一行 "词{词}"
- 单独一行 "ъъ" 回显为 "ъъ??"
- "__exit__" 让进程退出
- 词 "медленно" 输出后停顿 2 秒再继续，模拟慢响应
"""
import os
import sys
import textwrap

import pytest

FAKE_MYSTEM = textwrap.dedent('''\
    import sys
    import time

    out = sys.stdout.buffer
    sys.stderr.write("fake mystem started\\n")
    sys.stderr.flush()
    for raw in iter(sys.stdin.buffer.readline, b""):
        line = raw.decode("utf-8").rstrip("\\r\\n")
        if line == "__exit__":
            sys.exit(0)
        if line == "ъъ":
            out.write("ъъ??\\r\\n".encode("utf-8"))
        else:
            for word in line.split():
                out.write("{0}{{{0}}}\\r\\n".format(word).encode("utf-8"))
                if word == "медленно":
                    out.flush()
                    time.sleep(2)
        out.flush()
''')

posix_only = pytest.mark.skipif(os.name == "nt", reason="fake mystem relies on a shebang script")


@pytest.fixture
def fake_mystem(tmp_path):
    """生成可执行的假 mystem，返回路径"""
    path = tmp_path / "mystem"
    path.write_text(f"#!{sys.executable}\n" + FAKE_MYSTEM, encoding="utf-8")
    os.chmod(path, 0o755)
    return str(path)


def expected_analysis(text: str) -> str:
    """假 mystem 对一行文本的输出（去除结束标记后）"""
    return "".join(f"{word}{{{word}}}\r\n" for word in text.split())
