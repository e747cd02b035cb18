#!/usr/bin/env python3
"""
命令行分析工具

逐行读取文件（或 stdin），交给同一个 mystem 会话分析并输出结果。

用法：
    python scripts/analyze.py --mystem-path /usr/local/bin/mystem input.txt
    echo "мама мыла раму" | python scripts/analyze.py --lemma-only
    python scripts/analyze.py --workers 4 corpus.txt
"""
import sys
import os
import argparse
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Iterator, List

# 添加项目根目录到路径
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from mystem_pipe.core.config import Config, LogConfig
from mystem_pipe.core.errors import MyStemError
from mystem_pipe.runtime.session import MyStemSession

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    """解析命令行参数"""
    parser = argparse.ArgumentParser(description="通过管道调用 MyStem 分析文本")

    parser.add_argument(
        "inputs",
        nargs="*",
        help="输入文件（默认读取 stdin）"
    )
    parser.add_argument(
        "--config",
        type=str,
        default="configs/default.yaml",
        help="配置文件路径（默认: configs/default.yaml）"
    )
    parser.add_argument(
        "--mystem-path",
        type=str,
        default=None,
        help="mystem 可执行文件路径（覆盖配置）"
    )

    # mystem 开关
    parser.add_argument("--lemma-only", action="store_true", help="只输出词元（-l）")
    parser.add_argument("--disambiguation", action="store_true", help="上下文消歧（-d）")
    parser.add_argument("--eng-gr", action="store_true", help="英文语法标记（--eng-gr）")
    parser.add_argument(
        "--format",
        type=str,
        choices=["text", "xml", "json"],
        default=None,
        help="输出格式（覆盖配置）"
    )

    parser.add_argument(
        "--workers",
        type=int,
        default=1,
        help="并发调用线程数，共享同一个进程（默认: 1）"
    )
    parser.add_argument("--stats", action="store_true", help="结束时输出统计信息")

    return parser.parse_args(argv)


def setup_logging(log_config: LogConfig):
    """按配置初始化日志"""
    kwargs = {
        "level": getattr(logging, log_config.level.upper(), logging.INFO),
        "format": log_config.format,
    }
    if log_config.file:
        kwargs["filename"] = log_config.file
    logging.basicConfig(**kwargs)


def iter_lines(inputs: List[str]) -> Iterator[str]:
    """依次读取所有输入的非空行"""
    if not inputs:
        for line in sys.stdin:
            line = line.rstrip("\r\n")
            if line:
                yield line
        return

    for path in inputs:
        with open(path, 'r', encoding='utf-8') as f:
            for line in f:
                line = line.rstrip("\r\n")
                if line:
                    yield line


def build_config(args) -> Config:
    """加载配置并应用命令行覆盖"""
    config = Config.load(args.config)
    options = config.mystem

    if args.mystem_path:
        options.path = args.mystem_path
    if args.lemma_only:
        options.lemma_only = True
    if args.disambiguation:
        options.disambiguation = True
    if args.eng_gr:
        options.english_grammemes = True
    if args.format:
        options.output_format = args.format
    return config


def main(argv=None) -> int:
    args = parse_args(argv)
    config = build_config(args)
    setup_logging(config.log)

    try:
        with MyStemSession(config.mystem, config.exchange) as session:
            lines = iter_lines(args.inputs)
            if args.workers > 1:
                # map 保持输入顺序；进程访问由会话锁串行化
                with ThreadPoolExecutor(max_workers=args.workers) as pool:
                    for result in pool.map(session.analyze, lines):
                        sys.stdout.write(result)
            else:
                for line in lines:
                    sys.stdout.write(session.analyze(line))
            sys.stdout.flush()

            if args.stats:
                session.log_stats()
    except MyStemError as e:
        logger.error(f"{e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
