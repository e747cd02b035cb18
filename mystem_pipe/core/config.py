#!/usr/bin/env python3
"""
配置管理

使用 YAML 配置文件，支持环境变量覆盖。
MyStem 启动参数和管道交换协议的可调参数都集中在这里。
"""
import os
import shutil
import yaml
from dataclasses import dataclass, field, asdict
from typing import Optional, List, Dict, Any
from pathlib import Path

from mystem_pipe.core.errors import OptionsError


OUTPUT_FORMATS = ("text", "xml", "json")


@dataclass
class MyStemOptions:
    """MyStem 进程选项

    对应 mystem 命令行开关，负责生成参数列表和解析可执行文件路径。
    """
    path: Optional[str] = None  # None=从 PATH 查找 mystem

    line_by_line: bool = True  # -n，流式读取依赖逐行输出
    copy_input: bool = False  # -c
    dictionary_only: bool = False  # -w
    lemma_only: bool = False  # -l
    grammar_info: bool = True  # -i
    glue_grammar: bool = False  # -g
    sentence_marks: bool = False  # -s
    disambiguation: bool = False  # -d
    encoding: str = "utf-8"  # -e
    output_format: str = "text"  # --format
    english_grammemes: bool = False  # --eng-gr
    weights: bool = False  # --weight
    generate_all: bool = False  # --generate-all
    fixlist: Optional[str] = None  # --fixlist

    def get_arguments(self) -> List[str]:
        """
        生成 mystem 命令行参数

        Returns:
            参数列表（不含可执行文件本身）
        """
        switches = [
            (self.line_by_line, "-n"),
            (self.copy_input, "-c"),
            (self.dictionary_only, "-w"),
            (self.lemma_only, "-l"),
            (self.grammar_info, "-i"),
            (self.glue_grammar, "-g"),
            (self.sentence_marks, "-s"),
            (self.disambiguation, "-d"),
        ]
        args = [flag for enabled, flag in switches if enabled]

        if self.encoding:
            args += ["-e", self.encoding]
        if self.output_format != "text":
            args += ["--format", self.output_format]
        if self.english_grammemes:
            args.append("--eng-gr")
        if self.weights:
            args.append("--weight")
        if self.generate_all:
            args.append("--generate-all")
        if self.fixlist:
            args += ["--fixlist", self.fixlist]
        return args

    def resolve_path(self) -> str:
        """
        解析 mystem 可执行文件路径

        Returns:
            配置的路径；未配置时返回 PATH 中找到的 mystem（找不到则原样返回 "mystem"）
        """
        if self.path:
            return self.path
        return shutil.which("mystem") or "mystem"

    def validate(self):
        """
        校验选项

        Raises:
            OptionsError: 未开启逐行输出，或输出格式未知
        """
        if not self.line_by_line:
            raise OptionsError(
                "MyStem options must enable line_by_line (-n): "
                "response framing relies on line-delimited output"
            )
        if self.output_format not in OUTPUT_FORMATS:
            raise OptionsError(
                f"Unknown output format '{self.output_format}', "
                f"expected one of {', '.join(OUTPUT_FORMATS)}"
            )


@dataclass
class ExchangeConfig:
    """管道交换配置"""
    read_timeout: float = 0.05  # 排空阶段单次读取超时（秒）
    max_length: int = 4096  # 累计处理字符数超过后重启进程
    total_buffer_factor: float = 3.0  # 响应缓冲区预估 = 输入长度 × 系数
    step_buffer_factor: float = 2.2  # 单次读取上限 = 输入长度 × 系数
    end_string: str = "\nъъ"  # 追加到请求末尾的结束标记
    end_replace_string: str = "ъъ??\r\n"  # 从响应中删除的回显噪声
    output_encoding: str = "utf-8"
    drain_timeout_limit: int = 1  # 连续超时多少次后视为读完
    pipe_chunk_size: int = 4096  # 管道单次原始读取字节数


@dataclass
class LogConfig:
    """日志配置"""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[str] = None


@dataclass
class Config:
    """总配置"""
    mystem: MyStemOptions = field(default_factory=MyStemOptions)
    exchange: ExchangeConfig = field(default_factory=ExchangeConfig)
    log: LogConfig = field(default_factory=LogConfig)

    # 环境变量覆盖
    debug: bool = False

    @classmethod
    def load(cls, path: str = "configs/default.yaml") -> 'Config':
        """从 YAML 文件加载配置

        Args:
            path: 配置文件路径

        Returns:
            Config 对象（文件不存在时使用默认值）
        """
        if not os.path.exists(path):
            return cls.from_dict({})

        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Config':
        """从字典创建"""
        mystem_data = dict(data.get("mystem") or {})
        exchange_data = data.get("exchange") or {}
        log_data = data.get("log") or {}

        env_path = os.getenv("MYSTEM_PATH")
        if env_path:
            mystem_data["path"] = env_path

        debug = os.getenv("MYSTEM_DEBUG", "").lower() == "1"
        log = LogConfig(**log_data)
        if debug:
            log.level = "DEBUG"

        return cls(
            mystem=MyStemOptions(**mystem_data),
            exchange=ExchangeConfig(**exchange_data),
            log=log,
            debug=debug,
        )

    def save(self, path: str):
        """保存配置到 YAML

        Args:
            path: 保存路径
        """
        data = {
            "mystem": asdict(self.mystem),
            "exchange": asdict(self.exchange),
            "log": asdict(self.log),
        }
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            yaml.dump(data, f, allow_unicode=True, default_flow_style=False)


# 未显式传入选项的会话共用的默认配置
DEFAULT_CONFIG_PATH = "configs/default.yaml"
_config: Optional[Config] = None
_config_path = DEFAULT_CONFIG_PATH


def get_config() -> Config:
    """取默认配置，首次调用时从 DEFAULT_CONFIG_PATH 加载"""
    global _config
    if _config is None:
        _config = Config.load(_config_path)
    return _config


def set_config(config: Config):
    """替换默认配置（只影响之后创建的会话）"""
    global _config
    _config = config


def reload_config(path: Optional[str] = None) -> Config:
    """
    从 YAML 重新读取默认配置

    已经创建的会话持有旧的 options/exchange，不受影响。

    Args:
        path: 配置路径，None 表示沿用上一次的路径

    Returns:
        新的默认配置
    """
    global _config, _config_path
    if path is not None:
        _config_path = path
    _config = Config.load(_config_path)
    return _config
