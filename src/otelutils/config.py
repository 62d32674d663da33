# -*- coding: utf-8 -*-
"""
otelutils 配置模块

提供：
- 导出器配置（Console、File、OTLP gRPC），以 kind 字段区分的联合类型
- 重试策略配置
- Resource 配置
- 外部配置（YAML 文件 / 环境变量）加载
"""

import os
import re
from typing import Any, Dict, List, Literal, Mapping, Optional, Tuple, Union

import grpc
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, TypeAdapter, field_validator
from typing_extensions import Annotated

_DURATION_PART_RE = re.compile(r"(\d+(?:\.\d+)?)\s*(ms|us|h|m|s)", re.IGNORECASE)
_DURATION_RE = re.compile(r"(?:\d+(?:\.\d+)?\s*(?:ms|us|h|m|s)\s*)+", re.IGNORECASE)


def parse_duration(value: Union[str, int, float, None]) -> float:
    """
    解析时间字符串为秒数

    支持格式：
    - 纯数字：直接作为秒数
    - "30s"：30 秒
    - "5m"：5 分钟
    - "1h"：1 小时
    - "1h30m"：1 小时 30 分钟
    - "100ms"：100 毫秒

    负数或无法解析时返回 0.0（即"未设置"）。

    Args:
        value: 时间值

    Returns:
        秒数（float）
    """
    if isinstance(value, bool):
        return 0.0

    if isinstance(value, (int, float)):
        return float(value) if value > 0 else 0.0

    if not isinstance(value, str):
        return 0.0

    value = value.strip()
    if not value:
        return 0.0

    # 纯数字
    if value.isdigit() or value.replace(".", "", 1).isdigit():
        return float(value)

    multipliers = {
        "h": 3600.0,
        "m": 60.0,
        "s": 1.0,
        "ms": 0.001,
        "us": 0.000001,
    }

    # 整个字符串必须由 <数字><单位> 组成，负号和未知单位都视为非法
    if not _DURATION_RE.fullmatch(value):
        return 0.0
    matches = _DURATION_PART_RE.findall(value)

    total_seconds = 0.0
    for number, unit in matches:
        total_seconds += float(number) * multipliers[unit.lower()]

    return total_seconds


def _parse_optional_duration(value: Any) -> Optional[float]:
    if value is None:
        return None
    return parse_duration(value)


class _FrozenConfig(BaseModel):
    """不可变配置基类：构造后只读，允许 writer / gRPC channel 等任意类型"""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True, extra="forbid")


# ========== 重试策略 ==========


class RetryPolicy(_FrozenConfig):
    """
    OTLP 导出重试策略

    每个字段都是可选的覆盖项，None 表示沿用基础策略中的值。
    """

    enabled: Optional[bool] = Field(default=None, description="是否在导出失败时重试")
    initial_interval: Optional[float] = Field(default=None, description="首次失败后的等待时间（秒）")
    max_interval: Optional[float] = Field(default=None, description="退避间隔上限（秒）")
    max_elapsed_time: Optional[float] = Field(default=None, description="单个批次重试的总时长上限（秒）")

    @field_validator("initial_interval", "max_interval", "max_elapsed_time", mode="before")
    @classmethod
    def _parse_intervals(cls, value: Any) -> Optional[float]:
        return _parse_optional_duration(value)

    def apply(self, base: "RetryPolicy") -> "RetryPolicy":
        """
        将本策略中已设置的字段覆盖到 base 上

        Args:
            base: 基础策略

        Returns:
            新的 RetryPolicy（base 不会被修改）
        """
        overrides = self.model_dump(exclude_none=True)
        return base.model_copy(update=overrides)


# 默认重试策略：失败 5 秒后重试，指数递增，间隔不超过 30 秒，总时长不超过 1 分钟
DEFAULT_RETRY_POLICY = RetryPolicy(
    enabled=True,
    initial_interval=5.0,
    max_interval=30.0,
    max_elapsed_time=60.0,
)


# ========== 导出器配置 ==========


class ConsoleSpanExporterConfig(_FrozenConfig):
    """
    Console 导出器配置

    将结束的 Span 以 JSON 写入 writer，writer 为空时写入标准输出。
    """

    kind: Literal["console"] = "console"
    pretty_print: bool = Field(default=False, description="是否格式化（缩进）输出")
    timestamps: bool = Field(default=False, description="输出中是否包含时间戳")
    writer: Optional[Any] = Field(default=None, description="输出流，默认 sys.stdout")

    @field_validator("writer")
    @classmethod
    def _check_writer(cls, value: Any) -> Any:
        if value is not None and not callable(getattr(value, "write", None)):
            raise ValueError("writer must provide a write() method")
        return value


class FileSpanExporterConfig(_FrozenConfig):
    """File 导出器配置：创建（截断）文件后按 Console 导出器的方式写入"""

    kind: Literal["file"] = "file"
    filename: str = Field(min_length=1, description="输出文件路径")
    pretty_print: bool = Field(default=False, description="是否格式化（缩进）输出")
    timestamps: bool = Field(default=False, description="输出中是否包含时间戳")


class OtlpGrpcSpanExporterConfig(_FrozenConfig):
    """
    OTLP gRPC 导出器配置

    所有字段的零值（空字符串、False、0、空集合、None）都表示不设置，
    由 OpenTelemetry SDK 使用自己的默认值。

    grpc_conn 一旦设置，endpoint / insecure / tls_credentials / dial_options /
    reconnection_period / service_config 全部被忽略，连接的关闭由调用方负责。
    """

    kind: Literal["otlp"] = "otlp"
    compressor: str = Field(default="", description="压缩算法（gzip/deflate/none）")
    dial_options: List[Tuple[str, Any]] = Field(
        default_factory=list, description="gRPC channel options"
    )
    endpoint: str = Field(default="", description="OTLP 端点地址，SDK 默认 localhost:4317")
    grpc_conn: Optional[grpc.Channel] = Field(default=None, description="已建立的 gRPC 连接")
    headers: Dict[str, str] = Field(default_factory=dict, description="每个请求携带的 metadata")
    insecure: bool = Field(default=False, description="是否禁用 TLS")
    reconnection_period: float = Field(default=0.0, description="两次重连之间的最长间隔（秒）")
    retry: Optional[RetryPolicy] = Field(default=None, description="重试策略覆盖项")
    service_config: str = Field(default="", description="gRPC service config（JSON）")
    tls_credentials: Optional[grpc.ChannelCredentials] = Field(
        default=None, description="TLS 证书"
    )
    timeout: float = Field(default=0.0, description="单次导出超时（秒），SDK 默认 10 秒")

    @field_validator("reconnection_period", "timeout", mode="before")
    @classmethod
    def _parse_durations(cls, value: Any) -> float:
        return parse_duration(value)


SpanExporterConfig = Union[
    ConsoleSpanExporterConfig,
    FileSpanExporterConfig,
    OtlpGrpcSpanExporterConfig,
]

_span_exporter_config_adapter: TypeAdapter = TypeAdapter(
    Annotated[SpanExporterConfig, Field(discriminator="kind")]
)


def parse_span_exporter_config(data: Mapping[str, Any]) -> SpanExporterConfig:
    """
    从字典（如 YAML 内容）解析导出器配置

    根据 kind 字段选择具体的配置类型。

    Args:
        data: 配置字典，例如 {"kind": "otlp", "endpoint": "collector:4317"}

    Returns:
        对应的导出器配置
    """
    return _span_exporter_config_adapter.validate_python(dict(data))


# ========== Resource 配置 ==========


class ResourceConfig(_FrozenConfig):
    """
    Resource 配置

    所有 Resource 都会带上 schema URL 和 telemetry.sdk.* 属性，
    其余属性由下列开关各自独立决定是否添加。

    警告：process / process_command_args 会把命令行参数写入 Resource，
    命令行里有敏感信息时不要开启。
    """

    attributes: Dict[str, Any] = Field(default_factory=dict, description="自定义属性")
    container: bool = Field(default=False, description="添加全部 container.* 属性")
    container_id: bool = Field(default=False, description="添加 container.id")
    from_env: bool = Field(default=False, description="读取 OTEL_RESOURCE_ATTRIBUTES")
    host: bool = Field(default=False, description="添加 host.* 属性")
    os: bool = Field(default=False, description="添加全部 os.* 属性")
    os_description: bool = Field(default=False, description="添加 os.description / os.version")
    os_type: bool = Field(default=False, description="添加 os.type")
    process: bool = Field(default=False, description="添加全部 process.* 属性")
    process_command_args: bool = Field(default=False, description="添加 process.command_args")
    process_executable_name: bool = Field(default=False, description="添加 process.executable.name")
    process_executable_path: bool = Field(default=False, description="添加 process.executable.path")
    process_owner: bool = Field(default=False, description="添加 process.owner")
    process_pid: bool = Field(default=False, description="添加 process.pid")
    process_runtime_description: bool = Field(
        default=False, description="添加 process.runtime.description"
    )
    process_runtime_name: bool = Field(default=False, description="添加 process.runtime.name")
    process_runtime_version: bool = Field(default=False, description="添加 process.runtime.version")

    # 暂未对外暴露
    _detectors: list = PrivateAttr(default_factory=list)


# ========== 外部配置 ==========


class TracingSettings(BaseModel):
    """旧版初始化入口（按导出器名称初始化）使用的外部配置"""

    otel_exporter_otlp_endpoint: str = Field(default="", description="OTLP 端点地址")
    otel_exporter_otlp_insecure: bool = Field(default=False, description="OTLP 是否禁用 TLS")
    otel_file_span_exporter_name: str = Field(
        default="spans.json", description="File 导出器输出文件名"
    )


# 环境变量到配置字段的映射
ENV_MAPPINGS = {
    "OTEL_EXPORTER_OTLP_ENDPOINT": "otel_exporter_otlp_endpoint",
    "OTEL_EXPORTER_OTLP_INSECURE": "otel_exporter_otlp_insecure",
    "OTEL_FILE_SPAN_EXPORTER_NAME": "otel_file_span_exporter_name",
}


def load_settings(
    config_file: Optional[str] = None,
    config_dict: Optional[Dict[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> TracingSettings:
    """
    加载外部配置

    优先级：环境变量 > config_dict > config_file > 默认值

    Args:
        config_file: YAML 配置文件路径
        config_dict: 配置字典
        environ: 环境变量，默认 os.environ

    Returns:
        TracingSettings 实例
    """
    data: Dict[str, Any] = {}

    # 1. 从文件加载
    if config_file and os.path.exists(config_file):
        import yaml

        with open(config_file, "r", encoding="utf-8") as f:
            file_data = yaml.safe_load(f) or {}
        data.update(_select_root(file_data))

    # 2. 合并字典配置
    if config_dict:
        data.update(_select_root(config_dict))

    # 3. 从环境变量覆盖
    if environ is None:
        environ = os.environ
    for env_var, key in ENV_MAPPINGS.items():
        value = environ.get(env_var)
        if value is not None:
            data[key] = value

    return TracingSettings(**data)


def _select_root(data: Dict[str, Any]) -> Dict[str, Any]:
    """支持 otelutils 或 opentelemetry 作为根键"""
    return data.get("otelutils") or data.get("opentelemetry") or data
