# -*- coding: utf-8 -*-
"""
OpenTelemetry Service 服务类

提供：
- 按导出器名称（console / file / otlp）初始化的入口
- 从 YAML 配置文件、字典或环境变量读取导出器参数
- 进程级默认服务（otel_init / otel_end）
"""

import logging
from typing import Any, Dict, Optional, Tuple

from opentelemetry.context import Context
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.semconv.resource import ResourceAttributes
from opentelemetry.trace import Span

from otelutils.config import (
    ConsoleSpanExporterConfig,
    FileSpanExporterConfig,
    OtlpGrpcSpanExporterConfig,
    ResourceConfig,
    SpanExporterConfig,
    TracingSettings,
    load_settings,
)
from otelutils.errors import UnsupportedExporterError
from otelutils.span import start_span
from otelutils.tracer.tracer import Tracer

logger = logging.getLogger(__name__)

# 支持的导出器名称
FILE_EXPORTER = "file"
CONSOLE_EXPORTER = "console"
OTLP_EXPORTER = "otlp"


def exporter_config_from_kind(kind: str, settings: TracingSettings) -> SpanExporterConfig:
    """
    将导出器名称转换为导出器配置

    Args:
        kind: console / file / otlp
        settings: 外部配置（文件名、OTLP 端点）

    Returns:
        对应的导出器配置

    Raises:
        UnsupportedExporterError: 未实现的导出器名称
    """
    if kind == CONSOLE_EXPORTER:
        return ConsoleSpanExporterConfig()
    if kind == FILE_EXPORTER:
        return FileSpanExporterConfig(filename=settings.otel_file_span_exporter_name)
    if kind == OTLP_EXPORTER:
        return OtlpGrpcSpanExporterConfig(
            endpoint=settings.otel_exporter_otlp_endpoint,
            insecure=settings.otel_exporter_otlp_insecure,
        )
    raise UnsupportedExporterError(kind)


class OpenTelemetryService:
    """
    OpenTelemetry 服务

    按服务名和导出器名称安装 Tracer，导出器参数来自外部配置。

    示例:
        ```python
        service = OpenTelemetryService.from_config_file("config.yaml")
        service.install("my-cli", "otlp")
        ctx, span = service.start_span(None, "main")
        ...
        span.end()
        service.shutdown()
        ```
    """

    def __init__(self, settings: Optional[TracingSettings] = None, register_global: bool = True):
        """
        初始化 OpenTelemetry 服务

        Args:
            settings: 外部配置，默认从环境变量加载
            register_global: 是否注册为全局 TracerProvider
        """
        self._settings = settings if settings is not None else load_settings()
        self._register_global = register_global
        self._service_name = ""
        self._tracer: Optional[Tracer] = None

    @classmethod
    def from_config_file(cls, config_file: str) -> "OpenTelemetryService":
        """从 YAML 配置文件创建（环境变量优先）"""
        return cls(load_settings(config_file=config_file))

    @classmethod
    def from_config_dict(cls, config_dict: Dict[str, Any]) -> "OpenTelemetryService":
        """从配置字典创建（环境变量优先）"""
        return cls(load_settings(config_dict=config_dict))

    def install(self, service_name: str, exporter_kind: str) -> TracerProvider:
        """
        安装 Tracer

        service_name 会作为 service.name 写入 Resource，并作为 Tracer 名称。

        Args:
            service_name: 服务名称
            exporter_kind: console / file / otlp

        Returns:
            TracerProvider 实例

        Raises:
            UnsupportedExporterError: 未实现的导出器名称
            ExporterConstructionError: 导出器创建失败
            ResourceDetectionError: Resource 创建失败
        """
        exporter_config = exporter_config_from_kind(exporter_kind, self._settings)
        resource_config = ResourceConfig(
            attributes={ResourceAttributes.SERVICE_NAME: service_name}
        )

        tracer = Tracer(
            exporter_config=exporter_config,
            resource_config=resource_config,
            register_global=self._register_global,
        )
        provider = tracer.install()

        self._service_name = service_name
        self._tracer = tracer

        logger.info(
            "OpenTelemetry service installed: service_name=%s, exporter=%s",
            service_name,
            exporter_kind,
        )

        return provider

    def start_span(
        self, parent_context: Optional[Context], name: str, **kwargs: Any
    ) -> Tuple[Context, Span]:
        """以服务名作为 Tracer 名称创建子 Span"""
        return start_span(
            parent_context,
            name,
            tracer_provider=self.tracer_provider,
            tracer_name=self._service_name or None,
            **kwargs,
        )

    def shutdown(self) -> None:
        """刷新并关闭 TracerProvider，未安装时什么也不做"""
        if self._tracer is None:
            return
        self._tracer.shutdown()
        self._tracer = None
        logger.info("OpenTelemetry service shutdown completed")

    @property
    def settings(self) -> TracingSettings:
        return self._settings

    @property
    def service_name(self) -> str:
        return self._service_name

    @property
    def tracer_provider(self) -> Optional[TracerProvider]:
        """获取 TracerProvider，未安装时为 None"""
        if self._tracer is None:
            return None
        return self._tracer.provider


# 进程级默认服务
_default_service: Optional[OpenTelemetryService] = None


def otel_init(
    name: str,
    exporter_kind: str,
    settings: Optional[TracingSettings] = None,
) -> TracerProvider:
    """
    初始化进程级默认服务

    重复调用会直接替换之前的服务，之前的服务不会被刷新或关闭。

    Args:
        name: 服务名称
        exporter_kind: console / file / otlp
        settings: 外部配置，默认从环境变量加载

    Returns:
        TracerProvider 实例
    """
    global _default_service

    service = OpenTelemetryService(settings)
    provider = service.install(name, exporter_kind)

    if _default_service is not None:
        logger.warning("Replacing an initialized OpenTelemetry service without shutting it down")
    _default_service = service

    return provider


def otel_end() -> None:
    """刷新并关闭进程级默认服务，未初始化时什么也不做"""
    global _default_service

    if _default_service is None:
        return
    service = _default_service
    service.shutdown()
    _default_service = None


def get_default_service() -> Optional[OpenTelemetryService]:
    """获取进程级默认服务"""
    return _default_service
