# -*- coding: utf-8 -*-
"""
OpenTelemetry Tracer 核心实现

提供：
- TracerProvider 创建、注册和关闭
- 全局 TextMap Propagator（trace-context + baggage）安装
- Tracer 访问
"""

import logging
from typing import Optional

from opentelemetry import propagate, trace
from opentelemetry.baggage.propagation import W3CBaggagePropagator
from opentelemetry.propagators.composite import CompositePropagator
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator

from otelutils.config import ResourceConfig, SpanExporterConfig
from otelutils.errors import FlushError, ShutdownError
from otelutils.resource.resource import new_resource
from otelutils.tracer.exporter import new_span_exporter
from otelutils.tracer.provider import register_global_provider, unregister_global_provider

logger = logging.getLogger(__name__)

# 默认批量导出间隔（毫秒）
DEFAULT_BATCH_TIMEOUT_MS = 5000
# 默认刷新 / 关闭超时（毫秒）
DEFAULT_SHUTDOWN_TIMEOUT_MS = 30000


def install_propagator() -> None:
    """安装全局 Propagator，同时支持 traceparent/tracestate 与 baggage"""
    propagate.set_global_textmap(
        CompositePropagator(
            [TraceContextTextMapPropagator(), W3CBaggagePropagator()]
        )
    )


class Tracer:
    """
    Tracer 管理器

    持有 TracerProvider 的句柄，负责：
    - 根据 ResourceConfig 和导出器配置创建 TracerProvider
    - 设置全局 TracerProvider 和 Propagator
    - 刷新并关闭 TracerProvider

    示例:
        ```python
        tracer = Tracer(
            exporter_config=OtlpGrpcSpanExporterConfig(endpoint="collector:4317", insecure=True),
            resource_config=ResourceConfig(attributes={"service.name": "my-cli"}, host=True),
        )
        provider = tracer.install()
        ...
        tracer.shutdown()
        ```
    """

    def __init__(
        self,
        exporter_config: SpanExporterConfig,
        resource_config: Optional[ResourceConfig] = None,
        register_global: bool = True,
        batch_timeout_ms: int = DEFAULT_BATCH_TIMEOUT_MS,
    ):
        """
        初始化 Tracer

        Args:
            exporter_config: 导出器配置
            resource_config: Resource 配置，默认全部关闭
            register_global: 是否注册为全局 TracerProvider 并安装全局 Propagator
            batch_timeout_ms: 批量导出间隔（毫秒）
        """
        self._exporter_config = exporter_config
        self._resource_config = resource_config or ResourceConfig()
        self._register_global = register_global
        self._batch_timeout_ms = batch_timeout_ms
        self._provider: Optional[TracerProvider] = None

    def install(self) -> TracerProvider:
        """
        安装 TracerProvider

        先创建 Resource，再创建导出器，任一步失败都直接抛出，
        此时不会注册任何全局状态。

        Returns:
            TracerProvider 实例

        Raises:
            ResourceDetectionError: Resource 创建失败
            ExporterConstructionError: 导出器创建失败
        """
        if self._provider is not None:
            logger.warning("Tracer already installed")
            return self._provider

        resource = new_resource(self._resource_config)
        exporter = new_span_exporter(self._exporter_config)

        provider = TracerProvider(resource=resource)
        provider.add_span_processor(
            BatchSpanProcessor(exporter, schedule_delay_millis=self._batch_timeout_ms)
        )

        if self._register_global:
            register_global_provider(provider)
            install_propagator()

        self._provider = provider

        logger.info(
            "Tracer installed: exporter=%s, register_global=%s, batch_timeout=%dms",
            self._exporter_config.kind,
            self._register_global,
            self._batch_timeout_ms,
        )

        return provider

    def shutdown(self, timeout_millis: int = DEFAULT_SHUTDOWN_TIMEOUT_MS) -> None:
        """
        刷新并关闭 TracerProvider

        刷新失败时抛出 FlushError 并且不再尝试关闭。
        未安装或已关闭时什么也不做。

        Raises:
            FlushError: 缓存的 Span 未能在超时内导出
            ShutdownError: 关闭失败
        """
        if self._provider is None:
            logger.warning("Tracer is not installed, skip shutdown")
            return

        if not self._provider.force_flush(timeout_millis):
            raise FlushError(f"failed to flush spans within {timeout_millis}ms")

        if self._register_global:
            unregister_global_provider(self._provider)

        try:
            self._provider.shutdown()
        except Exception as e:
            raise ShutdownError(f"failed to shutdown tracer provider: {e}") from e

        self._provider = None
        logger.info("Tracer shutdown completed")

    @property
    def provider(self) -> Optional[TracerProvider]:
        """获取 TracerProvider，未安装时为 None"""
        return self._provider

    @property
    def installed(self) -> bool:
        return self._provider is not None


def install_tracer(
    exporter_config: SpanExporterConfig,
    resource_config: Optional[ResourceConfig] = None,
    register_global: bool = True,
    batch_timeout_ms: int = DEFAULT_BATCH_TIMEOUT_MS,
) -> Tracer:
    """
    快捷函数：创建并安装 Tracer

    Returns:
        已安装的 Tracer 句柄，用于之后的 shutdown
    """
    tracer = Tracer(
        exporter_config=exporter_config,
        resource_config=resource_config,
        register_global=register_global,
        batch_timeout_ms=batch_timeout_ms,
    )
    tracer.install()
    return tracer


def get_tracer(
    name: str,
    version: str = "",
    schema_url: str = "",
    tracer_provider: Optional[trace.TracerProvider] = None,
) -> trace.Tracer:
    """
    获取 Tracer 实例

    Args:
        name: Tracer 名称（通常是模块名）
        version: 版本
        schema_url: Schema URL
        tracer_provider: 指定的 TracerProvider，默认使用全局 Provider

    Returns:
        Tracer 实例；没有注册任何 Provider 时为 no-op Tracer
    """
    return trace.get_tracer(
        name,
        version or None,
        tracer_provider=tracer_provider,
        schema_url=schema_url or None,
    )
