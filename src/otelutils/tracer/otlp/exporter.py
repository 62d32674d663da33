# -*- coding: utf-8 -*-
"""
OTLP gRPC Trace 导出器

支持：
- 复用调用方已建立的 gRPC channel
- gzip / deflate 压缩
- 自定义 Headers、channel options、service config
- 替代 SDK 内置重试的导出重试策略
"""

import json
import logging
import threading
from typing import Any, Dict, List, Sequence, Tuple

import grpc
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.proto.collector.trace.v1.trace_service_pb2_grpc import TraceServiceStub
from opentelemetry.sdk.trace import ReadableSpan
from opentelemetry.sdk.trace.export import SpanExporter, SpanExportResult

from otelutils.config import DEFAULT_RETRY_POLICY, OtlpGrpcSpanExporterConfig, RetryPolicy
from otelutils.errors import ExporterConstructionError
from otelutils.time.backoff import ExponentialBackOff

logger = logging.getLogger(__name__)

COMPRESSIONS = {
    "gzip": grpc.Compression.Gzip,
    "deflate": grpc.Compression.Deflate,
    "none": grpc.Compression.NoCompression,
}

# 不会出现在 RpcError 中的状态码，传给 SDK 后导出只尝试一次
NO_RETRY_CODES = frozenset([grpc.StatusCode.OK])

# 设置 grpc_conn 后被忽略的连接相关字段
CONNECTION_FIELDS = (
    "endpoint",
    "insecure",
    "tls_credentials",
    "dial_options",
    "reconnection_period",
    "service_config",
)


class ChannelSpanExporter(OTLPSpanExporter):
    """
    使用调用方提供的 gRPC channel 发送 Span 的 OTLP 导出器

    导出器自己从不创建 channel，SDK 在 UNAVAILABLE 后重建连接时也只是
    重新绑定到调用方的 channel。调用方负责关闭该 channel，shutdown 不会关闭它。
    """

    def __init__(self, channel: grpc.Channel, **kwargs: Any):
        self._shared_channel = channel
        super().__init__(insecure=True, **kwargs)

    def _initialize_channel_and_stub(self) -> None:
        # _channel 为空，SDK 的 shutdown 和重连逻辑都不会关闭调用方的 channel
        self._channel = None
        self._client = TraceServiceStub(self._shared_channel)


class RetryingSpanExporter(SpanExporter):
    """
    按 RetryPolicy 重试失败批次的导出器

    导出失败后按指数退避等待并重新导出同一批 Span，
    直到成功、超过 max_elapsed_time 或导出器被关闭。
    """

    def __init__(self, exporter: SpanExporter, policy: RetryPolicy):
        self._exporter = exporter
        self._policy = policy
        self._shutdown_event = threading.Event()

    @property
    def exporter(self) -> SpanExporter:
        return self._exporter

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    def export(self, spans: Sequence[ReadableSpan]) -> SpanExportResult:
        backoff = ExponentialBackOff.from_policy(self._policy)
        while True:
            result = self._exporter.export(spans)
            if result == SpanExportResult.SUCCESS or self._shutdown_event.is_set():
                return result

            interval, should_continue = backoff.next_backoff()
            if not should_continue:
                logger.warning(
                    "Dropping %d spans after %d export attempts in %.2fs",
                    len(spans),
                    backoff.elapsed_count,
                    backoff.elapsed_time,
                )
                return result

            logger.warning("Span export failed, retrying in %.2fs", interval)
            if self._shutdown_event.wait(interval):
                return result

    def shutdown(self) -> None:
        self._shutdown_event.set()
        self._exporter.shutdown()

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        return self._exporter.force_flush(timeout_millis)


def get_compression(name: str) -> grpc.Compression:
    """
    将压缩算法名称转换为 grpc.Compression

    Raises:
        ExporterConstructionError: 未知的压缩算法
    """
    compression = COMPRESSIONS.get(name.lower())
    if compression is None:
        raise ExporterConstructionError(f"unknown gRPC compressor {name!r}")
    return compression


def get_channel_options(config: OtlpGrpcSpanExporterConfig) -> List[Tuple[str, Any]]:
    """
    将 dial_options、reconnection_period、service_config 转换为 gRPC channel options

    Raises:
        ExporterConstructionError: service_config 不是合法的 JSON
    """
    options = list(config.dial_options)
    if config.reconnection_period:
        options.append(
            ("grpc.max_reconnect_backoff_ms", int(config.reconnection_period * 1000))
        )
    if config.service_config:
        try:
            json.loads(config.service_config)
        except ValueError as e:
            raise ExporterConstructionError(f"invalid gRPC service config: {e}") from e
        options.append(("grpc.service_config", config.service_config))
    return options


def get_exporter_kwargs(config: OtlpGrpcSpanExporterConfig) -> Dict[str, Any]:
    """
    将配置转换为 OTLPSpanExporter 的构造参数

    只有非零值字段会产生参数，其余由 SDK 使用默认值。
    设置了 retry 时关闭 SDK 内部的重试，只保留一层重试。
    grpc_conn 设置时不产生任何连接相关参数。

    Args:
        config: OTLP gRPC 导出器配置

    Returns:
        构造参数字典
    """
    kwargs: Dict[str, Any] = {}
    if config.compressor:
        kwargs["compression"] = get_compression(config.compressor)
    if config.headers:
        kwargs["headers"] = dict(config.headers)
    if config.timeout:
        kwargs["timeout"] = config.timeout
    if config.retry is not None:
        # 设置了 retry 时由 RetryingSpanExporter 负责重试（或不重试），SDK 不再重试
        kwargs["retryable_error_codes"] = NO_RETRY_CODES

    if config.grpc_conn is not None:
        return kwargs

    if config.endpoint:
        kwargs["endpoint"] = config.endpoint
    if config.insecure:
        kwargs["insecure"] = True
    if config.tls_credentials is not None:
        kwargs["credentials"] = config.tls_credentials
    channel_options = get_channel_options(config)
    if channel_options:
        kwargs["channel_options"] = tuple(channel_options)
    return kwargs


def new_otlp_grpc_span_exporter(config: OtlpGrpcSpanExporterConfig) -> SpanExporter:
    """
    创建 OTLP gRPC 导出器

    Args:
        config: OTLP gRPC 导出器配置

    Returns:
        SpanExporter 实例；设置了启用的 retry 时为 RetryingSpanExporter

    Raises:
        ExporterConstructionError: 配置非法或 SDK 创建导出器失败

    示例:
        ```python
        exporter = new_otlp_grpc_span_exporter(
            OtlpGrpcSpanExporterConfig(
                endpoint="collector:4317",
                insecure=True,
                compressor="gzip",
                retry=RetryPolicy(max_elapsed_time="2m"),
            )
        )
        ```
    """
    kwargs = get_exporter_kwargs(config)

    if config.grpc_conn is not None:
        ignored = [name for name in CONNECTION_FIELDS if getattr(config, name)]
        if ignored:
            logger.debug("grpc_conn is set, ignoring fields: %s", ", ".join(ignored))

    try:
        if config.grpc_conn is not None:
            exporter: SpanExporter = ChannelSpanExporter(config.grpc_conn, **kwargs)
        else:
            exporter = OTLPSpanExporter(**kwargs)
    except (TypeError, ValueError, grpc.RpcError) as e:
        raise ExporterConstructionError(f"failed to create OTLP gRPC exporter: {e}") from e

    logger.info(
        "OTLP gRPC Trace exporter created: endpoint=%s, shared_channel=%s, compression=%s",
        config.endpoint or "<default>",
        config.grpc_conn is not None,
        config.compressor or "<default>",
    )

    if config.retry is None:
        return exporter

    policy = config.retry.apply(DEFAULT_RETRY_POLICY)
    if not policy.enabled:
        return exporter
    return RetryingSpanExporter(exporter, policy)
