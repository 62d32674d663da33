# -*- coding: utf-8 -*-
"""
Console / File Trace 导出器

将结束的 Span 以 JSON 写入输出流（默认标准输出）或文件。
"""

import json
import logging
import os
import sys
from typing import Any, Callable, Dict, TextIO

from opentelemetry.sdk.trace import ReadableSpan
from opentelemetry.sdk.trace.export import ConsoleSpanExporter

from otelutils.config import ConsoleSpanExporterConfig, FileSpanExporterConfig
from otelutils.errors import ExporterConstructionError

logger = logging.getLogger(__name__)

# 格式化输出时的缩进
PRETTY_PRINT_INDENT = 4


def _strip_timestamps(data: Dict[str, Any]) -> None:
    data.pop("start_time", None)
    data.pop("end_time", None)
    for event in data.get("events") or []:
        event.pop("timestamp", None)


def span_formatter(pretty_print: bool, timestamps: bool) -> Callable[[ReadableSpan], str]:
    """
    创建 Span 格式化函数

    Args:
        pretty_print: 是否缩进输出，否则每个 Span 一行
        timestamps: 是否保留 start_time / end_time / 事件 timestamp

    Returns:
        供 ConsoleSpanExporter 使用的 formatter
    """
    indent = PRETTY_PRINT_INDENT if pretty_print else None

    def formatter(span: ReadableSpan) -> str:
        data = json.loads(span.to_json(indent=None))
        if not timestamps:
            _strip_timestamps(data)
        return json.dumps(data, indent=indent) + os.linesep

    return formatter


class FileSpanExporter(ConsoleSpanExporter):
    """写入自己打开的文件，shutdown 时关闭文件"""

    def __init__(self, out: TextIO, formatter: Callable[[ReadableSpan], str]):
        super().__init__(out=out, formatter=formatter)
        self._file = out

    def shutdown(self) -> None:
        if not self._file.closed:
            self._file.close()


def new_console_span_exporter(config: ConsoleSpanExporterConfig) -> ConsoleSpanExporter:
    """
    创建 Console 导出器

    config.writer 为空时写入 sys.stdout。

    Args:
        config: Console 导出器配置

    Returns:
        ConsoleSpanExporter 实例
    """
    out = config.writer if config.writer is not None else sys.stdout
    exporter = ConsoleSpanExporter(
        out=out,
        formatter=span_formatter(config.pretty_print, config.timestamps),
    )

    logger.info(
        "Console Trace exporter created: pretty_print=%s, timestamps=%s",
        config.pretty_print,
        config.timestamps,
    )

    return exporter


def new_file_span_exporter(config: FileSpanExporterConfig) -> FileSpanExporter:
    """
    创建 File 导出器

    创建（或截断）config.filename 后按 Console 导出器的格式写入。

    Raises:
        ExporterConstructionError: 文件无法创建
    """
    try:
        out = open(config.filename, "w", encoding="utf-8")
    except OSError as e:
        raise ExporterConstructionError(
            f"failed to create span file {config.filename!r}: {e}"
        ) from e

    exporter = FileSpanExporter(
        out=out,
        formatter=span_formatter(config.pretty_print, config.timestamps),
    )

    logger.info("File Trace exporter created: filename=%s", config.filename)

    return exporter
