#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
OpenTelemetry 使用示例

演示如何使用 otelutils：
1. 使用导出器配置安装 Tracer
2. 从 YAML 配置文件按导出器名称初始化
3. 使用 start_span / mark_error / mark_ok 创建 Span
4. 通过 TRACEPARENT 把追踪上下文传给子进程
"""

import logging
import os
import subprocess
import sys
from pathlib import Path

# ========== 1. 使用导出器配置安装 Tracer ==========


def example_with_config():
    """使用 Console 导出器安装 Tracer"""
    from otelutils import ConsoleSpanExporterConfig, ResourceConfig, install_tracer

    tracer = install_tracer(
        exporter_config=ConsoleSpanExporterConfig(pretty_print=True),
        resource_config=ResourceConfig(
            attributes={"service.name": "my-cli", "service.version": "1.0.0"},
            host=True,
            process_pid=True,
        ),
    )

    print("Tracer installed with console exporter")
    return tracer


def example_with_otlp():
    """使用 OTLP 导出"""
    from otelutils import OtlpGrpcSpanExporterConfig, ResourceConfig, RetryPolicy, install_tracer

    tracer = install_tracer(
        exporter_config=OtlpGrpcSpanExporterConfig(
            endpoint="localhost:4317",
            insecure=True,
            compressor="gzip",
            headers={"x-team": "infra"},
            timeout="10s",
            retry=RetryPolicy(max_elapsed_time="2m"),
        ),
        resource_config=ResourceConfig(attributes={"service.name": "my-cli"}, os=True),
    )

    print("Tracer installed with OTLP exporter")
    return tracer


# ========== 2. 从 YAML 配置文件初始化 ==========


def example_from_config_file():
    """从 YAML 配置文件读取 OTLP 端点"""
    from otelutils import OpenTelemetryService

    config_file = Path(__file__).parent / "config.yaml"
    service = OpenTelemetryService.from_config_file(str(config_file))
    service.install("my-cli", "otlp")

    print("OpenTelemetry initialized from config file")
    return service


# ========== 3. 创建 Span ==========


def example_span():
    """创建 Span 并标记状态"""
    from otelutils import mark_error, mark_ok, start_span

    ctx, root = start_span(None, "main")

    _, child = start_span(ctx, "load-config", attributes={"path": "config.yaml"})
    try:
        raise FileNotFoundError("config.yaml")
    except FileNotFoundError as e:
        mark_error(child, e)
    finally:
        child.end()

    mark_ok(root)
    print("Span examples completed")
    return ctx, root


# ========== 4. 传递追踪上下文给子进程 ==========


def example_subprocess(ctx):
    """子进程通过 TRACEPARENT 环境变量继续同一条链路"""
    from otelutils import get_traceparent_env

    key, _, value = get_traceparent_env(ctx).partition("=")
    env = dict(os.environ, **{key: value})
    code = (
        "from opentelemetry import trace\n"
        "from otelutils import context_from_traceparent_env\n"
        "ctx = context_from_traceparent_env()\n"
        "print('child trace id:', format(trace.get_current_span(ctx).get_span_context().trace_id, '032x'))\n"
    )
    subprocess.run([sys.executable, "-c", code], env=env, check=True)


# ========== Main ==========


def main():
    """主函数"""
    logging.basicConfig(level=logging.INFO)

    print("=" * 50)
    print("OpenTelemetry Examples")
    print("=" * 50)

    # 使用 stdout 导出器演示（方便查看输出）
    tracer = example_with_config()

    print("\n--- Span Examples ---")
    ctx, root = example_span()

    print("\n--- Subprocess Examples ---")
    example_subprocess(ctx)
    root.end()

    print("\n--- Shutdown ---")
    tracer.shutdown()

    print("\nAll examples completed!")


if __name__ == "__main__":
    main()
