# -*- coding: utf-8 -*-
"""
OpenTelemetry Resource 模块

提供资源属性管理，包括：
- schema URL 与 telemetry.sdk.* 属性（总是添加）
- container / host / os / process 属性（按开关添加，由 SDK 检测器采集）
- OTEL_RESOURCE_ATTRIBUTES 环境变量属性
"""

from otelutils.resource.resource import (
    SCHEMA_URL,
    AttributesDetector,
    KeyFilterDetector,
    detect_resource,
    get_detectors,
    new_resource,
)

__all__ = [
    "SCHEMA_URL",
    "AttributesDetector",
    "KeyFilterDetector",
    "detect_resource",
    "get_detectors",
    "new_resource",
]
