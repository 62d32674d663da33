# -*- coding: utf-8 -*-
"""
OpenTelemetry Resource 实现

提供：
- 按 ResourceConfig 开关选择的 SDK 检测器（container、host、os、process）
- 单个属性开关：运行同一个检测器，只保留对应的属性
- 从 OTEL_RESOURCE_ATTRIBUTES 读取属性
- 与 SDK 默认 Resource 合并
"""

import logging
from typing import Any, Callable, Iterable, List, Mapping

from opentelemetry.resource.detector.containerid import ContainerResourceDetector
from opentelemetry.sdk.resources import (
    OsResourceDetector,
    OTELResourceDetector,
    ProcessResourceDetector,
    Resource,
    ResourceDetector,
    _HostResourceDetector,
)
from opentelemetry.sdk.version import __version__ as sdk_version
from opentelemetry.semconv.resource import ResourceAttributes

from otelutils.config import ResourceConfig
from otelutils.errors import ResourceDetectionError

logger = logging.getLogger(__name__)

# 所有 Resource 使用的 schema URL
SCHEMA_URL = "https://opentelemetry.io/schemas/1.12.0"


class AttributesDetector(ResourceDetector):
    """返回固定属性的检测器"""

    def __init__(self, attributes: Mapping[str, Any], schema_url: str = ""):
        super().__init__(raise_on_error=True)
        self._attributes = dict(attributes)
        self._schema_url = schema_url

    def detect(self) -> Resource:
        return Resource(self._attributes, schema_url=self._schema_url)


class KeyFilterDetector(ResourceDetector):
    """运行另一个检测器，只保留 keys 中的属性"""

    def __init__(self, detector: ResourceDetector, keys: Iterable[str]):
        super().__init__(raise_on_error=True)
        self._detector = detector
        self._keys = frozenset(keys)

    def detect(self) -> Resource:
        resource = self._detector.detect()
        attributes = {
            key: value for key, value in resource.attributes.items() if key in self._keys
        }
        return Resource(attributes, schema_url=resource.schema_url)


def _schema_url_detector() -> ResourceDetector:
    return AttributesDetector({}, schema_url=SCHEMA_URL)


def _telemetry_sdk_detector() -> ResourceDetector:
    return AttributesDetector(
        {
            ResourceAttributes.TELEMETRY_SDK_LANGUAGE: "python",
            ResourceAttributes.TELEMETRY_SDK_NAME: "opentelemetry",
            ResourceAttributes.TELEMETRY_SDK_VERSION: sdk_version,
        }
    )


def _container() -> ResourceDetector:
    return ContainerResourceDetector(raise_on_error=True)


def _host() -> ResourceDetector:
    return _HostResourceDetector(raise_on_error=True)


def _os() -> ResourceDetector:
    return OsResourceDetector(raise_on_error=True)


def _process() -> ResourceDetector:
    # process 开关包含命令行参数
    return ProcessResourceDetector(raise_on_error=True, include_command_args=True)


def _only(factory: Callable[[], ResourceDetector], *keys: str) -> ResourceDetector:
    return KeyFilterDetector(factory(), keys)


def get_detectors(config: ResourceConfig) -> List[ResourceDetector]:
    """
    将 ResourceConfig 的各个开关转换为检测器列表

    schema URL 和 telemetry.sdk.* 总是包含，其余检测器仅在对应开关为 True
    （或集合非空）时包含。分组开关使用 SDK 检测器的全部属性，
    单项开关只保留对应的属性。

    OS 描述信息在 SDK 中以 os.version 上报，os_description 开关因此保留
    os.description 和 os.version。

    Args:
        config: Resource 配置

    Returns:
        按顺序执行的检测器列表
    """
    detectors: List[ResourceDetector] = [
        _schema_url_detector(),
        _telemetry_sdk_detector(),
    ]

    if config.attributes:
        detectors.append(AttributesDetector(config.attributes))
    if config.container:
        detectors.append(_container())
    if config.container_id:
        detectors.append(_only(_container, ResourceAttributes.CONTAINER_ID))
    if config._detectors:
        detectors.extend(config._detectors)
    if config.from_env:
        detectors.append(OTELResourceDetector(raise_on_error=True))
    if config.host:
        detectors.append(_host())
    if config.os:
        detectors.append(_os())
    if config.os_description:
        detectors.append(
            _only(_os, ResourceAttributes.OS_DESCRIPTION, ResourceAttributes.OS_VERSION)
        )
    if config.os_type:
        detectors.append(_only(_os, ResourceAttributes.OS_TYPE))
    if config.process:
        detectors.append(_process())

    process_keys = [
        (config.process_command_args, ResourceAttributes.PROCESS_COMMAND_ARGS),
        (config.process_executable_name, ResourceAttributes.PROCESS_EXECUTABLE_NAME),
        (config.process_executable_path, ResourceAttributes.PROCESS_EXECUTABLE_PATH),
        (config.process_owner, ResourceAttributes.PROCESS_OWNER),
        (config.process_pid, ResourceAttributes.PROCESS_PID),
        (config.process_runtime_description, ResourceAttributes.PROCESS_RUNTIME_DESCRIPTION),
        (config.process_runtime_name, ResourceAttributes.PROCESS_RUNTIME_NAME),
        (config.process_runtime_version, ResourceAttributes.PROCESS_RUNTIME_VERSION),
    ]
    for enabled, key in process_keys:
        if enabled:
            detectors.append(_only(_process, key))

    return detectors


def detect_resource(detectors: List[ResourceDetector]) -> Resource:
    """
    依次执行检测器并合并结果，后执行的检测器在键冲突时胜出

    Raises:
        ResourceDetectionError: 任一检测器失败
    """
    resource = Resource.get_empty()
    for detector in detectors:
        try:
            detected = detector.detect()
        except Exception as e:
            raise ResourceDetectionError(
                f"resource detector {type(detector).__name__} failed: {e}"
            ) from e
        resource = resource.merge(detected)
    return resource


def new_resource(config: ResourceConfig) -> Resource:
    """
    创建 OpenTelemetry Resource

    先按配置检测属性，再与 SDK 默认 Resource（Resource.create()）合并，
    键冲突时以配置产生的属性为准。

    Args:
        config: Resource 配置

    Returns:
        OpenTelemetry Resource 实例

    Raises:
        ResourceDetectionError: 属性检测失败

    示例:
        ```python
        resource = new_resource(
            ResourceConfig(
                attributes={"service.name": "my-cli"},
                host=True,
                process_pid=True,
            )
        )
        ```
    """
    detected = detect_resource(get_detectors(config))
    resource = Resource.create().merge(detected)

    logger.debug("Resource created: %s", dict(resource.attributes))

    return resource
