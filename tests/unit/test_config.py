"""
配置模块测试
"""

import io

import pytest
from pydantic import ValidationError

from otelutils.config import (
    DEFAULT_RETRY_POLICY,
    ConsoleSpanExporterConfig,
    FileSpanExporterConfig,
    OtlpGrpcSpanExporterConfig,
    ResourceConfig,
    RetryPolicy,
    load_settings,
    parse_duration,
    parse_span_exporter_config,
)


class TestParseDuration:
    """时间字符串解析测试"""

    @pytest.mark.parametrize(
        "value, expected",
        [
            (5, 5.0),
            (2.5, 2.5),
            ("10", 10.0),
            ("30s", 30.0),
            ("100ms", 0.1),
            ("5m", 300.0),
            ("1h30m", 5400.0),
            ("1m30s", 90.0),
        ],
    )
    def test_valid(self, value, expected):
        """测试合法格式"""
        assert parse_duration(value) == pytest.approx(expected)

    @pytest.mark.parametrize(
        "value", [None, "", "abc", True, -5, "-5s", "10 seconds", "5x", "1h-30m"]
    )
    def test_invalid_is_zero(self, value):
        """测试非法值按未设置处理"""
        assert parse_duration(value) == 0.0


class TestRetryPolicy:
    """重试策略测试"""

    def test_empty_policy_keeps_base(self):
        """测试空策略不修改基础策略"""
        assert RetryPolicy().apply(DEFAULT_RETRY_POLICY) == DEFAULT_RETRY_POLICY

    def test_override_single_field(self):
        """测试每个字段独立覆盖"""
        policy = RetryPolicy(max_elapsed_time="2m").apply(DEFAULT_RETRY_POLICY)
        assert policy.max_elapsed_time == 120.0
        assert policy.enabled is True
        assert policy.initial_interval == 5.0
        assert policy.max_interval == 30.0

    def test_disable(self):
        """测试关闭重试"""
        policy = RetryPolicy(enabled=False).apply(DEFAULT_RETRY_POLICY)
        assert policy.enabled is False
        assert DEFAULT_RETRY_POLICY.enabled is True


class TestExporterConfig:
    """导出器配置测试"""

    def test_console_defaults(self):
        """测试 Console 默认值"""
        config = ConsoleSpanExporterConfig()
        assert config.kind == "console"
        assert config.pretty_print is False
        assert config.timestamps is False
        assert config.writer is None

    def test_console_writer_must_write(self):
        """测试 writer 必须有 write 方法"""
        ConsoleSpanExporterConfig(writer=io.StringIO())
        with pytest.raises(ValidationError):
            ConsoleSpanExporterConfig(writer=object())

    def test_frozen(self):
        """测试配置不可变"""
        config = OtlpGrpcSpanExporterConfig(endpoint="collector:4317")
        with pytest.raises(ValidationError):
            config.endpoint = "other:4317"

    def test_file_requires_name(self):
        """测试 File 导出器必须有文件名"""
        with pytest.raises(ValidationError):
            FileSpanExporterConfig(filename="")

    def test_otlp_durations(self):
        """测试 OTLP 时间字段支持字符串"""
        config = OtlpGrpcSpanExporterConfig(timeout="3s", reconnection_period="500ms")
        assert config.timeout == 3.0
        assert config.reconnection_period == 0.5

    def test_parse_by_kind(self):
        """测试根据 kind 解析配置"""
        config = parse_span_exporter_config(
            {"kind": "otlp", "endpoint": "collector:4317", "retry": {"max_interval": "10s"}}
        )
        assert isinstance(config, OtlpGrpcSpanExporterConfig)
        assert config.retry.max_interval == 10.0

        config = parse_span_exporter_config({"kind": "file", "filename": "spans.json"})
        assert isinstance(config, FileSpanExporterConfig)

    def test_parse_unknown_kind(self):
        """测试未知 kind"""
        with pytest.raises(ValidationError):
            parse_span_exporter_config({"kind": "jaeger"})

    def test_resource_defaults(self):
        """测试 Resource 配置默认全部关闭"""
        config = ResourceConfig()
        assert config.attributes == {}
        assert not config.host
        assert not config.process
        assert config._detectors == []


class TestLoadSettings:
    """外部配置加载测试"""

    def test_defaults(self):
        """测试默认值"""
        settings = load_settings(environ={})
        assert settings.otel_exporter_otlp_endpoint == ""
        assert settings.otel_file_span_exporter_name == "spans.json"

    def test_from_file(self, tmp_path):
        """测试从 YAML 文件加载"""
        config_file = tmp_path / "config.yaml"
        config_file.write_text(
            "otelutils:\n"
            "  otel_exporter_otlp_endpoint: collector:4317\n"
            "  otel_file_span_exporter_name: out.json\n",
            encoding="utf-8",
        )
        settings = load_settings(config_file=str(config_file), environ={})
        assert settings.otel_exporter_otlp_endpoint == "collector:4317"
        assert settings.otel_file_span_exporter_name == "out.json"

    def test_priority(self, tmp_path):
        """测试优先级：环境变量 > 字典 > 文件"""
        config_file = tmp_path / "config.yaml"
        config_file.write_text(
            "otel_exporter_otlp_endpoint: file:4317\n"
            "otel_file_span_exporter_name: file.json\n",
            encoding="utf-8",
        )
        settings = load_settings(
            config_file=str(config_file),
            config_dict={"otel_file_span_exporter_name": "dict.json"},
            environ={
                "OTEL_EXPORTER_OTLP_ENDPOINT": "env:4317",
                "OTEL_EXPORTER_OTLP_INSECURE": "true",
            },
        )
        assert settings.otel_exporter_otlp_endpoint == "env:4317"
        assert settings.otel_exporter_otlp_insecure is True
        assert settings.otel_file_span_exporter_name == "dict.json"

    def test_missing_file_ignored(self, tmp_path):
        """测试配置文件不存在时使用默认值"""
        settings = load_settings(config_file=str(tmp_path / "missing.yaml"), environ={})
        assert settings.otel_file_span_exporter_name == "spans.json"
