"""
插件配置管理模块
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any

import markdown

from astrbot.api import logger

from .constants import (
    DEFAULT_TIMEOUT,
    IMAGES_MAX_CHAR_LENGTH,
    MODAL_MARKDOWN,
)
from .key_manager import build_request_settings
from .types import FilesPolicy, RequestSettings, ServiceConfig

MarkdownRenderer = Callable[[str], str]

_SCALAR_TYPES = (str, int, float, bool)
# 这些配置段属于插件自身，不能混入请求体
_RESERVED_BODY_KEYS = ("files", "request")


def render_markdown(text: str) -> str:
    """将 Markdown 渲染为 HTML。"""
    return markdown.markdown(text)


@dataclass
class PluginConfig:
    """完整的插件配置。"""

    service_config: ServiceConfig = field(default_factory=ServiceConfig)
    request_settings: RequestSettings = field(default_factory=RequestSettings)
    raw_body: dict[str, Any] = field(default_factory=dict)
    api_key: str = ""
    timeout: int = DEFAULT_TIMEOUT
    proxy: str | None = None


def merge_files_policy(
    defaults: FilesPolicy, files: Mapping[str, Any] | None
) -> FilesPolicy:
    """仅覆盖调用方实际提供的字段，其余保留默认值。"""
    if not files:
        return defaults

    overrides: dict[str, Any] = {}
    if files.get("accepted_formats"):
        overrides["accepted_formats"] = str(files["accepted_formats"])
    if files.get("max_number_of_files"):
        overrides["max_number_of_files"] = int(files["max_number_of_files"])

    modal_cfg = files.get("info_modal")
    if defaults.info_modal and isinstance(modal_cfg, Mapping):
        modal_overrides: dict[str, Any] = {}
        if "open_modal_once" in modal_cfg:
            modal_overrides["open_modal_once"] = bool(modal_cfg["open_modal_once"])
        if modal_cfg.get("text_markdown"):
            modal_overrides["text_markdown"] = str(modal_cfg["text_markdown"])
        overrides["info_modal"] = replace(defaults.info_modal, **modal_overrides)

    return replace(defaults, **overrides)


def build_service_config(
    files: Mapping[str, Any] | None = None,
    input_character_limit: int | None = None,
    renderer: MarkdownRenderer = render_markdown,
) -> ServiceConfig:
    """合并默认值与调用方配置，生成不可变的 ServiceConfig。

    Args:
        files: 调用方的文件上传配置。
        input_character_limit: 提示词最大长度，未提供时使用默认值。
        renderer: Markdown 渲染函数，仅在构造时调用一次。

    Returns:
        合并后的 ServiceConfig。
    """
    policy = merge_files_policy(FilesPolicy(), files)

    markup = None
    if policy.info_modal:
        markup = renderer(policy.info_modal.text_markdown or MODAL_MARKDOWN)

    max_char_length = IMAGES_MAX_CHAR_LENGTH
    if isinstance(input_character_limit, int) and input_character_limit > 0:
        max_char_length = input_character_limit

    return ServiceConfig(
        files=policy, info_modal_markup=markup, max_char_length=max_char_length
    )


def build_raw_body(body_cfg: Mapping[str, Any] | None) -> dict[str, Any]:
    """提取请求体模板，只保留可字符串化的标量字段。"""
    raw_body: dict[str, Any] = {}
    if not isinstance(body_cfg, Mapping):
        return raw_body

    for key, value in body_cfg.items():
        if key in _RESERVED_BODY_KEYS or value is None:
            continue
        if not isinstance(value, _SCALAR_TYPES):
            logger.warning(f"[OpenAIImages] 忽略非标量请求字段: {key}")
            continue
        raw_body[key] = value
    return raw_body


def build_base_request_settings(request_cfg: Mapping[str, Any] | None) -> RequestSettings:
    """解析请求设置（覆盖 URL 与自定义请求头）。"""
    if not isinstance(request_cfg, Mapping):
        return RequestSettings()

    url = (request_cfg.get("url") or "").strip() or None
    headers_cfg = request_cfg.get("headers")
    headers = None
    if isinstance(headers_cfg, Mapping) and headers_cfg:
        headers = {str(k): str(v) for k, v in headers_cfg.items()}
    return RequestSettings(url=url, headers=headers)


class ConfigManager:
    """插件配置管理器。"""

    def __init__(
        self, config: Mapping[str, Any], renderer: MarkdownRenderer = render_markdown
    ):
        self._config = config
        self._renderer = renderer
        self._plugin_config: PluginConfig = PluginConfig()
        self.load()

    def load(self) -> PluginConfig:
        """加载并解析插件配置。"""
        api_key = (self._config.get("api_key") or "").strip()
        proxy = (self._config.get("proxy") or "").strip() or None

        service_config = build_service_config(
            self._config.get("files"),
            self._config.get("input_character_limit"),
            self._renderer,
        )

        request_settings = build_base_request_settings(self._config.get("request"))
        if api_key:
            request_settings = build_request_settings(api_key, request_settings)

        self._plugin_config = PluginConfig(
            service_config=service_config,
            request_settings=request_settings,
            raw_body=build_raw_body(self._config.get("body")),
            api_key=api_key,
            timeout=max(1, int(self._config.get("timeout") or DEFAULT_TIMEOUT)),
            proxy=proxy,
        )

        if not api_key:
            logger.info("[OpenAIImages] 未配置 API Key，需通过指令验证后使用")

        return self._plugin_config

    def reload(self) -> PluginConfig:
        """重新加载配置。"""
        return self.load()

    def save_api_key(self, key: str) -> None:
        """保存验证通过的 API Key。"""
        self._config["api_key"] = key  # type: ignore[index]
        save = getattr(self._config, "save_config", None)
        if callable(save):
            save()

    def persist_api_key(self, key: str) -> bool:
        """保存 API Key，失败时记录日志并返回 False，不影响已生效的 Key。"""
        try:
            self.save_api_key(key)
        except Exception as exc:
            logger.error(f"[OpenAIImages] 保存 API Key 失败: {exc}")
            return False
        return True

    # ---------------------- 便捷属性访问 ----------------------
    @property
    def plugin_config(self) -> PluginConfig:
        return self._plugin_config

    @property
    def service_config(self) -> ServiceConfig:
        return self._plugin_config.service_config

    @property
    def request_settings(self) -> RequestSettings:
        return self._plugin_config.request_settings

    @property
    def raw_body(self) -> dict[str, Any]:
        return self._plugin_config.raw_body

    @property
    def max_number_of_files(self) -> int:
        """每次请求最多使用的图片数量。"""
        return self._plugin_config.service_config.files.max_number_of_files

    @property
    def accepted_formats(self) -> str:
        """允许的附件格式，逗号分隔。"""
        return self._plugin_config.service_config.files.accepted_formats
