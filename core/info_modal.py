"""
帮助信息（info modal）的展示策略
"""

from __future__ import annotations

from .constants import MODAL_MARKDOWN
from .types import InfoModal, ServiceConfig


class InfoNotifier:
    """按会话记录是否已展示过帮助信息。

    ``open_modal_once`` 为 True 时，每个会话只在第一次附带图片时提示一次；
    为 False 时每次附带图片都会提示；未启用 info modal 时从不提示。
    """

    def __init__(self, service_config: ServiceConfig):
        self._service_config = service_config
        self._notified: set[str] = set()

    def update_config(self, service_config: ServiceConfig) -> None:
        """更新配置，已提示过的会话记录保留。"""
        self._service_config = service_config

    @property
    def modal(self) -> InfoModal | None:
        return self._service_config.files.info_modal

    @property
    def markdown(self) -> str:
        """帮助信息的 Markdown 原文。"""
        if self.modal and self.modal.text_markdown:
            return self.modal.text_markdown
        return MODAL_MARKDOWN

    @property
    def markup(self) -> str | None:
        """构造时已渲染好的 HTML。"""
        return self._service_config.info_modal_markup

    def should_notify(self, origin: str, has_images: bool) -> bool:
        """判断本次附图是否需要提示，返回 True 时同时记下该会话。"""
        modal = self.modal
        if not has_images or modal is None:
            return False
        if not modal.open_modal_once:
            return True
        if origin in self._notified:
            return False
        self._notified.add(origin)
        return True
