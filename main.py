"""
AstrBot OpenAI 图像插件主模块

核心逻辑位于 core/ 与 adapter/ 目录，本模块只负责指令与消息收发。
"""

from __future__ import annotations

import asyncio
import hashlib
import time
from collections.abc import Coroutine
from typing import Any

from astrbot.api import logger
from astrbot.api.event import AstrMessageEvent, MessageChain, filter
from astrbot.api.star import Context, Star
from astrbot.core.config.astrbot_config import AstrBotConfig
from astrbot.core.star.star_tools import StarTools

from .core.config_manager import ConfigManager
from .core.constants import INFO_MODAL_TEMPLATE
from .core.generator import ImageGenerator
from .core.image_processor import ImageProcessor
from .core.info_modal import InfoNotifier
from .core.types import ImageData, KeyVerificationHandlers, MessageContent
from .core.utils import mask_sensitive


class OpenAIImagesPlugin(Star):
    """OpenAI 图像插件主类"""

    def __init__(self, context: Context, config: AstrBotConfig):
        super().__init__(context)
        self.context = context

        self.data_dir = StarTools.get_data_dir()
        self.cache_dir = self.data_dir / "cache"
        self.cache_dir.mkdir(parents=True, exist_ok=True)

        self.config_manager = ConfigManager(config)
        self.image_processor = ImageProcessor(str(self.cache_dir))
        self.generator = ImageGenerator(self.config_manager.plugin_config)
        self.info_notifier = InfoNotifier(self.config_manager.service_config)
        self.background_tasks: set[asyncio.Task] = set()

    # ---------------------- 生命周期 ----------------------

    async def initialize(self):
        """插件加载时调用"""
        self.create_background_task(self.image_processor.cleanup_cache())
        logger.info("[OpenAIImages] 插件加载完成")

    async def terminate(self):
        """插件卸载时调用"""
        try:
            await self.generator.close()
            for task in list(self.background_tasks):
                task.cancel()
            logger.info("[OpenAIImages] 插件已卸载")
        except Exception as exc:
            logger.error(f"[OpenAIImages] 卸载清理出错: {exc}")

    def create_background_task(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        """创建后台任务并持有引用，直到任务结束。"""
        task = asyncio.create_task(coro)
        self.background_tasks.add(task)
        task.add_done_callback(self.background_tasks.discard)
        return task

    # ---------------------- 核心逻辑 ----------------------

    async def _info_result(self, event: AstrMessageEvent):
        """将帮助信息渲染为图片发送，渲染失败时退回 Markdown 原文。"""
        markup = self.info_notifier.markup
        if markup:
            try:
                url = await self.html_render(INFO_MODAL_TEMPLATE, {"content": markup})
                return event.image_result(url)
            except Exception as exc:
                logger.warning(f"[OpenAIImages] 帮助信息渲染失败，发送原文: {exc}")
        return event.plain_result(self.info_notifier.markdown.strip())

    async def _generate_and_send(
        self,
        prompt: str,
        images: list[ImageData],
        unified_msg_origin: str,
        task_id: str,
    ) -> None:
        """执行生成逻辑并发送结果。"""
        result = await self.generator.generate(
            [MessageContent(content=prompt)], images
        )

        if result.error:
            logger.error(f"[OpenAIImages] 任务 {task_id} 失败: {result.error}")
            await self.context.send_message(
                unified_msg_origin,
                MessageChain().message(f"❌ 生成失败: {result.error}"),
            )
            return

        if not result.images:
            return

        chain = MessageChain()
        for image in result.images:
            sendable = self.image_processor.materialize(task_id, image)
            if not sendable:
                continue
            kind, value = sendable
            if kind == "url":
                chain.url_image(value)
            else:
                chain.file_image(value)

        await self.context.send_message(unified_msg_origin, chain)

    # ---------------------- 指令处理 ----------------------

    @filter.command("图像")
    async def image_command(self, event: AstrMessageEvent):
        """文生图；附 1 张图时编辑或生成变体，附 2 张图时第二张作为蒙版。"""
        user_input = (event.message_str or "").strip()
        cmd_parts = user_input.split(maxsplit=1)
        prompt = cmd_parts[1].strip() if len(cmd_parts) > 1 else ""

        images = await self.image_processor.fetch_images_from_event(
            event,
            self.config_manager.max_number_of_files,
            self.config_manager.accepted_formats,
        )

        if not self.generator.can_send_message(prompt, images):
            yield event.plain_result("❌ 请提供提示词或附带图片！")
            return

        task_id = hashlib.md5(
            f"{time.time()}{event.unified_msg_origin}".encode()
        ).hexdigest()[:8]
        logger.info(
            f"[OpenAIImages] 收到图像指令 - 用户: {mask_sensitive(event.unified_msg_origin)}, 图片: {len(images)}"
        )

        if self.info_notifier.should_notify(event.unified_msg_origin, bool(images)):
            yield await self._info_result(event)

        msg = "已开始图像任务"
        if images:
            msg += f"[{len(images)}张参考图]"
        yield event.plain_result(msg)

        self.create_background_task(
            self._generate_and_send(prompt, images, event.unified_msg_origin, task_id)
        )

    @filter.command("图像密钥")
    async def key_command(self, event: AstrMessageEvent, key: str = ""):
        """验证并启用 OpenAI API Key。"""
        failures: list[str] = []
        warnings: list[str] = []

        def on_success(verified: str) -> None:
            if not self.config_manager.persist_api_key(verified):
                warnings.append("API Key 已生效，但保存到配置失败，重启后需重新设置")

        handlers = KeyVerificationHandlers(
            on_success=on_success, on_fail=failures.append
        )
        if await self.generator.verify_key(key, handlers):
            yield event.plain_result(f"✅ API Key 已启用: {mask_sensitive(key.strip())}")
            for warning in warnings:
                yield event.plain_result(f"⚠️ {warning}")
        else:
            reason = failures[0] if failures else "未知错误"
            yield event.plain_result(f"❌ API Key 验证失败: {reason}")

    @filter.command("图像帮助")
    async def help_command(self, event: AstrMessageEvent):
        """显示图像指令的使用说明。"""
        yield await self._info_result(event)
