"""
图片处理模块 - 提取附件、保存结果、缓存管理
"""

from __future__ import annotations

import base64
import hashlib
import os
import time
from typing import TYPE_CHECKING

import astrbot.api.message_components as Comp
from astrbot.api import logger
from astrbot.core.utils.io import download_image_by_url

from .types import Base64Image, ImageData, ImageResult, UrlImage
from .utils import detect_mime_type, is_accepted_format

if TYPE_CHECKING:
    from astrbot.api.event import AstrMessageEvent


class ImageProcessor:
    """图片处理器 - 负责附件提取、结果落盘和缓存清理。"""

    def __init__(self, cache_dir: str, max_image_size_mb: int = 4, max_cache_count: int = 100):
        self._cache_dir = cache_dir
        self._max_image_size_mb = max_image_size_mb
        self._max_cache_count = max_cache_count
        os.makedirs(self._cache_dir, exist_ok=True)

    @property
    def cache_dir(self) -> str:
        """获取缓存目录路径。"""
        return self._cache_dir

    async def download_image(self, url: str) -> ImageData | None:
        """读取本地文件或下载图片。"""
        try:
            data: bytes | None = None
            if os.path.isfile(url):
                with open(url, "rb") as f:
                    data = f.read()
            else:
                file_name = f"ref_{hashlib.md5(url.encode()).hexdigest()[:10]}"
                path = await download_image_by_url(
                    url, path=os.path.join(self._cache_dir, file_name)
                )
                if path:
                    with open(path, "rb") as f:
                        data = f.read()

            if not data:
                return None

            if len(data) > self._max_image_size_mb * 1024 * 1024:
                logger.warning(
                    f"[OpenAIImages] 图片超过大小限制 ({self._max_image_size_mb}MB)"
                )
                return None

            mime = detect_mime_type(data)
            ext = mime.split("/")[-1] if mime.startswith("image/") else "png"
            return ImageData(data=data, mime_type=mime, filename=f"image.{ext}")
        except Exception as exc:
            logger.error(f"[OpenAIImages] 获取图片失败 (URL/Path: {url}): {exc}")
        return None

    async def fetch_images_from_event(
        self,
        event: AstrMessageEvent,
        limit: int,
        accepted_formats: str = "",
    ) -> list[ImageData]:
        """按出现顺序提取消息及引用消息中的图片，最多 ``limit`` 张。

        第一张为原图，第二张为蒙版。不符合 ``accepted_formats`` 的图片会被跳过。
        """
        images: list[ImageData] = []
        if not event.message_obj or not event.message_obj.message:
            return images

        urls: list[str] = []
        for component in event.message_obj.message:
            if isinstance(component, Comp.Image):
                urls.append(component.url or component.file)
            elif isinstance(component, Comp.Reply) and component.chain:
                for sub_comp in component.chain:
                    if isinstance(sub_comp, Comp.Image):
                        urls.append(sub_comp.url or sub_comp.file)

        for url in urls:
            if len(images) >= limit:
                break
            if not url or not (image := await self.download_image(url)):
                continue
            if not is_accepted_format(image, accepted_formats):
                logger.warning(
                    f"[OpenAIImages] 跳过不支持的图片格式: {image.mime_type} (允许: {accepted_formats})"
                )
                continue
            images.append(image)
        return images

    def materialize(self, task_id: str, result: ImageResult) -> tuple[str, str] | None:
        """将结果转换为可发送的形式：("url", 链接) 或 ("file", 本地路径)。"""
        if isinstance(result, UrlImage):
            return "url", result.url
        if isinstance(result, Base64Image):
            payload = result.base64.split(",", 1)[-1]
            try:
                img_bytes = base64.b64decode(payload, validate=True)
            except ValueError as exc:
                logger.error(f"[OpenAIImages] Base64 解码失败: {exc}")
                return None
            path = self.save_generated_image(task_id, img_bytes)
            return ("file", path) if path else None
        return None

    def save_generated_image(self, task_id: str, img_bytes: bytes) -> str | None:
        """保存生成的图片到缓存目录，返回文件路径。"""
        try:
            file_name = f"gen_{task_id}_{int(time.time())}_{hashlib.md5(img_bytes).hexdigest()[:6]}.png"
            file_path = os.path.join(self._cache_dir, file_name)
            with open(file_path, "wb") as f:
                f.write(img_bytes)
            return file_path
        except OSError as exc:
            logger.error(f"[OpenAIImages] 保存图片失败: {exc}")
            return None

    async def cleanup_cache(self) -> None:
        """按数量清理旧缓存文件。"""
        if not os.path.exists(self._cache_dir):
            return

        files = []
        for f in os.listdir(self._cache_dir):
            path = os.path.join(self._cache_dir, f)
            if os.path.isfile(path):
                files.append((path, os.path.getmtime(path)))

        if len(files) <= self._max_cache_count:
            return

        # 按修改时间排序（旧的在前）
        files.sort(key=lambda x: x[1])
        to_delete = files[: len(files) - self._max_cache_count]
        deleted_count = 0
        for path, _ in to_delete:
            try:
                os.remove(path)
                deleted_count += 1
            except OSError as e:
                logger.debug(f"[OpenAIImages] 删除缓存文件失败: {path} - {e}")
        logger.info(
            f"[OpenAIImages] 已清理 {deleted_count}/{len(to_delete)} 个旧缓存文件"
        )
