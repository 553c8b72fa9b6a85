from __future__ import annotations

import asyncio
from collections.abc import Iterable
from io import BytesIO

from PIL import Image

from astrbot.api import logger

from .constants import (
    MASK_MIN_LENGTH,
    MASK_PLACEHOLDER,
    MASK_VISIBLE_CHARS,
    MIME_EXTENSIONS,
)
from .types import ImageData


def detect_mime_type(data: bytes) -> str:
    """根据魔数（Magic Numbers）尽力检测 MIME 类型。"""

    if data.startswith(b"\xff\xd8"):
        return "image/jpeg"
    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if data.startswith(b"GIF87a") or data.startswith(b"GIF89a"):
        return "image/gif"
    if data.startswith(b"RIFF") and data[8:12] == b"WEBP":
        return "image/webp"
    return "application/octet-stream"


def parse_accepted_formats(accepted_formats: str) -> list[str]:
    """解析逗号分隔的格式列表，如 ".png,.jpg" 或 "image/png"。"""
    return [
        part.strip().lower() for part in (accepted_formats or "").split(",") if part.strip()
    ]


def is_accepted_format(image: ImageData, accepted_formats: str) -> bool:
    """检查图片是否符合允许的格式；列表为空时全部允许。"""
    formats = parse_accepted_formats(accepted_formats)
    if not formats:
        return True

    mime = detect_mime_type(image.data)
    if mime == "application/octet-stream":
        mime = image.mime_type
    extensions = MIME_EXTENSIONS.get(mime, ())
    for fmt in formats:
        if fmt in ("*", "image/*"):
            return True
        if "/" in fmt:
            if fmt == mime:
                return True
        elif fmt.lstrip(".") in extensions:
            return True
    return False


def _png_filename(filename: str) -> str:
    stem = filename.rsplit(".", 1)[0] if "." in filename else filename
    return f"{stem or 'image'}.png"


def _sync_convert_to_png(image: ImageData) -> ImageData:
    """同步将图像转换为 PNG，保留透明通道（蒙版依赖透明区域）。"""

    try:
        img = Image.open(BytesIO(image.data))
        if img.mode not in ("RGBA", "LA", "L", "RGB"):
            img = img.convert("RGBA")

        output = BytesIO()
        img.save(output, format="PNG")
        logger.debug("[OpenAIImages] 已将图像转换为 PNG")
        return ImageData(
            data=output.getvalue(),
            mime_type="image/png",
            filename=_png_filename(image.filename),
        )
    except Exception as exc:  # noqa: BLE001
        logger.error(f"[OpenAIImages] 图像转换失败: {exc}")
        return image


async def convert_image_format(image: ImageData) -> ImageData:
    """如果图像不是 PNG，则转换为 PNG。"""

    real_mime = detect_mime_type(image.data)
    if real_mime == "image/png":
        return ImageData(data=image.data, mime_type=real_mime, filename=image.filename)
    logger.info(f"[OpenAIImages] 正在转换图像格式: {real_mime} -> image/png")
    return await asyncio.to_thread(_sync_convert_to_png, image)


async def convert_images_batch(images: Iterable[ImageData]) -> list[ImageData]:
    """并行批量转换图像，保持原有顺序。"""

    tasks = [convert_image_format(img) for img in images]
    return list(await asyncio.gather(*tasks))


def mask_sensitive(
    value: str,
    visible_chars: int = MASK_VISIBLE_CHARS,
    min_length: int = MASK_MIN_LENGTH,
    placeholder: str = MASK_PLACEHOLDER,
) -> str:
    """对敏感信息进行脱敏处理。

    Args:
        value: 需要脱敏的字符串
        visible_chars: 两端显示的字符数
        min_length: 需要脱敏的最小长度
        placeholder: 中间的占位符

    Returns:
        脱敏后的字符串
    """
    if len(value) <= min_length:
        return placeholder
    return f"{value[:visible_chars]}{placeholder}{value[-visible_chars:]}"
