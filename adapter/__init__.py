"""
Adapter module for the OpenAI Images plugin
OpenAI 图像插件的适配器模块
"""

from .openai_images_adapter import OpenAIImagesAdapter

__all__ = ["OpenAIImagesAdapter"]
