"""
Core module for the OpenAI Images plugin
OpenAI 图像插件的核心模块
"""
