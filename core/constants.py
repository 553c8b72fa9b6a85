"""
常量定义
"""

IMAGE_GENERATION_URL = "https://api.openai.com/v1/images/generations"
IMAGE_EDIT_URL = "https://api.openai.com/v1/images/edits"
IMAGE_VARIATIONS_URL = "https://api.openai.com/v1/images/variations"
MODELS_URL = "https://api.openai.com/v1/models"

IMAGES_MAX_CHAR_LENGTH = 1000
BASE_64_PREFIX = "data:image/png;base64,"

DEFAULT_ACCEPTED_FORMATS = ".png"
DEFAULT_MAX_NUMBER_OF_FILES = 2
DEFAULT_TIMEOUT = 180

MODAL_MARKDOWN = """
1 image:

- With text - edits image based on the text
- No text - creates a variation of the image

2 images:

- The second image needs to be a copy of the first with a transparent area where the edit should take place.
Add text to describe the required modification.

Click here for [more info](https://platform.openai.com/docs/guides/images/introduction).
"""

# 日志脱敏
MASK_VISIBLE_CHARS = 4
MASK_MIN_LENGTH = 8
MASK_PLACEHOLDER = "****"

# 帮助信息渲染模板 (jinja2)，content 为已渲染的 HTML
INFO_MODAL_TEMPLATE = """
<div style="font-family: sans-serif; font-size: 28px; padding: 24px; line-height: 1.5;">
{{ content | safe }}
</div>
"""

# MIME 类型对应的文件扩展名，用于匹配 accepted_formats
MIME_EXTENSIONS = {
    "image/png": ("png",),
    "image/jpeg": ("jpg", "jpeg"),
    "image/gif": ("gif",),
    "image/webp": ("webp",),
}
