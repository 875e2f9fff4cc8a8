"""
Storyloom - AI 故事构思助手

大纲树、角色名册与交叉引用的编辑核心，以及模型工具调用驱动的写作助手。
"""

__version__ = "0.1.0"
