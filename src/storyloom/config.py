"""
配置管理
"""
import logging
import os
from dataclasses import dataclass
from typing import Optional


def _env_bool(name: str, default: bool) -> bool:
    """读取布尔环境变量，非法值回退默认值。"""
    value = os.getenv(name)
    if value is None:
        return default
    lowered = value.strip().lower()
    if lowered in {"1", "true", "yes", "on"}:
        return True
    if lowered in {"0", "false", "no", "off"}:
        return False
    return default


def _env_int(name: str, default: int) -> int:
    """读取整数环境变量，非法值回退默认值。"""
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value.strip())
    except ValueError:
        return default


@dataclass
class Config:
    """全局配置"""

    # 对话模型
    provider: str = "openai"            # openai / gemini / deepseek
    model_name: Optional[str] = None    # 为空时使用各 provider 的默认模型
    review_model: Optional[str] = None  # 审阅、议会总结等长推理任务

    # API Keys
    openai_api_key: Optional[str] = None
    gemini_api_key: Optional[str] = None
    deepseek_api_key: Optional[str] = None

    # 图像生成
    image_model: str = "gpt-image-1"

    # 存储
    data_dir: str = "./data"
    autosave: bool = True

    # 交互
    council_enabled: bool = True
    request_timeout: int = 60
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Config":
        """从环境变量加载配置"""
        return cls(
            provider=os.getenv("STORYLOOM_PROVIDER", cls.provider).strip().lower(),
            model_name=os.getenv("STORYLOOM_MODEL") or None,
            review_model=os.getenv("STORYLOOM_REVIEW_MODEL") or None,
            openai_api_key=os.getenv("OPENAI_API_KEY"),
            gemini_api_key=os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY"),
            deepseek_api_key=os.getenv("DEEPSEEK_API_KEY"),
            image_model=os.getenv("STORYLOOM_IMAGE_MODEL", cls.image_model),
            data_dir=os.getenv("STORYLOOM_DATA_DIR", cls.data_dir),
            autosave=_env_bool("STORYLOOM_AUTOSAVE", cls.autosave),
            council_enabled=_env_bool("STORYLOOM_COUNCIL_ENABLED", cls.council_enabled),
            request_timeout=_env_int("STORYLOOM_REQUEST_TIMEOUT", cls.request_timeout),
            log_level=os.getenv("STORYLOOM_LOG_LEVEL", cls.log_level),
        )


def configure_logging(level: Optional[str] = None) -> None:
    """入口程序统一调用的日志初始化。"""
    resolved = (level or config.log_level or "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, resolved, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# 全局配置实例
config = Config.from_env()
