"""
存储模块
"""
from .images import ImageStore, image_key, is_image_key
from .manager import ProjectRepository, StorageManager
from .samples import SAMPLE_PROJECTS, sample_projects

__all__ = [
    "ImageStore",
    "image_key",
    "is_image_key",
    "ProjectRepository",
    "StorageManager",
    "SAMPLE_PROJECTS",
    "sample_projects",
]
