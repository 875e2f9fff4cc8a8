"""
存储管理器

负责项目的本地持久化：每个项目一个 JSON 文件，图像单独存放在图像库中。
"""
import copy
import json
import logging
import os
from typing import Any, Dict, Iterator, List, Optional, Protocol, Set, Union

from storyloom.config import config
from storyloom.errors import InvalidOperationError, NotFoundError
from storyloom.schema import Character, OutlineSection, Project

from .images import ImageStore, image_key, is_image_key

logger = logging.getLogger(__name__)


class ProjectRepository(Protocol):
    """持久化协作方接口。"""

    def load_all_projects(self) -> List[Project]:
        ...

    def create_project(self, project: Project) -> Project:
        ...

    def update_project(self, project: Project) -> Project:
        ...

    def save_project(self, project: Project) -> Project:
        ...

    def delete_project(self, project_id: str) -> bool:
        ...


def _iter_image_entities(project: Project) -> Iterator[Union[Character, OutlineSection]]:
    """项目中所有可能带图像的实体（角色 + 全部大纲节点）。"""
    yield from project.characters
    stack = list(reversed(project.outline))
    while stack:
        section = stack.pop()
        yield section
        stack.extend(reversed(section.children))


class StorageManager:
    """存储管理器 - 管理项目与图像的本地存储"""

    INDEX_FILE = "index.json"

    def __init__(self, base_dir: Optional[str] = None):
        """
        初始化存储管理器
        :param base_dir: 数据目录，默认取配置 STORYLOOM_DATA_DIR
        """
        self.base_dir = base_dir or config.data_dir
        self.projects_dir = os.path.join(self.base_dir, "projects")
        self._ensure_dir(self.projects_dir)
        self.images = ImageStore(os.path.join(self.base_dir, "images"))

    def _ensure_dir(self, path: str):
        """确保目录存在"""
        if not os.path.exists(path):
            os.makedirs(path)

    def _project_path(self, project_id: str) -> str:
        if not project_id or os.path.basename(project_id) != project_id:
            raise InvalidOperationError(f"非法的项目 ID: {project_id!r}")
        return os.path.join(self.projects_dir, f"{project_id}.json")

    # ------------------------------------------------------------------ 索引

    def _read_index(self) -> List[str]:
        path = os.path.join(self.projects_dir, self.INDEX_FILE)
        if not os.path.exists(path):
            return []
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            logger.error("项目索引损坏，将按文件名重建: %s", exc)
            return []
        return [str(item) for item in data] if isinstance(data, list) else []

    def _write_index(self, project_ids: List[str]) -> None:
        self._write_json(os.path.join(self.projects_dir, self.INDEX_FILE), project_ids)

    def _ordered_ids(self) -> List[str]:
        on_disk = sorted(
            filename[: -len(".json")]
            for filename in os.listdir(self.projects_dir)
            if filename.endswith(".json") and filename != self.INDEX_FILE
        )
        ordered = [project_id for project_id in self._read_index() if project_id in on_disk]
        ordered.extend(project_id for project_id in on_disk if project_id not in ordered)
        return ordered

    @staticmethod
    def _write_json(path: str, data: Any) -> None:
        tmp_path = path + ".tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
        os.replace(tmp_path, path)

    # ------------------------------------------------------------------ 图像

    def externalize_images(self, project: Project) -> Project:
        """返回副本：原始图像写入图像库，字段替换为 image-<id> 键。"""
        stored = copy.deepcopy(project)
        for entity in _iter_image_entities(stored):
            if is_image_key(entity.image_url) and not self.images.exists(entity.image_url):
                raise InvalidOperationError(f"图像键不存在: {entity.image_url}")
        for entity in _iter_image_entities(stored):
            if entity.image_url and not is_image_key(entity.image_url):
                key = image_key(entity.id)
                self.images.save(key, entity.image_url)
                entity.image_url = key
        return stored

    @staticmethod
    def _image_keys(project: Project) -> Set[str]:
        return {
            entity.image_url
            for entity in _iter_image_entities(project)
            if is_image_key(entity.image_url)
        }

    def resolve_image(self, value: Optional[str]) -> Optional[str]:
        """图像字段 -> base64 数据（键则查图像库，原始数据直接返回）。"""
        if not value:
            return None
        if is_image_key(value):
            return self.images.load(value)
        return value

    def _release_images(self, keys: Set[str]) -> None:
        for key in keys:
            self.images.delete(key)

    # ------------------------------------------------------------------ 项目

    def exists(self, project_id: str) -> bool:
        return os.path.exists(self._project_path(project_id))

    def load_project(self, project_id: str) -> Project:
        path = self._project_path(project_id)
        if not os.path.exists(path):
            raise NotFoundError(f"项目不存在: {project_id}")
        with open(path, "r", encoding="utf-8") as f:
            return Project.from_dict(json.load(f))

    def load_all_projects(self) -> List[Project]:
        """按创建顺序加载全部项目，损坏的文件记录日志后跳过。"""
        projects: List[Project] = []
        for project_id in self._ordered_ids():
            try:
                projects.append(self.load_project(project_id))
            except (OSError, ValueError, KeyError, TypeError) as exc:
                logger.error("跳过无法解析的项目文件 %s: %s", project_id, exc)
        return projects

    def _write_project(self, project: Project) -> None:
        self._write_json(self._project_path(project.id), project.to_dict())

    def create_project(self, project: Project) -> Project:
        if not (project.title or "").strip():
            raise InvalidOperationError("项目标题不能为空")
        if self.exists(project.id):
            raise InvalidOperationError(f"项目已存在: {project.id}")

        stored = self.externalize_images(project)
        self._write_project(stored)
        project_ids = self._ordered_ids()
        if project.id not in project_ids:
            project_ids.append(project.id)
        self._write_index(project_ids)
        logger.info("已创建项目 %s (%s)", project.id, project.title)
        return stored

    def update_project(self, project: Project) -> Project:
        if not self.exists(project.id):
            raise NotFoundError(f"项目不存在: {project.id}")

        previous_keys: Set[str] = set()
        try:
            previous_keys = self._image_keys(self.load_project(project.id))
        except (ValueError, KeyError, TypeError) as exc:
            logger.error("旧项目文件损坏，直接覆盖 %s: %s", project.id, exc)
        stored = self.externalize_images(project)
        self._write_project(stored)
        # 已删除实体的图像一并释放
        self._release_images(previous_keys - self._image_keys(stored))
        return stored

    def save_project(self, project: Project) -> Project:
        """存在则更新，否则创建（自动保存使用）。"""
        if self.exists(project.id):
            return self.update_project(project)
        return self.create_project(project)

    def delete_project(self, project_id: str) -> bool:
        path = self._project_path(project_id)
        if not os.path.exists(path):
            return False

        keys: Set[str] = set()
        try:
            project = self.load_project(project_id)
        except (ValueError, KeyError, TypeError) as exc:
            logger.error("项目文件损坏，仅删除文件本身 %s: %s", project_id, exc)
        else:
            keys = self._image_keys(project)
            keys.update(image_key(entity.id) for entity in _iter_image_entities(project))
        self._release_images(keys)

        os.remove(path)
        self._write_index([pid for pid in self._ordered_ids() if pid != project_id])
        logger.info("已删除项目 %s", project_id)
        return True

    def seed_sample_projects(self) -> int:
        """数据目录为空时写入示例项目，返回写入数量。"""
        if self._ordered_ids():
            return 0
        from .samples import sample_projects

        projects = sample_projects()
        for project in projects:
            self.create_project(project)
        return len(projects)

    def get_project_info(self, project_id: str) -> Dict[str, Any]:
        """项目概况（CLI / 界面列表使用）。"""
        project = self.load_project(project_id)
        section_count = sum(1 for _ in _iter_image_entities(project)) - len(project.characters)
        return {
            "id": project.id,
            "title": project.title,
            "genre": project.genre,
            "section_count": section_count,
            "character_count": len(project.characters),
            "note_count": len(project.notes),
            "task_list_count": len(project.task_lists),
        }
