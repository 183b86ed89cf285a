# models.py

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Optional, Tuple


@dataclass(frozen=True)
class MenuSettings:
    """front matter 中 `menu:` 块的规范化结果。缺省 menu 即全部默认值。"""
    location: Optional[str] = None
    hide: bool = False
    order: Optional[float] = None
    title: Optional[str] = None
    url: Optional[str] = None
    external: bool = False


@dataclass(frozen=True)
class ContentPage:
    """
    一个内容页面的类型化记录。
    由 parser.normalize_page 在读取文件时一次性生成，之后只读。
    """
    title: str = ''
    tags: Tuple[str, ...] = ()
    draft: bool = False
    url: str = ''
    source_path: str = ''
    menu: MenuSettings = MenuSettings()
    date: Optional[datetime] = None
    file_slug: str = ''
    has_metadata: bool = False
    data: Mapping[str, Any] = field(default_factory=dict)
    output_path: str = ''
    body: str = ''


@dataclass(frozen=True)
class NavEntry:
    title: str
    url: str
    order: Optional[float] = None
    external: bool = False
