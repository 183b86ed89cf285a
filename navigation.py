# navigation.py

import re
import unicodedata
from datetime import datetime
from typing import Iterable, List, Optional

from models import ContentPage, NavEntry

DEFAULT_MENU_LOCATION = 'primary'
HIDDEN_MENU_LOCATION = 'none'

POST_TAGS = ('post', 'posts')

# Google Search Console 验证文件，例如 /google1a2b3c.html
SITE_VERIFICATION_RE = re.compile(r'^/google[a-z0-9]+\.html$', re.IGNORECASE)
INDEX_HTML_RE = re.compile(r'index\.html$', re.IGNORECASE)


# --- 约定判断 ---

def is_admin_url(url: str) -> bool:
    return url.startswith('/admin')


def is_post_tagged(tags: Iterable[str]) -> bool:
    return any(tag in POST_TAGS for tag in tags)


def is_in_posts_folder(source_path: str) -> bool:
    return '/posts/' in source_path or '\\posts\\' in source_path


def is_site_verification_url(url: str) -> bool:
    return bool(SITE_VERIFICATION_RE.match(url))


def resolve_location(page: ContentPage) -> str:
    return page.menu.location or DEFAULT_MENU_LOCATION


# --- URL 规范化 (用于模板中高亮当前导航项) ---

def normalize_url(url: Optional[str]) -> str:
    """
    规范化站内 URL：
    去掉末尾 index.html，并保证以单个 / 结尾。外部链接 (http 开头) 原样返回。
    """
    if not url:
        return '/'
    url = str(url).strip()
    url = INDEX_HTML_RE.sub('', url)
    if url.startswith('http'):
        return url
    if url != '/' and not url.endswith('/'):
        url += '/'
    return url


def is_current_url(link_url: Optional[str], page_url: Optional[str]) -> bool:
    return normalize_url(link_url) == normalize_url(page_url)


# --- 导航集合 ---

def title_sort_key(title: str) -> str:
    # 按人类习惯排序：去掉重音差异并忽略大小写
    decomposed = unicodedata.normalize('NFKD', title)
    stripped = ''.join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.casefold()


def nav_sort_key(entry: NavEntry):
    title_key = (title_sort_key(entry.title), entry.title)
    if entry.order is None:
        return (1, 0.0, title_key)
    return (0, entry.order, title_key)


def is_nav_candidate(page: ContentPage, location: str) -> bool:
    if not page.has_metadata:
        return False
    if not page.title.strip():
        return False

    # 草稿、隐藏、无输出
    if page.draft or page.menu.hide or not page.url:
        return False

    if is_admin_url(page.url):
        return False

    # 博客文章不进入导航 (按标签或目录约定)
    if is_post_tagged(page.tags) or is_in_posts_folder(page.source_path):
        return False

    if is_site_verification_url(page.url):
        return False

    resolved = resolve_location(page)
    if resolved == HIDDEN_MENU_LOCATION:
        return False
    return resolved == location


def to_nav_entry(page: ContentPage) -> NavEntry:
    menu = page.menu
    return NavEntry(
        title=menu.title or page.title or page.file_slug,
        url=menu.url or page.url,
        order=menu.order,
        external=bool(menu.external),
    )


def build_nav(pages: Iterable[ContentPage], location: str) -> List[NavEntry]:
    """
    根据 front matter 的 menu.* 设置生成某个导航位置的有序链接列表。
    有 order 的条目排在前面，按 order 升序；其余按标题排序。
    """
    entries = [to_nav_entry(page) for page in pages if is_nav_candidate(page, location)]
    return sorted(entries, key=nav_sort_key)


# --- 文章列表 ---

def build_posts(pages: Iterable[ContentPage]) -> List[ContentPage]:
    """所有带 post/posts 标签的页面，按日期倒序。没有日期的排在最后。"""
    posts = [page for page in pages if is_post_tagged(page.tags)]
    return sorted(
        posts,
        key=lambda p: (p.date is not None, p.date or datetime.min),
        reverse=True,
    )
