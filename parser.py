# parser.py

import math
import os
import re
from datetime import datetime, date, timezone
from typing import Any, Dict, Mapping, Optional, Tuple

import markdown
import yaml
from bs4 import BeautifulSoup

import config
from config import BuildConfig, MarkdownOptions
from models import ContentPage, MenuSettings

FRONT_MATTER_RE = re.compile(r'\A---[ \t]*\r?\n(.*?)^---[ \t]*(?:\r?\n|\Z)', re.DOTALL | re.MULTILINE)


# -------------------------------------------------------------------------
# 【Front matter 读取】
# -------------------------------------------------------------------------
def split_front_matter(text: str, source: str = '<string>') -> Tuple[Dict[str, Any], str]:
    """
    拆分文件头部的 YAML front matter 和正文。
    YAML 解析失败时打印错误并按空元数据处理，页面仍然会被构建。
    """
    match = FRONT_MATTER_RE.match(text)
    if not match:
        return {}, text

    body = text[match.end():]
    try:
        metadata = yaml.safe_load(match.group(1)) or {}
    except yaml.YAMLError as exc:
        print(f"Error parsing YAML frontmatter in {source}: {exc}")
        return {}, body

    if not isinstance(metadata, dict):
        print(f"警告：{source} 的 front matter 不是键值映射，已忽略。")
        return {}, body
    return metadata, body


# -------------------------------------------------------------------------
# 【元数据规范化】宽松的 front matter -> 类型化记录，只在读取时做一次
# -------------------------------------------------------------------------
def standardize_date(value: Any) -> Optional[datetime]:
    """日期统一为不带时区的 UTC datetime；纯日期视为当天零点。"""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str) and value.strip():
        try:
            return standardize_date(datetime.fromisoformat(value.strip()))
        except ValueError:
            return None
    return None


def coerce_tags(value: Any) -> Tuple[str, ...]:
    # 单个值不按逗号拆分，与 tags: post 这种写法保持一致
    if not value:
        return ()
    if isinstance(value, (list, tuple, set)):
        return tuple(str(tag) for tag in value if tag is not None)
    return (str(value),)


def coerce_order(value: Any) -> Optional[float]:
    """
    menu.order 能转换成有限数字时返回该数字，否则视为未设置。
    显式写出的空值 (order: 或 order: "") 按 0 处理；键不存在时由 coerce_menu 视为未设置。
    """
    if value is None or value is False:
        return 0.0
    if value is True:
        return 1.0
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        if not value.strip():
            return 0.0
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _optional_str(value: Any) -> Optional[str]:
    if value is None or value is False or value == '':
        return None
    return str(value)


def coerce_menu(value: Any) -> MenuSettings:
    if not isinstance(value, Mapping):
        return MenuSettings()
    return MenuSettings(
        location=_optional_str(value.get('location')),
        hide=value.get('hide') is True,
        order=coerce_order(value['order']) if 'order' in value else None,
        title=_optional_str(value.get('title')),
        url=_optional_str(value.get('url')),
        external=bool(value.get('external')),
    )


def normalize_page(
    metadata: Mapping[str, Any],
    url: str = '',
    source_path: str = '',
    file_slug: str = '',
    output_path: str = '',
    body: str = '',
) -> ContentPage:
    metadata = metadata if isinstance(metadata, Mapping) else {}
    title = metadata.get('title')
    return ContentPage(
        title=title if isinstance(title, str) else '',
        tags=coerce_tags(metadata.get('tags')),
        draft=metadata.get('draft') is True,
        url=url or '',
        source_path=source_path,
        menu=coerce_menu(metadata.get('menu')),
        date=standardize_date(metadata.get('date')),
        file_slug=file_slug,
        has_metadata=bool(metadata),
        data=dict(metadata),
        output_path=output_path,
        body=body,
    )


# -------------------------------------------------------------------------
# 【URL 与输出路径】
# -------------------------------------------------------------------------
def get_file_slug(relative_path: str) -> str:
    relative_path = relative_path.replace('\\', '/')
    directory, file_name = os.path.split(relative_path)
    stem = os.path.splitext(file_name)[0]
    if stem == 'index':
        return os.path.basename(directory)
    return stem


def compute_url(relative_path: str, permalink: Any = None) -> str:
    """
    计算页面的站内 URL (目录模式 Pretty URL)：
    index.md -> /，about.md -> /about/，posts/hello.md -> /posts/hello/。
    front matter 中的 permalink 优先；permalink: false 表示不输出文件。
    """
    if permalink is False:
        return ''
    if isinstance(permalink, str) and permalink.strip():
        permalink = permalink.strip()
        return permalink if permalink.startswith('/') else f'/{permalink}'

    relative_path = relative_path.replace('\\', '/')
    directory, file_name = os.path.split(relative_path)
    stem = os.path.splitext(file_name)[0]

    if stem == 'index':
        return f'/{directory}/' if directory else '/'
    if directory:
        return f'/{directory}/{stem}/'
    return f'/{stem}/'


def compute_output_path(output_dir: str, url: str) -> str:
    if not url:
        return ''
    parts = [p for p in url.split('/') if p]
    if url.endswith('/'):
        parts.append('index.html')
    return os.path.join(output_dir, *parts)


def load_page(path: str, cfg: BuildConfig) -> ContentPage:
    """读取一个内容文件并生成 ContentPage。读取失败时按空页面处理。"""
    relative_path = os.path.relpath(path, cfg.input_dir)
    source_path = './' + os.path.relpath(path, cfg.root).replace(os.sep, '/')
    if os.sep == '\\':
        source_path = source_path.replace('/', '\\')

    try:
        with open(path, 'r', encoding='utf-8') as f:
            text = f.read()
    except (OSError, UnicodeDecodeError) as e:
        print(f"Error reading file {path}: {e}")
        text = ''

    metadata, body = split_front_matter(text, source=path)
    url = compute_url(relative_path, metadata.get('permalink'))
    return normalize_page(
        metadata,
        url=url,
        source_path=source_path,
        file_slug=get_file_slug(relative_path),
        output_path=compute_output_path(cfg.output_dir, url),
        body=body,
    )


# -------------------------------------------------------------------------
# 【Markdown 渲染】
# -------------------------------------------------------------------------
def create_markdown(options: MarkdownOptions) -> markdown.Markdown:
    extensions = [
        'tables',
        'sane_lists',
        'pymdownx.tilde',
        'pymdownx.tasklist',
        'pymdownx.highlight',
        'pymdownx.superfences',
    ]
    extension_configs = {
        'pymdownx.highlight': dict(config.HIGHLIGHT_CONFIG),
        'pymdownx.superfences': {'css_class': config.HIGHLIGHT_CONFIG['css_class']},
    }
    if options.breaks:
        extensions.append('nl2br')
    if options.linkify:
        extensions.append('pymdownx.magiclink')

    md = markdown.Markdown(
        extensions=extensions,
        extension_configs=extension_configs,
        output_format='html5',
    )
    if not options.html:
        # 关闭原始 HTML：块级与行内 HTML 都按文本转义输出
        md.preprocessors.deregister('html_block')
        md.inlinePatterns.deregister('html')
    return md


def render_markdown(text: str, options: MarkdownOptions) -> str:
    md = create_markdown(options)
    return post_process_html(md.convert(text or ''))


LANG_LABELS = {
    'py': 'PYTHON', 'python': 'PYTHON',
    'js': 'JS', 'javascript': 'JS',
    'ts': 'TS', 'typescript': 'TS',
    'sh': 'SHELL', 'bash': 'SHELL', 'shell': 'SHELL',
    'html': 'HTML', 'css': 'CSS', 'json': 'JSON',
    'yaml': 'YAML', 'yml': 'YAML', 'md': 'MARKDOWN', 'markdown': 'MARKDOWN',
}


def post_process_html(html_content: str) -> str:
    """
    使用 BeautifulSoup 对渲染后的 HTML 做后处理：
    图片懒加载、表格包裹、代码块语言标签 (data-lang)。
    """
    if not html_content:
        return ''

    soup = BeautifulSoup(html_content, 'html.parser')

    for img in soup.find_all('img'):
        if not img.get('loading'):
            img['loading'] = 'lazy'

    for table in soup.find_all('table'):
        parent = table.parent
        if parent is None or 'table-wrapper' not in (parent.get('class') or []):
            wrapper = soup.new_tag('div', attrs={'class': 'table-wrapper'})
            table.replace_with(wrapper)
            wrapper.append(table)

    for div in soup.find_all('div', class_=config.HIGHLIGHT_CONFIG['css_class']):
        lang = 'CODE'
        classes = list(div.get('class', []))
        for tag in div.find_all(['pre', 'code']):
            classes.extend(tag.get('class', []))
        for cls in classes:
            if cls.startswith('language-'):
                name = cls[len('language-'):]
                lang = LANG_LABELS.get(name.lower(), name.upper())
                break
        pre = div.find('pre')
        if pre is not None:
            pre['data-lang'] = lang

    return str(soup)
