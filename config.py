# config.py

import os
from dataclasses import dataclass, field
from typing import Dict, Tuple

# --- 目录配置 ---
INPUT_DIR = 'src'
BUILD_DIR = '_site'
INCLUDES_DIR_NAME = '_includes'
DATA_DIR_NAME = '_data'

# 作为模板处理的文件类型 (.html 与 .njk 都交给 Jinja2 渲染)
TEMPLATE_FORMATS = ('.md', '.html', '.njk')

# --- 静态文件直接复制 ---
# 1. 显式映射：源路径 -> 输出路径 (相对于输出目录)
PASSTHROUGH_COPY = {
    'src/admin/config.yml': 'admin/config.yml',
}

# 2. 按原相对路径复制 (相对于 INPUT_DIR 输出)
PASSTHROUGH_PATHS = (
    'src/static/img',
    'src/static/js',
    'src/static/fonts',
    'src/static/css',
    'src/favicon.ico',
    'src/static/svg',
)

# --- 导航配置 ---
NAV_LOCATIONS = ('primary', 'secondary')

# --- Markdown 配置 ---
MARKDOWN_OPTIONS = {
    'html': True,      # 允许 Markdown 中的原始 HTML
    'breaks': True,    # 单个换行转为 <br>
    'linkify': True,   # 自动识别裸链接
}

# 代码高亮：pymdownx.highlight 生成 Pygments 类名，由主题 CSS 着色
HIGHLIGHT_CONFIG = {
    'use_pygments': True,
    'css_class': 'highlight',
    'guess_lang': False,
    'noclasses': False,
    'pygments_lang_class': True,
}

# --- HTML 压缩配置 ---
MINIFY_OPTIONS = {
    'use_short_doctype': True,
    'remove_comments': True,
    'collapse_whitespace': True,
}


@dataclass(frozen=True)
class MarkdownOptions:
    html: bool = True
    breaks: bool = True
    linkify: bool = True


@dataclass(frozen=True)
class MinifyOptions:
    use_short_doctype: bool = True
    remove_comments: bool = True
    collapse_whitespace: bool = True


@dataclass(frozen=True)
class BuildConfig:
    """
    一次构建所需的全部配置。
    启动时构造一次，显式传入构建流程，构建过程中不再修改。
    """
    root: str
    input_dir: str
    output_dir: str
    passthrough_copy: Dict[str, str] = field(default_factory=dict)
    passthrough_paths: Tuple[str, ...] = ()
    markdown: MarkdownOptions = MarkdownOptions()
    minify: MinifyOptions = MinifyOptions()
    nav_locations: Tuple[str, ...] = NAV_LOCATIONS
    template_formats: Tuple[str, ...] = TEMPLATE_FORMATS

    @property
    def includes_dir(self) -> str:
        return os.path.join(self.input_dir, INCLUDES_DIR_NAME)

    @property
    def data_dir(self) -> str:
        return os.path.join(self.input_dir, DATA_DIR_NAME)

    @classmethod
    def from_defaults(cls, root: str = '.', output_dir: str = None) -> 'BuildConfig':
        """使用本模块中的常量构造配置，所有相对路径都以 root 为基准。"""
        root = os.path.abspath(root)
        return cls(
            root=root,
            input_dir=os.path.join(root, INPUT_DIR),
            output_dir=os.path.abspath(output_dir) if output_dir else os.path.join(root, BUILD_DIR),
            passthrough_copy=dict(PASSTHROUGH_COPY),
            passthrough_paths=tuple(PASSTHROUGH_PATHS),
            markdown=MarkdownOptions(**MARKDOWN_OPTIONS),
            minify=MinifyOptions(**MINIFY_OPTIONS),
        )
