# generator.py (Jinja2 渲染 + 布局 + HTML Minify)

import os
import re
from datetime import datetime, date, timezone
from typing import Any, Dict, Mapping, Optional, Tuple

import minify_html
from jinja2 import ChoiceLoader, Environment, FileSystemLoader, Template, TemplateRuntimeError, select_autoescape
from markupsafe import Markup

from config import BuildConfig, MinifyOptions
from models import ContentPage
from navigation import is_current_url, normalize_url
from parser import render_markdown, split_front_matter

# 布局可以再指定上一级布局，超过此深度视为循环
MAX_LAYOUT_DEPTH = 10

DOCTYPE_RE = re.compile(r'\A\s*<!doctype[^>]*>', re.IGNORECASE)
SHORT_DOCTYPE = '<!doctype html>'


# --- 模板过滤器 ---

def readable_date(value: Any) -> str:
    """人类可读日期 (UTC)，例如 05 Mar 2024。"""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.strftime('%d %b %Y')
    if isinstance(value, date):
        return value.strftime('%d %b %Y')
    return ''


def create_environment(cfg: BuildConfig) -> Environment:
    """
    Jinja2 环境：先在 _includes 中查找布局，再在输入目录中查找。
    .html / .njk 文件都作为模板处理。
    """
    env = Environment(
        loader=ChoiceLoader([
            FileSystemLoader(cfg.includes_dir),
            FileSystemLoader(cfg.input_dir),
        ]),
        autoescape=select_autoescape(['html', 'htm', 'njk', 'xml']),
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters['is_current_url'] = is_current_url
    env.filters['normalize_url'] = normalize_url
    env.filters['readable_date'] = readable_date
    return env


# --- HTML 压缩 ---

def minify_html_content(html_content: str, options: MinifyOptions) -> str:
    """对生成的 HTML 内容进行最小化处理 (minify_html)。"""
    # minify_html 总会折叠空白；关闭 collapse_whitespace 时整体跳过压缩
    if not options.collapse_whitespace:
        return html_content
    # minify_html 的 doctype 压缩会输出 <!doctypehtml>，这里改写为标准短格式并原样保留
    if options.use_short_doctype:
        html_content = DOCTYPE_RE.sub(SHORT_DOCTYPE, html_content, count=1)
    return minify_html.minify(
        html_content,
        minify_doctype=False,
        keep_comments=not options.remove_comments,
        minify_css=True,
        minify_js=True,
        keep_html_and_head_opening_tags=True,
    )


def apply_transforms(content: str, output_path: str, options: MinifyOptions) -> str:
    # 只压缩 .html 输出
    if output_path.endswith('.html'):
        return minify_html_content(content, options)
    return content


# --- 页面渲染 ---

def build_page_context(
    page: ContentPage,
    global_data: Mapping[str, Any],
    collections: Mapping[str, Any],
) -> Dict[str, Any]:
    context: Dict[str, Any] = dict(global_data)
    context.update(page.data)
    context['page'] = {
        'url': page.url,
        'input_path': page.source_path,
        'file_slug': page.file_slug,
        'date': page.date,
    }
    context['collections'] = collections
    return context


def render_body(env: Environment, page: ContentPage, context: Mapping[str, Any], cfg: BuildConfig) -> str:
    if os.path.splitext(page.source_path)[1].lower() == '.md':
        return render_markdown(page.body, cfg.markdown)
    return env.from_string(page.body).render(context)


def load_layout(env: Environment, name: str) -> Tuple[Dict[str, Any], Template]:
    """读取布局文件：拆出布局自己的 front matter，正文作为模板。"""
    source, filename, _ = env.loader.get_source(env, name)
    metadata, body = split_front_matter(source, source=filename or name)
    return metadata, env.from_string(body)


def render_page(
    env: Environment,
    page: ContentPage,
    global_data: Mapping[str, Any],
    collections: Mapping[str, Any],
    cfg: BuildConfig,
) -> str:
    """
    渲染页面正文，如 front matter 指定了 layout 则套用布局模板。
    布局的 front matter 可以继续指定 layout，逐级向外套用。
    布局中的数据只补充页面没有设置的键。
    """
    context = build_page_context(page, global_data, collections)
    content = render_body(env, page, context, cfg)

    layout: Optional[str] = page.data.get('layout')
    depth = 0
    while layout:
        depth += 1
        if depth > MAX_LAYOUT_DEPTH:
            raise TemplateRuntimeError(
                f"Layout chain for {page.source_path} exceeds {MAX_LAYOUT_DEPTH} levels (cycle?)"
            )
        layout_data, template = load_layout(env, layout)
        for key, value in layout_data.items():
            if key not in page.data:
                context[key] = value
        context['content'] = Markup(content)
        content = template.render(context)
        layout = layout_data.get('layout')

    return content


def write_page(page: ContentPage, html_content: str, cfg: BuildConfig):
    output_path = page.output_path
    os.makedirs(os.path.dirname(output_path), exist_ok=True)
    html_content = apply_transforms(html_content, output_path, cfg.minify)
    with open(output_path, 'w', encoding='utf-8') as f:
        f.write(html_content)
    print(f"Generated: {os.path.relpath(output_path, cfg.output_dir)}")
