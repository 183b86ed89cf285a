# autobuild.py - 站点构建入口

import argparse
import glob
import json
import os
import shutil
import sys
from dataclasses import dataclass
from typing import Any, Dict, List

import yaml
from jinja2 import TemplateError

import generator
from config import BuildConfig
from models import ContentPage
from navigation import build_nav, build_posts
from parser import load_page


@dataclass
class BuildResult:
    pages_written: int = 0
    files_copied: int = 0
    failures: int = 0


# --- 静态文件复制 ---

def _copy_item(source: str, destination: str) -> int:
    """复制单个文件或整个目录，返回复制的文件数。"""
    if os.path.isdir(source):
        shutil.copytree(source, destination, dirs_exist_ok=True)
        return sum(len(files) for _, _, files in os.walk(source))
    os.makedirs(os.path.dirname(destination), exist_ok=True)
    shutil.copy2(source, destination)
    return 1


def passthrough_copy(cfg: BuildConfig) -> int:
    copied = 0
    targets = [
        (os.path.join(cfg.root, src), os.path.join(cfg.output_dir, dest))
        for src, dest in cfg.passthrough_copy.items()
    ]
    for path in cfg.passthrough_paths:
        source = os.path.join(cfg.root, path)
        targets.append((source, os.path.join(cfg.output_dir, os.path.relpath(source, cfg.input_dir))))

    for source, destination in targets:
        if not os.path.exists(source):
            print(f"   -> [SKIPPED] Passthrough source not found: {os.path.relpath(source, cfg.root)}")
            continue
        copied += _copy_item(source, destination)
    return copied


def passthrough_sources(cfg: BuildConfig) -> List[str]:
    paths = [os.path.join(cfg.root, p) for p in cfg.passthrough_copy]
    paths += [os.path.join(cfg.root, p) for p in cfg.passthrough_paths]
    return [os.path.normpath(p) for p in paths]


# --- 全局数据 (_data) ---

def load_global_data(data_dir: str) -> Dict[str, Any]:
    """读取 _data 下的 yaml/yml/json 文件，以文件名 (不含扩展名) 为键。"""
    data: Dict[str, Any] = {}
    if not os.path.isdir(data_dir):
        return data

    for path in sorted(glob.glob(os.path.join(data_dir, '*'))):
        name, ext = os.path.splitext(os.path.basename(path))
        ext = ext.lower()
        if ext not in ('.yaml', '.yml', '.json'):
            continue
        try:
            with open(path, 'r', encoding='utf-8') as f:
                if ext == '.json':
                    data[name] = json.load(f)
                else:
                    data[name] = yaml.safe_load(f)
        except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
            print(f"Error loading data file {path}: {e}")
    return data


# --- 内容收集 ---

def collect_pages(cfg: BuildConfig) -> List[ContentPage]:
    """遍历输入目录，收集所有模板文件。跳过 _ 开头的目录和静态复制的源路径。"""
    excluded = passthrough_sources(cfg)
    paths = []
    for dirpath, dirnames, filenames in os.walk(cfg.input_dir):
        dirnames[:] = sorted(
            d for d in dirnames
            if not d.startswith('_') and os.path.normpath(os.path.join(dirpath, d)) not in excluded
        )
        for file_name in sorted(filenames):
            path = os.path.join(dirpath, file_name)
            if os.path.splitext(file_name)[1].lower() not in cfg.template_formats:
                continue
            if os.path.normpath(path) in excluded:
                continue
            paths.append(path)
    return [load_page(path, cfg) for path in paths]


def build_collections(pages: List[ContentPage], cfg: BuildConfig) -> Dict[str, Any]:
    collections: Dict[str, Any] = {'all': pages}
    for location in cfg.nav_locations:
        collections[f'{location}_nav'] = build_nav(pages, location)
    collections['blog_posts'] = build_posts(pages)
    return collections


def build_site(cfg: BuildConfig) -> BuildResult:
    print("\n" + "=" * 40)
    print("   🚀 STARTING BUILD PROCESS")
    print("=" * 40 + "\n")

    result = BuildResult()

    print("[1/5] Preparing build directory...")
    os.makedirs(cfg.output_dir, exist_ok=True)

    print("\n[2/5] Copying static files...")
    result.files_copied = passthrough_copy(cfg)
    print(f"   -> Copied {result.files_copied} files.")

    print("\n[3/5] Loading global data...")
    global_data = load_global_data(cfg.data_dir)
    print(f"   -> Loaded {len(global_data)} data files.")

    print("\n[4/5] Collecting pages and building navigation...")
    pages = collect_pages(cfg)
    collections = build_collections(pages, cfg)
    print(f"   -> {len(pages)} pages, {len(collections['blog_posts'])} blog posts.")

    print("\n[5/5] Generating HTML...")
    env = generator.create_environment(cfg)
    for page in pages:
        if not page.output_path:
            continue
        try:
            html_content = generator.render_page(env, page, global_data, collections, cfg)
            generator.write_page(page, html_content, cfg)
            result.pages_written += 1
        except (TemplateError, OSError) as e:
            print(f"Error generating {page.source_path}: {e}")
            result.failures += 1

    print(f"\n✅ BUILD COMPLETE ({result.pages_written} pages, {result.failures} failures)")
    return result


def main(argv=None) -> int:
    arg_parser = argparse.ArgumentParser(description="Build the static site.")
    arg_parser.add_argument('--root', default='.', help="project root containing the src/ directory")
    arg_parser.add_argument('--output', default=None, help="output directory (default: <root>/_site)")
    args = arg_parser.parse_args(argv)

    cfg = BuildConfig.from_defaults(args.root, output_dir=args.output)
    result = build_site(cfg)
    return 1 if result.failures else 0


if __name__ == '__main__':
    sys.exit(main())
