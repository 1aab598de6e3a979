"""Shared fixtures: real package archives built in tmp_path."""

import os
import zipfile
from io import BytesIO
from pathlib import Path
from typing import Optional

import pytest
from PIL import Image


def png_bytes(size=(64, 32), mode='RGBA', color=(200, 30, 30, 128)) -> bytes:
    """A small PNG, wider than tall so cropping is exercised."""
    image = Image.new(mode, size, color if mode == 'RGBA' else color[:3])
    out = BytesIO()
    image.save(out, format='PNG')
    return out.getvalue()


def package_manifest(
    identifier: str,
    description: Optional[str] = None,
    category: Optional[str] = None,
    picture: Optional[str] = None,
    dependencies: Optional[str] = None,
) -> bytes:
    parts = ['<?xml version="1.0" encoding="utf-8"?>', '<Open_Mod_Manager_Package>']
    parts.append(f'<install>{identifier}</install>')
    if dependencies:
        parts.append(dependencies)
    if picture:
        parts.append(f'<picture>{picture}</picture>')
    if category:
        parts.append(f'<category>{category}</category>')
    if description:
        parts.append(f'<description>{description}</description>')
    parts.append('</Open_Mod_Manager_Package>')
    return '\n'.join(parts).encode('utf-8')


def write_package(
    path: Path,
    identifier: str = "texture-pack",
    description: Optional[str] = "A texture pack",
    category: Optional[str] = None,
    logo: bool = True,
    dependencies: Optional[str] = None,
    manifest: bool = True,
    payload: bytes = b"mod content",
) -> Path:
    """Write a package archive and return its path."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, 'w') as zf:
        if manifest:
            zf.writestr('package.omp', package_manifest(
                identifier,
                description=description,
                category=category,
                picture='logo.png' if logo else None,
                dependencies=dependencies,
            ))
        if logo:
            zf.writestr('logo.png', png_bytes())
        zf.writestr('content/data.bin', payload)
    return path


@pytest.fixture
def mods_dir(tmp_path):
    """Empty repository root directory."""
    root = tmp_path / "mods"
    root.mkdir()
    return root


@pytest.fixture
def index_path(tmp_path):
    return tmp_path / "repository.xml"


@pytest.fixture
def isolated_home(tmp_path, monkeypatch):
    """Point HOME at tmp_path so no real config file is picked up."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv('HOME', str(home))
    monkeypatch.delenv('OMMREPO_CONFIG', raising=False)
    for key in list(os.environ):
        if key.startswith('OMMREPO_'):
            monkeypatch.delenv(key, raising=False)
    return home
