"""Shared fixtures: sample frontend projects and AWS fakes."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from sitefront.config import FrontendConfig, resolve_config
from sitefront.process import ProcessResult
from tests.fakes import FakeS3


def write_files(root: Path, files: dict[str, str | bytes]) -> None:
    for name, content in files.items():
        path = root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content)


@pytest.fixture
def ssr_project(tmp_path: Path) -> Path:
    """A TanStack Start project with a finished build."""
    write_files(
        tmp_path,
        {
            "package.json": json.dumps({"dependencies": {"@tanstack/react-start": "1.0.0"}}),
            ".output/public/assets/app-3f2a9c.js": "console.log('app')",
            ".output/public/assets/style-81bd.css": "body{}",
            ".output/public/favicon.ico": b"\x00\x00\x01\x00",
            ".output/server/index.mjs": "export const handler = () => {}",
        },
    )
    return tmp_path


@pytest.fixture
def spa_project(tmp_path: Path) -> Path:
    """A Vite single-page app with a finished build."""
    write_files(
        tmp_path,
        {
            "package.json": json.dumps({"devDependencies": {"vite": "5.0.0"}}),
            "yarn.lock": "",
            "dist/index.html": "<html></html>",
            "dist/assets/app.3f2a9c.js": "console.log('app')",
        },
    )
    return tmp_path


@pytest.fixture
def ssr_resolved(ssr_project: Path):
    return resolve_config(FrontendConfig(service="shop", stage="prod"), ssr_project)


@pytest.fixture
def spa_resolved(spa_project: Path):
    return resolve_config(FrontendConfig(service="shop", stage="prod"), spa_project)


@pytest.fixture
def fake_s3() -> FakeS3:
    return FakeS3()


@pytest.fixture
def ok_runner() -> MagicMock:
    runner = MagicMock()
    runner.run.return_value = ProcessResult(0, "built", "")
    return runner
