"""Shared fixtures: throwaway Next.js source trees under a temp directory."""

import tempfile
import textwrap
from pathlib import Path

import pytest

from security_validator.config import CATEGORY_SETTINGS, ValidatorConfig, load_config
from security_validator.models import CheckResult
from security_validator.scanners import ScanContext
from security_validator.scanners.common import SourceIndex
from security_validator.suppression import SuppressionResolver

VALIDATOR_ENV_VARS = [
    "GITHUB_ACTIONS",
    "GITHUB_STEP_SUMMARY",
    "SECURITY_SOURCE_DIR",
    "SECURITY_RBAC_IGNORED_ROLES",
    *(settings.env_key for settings in CATEGORY_SETTINGS.values()),
]


class ProjectBuilder:
    """Writes files under ``<root>/web/src`` and runs checks against them."""

    def __init__(self, root: Path):
        self.root = root
        self.src = root / "web" / "src"
        self.src.mkdir(parents=True)

    def write(self, relative_path: str, content: str) -> Path:
        path = self.src / relative_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(content).lstrip("\n"))
        return path

    def config(self, **environ: str) -> ValidatorConfig:
        return load_config(self.root, environ=environ)

    def run(self, check_cls, **environ: str) -> CheckResult:
        config = self.config(**environ)
        context = ScanContext(
            index=SourceIndex.load(config.source_root, config.project_root),
            resolver=SuppressionResolver(),
            config=config,
            severity=config.severity(check_cls.category),
        )
        return check_cls().run(context)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep the caller's CI and severity settings out of every test."""
    for name in VALIDATOR_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def project(temp_dir):
    return ProjectBuilder(temp_dir)
