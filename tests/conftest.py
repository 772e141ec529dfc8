from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

import pytest

from intellibuild.ui.console import Console, set_console


@pytest.fixture(autouse=True)
def _fresh_console():
    set_console(Console())
    yield
    set_console(Console())


def _git(repo: Path, *args: str) -> None:
    subprocess.run(["git", *args], cwd=repo, check=True, capture_output=True, text=True)


def write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    """
    A committed working tree:
      app/A.cbproj  -> references x.cpp, y.cpp
      lib/B.cbproj  -> references z.cpp
      src/x.cpp, src/y.cpp, src/z.cpp, README
    """
    if shutil.which("git") is None:
        pytest.skip("git is not installed")

    repo = tmp_path / "repo"
    repo.mkdir()
    _git(repo, "init", "-q")
    _git(repo, "config", "user.email", "dev@example.com")
    _git(repo, "config", "user.name", "Dev")
    _git(repo, "config", "commit.gpgsign", "false")

    write(
        repo / "app" / "A.cbproj",
        "<Project>\n"
        '  <CppCompile Include="..\\src\\x.cpp" />\n'
        '  <CppCompile Include="..\\src\\y.cpp" />\n'
        "</Project>\n",
    )
    write(
        repo / "lib" / "B.cbproj",
        "<Project>\n"
        '  <CppCompile Include="..\\src\\z.cpp" />\n'
        "</Project>\n",
    )
    write(repo / "src" / "x.cpp", "int x() { return 1; }\n")
    write(repo / "src" / "y.cpp", "int y() { return 2; }\n")
    write(repo / "src" / "z.cpp", "int z() { return 3; }\n")
    write(repo / "README", "no extension here\n")

    _git(repo, "add", "-A")
    _git(repo, "commit", "-q", "-m", "initial")
    return repo.resolve()


@pytest.fixture
def git():
    return _git
