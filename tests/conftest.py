"""Pytest configuration and fixtures for ctxpack tests."""


import pytest


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep tests away from the real ~/.ctxpack and CTXPACK_* variables."""
    for var in ("CTXPACK_STATE_DIR", "CTXPACK_TOKEN_BUDGET", "CTXPACK_COST_PER_UNIT"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr("ctxpack.config.GLOBAL_STATE_DIR", tmp_path / "global-ctxpack")


class LiveSections:
    """In-memory live storage for integrity restore."""

    def __init__(self, files=None):
        self.files = dict(files or {})

    def write(self, name, content):
        self.files[name] = content

    def sections(self):
        from ctxpack.compiler import Section
        return [Section(name, content, 10) for name, content in self.files.items()]


@pytest.fixture
def live():
    return LiveSections()


@pytest.fixture
def unit_config():
    """Config measuring cost in characters (1 char per unit)."""
    from ctxpack.config import CompilerConfig
    return CompilerConfig(budget=1000, cost_per_unit=1.0)


@pytest.fixture
def sample_markdown():
    """Markdown section with a metadata block, headers and a long body."""
    return (
        "---\ntype: core\nboot-priority: 7\n---\n"
        "# Identity\n"
        + "alpha line\n" * 50
        + "## Recent\n"
        + "beta line\n" * 50
        + "LAST LINE"
    )


@pytest.fixture
def workspace(tmp_path):
    """A workspace directory with core and dynamic sections."""
    ws = tmp_path / "workspace"
    ws.mkdir()
    (ws / "IDENTITY.md").write_text("# Identity\nI am the assistant.\n", encoding="utf-8")
    (ws / "SOUL.md").write_text("# Soul\nBe concise.\n", encoding="utf-8")
    (ws / "MEMORY.md").write_text("# Memory\n" + "- remembered fact\n" * 20, encoding="utf-8")
    (ws / "notes.md").write_text("---\nboot-priority: 9\n---\n# Notes\nscratch\n", encoding="utf-8")
    (ws / "ignored.txt").write_text("not a section", encoding="utf-8")
    return ws
