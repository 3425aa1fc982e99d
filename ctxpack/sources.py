#!/usr/bin/env python3
"""
ctxpack.sources — Workspace section loading

Every *.md file directly under the workspace is a section named after its
file. Priority comes from, in order:

  1. the config "priorities" map
  2. a `boot-priority: N` key in the file's metadata block, capped at
     max_dynamic_priority so a file can't promote itself above core sections
  3. default_priority

The same object is the live storage that integrity restore writes back to.
"""
import sys
from pathlib import Path

from ctxpack.compiler import Section
from ctxpack.config import CompilerConfig
from ctxpack.frontmatter import parse_metadata
from ctxpack.store_lib import atomic_write_text, read_text


class SectionDirectory:
    """Markdown files in one directory, read as Sections."""

    def __init__(self, root: Path, config: CompilerConfig = None):
        self.root = Path(root)
        self.config = config or CompilerConfig()

    def path_for(self, name: str) -> Path:
        path = self.root / name
        if path.resolve().parent != self.root.resolve():
            raise ValueError(f"Section name escapes workspace: {name!r}")
        return path

    def names(self) -> list[str]:
        if not self.root.is_dir():
            return []
        return sorted(p.name for p in self.root.glob("*.md") if p.is_file())

    def priority_for(self, name: str, content: str) -> int:
        config = self.config
        if name in config.priorities:
            return config.priorities[name]
        declared = parse_metadata(content).get("boot-priority")
        if isinstance(declared, str):
            try:
                return min(int(declared), config.max_dynamic_priority)
            except ValueError:
                print(f"[ctxpack] WARN:{name}: boot-priority {declared!r} is not an integer", file=sys.stderr)
        return config.default_priority

    def read(self, name: str) -> Section | None:
        content = read_text(self.path_for(name))
        if content is None:
            return None
        return Section(name=name, content=content, priority=self.priority_for(name, content))

    def load_sections(self) -> list[Section]:
        sections = []
        for name in self.names():
            section = self.read(name)
            if section is not None:
                sections.append(section)
        return sections

    def critical_sections(self, sections: list[Section] = None) -> list[Section]:
        """The configured critical sections that currently exist."""
        if sections is None:
            sections = self.load_sections()
        critical = set(self.config.critical_sections)
        return [s for s in sections if s.name in critical]

    def write(self, name: str, content: str) -> None:
        """Atomically replace a section file. Raises OSError on failure."""
        if not atomic_write_text(self.path_for(name), content):
            raise OSError(f"could not write {name}")
