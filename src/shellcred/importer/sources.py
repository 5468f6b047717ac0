"""Source readers: the environment, the home and root directories, and file contents.

:class:`ImportInput` is the whole of the state a discovery strategy may
look at. Production code uses the real process environment, ``$HOME`` and
``/``; tests point all three at temporary locations so that every path
rule can be checked with literal paths.

:class:`FileContents` wraps the raw bytes of a file that exists and turns
them into INI sections, JSON, or YAML. A missing file never reaches this
class -- :meth:`ImportInput.read_file` returns ``None`` instead -- so any
error raised here means the file is present but unusable.
"""

from __future__ import annotations

import configparser
import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from shellcred.exceptions import SourceParseError, SourceReadError


@dataclass
class ImportInput:
    """Environment and filesystem roots visible to discovery strategies.

    Attributes:
        env: Environment variables (defaults to a copy of ``os.environ``).
        home_dir: Directory that ``~`` expands to.
        root_dir: Directory that absolute and relative source paths are
            resolved under.
    """

    env: Mapping[str, str] = field(default_factory=lambda: dict(os.environ))
    home_dir: Path = field(default_factory=Path.home)
    root_dir: Path = field(default_factory=lambda: Path("/"))

    def getenv(self, name: str) -> Optional[str]:
        """Return the value of *name*, or ``None`` when it is not set."""
        return self.env.get(name)

    def from_home_dir(self, *parts: str) -> Path:
        """Join *parts* onto the home directory."""
        return self.home_dir.joinpath(*(p.lstrip("/\\") for p in parts if p))

    def from_root_dir(self, *parts: str) -> Path:
        """Join *parts* onto the root directory, ignoring leading separators."""
        return self.root_dir.joinpath(*(p.lstrip("/\\") for p in parts if p))

    def expand_path(self, path: str) -> Path:
        """Resolve a source path as written in a plugin definition.

        ``~``-prefixed paths are resolved under :attr:`home_dir`; every
        other path under :attr:`root_dir`.
        """
        if path.startswith("~"):
            return self.from_home_dir(path[1:])
        return self.from_root_dir(path)

    def read_file(self, path: Path) -> Optional[FileContents]:
        """Read *path* if it exists.

        Returns:
            The file's contents, or ``None`` if there is no file at *path*.

        Raises:
            SourceReadError: If the file exists but cannot be read.
        """
        try:
            data = path.read_bytes()
        except (FileNotFoundError, NotADirectoryError):
            return None
        except OSError as exc:
            raise SourceReadError(f"Cannot read {path}: {exc}") from exc
        return FileContents(data, path=path)


class FileContents:
    """Raw contents of a file that exists.

    Args:
        data: The file's bytes.
        path: Where the bytes came from, used in error messages.
    """

    def __init__(self, data: bytes, path: Optional[Path] = None) -> None:
        self.data = data
        self.path = path

    def __bytes__(self) -> bytes:
        return self.data

    def _where(self) -> str:
        return str(self.path) if self.path is not None else "<memory>"

    def to_text(self) -> str:
        """Decode the contents as UTF-8.

        Raises:
            SourceParseError: If the file is not valid UTF-8 text.
        """
        try:
            return self.data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise SourceParseError(f"{self._where()} is not a text file: {exc}") from exc

    def to_ini(self) -> configparser.ConfigParser:
        """Parse the contents as an INI file.

        Keys without values (``skip-name-resolve``) and repeated sections
        are accepted, as MySQL option files use both. Keys are lower-cased.

        Raises:
            SourceParseError: If the contents are not valid INI.
        """
        parser = configparser.ConfigParser(
            interpolation=None,
            allow_no_value=True,
            strict=False,
            comment_prefixes=("#", ";"),
        )
        try:
            parser.read_string(self.to_text(), source=self._where())
        except configparser.Error as exc:
            raise SourceParseError(f"Invalid INI file {self._where()}: {exc}") from exc
        return parser

    def to_json(self) -> Any:
        """Parse the contents as JSON; an empty file parses as ``{}``.

        Raises:
            SourceParseError: If the contents are not valid JSON.
        """
        text = self.to_text()
        if not text.strip():
            return {}
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise SourceParseError(f"Invalid JSON in {self._where()}: {exc}") from exc

    def to_yaml(self) -> Any:
        """Parse the contents as YAML; an empty file parses as ``{}``.

        Raises:
            SourceParseError: If the contents are not valid YAML.
        """
        try:
            result = yaml.safe_load(self.to_text())
        except yaml.YAMLError as exc:
            raise SourceParseError(f"Invalid YAML in {self._where()}: {exc}") from exc
        return {} if result is None else result
