"""Resource loader seeding the workspace store from manifests on disk.

The loader reads YAML documents from a file or a directory tree and parses
the kinds glbc knows about. It is only used to populate initial state before
the controllers start; afterwards all changes flow through the stores.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, AsyncGenerator

import aiofiles
from aiofiles.ospath import isdir, isfile
import yaml

from glbc.exceptions import GlbcException, InputException
from glbc.manifest import BaseObject, parse_raw_obj

__all__ = ["ResourceLoader", "LoadOptions"]

_LOGGER = logging.getLogger(__name__)

MANIFEST_SUFFIXES = (".yaml", ".yml", ".json")


@dataclass
class LoadOptions:
    """Options for loading manifests.

    Attributes:
        path: A manifest file or a directory of manifests.
        recursive: If True and path is a directory, load subdirectories too.
        default_workspace: Workspace assigned to objects not declaring one.
    """

    path: Path
    recursive: bool = True
    default_workspace: str = ""

    def __post_init__(self) -> None:
        self.path = Path(self.path).expanduser().resolve()


class ResourceLoader:
    """Loads objects from the filesystem."""

    def __init__(self) -> None:
        """Initialize the resource loader."""
        self._processed_files: set[Path] = set()

    async def load(self, options: LoadOptions) -> AsyncGenerator[BaseObject, None]:
        """Yield every supported object found under the path.

        Raises:
            GlbcException: If the path does not exist or a file cannot be parsed.
        """
        _LOGGER.info("Loading resources from %s", options.path)
        if await isfile(options.path):
            async for obj in self._load_file(options.path, options):
                yield obj
        elif await isdir(options.path):
            async for obj in self._load_directory(options.path, options):
                yield obj
        else:
            raise GlbcException(f"Path does not exist: {options.path}")
        _LOGGER.info("Finished loading resources")

    async def _load_directory(
        self, path: Path, options: LoadOptions
    ) -> AsyncGenerator[BaseObject, None]:
        _LOGGER.debug("Loading directory: %s", path)
        for entry in sorted(path.iterdir()):
            if await isfile(entry) and entry.suffix.lower() in MANIFEST_SUFFIXES:
                async for obj in self._load_file(entry, options):
                    yield obj
            elif options.recursive and await isdir(entry):
                async for obj in self._load_directory(entry, options):
                    yield obj

    async def _load_file(
        self, path: Path, options: LoadOptions
    ) -> AsyncGenerator[BaseObject, None]:
        if path in self._processed_files:
            _LOGGER.debug("Skipping already processed file: %s", path)
            return
        _LOGGER.debug("Processing file: %s", path)
        self._processed_files.add(path)

        try:
            async with aiofiles.open(str(path), encoding="utf-8") as manifest_file:
                content = await manifest_file.read()
        except OSError as err:
            raise GlbcException(f"Failed to read file {path}: {err}") from err

        try:
            docs: list[Any] = list(yaml.safe_load_all(content))
        except yaml.YAMLError as err:
            raise GlbcException(f"Invalid YAML in file {path}: {err}") from err

        for doc in docs:
            if not doc:
                continue
            if not isinstance(doc, dict):
                raise GlbcException(f"Invalid document in file {path}: {doc}")
            try:
                obj = parse_raw_obj(doc)
            except InputException as err:
                _LOGGER.info("Skipping document in %s: %s", path, err)
                continue
            if not obj.metadata.cluster:
                obj.metadata.cluster = options.default_workspace
            yield obj
