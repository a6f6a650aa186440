"""Saved configuration templates and request body files."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import aiofiles

from ..errors import ConfigError
from .models import TestConfig


class TemplateLoader:
    """Reads and writes JSON configuration templates.

    A template is either a bare config object or an envelope of the form
    {"name": ..., "description": ..., "config": {...}}.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    async def load(self, path: str) -> Dict[str, Any]:
        """
        Load the raw config mapping from a template file.

        Raises:
            FileNotFoundError: If the template does not exist
            ConfigError: If the file is not a JSON object
        """
        template_path = Path(path)
        if not template_path.exists():
            raise FileNotFoundError(f"Template not found: {template_path}")

        async with aiofiles.open(template_path, "r", encoding="utf-8") as f:
            content = await f.read()

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Template {template_path} is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Template {template_path} must contain a JSON object")

        if isinstance(data.get("config"), dict):
            self.logger.info(f"Loaded template '{data.get('name', template_path.stem)}'")
            return data["config"]
        self.logger.info(f"Loaded template {template_path.name}")
        return data

    async def load_config(self, path: str) -> TestConfig:
        return TestConfig.from_dict(await self.load(path))

    async def save(
        self,
        config: TestConfig,
        path: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> None:
        """Write `config` as a named template."""
        envelope = {
            "name": name or Path(path).stem,
            "description": description or "",
            "config": config.to_dict(),
        }
        async with aiofiles.open(path, "w", encoding="utf-8") as f:
            await f.write(json.dumps(envelope, indent=2))
        self.logger.info(f"Saved template to {path}")

    async def load_body(self, path: str) -> str:
        """Read a request body from disk."""
        body_path = Path(path)
        if not body_path.exists():
            raise FileNotFoundError(f"Body file not found: {body_path}")
        async with aiofiles.open(body_path, "r", encoding="utf-8") as f:
            return await f.read()
